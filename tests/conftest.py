"""
Shared test fixtures and helpers for the Wardline test suite.
"""

import importlib
import os
import sys
import textwrap
import time
import uuid
from pathlib import Path
from typing import Any, Dict, Iterable, Optional

import pytest

from wardline.http import Action, Principal, Request


# ============================================================================
# Request Helpers
# ============================================================================


def make_request(**kwargs: Any) -> Request:
    """Build a GET request; keyword arguments override Request fields."""
    return Request(**kwargs)


def action_request(
    name: Optional[str],
    /,
    *,
    principal: Optional[Principal] = None,
    headers: Optional[Dict[str, str]] = None,
    **args: Any,
) -> Request:
    """Build a POST action call."""
    return Request(
        method="POST",
        action=Action(name=name, args=dict(args)),
        principal=principal,
        headers=headers or {},
    )


def principal(id: str = "u1", capabilities: Iterable[str] = ()) -> Principal:
    return Principal.of(id, capabilities)


# ============================================================================
# Fake clock
# ============================================================================


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


# ============================================================================
# Handler trees
# ============================================================================


class HandlerTree:
    """
    Throwaway handler package on disk.

    The package gets a unique name so tests never see each other's
    modules in ``sys.modules``.
    """

    def __init__(self, base: Path, package: str):
        self.base = base
        self.package = package
        self.root = base / package
        self.root.mkdir()
        (self.root / "__init__.py").write_text("")

    def write(self, relpath: str, source: str) -> Path:
        path = self.root / relpath
        directory = path.parent
        while directory != self.root and not (directory / "__init__.py").exists():
            directory.mkdir(parents=True, exist_ok=True)
            (directory / "__init__.py").write_text("")
            directory = directory.parent
        path.write_text(textwrap.dedent(source))
        importlib.invalidate_caches()
        return path

    def remove(self, relpath: str) -> None:
        (self.root / relpath).unlink()
        importlib.invalidate_caches()

    def identity(self, relpath: str, class_name: str) -> str:
        module = ".".join(Path(relpath).with_suffix("").parts)
        return f"{self.package}.{module}:{class_name}"

    def touch(self, relpath: str, *, ahead: float = 60.0) -> None:
        """Move a file's mtime into the future."""
        path = self.root / relpath if relpath else self.root
        future = time.time() + ahead
        os.utime(path, (future, future))


@pytest.fixture
def handler_tree(tmp_path, monkeypatch):
    package = f"wl_handlers_{uuid.uuid4().hex[:10]}"
    monkeypatch.syspath_prepend(str(tmp_path))
    monkeypatch.setattr(sys, "dont_write_bytecode", True)
    tree = HandlerTree(tmp_path, package)
    yield tree
    for name in list(sys.modules):
        if name == package or name.startswith(package + "."):
            del sys.modules[name]


# Standard handler set used by registry, loader and boot tests.
STANDARD_HANDLERS = {
    "home.py": '''
        from wardline import Controller, Reply

        class HomeController(Controller):
            handle = "_default"

            async def serve(self, request):
                return Reply(body="home")
    ''',
    "missing.py": '''
        from wardline import Controller, Reply

        class MissingController(Controller):
            handle = "_404"

            async def serve(self, request):
                return Reply(body="missing")
    ''',
    "shop/product.py": '''
        from wardline import Controller, Reply, require_capabilities

        class ProductController(Controller):
            handle = "product"

            async def serve(self, request):
                return Reply(body="product page")

            @require_capabilities("edit_products")
            async def rename(self, request, action):
                return {"renamed": action.get("name")}
    ''',
    "landing.py": '''
        from wardline import Controller, Reply

        class LandingPage(Controller):
            handle = 42

            async def serve(self, request):
                return Reply(body="landing")
    ''',
}


@pytest.fixture
def standard_tree(handler_tree):
    for relpath, source in STANDARD_HANDLERS.items():
        handler_tree.write(relpath, source)
    return handler_tree
