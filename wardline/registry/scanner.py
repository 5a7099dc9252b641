"""
Controller Scanner.

Discovers controller classes either by walking a handler directory or
from an explicit manifest, and turns each into a ControllerDescriptor.
Malformed controllers raise RegistrationError on the spot.
"""

import importlib
import inspect
import logging
import os
import sys
from pathlib import Path
from types import ModuleType
from typing import Dict, Iterator, List, Optional, Sequence, Tuple, Type, Union

from ..controller.factory import import_identity
from ..controller.metadata import (
    ControllerDescriptor,
    extract_descriptor,
    is_handler_candidate,
)
from ..faults import RegistrationError

logger = logging.getLogger("wardline.registry.scanner")

ManifestEntry = Union[str, Type]


def _skipped(name: str) -> bool:
    return name == "__pycache__" or name.startswith(".") or name.startswith("_")


def walk_handler_tree(root: Union[str, Path]) -> Iterator[Tuple[Path, bool]]:
    """
    Yield ``(path, is_dir)`` for every directory and ``.py`` file under
    ``root`` that takes part in discovery, in sorted order.

    The root directory itself is yielded first.
    """
    root = Path(root)
    yield root, True
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not _skipped(d))
        base = Path(dirpath)
        for dirname in dirnames:
            yield base / dirname, True
        for filename in sorted(filenames):
            if filename.endswith(".py") and not _skipped(filename):
                yield base / filename, False


def module_name_for(root: Path, path: Path, package: str) -> str:
    """``handlers/shop/product.py`` -> ``handlers.shop.product``."""
    relative = path.relative_to(root).with_suffix("")
    return ".".join([package, *relative.parts])


class ControllerScanner:
    """
    Finds controllers and extracts their descriptors.

    Example:
        >>> scanner = ControllerScanner("app/handlers", package="app.handlers")
        >>> descriptors = scanner.scan()

        >>> scanner = ControllerScanner.from_manifest([
        ...     "app.handlers.product:ProductController",
        ...     HomeController,
        ... ])
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        package: Optional[str] = None,
        manifest: Optional[Sequence[ManifestEntry]] = None,
    ):
        self.root = Path(root) if root is not None else None
        self.package = package or (self.root.name if self.root is not None else None)
        self.manifest = list(manifest or [])

    @classmethod
    def from_manifest(cls, entries: Sequence[ManifestEntry]) -> "ControllerScanner":
        """Explicit registration: classes or ``"module:Class"`` strings."""
        return cls(manifest=entries)

    def scan(self) -> List[ControllerDescriptor]:
        """
        Run discovery.

        Returns:
            Descriptors in discovery order

        Raises:
            RegistrationError: On any malformed controller, unimportable
                handler module or duplicate ``(type, handle)`` pair
        """
        descriptors: List[ControllerDescriptor] = []

        for entry in self.manifest:
            cls = import_identity(entry) if isinstance(entry, str) else entry
            if not is_handler_candidate(cls):
                raise RegistrationError(
                    f"Manifest entry {entry!r} is not a concrete controller class.",
                    suggestion="List classes that implement `async serve(request)`.",
                )
            descriptors.append(extract_descriptor(cls))

        if self.root is not None:
            descriptors.extend(self._scan_tree())

        descriptors = self._check_duplicates(descriptors)
        logger.info("Scanned %d controllers", len(descriptors))
        return descriptors

    # ------------------------------------------------------------------

    def _scan_tree(self) -> List[ControllerDescriptor]:
        if not self.root.is_dir():
            raise RegistrationError(
                f"Handler directory '{self.root}' does not exist.",
                source=str(self.root),
            )

        importlib.invalidate_caches()
        found: List[ControllerDescriptor] = []
        for path, is_dir in walk_handler_tree(self.root):
            if is_dir:
                continue
            module_name = module_name_for(self.root, path, self.package)
            module = self._load_module(module_name, path)
            for cls in self._candidates(module):
                found.append(extract_descriptor(cls, str(path)))
        return found

    def _load_module(self, module_name: str, path: Path) -> ModuleType:
        try:
            module = sys.modules.get(module_name)
            if module is not None:
                return importlib.reload(module)
            return importlib.import_module(module_name)
        except RegistrationError:
            raise
        except Exception as exc:
            raise RegistrationError(
                f"Failed to load handler module '{module_name}': {exc}",
                source=str(path),
                suggestion=f"Make sure the parent of '{self.root}' is importable.",
            ) from exc

    @staticmethod
    def _candidates(module: ModuleType) -> List[Type]:
        return [
            obj
            for obj in vars(module).values()
            if inspect.isclass(obj)
            and obj.__module__ == module.__name__
            and is_handler_candidate(obj)
        ]

    @staticmethod
    def _check_duplicates(descriptors: List[ControllerDescriptor]) -> List[ControllerDescriptor]:
        claimed: Dict[Tuple[str, str], str] = {}
        unique: List[ControllerDescriptor] = []
        for desc in descriptors:
            if desc.identity in claimed.values():
                continue
            key = (desc.type.value, desc.handle)
            other = claimed.get(key)
            if other is not None and other != desc.identity:
                raise RegistrationError(
                    f"Duplicate {desc.type.value} handle '{desc.handle}': "
                    f"{other} and {desc.identity}.",
                    identity=desc.identity,
                    source=desc.source_file_path or None,
                    suggestion="Give one of the controllers a different handle.",
                )
            claimed[key] = desc.identity
            unique.append(desc)
        return unique
