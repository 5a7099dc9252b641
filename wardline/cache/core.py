"""
Wardline cache - Core types and durable backends.

The durable tier is a flat ``key -> {"value", "expires_at"}`` mapping that
a backend reads and writes as a whole. Backends never merge: the last
writer wins.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..faults import CacheStoreFault

logger = logging.getLogger("wardline.cache")


# ============================================================================
# Cache Entry
# ============================================================================

@dataclass(slots=True)
class CacheEntry:
    """Cached value with an optional absolute expiry (epoch seconds)."""

    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now

    def to_dict(self) -> Dict[str, Any]:
        return {"value": self.value, "expires_at": self.expires_at}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CacheEntry":
        if not isinstance(data, dict) or "value" not in data:
            raise ValueError("Malformed cache entry")
        expires_at = data.get("expires_at")
        return cls(
            value=data["value"],
            expires_at=float(expires_at) if expires_at is not None else None,
        )


# ============================================================================
# Durable Backends
# ============================================================================

class DurableBackend(ABC):
    """Whole-document storage for the durable cache tier."""

    @abstractmethod
    def read(self) -> Dict[str, Dict[str, Any]]:
        """Return the stored mapping, or an empty dict."""
        ...

    @abstractmethod
    def write(self, data: Dict[str, Dict[str, Any]]) -> None:
        """Replace the stored mapping."""
        ...

    @abstractmethod
    def delete(self) -> None:
        """Remove the stored mapping entirely."""
        ...

    @property
    @abstractmethod
    def name(self) -> str:
        ...


class MemoryDurableBackend(DurableBackend):
    """In-process durable tier. Useful for tests and single-process apps."""

    def __init__(self, data: Optional[Dict[str, Dict[str, Any]]] = None):
        self.data: Optional[Dict[str, Dict[str, Any]]] = data
        self.writes = 0
        self.deletes = 0

    @property
    def name(self) -> str:
        return "memory"

    def read(self) -> Dict[str, Dict[str, Any]]:
        return json.loads(json.dumps(self.data)) if self.data else {}

    def write(self, data: Dict[str, Dict[str, Any]]) -> None:
        self.data = json.loads(json.dumps(data))
        self.writes += 1

    def delete(self) -> None:
        self.data = None
        self.deletes += 1


class FileDurableBackend(DurableBackend):
    """
    JSON file durable tier.

    Writes go to a uniquely named temp file in the target directory which
    then replaces the store, so readers never observe a partial write.
    A corrupt store is deleted and read as empty.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    @property
    def name(self) -> str:
        return "file"

    def read(self) -> Dict[str, Dict[str, Any]]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise CacheStoreFault(self.name, "read", str(exc)) from exc

        try:
            data = json.loads(raw)
            if not isinstance(data, dict):
                raise ValueError("top-level value is not an object")
        except ValueError as exc:
            logger.warning("Corrupt cache store %s discarded: %s", self.path, exc)
            self.delete()
            return {}
        return data

    def write(self, data: Dict[str, Dict[str, Any]]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    json.dump(data, fh, sort_keys=True)
                os.replace(tmp, self.path)
            except BaseException:
                if os.path.exists(tmp):
                    os.unlink(tmp)
                raise
        except (OSError, TypeError, ValueError) as exc:
            raise CacheStoreFault(self.name, "write", str(exc)) from exc

    def delete(self) -> None:
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError as exc:
            raise CacheStoreFault(self.name, "delete", str(exc)) from exc
