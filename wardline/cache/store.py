"""
TwoTierCache: in-memory tier in front of a durable tier.

The in-memory tier is request-scoped and always consulted first. The
durable tier survives across requests: every entry carries an absolute
expiry and is pruned lazily when read. Writes only flip a dirty flag; the
store is rewritten once, by ``flush()`` at the end of the request, and
deleted when nothing is left in it.
"""

from __future__ import annotations

import functools
import hashlib
import inspect
import json
import logging
import time
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, Sequence

from ..faults import CacheStoreFault, MemoizationFault
from .core import CacheEntry, DurableBackend, MemoryDurableBackend

logger = logging.getLogger("wardline.cache")

_MISSING = object()

DEFAULT_TTL = 14400  # 4 hours


class TwoTierCache:
    """
    Two-tier key/value cache with deferred, dirty-gated persistence.

    Example:
        >>> cache = TwoTierCache(FileDurableBackend(".wardline/cache.json"))
        >>> cache.set("menu", items, persist=True, ttl=600)
        >>> cache.get("menu")
        >>> cache.end_request()   # writes the store once, only if dirty
    """

    def __init__(
        self,
        backend: Optional[DurableBackend] = None,
        *,
        clock: Callable[[], float] = time.time,
        default_ttl: int = DEFAULT_TTL,
    ):
        self.backend = backend or MemoryDurableBackend()
        self.clock = clock
        self.default_ttl = default_ttl
        self._memory: Dict[str, CacheEntry] = {}
        self._durable: Optional[Dict[str, CacheEntry]] = None
        self._dirty = False

    # ── State ────────────────────────────────────────────────────────

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    def _durable_tier(self) -> Dict[str, CacheEntry]:
        """Load the durable tier on first use; failures read as empty."""
        if self._durable is not None:
            return self._durable

        try:
            raw = self.backend.read()
        except CacheStoreFault as fault:
            logger.warning("Durable cache unavailable, using empty tier: %s", fault)
            raw = {}

        now = self.clock()
        entries: Dict[str, CacheEntry] = {}
        for key, item in raw.items():
            try:
                entry = CacheEntry.from_dict(item)
            except (TypeError, ValueError):
                self._dirty = True
                continue
            if entry.is_expired(now):
                self._dirty = True
                continue
            entries[key] = entry

        self._durable = entries
        return entries

    # ── Operations ───────────────────────────────────────────────────

    def get(self, key: str, default: Any = None) -> Any:
        """Return the live value for ``key`` or ``default``."""
        now = self.clock()

        entry = self._memory.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                logger.debug("cache hit (memory): %s", key)
                return entry.value
            del self._memory[key]

        durable = self._durable_tier()
        entry = durable.get(key)
        if entry is not None:
            if not entry.is_expired(now):
                logger.debug("cache hit (durable): %s", key)
                return entry.value
            del durable[key]
            self._dirty = True

        logger.debug("cache miss: %s", key)
        return default

    def has(self, key: str) -> bool:
        return self.get(key, _MISSING) is not _MISSING

    def set(
        self,
        key: str,
        value: Any,
        *,
        persist: bool = False,
        ttl: Optional[int] = None,
    ) -> None:
        """
        Store ``value``.

        Args:
            key: Cache key
            value: JSON-serializable value when ``persist`` is set
            persist: Also store in the durable tier
            ttl: Time-to-live in seconds (defaults to ``default_ttl``)
        """
        ttl = self.default_ttl if ttl is None else ttl
        entry = CacheEntry(value=value, expires_at=self.clock() + ttl)
        self._memory[key] = entry

        if persist:
            self._durable_tier()[key] = entry
            self._dirty = True

    def delete(self, key: str) -> bool:
        found = self._memory.pop(key, None) is not None
        durable = self._durable_tier()
        if durable.pop(key, None) is not None:
            self._dirty = True
            found = True
        return found

    def clear(self) -> None:
        """Drop both tiers and remove the durable store."""
        self._memory.clear()
        self._durable = {}
        self._dirty = False
        self.backend.delete()

    # ── Persistence ──────────────────────────────────────────────────

    def flush(self) -> bool:
        """
        Persist the durable tier if it changed.

        Returns:
            True if the backend was touched
        """
        if not self._dirty:
            return False
        if self._durable is None:
            self._dirty = False
            return False

        now = self.clock()
        live = {}
        for key, entry in list(self._durable.items()):
            if entry.is_expired(now):
                continue
            try:
                json.dumps(entry.value)
            except (TypeError, ValueError) as exc:
                logger.warning("Dropping unserializable cache entry %s: %s", key, exc)
                del self._durable[key]
                continue
            live[key] = entry.to_dict()

        if live:
            self.backend.write(live)
        else:
            self.backend.delete()

        self._dirty = False
        logger.debug("cache flushed: %d durable entries", len(live))
        return True

    def end_request(self) -> None:
        """Flush, then reset the request-scoped tiers."""
        try:
            self.flush()
        finally:
            self._memory.clear()
            self._durable = None
            self._dirty = False

    @contextmanager
    def request_scope(self) -> Iterator["TwoTierCache"]:
        try:
            yield self
        finally:
            self.end_request()

    # ── Memoization ──────────────────────────────────────────────────

    def memoize(
        self,
        fn: Callable[..., Any],
        dependencies: Sequence[Any] = (),
        *,
        ttl: Optional[int] = None,
        persist: bool = False,
    ) -> Callable[..., Any]:
        """
        Wrap ``fn`` so its result is computed once per dependency snapshot.

        The key combines the content identity of ``fn`` with a hash of the
        serialized dependencies: new dependency values get a new entry, and
        editing ``fn`` itself invalidates old keys.

        Raises:
            ValueError: If dependencies are not JSON-serializable
        """
        key = memo_key(fn, dependencies)

        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            cached = self.get(key, _MISSING)
            if cached is not _MISSING:
                return cached
            try:
                result = fn(*args, **kwargs)
            except Exception as exc:
                raise MemoizationFault(_describe(fn), str(exc)) from exc
            self.set(key, result, persist=persist, ttl=ttl)
            return result

        wrapper.memo_key = key
        return wrapper


# ============================================================================
# Memo keys
# ============================================================================

def _describe(fn: Callable[..., Any]) -> str:
    return f"{getattr(fn, '__module__', '?')}.{getattr(fn, '__qualname__', repr(fn))}"


def _content_identity(fn: Callable[..., Any]) -> str:
    """Identify a callable by where it lives and what it does."""
    target = inspect.unwrap(getattr(fn, "__func__", fn))
    try:
        body = inspect.getsource(target)
    except (OSError, TypeError):
        code = getattr(target, "__code__", None)
        body = code.co_code.hex() if code is not None else repr(target)

    owner = getattr(fn, "__self__", None)
    owner_id = f"{type(owner).__module__}.{type(owner).__qualname__}" if owner is not None else ""
    return f"{_describe(target)}:{owner_id}:{body}"


def memo_key(fn: Callable[..., Any], dependencies: Sequence[Any] = ()) -> str:
    try:
        serialized = json.dumps(list(dependencies), sort_keys=True)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Dependencies must be serializable: {exc}") from exc

    deps_hash = hashlib.sha256(serialized.encode("utf-8")).hexdigest()
    digest = hashlib.sha256(
        f"{_content_identity(fn)}_{deps_hash}".encode("utf-8")
    ).hexdigest()
    return f"memo_{digest[:32]}"
