"""
Wardline cache - two-tier cache with deferred persistence.

Exports:
- TwoTierCache: in-memory tier + durable tier, flushed once per request
- CacheEntry: value with absolute expiry
- DurableBackend, MemoryDurableBackend, FileDurableBackend
- memo_key: key derivation used by ``TwoTierCache.memoize``
"""

from .core import (
    CacheEntry,
    DurableBackend,
    MemoryDurableBackend,
    FileDurableBackend,
)
from .store import TwoTierCache, memo_key, DEFAULT_TTL

__all__ = [
    "CacheEntry",
    "DurableBackend",
    "MemoryDurableBackend",
    "FileDurableBackend",
    "TwoTierCache",
    "memo_key",
    "DEFAULT_TTL",
]
