"""
Guard marker decorators.

Markers are attached to the function without wrapping it and without
import-time side effects; the pipeline reads them back from
``__guard_markers__``.
"""

from typing import Any, Callable, Iterable, Optional, TypeVar

from .core import GuardDescriptor

F = TypeVar("F", bound=Callable[..., Any])

TOKEN = "token"
CAPABILITIES = "capabilities"
CACHE_REPLY = "cache_reply"


def guard(rule_type: str, **params: Any) -> Callable[[F], F]:
    """
    Attach a generic guard marker.

    Decorators apply bottom-up, so each marker is inserted at the front to
    keep the list in source order.

    Example:
        @guard("rate_limit", per_minute=10)
        async def publish(self, request, action): ...
    """
    descriptor = GuardDescriptor.of(rule_type, **params)

    def decorator(func: F) -> F:
        if "__guard_markers__" not in func.__dict__:
            func.__guard_markers__ = []
        func.__guard_markers__.insert(0, descriptor)
        return func

    return decorator


def token(purpose: str) -> Callable[[F], F]:
    """Require a valid one-time token issued for ``purpose``."""
    return guard(TOKEN, purpose=purpose)


def require_capabilities(*capabilities: str) -> Callable[[F], F]:
    """Require the principal to hold every listed capability."""
    return guard(CAPABILITIES, capabilities=tuple(capabilities))


def cache_reply(
    ttl: int = 3600,
    key: Optional[str] = None,
    vary_by: Iterable[str] = (),
) -> Callable[[F], F]:
    """
    Serve the stored result while it is live.

    Args:
        ttl: Seconds the result stays live
        key: Explicit cache key replacing ``<identity>:<method>``
        vary_by: Action arguments whose values split the entry
    """
    return guard(CACHE_REPLY, ttl=ttl, key=key, vary_by=tuple(vary_by))
