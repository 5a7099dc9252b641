"""
Wardline guards - declarative checks in front of action methods.

Exports:
- Proceed, Fail, ShortCircuit: guard results
- GuardDescriptor, GuardContext, GuardHandler: extension points
- GuardPipeline: evaluate-all runner
- token, require_capabilities, cache_reply, guard: marker decorators
- TokenGuard, CapabilityGuard, ResponseCacheGuard: built-in handlers
"""

from .core import (
    Proceed,
    Fail,
    ShortCircuit,
    GuardResult,
    GuardDescriptor,
    GuardContext,
    GuardOutcome,
    GuardHandler,
)
from .decorators import (
    guard,
    token,
    require_capabilities,
    cache_reply,
    TOKEN,
    CAPABILITIES,
    CACHE_REPLY,
)
from .pipeline import GuardPipeline, UNKNOWN_POLICIES
from .handlers import (
    TokenGuard,
    CapabilityGuard,
    ResponseCacheGuard,
    TOKEN_HEADER,
)
from .tokens import TokenSigner

__all__ = [
    "Proceed",
    "Fail",
    "ShortCircuit",
    "GuardResult",
    "GuardDescriptor",
    "GuardContext",
    "GuardOutcome",
    "GuardHandler",
    "guard",
    "token",
    "require_capabilities",
    "cache_reply",
    "TOKEN",
    "CAPABILITIES",
    "CACHE_REPLY",
    "GuardPipeline",
    "UNKNOWN_POLICIES",
    "TokenGuard",
    "CapabilityGuard",
    "ResponseCacheGuard",
    "TOKEN_HEADER",
    "TokenSigner",
]
