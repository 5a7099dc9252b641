"""
Built-in guard handlers.

- TokenGuard: one-time, purpose-bound token
- CapabilityGuard: principal must hold all listed capabilities
- ResponseCacheGuard: serve a stored result while it is live
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional

from ..cache import TwoTierCache
from ..http import Reply
from .core import Fail, GuardContext, GuardHandler, GuardResult, Proceed, ShortCircuit
from .decorators import CACHE_REPLY, CAPABILITIES, TOKEN
from .tokens import TokenSigner

logger = logging.getLogger("wardline.guards")

TOKEN_HEADER = "x-wardline-token"
REPLY_KEY_PREFIX = "wardline:reply:"
USED_TOKEN_PREFIX = "wardline:token:used:"


# ============================================================================
# Token
# ============================================================================

class TokenGuard(GuardHandler):
    """
    Validates a one-time token for the marker's purpose.

    The token comes from the action argument ``field`` or the
    ``x-wardline-token`` header. It is bound to the principal id when
    there is one. Anything missing or mismatched fails.
    """

    rule_type = TOKEN

    def __init__(
        self,
        signer: TokenSigner,
        cache: Optional[TwoTierCache] = None,
        field: str = "_token",
    ):
        self.signer = signer
        self.cache = cache
        self.field = field

    def _token_from(self, context: GuardContext) -> Optional[str]:
        action = context.action
        if action is not None and action.get(self.field):
            return str(action.get(self.field))
        header = getattr(context.request, "header", None)
        return header(TOKEN_HEADER) if header is not None else None

    async def check(self, context: GuardContext) -> GuardResult:
        purpose = context.descriptor.param("purpose")
        if not purpose:
            return Fail("Token guard has no purpose")

        supplied = self._token_from(context)
        if not supplied:
            return Fail(f"Missing token for '{purpose}'")

        principal = context.principal
        subject = principal.id if principal is not None else ""
        if not self.signer.verify(purpose, supplied, subject):
            return Fail(f"Invalid token for '{purpose}'")

        if self.cache is not None and self.cache.has(self._used_key(supplied)):
            return Fail(f"Token for '{purpose}' was already used")

        return Proceed()

    async def after(self, context: GuardContext, result: Any) -> None:
        # Only a call that passed every guard and ran consumes the token.
        supplied = self._token_from(context)
        if self.cache is not None and supplied:
            self.cache.set(self._used_key(supplied), True, persist=True, ttl=self.signer.ttl)

    def _used_key(self, token: str) -> str:
        return USED_TOKEN_PREFIX + self.signer.nonce_of(token)


# ============================================================================
# Capabilities
# ============================================================================

class CapabilityGuard(GuardHandler):
    """Requires the principal to hold every listed capability."""

    rule_type = CAPABILITIES

    async def check(self, context: GuardContext) -> GuardResult:
        required = list(context.descriptor.param("capabilities", ()))
        principal = context.principal
        if principal is None:
            return Fail("Authentication required")

        missing = [cap for cap in required if not principal.can(cap)]
        if missing:
            return Fail(f"Missing required capabilities: {', '.join(missing)}")
        return Proceed()


# ============================================================================
# Response cache
# ============================================================================

class ResponseCacheGuard(GuardHandler):
    """
    Serves stored action results.

    Key: ``wardline:reply:`` + (explicit key or ``<identity>:<method>``),
    then ``:<value>`` for every vary-by argument. With no vary-by list all
    argument combinations share one entry.

    With ``bypass`` set, stored results are never served but fresh ones
    are still stored.
    """

    rule_type = CACHE_REPLY

    def __init__(self, cache: TwoTierCache, bypass: bool = False, default_ttl: int = 3600):
        self.cache = cache
        self.bypass = bypass
        self.default_ttl = default_ttl

    def key_for(self, context: GuardContext) -> str:
        descriptor = context.descriptor
        base = descriptor.param("key") or f"{context.identity}:{context.method_name}"
        parts: List[str] = [REPLY_KEY_PREFIX + str(base)]

        action = context.action
        for name in descriptor.param("vary_by", ()):
            value = action.get(name) if action is not None else None
            parts.append("" if value is None else str(value))
        return ":".join(parts)

    async def check(self, context: GuardContext) -> GuardResult:
        if self.bypass:
            return Proceed()

        key = self.key_for(context)
        stored = self.cache.get(key)
        if stored is None:
            return Proceed()

        try:
            result = _restore(stored)
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable cached reply %s: %s", key, exc)
            return Proceed()
        return ShortCircuit(result)

    async def after(self, context: GuardContext, result: Any) -> None:
        ttl = context.descriptor.param("ttl")
        if ttl is None:
            ttl = self.default_ttl
        self.cache.set(self.key_for(context), _store(result), persist=True, ttl=ttl)


def _store(result: Any) -> dict:
    if isinstance(result, Reply):
        return {"kind": "reply", "data": result.to_dict()}
    return {"kind": "value", "data": result}


def _restore(stored: Any) -> Any:
    if not isinstance(stored, dict):
        raise ValueError("cached reply is not an object")
    kind = stored["kind"]
    if kind == "reply":
        return Reply.from_dict(stored["data"])
    if kind == "value":
        return stored["data"]
    raise ValueError(f"unknown cached reply kind {kind!r}")
