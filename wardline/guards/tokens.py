"""
One-time action tokens.

Format: ``<nonce>.<expiry>.<signature>`` where the signature is
HMAC-SHA256 over ``purpose|subject|nonce|expiry``. A token is only valid
for the purpose (and subject) it was issued for.
"""

import hashlib
import hmac
import secrets
import time
from typing import Callable, Optional


class TokenSigner:
    """Issues and verifies purpose-bound tokens."""

    def __init__(
        self,
        secret: Optional[str] = None,
        ttl: int = 43200,
        *,
        clock: Callable[[], float] = time.time,
    ):
        self._secret = (secret or secrets.token_urlsafe(32)).encode()
        self.ttl = ttl
        self.clock = clock

    def _sign(self, purpose: str, subject: str, nonce: str, expiry: str) -> str:
        message = "|".join((purpose, subject, nonce, expiry)).encode()
        return hmac.new(self._secret, message, hashlib.sha256).hexdigest()

    def issue(self, purpose: str, subject: str = "") -> str:
        nonce = secrets.token_urlsafe(16)
        expiry = str(int(self.clock()) + self.ttl)
        return f"{nonce}.{expiry}.{self._sign(purpose, subject, nonce, expiry)}"

    def verify(self, purpose: str, token: str, subject: str = "") -> bool:
        """True if ``token`` was issued for ``purpose``/``subject`` and is live."""
        if not isinstance(token, str) or token.count(".") != 2:
            return False
        nonce, expiry, signature = token.split(".")
        expected = self._sign(purpose, subject, nonce, expiry)
        if not hmac.compare_digest(signature.encode(), expected.encode()):
            return False
        try:
            return int(expiry) > self.clock()
        except ValueError:
            return False

    @staticmethod
    def nonce_of(token: str) -> str:
        return token.split(".", 1)[0]
