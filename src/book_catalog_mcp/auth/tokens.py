"""
Token signing and verification.

Tokens are HMAC-signed JWTs carrying ``{username, id}``. There is no
server-side session and no revocation list: a token is valid for exactly as
long as its signature (and optional expiry) verifies.
"""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt


class InvalidToken(Exception):
    """The token could not be decoded or its signature did not verify."""


class TokenSigner:
    """Signs and verifies login tokens with a server-held secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", ttl_seconds: int | None = None):
        self._secret = secret
        self.algorithm = algorithm
        self.ttl_seconds = ttl_seconds

    def sign(self, payload: dict[str, Any]) -> str:
        claims = dict(payload)
        if self.ttl_seconds is not None:
            claims["exp"] = datetime.now(UTC) + timedelta(seconds=self.ttl_seconds)
        return jwt.encode(claims, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> dict[str, Any]:
        """
        Decode ``token`` and check its signature.

        Raises:
            InvalidToken: On a bad signature, malformed token or expiry
        """
        try:
            return jwt.decode(token, self._secret, algorithms=[self.algorithm])
        except jwt.InvalidTokenError as e:
            raise InvalidToken(str(e)) from e
