"""
Identity resolution and the authorization gate.

``IdentityVerifier.verify`` never rejects a request. A missing header or a
non-Bearer scheme yields an anonymous context; a bad token or an unknown
user id yields an anonymous context that remembers *why*. The failure only
surfaces when an operation calls ``require_identity``.
"""

import logging
from dataclasses import dataclass

from ..database.session import DatabaseManager
from ..database.user_repository import UserRepository
from ..errors import Unauthenticated
from ..models.user import User
from .tokens import InvalidToken, TokenSigner

logger = logging.getLogger(__name__)

BEARER_PREFIX = "bearer "


@dataclass(frozen=True)
class RequestContext:
    """Per-request identity: the current user, or why there is none."""

    current_user: User | None = None
    auth_error: Unauthenticated | None = None

    @classmethod
    def anonymous(cls) -> "RequestContext":
        return cls()

    @property
    def is_authenticated(self) -> bool:
        return self.current_user is not None


def extract_bearer_token(authorization: str | None) -> str | None:
    """Return the token from ``"Bearer <token>"`` (scheme case-insensitive), else None."""
    if not authorization or not authorization.lower().startswith(BEARER_PREFIX):
        return None
    return authorization[len(BEARER_PREFIX) :].strip()


def require_identity(context: RequestContext) -> User:
    """
    Gate for write operations.

    Raises:
        Unauthenticated: When the context has no resolved user
    """
    if context.current_user is None:
        raise context.auth_error or Unauthenticated()
    return context.current_user


class IdentityVerifier:
    """Resolves an Authorization header to the current user."""

    def __init__(self, signer: TokenSigner, db_manager: DatabaseManager):
        self.signer = signer
        self.db_manager = db_manager

    def verify(self, authorization: str | None) -> RequestContext:
        token = extract_bearer_token(authorization)
        if token is None:
            return RequestContext.anonymous()

        try:
            payload = self.signer.verify(token)
        except InvalidToken as e:
            logger.debug("Rejected bearer token: %s", e)
            return RequestContext(auth_error=Unauthenticated("Invalid token"))

        user_id = payload.get("id")
        if not isinstance(user_id, str):
            return RequestContext(auth_error=Unauthenticated("Invalid token"))

        with self.db_manager.session_scope() as session:
            user = UserRepository(session).find_by_id(user_id)

        if user is None:
            logger.debug("Token references unknown user %s", user_id)
            return RequestContext(auth_error=Unauthenticated("Unknown user"))

        return RequestContext(current_user=user)
