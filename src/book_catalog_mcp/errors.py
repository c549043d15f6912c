"""
Error taxonomy surfaced to catalog clients.

Every failure that reaches a client carries a machine-readable ``code`` and a
human message. Two outcomes are deliberately *not* errors: ``editAuthor`` on an
unknown name and ``me`` for an anonymous caller both return ``None``.
"""

from typing import Any


class CatalogError(Exception):
    """Base class for errors reported to API clients."""

    code = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str, *, invalid_args: Any = None):
        super().__init__(message)
        self.message = message
        self.invalid_args = invalid_args

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.invalid_args is not None:
            payload["invalidArgs"] = self.invalid_args
        return payload


class Unauthenticated(CatalogError):
    """A write was attempted without a valid identity."""

    code = "UNAUTHENTICATED"

    def __init__(self, message: str = "Not authenticated", **kwargs: Any):
        super().__init__(message, **kwargs)


class InvalidInput(CatalogError):
    """Validation or persistence failure; ``invalid_args`` names the culprit."""

    code = "BAD_USER_INPUT"


class BadCredentials(CatalogError):
    """Login failed. Unknown user and wrong password are indistinguishable."""

    code = "BAD_CREDENTIALS"

    def __init__(self, message: str = "Wrong credentials", **kwargs: Any):
        super().__init__(message, **kwargs)
