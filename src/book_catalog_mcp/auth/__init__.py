"""Authentication: token signing, identity verification and the write gate."""

from .identity import (
    IdentityVerifier,
    RequestContext,
    extract_bearer_token,
    require_identity,
)
from .tokens import InvalidToken, TokenSigner

__all__ = [
    "IdentityVerifier",
    "InvalidToken",
    "RequestContext",
    "TokenSigner",
    "extract_bearer_token",
    "require_identity",
]
