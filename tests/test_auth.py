"""Tests for token signing, identity resolution and the write gate."""

import jwt
import pytest

from book_catalog_mcp.auth import (
    InvalidToken,
    RequestContext,
    TokenSigner,
    extract_bearer_token,
    require_identity,
)
from book_catalog_mcp.database import CatalogRepositories, UserCreateSchema
from book_catalog_mcp.errors import Unauthenticated


@pytest.fixture
def user(db_manager):
    with db_manager.session_scope() as session:
        return CatalogRepositories(session).users.create(
            UserCreateSchema(username="alice", favorite_genre="scifi")
        )


class TestTokenSigner:
    def test_round_trip(self, signer):
        token = signer.sign({"username": "alice", "id": "user_1"})

        payload = signer.verify(token)

        assert payload == {"username": "alice", "id": "user_1"}

    def test_no_expiry_by_default(self, signer):
        token = signer.sign({"id": "user_1"})
        assert "exp" not in jwt.decode(token, options={"verify_signature": False})

    def test_ttl_adds_expiry(self, secret_key):
        token = TokenSigner(secret_key, ttl_seconds=60).sign({"id": "user_1"})
        assert "exp" in jwt.decode(token, options={"verify_signature": False})

    def test_expired_token_rejected(self, secret_key):
        signer = TokenSigner(secret_key, ttl_seconds=-10)
        token = signer.sign({"id": "user_1"})

        with pytest.raises(InvalidToken):
            signer.verify(token)

    def test_foreign_secret_rejected(self, signer):
        token = TokenSigner("another-secret-of-sufficient-length!!").sign({"id": "user_1"})

        with pytest.raises(InvalidToken):
            signer.verify(token)

    def test_tampered_token_rejected(self, signer):
        token = signer.sign({"id": "user_1"})
        header, payload, signature = token.split(".")
        forged = jwt.encode({"id": "user_2"}, "guess", algorithm="HS256").split(".")[1]

        with pytest.raises(InvalidToken):
            signer.verify(f"{header}.{forged}.{signature}")

    def test_garbage_rejected(self, signer):
        with pytest.raises(InvalidToken):
            signer.verify("not-a-token")


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        "header", ["Bearer abc.def", "bearer abc.def", "BEARER abc.def", "BeArEr abc.def"]
    )
    def test_scheme_is_case_insensitive(self, header):
        assert extract_bearer_token(header) == "abc.def"

    @pytest.mark.parametrize("header", [None, "", "Basic dXNlcjpwYXNz", "Bearerabc", "Token abc"])
    def test_other_values_have_no_token(self, header):
        assert extract_bearer_token(header) is None


class TestRequireIdentity:
    def test_anonymous_is_rejected(self):
        with pytest.raises(Unauthenticated) as exc:
            require_identity(RequestContext.anonymous())

        assert exc.value.code == "UNAUTHENTICATED"
        assert exc.value.message == "Not authenticated"

    def test_deferred_error_is_raised(self):
        context = RequestContext(auth_error=Unauthenticated("Invalid token"))

        with pytest.raises(Unauthenticated, match="Invalid token"):
            require_identity(context)


class TestIdentityVerifier:
    def test_missing_header_is_anonymous(self, verifier):
        context = verifier.verify(None)

        assert context.current_user is None
        assert context.auth_error is None
        assert context.is_authenticated is False

    def test_other_scheme_is_anonymous(self, verifier):
        context = verifier.verify("Basic dXNlcjpwYXNz")

        assert context.current_user is None
        assert context.auth_error is None

    def test_valid_token_resolves_user(self, verifier, signer, user):
        token = signer.sign({"username": user.username, "id": user.id})

        context = verifier.verify(f"bearer {token}")

        assert context.is_authenticated
        assert context.current_user == user
        assert require_identity(context) == user

    def test_bad_signature_is_deferred(self, verifier, user):
        token = TokenSigner("another-secret-of-sufficient-length!!").sign(
            {"username": user.username, "id": user.id}
        )

        context = verifier.verify(f"Bearer {token}")

        assert context.current_user is None
        assert isinstance(context.auth_error, Unauthenticated)
        with pytest.raises(Unauthenticated, match="Invalid token"):
            require_identity(context)

    def test_unknown_user_is_deferred(self, verifier, signer):
        token = signer.sign({"username": "ghost", "id": "user_missing"})

        context = verifier.verify(f"Bearer {token}")

        assert context.current_user is None
        with pytest.raises(Unauthenticated, match="Unknown user"):
            require_identity(context)

    def test_token_without_id_is_deferred(self, verifier, signer):
        context = verifier.verify(f"Bearer {signer.sign({'username': 'alice'})}")

        assert context.current_user is None
        assert context.auth_error is not None
