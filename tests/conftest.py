"""Test configuration and fixtures for the Book Catalog MCP Server.

Every test gets:
1. An isolated database - an in-memory SQLite engine created per test
2. Its own notification channel and token signer
3. A clean configuration singleton and environment
"""

import os
from collections.abc import Generator
from pathlib import Path

import logfire
import pytest
import pytest_asyncio

from book_catalog_mcp.auth import IdentityVerifier, RequestContext, TokenSigner
from book_catalog_mcp.config import ServerConfig, reset_config
from book_catalog_mcp.database import DatabaseManager
from book_catalog_mcp.database.seed import seed_catalog
from book_catalog_mcp.engine import ResolutionEngine
from book_catalog_mcp.notifications import NotificationChannel

TEST_SECRET = "test-signing-secret-0123456789abcdef"
SHARED_PASSWORD = "secret"


def pytest_configure(config):  # noqa: ARG001
    """Keep spans local; nothing is exported while testing."""
    logfire.configure(send_to_logfire=False, console=False)


# === Configuration Fixtures ===


@pytest.fixture(autouse=True)
def cleanup_config() -> Generator[None, None, None]:
    """Reset the configuration singleton around every test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Drop BOOK_CATALOG_* variables and run from an empty directory (no .env)."""
    for key in list(os.environ):
        if key.startswith("BOOK_CATALOG_"):
            monkeypatch.delenv(key)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def test_db_path(tmp_path: Path) -> Path:
    return tmp_path / "test_catalog.db"


@pytest.fixture
def test_config(clean_env, test_db_path: Path) -> ServerConfig:  # noqa: ARG001
    """Configuration with an isolated database file and a test secret."""
    return ServerConfig(
        server_name="test-book-catalog",
        server_version="0.0.1-test",
        database_path=test_db_path,
        secret_key=TEST_SECRET,
        debug=True,
        log_level="DEBUG",
        subscription_timeout_seconds=0.5,
    )


# === Database Fixtures ===


@pytest.fixture
def db_manager() -> Generator[DatabaseManager, None, None]:
    """A fresh in-memory catalog database."""
    manager = DatabaseManager("sqlite://")
    manager.init_database()
    yield manager
    manager.close()


@pytest.fixture
def seeded(db_manager: DatabaseManager) -> DatabaseManager:
    """The database loaded with the sample catalog (5 authors, 7 books)."""
    seed_catalog(db_manager)
    return db_manager


# === Engine Fixtures ===


@pytest.fixture
def channel() -> NotificationChannel:
    return NotificationChannel()


@pytest.fixture
def secret_key() -> str:
    return TEST_SECRET


@pytest.fixture
def signer(secret_key: str) -> TokenSigner:
    return TokenSigner(secret_key)


@pytest.fixture
def verifier(signer: TokenSigner, db_manager: DatabaseManager) -> IdentityVerifier:
    return IdentityVerifier(signer, db_manager)


@pytest.fixture
def engine(
    db_manager: DatabaseManager, channel: NotificationChannel, signer: TokenSigner
) -> ResolutionEngine:
    return ResolutionEngine(db_manager, channel, signer, SHARED_PASSWORD)


@pytest.fixture
def anonymous() -> RequestContext:
    return RequestContext.anonymous()


@pytest.fixture
def login(engine: ResolutionEngine, verifier: IdentityVerifier):
    """Register a user, log in and resolve the token the way a request would."""

    async def _login(username: str, favorite_genre: str = "scifi") -> RequestContext:
        anonymous = RequestContext.anonymous()
        await engine.create_user(anonymous, username=username, favorite_genre=favorite_genre)
        token = await engine.login(anonymous, username=username, password=SHARED_PASSWORD)
        return verifier.verify(f"Bearer {token.value}")

    return _login


@pytest_asyncio.fixture
async def alice(login) -> RequestContext:
    """Context of a logged-in user whose favorite genre is scifi."""
    return await login("alice", "scifi")
