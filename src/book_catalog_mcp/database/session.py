"""
Database session management for the Book Catalog MCP Server.

The catalog lives in one SQLite database. Sessions are short-lived: the
resolution engine opens one per operation through
``DatabaseManager.session_scope()`` and the scope commits or rolls back on
exit. The engine is created lazily and disposed on server shutdown; a
disposed manager reconnects on next use.
"""

import logging
from collections.abc import Generator
from contextlib import contextmanager

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .schema import Base

logger = logging.getLogger(__name__)


def _enable_foreign_keys(dbapi_connection, connection_record):  # noqa: ARG001
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


class DatabaseManager:
    """
    Owns the SQLite engine and hands out transactional sessions.

    Args:
        database_url: SQLAlchemy SQLite URL, e.g. ``ServerConfig.get_database_url()``
            or ``"sqlite://"`` for an in-memory catalog
    """

    def __init__(self, database_url: str):
        self.database_url = database_url
        self._engine: Engine | None = None
        self._sessions: sessionmaker | None = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            # One shared connection, so in-memory catalogs outlive each session
            self._engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            # Books must not reference missing authors
            event.listen(self._engine, "connect", _enable_foreign_keys)
            logger.info("Catalog database opened: %s", self._engine.url)

        return self._engine

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        Run repository work in one transaction.

        ```python
        with db_manager.session_scope() as session:
            authors = AuthorRepository(session).find()
        ```
        """
        if self._sessions is None:
            self._sessions = sessionmaker(
                bind=self.engine, autoflush=False, expire_on_commit=False
            )

        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            logger.debug("Rolling back catalog transaction", exc_info=True)
            session.rollback()
            raise
        finally:
            session.close()

    def init_database(self, drop_existing: bool = False) -> None:
        """Create the catalog tables, optionally dropping existing ones first."""
        if drop_existing:
            logger.warning("Dropping all catalog tables")
            Base.metadata.drop_all(bind=self.engine)

        Base.metadata.create_all(bind=self.engine)
        logger.info("Catalog schema ready")

    def verify_connection(self) -> bool:
        """Check that the database answers a trivial query."""
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except Exception:
            logger.exception("Catalog database is unreachable")
            return False
        return True

    def close(self) -> None:
        """Dispose of the engine. Called on server shutdown."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Catalog database closed")
        self._engine = None
        self._sessions = None
