"""
SQLAlchemy database schema for the Book Catalog MCP Server.

The tables back the repository layer:
1. ``authors`` - unique by name; ``born`` is the only mutable field
2. ``books`` - immutable once created, each referencing exactly one author
3. ``book_genres`` - one row per genre, preserving stored order and case
4. ``users`` - unique by username

Authors have no stored book count and no back-pointer to their books;
both are discovered by querying ``books``.
"""

from datetime import UTC, datetime

from sqlalchemy import (
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship, validates

Base = declarative_base()


def _utcnow() -> datetime:
    # Microsecond precision keeps insertion order stable within one second
    return datetime.now(UTC).replace(tzinfo=None)


def _require_text(field: str, value: str | None, min_length: int = 1) -> str:
    if value is None or len(value.strip()) < min_length:
        raise ValueError(f"{field} must be at least {min_length} non-blank characters")
    return value


class Author(Base):
    """Authors table. Rows are created on demand by ``addBook``."""

    __tablename__ = "authors"

    id = Column(String(50), primary_key=True)
    name = Column(String(200), nullable=False)
    born = Column(Integer, nullable=True)

    created_at = Column(DateTime, nullable=False, default=_utcnow)
    updated_at = Column(DateTime, nullable=False, default=_utcnow, onupdate=_utcnow)

    __table_args__ = (
        # The backstop for concurrent find-or-create on the same name
        UniqueConstraint("name", name="unique_author_name"),
        CheckConstraint("id LIKE 'author_%'", name="check_author_id_format"),
    )

    @validates("name")
    def validate_name(self, key, value):  # noqa: ARG002
        return _require_text("Author name", value)


class Book(Base):
    """Books table. No update or delete path exists for books."""

    __tablename__ = "books"

    id = Column(String(50), primary_key=True)
    title = Column(String(500), nullable=False)
    published = Column(Integer, nullable=False)
    author_id = Column(String(50), ForeignKey("authors.id"), nullable=False)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    genres = relationship(
        "BookGenre",
        order_by="BookGenre.position",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    __table_args__ = (
        Index("idx_book_author", "author_id"),
        CheckConstraint("id LIKE 'book_%'", name="check_book_id_format"),
    )

    @validates("title")
    def validate_title(self, key, value):  # noqa: ARG002
        return _require_text("Title", value)


class BookGenre(Base):
    """Genres of a book, kept as entered."""

    __tablename__ = "book_genres"

    id = Column(Integer, primary_key=True, autoincrement=True)
    book_id = Column(String(50), ForeignKey("books.id"), nullable=False)
    position = Column(Integer, nullable=False)
    name = Column(String(100), nullable=False)
    # Unicode case-folded name; SQLite lower() only folds ASCII
    folded = Column(String(100), nullable=False)

    __table_args__ = (
        Index("idx_book_genre_folded", "folded"),
        UniqueConstraint("book_id", "position", name="unique_genre_position"),
    )


class User(Base):
    """Users table. Users are never updated or deleted."""

    __tablename__ = "users"

    id = Column(String(50), primary_key=True)
    username = Column(String(100), nullable=False)
    favorite_genre = Column(String(100), nullable=False)

    created_at = Column(DateTime, nullable=False, default=_utcnow)

    __table_args__ = (
        UniqueConstraint("username", name="unique_username"),
        CheckConstraint("id LIKE 'user_%'", name="check_user_id_format"),
    )

    @validates("username")
    def validate_username(self, key, value):  # noqa: ARG002
        return _require_text("Username", value, min_length=3)
