"""
Database package for the Book Catalog MCP Server.

This package provides:
- SQLAlchemy schema definitions (schema.py)
- Session management and connection handling (session.py)
- Repositories implementing the catalog's data-access contract
- Sample catalog data (seed.py)
"""

from sqlalchemy.orm import Session

from .author_repository import AuthorCreateSchema, AuthorRepository, AuthorUpdateSchema
from .book_repository import BookCreateSchema, BookRepository
from .repository import BaseRepository, DuplicateError, RepositoryException
from .schema import Author, Base, Book, BookGenre, User
from .session import DatabaseManager
from .user_repository import UserCreateSchema, UserRepository


class CatalogRepositories:
    """The three repositories bound to one session."""

    def __init__(self, session: Session):
        self.session = session
        self.authors = AuthorRepository(session)
        self.books = BookRepository(session)
        self.users = UserRepository(session)


__all__ = [
    "Author",
    "AuthorCreateSchema",
    "AuthorRepository",
    "AuthorUpdateSchema",
    "Base",
    "BaseRepository",
    "Book",
    "BookCreateSchema",
    "BookGenre",
    "BookRepository",
    "CatalogRepositories",
    "DatabaseManager",
    "DuplicateError",
    "RepositoryException",
    "User",
    "UserCreateSchema",
    "UserRepository",
]
