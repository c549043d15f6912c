"""
Book Catalog MCP Server Models.

Pydantic models for the catalog entities:
- Author / AuthorRecord: authors and their derived book counts
- Book / BookRecord: catalog entries with their resolved author
- User / Token: accounts and signed login credentials
"""

from .author import Author, AuthorRecord
from .book import Book, BookRecord
from .user import Token, User

__all__ = [
    "Author",
    "AuthorRecord",
    "Book",
    "BookRecord",
    "Token",
    "User",
]
