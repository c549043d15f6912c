"""
Author repository implementation for the Book Catalog MCP Server.

Authors are looked up by exact name. The ``authors.name`` unique constraint
turns a lost find-or-create race into a ``DuplicateError`` instead of a
second row with the same name.
"""

from pydantic import BaseModel

from ..models.author import AuthorRecord
from .repository import BaseRepository
from .schema import Author as AuthorDB


class AuthorCreateSchema(BaseModel):
    """Schema for creating a new author."""

    name: str
    born: int | None = None


class AuthorUpdateSchema(BaseModel):
    """Schema for updating an author; only the birth year is editable."""

    born: int | None = None


class AuthorRepository(
    BaseRepository[AuthorDB, AuthorCreateSchema, AuthorUpdateSchema, AuthorRecord]
):
    """Repository for author data access."""

    id_prefix = "author"

    @property
    def model_class(self):
        return AuthorDB

    @property
    def response_schema(self):
        return AuthorRecord

    def find_by_name(self, name: str) -> AuthorRecord | None:
        """Exact, case-sensitive name lookup."""
        return self.find_one(name=name)
