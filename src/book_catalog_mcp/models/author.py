"""
Author models for the Book Catalog MCP Server.

Two shapes exist for an author:
- ``AuthorRecord`` is what the ``authors`` table stores.
- ``Author`` is what clients receive. Its ``bookCount`` is derived on every
  read by counting the books that reference the author; it is never stored.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AuthorRecord(BaseModel):
    """Persisted author fields."""

    model_config = ConfigDict(from_attributes=True)

    id: str = Field(..., description="Unique identifier for the author")
    name: str = Field(..., description="Full name of the author, unique in the catalog")
    born: int | None = Field(None, description="Birth year, if known")


class Author(BaseModel):
    """
    Author as exposed through the API.

    Field names serialize in camelCase (``bookCount``) to match the wire
    contract clients depend on.
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique identifier for the author")

    name: str = Field(
        ...,
        description="Full name of the author",
        examples=["Robert Martin", "Fyodor Dostoevsky"],
    )

    born: int | None = Field(
        None,
        description="Birth year, if known",
        examples=[1952, 1821],
    )

    book_count: int = Field(
        ...,
        description="Number of books in the catalog written by this author",
        ge=0,
    )
