"""
Book models for the Book Catalog MCP Server.

``BookRecord`` holds the stored fields, including the non-owning
``author_id`` reference. ``Book`` is the client-facing shape with the author
resolved and inlined; the same shape is delivered to ``bookAdded``
subscribers.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .author import Author


class BookRecord(BaseModel):
    """Persisted book fields."""

    id: str
    title: str
    published: int
    author_id: str
    genres: list[str] = Field(default_factory=list)


class Book(BaseModel):
    """Book as exposed through the API."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str = Field(..., description="Unique identifier for the book")

    title: str = Field(
        ...,
        description="Title of the book",
        examples=["Clean Code", "Crime and punishment"],
    )

    published: int = Field(
        ...,
        description="Publication year",
        examples=[2008, 1866],
    )

    author: Author = Field(..., description="The book's author, resolved on read")

    genres: list[str] = Field(
        default_factory=list,
        description="Genres as stored; filters match them case-insensitively",
        examples=[["refactoring"], ["classic", "crime"]],
    )
