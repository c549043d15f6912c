"""
Book repository implementation for the Book Catalog MCP Server.

Books are written once and read many times. Reads support the two filters
of ``allBooks``: an author reference and a genre matched case-insensitively
against the stored genre list. Both filters combine with AND.
"""

from pydantic import BaseModel, Field
from sqlalchemy import select

from ..models.book import BookRecord
from .repository import BaseRepository, safe_query
from .schema import Book as BookDB
from .schema import BookGenre as BookGenreDB


class BookCreateSchema(BaseModel):
    """Schema for creating a new book."""

    title: str
    published: int
    author_id: str
    genres: list[str] = Field(default_factory=list)


class BookUpdateSchema(BaseModel):
    """Books are immutable; the update schema carries no fields."""


class BookRepository(BaseRepository[BookDB, BookCreateSchema, BookUpdateSchema, BookRecord]):
    """Repository for book data access."""

    id_prefix = "book"

    @property
    def model_class(self):
        return BookDB

    @property
    def response_schema(self):
        return BookRecord

    def _to_response_model(self, db_obj: BookDB) -> BookRecord:
        return BookRecord(
            id=db_obj.id,
            title=db_obj.title,
            published=db_obj.published,
            author_id=db_obj.author_id,
            genres=[genre.name for genre in db_obj.genres],
        )

    def create(self, data: BookCreateSchema) -> BookRecord:
        """Persist a book together with its ordered genre rows."""
        genres = [
            BookGenreDB(position=position, name=name, folded=name.casefold())
            for position, name in enumerate(data.genres)
        ]
        db_book = self._build(
            id=self._new_id(),
            title=data.title,
            published=data.published,
            author_id=data.author_id,
            genres=genres,
        )
        return self._add(db_book, "create Book")

    def find_books(self, author_id: str | None = None, genre: str | None = None) -> list[BookRecord]:
        """
        List books, optionally restricted to one author and/or one genre.

        Args:
            author_id: Only books referencing this author
            genre: Only books with at least one genre equal to this, ignoring case
        """
        query = select(BookDB)

        if author_id is not None:
            query = query.where(BookDB.author_id == author_id)

        if genre is not None:
            query = query.where(BookDB.genres.any(BookGenreDB.folded == genre.casefold()))

        query = query.order_by(*self.ordering)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to search books",
        )
        return [self._to_response_model(book) for book in results]

    def count_by_author(self, author_id: str) -> int:
        """Number of books referencing ``author_id``."""
        return self.count(author_id=author_id)

    def distinct_genres(self) -> list[str]:
        """Every stored genre, once, in alphabetical order."""
        query = select(BookGenreDB.name).distinct().order_by(BookGenreDB.name)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            "Failed to list genres",
        )
        return list(results)
