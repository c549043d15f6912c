"""
Derived fields.

``Author.bookCount`` and ``Book.author`` are never stored. They are computed
here, from the repositories, every time an author or book is read, so the
count cannot drift from the books that actually exist.
"""

from ..database.author_repository import AuthorRepository
from ..database.book_repository import BookRepository
from ..database.repository import RepositoryException
from ..models.author import Author, AuthorRecord
from ..models.book import Book, BookRecord


def author_book_count(books: BookRepository, author_id: str) -> int:
    return books.count_by_author(author_id)


def derive_author(record: AuthorRecord, books: BookRepository) -> Author:
    """Attach the live book count to a stored author."""
    return Author(
        id=record.id,
        name=record.name,
        born=record.born,
        book_count=author_book_count(books, record.id),
    )


def derive_book(record: BookRecord, authors: AuthorRepository, books: BookRepository) -> Book:
    """
    Resolve a stored book's author reference and inline it.

    Raises:
        RepositoryException: If the referenced author no longer exists
    """
    author = authors.find_by_id(record.author_id)
    if author is None:
        raise RepositoryException(
            f"Book {record.id} references missing author {record.author_id}"
        )

    return Book(
        id=record.id,
        title=record.title,
        published=record.published,
        genres=record.genres,
        author=derive_author(author, books),
    )
