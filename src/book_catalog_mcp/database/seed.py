"""
Sample catalog data.

Loads a small, well-known set of authors and books so a fresh server has
something to query. Seeding goes straight through the repositories and
publishes no ``bookAdded`` events.
"""

import logging

from .author_repository import AuthorCreateSchema, AuthorRepository
from .book_repository import BookCreateSchema, BookRepository
from .session import DatabaseManager

logger = logging.getLogger(__name__)

SAMPLE_AUTHORS: list[dict] = [
    {"name": "Robert Martin", "born": 1952},
    {"name": "Martin Fowler", "born": 1963},
    {"name": "Fyodor Dostoevsky", "born": 1821},
    {"name": "Joshua Kerievsky"},
    {"name": "Sandi Metz"},
]

SAMPLE_BOOKS: list[dict] = [
    {
        "title": "Clean Code",
        "published": 2008,
        "author": "Robert Martin",
        "genres": ["refactoring"],
    },
    {
        "title": "Agile software development",
        "published": 2002,
        "author": "Robert Martin",
        "genres": ["agile", "patterns", "design"],
    },
    {
        "title": "Refactoring, edition 2",
        "published": 2018,
        "author": "Martin Fowler",
        "genres": ["refactoring"],
    },
    {
        "title": "Refactoring to patterns",
        "published": 2008,
        "author": "Joshua Kerievsky",
        "genres": ["refactoring", "patterns"],
    },
    {
        "title": "Practical Object-Oriented Design, An Agile Primer Using Ruby",
        "published": 2012,
        "author": "Sandi Metz",
        "genres": ["refactoring", "design"],
    },
    {
        "title": "Crime and punishment",
        "published": 1866,
        "author": "Fyodor Dostoevsky",
        "genres": ["classic", "crime"],
    },
    {
        "title": "Demons",
        "published": 1872,
        "author": "Fyodor Dostoevsky",
        "genres": ["classic", "revolution"],
    },
]


def seed_catalog(db_manager: DatabaseManager) -> dict[str, int]:
    """
    Load the sample catalog. Safe to run repeatedly.

    Returns:
        Number of authors and books actually created
    """
    created = {"authors": 0, "books": 0}

    with db_manager.session_scope() as session:
        authors = AuthorRepository(session)
        books = BookRepository(session)

        author_ids: dict[str, str] = {}
        for data in SAMPLE_AUTHORS:
            author = authors.find_by_name(data["name"])
            if author is None:
                author = authors.create(AuthorCreateSchema(**data))
                created["authors"] += 1
            author_ids[author.name] = author.id

        for data in SAMPLE_BOOKS:
            author_id = author_ids[data["author"]]
            if books.find_one(title=data["title"], author_id=author_id) is not None:
                continue
            books.create(
                BookCreateSchema(
                    title=data["title"],
                    published=data["published"],
                    author_id=author_id,
                    genres=data["genres"],
                )
            )
            created["books"] += 1

    logger.info(
        "Seeded %d authors and %d books", created["authors"], created["books"]
    )
    return created
