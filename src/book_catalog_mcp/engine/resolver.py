"""
Resolution engine for the catalog API.

The engine interprets the three operation classes:

1. READS - ``allBooks``, ``allAuthors``, ``bookCount``, ``authorCount``,
   ``me``, ``allGenres``, ``recommendedBooks``. Never require identity.
2. WRITES - ``addBook`` and ``editAuthor`` pass the authorization gate
   before touching state; ``createUser`` and ``login`` are open.
3. SUBSCRIPTIONS - ``bookAdded`` registers a live subscriber on the
   notification channel.

Every operation opens its own short database session. Repository failures
surface as ``InvalidInput``; nothing is retried automatically except the
single re-read that resolves a lost author find-or-create race.
"""

import hmac
import logging
from collections.abc import Callable, Generator
from contextlib import contextmanager
from typing import Any

import logfire
from sqlalchemy.orm import Session

from ..auth.identity import RequestContext, require_identity
from ..auth.tokens import TokenSigner
from ..config import ServerConfig
from ..database import CatalogRepositories
from ..database.author_repository import AuthorCreateSchema, AuthorUpdateSchema
from ..database.book_repository import BookCreateSchema
from ..database.repository import DuplicateError, RepositoryException
from ..database.session import DatabaseManager
from ..database.user_repository import UserCreateSchema
from ..errors import BadCredentials, InvalidInput
from ..models.author import Author, AuthorRecord
from ..models.book import Book
from ..models.user import Token, User
from ..notifications import BookAdded, NotificationChannel, Subscription, Topic
from ..observability import trace_operation
from .derivations import derive_author, derive_book
from .operations import (
    AddBookInput,
    AllAuthorsInput,
    AllBooksInput,
    AllGenresInput,
    AuthorCountInput,
    BookAddedInput,
    BookCountInput,
    CreateUserInput,
    EditAuthorInput,
    LoginInput,
    MeInput,
    Operation,
    RecommendedBooksInput,
    validate_input,
)

logger = logging.getLogger(__name__)


class ResolutionEngine:
    """Executes catalog operations against the repositories."""

    def __init__(
        self,
        db_manager: DatabaseManager,
        channel: NotificationChannel,
        signer: TokenSigner,
        shared_password: str,
        repositories_factory: Callable[[Session], CatalogRepositories] = CatalogRepositories,
    ):
        self.db_manager = db_manager
        self.channel = channel
        self.signer = signer
        self._shared_password = shared_password
        self._repositories_factory = repositories_factory

    @classmethod
    def from_config(
        cls,
        config: ServerConfig,
        db_manager: DatabaseManager | None = None,
        channel: NotificationChannel | None = None,
    ) -> "ResolutionEngine":
        signer = TokenSigner(
            config.secret_key,
            algorithm=config.token_algorithm,
            ttl_seconds=config.token_ttl_seconds,
        )
        return cls(
            db_manager=db_manager or DatabaseManager(config.get_database_url()),
            channel=channel or NotificationChannel(),
            signer=signer,
            shared_password=config.shared_password,
        )

    @contextmanager
    def _repositories(self) -> Generator[CatalogRepositories, None, None]:
        try:
            with self.db_manager.session_scope() as session:
                yield self._repositories_factory(session)
        except RepositoryException as e:
            raise InvalidInput(str(e)) from e

    # =========================================================================
    # READS
    # =========================================================================

    @trace_operation("allBooks", "read")
    async def all_books(
        self, context: RequestContext, author: str | None = None, genre: str | None = None
    ) -> list[Book]:
        """
        List books, optionally filtered by exact author name and/or genre.

        An unknown author name yields an empty list. The genre matches any of
        a book's genres ignoring case. Both filters combine with AND.
        """
        params = validate_input(AllBooksInput, author=author, genre=genre)

        with self._repositories() as repos:
            author_id = None
            if params.author:
                found = repos.authors.find_by_name(params.author)
                if found is None:
                    return []
                author_id = found.id

            records = repos.books.find_books(author_id=author_id, genre=params.genre or None)
            return [derive_book(record, repos.authors, repos.books) for record in records]

    @trace_operation("allAuthors", "read")
    async def all_authors(self, context: RequestContext) -> list[Author]:
        with self._repositories() as repos:
            return [derive_author(record, repos.books) for record in repos.authors.find()]

    @trace_operation("bookCount", "read")
    async def book_count(self, context: RequestContext) -> int:
        with self._repositories() as repos:
            return repos.books.count()

    @trace_operation("authorCount", "read")
    async def author_count(self, context: RequestContext) -> int:
        with self._repositories() as repos:
            return repos.authors.count()

    @trace_operation("me", "read")
    async def me(self, context: RequestContext) -> User | None:
        """The current user, or None for anonymous callers."""
        return context.current_user

    @trace_operation("allGenres", "read")
    async def all_genres(self, context: RequestContext) -> list[str]:
        with self._repositories() as repos:
            return repos.books.distinct_genres()

    @trace_operation("recommendedBooks", "read")
    async def recommended_books(self, context: RequestContext) -> list[Book]:
        """Books in the current user's favorite genre; empty when anonymous."""
        if context.current_user is None:
            return []

        with self._repositories() as repos:
            records = repos.books.find_books(genre=context.current_user.favorite_genre)
            return [derive_book(record, repos.authors, repos.books) for record in records]

    # =========================================================================
    # WRITES
    # =========================================================================

    @trace_operation("addBook", "write")
    async def add_book(
        self,
        context: RequestContext,
        title: str,
        published: int,
        author: str,
        genres: list[str],
    ) -> Book:
        """
        Add a book, creating its author on first use of the name.

        The BookAdded event is published after the book is committed and
        before this call returns.

        Raises:
            Unauthenticated: Without a resolved identity; nothing is written
            InvalidInput: When the author or the book cannot be persisted
        """
        require_identity(context)
        params = validate_input(
            AddBookInput, title=title, published=published, author=author, genres=genres
        )

        with self._repositories() as repos:
            author_record = self._find_or_create_author(repos, params.author)

            try:
                record = repos.books.create(
                    BookCreateSchema(
                        title=params.title,
                        published=params.published,
                        author_id=author_record.id,
                        genres=params.genres,
                    )
                )
            except RepositoryException as e:
                # The author, if just created, stays; find-or-create reuses it next time
                raise InvalidInput(
                    f"Book creation failed: {e}", invalid_args=params.arguments()
                ) from e

            book = derive_book(record, repos.authors, repos.books)

        logger.info("Publishing book addition: %s by %s", book.title, book.author.name)
        self.channel.publish(BookAdded(book=book), Topic.BOOK_ADDED)
        return book

    def _find_or_create_author(self, repos: CatalogRepositories, name: str) -> AuthorRecord:
        existing = repos.authors.find_by_name(name)
        if existing is not None:
            return existing

        try:
            return repos.authors.create(AuthorCreateSchema(name=name))
        except DuplicateError as e:
            # Another writer created the same name between our lookup and insert
            winner = repos.authors.find_by_name(name)
            if winner is None:
                raise InvalidInput(f"Author creation failed: {e}", invalid_args=name) from e
            logger.info("Author %r was created concurrently; reusing it", name)
            return winner
        except RepositoryException as e:
            raise InvalidInput(f"Author creation failed: {e}", invalid_args=name) from e

    @trace_operation("editAuthor", "write")
    async def edit_author(
        self, context: RequestContext, name: str, set_born_to: int
    ) -> Author | None:
        """
        Set an author's birth year.

        Returns None when no author has exactly this name, whoever asks.
        Changing an existing author requires identity.
        """
        params = validate_input(EditAuthorInput, name=name, set_born_to=set_born_to)

        with self._repositories() as repos:
            author = repos.authors.find_by_name(params.name)
            if author is None:
                return None

            require_identity(context)

            try:
                updated = repos.authors.update(
                    author.id, AuthorUpdateSchema(born=params.set_born_to)
                )
            except RepositoryException as e:
                raise InvalidInput(
                    f"Author update failed: {e}",
                    invalid_args=params.model_dump(by_alias=True, exclude={"operation"}),
                ) from e

            if updated is None:
                return None
            return derive_author(updated, repos.books)

    @trace_operation("createUser", "write")
    async def create_user(
        self, context: RequestContext, username: str, favorite_genre: str
    ) -> User:
        """
        Register a user. Open to anonymous callers.

        Raises:
            InvalidInput: Duplicate username or invalid fields
        """
        params = validate_input(CreateUserInput, username=username, favorite_genre=favorite_genre)

        with self._repositories() as repos:
            try:
                return repos.users.create(
                    UserCreateSchema(
                        username=params.username, favorite_genre=params.favorite_genre
                    )
                )
            except RepositoryException as e:
                raise InvalidInput(
                    f"User creation failed: {e}",
                    invalid_args=params.model_dump(by_alias=True, exclude={"operation"}),
                ) from e

    @trace_operation("login", "write")
    async def login(self, context: RequestContext, username: str, password: str) -> Token:
        """
        Exchange a username and the shared password for a signed token.

        Raises:
            BadCredentials: Unknown user or wrong password, indistinguishably
        """
        params = validate_input(LoginInput, username=username, password=password)

        with self._repositories() as repos:
            user = repos.users.find_by_username(params.username)

        password_ok = hmac.compare_digest(
            params.password.encode("utf-8"), self._shared_password.encode("utf-8")
        )
        if user is None or not password_ok:
            raise BadCredentials()

        return Token(value=self.signer.sign({"username": user.username, "id": user.id}))

    # =========================================================================
    # SUBSCRIPTIONS
    # =========================================================================

    def book_added(self, context: RequestContext) -> Subscription:
        """Register a live subscriber for books added from now on."""
        with logfire.span(
            "catalog.subscribe.bookAdded",
            operation="bookAdded",
            operation_kind="subscribe",
            authenticated=context.is_authenticated,
        ):
            return self.channel.subscribe(Topic.BOOK_ADDED)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    async def execute(self, context: RequestContext, operation: Operation) -> Any:
        """Run a decoded operation (see ``parse_operation``)."""
        arguments = operation.arguments()

        match operation:
            case AllBooksInput():
                return await self.all_books(context, **arguments)
            case AllAuthorsInput():
                return await self.all_authors(context)
            case BookCountInput():
                return await self.book_count(context)
            case AuthorCountInput():
                return await self.author_count(context)
            case MeInput():
                return await self.me(context)
            case AllGenresInput():
                return await self.all_genres(context)
            case RecommendedBooksInput():
                return await self.recommended_books(context)
            case AddBookInput():
                return await self.add_book(context, **arguments)
            case EditAuthorInput():
                return await self.edit_author(context, **arguments)
            case CreateUserInput():
                return await self.create_user(context, **arguments)
            case LoginInput():
                return await self.login(context, **arguments)
            case BookAddedInput():
                return self.book_added(context)
            case _:
                raise InvalidInput(f"Unsupported operation: {operation!r}")
