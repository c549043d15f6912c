"""
Tests for the write operations.

``addBook`` and ``editAuthor`` must pass the authorization gate before any
state changes; ``createUser`` and ``login`` are open to anonymous callers.
"""

import pytest

from book_catalog_mcp.database import CatalogRepositories, RepositoryException
from book_catalog_mcp.engine import ResolutionEngine
from book_catalog_mcp.errors import BadCredentials, InvalidInput, Unauthenticated

pytestmark = pytest.mark.usefixtures("seeded")

DUNE = {"title": "Dune", "published": 1965, "author": "Frank Herbert", "genres": ["scifi"]}


class TestAddBook:
    async def test_anonymous_caller_is_rejected(self, engine, anonymous, channel):
        subscription = channel.subscribe()

        with pytest.raises(Unauthenticated):
            await engine.add_book(anonymous, **DUNE)

        assert await engine.book_count(anonymous) == 7
        assert await engine.author_count(anonymous) == 5
        assert subscription.pending == 0

    async def test_invalid_token_is_rejected(self, engine, verifier, anonymous):
        context = verifier.verify("Bearer forged.token.value")

        with pytest.raises(Unauthenticated, match="Invalid token"):
            await engine.add_book(context, **DUNE)

        assert await engine.book_count(anonymous) == 7

    async def test_new_author_is_created(self, engine, alice, anonymous):
        book = await engine.add_book(alice, **DUNE)

        assert book.id.startswith("book_")
        assert book.title == "Dune"
        assert book.published == 1965
        assert book.genres == ["scifi"]
        assert book.author.name == "Frank Herbert"
        assert book.author.born is None
        assert book.author.book_count == 1

        assert await engine.author_count(anonymous) == 6
        assert await engine.book_count(anonymous) == 8

    async def test_existing_author_is_reused(self, engine, alice, anonymous):
        book = await engine.add_book(
            alice,
            title="Clean Architecture",
            published=2017,
            author="Robert Martin",
            genres=["design"],
        )

        assert book.author.born == 1952
        assert book.author.book_count == 3
        assert await engine.author_count(anonymous) == 5

    async def test_author_count_grows_once_per_name(self, engine, alice, anonymous):
        await engine.add_book(alice, **DUNE)
        await engine.add_book(
            alice, title="Dune Messiah", published=1969, author="Frank Herbert", genres=[]
        )

        assert await engine.author_count(anonymous) == 6
        herbert = await engine.all_books(anonymous, author="Frank Herbert")
        assert [b.author.book_count for b in herbert] == [2, 2]

    @pytest.mark.parametrize(
        "override",
        [{"title": ""}, {"title": "   "}, {"author": ""}, {"genres": ["scifi", " "]}],
    )
    async def test_blank_fields_rejected(self, engine, alice, anonymous, override):
        with pytest.raises(InvalidInput) as exc:
            await engine.add_book(alice, **{**DUNE, **override})

        assert exc.value.code == "BAD_USER_INPUT"
        assert exc.value.invalid_args
        assert await engine.book_count(anonymous) == 7
        assert await engine.author_count(anonymous) == 5

    async def test_lost_author_race_reuses_winner(
        self, db_manager, channel, signer, alice, anonymous
    ):
        def racing_repositories(session):
            repos = CatalogRepositories(session)
            lookup = repos.authors.find_by_name
            misses = iter([True])

            # The first lookup misses as if the other writer had not committed yet
            def find_by_name(name):
                return None if next(misses, False) else lookup(name)

            repos.authors.find_by_name = find_by_name
            return repos

        engine = ResolutionEngine(
            db_manager, channel, signer, "secret", repositories_factory=racing_repositories
        )

        book = await engine.add_book(
            alice, title="Clean Agile", published=2019, author="Robert Martin", genres=["agile"]
        )

        assert book.author.name == "Robert Martin"
        assert book.author.book_count == 3
        assert await engine.author_count(anonymous) == 5

    async def test_failed_book_keeps_new_author(
        self, db_manager, channel, signer, alice, anonymous
    ):
        def failing_books(session):
            repos = CatalogRepositories(session)

            def create(data):
                raise RepositoryException("disk full")

            repos.books.create = create
            return repos

        engine = ResolutionEngine(
            db_manager, channel, signer, "secret", repositories_factory=failing_books
        )
        subscription = channel.subscribe()

        with pytest.raises(InvalidInput) as exc:
            await engine.add_book(alice, **DUNE)

        assert exc.value.invalid_args["title"] == "Dune"
        assert await engine.book_count(anonymous) == 7
        authors = [a.name for a in await engine.all_authors(anonymous)]
        assert "Frank Herbert" in authors
        assert subscription.pending == 0


class TestEditAuthor:
    async def test_sets_born(self, engine, alice, anonymous):
        author = await engine.edit_author(alice, name="Sandi Metz", set_born_to=1967)

        assert author.name == "Sandi Metz"
        assert author.born == 1967
        assert author.book_count == 1

        metz = [a for a in await engine.all_authors(anonymous) if a.name == "Sandi Metz"]
        assert metz[0].born == 1967

    async def test_overwrites_born(self, engine, alice):
        author = await engine.edit_author(alice, name="Robert Martin", set_born_to=1958)
        assert author.born == 1958

    async def test_unknown_name_returns_none(self, engine, alice, anonymous):
        assert await engine.edit_author(alice, name="Nonexistent", set_born_to=1900) is None
        assert await engine.edit_author(anonymous, name="Nonexistent", set_born_to=1900) is None
        assert await engine.author_count(anonymous) == 5

    async def test_anonymous_caller_is_rejected(self, engine, anonymous):
        with pytest.raises(Unauthenticated):
            await engine.edit_author(anonymous, name="Sandi Metz", set_born_to=1967)

        metz = [a for a in await engine.all_authors(anonymous) if a.name == "Sandi Metz"]
        assert metz[0].born is None

    async def test_non_integer_year_rejected(self, engine, alice):
        with pytest.raises(InvalidInput):
            await engine.edit_author(alice, name="Sandi Metz", set_born_to="nineteen")


class TestUsers:
    async def test_create_user_is_open(self, engine, anonymous):
        user = await engine.create_user(anonymous, username="bob", favorite_genre="crime")

        assert user.id.startswith("user_")
        assert user.username == "bob"
        assert user.favorite_genre == "crime"

    async def test_duplicate_username_rejected(self, engine, anonymous):
        await engine.create_user(anonymous, username="bob", favorite_genre="crime")

        with pytest.raises(InvalidInput) as exc:
            await engine.create_user(anonymous, username="bob", favorite_genre="classic")

        assert exc.value.invalid_args["username"] == "bob"

    async def test_short_username_rejected(self, engine, anonymous):
        with pytest.raises(InvalidInput):
            await engine.create_user(anonymous, username="bo", favorite_genre="crime")

    async def test_login_returns_verifiable_token(self, engine, verifier, signer, anonymous):
        user = await engine.create_user(anonymous, username="bob", favorite_genre="crime")

        token = await engine.login(anonymous, username="bob", password="secret")

        assert signer.verify(token.value) == {"username": "bob", "id": user.id}
        context = verifier.verify(f"Bearer {token.value}")
        assert await engine.me(context) == user

    async def test_bad_credentials_are_indistinguishable(self, engine, anonymous):
        await engine.create_user(anonymous, username="bob", favorite_genre="crime")

        with pytest.raises(BadCredentials) as wrong_password:
            await engine.login(anonymous, username="bob", password="guess")
        with pytest.raises(BadCredentials) as unknown_user:
            await engine.login(anonymous, username="mallory", password="secret")

        assert wrong_password.value.to_dict() == unknown_user.value.to_dict()
        assert wrong_password.value.to_dict() == {
            "code": "BAD_CREDENTIALS",
            "message": "Wrong credentials",
        }
