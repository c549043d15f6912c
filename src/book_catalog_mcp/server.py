"""Book Catalog MCP Server - transport binding.

This module only wires the resolution engine to FastMCP. Every catalog
operation becomes one tool, named exactly like the API operation:

- Reads: allBooks, allAuthors, bookCount, authorCount, me, allGenres,
  recommendedBooks
- Writes: addBook, editAuthor, createUser, login
- Subscription: bookAdded

Identity comes from the HTTP ``Authorization: Bearer <token>`` header. Under
the stdio transport there are no headers, so every caller is anonymous.

Catalog errors are returned to the client as tool errors whose message is
a JSON object: ``{"code": ..., "message": ..., "invalidArgs": ...}``.
"""

import asyncio
import json
import logging
import sys
from collections.abc import AsyncIterator, Awaitable
from contextlib import asynccontextmanager
from typing import Annotated, Any

from fastmcp import Context, FastMCP
from fastmcp.exceptions import ToolError
from fastmcp.server.dependencies import get_http_headers
from pydantic import BaseModel, Field

from .auth.identity import IdentityVerifier, RequestContext
from .config import ServerConfig, get_config
from .engine.resolver import ResolutionEngine
from .errors import CatalogError
from .observability import initialize_observability

logger = logging.getLogger(__name__)


def to_wire(result: Any) -> Any:
    """Serialize engine results with the camelCase field names of the API."""
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json", by_alias=True)
    if isinstance(result, list):
        return [to_wire(item) for item in result]
    return result


def to_tool_error(error: CatalogError) -> ToolError:
    return ToolError(json.dumps(error.to_dict()))


async def resolve(pending: Awaitable[Any]) -> Any:
    """Await an engine call and convert its outcome for the transport."""
    try:
        result = await pending
    except CatalogError as e:
        logger.info("Operation failed with %s: %s", e.code, e.message)
        raise to_tool_error(e) from e
    return to_wire(result)


def create_server(
    config: ServerConfig | None = None, engine: ResolutionEngine | None = None
) -> FastMCP:
    """Build the FastMCP application around a resolution engine."""
    config = config or get_config()
    engine = engine or ResolutionEngine.from_config(config)
    verifier = IdentityVerifier(engine.signer, engine.db_manager)

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:  # noqa: ARG001
        engine.db_manager.init_database()
        logger.info("%s v%s ready", config.server_name, config.server_version)
        try:
            yield
        finally:
            logger.info("Shutting down: completing subscriptions and closing the database")
            engine.channel.close()
            engine.db_manager.close()

    mcp = FastMCP(
        name=config.server_name,
        instructions=(
            "Book catalog. Query books and authors with the read tools. Call login "
            "to obtain a token, then send it as 'Authorization: Bearer <token>' to "
            "use addBook and editAuthor. Call bookAdded to wait for new books."
        ),
        lifespan=lifespan,
    )

    def request_context() -> RequestContext:
        headers = get_http_headers(include_all=True)
        return verifier.verify(headers.get("authorization"))

    # =========================================================================
    # READS
    # =========================================================================

    @mcp.tool(name="allBooks", description="List books, optionally by author name and/or genre")
    async def all_books(
        author: str | None = None, genre: str | None = None
    ) -> list[dict[str, Any]]:
        return await resolve(engine.all_books(request_context(), author=author, genre=genre))

    @mcp.tool(name="allAuthors", description="List authors with their book counts")
    async def all_authors() -> list[dict[str, Any]]:
        return await resolve(engine.all_authors(request_context()))

    @mcp.tool(name="bookCount", description="Number of books in the catalog")
    async def book_count() -> int:
        return await resolve(engine.book_count(request_context()))

    @mcp.tool(name="authorCount", description="Number of authors in the catalog")
    async def author_count() -> int:
        return await resolve(engine.author_count(request_context()))

    @mcp.tool(name="me", description="The logged-in user, or null")
    async def me() -> dict[str, Any] | None:
        return await resolve(engine.me(request_context()))

    @mcp.tool(name="allGenres", description="Every genre used by some book")
    async def all_genres() -> list[str]:
        return await resolve(engine.all_genres(request_context()))

    @mcp.tool(name="recommendedBooks", description="Books in the logged-in user's favorite genre")
    async def recommended_books() -> list[dict[str, Any]]:
        return await resolve(engine.recommended_books(request_context()))

    # =========================================================================
    # WRITES
    # =========================================================================

    @mcp.tool(name="addBook", description="Add a book (requires login)")
    async def add_book(
        title: str, published: int, author: str, genres: list[str]
    ) -> dict[str, Any]:
        return await resolve(
            engine.add_book(
                request_context(),
                title=title,
                published=published,
                author=author,
                genres=genres,
            )
        )

    @mcp.tool(name="editAuthor", description="Set an author's birth year (requires login)")
    async def edit_author(name: str, setBornTo: int) -> dict[str, Any] | None:  # noqa: N803
        return await resolve(
            engine.edit_author(request_context(), name=name, set_born_to=setBornTo)
        )

    @mcp.tool(name="createUser", description="Register a new user")
    async def create_user(username: str, favoriteGenre: str) -> dict[str, Any]:  # noqa: N803
        return await resolve(
            engine.create_user(request_context(), username=username, favorite_genre=favoriteGenre)
        )

    @mcp.tool(name="login", description="Exchange username and password for a bearer token")
    async def login(username: str, password: str) -> dict[str, Any]:
        return await resolve(
            engine.login(request_context(), username=username, password=password)
        )

    # =========================================================================
    # SUBSCRIPTION
    # =========================================================================

    if config.enable_subscriptions:

        @mcp.tool(
            name="bookAdded",
            description=(
                "Wait for books added after this call starts. Each one is pushed as a "
                "log notification on arrival; the call returns once max_events books "
                "arrived or the timeout elapsed."
            ),
        )
        async def book_added(
            ctx: Context,
            max_events: Annotated[int, Field(ge=1, le=100)] = 1,
            timeout_seconds: Annotated[float, Field(gt=0, le=3600)] | None = None,
        ) -> list[dict[str, Any]]:
            timeout = timeout_seconds or config.subscription_timeout_seconds
            loop = asyncio.get_running_loop()
            deadline = loop.time() + timeout
            delivered: list[dict[str, Any]] = []

            async with engine.book_added(request_context()) as subscription:
                while len(delivered) < max_events:
                    remaining = deadline - loop.time()
                    if remaining <= 0:
                        break
                    event = await subscription.next_event(timeout=remaining)
                    if event is None:
                        break
                    payload = to_wire(event.book)
                    delivered.append(payload)
                    await ctx.info(json.dumps({"bookAdded": payload}))

            return delivered

    return mcp


# =============================================================================
# MAIN ENTRY POINT
# =============================================================================


def log_banner(config: ServerConfig) -> None:
    """Log what is starting, and warn about an unchanged token secret."""
    info = config.server_info
    logger.info("=" * 60)
    logger.info("Book Catalog MCP Server: %s", info["name"])
    logger.info("Version: %s", info["version"])
    logger.info("Transport: %s", info["transport"])
    logger.info("=" * 60)

    if config.uses_default_secret:
        logger.warning("Using the built-in token secret; set BOOK_CATALOG_SECRET_KEY")


def main() -> None:
    """Entry point for ``book-catalog-mcp`` and ``python -m book_catalog_mcp.server``."""
    config = get_config()

    logging.basicConfig(
        level=logging.DEBUG if config.debug else getattr(logging, config.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        # stderr keeps stdout clean for the stdio transport
        handlers=[logging.StreamHandler(sys.stderr)],
    )
    if not config.is_development:
        logging.getLogger("fastmcp").setLevel(logging.WARNING)

    initialize_observability()
    log_banner(config)

    mcp = create_server(config)

    try:
        if config.transport == "stdio":
            mcp.run(transport="stdio")
        else:
            mcp.run(
                transport="streamable-http", host=config.http_host, port=config.http_port
            )
    except KeyboardInterrupt:
        logger.info("Server stopped by user")
    except Exception:
        logger.exception("Fatal error in catalog server")
        sys.exit(1)


if __name__ == "__main__":
    main()
