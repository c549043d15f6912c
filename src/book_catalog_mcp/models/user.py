"""User and token models for the Book Catalog MCP Server."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class User(BaseModel):
    """
    A catalog user.

    Users carry no password of their own: login checks the shared system
    password (see ``ServerConfig.shared_password``).
    """

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: str = Field(..., description="Unique identifier for the user")

    username: str = Field(
        ...,
        description="Login name, unique in the catalog",
        examples=["alice", "mluukkai"],
    )

    favorite_genre: str = Field(
        ...,
        description="Genre used for book recommendations",
        examples=["scifi", "refactoring"],
    )


class Token(BaseModel):
    """Signed credential returned by ``login``."""

    value: str = Field(..., description="Bearer token carrying {username, id}")
