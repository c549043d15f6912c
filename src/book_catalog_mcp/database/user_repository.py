"""User repository implementation for the Book Catalog MCP Server."""

from pydantic import BaseModel

from ..models.user import User
from .repository import BaseRepository
from .schema import User as UserDB


class UserCreateSchema(BaseModel):
    """Schema for creating a new user."""

    username: str
    favorite_genre: str


class UserUpdateSchema(BaseModel):
    """Users are never updated; the update schema carries no fields."""


class UserRepository(BaseRepository[UserDB, UserCreateSchema, UserUpdateSchema, User]):
    """Repository for user data access."""

    id_prefix = "user"

    @property
    def model_class(self):
        return UserDB

    @property
    def response_schema(self):
        return User

    def _to_response_model(self, db_obj: UserDB) -> User:
        return User(
            id=db_obj.id, username=db_obj.username, favorite_genre=db_obj.favorite_genre
        )

    def find_by_username(self, username: str) -> User | None:
        return self.find_one(username=username)
