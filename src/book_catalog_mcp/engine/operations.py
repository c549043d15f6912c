"""
Operation contracts for the catalog API.

Each operation has an input model tagged with a literal ``operation`` name.
Together they form a discriminated union, so a raw request decodes to
exactly one typed operation and the engine dispatches on its type.

Argument names follow the wire contract (``setBornTo``, ``favoriteGenre``);
Python code may use either the camelCase alias or the snake_case field name.
"""

from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StringConstraints,
    TypeAdapter,
    ValidationError,
)
from pydantic.alias_generators import to_camel, to_snake

from ..errors import InvalidInput

# At least one non-whitespace character; values are kept exactly as given
NonBlank = Annotated[str, StringConstraints(min_length=1, pattern=r"\S")]


class OperationInput(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    def arguments(self) -> dict[str, Any]:
        """Operation arguments by field name, without the tag."""
        return self.model_dump(exclude={"operation"})


# === Reads ===


class AllBooksInput(OperationInput):
    operation: Literal["allBooks"] = "allBooks"
    author: str | None = Field(None, description="Exact author name to filter by")
    genre: str | None = Field(None, description="Genre to filter by, case-insensitive")


class AllAuthorsInput(OperationInput):
    operation: Literal["allAuthors"] = "allAuthors"


class BookCountInput(OperationInput):
    operation: Literal["bookCount"] = "bookCount"


class AuthorCountInput(OperationInput):
    operation: Literal["authorCount"] = "authorCount"


class MeInput(OperationInput):
    operation: Literal["me"] = "me"


class AllGenresInput(OperationInput):
    operation: Literal["allGenres"] = "allGenres"


class RecommendedBooksInput(OperationInput):
    operation: Literal["recommendedBooks"] = "recommendedBooks"


# === Writes ===


class AddBookInput(OperationInput):
    operation: Literal["addBook"] = "addBook"
    title: NonBlank
    published: int
    author: NonBlank
    genres: list[NonBlank]


class EditAuthorInput(OperationInput):
    operation: Literal["editAuthor"] = "editAuthor"
    name: NonBlank
    set_born_to: int


class CreateUserInput(OperationInput):
    operation: Literal["createUser"] = "createUser"
    username: NonBlank
    favorite_genre: NonBlank


class LoginInput(OperationInput):
    operation: Literal["login"] = "login"
    username: str
    password: str


# === Subscriptions ===


class BookAddedInput(OperationInput):
    operation: Literal["bookAdded"] = "bookAdded"


Operation = Annotated[
    AllBooksInput
    | AllAuthorsInput
    | BookCountInput
    | AuthorCountInput
    | MeInput
    | AllGenresInput
    | RecommendedBooksInput
    | AddBookInput
    | EditAuthorInput
    | CreateUserInput
    | LoginInput
    | BookAddedInput,
    Field(discriminator="operation"),
]

_operation_adapter: TypeAdapter[Operation] = TypeAdapter(Operation)


def _invalid_input(error: ValidationError, payload: dict[str, Any]) -> InvalidInput:
    tag = payload.get("operation")
    fields: set[str] = set()
    for err in error.errors():
        loc = err["loc"]
        # Union errors are nested under the operation tag
        if len(loc) > 1 and loc[0] == tag:
            loc = loc[1:]
        fields.add(str(loc[0]) if loc else "operation")

    invalid_args = {
        name: payload.get(name, payload.get(to_snake(name))) for name in sorted(fields)
    }
    message = f"Invalid input: {error.errors()[0]['msg']}"
    return InvalidInput(message, invalid_args=invalid_args)


T = TypeVar("T", bound=OperationInput)


def validate_input(model: type[T], **arguments: Any) -> T:
    """
    Build an operation input, reporting failures as ``InvalidInput``.

    Raises:
        InvalidInput: With the offending arguments in ``invalid_args``
    """
    try:
        return model.model_validate(arguments)
    except ValidationError as e:
        raise _invalid_input(e, arguments) from e


def parse_operation(payload: dict[str, Any]) -> Operation:
    """
    Decode a raw request such as ``{"operation": "addBook", "title": ...}``.

    Raises:
        InvalidInput: Unknown operation name or invalid arguments
    """
    try:
        return _operation_adapter.validate_python(payload)
    except ValidationError as e:
        raise _invalid_input(e, payload) from e
