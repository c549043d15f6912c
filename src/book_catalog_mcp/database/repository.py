"""
Repository pattern implementation for the Book Catalog MCP Server.

The resolution engine never touches SQLAlchemy directly. It goes through
repositories that expose exactly the operations the catalog needs:

1. ``find_by_id`` - lookup by primary key
2. ``find_one`` / ``find`` - equality-criteria lookups
3. ``count`` - row counts, used for derived fields such as ``bookCount``
4. ``create`` / ``update`` - persistence, surfacing conflicts as ``DuplicateError``

All methods return Pydantic record models, so callers never hold live ORM
objects once a session closes.
"""

from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Any, Generic, TypeVar
from uuid import uuid4

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from .schema import Base

ModelType = TypeVar("ModelType", bound=Base)
CreateSchemaType = TypeVar("CreateSchemaType", bound=BaseModel)
UpdateSchemaType = TypeVar("UpdateSchemaType", bound=BaseModel)
ResponseSchemaType = TypeVar("ResponseSchemaType", bound=BaseModel)
T = TypeVar("T")


class RepositoryException(Exception):
    """Base exception for repository operations."""


class DuplicateError(RepositoryException):
    """Raised when a write violates a uniqueness or integrity constraint."""


def safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """
    Execute a query, converting database failures into ``RepositoryException``.

    Args:
        session: The database session
        query_func: Function that performs the query
        error_msg: Message prefix for the raised exception
    """
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        raise RepositoryException(f"{error_msg}: {e!s}") from e


class BaseRepository(
    ABC, Generic[ModelType, CreateSchemaType, UpdateSchemaType, ResponseSchemaType]
):
    """
    Abstract base repository providing the catalog's data-access contract.

    Subclasses declare the ORM class, the record schema and the prefix used
    for generated identifiers.
    """

    id_prefix: str = ""

    def __init__(self, session: Session):
        self.session = session

    @property
    @abstractmethod
    def model_class(self) -> type[ModelType]:
        """Return the SQLAlchemy model class."""

    @property
    @abstractmethod
    def response_schema(self) -> type[ResponseSchemaType]:
        """Return the Pydantic response schema."""

    @property
    def ordering(self) -> tuple:
        """Insertion order; stable across repeated reads of unchanged data."""
        return (self.model_class.created_at, self.model_class.id)

    def _to_response_model(self, db_obj: ModelType) -> ResponseSchemaType:
        return self.response_schema.model_validate(db_obj, from_attributes=True)

    def _new_id(self) -> str:
        return f"{self.id_prefix}_{uuid4().hex}"

    def _commit(self, operation: str) -> None:
        try:
            self.session.commit()
        except IntegrityError as e:
            self.session.rollback()
            raise DuplicateError(f"{operation} violates a constraint: {e.orig}") from e
        except SQLAlchemyError as e:
            self.session.rollback()
            raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e

    def _add(self, db_obj: ModelType, operation: str) -> ResponseSchemaType:
        self.session.add(db_obj)
        self._commit(operation)
        self.session.refresh(db_obj)
        return self._to_response_model(db_obj)

    def _build(self, **values: Any) -> ModelType:
        try:
            return self.model_class(**values)
        except ValueError as e:
            # Raised by @validates hooks on the ORM model
            raise RepositoryException(str(e)) from e

    def find_by_id(self, id: str) -> ResponseSchemaType | None:
        """
        Get entity by ID.

        Returns:
            Record model or None if not found
        """
        db_obj = safe_query(
            self.session,
            lambda s: s.get(self.model_class, id),
            f"Failed to get {self.model_class.__name__} by ID",
        )
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def find_one(self, **criteria: Any) -> ResponseSchemaType | None:
        """Get the first entity whose columns equal ``criteria``."""
        query = select(self.model_class).filter_by(**criteria).order_by(*self.ordering).limit(1)
        db_obj = safe_query(
            self.session,
            lambda s: s.execute(query).scalar_one_or_none(),
            f"Failed to find {self.model_class.__name__}",
        )
        if db_obj is None:
            return None
        return self._to_response_model(db_obj)

    def find(self, **criteria: Any) -> list[ResponseSchemaType]:
        """Get every entity whose columns equal ``criteria``, in insertion order."""
        query = select(self.model_class).filter_by(**criteria).order_by(*self.ordering)
        results = safe_query(
            self.session,
            lambda s: s.execute(query).scalars().all(),
            f"Failed to list {self.model_class.__name__}",
        )
        return [self._to_response_model(item) for item in results]

    def count(self, **criteria: Any) -> int:
        """Count entities whose columns equal ``criteria``."""
        query = select(func.count()).select_from(self.model_class).filter_by(**criteria)
        return (
            safe_query(
                self.session,
                lambda s: s.execute(query).scalar(),
                f"Failed to count {self.model_class.__name__}",
            )
            or 0
        )

    def create(self, data: CreateSchemaType) -> ResponseSchemaType:
        """
        Persist a new entity with a generated ID.

        Raises:
            DuplicateError: If a uniqueness constraint is violated
            RepositoryException: On validation or other database errors
        """
        db_obj = self._build(id=self._new_id(), **data.model_dump())
        return self._add(db_obj, f"create {self.model_class.__name__}")

    def update(self, id: str, data: UpdateSchemaType) -> ResponseSchemaType | None:
        """
        Update an existing entity.

        Returns:
            Updated record or None if not found
        """
        db_obj = safe_query(
            self.session,
            lambda s: s.get(self.model_class, id),
            f"Failed to get {self.model_class.__name__} for update",
        )
        if db_obj is None:
            return None

        for field, value in data.model_dump(exclude_unset=True).items():
            setattr(db_obj, field, value)

        return self._add(db_obj, f"update {self.model_class.__name__}")
