"""Base repository with generic CRUD operations."""

from typing import Any, Generic, Sequence, TypeVar

from sqlalchemy import ColumnElement, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import Base

ModelT = TypeVar("ModelT", bound=Base)

LIKE_ESCAPE = "\\"


def contains_pattern(term: str) -> str:
    """Build a substring LIKE pattern with wildcard characters escaped.

    Args:
        term: Raw user search term

    Returns:
        Pattern suitable for ``ilike(pattern, escape=LIKE_ESCAPE)``
    """
    escaped = (
        term.replace(LIKE_ESCAPE, LIKE_ESCAPE * 2)
        .replace("%", LIKE_ESCAPE + "%")
        .replace("_", LIKE_ESCAPE + "_")
    )
    return f"%{escaped}%"


def ilike_contains(column: Any, term: str) -> ColumnElement[bool]:
    """Case-insensitive substring match bound as a parameter."""
    return column.ilike(contains_pattern(term), escape=LIKE_ESCAPE)


class BaseRepository(Generic[ModelT]):
    """Generic base repository providing standard CRUD operations.

    This repository implements common database operations that can be
    inherited by all model-specific repositories.

    Type Parameters:
        ModelT: The SQLAlchemy model type this repository manages
    """

    def __init__(self, session: AsyncSession, model: type[ModelT]) -> None:
        """Initialize the repository.

        Args:
            session: SQLAlchemy async session for database operations
            model: The SQLAlchemy model class this repository manages
        """
        self.session = session
        self.model = model

    async def get_by_id(self, id: str) -> ModelT | None:
        """Retrieve a single record by primary key.

        Args:
            id: Primary key of the record to retrieve

        Returns:
            The model instance if found, None otherwise
        """
        return await self.session.get(self.model, id)

    async def get_all(self, order_by: Sequence[Any] = ()) -> list[ModelT]:
        """Retrieve all records.

        Args:
            order_by: Optional ordering columns

        Returns:
            List of model instances
        """
        stmt = select(self.model)
        if order_by:
            stmt = stmt.order_by(*order_by)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_existing_ids(self, ids: Sequence[str]) -> set[str]:
        """Return the subset of ``ids`` that exist in the table."""
        if not ids:
            return set()
        stmt = select(self.model.id).where(self.model.id.in_(list(ids)))
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def create(self, **kwargs: Any) -> ModelT:
        """Create a new record.

        Args:
            **kwargs: Field values for the new record

        Returns:
            The created model instance

        Raises:
            IntegrityError: If database constraints are violated
        """
        instance = self.model(**kwargs)
        self.session.add(instance)
        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def update(self, id: str, **kwargs: Any) -> ModelT | None:
        """Update an existing record.

        Args:
            id: Primary key of the record to update
            **kwargs: Field values to update

        Returns:
            The updated model instance if found, None otherwise
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return None

        for key, value in kwargs.items():
            if hasattr(instance, key):
                setattr(instance, key, value)

        await self.session.flush()
        await self.session.refresh(instance)
        return instance

    async def delete(self, id: str) -> bool:
        """Delete a record by primary key.

        Args:
            id: Primary key of the record to delete

        Returns:
            True if the record was deleted, False if not found
        """
        instance = await self.get_by_id(id)
        if instance is None:
            return False

        await self.session.delete(instance)
        await self.session.flush()
        return True

