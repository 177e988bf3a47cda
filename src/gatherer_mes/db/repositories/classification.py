"""Repositories for mode/state groups and their items.

Mode and state groups share one repository implementation parameterized by
the group, item and association models.
"""

from dataclasses import dataclass
from typing import Any, Optional, TypeVar, Union

from sqlalchemy import case, delete, distinct, func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import (
    Equipment,
    EquipmentModeGroup,
    EquipmentStateGroup,
    Mode,
    ModeGroup,
    State,
    StateGroup,
)
from gatherer_mes.db.repositories.base import BaseRepository, ilike_contains

GroupT = TypeVar("GroupT", ModeGroup, StateGroup)

ItemModel = Union[type[Mode], type[State]]
AssociationModel = Union[type[EquipmentModeGroup], type[EquipmentStateGroup]]


@dataclass
class GroupUsage:
    """Aggregated usage of one classification group."""

    group: Any
    item_count: int
    equipment_count: int
    enabled_equipment_count: int


class ClassificationGroupRepository(BaseRepository[GroupT]):
    """Shared repository for ModeGroup and StateGroup."""

    def __init__(
        self,
        session: AsyncSession,
        model: type[GroupT],
        item_model: ItemModel,
        association_model: AssociationModel,
    ) -> None:
        """Initialize the group repository.

        Args:
            session: SQLAlchemy async session for database operations
            model: Group model class
            item_model: Model of the items the group holds (Mode or State)
            association_model: Equipment join model for the group
        """
        super().__init__(session, model)
        self.item_model = item_model
        self.association_model = association_model

    async def list_ordered(self) -> list[GroupT]:
        """All groups ordered by name."""
        return await self.get_all(order_by=(self.model.name,))

    async def get_by_name(self, name: str) -> Optional[GroupT]:
        stmt = select(self.model).where(self.model.name == name)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Check whether another group already uses ``name``."""
        stmt = select(func.count()).select_from(self.model).where(self.model.name == name)
        if exclude_id is not None:
            stmt = stmt.where(self.model.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def search(self, term: Optional[str] = None) -> list[GroupT]:
        """Case-insensitive substring search over name and description.

        Args:
            term: Search term; empty or None lists all groups

        Returns:
            Matching groups ordered by name
        """
        stmt = select(self.model).order_by(self.model.name)
        if term:
            stmt = stmt.where(
                or_(
                    ilike_contains(self.model.name, term),
                    ilike_contains(self.model.description, term),
                )
            )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def count_items(self, group_id: str) -> int:
        stmt = select(func.count()).select_from(self.item_model).where(
            self.item_model.group_id == group_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_associations(self, group_id: str) -> int:
        stmt = select(func.count()).select_from(self.association_model).where(
            self.association_model.group_id == group_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def count_system_items(self, group_id: str) -> int:
        """Number of seeded items held by a group."""
        stmt = select(func.count()).select_from(self.item_model).where(
            self.item_model.group_id == group_id,
            self.item_model.is_system.is_(True),
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def delete_items(self, group_id: str) -> int:
        """Delete every item of a group.

        Returns:
            Number of items deleted
        """
        stmt = delete(self.item_model).where(self.item_model.group_id == group_id)
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def usage(self) -> list[GroupUsage]:
        """Item and equipment counts for every group, ordered by group name."""
        assoc = self.association_model
        items = (
            select(
                self.item_model.group_id,
                func.count(self.item_model.id).label("item_count"),
            )
            .group_by(self.item_model.group_id)
            .subquery()
        )
        equipment = (
            select(
                assoc.group_id,
                func.count(distinct(assoc.equipment_id)).label("equipment_count"),
                func.sum(case((Equipment.enabled.is_(True), 1), else_=0)).label(
                    "enabled_count"
                ),
            )
            .join(Equipment, Equipment.id == assoc.equipment_id)
            .group_by(assoc.group_id)
            .subquery()
        )
        stmt = (
            select(
                self.model,
                func.coalesce(items.c.item_count, 0),
                func.coalesce(equipment.c.equipment_count, 0),
                func.coalesce(equipment.c.enabled_count, 0),
            )
            .outerjoin(items, items.c.group_id == self.model.id)
            .outerjoin(equipment, equipment.c.group_id == self.model.id)
            .order_by(self.model.name)
        )
        result = await self.session.execute(stmt)
        return [
            GroupUsage(
                group=row[0],
                item_count=row[1],
                equipment_count=row[2],
                enabled_equipment_count=int(row[3]),
            )
            for row in result.all()
        ]


class ModeGroupRepository(ClassificationGroupRepository[ModeGroup]):
    """Repository for mode groups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, ModeGroup, Mode, EquipmentModeGroup)


class StateGroupRepository(ClassificationGroupRepository[StateGroup]):
    """Repository for state groups."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, StateGroup, State, EquipmentStateGroup)


class ModeRepository(BaseRepository[Mode]):
    """Repository for modes."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, Mode)

    async def list_ordered(self) -> list[Mode]:
        """All modes ordered by group name, then description."""
        stmt = (
            select(Mode)
            .join(ModeGroup, ModeGroup.id == Mode.group_id)
            .order_by(ModeGroup.name, Mode.description)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_group(self, group_id: str) -> list[Mode]:
        stmt = select(Mode).where(Mode.group_id == group_id).order_by(Mode.description)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_description(self, group_id: str, description: str) -> Optional[Mode]:
        stmt = select(Mode).where(Mode.group_id == group_id, Mode.description == description)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def description_exists(
        self, group_id: str, description: str, exclude_id: Optional[str] = None
    ) -> bool:
        """Check for a description collision inside a group."""
        stmt = select(func.count()).select_from(Mode).where(
            Mode.group_id == group_id, Mode.description == description
        )
        if exclude_id is not None:
            stmt = stmt.where(Mode.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def search(
        self, term: Optional[str] = None, group_id: Optional[str] = None
    ) -> list[Mode]:
        """Search modes by description substring, optionally inside one group.

        Args:
            term: Case-insensitive substring; empty or None matches everything
            group_id: Restrict to a single group when given

        Returns:
            Matching modes ordered by description
        """
        stmt = select(Mode).order_by(Mode.description)
        if term:
            stmt = stmt.where(ilike_contains(Mode.description, term))
        if group_id is not None:
            stmt = stmt.where(Mode.group_id == group_id)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())


class StateRepository(BaseRepository[State]):
    """Repository for states."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, State)

    async def list_ordered(self) -> list[State]:
        """All states ordered by group name, then code."""
        stmt = (
            select(State)
            .join(StateGroup, StateGroup.id == State.group_id)
            .order_by(StateGroup.name, State.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_by_group(self, group_id: str) -> list[State]:
        stmt = select(State).where(State.group_id == group_id).order_by(State.code)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def get_by_code(self, group_id: str, code: int) -> Optional[State]:
        stmt = select(State).where(State.group_id == group_id, State.code == code)
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_by_description(self, group_id: str, description: str) -> Optional[State]:
        stmt = select(State).where(
            State.group_id == group_id, State.description == description
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def code_exists(
        self, group_id: str, code: int, exclude_id: Optional[str] = None
    ) -> bool:
        """Check for a code collision inside a group."""
        stmt = select(func.count()).select_from(State).where(
            State.group_id == group_id, State.code == code
        )
        if exclude_id is not None:
            stmt = stmt.where(State.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def description_exists(
        self, group_id: str, description: str, exclude_id: Optional[str] = None
    ) -> bool:
        """Check for a description collision inside a group."""
        stmt = select(func.count()).select_from(State).where(
            State.group_id == group_id, State.description == description
        )
        if exclude_id is not None:
            stmt = stmt.where(State.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def used_codes(self, group_id: str, min_code: int, max_code: int) -> list[int]:
        """Codes already taken in a group within ``[min_code, max_code]``, ascending."""
        stmt = (
            select(State.code)
            .where(State.group_id == group_id, State.code.between(min_code, max_code))
            .order_by(State.code)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def search(
        self,
        term: Optional[str] = None,
        group_id: Optional[str] = None,
        code_min: Optional[int] = None,
        code_max: Optional[int] = None,
    ) -> list[State]:
        """Search states by description, group and code range.

        Args:
            term: Case-insensitive description substring
            group_id: Restrict to a single group when given
            code_min: Inclusive lower bound on the code
            code_max: Inclusive upper bound on the code

        Returns:
            Matching states ordered by code, then description
        """
        stmt = select(State).order_by(State.code, State.description)
        if term:
            stmt = stmt.where(ilike_contains(State.description, term))
        if group_id is not None:
            stmt = stmt.where(State.group_id == group_id)
        if code_min is not None:
            stmt = stmt.where(State.code >= code_min)
        if code_max is not None:
            stmt = stmt.where(State.code <= code_max)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
