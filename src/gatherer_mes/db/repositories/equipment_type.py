"""Repository for the equipment type taxonomy."""

from typing import Optional

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import Equipment, EquipmentType
from gatherer_mes.db.repositories.base import BaseRepository, ilike_contains


class EquipmentTypeRepository(BaseRepository[EquipmentType]):
    """Repository for EquipmentType with usage counting."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session, EquipmentType)

    async def get_by_name(self, name: str) -> Optional[EquipmentType]:
        """Look up a type by name, ignoring case.

        Args:
            name: Type name (already trimmed)

        Returns:
            The matching type or None
        """
        stmt = select(EquipmentType).where(func.lower(EquipmentType.name) == name.lower())
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def name_exists(self, name: str, exclude_id: Optional[str] = None) -> bool:
        """Check for a case-insensitive name collision.

        Args:
            name: Candidate name
            exclude_id: Type to ignore (the one being renamed)
        """
        stmt = select(func.count()).select_from(EquipmentType).where(
            func.lower(EquipmentType.name) == name.lower()
        )
        if exclude_id is not None:
            stmt = stmt.where(EquipmentType.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def count_equipment(self, type_id: str) -> int:
        """Number of equipment rows using the type."""
        stmt = select(func.count()).select_from(Equipment).where(Equipment.type_id == type_id)
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def list_with_counts(
        self, term: Optional[str] = None
    ) -> list[tuple[EquipmentType, int]]:
        """List types ordered by name together with their equipment counts.

        Args:
            term: Optional case-insensitive substring filter on the name

        Returns:
            List of (type, equipment_count) pairs
        """
        usage = (
            select(Equipment.type_id, func.count(Equipment.id).label("equipment_count"))
            .group_by(Equipment.type_id)
            .subquery()
        )
        stmt = (
            select(EquipmentType, func.coalesce(usage.c.equipment_count, 0))
            .outerjoin(usage, usage.c.type_id == EquipmentType.id)
            .order_by(EquipmentType.name)
        )
        if term:
            stmt = stmt.where(ilike_contains(EquipmentType.name, term))
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]
