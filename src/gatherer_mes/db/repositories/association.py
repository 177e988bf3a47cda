"""Repository for equipment ↔ classification group join rows."""

from typing import Sequence, Union

from sqlalchemy import delete, func, insert, select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import (
    Equipment,
    EquipmentModeGroup,
    EquipmentStateGroup,
    EquipmentType,
)

AssociationModel = Union[type[EquipmentModeGroup], type[EquipmentStateGroup]]


class AssociationRepository:
    """Reads and writes one association table.

    The same class serves mode and state groups; the table is chosen by
    the model passed at construction.
    """

    def __init__(self, session: AsyncSession, model: AssociationModel) -> None:
        """Initialize the association repository.

        Args:
            session: SQLAlchemy async session for database operations
            model: EquipmentModeGroup or EquipmentStateGroup
        """
        self.session = session
        self.model = model

    async def exists(self, equipment_id: str, group_id: str) -> bool:
        stmt = select(func.count()).select_from(self.model).where(
            self.model.equipment_id == equipment_id,
            self.model.group_id == group_id,
        )
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def add(self, equipment_id: str, group_id: str) -> None:
        """Insert a single pair. Raises IntegrityError for duplicates."""
        await self.session.execute(
            insert(self.model).values(equipment_id=equipment_id, group_id=group_id)
        )

    async def add_many(self, equipment_ids: Sequence[str], group_id: str) -> None:
        """Insert several pairs for one group in a single statement."""
        if not equipment_ids:
            return
        await self.session.execute(
            insert(self.model),
            [{"equipment_id": eid, "group_id": group_id} for eid in equipment_ids],
        )

    async def remove(self, equipment_id: str, group_id: str) -> int:
        """Delete a pair.

        Returns:
            Number of rows deleted (0 or 1)
        """
        stmt = delete(self.model).where(
            self.model.equipment_id == equipment_id,
            self.model.group_id == group_id,
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def assigned_ids(self, group_id: str, equipment_ids: Sequence[str]) -> set[str]:
        """Return which of ``equipment_ids`` are already assigned to the group."""
        if not equipment_ids:
            return set()
        stmt = select(self.model.equipment_id).where(
            self.model.group_id == group_id,
            self.model.equipment_id.in_(list(equipment_ids)),
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def list_equipment(self, group_id: str) -> list[tuple[Equipment, str]]:
        """Equipment assigned to a group with type names, ordered by equipment name."""
        stmt = (
            select(Equipment, EquipmentType.name)
            .join(self.model, self.model.equipment_id == Equipment.id)
            .join(EquipmentType, EquipmentType.id == Equipment.type_id)
            .where(self.model.group_id == group_id)
            .order_by(Equipment.name)
        )
        result = await self.session.execute(stmt)
        return [(row[0], row[1]) for row in result.all()]

    async def delete_for_group(self, group_id: str) -> int:
        """Remove every association of a group; returns the number removed."""
        result = await self.session.execute(
            delete(self.model).where(self.model.group_id == group_id)
        )
        return result.rowcount or 0

    async def delete_for_equipment(self, equipment_id: str) -> int:
        """Remove every association of an equipment node; returns the number removed."""
        result = await self.session.execute(
            delete(self.model).where(self.model.equipment_id == equipment_id)
        )
        return result.rowcount or 0
