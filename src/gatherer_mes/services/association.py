"""Association manager: attaches equipment to mode or state groups."""

from __future__ import annotations

from typing import Optional, Sequence, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.association import Assignment, BulkAssignResult
from gatherer_mes.api.schemas.common import ResultStatus
from gatherer_mes.api.schemas.equipment import EquipmentSummary
from gatherer_mes.core.exceptions import (
    ConflictError,
    ErrorKind,
    NotFoundError,
    ValidationError,
)
from gatherer_mes.db.models import (
    EquipmentModeGroup,
    EquipmentStateGroup,
    ModeGroup,
    StateGroup,
)
from gatherer_mes.db.repositories.association import AssociationRepository
from gatherer_mes.db.repositories.base import BaseRepository
from gatherer_mes.db.repositories.equipment import EquipmentRepository
from gatherer_mes.services.base import BaseService, Outcome, operation

logger = structlog.get_logger(__name__)

GroupModel = Union[type[ModeGroup], type[StateGroup]]
AssociationModel = Union[type[EquipmentModeGroup], type[EquipmentStateGroup]]


class AssociationManager(BaseService):
    """Many-to-many membership between equipment and one kind of group.

    One instance manages either mode groups or state groups, selected by
    the models passed in. ``label`` ("mode group" / "state group") is used
    in result messages.
    """

    def __init__(
        self,
        session: AsyncSession,
        association_model: AssociationModel,
        group_model: GroupModel,
        label: str,
    ) -> None:
        super().__init__(session)
        self.links = AssociationRepository(session, association_model)
        self.groups = BaseRepository(session, group_model)
        self.equipment = EquipmentRepository(session)
        self.label = label

    @classmethod
    def for_modes(cls, session: AsyncSession) -> AssociationManager:
        return cls(session, EquipmentModeGroup, ModeGroup, "mode group")

    @classmethod
    def for_states(cls, session: AsyncSession) -> AssociationManager:
        return cls(session, EquipmentStateGroup, StateGroup, "state group")

    async def _require_group(self, group_id: str):
        group = await self.groups.get_by_id(group_id)
        if group is None:
            raise NotFoundError(f"{self.label.capitalize()} not found")
        return group

    async def equipment_for_group(self, group_id: str) -> list[EquipmentSummary]:
        """Members of a group ordered by equipment name (no existence check)."""
        rows = await self.links.list_equipment(group_id)
        return [
            EquipmentSummary(
                id=equipment.id,
                name=equipment.name,
                type_name=type_name,
                enabled=equipment.enabled,
            )
            for equipment, type_name in rows
        ]

    @operation("Equipment assigned successfully", conflict="Equipment is already assigned")
    async def assign(self, equipment_id: str, group_id: str) -> Outcome:
        """Attach one equipment node to the group.

        Raises a ConflictError envelope if the pair already exists.
        """
        if await self.equipment.get_by_id(equipment_id) is None:
            raise NotFoundError("Equipment not found")
        await self._require_group(group_id)
        if await self.links.exists(equipment_id, group_id):
            raise ConflictError(f"Equipment is already assigned to this {self.label}")

        await self.links.add(equipment_id, group_id)
        logger.info(
            "equipment_assigned", equipment_id=equipment_id, group_id=group_id, kind=self.label
        )
        return Outcome(
            data=Assignment(equipment_id=equipment_id, group_id=group_id),
            message=f"Equipment assigned to {self.label} successfully",
        )

    @operation("Equipment unassigned successfully")
    async def unassign(self, equipment_id: str, group_id: str) -> Outcome:
        """Detach one equipment node from the group."""
        removed = await self.links.remove(equipment_id, group_id)
        if not removed:
            raise NotFoundError("Equipment assignment not found")

        logger.info(
            "equipment_unassigned", equipment_id=equipment_id, group_id=group_id, kind=self.label
        )
        return Outcome(
            data=Assignment(equipment_id=equipment_id, group_id=group_id),
            message=f"Equipment unassigned from {self.label} successfully",
        )

    @operation("Bulk assignment completed", conflict="Equipment is already assigned")
    async def bulk_assign(
        self, equipment_ids: Optional[Sequence[str]], group_id: str
    ) -> Outcome:
        """Attach several equipment nodes to the group in one batch.

        Requested ids are de-duplicated preserving order. Unknown ids are
        dropped and reported; ids already in the group are skipped.

        Args:
            equipment_ids: Equipment to attach
            group_id: Target group

        Returns:
            Outcome with a BulkAssignResult. When every valid id was already
            assigned the status is Error and the payload is still attached.
        """
        if not equipment_ids:
            raise ValidationError("No equipment IDs provided")
        await self._require_group(group_id)

        requested = list(dict.fromkeys(equipment_ids))
        existing = await self.equipment.get_existing_ids(requested)
        valid = [eid for eid in requested if eid in existing]
        invalid = [eid for eid in requested if eid not in existing]
        if not valid:
            raise NotFoundError("No valid equipment IDs found")

        already = await self.links.assigned_ids(group_id, valid)
        to_assign = [eid for eid in valid if eid not in already]
        skipped = [eid for eid in valid if eid in already]
        await self.links.add_many(to_assign, group_id)

        result = BulkAssignResult(
            group_id=group_id,
            assigned_equipment_ids=to_assign,
            skipped_equipment_ids=skipped,
            invalid_equipment_ids=invalid,
            assigned_count=len(to_assign),
            skipped_count=len(skipped),
            invalid_count=len(invalid),
        )
        logger.info(
            "equipment_bulk_assigned",
            group_id=group_id,
            kind=self.label,
            assigned=len(to_assign),
            skipped=len(skipped),
            invalid=len(invalid),
        )

        if not to_assign:
            return Outcome(
                data=result,
                message=f"All {len(skipped)} equipment item(s) were already assigned",
                status=ResultStatus.ERROR,
                error=ErrorKind.CONFLICT,
            )
        if skipped:
            return Outcome(
                data=result,
                message=(
                    f"Partial success: {len(to_assign)} assigned, "
                    f"{len(skipped)} skipped (already assigned)"
                ),
            )
        return Outcome(
            data=result, message=f"Successfully assigned {len(to_assign)} equipment item(s)"
        )

    @operation("Equipment retrieved successfully", atomic=False)
    async def list_equipment_for_group(self, group_id: str) -> Outcome:
        """Equipment assigned to a group, ordered by name."""
        group = await self._require_group(group_id)
        members = await self.equipment_for_group(group_id)
        return Outcome(
            data=members,
            message=f"Found {len(members)} equipment item(s) for {self.label}: {group.name}",
        )
