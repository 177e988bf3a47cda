"""Equipment type registry: the taxonomy every equipment node is classified by."""

from __future__ import annotations

from typing import Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.equipment_type import EquipmentTypeResponse
from gatherer_mes.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ProtectedEntityError,
)
from gatherer_mes.db.models import EquipmentType
from gatherer_mes.db.models.equipment import TYPE_NAME_MAX_LENGTH, TYPE_NAME_MIN_LENGTH
from gatherer_mes.db.repositories.equipment_type import EquipmentTypeRepository
from gatherer_mes.services.base import BaseService, clean_text, operation

logger = structlog.get_logger(__name__)

NAME_LABEL = "Equipment type name"
IN_USE_MESSAGE = "Cannot delete equipment type: equipment items are still using this type"


def to_response(equipment_type: EquipmentType, equipment_count: int = 0) -> EquipmentTypeResponse:
    return EquipmentTypeResponse(
        id=equipment_type.id,
        name=equipment_type.name,
        is_system=equipment_type.is_system,
        equipment_count=equipment_count,
        created_at=equipment_type.created_at,
        updated_at=equipment_type.updated_at,
    )


class EquipmentTypeService(BaseService):
    """Create, rename, look up and delete equipment types.

    Names are trimmed and compared case-insensitively. Seeded types carry
    ``is_system`` and can never be deleted.
    """

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = EquipmentTypeRepository(session)

    async def _require(self, type_id: str) -> EquipmentType:
        equipment_type = await self.repo.get_by_id(type_id)
        if equipment_type is None:
            raise NotFoundError("Equipment type not found")
        return equipment_type

    async def list(self) -> list[EquipmentTypeResponse]:
        """All types ordered by name, each with its equipment count."""
        rows = await self.repo.list_with_counts()
        return [to_response(t, count) for t, count in rows]

    async def search(self, term: Optional[str] = None) -> list[EquipmentTypeResponse]:
        """Types whose name contains ``term`` (case-insensitive), ordered by name.

        Args:
            term: Substring to match; empty or None lists every type
        """
        term = term.strip() if term else None
        rows = await self.repo.list_with_counts(term=term)
        return [to_response(t, count) for t, count in rows]

    @operation("Equipment type retrieved successfully", atomic=False)
    async def get_by_id(self, type_id: str) -> EquipmentTypeResponse:
        equipment_type = await self._require(type_id)
        return to_response(equipment_type, await self.repo.count_equipment(type_id))

    @operation("Equipment type retrieved successfully", atomic=False)
    async def get_by_name(self, name: str) -> EquipmentTypeResponse:
        equipment_type = await self.repo.get_by_name((name or "").strip())
        if equipment_type is None:
            raise NotFoundError("Equipment type not found")
        return to_response(
            equipment_type, await self.repo.count_equipment(equipment_type.id)
        )

    @operation("Equipment type created successfully", conflict="Equipment type already exists")
    async def create(self, name: str) -> EquipmentTypeResponse:
        """Register a new equipment type.

        Args:
            name: Type name, 2-255 characters after trimming

        Returns:
            The created type with ``equipment_count`` 0
        """
        cleaned = clean_text(name, NAME_LABEL, TYPE_NAME_MIN_LENGTH, TYPE_NAME_MAX_LENGTH)
        if await self.repo.name_exists(cleaned):
            raise ConflictError("Equipment type already exists")

        equipment_type = await self.repo.create(name=cleaned)
        logger.info("equipment_type_created", type_id=equipment_type.id, name=cleaned)
        return to_response(equipment_type)

    @operation(
        "Equipment type updated successfully", conflict="Equipment type name already exists"
    )
    async def update(self, type_id: str, name: str) -> EquipmentTypeResponse:
        """Rename an equipment type.

        The duplicate check ignores the type itself, so changing only the
        case of a name is allowed.
        """
        equipment_type = await self._require(type_id)
        cleaned = clean_text(name, NAME_LABEL, TYPE_NAME_MIN_LENGTH, TYPE_NAME_MAX_LENGTH)
        if await self.repo.name_exists(cleaned, exclude_id=type_id):
            raise ConflictError("Equipment type name already exists")

        equipment_type = await self.repo.update(type_id, name=cleaned)
        logger.info("equipment_type_updated", type_id=type_id, name=cleaned)
        return to_response(equipment_type, await self.repo.count_equipment(type_id))

    @operation("Equipment type deleted successfully", referential=IN_USE_MESSAGE)
    async def delete(self, type_id: str, force: bool = False) -> EquipmentTypeResponse:
        """Delete an equipment type.

        Args:
            type_id: Type to delete
            force: Attempt the delete even when equipment still uses the type.
                The store's foreign key then rejects it as a ReferentialError.

        Returns:
            The deleted type as it was before deletion
        """
        equipment_type = await self._require(type_id)
        if equipment_type.is_system:
            raise ProtectedEntityError(
                f"Cannot delete default equipment type: {equipment_type.name}"
            )

        count = await self.repo.count_equipment(type_id)
        if count and not force:
            raise DependencyError(
                f"Cannot delete equipment type: {count} equipment items are using "
                "this type. Use force_delete=true to override."
            )

        payload = to_response(equipment_type, count)
        await self.repo.delete(type_id)
        logger.info("equipment_type_deleted", type_id=type_id, forced=force)
        return payload
