"""Equipment hierarchy store.

Keeps the self-referencing equipment tree consistent: type and parent
existence, sibling name uniqueness, no self-parenting, no cycles, and
child-aware deletion.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional, Union

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.common import NamedRef, ResultStatus
from gatherer_mes.api.schemas.equipment import (
    EquipmentDeleted,
    EquipmentResponse,
    EquipmentUpdate,
)
from gatherer_mes.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ValidationError,
)
from gatherer_mes.db.models import Equipment, EquipmentModeGroup, EquipmentStateGroup
from gatherer_mes.db.models.equipment import EQUIPMENT_NAME_MAX_LENGTH
from gatherer_mes.db.repositories.association import AssociationRepository
from gatherer_mes.db.repositories.equipment import (
    EquipmentNode,
    EquipmentRepository,
    ResolvedEquipment,
)
from gatherer_mes.db.repositories.equipment_type import EquipmentTypeRepository
from gatherer_mes.services.base import BaseService, Outcome, clean_text, operation

logger = structlog.get_logger(__name__)

NAME_LABEL = "Equipment name"
DUPLICATE_MESSAGE = "Equipment with this name already exists for the given parent and type"
INVALID_REFERENCE_MESSAGE = "Invalid equipment type or parent equipment ID"


def normalize_metadata(document: Any) -> Union[dict, list]:
    """Validate an equipment metadata document.

    Args:
        document: A dict or list, or a string containing a JSON object/array

    Returns:
        The parsed dict or list

    Raises:
        ValidationError: For null, malformed JSON or scalar documents
    """
    if document is None:
        raise ValidationError("Configuration data cannot be null")
    if isinstance(document, (str, bytes)):
        try:
            document = json.loads(document)
        except ValueError as exc:
            raise ValidationError(f"Metadata is not valid JSON: {exc}") from exc
    if not isinstance(document, (dict, list)):
        raise ValidationError("Metadata must be a JSON object or array")
    return document


def to_response(row: ResolvedEquipment) -> EquipmentResponse:
    equipment = row.equipment
    parent = None
    if equipment.parent_id is not None:
        parent = NamedRef(id=equipment.parent_id, name=row.parent_name or "")
    return EquipmentResponse(
        id=equipment.id,
        name=equipment.name,
        enabled=equipment.enabled,
        metadata=equipment.equipment_metadata,
        equipment_type=NamedRef(id=equipment.type_id, name=row.type_name),
        parent=parent,
        created_at=equipment.created_at,
        updated_at=equipment.updated_at,
    )


class EquipmentService(BaseService):
    """Operations on the equipment hierarchy."""

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = EquipmentRepository(session)
        self.types = EquipmentTypeRepository(session)
        self.mode_links = AssociationRepository(session, EquipmentModeGroup)
        self.state_links = AssociationRepository(session, EquipmentStateGroup)

    async def _require(self, equipment_id: str) -> Equipment:
        equipment = await self.repo.get_by_id(equipment_id)
        if equipment is None:
            raise NotFoundError("Equipment not found")
        return equipment

    async def _require_type(self, type_id: str) -> None:
        if await self.types.get_by_id(type_id) is None:
            raise NotFoundError("Equipment type not found")

    async def _require_parent(self, parent_id: str) -> None:
        if await self.repo.get_by_id(parent_id) is None:
            raise NotFoundError("Parent equipment not found")

    async def _resolved(self, equipment_id: str) -> EquipmentResponse:
        row = await self.repo.get_resolved(equipment_id)
        if row is None:
            raise NotFoundError("Equipment not found")
        return to_response(row)

    async def list(self) -> list[EquipmentResponse]:
        """All equipment ordered by type name, then equipment name."""
        return [to_response(row) for row in await self.repo.list_resolved()]

    async def exists_by_name_parent_type(
        self,
        name: str,
        parent_id: Optional[str] = None,
        type_id: Optional[str] = None,
    ) -> bool:
        """Check whether equipment called ``name`` exists.

        Args:
            name: Equipment name; surrounding whitespace is ignored
            parent_id: Only consider children of this parent
            type_id: Only consider equipment of this type
        """
        cleaned = (name or "").strip()
        if not cleaned:
            return False
        return await self.repo.exists_by_name_parent_type(cleaned, parent_id, type_id)

    async def get_tree(self) -> list[EquipmentNode]:
        """Whole hierarchy as nested nodes, roots first."""
        return await self.repo.get_tree()

    @operation("Equipment retrieved successfully", atomic=False)
    async def get_by_id(self, equipment_id: str) -> EquipmentResponse:
        return await self._resolved(equipment_id)

    @operation("Equipment retrieved successfully", atomic=False)
    async def get_children(self, equipment_id: str) -> list[EquipmentResponse]:
        """Direct children of a node, ordered by type name then name."""
        await self._require(equipment_id)
        children = await self.repo.get_children(equipment_id)
        rows = await self.repo.list_resolved(ids=[child.id for child in children])
        return [to_response(row) for row in rows]

    @operation("Equipment retrieved successfully", atomic=False)
    async def get_ancestors(self, equipment_id: str) -> list[EquipmentResponse]:
        """Ancestors of a node ordered from the direct parent up to the root."""
        await self._require(equipment_id)
        ancestors = await self.repo.get_ancestors(equipment_id)
        rows = await self.repo.list_resolved(ids=[a.id for a in ancestors])
        by_id = {row.equipment.id: row for row in rows}
        return [to_response(by_id[a.id]) for a in ancestors if a.id in by_id]

    @operation(
        "Equipment created successfully",
        conflict=DUPLICATE_MESSAGE,
        referential=INVALID_REFERENCE_MESSAGE,
    )
    async def create(
        self,
        name: str,
        type_id: str,
        parent_id: Optional[str] = None,
        enabled: bool = True,
        metadata: Any = None,
    ) -> EquipmentResponse:
        """Insert an equipment node.

        Args:
            name: Display name, 1-255 characters after trimming
            type_id: Existing equipment type
            parent_id: Existing parent node, or None for a root node
            enabled: Initial enabled flag
            metadata: Optional JSON object/array (or string containing one)

        Returns:
            The created node with resolved type and parent names
        """
        cleaned = clean_text(name, NAME_LABEL, 1, EQUIPMENT_NAME_MAX_LENGTH)
        await self._require_type(type_id)
        if parent_id is not None:
            await self._require_parent(parent_id)
        document = normalize_metadata(metadata) if metadata is not None else {}

        if await self.repo.sibling_name_taken(cleaned, parent_id, type_id):
            raise ConflictError(DUPLICATE_MESSAGE)

        equipment = await self.repo.create(
            name=cleaned,
            type_id=type_id,
            parent_id=parent_id,
            enabled=enabled,
            equipment_metadata=document,
        )
        logger.info(
            "equipment_created",
            equipment_id=equipment.id,
            name=cleaned,
            type_id=type_id,
            parent_id=parent_id,
        )
        return await self._resolved(equipment.id)

    @operation(
        "Equipment updated successfully",
        conflict=DUPLICATE_MESSAGE,
        referential=INVALID_REFERENCE_MESSAGE,
    )
    async def update(
        self,
        equipment_id: str,
        changes: Union[EquipmentUpdate, Mapping[str, Any]],
    ) -> Union[EquipmentResponse, Outcome]:
        """Patch an equipment node.

        Only fields explicitly present in ``changes`` are considered. An
        explicit ``parent_id`` of None moves the node to the root level;
        other explicit Nones are ignored.

        Args:
            equipment_id: Node to update
            changes: EquipmentUpdate or a mapping of the fields to change

        Returns:
            The updated node, or a NoChanges outcome carrying the current node
        """
        equipment = await self._require(equipment_id)
        if isinstance(changes, EquipmentUpdate):
            fields = changes.model_dump(exclude_unset=True)
        else:
            fields = dict(changes)

        values: dict[str, Any] = {}
        if fields.get("name") is not None:
            values["name"] = clean_text(fields["name"], NAME_LABEL, 1, EQUIPMENT_NAME_MAX_LENGTH)
        if fields.get("type_id") is not None:
            await self._require_type(fields["type_id"])
            values["type_id"] = fields["type_id"]
        if "parent_id" in fields:
            parent_id = fields["parent_id"]
            if parent_id is not None:
                if parent_id == equipment_id:
                    raise ValidationError("Equipment cannot be its own parent")
                await self._require_parent(parent_id)
                if await self.repo.is_descendant(equipment_id, parent_id):
                    raise ValidationError(
                        "Equipment cannot be moved under one of its own descendants"
                    )
            values["parent_id"] = parent_id
        if fields.get("enabled") is not None:
            values["enabled"] = bool(fields["enabled"])
        if fields.get("metadata") is not None:
            values["equipment_metadata"] = normalize_metadata(fields["metadata"])

        if not values:
            return Outcome(
                data=await self._resolved(equipment_id),
                message="No changes were made to equipment",
                status=ResultStatus.NO_CHANGES,
            )

        if {"name", "type_id", "parent_id"} & values.keys():
            taken = await self.repo.sibling_name_taken(
                values.get("name", equipment.name),
                values.get("parent_id", equipment.parent_id),
                values.get("type_id", equipment.type_id),
                exclude_id=equipment_id,
            )
            if taken:
                raise ConflictError(DUPLICATE_MESSAGE)

        await self.repo.update(equipment_id, **values)

        logger.info("equipment_updated", equipment_id=equipment_id, fields=sorted(values))
        return await self._resolved(equipment_id)

    @operation("Equipment configuration updated successfully")
    async def set_metadata(self, equipment_id: str, document: Any) -> EquipmentResponse:
        """Replace the metadata document of a node.

        Args:
            equipment_id: Node to update
            document: JSON object/array, or a string containing one
        """
        await self._require(equipment_id)
        await self.repo.update(equipment_id, equipment_metadata=normalize_metadata(document))
        logger.info("equipment_metadata_updated", equipment_id=equipment_id)
        return await self._resolved(equipment_id)

    @operation(
        "Equipment deleted successfully",
        conflict="Cannot move child equipment to the root level: the name is already in use",
        referential="Cannot delete equipment: dependencies still exist",
    )
    async def delete(self, equipment_id: str, force: bool = False) -> EquipmentDeleted:
        """Delete an equipment node.

        Args:
            equipment_id: Node to delete
            force: Delete even when the node has children; the direct
                children are moved to the root level first

        Returns:
            Summary of the deleted node and what was detached from it
        """
        equipment = await self._require(equipment_id)
        children = await self.repo.count_children(equipment_id)
        if children and not force:
            raise DependencyError(
                f"Cannot delete equipment: {children} child equipment exist. "
                "Use force_delete=true to override."
            )

        orphaned = 0
        if children:
            clashes = await self.repo.children_clashing_with_roots(equipment_id)
            if clashes:
                raise ConflictError(
                    "Cannot move child equipment to the root level: root equipment of "
                    f"the same type already uses the name(s) {', '.join(clashes)}"
                )
            orphaned = await self.repo.orphan_children(equipment_id)
        removed = await self.mode_links.delete_for_equipment(equipment_id)
        removed += await self.state_links.delete_for_equipment(equipment_id)

        name = equipment.name
        await self.repo.delete(equipment_id)

        logger.info(
            "equipment_deleted",
            equipment_id=equipment_id,
            orphaned_children=orphaned,
            removed_associations=removed,
        )
        return EquipmentDeleted(
            id=equipment_id,
            name=name,
            orphaned_children=orphaned,
            removed_associations=removed,
        )
