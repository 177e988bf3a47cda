"""Pydantic schemas for equipment hierarchy operations."""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, Field

from gatherer_mes.api.schemas.common import NamedRef


class EquipmentCreate(BaseModel):
    """Schema for creating an equipment node.

    Attributes:
        name: Display name, unique among siblings of the same type
        type_id: Equipment type of the node
        parent_id: Parent node (None for root nodes)
        enabled: Whether the node is active
        metadata: JSON object/array, or a string containing one
    """

    name: str
    type_id: str
    parent_id: Optional[str] = None
    enabled: bool = True
    metadata: Any = None


class EquipmentUpdate(BaseModel):
    """Schema for patching an equipment node.

    Only fields present in the request are applied. Sending
    ``parent_id: null`` explicitly moves the node to the root level.
    """

    name: Optional[str] = None
    type_id: Optional[str] = None
    parent_id: Optional[str] = None
    enabled: Optional[bool] = None
    metadata: Any = None


class EquipmentMetadataUpdate(BaseModel):
    """Replacement metadata document for a node."""

    metadata: Any = Field(..., description="JSON object/array or a string containing one")


class EquipmentResponse(BaseModel):
    """Schema for a resolved equipment node.

    Attributes:
        id: Unique identifier
        name: Display name
        enabled: Whether the node is active
        metadata: Structured metadata document
        equipment_type: Type id and name
        parent: Parent id and name (None for root nodes)
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    id: str
    name: str
    enabled: bool
    metadata: Any
    equipment_type: NamedRef
    parent: Optional[NamedRef] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


class EquipmentSummary(BaseModel):
    """Compact equipment view used in listings of group members."""

    id: str
    name: str
    type_name: str
    enabled: bool


class EquipmentDeleted(BaseModel):
    """Result of deleting an equipment node.

    Attributes:
        id: ID of the deleted node
        name: Name of the deleted node
        orphaned_children: Direct children moved to the root level
        removed_associations: Mode/state group memberships removed
    """

    id: str
    name: str
    orphaned_children: int = 0
    removed_associations: int = 0
