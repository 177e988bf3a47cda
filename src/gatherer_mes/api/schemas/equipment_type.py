"""Pydantic schemas for equipment type operations."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class EquipmentTypeCreate(BaseModel):
    """Schema for creating an equipment type.

    Attributes:
        name: Type name, unique regardless of case
    """

    name: str = Field(..., description="Equipment type name")


class EquipmentTypeUpdate(BaseModel):
    """Schema for renaming an equipment type."""

    name: str = Field(..., description="New equipment type name")


class EquipmentTypeResponse(BaseModel):
    """Schema for equipment type response.

    Attributes:
        id: Unique identifier
        name: Type name
        is_system: Seeded default type, protected from deletion
        equipment_count: Number of equipment using the type
        created_at: Creation timestamp
        updated_at: Last modification timestamp (None until first update)
    """

    id: str
    name: str
    is_system: bool
    equipment_count: int = 0
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
