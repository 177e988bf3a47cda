"""Pydantic schemas for mode/state groups, modes and states.

Group schemas are shared by both classification subsystems.
"""

from datetime import datetime
from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from gatherer_mes.api.schemas.common import BulkFailure, NamedRef
from gatherer_mes.api.schemas.equipment import EquipmentSummary

ItemT = TypeVar("ItemT")


# ---------------------------------------------------------------------------
# Groups
# ---------------------------------------------------------------------------
class GroupCreate(BaseModel):
    """Schema for creating a mode or state group.

    Attributes:
        name: Unique group name (2-255 characters)
        description: Group description (5-2048 characters)
    """

    name: str
    description: str


class GroupUpdate(BaseModel):
    """Schema for patching a group; omitted fields are left unchanged."""

    name: Optional[str] = None
    description: Optional[str] = None


class GroupResponse(BaseModel):
    """Schema for a mode or state group.

    Attributes:
        id: Unique identifier
        name: Group name
        description: Group description
        is_system: Seeded default group, protected from deletion
        created_at: Creation timestamp
        updated_at: Last modification timestamp
    """

    id: str
    name: str
    description: str
    is_system: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class GroupContext(GroupResponse, Generic[ItemT]):
    """A group together with its items and assigned equipment."""

    items: list[ItemT] = []
    equipment: list[EquipmentSummary] = []
    item_count: int = 0
    equipment_count: int = 0


class GroupDeleted(BaseModel):
    """Result of deleting a group.

    Attributes:
        id: ID of the deleted group
        name: Name of the deleted group
        deleted_items: Modes or states removed with the group
        deleted_associations: Equipment memberships removed with the group
    """

    id: str
    name: str
    deleted_items: int = 0
    deleted_associations: int = 0


class GroupUsageEntry(BaseModel):
    """Usage counters of one group."""

    id: str
    name: str
    description: str
    is_system: bool
    item_count: int
    equipment_count: int
    enabled_equipment_count: int


class GroupUsageSummary(BaseModel):
    """Totals across all groups of a subsystem."""

    total_groups: int
    active_groups: int
    unused_groups: int


class GroupUsageStats(BaseModel):
    """Usage counters for every group plus a summary."""

    groups: list[GroupUsageEntry]
    summary: GroupUsageSummary


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------
class ModeCreate(BaseModel):
    """Schema for creating a mode.

    Attributes:
        description: Mode description, unique inside the group
        group_id: Owning mode group
    """

    description: str
    group_id: str


class ModeUpdate(BaseModel):
    """Schema for patching a mode; omitted fields are left unchanged."""

    description: Optional[str] = None
    group_id: Optional[str] = None


class ModeMove(BaseModel):
    """Target of a mode move."""

    target_group_id: str


class ModeBulkCreate(BaseModel):
    """Several mode descriptions for one group."""

    descriptions: list[str]
    group_id: str


class ModeResponse(BaseModel):
    """Schema for a mode."""

    id: str
    group_id: str
    description: str
    is_system: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ModeMoved(BaseModel):
    """Result of moving a mode between groups."""

    mode: ModeResponse
    source_group: NamedRef
    target_group: NamedRef


class ModeUsageEntry(BaseModel):
    """One mode with the group it belongs to."""

    id: str
    description: str
    group: NamedRef
    is_default: bool
    created_at: datetime
    updated_at: Optional[datetime] = None


class ModeUsageSummary(BaseModel):
    """Mode totals split by default and custom groups."""

    total_modes: int
    default_modes: int
    custom_modes: int
    groups_with_modes: int
    total_groups: int


class ModeUsageStats(BaseModel):
    """Every mode ordered by group name and description, plus totals."""

    modes: list[ModeUsageEntry]
    summary: ModeUsageSummary


# ---------------------------------------------------------------------------
# States
# ---------------------------------------------------------------------------
class StateInput(BaseModel):
    """Code and description of a state to create in bulk."""

    code: int
    description: str


class StateCreate(BaseModel):
    """Schema for creating a state.

    Attributes:
        code: Machine state code (0-9999), unique inside the group
        description: State description, unique inside the group
        group_id: Owning state group
    """

    code: int
    description: str
    group_id: str


class StateUpdate(BaseModel):
    """Schema for patching a state; omitted fields are left unchanged."""

    code: Optional[int] = None
    description: Optional[str] = None
    group_id: Optional[str] = None


class StateBulkCreate(BaseModel):
    """Several states for one group."""

    states: list[StateInput]
    group_id: str


class StateResponse(BaseModel):
    """Schema for a state."""

    id: str
    group_id: str
    code: int
    description: str
    is_system: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class CodeRange(BaseModel):
    """Inclusive code window inspected for availability."""

    min_code: int
    max_code: int
    total_range: int


class AvailableCodes(BaseModel):
    """Used and free state codes of a group inside a code window.

    Attributes:
        group_id: Inspected state group
        group_name: Name of the state group
        code_range: Window bounds and size
        used_codes: Codes already taken, ascending
        available_codes: Free codes, ascending
        used_count: Number of used codes
        available_count: Number of free codes
        usage_percentage: Share of the window in use, rounded to 2 decimals
    """

    group_id: str
    group_name: str
    code_range: CodeRange
    used_codes: list[int]
    available_codes: list[int]
    used_count: int
    available_count: int
    usage_percentage: float = Field(..., ge=0, le=100)


# ---------------------------------------------------------------------------
# Bulk creation
# ---------------------------------------------------------------------------
class BulkCreateResult(BaseModel, Generic[ItemT]):
    """Aggregate outcome of a bulk item creation."""

    group_id: str
    created: list[ItemT] = []
    failed: list[BulkFailure] = []
    created_count: int = 0
    failed_count: int = 0


class CodeSpan(BaseModel):
    """Lowest and highest code in use and the width between them."""

    min_code: int
    max_code: int
    code_span: int


class StateGroupUsage(BaseModel):
    """States of one group with the span of codes they occupy.

    Attributes:
        id: State group ID
        name: State group name
        description: State group description
        is_system: Seeded default group
        state_count: Number of states in the group
        code_range: Span of used codes, None for an empty group
        states: States ordered by code
    """

    id: str
    name: str
    description: str
    is_system: bool
    state_count: int
    code_range: Optional[CodeSpan] = None
    states: list[StateResponse] = []


class StateUsageSummary(BaseModel):
    """State totals across all state groups."""

    total_states: int
    total_groups: int
    groups_with_states: int
    default_states: int
    custom_states: int
    overall_code_range: Optional[CodeSpan] = None


class StateUsageStats(BaseModel):
    """Per-group state listings plus totals."""

    groups: list[StateGroupUsage]
    summary: StateUsageSummary
