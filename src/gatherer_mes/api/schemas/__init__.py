"""Pydantic schemas for gatherer-mes.

This module provides the result envelope plus all request and response
schemas, organized by domain model.
"""

from gatherer_mes.api.schemas.association import (
    AssignRequest,
    Assignment,
    BulkAssignRequest,
    BulkAssignResult,
)
from gatherer_mes.api.schemas.classification import (
    AvailableCodes,
    BulkCreateResult,
    CodeRange,
    CodeSpan,
    GroupContext,
    GroupCreate,
    GroupDeleted,
    GroupResponse,
    GroupUpdate,
    GroupUsageEntry,
    GroupUsageStats,
    GroupUsageSummary,
    ModeBulkCreate,
    ModeCreate,
    ModeMove,
    ModeMoved,
    ModeResponse,
    ModeUpdate,
    ModeUsageEntry,
    ModeUsageStats,
    ModeUsageSummary,
    StateBulkCreate,
    StateCreate,
    StateGroupUsage,
    StateInput,
    StateResponse,
    StateUpdate,
    StateUsageStats,
    StateUsageSummary,
)
from gatherer_mes.api.schemas.common import (
    BulkFailure,
    NamedRef,
    OperationResult,
    ResultStatus,
)
from gatherer_mes.api.schemas.equipment import (
    EquipmentCreate,
    EquipmentDeleted,
    EquipmentMetadataUpdate,
    EquipmentResponse,
    EquipmentSummary,
    EquipmentUpdate,
)
from gatherer_mes.api.schemas.equipment_type import (
    EquipmentTypeCreate,
    EquipmentTypeResponse,
    EquipmentTypeUpdate,
)

__all__ = [
    # Common
    "BulkFailure",
    "NamedRef",
    "OperationResult",
    "ResultStatus",
    # Equipment types
    "EquipmentTypeCreate",
    "EquipmentTypeResponse",
    "EquipmentTypeUpdate",
    # Equipment
    "EquipmentCreate",
    "EquipmentDeleted",
    "EquipmentMetadataUpdate",
    "EquipmentResponse",
    "EquipmentSummary",
    "EquipmentUpdate",
    # Groups
    "GroupContext",
    "GroupCreate",
    "GroupDeleted",
    "GroupResponse",
    "GroupUpdate",
    "GroupUsageEntry",
    "GroupUsageStats",
    "GroupUsageSummary",
    # Modes
    "ModeBulkCreate",
    "ModeCreate",
    "ModeMove",
    "ModeMoved",
    "ModeResponse",
    "ModeUpdate",
    "ModeUsageEntry",
    "ModeUsageStats",
    "ModeUsageSummary",
    # States
    "AvailableCodes",
    "CodeRange",
    "CodeSpan",
    "StateBulkCreate",
    "StateCreate",
    "StateGroupUsage",
    "StateInput",
    "StateResponse",
    "StateUpdate",
    "StateUsageStats",
    "StateUsageSummary",
    # Bulk and associations
    "AssignRequest",
    "Assignment",
    "BulkAssignRequest",
    "BulkAssignResult",
    "BulkCreateResult",
]
