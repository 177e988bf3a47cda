"""Repository pattern implementation for database access."""

from gatherer_mes.db.repositories.association import AssociationRepository
from gatherer_mes.db.repositories.base import BaseRepository
from gatherer_mes.db.repositories.classification import (
    ClassificationGroupRepository,
    GroupUsage,
    ModeGroupRepository,
    ModeRepository,
    StateGroupRepository,
    StateRepository,
)
from gatherer_mes.db.repositories.equipment import (
    EquipmentNode,
    EquipmentRepository,
    ResolvedEquipment,
)
from gatherer_mes.db.repositories.equipment_type import EquipmentTypeRepository

__all__ = [
    "AssociationRepository",
    "BaseRepository",
    "ClassificationGroupRepository",
    "EquipmentNode",
    "EquipmentRepository",
    "EquipmentTypeRepository",
    "GroupUsage",
    "ModeGroupRepository",
    "ModeRepository",
    "ResolvedEquipment",
    "StateGroupRepository",
    "StateRepository",
]
