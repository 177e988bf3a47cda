"""Entity services: every public operation returns an OperationResult or a list."""

from gatherer_mes.services.association import AssociationManager
from gatherer_mes.services.base import BaseService, Outcome, operation
from gatherer_mes.services.classification import ClassificationGroupService
from gatherer_mes.services.equipment import EquipmentService
from gatherer_mes.services.equipment_type import EquipmentTypeService
from gatherer_mes.services.mode import ModeService
from gatherer_mes.services.state import StateService

__all__ = [
    "AssociationManager",
    "BaseService",
    "ClassificationGroupService",
    "EquipmentService",
    "EquipmentTypeService",
    "ModeService",
    "Outcome",
    "StateService",
    "operation",
]
