"""SQLAlchemy ORM models for the gatherer-mes core schema."""

from gatherer_mes.db.models.base import Base, new_id, utc_now
from gatherer_mes.db.models.equipment import Equipment, EquipmentType
from gatherer_mes.db.models.mode import EquipmentModeGroup, Mode, ModeGroup
from gatherer_mes.db.models.state import EquipmentStateGroup, State, StateGroup

__all__ = [
    # Base
    "Base",
    "new_id",
    "utc_now",
    # Models
    "EquipmentType",
    "Equipment",
    "ModeGroup",
    "Mode",
    "EquipmentModeGroup",
    "StateGroup",
    "State",
    "EquipmentStateGroup",
]
