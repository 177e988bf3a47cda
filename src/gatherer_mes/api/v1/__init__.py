"""gatherer-mes API v1 endpoints."""

from gatherer_mes.api.v1.equipment import router as equipment_router
from gatherer_mes.api.v1.equipment_types import router as equipment_types_router
from gatherer_mes.api.v1.groups import mode_groups_router, state_groups_router
from gatherer_mes.api.v1.modes import router as modes_router
from gatherer_mes.api.v1.states import router as states_router

__all__ = [
    "equipment_router",
    "equipment_types_router",
    "mode_groups_router",
    "modes_router",
    "state_groups_router",
    "states_router",
]
