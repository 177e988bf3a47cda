"""Mode group and state group REST API endpoints.

Both classification subsystems expose the same group surface, so the router
is built by :func:`create_group_router` for each of them.
"""

from typing import Any, Callable, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from pydantic import BaseModel

from gatherer_mes.api.deps import get_mode_service, get_state_service, respond
from gatherer_mes.api.schemas.association import (
    AssignRequest,
    Assignment,
    BulkAssignRequest,
    BulkAssignResult,
)
from gatherer_mes.api.schemas.classification import (
    GroupContext,
    GroupCreate,
    GroupDeleted,
    GroupResponse,
    GroupUpdate,
    GroupUsageStats,
    ModeResponse,
    StateResponse,
)
from gatherer_mes.api.schemas.common import OperationResult
from gatherer_mes.api.schemas.equipment import EquipmentSummary
from gatherer_mes.services.classification import ClassificationGroupService


def create_group_router(
    prefix: str,
    tag: str,
    get_service: Callable[..., Any],
    item_schema: type[BaseModel],
) -> APIRouter:
    """Build the group endpoints for one classification subsystem.

    Args:
        prefix: URL prefix, e.g. "/api/v1/mode-groups"
        tag: OpenAPI tag
        get_service: Dependency returning the subsystem's service
        item_schema: Response schema of the group's items

    Returns:
        Configured APIRouter
    """
    router = APIRouter(prefix=prefix, tags=[tag])

    @router.get("/", response_model=list[GroupResponse])
    async def list_groups(
        term: Optional[str] = Query(None, description="Matches name or description"),
        service: ClassificationGroupService = Depends(get_service),
    ) -> list[GroupResponse]:
        """List groups ordered by name, optionally filtered by ``term``."""
        if term:
            return await service.search_groups(term)
        return await service.list_groups()

    @router.get("/usage", response_model=OperationResult[GroupUsageStats])
    async def get_usage_stats(
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Item and equipment counts for every group."""
        return respond(await service.get_usage_stats(), response)

    @router.get("/exists")
    async def group_exists(
        name: str = Query(...),
        service: ClassificationGroupService = Depends(get_service),
    ) -> dict[str, bool]:
        """Check whether a group with the name exists."""
        return {"exists": await service.group_exists(name)}

    @router.get("/by-name/{name}", response_model=OperationResult[GroupResponse])
    async def get_group_by_name(
        name: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        return respond(await service.get_group_by_name(name), response)

    @router.get(
        "/by-name/{name}/context",
        response_model=OperationResult[GroupContext[item_schema]],
    )
    async def get_group_with_context_by_name(
        name: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Get a group, looked up by name, with its items and assigned equipment."""
        return respond(await service.get_group_with_context_by_name(name), response)

    @router.get("/{group_id}", response_model=OperationResult[GroupResponse])
    async def get_group(
        group_id: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        return respond(await service.get_group(group_id), response)

    @router.get(
        "/{group_id}/context", response_model=OperationResult[GroupContext[item_schema]]
    )
    async def get_group_with_context(
        group_id: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Get a group with its items and assigned equipment."""
        return respond(await service.get_group_with_context(group_id), response)

    @router.post("/", response_model=OperationResult[GroupResponse])
    async def create_group(
        data: GroupCreate,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        result = await service.create_group(data.name, data.description)
        return respond(result, response, success_status=status.HTTP_201_CREATED)

    @router.patch("/{group_id}", response_model=OperationResult[GroupResponse])
    async def update_group(
        group_id: str,
        data: GroupUpdate,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        result = await service.update_group(
            group_id, name=data.name, description=data.description
        )
        return respond(result, response)

    @router.delete("/{group_id}", response_model=OperationResult[GroupDeleted])
    async def delete_group(
        group_id: str,
        response: Response,
        force_delete: bool = Query(False, description="Also delete items and associations"),
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Delete a group; the default group is refused with 403."""
        return respond(await service.delete_group(group_id, force=force_delete), response)

    # ------------------------------------------------------------------
    # Equipment membership
    # ------------------------------------------------------------------
    @router.get(
        "/{group_id}/equipment", response_model=OperationResult[list[EquipmentSummary]]
    )
    async def list_group_equipment(
        group_id: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Equipment assigned to the group, ordered by name."""
        return respond(await service.associations.list_equipment_for_group(group_id), response)

    @router.post("/{group_id}/equipment", response_model=OperationResult[Assignment])
    async def assign_equipment(
        group_id: str,
        data: AssignRequest,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        result = await service.associations.assign(data.equipment_id, group_id)
        return respond(result, response, success_status=status.HTTP_201_CREATED)

    @router.post("/{group_id}/equipment/bulk", response_model=OperationResult[BulkAssignResult])
    async def bulk_assign_equipment(
        group_id: str,
        data: BulkAssignRequest,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        """Assign several equipment nodes; already assigned ones are skipped."""
        return respond(
            await service.associations.bulk_assign(data.equipment_ids, group_id), response
        )

    @router.delete(
        "/{group_id}/equipment/{equipment_id}", response_model=OperationResult[Assignment]
    )
    async def unassign_equipment(
        group_id: str,
        equipment_id: str,
        response: Response,
        service: ClassificationGroupService = Depends(get_service),
    ) -> OperationResult:
        return respond(await service.associations.unassign(equipment_id, group_id), response)

    return router


mode_groups_router = create_group_router(
    "/api/v1/mode-groups", "mode-groups", get_mode_service, ModeResponse
)
state_groups_router = create_group_router(
    "/api/v1/state-groups", "state-groups", get_state_service, StateResponse
)
