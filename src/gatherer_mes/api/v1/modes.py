"""Mode REST API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from gatherer_mes.api.deps import get_mode_service, respond
from gatherer_mes.api.schemas.classification import (
    BulkCreateResult,
    ModeBulkCreate,
    ModeCreate,
    ModeMove,
    ModeMoved,
    ModeResponse,
    ModeUpdate,
    ModeUsageStats,
)
from gatherer_mes.api.schemas.common import OperationResult
from gatherer_mes.services.mode import ModeService

router = APIRouter(prefix="/api/v1/modes", tags=["modes"])


@router.get("/", response_model=list[ModeResponse])
async def list_modes(
    term: Optional[str] = Query(None, description="Description substring"),
    group_id: Optional[str] = Query(None, description="Restrict to one mode group"),
    service: ModeService = Depends(get_mode_service),
) -> list[ModeResponse]:
    """List modes, optionally filtered by description and group."""
    if term or group_id:
        return await service.search_modes(term, group_id)
    return await service.list_modes()


@router.get("/exists")
async def mode_exists(
    description: str = Query(...),
    group_id: str = Query(...),
    service: ModeService = Depends(get_mode_service),
) -> dict[str, bool]:
    """Check whether a mode description is taken inside a group."""
    return {"exists": await service.mode_exists(description, group_id)}


@router.get("/usage", response_model=OperationResult[ModeUsageStats])
async def get_mode_usage_stats(
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    """Every mode with its group plus default/custom totals."""
    return respond(await service.get_mode_usage_stats(), response)


@router.get("/by-group-name/{group_name}", response_model=OperationResult[list[ModeResponse]])
async def list_modes_by_group_name(
    group_name: str,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    """List the modes of the group called ``group_name``."""
    return respond(await service.list_modes_by_group_name(group_name), response)


@router.get("/by-description", response_model=OperationResult[ModeResponse])
async def get_mode_by_description(
    response: Response,
    group_id: str = Query(...),
    description: str = Query(...),
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    return respond(await service.get_mode_by_description(group_id, description), response)


@router.get("/{mode_id}", response_model=OperationResult[ModeResponse])
async def get_mode(
    mode_id: str,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    return respond(await service.get_mode(mode_id), response)


@router.post("/", response_model=OperationResult[ModeResponse])
async def create_mode(
    data: ModeCreate,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    result = await service.create_mode(data.description, data.group_id)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.post("/bulk", response_model=OperationResult[BulkCreateResult[ModeResponse]])
async def bulk_create_modes(
    data: ModeBulkCreate,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    """Create several modes in one group; failures are reported per description."""
    result = await service.bulk_create_modes(data.descriptions, data.group_id)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.patch("/{mode_id}", response_model=OperationResult[ModeResponse])
async def update_mode(
    mode_id: str,
    data: ModeUpdate,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    result = await service.update_mode(
        mode_id, description=data.description, group_id=data.group_id
    )
    return respond(result, response)


@router.post("/{mode_id}/move", response_model=OperationResult[ModeMoved])
async def move_mode(
    mode_id: str,
    data: ModeMove,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    """Move a custom mode into another mode group."""
    return respond(await service.move_mode(mode_id, data.target_group_id), response)


@router.delete("/{mode_id}", response_model=OperationResult[ModeResponse])
async def delete_mode(
    mode_id: str,
    response: Response,
    service: ModeService = Depends(get_mode_service),
) -> OperationResult:
    return respond(await service.delete_mode(mode_id), response)
