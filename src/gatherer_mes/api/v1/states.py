"""State REST API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from gatherer_mes.api.deps import get_state_service, respond
from gatherer_mes.api.schemas.classification import (
    AvailableCodes,
    BulkCreateResult,
    StateBulkCreate,
    StateCreate,
    StateResponse,
    StateUpdate,
    StateUsageStats,
)
from gatherer_mes.api.schemas.common import OperationResult
from gatherer_mes.services.state import DEFAULT_CODE_WINDOW, StateService

router = APIRouter(prefix="/api/v1/states", tags=["states"])


@router.get("/", response_model=list[StateResponse])
async def list_states(
    term: Optional[str] = Query(None, description="Description substring"),
    group_id: Optional[str] = Query(None, description="Restrict to one state group"),
    code_min: Optional[int] = Query(None, description="Inclusive lower code bound"),
    code_max: Optional[int] = Query(None, description="Inclusive upper code bound"),
    service: StateService = Depends(get_state_service),
) -> list[StateResponse]:
    """List states, optionally filtered by description, group and code range."""
    if term or group_id or code_min is not None or code_max is not None:
        return await service.search_states(term, group_id, code_min, code_max)
    return await service.list_states()


@router.get("/exists")
async def state_exists(
    code: int = Query(...),
    group_id: str = Query(...),
    service: StateService = Depends(get_state_service),
) -> dict[str, bool]:
    """Check whether a state code is taken inside a group."""
    return {"exists": await service.state_exists(code, group_id)}


@router.get("/usage", response_model=OperationResult[StateUsageStats])
async def get_state_usage_stats(
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    """States of every group with code spans and overall totals."""
    return respond(await service.get_state_usage_stats(), response)


@router.get("/available-codes/{group_id}", response_model=OperationResult[AvailableCodes])
async def get_available_codes(
    group_id: str,
    response: Response,
    min_code: int = Query(DEFAULT_CODE_WINDOW[0]),
    max_code: int = Query(DEFAULT_CODE_WINDOW[1]),
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    """Used and free codes of a state group within ``[min_code, max_code]``."""
    return respond(await service.get_available_codes(group_id, min_code, max_code), response)


@router.get("/by-code", response_model=OperationResult[StateResponse])
async def get_state_by_code(
    response: Response,
    group_id: str = Query(...),
    code: int = Query(...),
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    return respond(await service.get_state_by_code(group_id, code), response)


@router.get("/by-description", response_model=OperationResult[StateResponse])
async def get_state_by_description(
    response: Response,
    group_id: str = Query(...),
    description: str = Query(...),
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    return respond(await service.get_state_by_description(group_id, description), response)


@router.get("/{state_id}", response_model=OperationResult[StateResponse])
async def get_state(
    state_id: str,
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    return respond(await service.get_state(state_id), response)


@router.post("/", response_model=OperationResult[StateResponse])
async def create_state(
    data: StateCreate,
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    result = await service.create_state(data.code, data.description, data.group_id)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.post("/bulk", response_model=OperationResult[BulkCreateResult[StateResponse]])
async def bulk_create_states(
    data: StateBulkCreate,
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    """Create several states in one group; failures are reported per entry."""
    result = await service.bulk_create_states(data.states, data.group_id)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.patch("/{state_id}", response_model=OperationResult[StateResponse])
async def update_state(
    state_id: str,
    data: StateUpdate,
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    result = await service.update_state(
        state_id, code=data.code, description=data.description, group_id=data.group_id
    )
    return respond(result, response)


@router.delete("/{state_id}", response_model=OperationResult[StateResponse])
async def delete_state(
    state_id: str,
    response: Response,
    service: StateService = Depends(get_state_service),
) -> OperationResult:
    return respond(await service.delete_state(state_id), response)
