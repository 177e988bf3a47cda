"""Equipment type REST API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from gatherer_mes.api.deps import get_equipment_type_service, respond
from gatherer_mes.api.schemas.common import OperationResult
from gatherer_mes.api.schemas.equipment_type import (
    EquipmentTypeCreate,
    EquipmentTypeResponse,
    EquipmentTypeUpdate,
)
from gatherer_mes.services.equipment_type import EquipmentTypeService

router = APIRouter(prefix="/api/v1/equipment-types", tags=["equipment-types"])


@router.get("/", response_model=list[EquipmentTypeResponse])
async def list_equipment_types(
    term: Optional[str] = Query(None, description="Case-insensitive name filter"),
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> list[EquipmentTypeResponse]:
    """List equipment types ordered by name, optionally filtered by ``term``."""
    if term:
        return await service.search(term)
    return await service.list()


@router.get("/by-name/{name}", response_model=OperationResult[EquipmentTypeResponse])
async def get_equipment_type_by_name(
    name: str,
    response: Response,
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> OperationResult:
    """Get an equipment type by name (case-insensitive)."""
    return respond(await service.get_by_name(name), response)


@router.get("/{type_id}", response_model=OperationResult[EquipmentTypeResponse])
async def get_equipment_type(
    type_id: str,
    response: Response,
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> OperationResult:
    """Get a single equipment type with its equipment count."""
    return respond(await service.get_by_id(type_id), response)


@router.post("/", response_model=OperationResult[EquipmentTypeResponse])
async def create_equipment_type(
    data: EquipmentTypeCreate,
    response: Response,
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> OperationResult:
    """Create an equipment type.

    Example Request:
        ```json
        {"name": "work center"}
        ```
    """
    result = await service.create(data.name)
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.put("/{type_id}", response_model=OperationResult[EquipmentTypeResponse])
async def rename_equipment_type(
    type_id: str,
    data: EquipmentTypeUpdate,
    response: Response,
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> OperationResult:
    """Rename an equipment type."""
    return respond(await service.update(type_id, data.name), response)


@router.delete("/{type_id}", response_model=OperationResult[EquipmentTypeResponse])
async def delete_equipment_type(
    type_id: str,
    response: Response,
    force_delete: bool = Query(False, description="Attempt the delete even if in use"),
    service: EquipmentTypeService = Depends(get_equipment_type_service),
) -> OperationResult:
    """Delete an equipment type.

    Default types are refused with 403; in-use types with 409.
    """
    return respond(await service.delete(type_id, force=force_delete), response)
