"""Equipment hierarchy REST API endpoints."""

from typing import Optional

from fastapi import APIRouter, Depends, Query, Response, status

from gatherer_mes.api.deps import get_equipment_service, respond
from gatherer_mes.api.schemas.common import OperationResult
from gatherer_mes.api.schemas.equipment import (
    EquipmentCreate,
    EquipmentDeleted,
    EquipmentMetadataUpdate,
    EquipmentResponse,
    EquipmentUpdate,
)
from gatherer_mes.db.repositories.equipment import EquipmentNode
from gatherer_mes.services.equipment import EquipmentService

router = APIRouter(prefix="/api/v1/equipment", tags=["equipment"])


@router.get("/", response_model=list[EquipmentResponse])
async def list_equipment(
    service: EquipmentService = Depends(get_equipment_service),
) -> list[EquipmentResponse]:
    """List all equipment ordered by type name, then name."""
    return await service.list()


@router.get("/tree", response_model=list[EquipmentNode])
async def get_equipment_tree(
    service: EquipmentService = Depends(get_equipment_service),
) -> list[EquipmentNode]:
    """Get the full hierarchy as a nested tree.

    Example Response:
        ```json
        [
            {
                "id": "5d0c...",
                "parent_id": null,
                "name": "Plant 1",
                "type_name": "site",
                "enabled": true,
                "children": [
                    {"id": "9a41...", "parent_id": "5d0c...", "name": "Line 1",
                     "type_name": "line", "enabled": true, "children": []}
                ]
            }
        ]
        ```
    """
    return await service.get_tree()


@router.get("/exists")
async def equipment_exists(
    name: str = Query(..., description="Equipment name"),
    parent_id: Optional[str] = Query(None),
    type_id: Optional[str] = Query(None),
    service: EquipmentService = Depends(get_equipment_service),
) -> dict[str, bool]:
    """Check whether equipment with a name exists, optionally under a parent and type."""
    return {"exists": await service.exists_by_name_parent_type(name, parent_id, type_id)}


@router.get("/{equipment_id}", response_model=OperationResult[EquipmentResponse])
async def get_equipment(
    equipment_id: str,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Get one equipment node with its type and parent resolved."""
    return respond(await service.get_by_id(equipment_id), response)


@router.get("/{equipment_id}/children", response_model=OperationResult[list[EquipmentResponse]])
async def get_equipment_children(
    equipment_id: str,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Get the direct children of a node."""
    return respond(await service.get_children(equipment_id), response)


@router.get(
    "/{equipment_id}/ancestors", response_model=OperationResult[list[EquipmentResponse]]
)
async def get_equipment_ancestors(
    equipment_id: str,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Get the ancestors of a node, from its parent up to the root."""
    return respond(await service.get_ancestors(equipment_id), response)


@router.post("/", response_model=OperationResult[EquipmentResponse])
async def create_equipment(
    data: EquipmentCreate,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Create an equipment node.

    Example Request:
        ```json
        {
            "name": "Line 2",
            "type_id": "2f1e...",
            "parent_id": "5d0c...",
            "metadata": {"vendor": "ACME"}
        }
        ```
    """
    result = await service.create(
        name=data.name,
        type_id=data.type_id,
        parent_id=data.parent_id,
        enabled=data.enabled,
        metadata=data.metadata,
    )
    return respond(result, response, success_status=status.HTTP_201_CREATED)


@router.patch("/{equipment_id}", response_model=OperationResult[EquipmentResponse])
async def update_equipment(
    equipment_id: str,
    data: EquipmentUpdate,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Patch an equipment node.

    Only fields present in the body are applied; ``"parent_id": null``
    moves the node to the root level.
    """
    return respond(await service.update(equipment_id, data), response)


@router.put("/{equipment_id}/metadata", response_model=OperationResult[EquipmentResponse])
async def set_equipment_metadata(
    equipment_id: str,
    data: EquipmentMetadataUpdate,
    response: Response,
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Replace the metadata document of a node."""
    return respond(await service.set_metadata(equipment_id, data.metadata), response)


@router.delete("/{equipment_id}", response_model=OperationResult[EquipmentDeleted])
async def delete_equipment(
    equipment_id: str,
    response: Response,
    force_delete: bool = Query(False, description="Orphan children instead of refusing"),
    service: EquipmentService = Depends(get_equipment_service),
) -> OperationResult:
    """Delete an equipment node.

    Nodes with children are refused with 409 unless ``force_delete`` is set,
    in which case the direct children become root nodes.
    """
    return respond(await service.delete(equipment_id, force=force_delete), response)
