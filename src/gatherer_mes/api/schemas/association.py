"""Pydantic schemas for equipment ↔ group assignments."""

from pydantic import BaseModel


class AssignRequest(BaseModel):
    """Equipment to attach to a group."""

    equipment_id: str


class BulkAssignRequest(BaseModel):
    """Several equipment ids to attach to a group."""

    equipment_ids: list[str]


class Assignment(BaseModel):
    """A single equipment ↔ group pair.

    Attributes:
        equipment_id: Assigned equipment
        group_id: Mode or state group
    """

    equipment_id: str
    group_id: str


class BulkAssignResult(BaseModel):
    """Partition of a bulk assignment request.

    Attributes:
        group_id: Target group
        assigned_equipment_ids: Newly assigned, in request order
        skipped_equipment_ids: Already assigned before the request
        invalid_equipment_ids: Unknown ids, dropped from the request
    """

    group_id: str
    assigned_equipment_ids: list[str] = []
    skipped_equipment_ids: list[str] = []
    invalid_equipment_ids: list[str] = []
    assigned_count: int = 0
    skipped_count: int = 0
    invalid_count: int = 0
