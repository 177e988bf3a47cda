"""Repository for the equipment hierarchy with tree operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional, Sequence

from pydantic import BaseModel, ConfigDict
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from gatherer_mes.db.models import Equipment, EquipmentType
from gatherer_mes.db.repositories.base import BaseRepository


class EquipmentNode(BaseModel):
    """Nested equipment structure with children.

    This model represents a node in the equipment tree,
    including all descendant nodes.
    """

    id: str
    parent_id: str | None
    name: str
    type_name: str
    enabled: bool
    children: list[EquipmentNode] = []

    model_config = ConfigDict(from_attributes=True)


@dataclass
class ResolvedEquipment:
    """Equipment row joined with its type name and parent name."""

    equipment: Equipment
    type_name: str
    parent_name: Optional[str]


class EquipmentRepository(BaseRepository[Equipment]):
    """Repository for Equipment with tree-specific operations.

    Provides methods for navigating and querying the parent/child
    relationships between equipment nodes.
    """

    def __init__(self, session: AsyncSession) -> None:
        """Initialize equipment repository.

        Args:
            session: SQLAlchemy async session for database operations
        """
        super().__init__(session, Equipment)

    def _resolved_select(self):
        parent = aliased(Equipment)
        return (
            select(Equipment, EquipmentType.name, parent.name)
            .join(EquipmentType, EquipmentType.id == Equipment.type_id)
            .outerjoin(parent, parent.id == Equipment.parent_id)
            .execution_options(populate_existing=True)
        )

    async def list_resolved(
        self, ids: Optional[Sequence[str]] = None
    ) -> list[ResolvedEquipment]:
        """List equipment ordered by type name, then equipment name.

        Args:
            ids: Restrict the listing to these ids when given
        """
        stmt = self._resolved_select().order_by(EquipmentType.name, Equipment.name)
        if ids is not None:
            stmt = stmt.where(Equipment.id.in_(list(ids)))
        result = await self.session.execute(stmt)
        return [ResolvedEquipment(row[0], row[1], row[2]) for row in result.all()]

    async def get_resolved(self, equipment_id: str) -> Optional[ResolvedEquipment]:
        """Load one equipment row with its type and parent names.

        Args:
            equipment_id: ID of the equipment

        Returns:
            ResolvedEquipment or None if the id is unknown
        """
        stmt = self._resolved_select().where(Equipment.id == equipment_id)
        row = (await self.session.execute(stmt)).one_or_none()
        if row is None:
            return None
        return ResolvedEquipment(row[0], row[1], row[2])

    async def exists_by_name_parent_type(
        self,
        name: str,
        parent_id: Optional[str] = None,
        type_id: Optional[str] = None,
    ) -> bool:
        """Check whether equipment with the name exists.

        Args:
            name: Equipment name (trimmed)
            parent_id: Restrict to children of this parent when given
            type_id: Restrict to this type when given
        """
        stmt = select(func.count()).select_from(Equipment).where(Equipment.name == name)
        if parent_id is not None:
            stmt = stmt.where(Equipment.parent_id == parent_id)
        if type_id is not None:
            stmt = stmt.where(Equipment.type_id == type_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def sibling_name_taken(
        self,
        name: str,
        parent_id: Optional[str],
        type_id: str,
        exclude_id: Optional[str] = None,
    ) -> bool:
        """Check the sibling uniqueness rule for a (parent, type, name) triple.

        Root nodes (``parent_id`` None) are compared against other roots.
        """
        stmt = select(func.count()).select_from(Equipment).where(
            Equipment.name == name,
            Equipment.type_id == type_id,
        )
        if parent_id is None:
            stmt = stmt.where(Equipment.parent_id.is_(None))
        else:
            stmt = stmt.where(Equipment.parent_id == parent_id)
        if exclude_id is not None:
            stmt = stmt.where(Equipment.id != exclude_id)
        result = await self.session.execute(stmt)
        return result.scalar_one() > 0

    async def count_children(self, equipment_id: str) -> int:
        """Number of direct children of a node."""
        stmt = select(func.count()).select_from(Equipment).where(
            Equipment.parent_id == equipment_id
        )
        result = await self.session.execute(stmt)
        return result.scalar_one()

    async def children_clashing_with_roots(self, equipment_id: str) -> list[str]:
        """Names of direct children that would collide with a root node.

        A child collides when a root of the same type already uses its name,
        so it cannot be moved to the root level.
        """
        child = aliased(Equipment)
        root = aliased(Equipment)
        stmt = (
            select(child.name)
            .join(
                root,
                (root.name == child.name)
                & (root.type_id == child.type_id)
                & root.parent_id.is_(None),
            )
            .where(child.parent_id == equipment_id)
            .order_by(child.name)
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def orphan_children(self, equipment_id: str) -> int:
        """Move the direct children of a node to the root level.

        Args:
            equipment_id: ID of the parent being removed

        Returns:
            Number of children re-parented
        """
        stmt = (
            update(Equipment)
            .where(Equipment.parent_id == equipment_id)
            .values(parent_id=None, updated_at=func.now())
            .execution_options(synchronize_session="fetch")
        )
        result = await self.session.execute(stmt)
        return result.rowcount or 0

    async def _parent_map(self) -> dict[str, Optional[str]]:
        result = await self.session.execute(select(Equipment.id, Equipment.parent_id))
        return {row[0]: row[1] for row in result.all()}

    async def is_descendant(self, node_id: str, candidate_id: str) -> bool:
        """Check whether ``candidate_id`` sits below ``node_id`` in the tree.

        Loads the (id, parent_id) pairs once and walks up from the candidate.

        Args:
            node_id: Potential ancestor
            candidate_id: Node whose ancestor chain is inspected
        """
        parents = await self._parent_map()
        current = parents.get(candidate_id)
        seen: set[str] = set()
        while current is not None and current not in seen:
            if current == node_id:
                return True
            seen.add(current)
            current = parents.get(current)
        return False

    async def get_tree(self) -> list[EquipmentNode]:
        """Get the complete equipment hierarchy as a nested tree structure.

        Returns:
            List of root-level nodes with nested children, ordered by name

        Example:
            [
                EquipmentNode(
                    id="...", name="Plant 1", type_name="site",
                    children=[
                        EquipmentNode(id="...", name="Line 1", type_name="line", children=[]),
                    ]
                )
            ]
        """
        stmt = (
            select(Equipment, EquipmentType.name)
            .join(EquipmentType, EquipmentType.id == Equipment.type_id)
            .order_by(Equipment.name)
        )
        result = await self.session.execute(stmt)
        rows = result.all()

        # Build a map of id -> node for quick lookups
        node_map: dict[str, dict[str, Any]] = {}
        for equipment, type_name in rows:
            node_map[equipment.id] = {
                "id": equipment.id,
                "parent_id": equipment.parent_id,
                "name": equipment.name,
                "type_name": type_name,
                "enabled": equipment.enabled,
                "children": [],
            }

        # Build the tree by connecting parents to children
        roots: list[dict[str, Any]] = []
        for equipment, _ in rows:
            node_data = node_map[equipment.id]
            if equipment.parent_id is None:
                roots.append(node_data)
            elif equipment.parent_id in node_map:
                node_map[equipment.parent_id]["children"].append(node_data)

        def dict_to_node(data: dict[str, Any]) -> EquipmentNode:
            children = [dict_to_node(child) for child in data["children"]]
            return EquipmentNode(**{**data, "children": children})

        return [dict_to_node(root) for root in roots]

    async def get_ancestors(self, equipment_id: str) -> list[Equipment]:
        """Get all ancestors of a node up to the root.

        Loads all nodes in one query, then walks up the parent chain in
        memory (avoids N+1 queries).

        Args:
            equipment_id: ID of the child node

        Returns:
            List of ancestor nodes ordered from parent to root
        """
        result = await self.session.execute(select(Equipment))
        node_map: dict[str, Equipment] = {n.id: n for n in result.scalars().all()}

        ancestors: list[Equipment] = []
        seen: set[str] = {equipment_id}
        current = node_map.get(equipment_id)
        while current and current.parent_id is not None:
            parent = node_map.get(current.parent_id)
            if parent is None or parent.id in seen:
                break
            ancestors.append(parent)
            seen.add(parent.id)
            current = parent

        return ancestors

    async def get_children(self, parent_id: str | None) -> list[Equipment]:
        """Get direct children of a node.

        Args:
            parent_id: ID of the parent node, or None for root nodes

        Returns:
            List of immediate child nodes ordered by name
        """
        if parent_id is None:
            condition = Equipment.parent_id.is_(None)
        else:
            condition = Equipment.parent_id == parent_id
        stmt = select(Equipment).where(condition).order_by(Equipment.name)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
