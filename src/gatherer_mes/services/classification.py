"""Group operations shared by the mode and state subsystems.

:class:`ClassificationGroupService` implements everything that concerns the
groups themselves (creation, protection, forced deletion, context and usage
reporting). ``ModeService`` and ``StateService`` extend it with their item
operations.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Optional

import structlog
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.classification import (
    GroupContext,
    GroupDeleted,
    GroupResponse,
    GroupUsageEntry,
    GroupUsageStats,
    GroupUsageSummary,
)
from gatherer_mes.api.schemas.common import ResultStatus
from gatherer_mes.core.exceptions import (
    ConflictError,
    DependencyError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
)
from gatherer_mes.db.models.mode import GROUP_NAME_MAX_LENGTH
from gatherer_mes.db.repositories.classification import ClassificationGroupRepository
from gatherer_mes.services.association import AssociationManager
from gatherer_mes.services.base import BaseService, Outcome, clean_text, operation

logger = structlog.get_logger(__name__)

GROUP_NAME_MIN_LENGTH = 2
GROUP_DESCRIPTION_MIN_LENGTH = 5
GROUP_DESCRIPTION_MAX_LENGTH = 2048
ITEM_DESCRIPTION_MIN_LENGTH = 2
ITEM_DESCRIPTION_MAX_LENGTH = 2048


class ClassificationGroupService(BaseService, ABC):
    """Group lifecycle for one classification subsystem.

    Subclasses set the repositories and the labels used in messages:

    - ``group_label``: "mode group" / "state group"
    - ``item_label``: "mode" / "state"
    - ``item_schema``: response schema of the items held by a group
    """

    group_label: str = "group"
    item_label: str = "item"
    item_schema: type[BaseModel] = BaseModel

    def __init__(
        self,
        session: AsyncSession,
        groups: ClassificationGroupRepository,
        associations: AssociationManager,
    ) -> None:
        super().__init__(session)
        self.groups = groups
        self.associations = associations

    @property
    def _group_title(self) -> str:
        return self.group_label.capitalize()

    async def _require_group(self, group_id: str) -> Any:
        group = await self.groups.get_by_id(group_id)
        if group is None:
            raise NotFoundError(f"{self._group_title} not found")
        return group

    @abstractmethod
    async def _list_items(self, group_id: str) -> list[Any]:
        """Items of a group in display order."""

    def _clean_group_name(self, name: Optional[str]) -> str:
        return clean_text(
            name, f"{self._group_title} name", GROUP_NAME_MIN_LENGTH, GROUP_NAME_MAX_LENGTH
        )

    def _clean_group_description(self, description: Optional[str]) -> str:
        return clean_text(
            description,
            f"{self._group_title} description",
            GROUP_DESCRIPTION_MIN_LENGTH,
            GROUP_DESCRIPTION_MAX_LENGTH,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_groups(self) -> list[GroupResponse]:
        """All groups ordered by name."""
        return [GroupResponse.model_validate(g) for g in await self.groups.list_ordered()]

    async def search_groups(self, term: Optional[str] = None) -> list[GroupResponse]:
        """Groups whose name or description contains ``term`` (case-insensitive)."""
        term = term.strip() if term else None
        return [GroupResponse.model_validate(g) for g in await self.groups.search(term)]

    async def group_exists(self, name: str) -> bool:
        cleaned = (name or "").strip()
        if not cleaned:
            return False
        return await self.groups.name_exists(cleaned)

    @operation("Group retrieved successfully", atomic=False)
    async def get_group(self, group_id: str) -> Outcome:
        group = await self._require_group(group_id)
        return Outcome(
            data=GroupResponse.model_validate(group),
            message=f"{self._group_title} retrieved successfully",
        )

    @operation("Group retrieved successfully", atomic=False)
    async def get_group_by_name(self, name: str) -> Outcome:
        group = await self.groups.get_by_name((name or "").strip())
        if group is None:
            raise NotFoundError(f"{self._group_title} not found")
        return Outcome(
            data=GroupResponse.model_validate(group),
            message=f"{self._group_title} retrieved successfully",
        )

    @operation("Group retrieved successfully", atomic=False)
    async def get_group_with_context(self, group_id: str) -> Outcome:
        """A group with its items and assigned equipment.

        Returns:
            GroupContext with ``items``, ``equipment`` and both counts
        """
        group = await self._require_group(group_id)
        return Outcome(
            data=await self._context(group),
            message=f"{self._group_title} retrieved successfully",
        )

    @operation("Group retrieved successfully", atomic=False)
    async def get_group_with_context_by_name(self, name: str) -> Outcome:
        """Same as :meth:`get_group_with_context`, looked up by exact (trimmed) name."""
        cleaned = (name or "").strip()
        if not cleaned:
            raise ValidationError(f"{self._group_title} name cannot be empty")
        group = await self.groups.get_by_name(cleaned)
        if group is None:
            raise NotFoundError(f"{self._group_title} not found")
        return Outcome(
            data=await self._context(group),
            message=f"{self._group_title} retrieved successfully",
        )

    async def _context(self, group: Any) -> GroupContext:
        items = [self.item_schema.model_validate(i) for i in await self._list_items(group.id)]
        equipment = await self.associations.equipment_for_group(group.id)
        return GroupContext[self.item_schema](
            **GroupResponse.model_validate(group).model_dump(),
            items=items,
            equipment=equipment,
            item_count=len(items),
            equipment_count=len(equipment),
        )

    @operation("Usage statistics retrieved successfully", atomic=False)
    async def get_usage_stats(self) -> GroupUsageStats:
        """Item and equipment counts for every group plus totals."""
        usage = await self.groups.usage()
        entries = [
            GroupUsageEntry(
                id=u.group.id,
                name=u.group.name,
                description=u.group.description,
                is_system=u.group.is_system,
                item_count=u.item_count,
                equipment_count=u.equipment_count,
                enabled_equipment_count=u.enabled_equipment_count,
            )
            for u in usage
        ]
        active = sum(1 for e in entries if e.equipment_count > 0)
        return GroupUsageStats(
            groups=entries,
            summary=GroupUsageSummary(
                total_groups=len(entries),
                active_groups=active,
                unused_groups=len(entries) - active,
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    @operation("Group created successfully", conflict="Group name already exists")
    async def create_group(self, name: str, description: str) -> Outcome:
        """Create a group.

        Args:
            name: Unique name, 2-255 characters after trimming
            description: 5-2048 characters after trimming
        """
        cleaned_name = self._clean_group_name(name)
        cleaned_description = self._clean_group_description(description)
        if await self.groups.name_exists(cleaned_name):
            raise ConflictError(f"{self._group_title} name already exists")

        group = await self.groups.create(name=cleaned_name, description=cleaned_description)
        logger.info("group_created", kind=self.group_label, group_id=group.id, name=cleaned_name)
        return Outcome(
            data=GroupResponse.model_validate(group),
            message=f"{self._group_title} created successfully",
        )

    @operation("Group updated successfully", conflict="Group name already exists")
    async def update_group(
        self,
        group_id: str,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> Outcome:
        """Patch a group's name and/or description.

        Omitted (None) fields are left unchanged; when both are omitted the
        result is NoChanges with the current group.
        """
        group = await self._require_group(group_id)
        values: dict[str, str] = {}
        if name is not None:
            values["name"] = self._clean_group_name(name)
            if await self.groups.name_exists(values["name"], exclude_id=group_id):
                raise ConflictError(f"{self._group_title} name already exists")
        if description is not None:
            values["description"] = self._clean_group_description(description)

        if not values:
            return Outcome(
                data=GroupResponse.model_validate(group),
                message=f"No changes were made to {self.group_label}",
                status=ResultStatus.NO_CHANGES,
            )

        group = await self.groups.update(group_id, **values)
        logger.info("group_updated", kind=self.group_label, group_id=group_id, fields=sorted(values))
        return Outcome(
            data=GroupResponse.model_validate(group),
            message=f"{self._group_title} updated successfully",
        )

    @operation(
        "Group deleted successfully",
        referential="Cannot delete group: dependencies still exist",
    )
    async def delete_group(self, group_id: str, force: bool = False) -> Outcome:
        """Delete a group.

        Args:
            group_id: Group to delete
            force: Also delete its associations and items; without it the
                delete is refused while either exists. Groups holding a
                default item are never deleted.

        Returns:
            GroupDeleted with the number of removed items and associations
        """
        group = await self._require_group(group_id)
        if group.is_system:
            raise ProtectedEntityError(f"Cannot delete default MES {self.group_label}")
        system_items = await self.groups.count_system_items(group_id)
        if system_items:
            raise ProtectedEntityError(
                f"Cannot delete {self.group_label}: it holds {system_items} "
                f"default MES {self.item_label}(s)"
            )

        item_count = await self.groups.count_items(group_id)
        link_count = await self.groups.count_associations(group_id)
        if (item_count or link_count) and not force:
            raise DependencyError(
                f"Cannot delete {self.group_label}: {item_count} {self.item_label}(s) and "
                f"{link_count} equipment association(s) exist. "
                "Use force_delete=true to override."
            )

        removed_links = await self.associations.links.delete_for_group(group_id)
        removed_items = await self.groups.delete_items(group_id)
        name = group.name
        await self.groups.delete(group_id)

        logger.info(
            "group_deleted",
            kind=self.group_label,
            group_id=group_id,
            deleted_items=removed_items,
            deleted_associations=removed_links,
        )
        return Outcome(
            data=GroupDeleted(
                id=group_id,
                name=name,
                deleted_items=removed_items,
                deleted_associations=removed_links,
            ),
            message=f"{self._group_title} deleted successfully",
        )
