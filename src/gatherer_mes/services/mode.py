"""Mode classification subsystem: mode groups and their modes."""

from __future__ import annotations

from typing import Any, Optional, Sequence

import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.classification import (
    BulkCreateResult,
    ModeMoved,
    ModeResponse,
    ModeUsageEntry,
    ModeUsageStats,
    ModeUsageSummary,
)
from gatherer_mes.api.schemas.common import BulkFailure, NamedRef, ResultStatus
from gatherer_mes.core.exceptions import (
    ConflictError,
    ErrorKind,
    MESError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
)
from gatherer_mes.db.models import Mode, ModeGroup
from gatherer_mes.db.repositories.classification import ModeGroupRepository, ModeRepository
from gatherer_mes.services.association import AssociationManager
from gatherer_mes.services.base import Outcome, clean_text, operation
from gatherer_mes.services.classification import (
    ITEM_DESCRIPTION_MAX_LENGTH,
    ITEM_DESCRIPTION_MIN_LENGTH,
    ClassificationGroupService,
)

logger = structlog.get_logger(__name__)

DUPLICATE_MESSAGE = "Mode description already exists in this mode group"
DUPLICATE_IN_TARGET_MESSAGE = "Mode description already exists in the target mode group"


class ModeService(ClassificationGroupService):
    """Mode groups, modes and equipment membership of mode groups."""

    group_label = "mode group"
    item_label = "mode"
    item_schema = ModeResponse

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session,
            groups=ModeGroupRepository(session),
            associations=AssociationManager.for_modes(session),
        )
        self.modes = ModeRepository(session)

    async def _list_items(self, group_id: str) -> list[Mode]:
        return await self.modes.list_by_group(group_id)

    async def _require_mode(self, mode_id: str) -> Mode:
        mode = await self.modes.get_by_id(mode_id)
        if mode is None:
            raise NotFoundError("Mode not found")
        return mode

    @staticmethod
    def _clean_mode_description(description: Optional[str]) -> str:
        return clean_text(
            description,
            "Mode description",
            ITEM_DESCRIPTION_MIN_LENGTH,
            ITEM_DESCRIPTION_MAX_LENGTH,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_modes(self) -> list[ModeResponse]:
        """All modes ordered by group name, then description."""
        return [ModeResponse.model_validate(m) for m in await self.modes.list_ordered()]

    async def list_modes_by_group(self, group_id: str) -> list[ModeResponse]:
        return [ModeResponse.model_validate(m) for m in await self.modes.list_by_group(group_id)]

    async def search_modes(
        self, term: Optional[str] = None, group_id: Optional[str] = None
    ) -> list[ModeResponse]:
        """Modes whose description contains ``term``, optionally inside one group."""
        term = term.strip() if term else None
        return [ModeResponse.model_validate(m) for m in await self.modes.search(term, group_id)]

    async def mode_exists(self, description: str, group_id: str) -> bool:
        cleaned = (description or "").strip()
        if not cleaned:
            return False
        return await self.modes.description_exists(group_id, cleaned)

    @operation("Mode retrieved successfully", atomic=False)
    async def get_mode(self, mode_id: str) -> ModeResponse:
        return ModeResponse.model_validate(await self._require_mode(mode_id))

    @operation("Mode retrieved successfully", atomic=False)
    async def get_mode_by_description(self, group_id: str, description: str) -> ModeResponse:
        mode = await self.modes.get_by_description(group_id, (description or "").strip())
        if mode is None:
            raise NotFoundError("Mode not found in specified mode group")
        return ModeResponse.model_validate(mode)

    @operation("Modes retrieved successfully", atomic=False)
    async def list_modes_by_group_name(self, group_name: str) -> Outcome:
        group = await self.groups.get_by_name((group_name or "").strip())
        if group is None:
            raise NotFoundError("Mode group not found")
        modes = [ModeResponse.model_validate(m) for m in await self.modes.list_by_group(group.id)]
        return Outcome(
            data=modes,
            message=f"Found {len(modes)} mode(s) for mode group: {group.name}",
        )

    @operation("Mode usage statistics retrieved successfully", atomic=False)
    async def get_mode_usage_stats(self) -> ModeUsageStats:
        """Every mode with its group, split into default and custom modes.

        A mode counts as default when its group is the seeded default group.
        """
        groups = {g.id: g for g in await self.groups.list_ordered()}
        entries: list[ModeUsageEntry] = []
        for mode in await self.modes.list_ordered():
            group = groups[mode.group_id]
            entries.append(
                ModeUsageEntry(
                    id=mode.id,
                    description=mode.description,
                    group=NamedRef(id=group.id, name=group.name),
                    is_default=group.is_system,
                    created_at=mode.created_at,
                    updated_at=mode.updated_at,
                )
            )
        default = sum(1 for e in entries if e.is_default)
        return ModeUsageStats(
            modes=entries,
            summary=ModeUsageSummary(
                total_modes=len(entries),
                default_modes=default,
                custom_modes=len(entries) - default,
                groups_with_modes=len({e.group.id for e in entries}),
                total_groups=len(groups),
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def _insert_mode(self, description: str, group_id: str) -> Mode:
        cleaned = self._clean_mode_description(description)
        if await self.modes.description_exists(group_id, cleaned):
            raise ConflictError(DUPLICATE_MESSAGE)
        return await self.modes.create(group_id=group_id, description=cleaned)

    @operation("Mode created successfully", conflict=DUPLICATE_MESSAGE)
    async def create_mode(self, description: str, group_id: str) -> ModeResponse:
        """Create a mode inside an existing mode group.

        Args:
            description: 2-2048 characters after trimming, unique in the group
            group_id: Owning mode group
        """
        await self._require_group(group_id)
        mode = await self._insert_mode(description, group_id)
        logger.info("mode_created", mode_id=mode.id, group_id=group_id)
        return ModeResponse.model_validate(mode)

    @operation("Mode updated successfully", conflict=DUPLICATE_IN_TARGET_MESSAGE)
    async def update_mode(
        self,
        mode_id: str,
        description: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> Any:
        """Patch a mode's description and/or group.

        Default modes may be renamed but never leave their group.
        """
        mode = await self._require_mode(mode_id)
        values: dict[str, str] = {}
        if group_id is not None and group_id != mode.group_id:
            if mode.is_system:
                raise ProtectedEntityError(f"Cannot move default MES mode: {mode.description}")
            await self._require_group(group_id)
            values["group_id"] = group_id
        if description is not None:
            values["description"] = self._clean_mode_description(description)

        if not values:
            return Outcome(
                data=ModeResponse.model_validate(mode),
                message="No changes were made to mode",
                status=ResultStatus.NO_CHANGES,
            )

        target_group = values.get("group_id", mode.group_id)
        target_description = values.get("description", mode.description)
        if await self.modes.description_exists(
            target_group, target_description, exclude_id=mode_id
        ):
            raise ConflictError(
                DUPLICATE_IN_TARGET_MESSAGE if "group_id" in values else DUPLICATE_MESSAGE
            )

        mode = await self.modes.update(mode_id, **values)
        logger.info("mode_updated", mode_id=mode_id, fields=sorted(values))
        return ModeResponse.model_validate(mode)

    @operation("Mode deleted successfully", referential="Mode could not be deleted")
    async def delete_mode(self, mode_id: str) -> ModeResponse:
        """Delete a custom mode; default modes are protected."""
        mode = await self._require_mode(mode_id)
        if mode.is_system:
            raise ProtectedEntityError(f"Cannot delete default MES mode: {mode.description}")

        payload = ModeResponse.model_validate(mode)
        await self.modes.delete(mode_id)
        logger.info("mode_deleted", mode_id=mode_id)
        return payload

    @operation("Mode moved successfully", conflict=DUPLICATE_IN_TARGET_MESSAGE)
    async def move_mode(self, mode_id: str, target_group_id: str) -> ModeMoved:
        """Move a mode into another mode group.

        Args:
            mode_id: Mode to move
            target_group_id: Destination group

        Returns:
            The moved mode with source and target group references
        """
        mode = await self._require_mode(mode_id)
        if mode.group_id == target_group_id:
            raise ValidationError("Mode is already in the target mode group")
        if mode.is_system:
            raise ProtectedEntityError(f"Cannot move default MES mode: {mode.description}")

        target: Optional[ModeGroup] = await self.groups.get_by_id(target_group_id)
        if target is None:
            raise NotFoundError("Target mode group not found")
        if await self.modes.description_exists(target_group_id, mode.description):
            raise ConflictError(DUPLICATE_IN_TARGET_MESSAGE)

        source: ModeGroup = await self._require_group(mode.group_id)
        source_ref = NamedRef(id=source.id, name=source.name)

        mode = await self.modes.update(mode_id, group_id=target_group_id)
        logger.info(
            "mode_moved", mode_id=mode_id, source_group_id=source.id, target_group_id=target.id
        )
        return ModeMoved(
            mode=ModeResponse.model_validate(mode),
            source_group=source_ref,
            target_group=NamedRef(id=target.id, name=target.name),
        )

    @operation("Bulk mode creation completed", conflict=DUPLICATE_MESSAGE)
    async def bulk_create_modes(
        self, descriptions: Optional[Sequence[str]], group_id: str
    ) -> Outcome:
        """Create several modes in one group.

        Each description is validated and inserted inside its own SAVEPOINT;
        failures are collected with their reason and do not affect the rest.

        Args:
            descriptions: Mode descriptions to create
            group_id: Owning mode group

        Returns:
            Outcome with a BulkCreateResult; Error status when nothing was created
        """
        if not descriptions:
            raise ValidationError("No mode descriptions provided")
        await self._require_group(group_id)

        created: list[ModeResponse] = []
        failed: list[BulkFailure] = []
        for description in descriptions:
            try:
                async with self.session.begin_nested():
                    mode = await self._insert_mode(description, group_id)
                created.append(ModeResponse.model_validate(mode))
            except MESError as exc:
                failed.append(BulkFailure(input=description, reason=exc.message))
            except IntegrityError:
                failed.append(BulkFailure(input=description, reason=DUPLICATE_MESSAGE))

        result = BulkCreateResult[ModeResponse](
            group_id=group_id,
            created=created,
            failed=failed,
            created_count=len(created),
            failed_count=len(failed),
        )
        logger.info(
            "modes_bulk_created", group_id=group_id, created=len(created), failed=len(failed)
        )

        if not created:
            return Outcome(
                data=result,
                message="No modes were created",
                status=ResultStatus.ERROR,
                error=ErrorKind.VALIDATION,
            )
        if failed:
            return Outcome(
                data=result,
                message=f"Partial success: {len(created)} created, {len(failed)} failed",
            )
        return Outcome(data=result, message=f"Successfully created {len(created)} mode(s)")
