"""State classification subsystem: state groups and their coded states."""

from __future__ import annotations

from typing import Any, Mapping, Optional, Sequence, Union

import pydantic
import structlog
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.classification import (
    AvailableCodes,
    BulkCreateResult,
    CodeRange,
    CodeSpan,
    StateGroupUsage,
    StateInput,
    StateResponse,
    StateUsageStats,
    StateUsageSummary,
)
from gatherer_mes.api.schemas.common import BulkFailure, ResultStatus
from gatherer_mes.core.exceptions import (
    ConflictError,
    ErrorKind,
    MESError,
    NotFoundError,
    ProtectedEntityError,
    ValidationError,
)
from gatherer_mes.db.models import State
from gatherer_mes.db.models.state import STATE_CODE_MAX, STATE_CODE_MIN
from gatherer_mes.db.repositories.classification import StateGroupRepository, StateRepository
from gatherer_mes.services.association import AssociationManager
from gatherer_mes.services.base import Outcome, clean_text, operation
from gatherer_mes.services.classification import (
    ITEM_DESCRIPTION_MAX_LENGTH,
    ITEM_DESCRIPTION_MIN_LENGTH,
    ClassificationGroupService,
)

logger = structlog.get_logger(__name__)

DEFAULT_CODE_WINDOW = (0, 100)
CODE_CONFLICT_MESSAGE = "State code already exists in this state group"
DESCRIPTION_CONFLICT_MESSAGE = "State description already exists in this state group"
STORE_CONFLICT_MESSAGE = "State code or description already exists in this state group"


def validate_code(code: Any) -> int:
    """Check a state code is an integer inside 0-9999.

    Raises:
        ValidationError: For missing, non-integer or out-of-range codes
    """
    if code is None:
        raise ValidationError("State code cannot be null")
    if isinstance(code, bool) or not isinstance(code, int):
        raise ValidationError("State code must be an integer")
    if not STATE_CODE_MIN <= code <= STATE_CODE_MAX:
        raise ValidationError(
            f"State code must be between {STATE_CODE_MIN} and {STATE_CODE_MAX}"
        )
    return code


def code_span(codes: Sequence[int]) -> Optional[CodeSpan]:
    """Lowest, highest and inclusive width of a set of codes; None when empty."""
    if not codes:
        return None
    low, high = min(codes), max(codes)
    return CodeSpan(min_code=low, max_code=high, code_span=high - low + 1)


class StateService(ClassificationGroupService):
    """State groups, states and equipment membership of state groups."""

    group_label = "state group"
    item_label = "state"
    item_schema = StateResponse

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(
            session,
            groups=StateGroupRepository(session),
            associations=AssociationManager.for_states(session),
        )
        self.states = StateRepository(session)

    async def _list_items(self, group_id: str) -> list[State]:
        return await self.states.list_by_group(group_id)

    async def _require_state(self, state_id: str) -> State:
        state = await self.states.get_by_id(state_id)
        if state is None:
            raise NotFoundError("State not found")
        return state

    @staticmethod
    def _clean_state_description(description: Optional[str]) -> str:
        return clean_text(
            description,
            "State description",
            ITEM_DESCRIPTION_MIN_LENGTH,
            ITEM_DESCRIPTION_MAX_LENGTH,
        )

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------
    async def list_states(self) -> list[StateResponse]:
        """All states ordered by group name, then code."""
        return [StateResponse.model_validate(s) for s in await self.states.list_ordered()]

    async def list_states_by_group(self, group_id: str) -> list[StateResponse]:
        return [
            StateResponse.model_validate(s) for s in await self.states.list_by_group(group_id)
        ]

    async def search_states(
        self,
        term: Optional[str] = None,
        group_id: Optional[str] = None,
        code_min: Optional[int] = None,
        code_max: Optional[int] = None,
    ) -> list[StateResponse]:
        """States filtered by description substring, group and inclusive code bounds."""
        term = term.strip() if term else None
        states = await self.states.search(term, group_id, code_min, code_max)
        return [StateResponse.model_validate(s) for s in states]

    async def state_exists(self, code: int, group_id: str) -> bool:
        return await self.states.code_exists(group_id, code)

    @operation("State retrieved successfully", atomic=False)
    async def get_state(self, state_id: str) -> StateResponse:
        return StateResponse.model_validate(await self._require_state(state_id))

    @operation("State retrieved successfully", atomic=False)
    async def get_state_by_code(self, group_id: str, code: int) -> StateResponse:
        state = await self.states.get_by_code(group_id, code)
        if state is None:
            raise NotFoundError("State not found in specified state group")
        return StateResponse.model_validate(state)

    @operation("State retrieved successfully", atomic=False)
    async def get_state_by_description(self, group_id: str, description: str) -> StateResponse:
        state = await self.states.get_by_description(group_id, (description or "").strip())
        if state is None:
            raise NotFoundError("State not found in specified state group")
        return StateResponse.model_validate(state)

    @operation("Available state codes retrieved successfully", atomic=False)
    async def get_available_codes(
        self,
        group_id: str,
        min_code: int = DEFAULT_CODE_WINDOW[0],
        max_code: int = DEFAULT_CODE_WINDOW[1],
    ) -> AvailableCodes:
        """Used and free codes of a group inside ``[min_code, max_code]``.

        Args:
            group_id: State group to inspect
            min_code: Inclusive lower bound, at least 0
            max_code: Inclusive upper bound, at most 9999 and above ``min_code``

        Returns:
            AvailableCodes with counts and the usage percentage
        """
        if min_code < STATE_CODE_MIN or max_code > STATE_CODE_MAX or min_code >= max_code:
            raise ValidationError(
                "Invalid code range: min must be >= 0, max must be <= 9999, and min < max"
            )
        group = await self._require_group(group_id)

        used = await self.states.used_codes(group_id, min_code, max_code)
        taken = set(used)
        available = [code for code in range(min_code, max_code + 1) if code not in taken]
        total = max_code - min_code + 1
        return AvailableCodes(
            group_id=group.id,
            group_name=group.name,
            code_range=CodeRange(min_code=min_code, max_code=max_code, total_range=total),
            used_codes=used,
            available_codes=available,
            used_count=len(used),
            available_count=len(available),
            usage_percentage=round(len(used) / total * 100, 2),
        )

    @operation("State usage statistics retrieved successfully", atomic=False)
    async def get_state_usage_stats(self) -> StateUsageStats:
        """States of every group with their code spans, plus overall totals."""
        groups = await self.groups.list_ordered()
        by_group: dict[str, list[StateResponse]] = {g.id: [] for g in groups}
        for state in await self.states.list_ordered():
            by_group[state.group_id].append(StateResponse.model_validate(state))

        entries = []
        for group in groups:
            states = by_group[group.id]
            entries.append(
                StateGroupUsage(
                    id=group.id,
                    name=group.name,
                    description=group.description,
                    is_system=group.is_system,
                    state_count=len(states),
                    code_range=code_span([s.code for s in states]),
                    states=states,
                )
            )

        total = sum(e.state_count for e in entries)
        default = sum(e.state_count for e in entries if e.is_system)
        return StateUsageStats(
            groups=entries,
            summary=StateUsageSummary(
                total_states=total,
                total_groups=len(entries),
                groups_with_states=sum(1 for e in entries if e.state_count),
                default_states=default,
                custom_states=total - default,
                overall_code_range=code_span(
                    [s.code for e in entries for s in e.states]
                ),
            ),
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------
    async def _insert_state(self, code: Any, description: str, group_id: str) -> State:
        checked = validate_code(code)
        cleaned = self._clean_state_description(description)
        if await self.states.code_exists(group_id, checked):
            raise ConflictError(CODE_CONFLICT_MESSAGE)
        if await self.states.description_exists(group_id, cleaned):
            raise ConflictError(DESCRIPTION_CONFLICT_MESSAGE)
        return await self.states.create(group_id=group_id, code=checked, description=cleaned)

    @operation("State created successfully", conflict=STORE_CONFLICT_MESSAGE)
    async def create_state(self, code: int, description: str, group_id: str) -> StateResponse:
        """Create a state inside an existing state group.

        Args:
            code: 0-9999, unique in the group
            description: 2-2048 characters after trimming, unique in the group
            group_id: Owning state group
        """
        await self._require_group(group_id)
        state = await self._insert_state(code, description, group_id)
        logger.info("state_created", state_id=state.id, group_id=group_id, code=state.code)
        return StateResponse.model_validate(state)

    @operation(
        "State updated successfully",
        conflict="State code or description already exists in the target state group",
    )
    async def update_state(
        self,
        state_id: str,
        code: Optional[int] = None,
        description: Optional[str] = None,
        group_id: Optional[str] = None,
    ) -> Any:
        """Patch a state's code, description and/or group.

        Uniqueness is checked against the group the state ends up in.
        Default states may be recoded or renamed but never leave their group.
        """
        state = await self._require_state(state_id)
        values: dict[str, Any] = {}
        if group_id is not None and group_id != state.group_id:
            if state.is_system:
                raise ProtectedEntityError(f"Cannot move default MES state: {state.description}")
            await self._require_group(group_id)
            values["group_id"] = group_id
        if code is not None:
            values["code"] = validate_code(code)
        if description is not None:
            values["description"] = self._clean_state_description(description)

        if not values:
            return Outcome(
                data=StateResponse.model_validate(state),
                message="No changes were made to state",
                status=ResultStatus.NO_CHANGES,
            )

        target_group = values.get("group_id", state.group_id)
        where = "the target" if "group_id" in values else "this"
        if await self.states.code_exists(
            target_group, values.get("code", state.code), exclude_id=state_id
        ):
            raise ConflictError(f"State code already exists in {where} state group")
        if await self.states.description_exists(
            target_group, values.get("description", state.description), exclude_id=state_id
        ):
            raise ConflictError(f"State description already exists in {where} state group")

        state = await self.states.update(state_id, **values)
        logger.info("state_updated", state_id=state_id, fields=sorted(values))
        return StateResponse.model_validate(state)

    @operation("State deleted successfully", referential="State could not be deleted")
    async def delete_state(self, state_id: str) -> StateResponse:
        """Delete a custom state; default states are protected."""
        state = await self._require_state(state_id)
        if state.is_system:
            raise ProtectedEntityError(f"Cannot delete default MES state: {state.description}")

        payload = StateResponse.model_validate(state)
        await self.states.delete(state_id)
        logger.info("state_deleted", state_id=state_id)
        return payload

    @operation("Bulk state creation completed", conflict=STORE_CONFLICT_MESSAGE)
    async def bulk_create_states(
        self,
        states: Optional[Sequence[Union[StateInput, Mapping[str, Any]]]],
        group_id: str,
    ) -> Outcome:
        """Create several states in one group.

        Each entry is validated and inserted inside its own SAVEPOINT;
        failures are collected with their reason and do not affect the rest.

        Args:
            states: StateInput objects or mappings with ``code`` and ``description``
            group_id: Owning state group

        Returns:
            Outcome with a BulkCreateResult; Error status when nothing was created
        """
        if not states:
            raise ValidationError("No states provided")
        await self._require_group(group_id)

        created: list[StateResponse] = []
        failed: list[BulkFailure] = []
        for entry in states:
            raw = entry.model_dump() if isinstance(entry, StateInput) else dict(entry)
            try:
                item = StateInput.model_validate(raw)
            except pydantic.ValidationError as exc:
                failed.append(BulkFailure(input=raw, reason=exc.errors()[0]["msg"]))
                continue
            try:
                async with self.session.begin_nested():
                    state = await self._insert_state(item.code, item.description, group_id)
                created.append(StateResponse.model_validate(state))
            except MESError as exc:
                failed.append(BulkFailure(input=raw, reason=exc.message))
            except IntegrityError:
                failed.append(BulkFailure(input=raw, reason=STORE_CONFLICT_MESSAGE))

        result = BulkCreateResult[StateResponse](
            group_id=group_id,
            created=created,
            failed=failed,
            created_count=len(created),
            failed_count=len(failed),
        )
        logger.info(
            "states_bulk_created", group_id=group_id, created=len(created), failed=len(failed)
        )

        if not created:
            return Outcome(
                data=result,
                message="No states were created",
                status=ResultStatus.ERROR,
                error=ErrorKind.VALIDATION,
            )
        if failed:
            return Outcome(
                data=result,
                message=f"Partial success: {len(created)} created, {len(failed)} failed",
            )
        return Outcome(data=result, message=f"Successfully created {len(created)} state(s)")
