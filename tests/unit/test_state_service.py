"""Unit tests for state groups and coded states."""

from unittest.mock import AsyncMock, patch

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.api.schemas.classification import GroupResponse, StateInput
from gatherer_mes.api.schemas.common import ResultStatus
from gatherer_mes.core.exceptions import ErrorKind, ValidationError
from gatherer_mes.db.repositories import StateRepository
from gatherer_mes.db.seed import DEFAULT_STATE_GROUP_NAME, DEFAULT_STATES
from gatherer_mes.services.state import (
    CODE_CONFLICT_MESSAGE,
    DESCRIPTION_CONFLICT_MESSAGE,
    STORE_CONFLICT_MESSAGE,
    StateService,
    code_span,
    validate_code,
)


@pytest_asyncio.fixture
async def default_group(seeded_session: AsyncSession) -> GroupResponse:
    result = await StateService(seeded_session).get_group_by_name(DEFAULT_STATE_GROUP_NAME)
    return result.data


@pytest_asyncio.fixture
async def press_group(seeded_session: AsyncSession) -> GroupResponse:
    """Custom state group for a press PLC."""
    service = StateService(seeded_session)
    group = (await service.create_group("Press PLC", "Codes reported by the press PLC")).data
    await seeded_session.commit()
    return group


class TestValidateCode:
    """Tests for state code validation."""

    @pytest.mark.parametrize("code", [0, 1, 9999])
    def test_accepts_range(self, code: int) -> None:
        assert validate_code(code) == code

    @pytest.mark.parametrize("code", [-1, 10000])
    def test_rejects_out_of_range(self, code: int) -> None:
        with pytest.raises(ValidationError, match="between 0 and 9999"):
            validate_code(code)

    @pytest.mark.parametrize("code", [None, "5", 5.0, True])
    def test_rejects_non_integers(self, code) -> None:
        with pytest.raises(ValidationError):
            validate_code(code)


class TestCreateState:
    """Tests for creating states."""

    @pytest.mark.asyncio
    async def test_code_bounds(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test 9999 is the highest accepted code."""
        service = StateService(seeded_session)

        too_high = await service.create_state(10000, "overflow", press_group.id)
        highest = await service.create_state(9999, "unknown", press_group.id)

        assert too_high.error is ErrorKind.VALIDATION
        assert too_high.message == "State code must be between 0 and 9999"
        assert highest.status is ResultStatus.SUCCESS
        assert highest.data.code == 9999

    @pytest.mark.asyncio
    async def test_duplicate_code(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test codes are unique inside a group."""
        result = await StateService(seeded_session).create_state(5, "jammed", default_group.id)

        assert result.error is ErrorKind.CONFLICT
        assert result.message == CODE_CONFLICT_MESSAGE

    @pytest.mark.asyncio
    async def test_duplicate_description(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test descriptions are unique inside a group."""
        result = await StateService(seeded_session).create_state(50, "idle", default_group.id)

        assert result.error is ErrorKind.CONFLICT
        assert result.message == DESCRIPTION_CONFLICT_MESSAGE

    @pytest.mark.asyncio
    async def test_same_code_in_other_group(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test code uniqueness is scoped to the group."""
        service = StateService(seeded_session)

        created = await service.create_state(5, "blocked", press_group.id)
        fetched = await service.get_state_by_code(press_group.id, 5)

        assert created.status is ResultStatus.SUCCESS
        assert fetched.data.id == created.data.id


class TestUpdateAndDeleteState:
    """Tests for patching and deleting states."""

    @pytest.mark.asyncio
    async def test_move_to_group_with_clashing_code(
        self,
        seeded_session: AsyncSession,
        default_group: GroupResponse,
        press_group: GroupResponse,
    ) -> None:
        """Test uniqueness is checked against the destination group."""
        service = StateService(seeded_session)
        state = (await service.create_state(3, "cycle stop", press_group.id)).data

        result = await service.update_state(state.id, group_id=default_group.id)

        assert result.error is ErrorKind.CONFLICT
        assert result.message == "State code already exists in the target state group"

    @pytest.mark.asyncio
    async def test_update_without_fields(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test an empty patch is reported as NoChanges."""
        service = StateService(seeded_session)
        state = (await service.create_state(3, "cycle stop", press_group.id)).data

        result = await service.update_state(state.id)

        assert result.status is ResultStatus.NO_CHANGES
        assert result.message == "No changes were made to state"

    @pytest.mark.asyncio
    async def test_change_code(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test a state's code can be changed within its group."""
        service = StateService(seeded_session)
        state = (await service.create_state(3, "cycle stop", press_group.id)).data

        result = await service.update_state(state.id, code=30)

        assert result.status is ResultStatus.SUCCESS
        assert result.data.code == 30

    @pytest.mark.asyncio
    async def test_default_state_cannot_be_deleted(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test seeded states are protected."""
        service = StateService(seeded_session)
        estop = (await service.get_state_by_code(default_group.id, 4)).data

        result = await service.delete_state(estop.id)

        assert result.error is ErrorKind.PROTECTED
        assert result.message == "Cannot delete default MES state: e-stop"

    @pytest.mark.asyncio
    async def test_delete_custom_state(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test custom states are deleted."""
        service = StateService(seeded_session)
        state = (await service.create_state(3, "cycle stop", press_group.id)).data

        result = await service.delete_state(state.id)

        assert result.status is ResultStatus.SUCCESS
        assert (await service.get_state(state.id)).error is ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_default_state_cannot_change_group(
        self,
        seeded_session: AsyncSession,
        default_group: GroupResponse,
        press_group: GroupResponse,
    ) -> None:
        """Test seeded states stay in the default group."""
        service = StateService(seeded_session)
        running = (await service.get_state_by_code(default_group.id, 1)).data

        result = await service.update_state(running.id, group_id=press_group.id)
        renamed = await service.update_state(running.id, description="producing")

        assert result.error is ErrorKind.PROTECTED
        assert result.message == "Cannot move default MES state: running"
        assert (await service.get_state(running.id)).data.group_id == default_group.id
        assert renamed.status is ResultStatus.SUCCESS


class TestAvailableCodes:
    """Tests for code availability reporting."""

    @pytest.mark.asyncio
    async def test_default_group_fully_used(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test the seeded codes fill the 0-10 window."""
        result = await StateService(seeded_session).get_available_codes(default_group.id, 0, 10)

        assert result.status is ResultStatus.SUCCESS
        assert result.data.available_codes == []
        assert result.data.used_codes == list(range(11))
        assert result.data.usage_percentage == 100.0

    @pytest.mark.asyncio
    async def test_default_window(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test the default 0-100 window and the rounded usage share."""
        result = await StateService(seeded_session).get_available_codes(default_group.id)

        assert result.data.code_range.total_range == 101
        assert result.data.available_codes[0] == 11
        assert result.data.available_count == 90
        assert result.data.usage_percentage == 10.89

    @pytest.mark.asyncio
    @pytest.mark.parametrize("bounds", [(-1, 10), (0, 10000), (10, 10), (20, 10)])
    async def test_invalid_window(
        self, seeded_session: AsyncSession, default_group: GroupResponse, bounds
    ) -> None:
        """Test windows outside 0-9999 or with min >= max are rejected."""
        result = await StateService(seeded_session).get_available_codes(
            default_group.id, *bounds
        )

        assert result.error is ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_unknown_group(self, seeded_session: AsyncSession) -> None:
        result = await StateService(seeded_session).get_available_codes("missing")

        assert result.error is ErrorKind.NOT_FOUND


class TestSearchStates:
    """Tests for state filtering."""

    @pytest.mark.asyncio
    async def test_code_window_and_term(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test description and code filters combine."""
        service = StateService(seeded_session)

        downtime = await service.search_states("DOWNTIME", default_group.id, code_max=8)

        assert [s.code for s in downtime] == [7, 8]

    @pytest.mark.asyncio
    async def test_state_exists(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        service = StateService(seeded_session)

        assert await service.state_exists(10, default_group.id)
        assert not await service.state_exists(11, default_group.id)


class TestBulkCreateStates:
    """Tests for bulk state creation."""

    @pytest.mark.asyncio
    async def test_partial_success(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        """Test invalid and duplicate entries fail without stopping the batch."""
        service = StateService(seeded_session)

        result = await service.bulk_create_states(
            [
                StateInput(code=1, description="running"),
                {"code": 1, "description": "auto cycle"},
                {"code": 10000, "description": "overflow"},
                {"code": 2},
                {"code": 2, "description": "manual"},
            ],
            press_group.id,
        )

        assert result.status is ResultStatus.SUCCESS
        assert result.message == "Partial success: 2 created, 3 failed"
        assert [s.code for s in result.data.created] == [1, 2]
        reasons = [f.reason for f in result.data.failed]
        assert reasons[0] == CODE_CONFLICT_MESSAGE
        assert reasons[1] == "State code must be between 0 and 9999"
        assert result.data.failed[2].input == {"code": 2}

    @pytest.mark.asyncio
    async def test_nothing_created(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test an all-failing batch is an Error."""
        result = await StateService(seeded_session).bulk_create_states(
            [{"code": 0, "description": "off"}], default_group.id
        )

        assert result.status is ResultStatus.ERROR
        assert result.message == "No states were created"
        assert result.data.created_count == 0

    @pytest.mark.asyncio
    async def test_empty_batch(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        result = await StateService(seeded_session).bulk_create_states([], press_group.id)

        assert result.error is ErrorKind.VALIDATION
        assert result.message == "No states provided"


class TestStateGroupDeletion:
    """Tests for deleting state groups that hold default states."""

    @pytest.mark.asyncio
    async def test_group_holding_default_state_is_protected(
        self,
        seeded_session: AsyncSession,
        default_group: GroupResponse,
        press_group: GroupResponse,
    ) -> None:
        """Test a forced delete never removes a default state with its group."""
        service = StateService(seeded_session)
        running = (await service.get_state_by_code(default_group.id, 1)).data
        await StateRepository(seeded_session).update(running.id, group_id=press_group.id)

        result = await service.delete_group(press_group.id, force=True)

        assert result.error is ErrorKind.PROTECTED
        assert result.message == "Cannot delete state group: it holds 1 default MES state(s)"
        assert (await service.get_state(running.id)).status is ResultStatus.SUCCESS
        assert (await service.get_group(press_group.id)).status is ResultStatus.SUCCESS


class TestStoreLevelUniqueness:
    """Tests for uniqueness enforced by the database when pre-checks miss."""

    @pytest.mark.asyncio
    async def test_duplicate_code_rejected_by_store(
        self, seeded_session: AsyncSession, default_group: GroupResponse
    ) -> None:
        """Test a duplicate code reaching the store becomes a ConflictError."""
        service = StateService(seeded_session)

        with patch.object(service.states, "code_exists", new=AsyncMock(return_value=False)):
            result = await service.create_state(5, "jammed", default_group.id)

        assert result.status is ResultStatus.ERROR
        assert result.error is ErrorKind.CONFLICT
        assert result.message == STORE_CONFLICT_MESSAGE

        # The savepoint was rolled back; the session keeps working
        follow_up = await service.create_state(50, "jammed", default_group.id)
        assert follow_up.status is ResultStatus.SUCCESS


class TestStateUsageStats:
    """Tests for per-group state listings and code spans."""

    @pytest.mark.asyncio
    async def test_default_and_custom_states(
        self, seeded_session: AsyncSession, press_group: GroupResponse
    ) -> None:
        service = StateService(seeded_session)
        await service.create_state(200, "cycle stop", press_group.id)
        await service.create_state(150, "door open", press_group.id)
        await service.create_group("Empty PLC", "State group without states")

        result = await service.get_state_usage_stats()

        assert result.status is ResultStatus.SUCCESS
        groups = {g.name: g for g in result.data.groups}
        assert [g.name for g in result.data.groups] == [
            DEFAULT_STATE_GROUP_NAME,
            "Empty PLC",
            "Press PLC",
        ]
        assert groups["Press PLC"].code_range.model_dump() == {
            "min_code": 150,
            "max_code": 200,
            "code_span": 51,
        }
        assert [s.code for s in groups["Press PLC"].states] == [150, 200]
        assert groups["Empty PLC"].code_range is None
        summary = result.data.summary
        assert summary.total_states == len(DEFAULT_STATES) + 2
        assert summary.default_states == len(DEFAULT_STATES)
        assert summary.custom_states == 2
        assert summary.groups_with_states == 2
        assert summary.total_groups == 3
        assert summary.overall_code_range.model_dump() == {
            "min_code": 0,
            "max_code": 200,
            "code_span": 201,
        }

    def test_code_span_of_nothing(self) -> None:
        assert code_span([]) is None


class TestStateGroupContextByName:
    """Tests for looking up a state group with context by name."""

    @pytest.mark.asyncio
    async def test_by_name(self, seeded_session: AsyncSession) -> None:
        result = await StateService(seeded_session).get_group_with_context_by_name(
            f"  {DEFAULT_STATE_GROUP_NAME} "
        )

        assert result.status is ResultStatus.SUCCESS
        assert result.data.item_count == len(DEFAULT_STATES)
        assert [s.code for s in result.data.items] == list(range(len(DEFAULT_STATES)))

    @pytest.mark.asyncio
    async def test_blank_and_unknown_names(self, seeded_session: AsyncSession) -> None:
        service = StateService(seeded_session)

        blank = await service.get_group_with_context_by_name("   ")
        unknown = await service.get_group_with_context_by_name("Nope")

        assert blank.error is ErrorKind.VALIDATION
        assert blank.message == "State group name cannot be empty"
        assert unknown.error is ErrorKind.NOT_FOUND
