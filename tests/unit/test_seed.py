"""Unit tests for the default data bootstrap."""

import pytest
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import EquipmentType, Mode, State, StateGroup
from gatherer_mes.db.repositories import EquipmentTypeRepository, StateGroupRepository
from gatherer_mes.db.repositories.base import BaseRepository
from gatherer_mes.db.seed import (
    DEFAULT_STATE_GROUP_NAME,
    DEFAULT_STATES,
    bootstrap_defaults,
)


class TestBootstrapDefaults:
    """Tests for bootstrap_defaults."""

    @pytest.mark.asyncio
    async def test_first_run_inserts_everything(self, async_session: AsyncSession) -> None:
        """Test an empty database receives types, groups, modes and states."""
        created = await bootstrap_defaults(async_session)

        assert created == 22
        assert len(await BaseRepository(async_session, EquipmentType).get_all()) == 5
        assert len(await BaseRepository(async_session, Mode).get_all()) == 4
        assert len(await BaseRepository(async_session, State).get_all()) == len(DEFAULT_STATES)

    @pytest.mark.asyncio
    async def test_is_idempotent(self, async_session: AsyncSession) -> None:
        """Test a second run inserts nothing."""
        await bootstrap_defaults(async_session)

        assert await bootstrap_defaults(async_session) == 0

    @pytest.mark.asyncio
    async def test_restores_missing_rows(self, async_session: AsyncSession) -> None:
        """Test a removed default state is inserted again."""
        await bootstrap_defaults(async_session)
        repo = BaseRepository(async_session, State)
        rows = await repo.get_all(order_by=(State.code,))
        await repo.delete(rows[-1].id)

        assert await bootstrap_defaults(async_session) == 1

    @pytest.mark.asyncio
    async def test_seeded_rows_are_system(self, seeded_session: AsyncSession) -> None:
        """Test every seeded row carries the system flag."""
        types = await BaseRepository(seeded_session, EquipmentType).get_all()
        modes = await BaseRepository(seeded_session, Mode).get_all()

        assert all(t.is_system for t in types)
        assert all(m.is_system for m in modes)

    @pytest.mark.asyncio
    async def test_renamed_default_group_is_not_duplicated(
        self, seeded_session: AsyncSession
    ) -> None:
        """Test the seeded state group is recognised by its system flag after a rename."""
        groups = StateGroupRepository(seeded_session)
        default = await groups.get_by_name(DEFAULT_STATE_GROUP_NAME)
        await groups.update(default.id, name="Plant PLC codes")
        await seeded_session.commit()

        created = await bootstrap_defaults(seeded_session)

        system_groups = (
            await seeded_session.execute(
                select(StateGroup).where(StateGroup.is_system.is_(True))
            )
        ).scalars().all()
        assert created == 0
        assert [g.name for g in system_groups] == ["Plant PLC codes"]

    @pytest.mark.asyncio
    async def test_renamed_default_type_and_mode_are_not_reinserted(
        self, seeded_session: AsyncSession
    ) -> None:
        types = EquipmentTypeRepository(seeded_session)
        line = await types.get_by_name("line")
        await types.update(line.id, name="production line")
        modes = BaseRepository(seeded_session, Mode)
        idle = next(m for m in await modes.get_all() if m.description == "idle")
        await modes.update(idle.id, description="waiting")
        await seeded_session.commit()

        assert await bootstrap_defaults(seeded_session) == 0
        assert len(await types.get_all()) == 5
