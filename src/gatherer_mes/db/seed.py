"""Seed data for the default equipment types and classification groups.

The same rows are inserted by the initial Alembic migration;
:func:`bootstrap_defaults` restores any that are missing on startup.
"""

from typing import Any, Iterable, Optional, Sequence

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from gatherer_mes.db.models import EquipmentType, Mode, ModeGroup, State, StateGroup

logger = structlog.get_logger(__name__)

DEFAULT_EQUIPMENT_TYPES = ("enterprise", "site", "area", "line", "cell")

DEFAULT_MODE_GROUP_NAME = "Default MES Mode Group"
DEFAULT_MODE_GROUP_DESCRIPTION = "Default mode group shipped with the MES core"
DEFAULT_MODES = ("disabled", "production", "idle", "change over")

DEFAULT_STATE_GROUP_NAME = "Default MES State Group"
DEFAULT_STATE_GROUP_DESCRIPTION = "Default state group shipped with the MES core"
DEFAULT_STATES = (
    (0, "disabled"),
    (1, "running"),
    (2, "change over"),
    (3, "idle"),
    (4, "e-stop"),
    (5, "blocked"),
    (6, "starved"),
    (7, "planned downtime"),
    (8, "unplanned downtime"),
    (9, "user planned downtime"),
    (10, "user unplanned downtime"),
)


def _still_missing(
    defaults: Sequence[str], names: Iterable[str], system_names: Iterable[str]
) -> list[str]:
    """Default names with no row left, less one for each renamed system row.

    A system row whose name is no longer one of ``defaults`` was renamed
    and still stands in for one of the defaults.
    """
    present = set(names)
    renamed = sum(1 for name in system_names if name not in defaults)
    missing = [name for name in defaults if name not in present]
    return missing[renamed:]


async def _ensure_equipment_types(session: AsyncSession) -> int:
    types = (await session.execute(select(EquipmentType))).scalars().all()
    by_name = {t.name.lower(): t for t in types}
    for name in DEFAULT_EQUIPMENT_TYPES:
        existing = by_name.get(name)
        if existing is not None and not existing.is_system:
            existing.is_system = True

    missing = _still_missing(
        DEFAULT_EQUIPMENT_TYPES,
        by_name,
        [t.name.lower() for t in types if t.is_system],
    )
    for name in missing:
        session.add(EquipmentType(name=name, is_system=True))
    return len(missing)


async def _system_group(session: AsyncSession, model: type[Any], name: str) -> Optional[Any]:
    """The seeded group of a subsystem, adopting a same-named group if none is flagged."""
    stmt = select(model).where(model.is_system.is_(True)).order_by(model.created_at).limit(1)
    group = (await session.execute(stmt)).scalar_one_or_none()
    if group is None:
        group = (
            await session.execute(select(model).where(model.name == name))
        ).scalar_one_or_none()
        if group is not None:
            group.is_system = True
    return group


async def _ensure_mode_group(session: AsyncSession) -> int:
    created = 0
    group = await _system_group(session, ModeGroup, DEFAULT_MODE_GROUP_NAME)
    if group is None:
        group = ModeGroup(
            name=DEFAULT_MODE_GROUP_NAME,
            description=DEFAULT_MODE_GROUP_DESCRIPTION,
            is_system=True,
        )
        session.add(group)
        await session.flush()
        created += 1

    modes = (
        await session.execute(select(Mode).where(Mode.group_id == group.id))
    ).scalars().all()
    missing = _still_missing(
        DEFAULT_MODES,
        [m.description for m in modes],
        [m.description for m in modes if m.is_system],
    )
    for description in missing:
        session.add(Mode(group_id=group.id, description=description, is_system=True))
    return created + len(missing)


async def _ensure_state_group(session: AsyncSession) -> int:
    created = 0
    group = await _system_group(session, StateGroup, DEFAULT_STATE_GROUP_NAME)
    if group is None:
        group = StateGroup(
            name=DEFAULT_STATE_GROUP_NAME,
            description=DEFAULT_STATE_GROUP_DESCRIPTION,
            is_system=True,
        )
        session.add(group)
        await session.flush()
        created += 1

    # States are keyed by code, which survives a rename
    rows = await session.execute(
        select(State.code, State.description).where(State.group_id == group.id)
    )
    used_codes: set[int] = set()
    used_descriptions: set[str] = set()
    for code, description in rows.all():
        used_codes.add(code)
        used_descriptions.add(description)

    for code, description in DEFAULT_STATES:
        if code in used_codes or description in used_descriptions:
            continue
        session.add(
            State(group_id=group.id, code=code, description=description, is_system=True)
        )
        created += 1
    return created


async def bootstrap_defaults(session: AsyncSession) -> int:
    """Insert any missing default equipment types, modes and states.

    This function is idempotent - safe to call on every startup. Rows that
    already exist are left untouched, and seeded rows are recognised by
    their system flag so renaming them does not bring the originals back.

    Args:
        session: Active async database session. The caller commits.

    Returns:
        Number of rows created
    """
    created = await _ensure_equipment_types(session)
    created += await _ensure_mode_group(session)
    created += await _ensure_state_group(session)
    await session.flush()

    if created:
        logger.info("seed_defaults_inserted", rows=created)
    else:
        logger.debug("seed_defaults_present")
    return created
