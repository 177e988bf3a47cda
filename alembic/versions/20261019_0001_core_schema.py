"""Core MES schema: equipment hierarchy, mode and state classification.

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""

import uuid

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "001"
down_revision = None
branch_labels = None
depends_on = None

EQUIPMENT_TYPES = ("enterprise", "site", "area", "line", "cell")
MODE_GROUP = ("Default MES Mode Group", "Default mode group shipped with the MES core")
MODES = ("disabled", "production", "idle", "change over")
STATE_GROUP = ("Default MES State Group", "Default state group shipped with the MES core")
STATES = (
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


def _id_column(name: str = "id", **kwargs) -> sa.Column:
    return sa.Column(name, sa.String(36), **kwargs)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.func.now(),
            nullable=False,
        ),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
    ]


def _system_flag() -> sa.Column:
    return sa.Column("is_system", sa.Boolean(), server_default=sa.false(), nullable=False)


def upgrade() -> None:
    """Create the core tables and insert the protected defaults."""
    equipment_type = op.create_table(
        "equipment_type",
        _id_column(nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _system_flag(),
        *_timestamps(),
        sa.CheckConstraint("length(trim(name)) > 0", name="ck_equipment_type_name_not_empty"),
        sa.CheckConstraint(
            "length(name) BETWEEN 2 AND 255", name="ck_equipment_type_name_length"
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "uq_equipment_type_name_ci",
        "equipment_type",
        [sa.text("lower(name)")],
        unique=True,
    )

    op.create_table(
        "equipment",
        _id_column(nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        _id_column("type_id", nullable=False),
        _id_column("parent_id", nullable=True),
        sa.Column("enabled", sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("length(trim(name)) > 0", name="ck_equipment_name_not_empty"),
        sa.CheckConstraint("length(name) BETWEEN 1 AND 255", name="ck_equipment_name_length"),
        sa.CheckConstraint("id != parent_id", name="ck_equipment_no_self_reference"),
        sa.ForeignKeyConstraint(["type_id"], ["equipment_type.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["parent_id"], ["equipment.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_equipment_type_id", "equipment", ["type_id"])
    op.create_index("ix_equipment_parent_id", "equipment", ["parent_id"])
    op.create_index("ix_equipment_enabled", "equipment", ["enabled"])
    op.create_index(
        "uq_equipment_name_per_parent_type",
        "equipment",
        ["parent_id", "type_id", "name"],
        unique=True,
        sqlite_where=sa.text("parent_id IS NOT NULL"),
        postgresql_where=sa.text("parent_id IS NOT NULL"),
    )
    op.create_index(
        "uq_equipment_root_name_per_type",
        "equipment",
        ["type_id", "name"],
        unique=True,
        sqlite_where=sa.text("parent_id IS NULL"),
        postgresql_where=sa.text("parent_id IS NULL"),
    )

    # Mode and state groups share a layout
    groups = {}
    for prefix in ("mode", "state"):
        groups[prefix] = op.create_table(
            f"{prefix}_group",
            _id_column(nullable=False),
            sa.Column("name", sa.String(255), nullable=False),
            sa.Column("description", sa.Text(), nullable=False),
            _system_flag(),
            *_timestamps(),
            sa.CheckConstraint(
                "length(trim(name)) > 0", name=f"ck_{prefix}_group_name_not_empty"
            ),
            sa.PrimaryKeyConstraint("id"),
            sa.UniqueConstraint("name", name=f"uq_{prefix}_group_name"),
        )

    mode = op.create_table(
        "mode",
        _id_column(nullable=False),
        _id_column("group_id", nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _system_flag(),
        *_timestamps(),
        sa.CheckConstraint("length(trim(description)) > 0", name="ck_mode_description_not_empty"),
        sa.ForeignKeyConstraint(["group_id"], ["mode_group.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "description", name="uq_mode_group_description"),
    )
    op.create_index("ix_mode_group_id", "mode", ["group_id"])

    state = op.create_table(
        "state",
        _id_column(nullable=False),
        _id_column("group_id", nullable=False),
        sa.Column("code", sa.Integer(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        _system_flag(),
        *_timestamps(),
        sa.CheckConstraint("code BETWEEN 0 AND 9999", name="ck_state_code_range"),
        sa.CheckConstraint(
            "length(trim(description)) > 0", name="ck_state_description_not_empty"
        ),
        sa.ForeignKeyConstraint(["group_id"], ["state_group.id"], ondelete="RESTRICT"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("group_id", "code", name="uq_state_group_code"),
        sa.UniqueConstraint("group_id", "description", name="uq_state_group_description"),
    )
    op.create_index("ix_state_group_id", "state", ["group_id"])

    for prefix in ("mode", "state"):
        table = f"equipment_{prefix}_group"
        op.create_table(
            table,
            _id_column("equipment_id", nullable=False),
            _id_column("group_id", nullable=False),
            sa.ForeignKeyConstraint(["equipment_id"], ["equipment.id"], ondelete="CASCADE"),
            sa.ForeignKeyConstraint(["group_id"], [f"{prefix}_group.id"], ondelete="RESTRICT"),
            sa.PrimaryKeyConstraint("equipment_id", "group_id"),
        )
        op.create_index(f"ix_{table}_group_id", table, ["group_id"])

    # Seed protected defaults
    op.bulk_insert(
        equipment_type,
        [
            {"id": str(uuid.uuid4()), "name": name, "is_system": True}
            for name in EQUIPMENT_TYPES
        ],
    )

    mode_group_id = str(uuid.uuid4())
    op.bulk_insert(
        groups["mode"],
        [
            {
                "id": mode_group_id,
                "name": MODE_GROUP[0],
                "description": MODE_GROUP[1],
                "is_system": True,
            }
        ],
    )
    op.bulk_insert(
        mode,
        [
            {
                "id": str(uuid.uuid4()),
                "group_id": mode_group_id,
                "description": description,
                "is_system": True,
            }
            for description in MODES
        ],
    )

    state_group_id = str(uuid.uuid4())
    op.bulk_insert(
        groups["state"],
        [
            {
                "id": state_group_id,
                "name": STATE_GROUP[0],
                "description": STATE_GROUP[1],
                "is_system": True,
            }
        ],
    )
    op.bulk_insert(
        state,
        [
            {
                "id": str(uuid.uuid4()),
                "group_id": state_group_id,
                "code": code,
                "description": description,
                "is_system": True,
            }
            for code, description in STATES
        ],
    )


def downgrade() -> None:
    """Drop the core tables in reverse dependency order."""
    op.drop_table("equipment_state_group")
    op.drop_table("equipment_mode_group")
    op.drop_table("state")
    op.drop_table("mode")
    op.drop_table("state_group")
    op.drop_table("mode_group")
    op.drop_table("equipment")
    op.drop_table("equipment_type")
