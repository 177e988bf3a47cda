"""Equipment type taxonomy and the self-referencing equipment hierarchy."""

from __future__ import annotations

from typing import Any, Optional

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    String,
    func,
    true,
)
from sqlalchemy.orm import Mapped, mapped_column

from gatherer_mes.db.models.base import (
    ID_LENGTH,
    Base,
    IdentifierMixin,
    SystemFlagMixin,
    TimestampMixin,
)

TYPE_NAME_MIN_LENGTH = 2
TYPE_NAME_MAX_LENGTH = 255
EQUIPMENT_NAME_MAX_LENGTH = 255


class EquipmentType(IdentifierMixin, SystemFlagMixin, TimestampMixin, Base):
    """Classification of an equipment node (enterprise, site, area, line, cell, custom).

    Names are unique regardless of case.
    """

    __tablename__ = "equipment_type"
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="ck_equipment_type_name_not_empty"),
        CheckConstraint(
            f"length(name) BETWEEN {TYPE_NAME_MIN_LENGTH} AND {TYPE_NAME_MAX_LENGTH}",
            name="ck_equipment_type_name_length",
        ),
    )

    name: Mapped[str] = mapped_column(String(TYPE_NAME_MAX_LENGTH), nullable=False)

    def __repr__(self) -> str:
        return f"<EquipmentType(id={self.id}, name='{self.name}', system={self.is_system})>"


Index("uq_equipment_type_name_ci", func.lower(EquipmentType.name), unique=True)


class Equipment(IdentifierMixin, TimestampMixin, Base):
    """Node of the physical/logical asset hierarchy.

    The tree is stored arena-style: every row holds an optional ``parent_id``
    and traversal happens through indexed lookups.
    """

    __tablename__ = "equipment"
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="ck_equipment_name_not_empty"),
        CheckConstraint(
            f"length(name) BETWEEN 1 AND {EQUIPMENT_NAME_MAX_LENGTH}",
            name="ck_equipment_name_length",
        ),
        CheckConstraint("id != parent_id", name="ck_equipment_no_self_reference"),
    )

    name: Mapped[str] = mapped_column(String(EQUIPMENT_NAME_MAX_LENGTH), nullable=False)
    type_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("equipment_type.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    parent_id: Mapped[Optional[str]] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("equipment.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    enabled: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False, index=True
    )
    # "metadata" is reserved on declarative classes
    equipment_metadata: Mapped[Any] = mapped_column(
        "metadata", JSON, default=dict, nullable=False
    )

    def __repr__(self) -> str:
        return f"<Equipment(id={self.id}, name='{self.name}', parent_id={self.parent_id})>"


# Sibling names are unique per (parent, type); root names are unique per type.
Index(
    "uq_equipment_name_per_parent_type",
    Equipment.parent_id,
    Equipment.type_id,
    Equipment.name,
    unique=True,
    sqlite_where=Equipment.parent_id.isnot(None),
    postgresql_where=Equipment.parent_id.isnot(None),
)
Index(
    "uq_equipment_root_name_per_type",
    Equipment.type_id,
    Equipment.name,
    unique=True,
    sqlite_where=Equipment.parent_id.is_(None),
    postgresql_where=Equipment.parent_id.is_(None),
)
