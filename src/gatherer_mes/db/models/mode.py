"""Mode groups, modes and their equipment associations.

Modes are operator or business triggered classifications of what a piece of
equipment is doing (production, change over, ...).
"""

from __future__ import annotations

from sqlalchemy import CheckConstraint, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from gatherer_mes.db.models.base import (
    ID_LENGTH,
    Base,
    IdentifierMixin,
    SystemFlagMixin,
    TimestampMixin,
)

GROUP_NAME_MAX_LENGTH = 255


class ModeGroup(IdentifierMixin, SystemFlagMixin, TimestampMixin, Base):
    """Named collection of modes that can be shared across equipment."""

    __tablename__ = "mode_group"
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="ck_mode_group_name_not_empty"),
    )

    name: Mapped[str] = mapped_column(String(GROUP_NAME_MAX_LENGTH), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<ModeGroup(id={self.id}, name='{self.name}')>"


class Mode(IdentifierMixin, SystemFlagMixin, TimestampMixin, Base):
    """A single mode; descriptions are unique inside a group."""

    __tablename__ = "mode"
    __table_args__ = (
        UniqueConstraint("group_id", "description", name="uq_mode_group_description"),
        CheckConstraint("length(trim(description)) > 0", name="ck_mode_description_not_empty"),
    )

    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("mode_group.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<Mode(id={self.id}, description='{self.description}')>"


class EquipmentModeGroup(Base):
    """Equipment ↔ mode group membership, keyed by the pair."""

    __tablename__ = "equipment_mode_group"

    equipment_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("mode_group.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<EquipmentModeGroup(equipment_id={self.equipment_id}, group_id={self.group_id})>"
