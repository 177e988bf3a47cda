"""State groups, states and their equipment associations.

States are machine-reported status codes (from a PLC or cell controller)
describing the low-level condition of equipment.
"""

from __future__ import annotations

from sqlalchemy import (
    CheckConstraint,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from gatherer_mes.db.models.base import (
    ID_LENGTH,
    Base,
    IdentifierMixin,
    SystemFlagMixin,
    TimestampMixin,
)

GROUP_NAME_MAX_LENGTH = 255
STATE_CODE_MIN = 0
STATE_CODE_MAX = 9999


class StateGroup(IdentifierMixin, SystemFlagMixin, TimestampMixin, Base):
    """Named collection of states, typically cells sharing a PLC code table."""

    __tablename__ = "state_group"
    __table_args__ = (
        CheckConstraint("length(trim(name)) > 0", name="ck_state_group_name_not_empty"),
    )

    name: Mapped[str] = mapped_column(String(GROUP_NAME_MAX_LENGTH), nullable=False, unique=True)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<StateGroup(id={self.id}, name='{self.name}')>"


class State(IdentifierMixin, SystemFlagMixin, TimestampMixin, Base):
    """A state code; both code and description are unique inside a group."""

    __tablename__ = "state"
    __table_args__ = (
        UniqueConstraint("group_id", "code", name="uq_state_group_code"),
        UniqueConstraint("group_id", "description", name="uq_state_group_description"),
        CheckConstraint(
            f"code BETWEEN {STATE_CODE_MIN} AND {STATE_CODE_MAX}", name="ck_state_code_range"
        ),
        CheckConstraint("length(trim(description)) > 0", name="ck_state_description_not_empty"),
    )

    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("state_group.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    code: Mapped[int] = mapped_column(Integer, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<State(id={self.id}, code={self.code}, description='{self.description}')>"


class EquipmentStateGroup(Base):
    """Equipment ↔ state group membership, keyed by the pair."""

    __tablename__ = "equipment_state_group"

    equipment_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("equipment.id", ondelete="CASCADE"),
        primary_key=True,
    )
    group_id: Mapped[str] = mapped_column(
        String(ID_LENGTH),
        ForeignKey("state_group.id", ondelete="RESTRICT"),
        primary_key=True,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<EquipmentStateGroup(equipment_id={self.equipment_id}, group_id={self.group_id})>"
