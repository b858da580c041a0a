from __future__ import annotations

import enum
import uuid

from sqlalchemy import Enum, Index, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from roadmap.models.base import Base, TimestampMixin, UUIDMixin


class DependencyType(str, enum.Enum):
    FS = "FS"  # Finish-to-Start
    SS = "SS"  # Start-to-Start
    FF = "FF"  # Finish-to-Finish


class Dependency(Base, UUIDMixin, TimestampMixin):
    """Directed, typed temporal edge between two milestones."""

    __tablename__ = "dependencies"

    type: Mapped[DependencyType] = mapped_column(
        Enum(DependencyType, name="dependency_type", native_enum=False, length=5),
        nullable=False,
    )

    # No FK constraints: edges are not removed when an endpoint milestone is
    source_milestone_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)
    target_milestone_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False, index=True)

    __table_args__ = (Index("ix_dependencies_source_target", "source_milestone_id", "target_milestone_id"),)

    def __repr__(self) -> str:
        return (
            f"<Dependency(id={self.id}, type={self.type}, "
            f"source={self.source_milestone_id}, target={self.target_milestone_id})>"
        )
