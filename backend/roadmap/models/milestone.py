from __future__ import annotations

import uuid
from datetime import date

from sqlalchemy import Date, ForeignKey, Index, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from roadmap.models.base import Base, JSONType, TimestampMixin, UUIDMixin

# Labels with structural meaning (compared trimmed and case-insensitively)
LABEL_CERTIFY = "Certify"
LABEL_TESTED_SUCCESSFULLY = "Tested Successfully"
LABEL_PRICING_COMMITTEE_APPROVAL = "Pricing Committee Approval"


class Milestone(Base, UUIDMixin, TimestampMixin):
    """A dated point or interval on a product's roadmap."""

    __tablename__ = "milestones"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    product_version_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("product_versions.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    label: Mapped[str] = mapped_column(String(500), nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False, index=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Display metadata, e.g. alpha / beta / ga / support
    type: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    color: Mapped[str] = mapped_column(String(50), nullable=False, default="")
    extra: Mapped[dict | None] = mapped_column(JSONType, nullable=True)

    __table_args__ = (Index("ix_milestones_product_version", "product_id", "product_version_id"),)

    def __repr__(self) -> str:
        return (
            f"<Milestone(id={self.id}, label={self.label!r}, "
            f"start={self.start_date}, end={self.end_date})>"
        )
