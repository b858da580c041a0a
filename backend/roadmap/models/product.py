from __future__ import annotations

import enum
import uuid

from sqlalchemy import ForeignKey, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from roadmap.models.base import Base, TimestampMixin, UUIDMixin


class ProductStatus(str, enum.Enum):
    PENDING = "pending"
    APPROVED = "approved"
    ARCHIVED = "archived"


class LifecycleStatus(str, enum.Enum):
    ACTIVE = "active"
    NOT_ACTIVE = "not_active"
    SUSPEND = "suspend"
    END_OF_ROADMAP = "end_of_roadmap"


class Product(Base, UUIDMixin, TimestampMixin):
    """Owning scope for milestones.

    Product administration lives elsewhere; only the fields the scheduling
    rules read (owner and lifecycle) are mapped here.
    """

    __tablename__ = "products"

    name: Mapped[str] = mapped_column(String(500), nullable=False)
    owner_id: Mapped[uuid.UUID | None] = mapped_column(Uuid, nullable=True, index=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=ProductStatus.APPROVED.value
    )
    lifecycle_status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=LifecycleStatus.ACTIVE.value
    )

    def __repr__(self) -> str:
        return f"<Product(id={self.id}, name={self.name!r}, lifecycle={self.lifecycle_status})>"


class ProductVersion(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "product_versions"

    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    version: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
