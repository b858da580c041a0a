from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import ForbiddenError
from roadmap.core.permissions import Role, is_elevated
from roadmap.models.milestone import Milestone
from roadmap.models.product import LifecycleStatus, Product
from roadmap.services.event_bus import EventType, event_bus
from roadmap.services.permission_service import PermissionService
from roadmap.services.rule_validator import check_pricing_committee_approval

logger = logging.getLogger(__name__)


async def update_lifecycle_status(
    db: AsyncSession,
    product_id: uuid.UUID,
    lifecycle_status: LifecycleStatus,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> Product:
    """Move a product through its lifecycle.

    Owners cannot change lifecycle themselves. Activation requires a Pricing
    Committee Approval milestone in any version scope of the product.
    """
    product = await PermissionService.get_product(db, product_id)
    if not is_elevated(caller_role):
        raise ForbiddenError("Only an admin can change a product's lifecycle status")

    lifecycle_status = LifecycleStatus(lifecycle_status)
    if lifecycle_status == LifecycleStatus.ACTIVE:
        result = await db.execute(select(Milestone).where(Milestone.product_id == product_id))
        check_pricing_committee_approval(result.scalars().all())

    old_status = product.lifecycle_status
    if old_status == lifecycle_status.value:
        return product

    product.lifecycle_status = lifecycle_status.value
    await db.commit()

    logger.info("Product %s lifecycle %s -> %s", product_id, old_status, lifecycle_status.value)
    await event_bus.publish(
        EventType.PRODUCT_LIFECYCLE_CHANGED,
        "product",
        product.id,
        {"id": str(product.id), "name": product.name, "lifecycle_status": product.lifecycle_status},
        {"lifecycle_status": {"old": old_status, "new": product.lifecycle_status}},
        caller_id,
    )
    return product
