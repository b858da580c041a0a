"""Create / update / delete orchestration for roadmap milestones.

Preconditions run in a fixed order and the first failure aborts the request
before anything is written: record lookup, caller gate, field application,
date order, Certify prerequisite. After an update with an end date is
committed, dependents are rescheduled in the background.
"""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import NotFoundError
from roadmap.core.permissions import Role
from roadmap.models.milestone import Milestone
from roadmap.models.product import ProductVersion
from roadmap.schemas.milestone import MilestoneCreate, MilestoneUpdate
from roadmap.services import rescheduling_engine
from roadmap.services.event_bus import EventType, event_bus
from roadmap.services.permission_service import PermissionService
from roadmap.services.rule_validator import MilestoneCandidate, validate_milestone

logger = logging.getLogger(__name__)

_DATE_FIELDS = ("start_date", "end_date")


def _payload(ms: Milestone) -> dict:
    return {
        "id": str(ms.id),
        "product_id": str(ms.product_id),
        "product_version_id": str(ms.product_version_id) if ms.product_version_id else None,
        "label": ms.label,
        "start_date": str(ms.start_date),
        "end_date": str(ms.end_date) if ms.end_date else None,
    }


async def get_milestone(db: AsyncSession, milestone_id: uuid.UUID) -> Milestone:
    ms = await db.get(Milestone, milestone_id)
    if ms is None:
        raise NotFoundError("Milestone not found")
    return ms


async def list_milestones_for_product(db: AsyncSession, product_id: uuid.UUID) -> list[Milestone]:
    result = await db.execute(
        select(Milestone)
        .where(Milestone.product_id == product_id)
        .order_by(Milestone.start_date, Milestone.created_at)
    )
    return list(result.scalars().all())


async def _require_version(
    db: AsyncSession, product_id: uuid.UUID, version_id: uuid.UUID
) -> ProductVersion:
    version = await db.get(ProductVersion, version_id)
    if version is None or version.product_id != product_id:
        raise NotFoundError("Product version not found")
    return version


async def create_milestone(
    db: AsyncSession,
    data: MilestoneCreate,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> Milestone:
    product = await PermissionService.get_product(db, data.product_id)
    PermissionService.require_product_mutation(product, caller_id, caller_role)
    if data.product_version_id is not None:
        await _require_version(db, data.product_id, data.product_version_id)

    candidate = MilestoneCandidate(
        product_id=data.product_id,
        product_version_id=data.product_version_id,
        label=data.label,
        start_date=data.start_date,
        end_date=data.end_date,
    )
    validate_milestone(candidate, await list_milestones_for_product(db, data.product_id))

    ms = Milestone(
        product_id=data.product_id,
        product_version_id=data.product_version_id,
        label=data.label,
        start_date=data.start_date,
        end_date=data.end_date,
        type=data.type,
        color=data.color,
        extra=data.extra,
    )
    db.add(ms)
    await db.commit()

    logger.info("Created milestone %s (%s) on product %s", ms.id, ms.label, ms.product_id)
    await event_bus.publish(EventType.MILESTONE_CREATED, "milestone", ms.id, _payload(ms), user_id=caller_id)
    return ms


async def update_milestone(
    db: AsyncSession,
    milestone_id: uuid.UUID,
    data: MilestoneUpdate,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> Milestone:
    ms = await get_milestone(db, milestone_id)
    await PermissionService.require_product_mutation_by_id(db, ms.product_id, caller_id, caller_role)

    # Build the post-update view without touching the stored row
    update_data = data.present_fields()
    candidate = MilestoneCandidate(
        id=ms.id,
        product_id=ms.product_id,
        product_version_id=ms.product_version_id,
        label=update_data.get("label", ms.label),
        start_date=update_data.get("start_date", ms.start_date),
        end_date=update_data.get("end_date", ms.end_date),
    )
    validate_milestone(candidate, await list_milestones_for_product(db, ms.product_id))

    previous = rescheduling_engine.DateWindow.of(ms)
    changes = {}
    for field, value in update_data.items():
        old_value = getattr(ms, field)
        if old_value != value:
            changes[field] = {"old": str(old_value), "new": str(value)}
            setattr(ms, field, value)

    if changes:
        await db.commit()
        logger.info("Updated milestone %s: %s", ms.id, ", ".join(sorted(changes)))

    current = rescheduling_engine.DateWindow.of(ms)
    if current.end is not None:
        rescheduling_engine.schedule_reschedule(
            ms.id, previous, current=current, user_id=caller_id
        )

    if changes:
        await event_bus.publish(
            EventType.MILESTONE_UPDATED, "milestone", ms.id, _payload(ms), changes, caller_id
        )
    return ms


async def delete_milestone(
    db: AsyncSession,
    milestone_id: uuid.UUID,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> None:
    """Delete a milestone.

    No rule validation and no rescheduling: removing the last Tested
    Successfully milestone can leave a Certify milestone behind, and edges
    that reference the milestone are kept.
    """
    ms = await get_milestone(db, milestone_id)
    await PermissionService.require_product_mutation_by_id(db, ms.product_id, caller_id, caller_role)

    payload = _payload(ms)
    await db.delete(ms)
    await db.commit()

    logger.info("Deleted milestone %s (%s)", milestone_id, payload["label"])
    await event_bus.publish(EventType.MILESTONE_DELETED, "milestone", milestone_id, payload, user_id=caller_id)
