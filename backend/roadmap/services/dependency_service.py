import logging
import uuid

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap.core.exceptions import ForbiddenError, NotFoundError
from roadmap.core.permissions import Role, is_elevated
from roadmap.models.dependency import Dependency
from roadmap.models.milestone import Milestone
from roadmap.schemas.dependency import DependencyCreate
from roadmap.services.event_bus import EventType, event_bus
from roadmap.services.permission_service import PermissionService

logger = logging.getLogger(__name__)


def _payload(dep: Dependency) -> dict:
    return {
        "id": str(dep.id),
        "type": dep.type.value,
        "source_milestone_id": str(dep.source_milestone_id),
        "target_milestone_id": str(dep.target_milestone_id),
    }


async def _require_milestone(db: AsyncSession, milestone_id: uuid.UUID, role: str) -> Milestone:
    ms = await db.get(Milestone, milestone_id)
    if ms is None:
        raise NotFoundError(f"{role} milestone not found")
    return ms


async def create_dependency(
    db: AsyncSession,
    data: DependencyCreate,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> Dependency:
    # Existence only: self-loops, parallel edges and cycles are accepted
    source = await _require_milestone(db, data.source_milestone_id, "Source")
    target = await _require_milestone(db, data.target_milestone_id, "Target")
    await PermissionService.require_product_mutation_by_id(db, source.product_id, caller_id, caller_role)
    if target.product_id != source.product_id:
        # Propagation writes to the target, so a cross-product edge needs both gates
        await PermissionService.require_product_mutation_by_id(db, target.product_id, caller_id, caller_role)

    dep = Dependency(
        type=data.type,
        source_milestone_id=data.source_milestone_id,
        target_milestone_id=data.target_milestone_id,
    )
    db.add(dep)
    await db.commit()

    logger.info(
        "Created %s dependency %s: %s -> %s",
        dep.type.value,
        dep.id,
        dep.source_milestone_id,
        dep.target_milestone_id,
    )
    await event_bus.publish(EventType.DEPENDENCY_CREATED, "dependency", dep.id, _payload(dep), user_id=caller_id)
    return dep


async def get_dependency(db: AsyncSession, dependency_id: uuid.UUID) -> Dependency:
    dep = await db.get(Dependency, dependency_id)
    if dep is None:
        raise NotFoundError("Dependency not found")
    return dep


async def list_dependencies(db: AsyncSession) -> list[Dependency]:
    result = await db.execute(select(Dependency).order_by(Dependency.created_at))
    return list(result.scalars().all())


async def list_dependencies_for_product(db: AsyncSession, product_id: uuid.UUID) -> list[Dependency]:
    """Edges with at least one endpoint among the product's milestones."""
    result = await db.execute(select(Milestone.id).where(Milestone.product_id == product_id))
    milestone_ids = set(result.scalars().all())
    if not milestone_ids:
        return []

    result = await db.execute(
        select(Dependency)
        .where(
            or_(
                Dependency.source_milestone_id.in_(milestone_ids),
                Dependency.target_milestone_id.in_(milestone_ids),
            )
        )
        .order_by(Dependency.created_at)
    )
    return list(result.scalars().all())


async def delete_dependency(
    db: AsyncSession,
    dependency_id: uuid.UUID,
    caller_id: uuid.UUID,
    caller_role: str | Role,
) -> None:
    dep = await get_dependency(db, dependency_id)
    source = await db.get(Milestone, dep.source_milestone_id)
    if source is not None:
        await PermissionService.require_product_mutation_by_id(db, source.product_id, caller_id, caller_role)
    elif not is_elevated(caller_role):
        # Orphaned edge: no product left to check ownership against
        raise ForbiddenError("Only an admin can delete a dependency whose source milestone is gone")

    payload = _payload(dep)
    await db.delete(dep)
    await db.commit()

    logger.info("Deleted dependency %s", dependency_id)
    await event_bus.publish(EventType.DEPENDENCY_DELETED, "dependency", dependency_id, payload, user_id=caller_id)
