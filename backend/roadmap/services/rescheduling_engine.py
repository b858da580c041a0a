"""One-hop propagation of a milestone's date change to its dependents.

The dependency graph is never held in memory: every step asks the database
for the edges leaving a milestone (``DependencyGraph.edges_from``) and reloads
each target by id. Propagation follows a single hop; a target's own
dependents are left alone.

Two formulas are available (``Settings.RESCHEDULE_MODE``):

``preserve``
    The formula the roadmap has always shipped with. Its delta is measured
    between the source's already-updated dates and the target's current
    dates and then added back onto the source, so it cancels out: targets
    keep their dates, except that an FS/SS target without an end date gets
    one equal to its start. FF targets without an end date keep none.

``shift``
    Moves each target by the offset the source moved by, measured between
    the source's dates from before the update and the dates that update
    committed. Runs for the same source are chained, so back-to-back edits
    add up instead of racing each other.

Both are idempotent: rerunning with no intervening change to the source
never moves a dependent further.
"""

from __future__ import annotations

import asyncio
import enum
import functools
import logging
import time
import uuid
from dataclasses import dataclass
from datetime import date, timedelta

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from roadmap import database
from roadmap.config import settings
from roadmap.core.metrics import (
    bg_task_last_success,
    bg_task_runs_total,
    milestones_rescheduled_total,
    reschedule_duration_seconds,
    reschedule_tasks_pending,
)
from roadmap.models.dependency import Dependency, DependencyType
from roadmap.models.milestone import Milestone
from roadmap.services.event_bus import EventType, event_bus

logger = logging.getLogger(__name__)

TASK_NAME = "reschedule_dependents"


class RescheduleMode(str, enum.Enum):
    PRESERVE = "preserve"
    SHIFT = "shift"


@dataclass(frozen=True)
class DateWindow:
    start: date
    end: date | None = None

    @classmethod
    def of(cls, milestone: Milestone) -> DateWindow:
        return cls(start=milestone.start_date, end=milestone.end_date)

    @property
    def finish(self) -> date:
        return self.end if self.end is not None else self.start

    def moved_by(self, offset: timedelta) -> DateWindow:
        """Shift the whole window; an open-ended window closes at its new start."""
        new_start = self.start + offset
        new_end = self.end + offset if self.end is not None else new_start
        return DateWindow(new_start, new_end)


@dataclass(frozen=True)
class RescheduleResult:
    milestone_id: uuid.UUID
    dependency_id: uuid.UUID
    dependency_type: DependencyType
    before: DateWindow
    after: DateWindow

    @property
    def changed(self) -> bool:
        return self.before != self.after


@dataclass(frozen=True)
class _Edge:
    id: uuid.UUID
    type: DependencyType
    source_milestone_id: uuid.UUID
    target_milestone_id: uuid.UUID


class DependencyGraph:
    """Store-backed adjacency queries over the dependency edges."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def edges_from(self, milestone_id: uuid.UUID) -> list[Dependency]:
        result = await self.db.execute(
            select(Dependency)
            .where(Dependency.source_milestone_id == milestone_id)
            .order_by(Dependency.created_at)
        )
        return list(result.scalars().all())

    async def edges_to(self, milestone_id: uuid.UUID) -> list[Dependency]:
        result = await self.db.execute(
            select(Dependency)
            .where(Dependency.target_milestone_id == milestone_id)
            .order_by(Dependency.created_at)
        )
        return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Date arithmetic
# ---------------------------------------------------------------------------


def preserve_window(dep_type: DependencyType, target: DateWindow) -> DateWindow:
    if dep_type in (DependencyType.FS, DependencyType.SS):
        return DateWindow(target.start, target.end if target.end is not None else target.start)
    # FF: an unset target end stays unset
    return DateWindow(target.start, target.end)


def shift_window(
    dep_type: DependencyType,
    previous: DateWindow,
    current: DateWindow,
    target: DateWindow,
) -> DateWindow:
    if dep_type == DependencyType.SS:
        return target.moved_by(current.start - previous.start)

    offset = current.finish - previous.finish
    if dep_type == DependencyType.FS or target.end is None:
        # FF without a target end falls back to aligning the target's start
        return target.moved_by(offset)

    new_end = target.end + offset
    return DateWindow(new_end - (target.end - target.start), new_end)


def compute_window(
    dep_type: DependencyType,
    target: DateWindow,
    current: DateWindow,
    previous: DateWindow | None = None,
    mode: RescheduleMode = RescheduleMode.PRESERVE,
) -> DateWindow:
    if mode == RescheduleMode.SHIFT:
        return shift_window(dep_type, previous or current, current, target)
    return preserve_window(dep_type, target)


# ---------------------------------------------------------------------------
# Propagation
# ---------------------------------------------------------------------------


async def reschedule_dependents(
    db: AsyncSession,
    source: Milestone,
    previous: DateWindow | None = None,
    mode: RescheduleMode | str | None = None,
    *,
    current: DateWindow | None = None,
) -> list[RescheduleResult]:
    """Rewrite the dates of every milestone one hop downstream of *source*.

    *previous* and *current* hold the source's dates before and after the
    update being propagated; they only matter in ``shift`` mode. *current*
    defaults to the source as loaded and an omitted *previous* means the
    source did not move. Each target is written and committed on its own. A
    target that fails to save is rolled back and skipped. Returns one result
    per target written.
    """
    current = current or DateWindow.of(source)
    if current.end is None:
        return []

    mode = RescheduleMode(mode or settings.RESCHEDULE_MODE)
    source_id = source.id

    # Plain copies: a rollback below expires every ORM instance in the session
    edges = [
        _Edge(d.id, d.type, d.source_milestone_id, d.target_milestone_id)
        for d in await DependencyGraph(db).edges_from(source_id)
    ]

    results: list[RescheduleResult] = []
    for edge in edges:
        target = await db.get(Milestone, edge.target_milestone_id)
        if target is None:
            logger.warning(
                "Dependency %s points at missing milestone %s", edge.id, edge.target_milestone_id
            )
            continue

        before = DateWindow.of(target)
        after = compute_window(edge.type, before, current, previous, mode)
        target.start_date = after.start
        target.end_date = after.end
        try:
            await db.commit()
        except SQLAlchemyError:
            await db.rollback()
            logger.exception(
                "Could not reschedule milestone %s (dependency %s)",
                edge.target_milestone_id,
                edge.id,
            )
            continue

        result = RescheduleResult(edge.target_milestone_id, edge.id, edge.type, before, after)
        if result.changed:
            milestones_rescheduled_total.labels(dependency_type=edge.type.value).inc()
        results.append(result)

    return results


# ---------------------------------------------------------------------------
# Detached execution
# ---------------------------------------------------------------------------

# Strong references keep fire-and-forget tasks alive until they finish
_pending: set[asyncio.Task] = set()

# Latest task per source milestone; the next run for that source waits on it
_tails: dict[uuid.UUID, asyncio.Task] = {}


def _changes(result: RescheduleResult) -> dict:
    changes = {}
    if result.before.start != result.after.start:
        changes["start_date"] = {"old": str(result.before.start), "new": str(result.after.start)}
    if result.before.end != result.after.end:
        changes["end_date"] = {"old": str(result.before.end), "new": str(result.after.end)}
    return changes


async def _run(
    source_id: uuid.UUID,
    previous: DateWindow | None,
    current: DateWindow | None,
    mode: RescheduleMode | str | None,
    user_id: uuid.UUID | None,
) -> list[RescheduleResult]:
    started = time.perf_counter()
    try:
        async with database.async_session() as db:
            source = await db.get(Milestone, source_id)
            if source is None:
                logger.warning("Reschedule skipped: milestone %s no longer exists", source_id)
                bg_task_runs_total.labels(task_name=TASK_NAME, status="skipped").inc()
                return []
            results = await reschedule_dependents(db, source, previous, mode, current=current)

        for result in results:
            if not result.changed:
                continue
            await event_bus.publish(
                EventType.MILESTONE_RESCHEDULED,
                "milestone",
                result.milestone_id,
                {
                    "id": str(result.milestone_id),
                    "source_milestone_id": str(source_id),
                    "dependency_id": str(result.dependency_id),
                    "dependency_type": result.dependency_type.value,
                },
                _changes(result),
                user_id,
            )
    except Exception:
        # Never surfaced to the mutation that triggered it
        logger.exception("Rescheduling dependents of milestone %s failed", source_id)
        bg_task_runs_total.labels(task_name=TASK_NAME, status="error").inc()
        return []
    finally:
        reschedule_duration_seconds.observe(time.perf_counter() - started)

    bg_task_runs_total.labels(task_name=TASK_NAME, status="success").inc()
    bg_task_last_success.labels(task_name=TASK_NAME).set(time.time())
    logger.info(
        "Rescheduled %d dependent(s) of milestone %s",
        sum(1 for r in results if r.changed),
        source_id,
    )
    return results


async def _run_after(
    prior: asyncio.Task | None,
    source_id: uuid.UUID,
    previous: DateWindow | None,
    current: DateWindow | None,
    mode: RescheduleMode | str | None,
    user_id: uuid.UUID | None,
) -> list[RescheduleResult]:
    if prior is not None and not prior.done():
        # Outcome of the earlier run is irrelevant, only its ordering
        await asyncio.wait([prior])
    return await _run(source_id, previous, current, mode, user_id)


def _release_tail(source_id: uuid.UUID, task: asyncio.Task) -> None:
    if _tails.get(source_id) is task:
        del _tails[source_id]


def schedule_reschedule(
    source_id: uuid.UUID,
    previous: DateWindow | None = None,
    *,
    current: DateWindow | None = None,
    mode: RescheduleMode | str | None = None,
    user_id: uuid.UUID | None = None,
) -> asyncio.Task:
    """Start propagation in the background and return without waiting.

    The task opens its own session, so it outlives the request that started
    it. Its outcome is only observable through logs, metrics and
    ``milestone.rescheduled`` events.

    *previous* and *current* are the source's dates around the committed
    update. A task for a source that already has one in flight starts only
    after that one finishes.
    """
    prior = _tails.get(source_id)
    task = asyncio.create_task(
        _run_after(prior, source_id, previous, current, mode, user_id),
        name=f"{TASK_NAME}:{source_id}",
    )
    _tails[source_id] = task
    _pending.add(task)
    task.add_done_callback(_pending.discard)
    task.add_done_callback(functools.partial(_release_tail, source_id))
    return task


def pending_count() -> int:
    return len(_pending)


reschedule_tasks_pending.set_function(pending_count)


async def drain_pending() -> None:
    """Wait for every in-flight propagation task (shutdown and tests)."""
    while _pending:
        await asyncio.gather(*list(_pending), return_exceptions=True)
