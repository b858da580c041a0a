import asyncio
import enum
import logging
import uuid
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone

logger = logging.getLogger(__name__)

EventHandler = Callable[[dict], Awaitable[None]]


class EventType(str, enum.Enum):
    MILESTONE_CREATED = "milestone.created"
    MILESTONE_UPDATED = "milestone.updated"
    MILESTONE_DELETED = "milestone.deleted"
    MILESTONE_RESCHEDULED = "milestone.rescheduled"
    DEPENDENCY_CREATED = "dependency.created"
    DEPENDENCY_DELETED = "dependency.deleted"
    PRODUCT_LIFECYCLE_CHANGED = "product.lifecycle_changed"


class EventBus:
    """In-process async event bus.

    Audit, activity and notification collaborators register handlers or
    subscribe a queue; the scheduling services only publish.
    """

    def __init__(self) -> None:
        self._subscribers: dict[str, asyncio.Queue] = {}
        self._handlers: dict[EventType, list[EventHandler]] = {}

    def register_handler(self, event_type: EventType, handler: EventHandler) -> None:
        if event_type not in self._handlers:
            self._handlers[event_type] = []
        self._handlers[event_type].append(handler)

    def clear_handlers(self) -> None:
        self._handlers.clear()

    async def publish(
        self,
        event_type: EventType,
        entity_type: str,
        entity_id: uuid.UUID,
        payload: dict,
        changes: dict | None = None,
        user_id: uuid.UUID | None = None,
    ) -> dict:
        event = {
            "id": str(uuid.uuid4()),
            "type": event_type.value,
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "user_id": str(user_id) if user_id else None,
            "payload": payload,
            "changes": changes,
            "created_at": datetime.now(timezone.utc).isoformat(),
        }

        dead_subscribers = []
        for sub_id, queue in self._subscribers.items():
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                dead_subscribers.append(sub_id)
                logger.warning("Dropping events for slow subscriber %s", sub_id)

        for sub_id in dead_subscribers:
            self._subscribers.pop(sub_id, None)

        # Handler failures never fail the publishing mutation
        for handler in self._handlers.get(event_type, []):
            try:
                await handler(event)
            except Exception:
                logger.exception("Event handler error for %s", event_type.value)

        return event

    def subscribe(self, maxsize: int = 256) -> tuple[str, asyncio.Queue]:
        sub_id = str(uuid.uuid4())
        queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize)
        self._subscribers[sub_id] = queue
        return sub_id, queue

    def unsubscribe(self, sub_id: str) -> None:
        self._subscribers.pop(sub_id, None)


# Global singleton
event_bus = EventBus()
