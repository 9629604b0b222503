"""Asyncio in-process event bus.

Services never publish directly; the HTTP adapter publishes after a write
commits and subscribers (see modules/broadcast.py) fan out from there.
"""
from typing import Any, Callable, Coroutine, Dict, List, Optional, Set
import asyncio
import logging

logger = logging.getLogger("encounter.event_bus")

Subscriber = Callable[[str, Any], Coroutine[Any, Any, None]]

FIGHT_UPDATED = "fight.updated"
CAMPAIGN_UPDATED = "campaign.updated"
ENCOUNTER_RENDERED = "encounter.rendered"


class EventBus:
    """
    Topic based pub/sub.

    Handlers run as independent asyncio tasks; publish() returns without
    waiting for them. drain() waits for everything in flight, which is
    what tests and shutdown want.
    """
    def __init__(self):
        self._subscribers: Dict[str, List[Subscriber]] = {}
        self._lock = asyncio.Lock()
        self._pending: Set[asyncio.Task] = set()

    async def publish(self, topic: str, payload: Any) -> None:
        async with self._lock:
            subs = list(self._subscribers.get(topic, []))
        if not subs:
            logger.debug(f"No subscribers for {topic}")
        for sub in subs:
            task = asyncio.create_task(sub(topic, payload))
            self._pending.add(task)
            task.add_done_callback(self._handle_task_result)

    def _handle_task_result(self, task: asyncio.Task) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Event handler failed: {exc!r}", exc_info=exc)

    async def subscribe(self, topic: str, handler: Subscriber) -> None:
        async with self._lock:
            self._subscribers.setdefault(topic, []).append(handler)

    async def unsubscribe(self, topic: str, handler: Subscriber) -> None:
        async with self._lock:
            handlers = self._subscribers.get(topic, [])
            if handler in handlers:
                handlers.remove(handler)

    def subscriber_count(self, topic: str) -> int:
        return len(self._subscribers.get(topic, []))

    async def drain(self) -> None:
        """Waits until every handler task scheduled so far has finished."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)


_default_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Returns the process-wide bus."""
    global _default_bus
    if _default_bus is None:
        _default_bus = EventBus()
    return _default_bus


def reset_event_bus() -> None:
    """Drops the process-wide bus so the next get_event_bus() starts clean."""
    global _default_bus
    _default_bus = None
