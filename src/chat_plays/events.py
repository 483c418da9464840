"""
Observer channel for scheduler and chat events.

Loops publish events here; any number of observers (console, overlay)
consume them from their own bounded queues. Publishing never blocks and
never raises: a slow or broken observer only loses its own events.
"""

import asyncio
import inspect
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from loguru import logger


class EventType(str, Enum):
    """Event types emitted to observers."""

    # Every chat line, matched or not
    MESSAGE = "message"

    # Scheduler executed an action or idled
    COMMAND = "command"

    # A vote was accepted by the resolver
    VOTE = "vote"

    # Global repeat toggle changed
    REPEAT_TOGGLE = "repeatToggle"


@dataclass(frozen=True)
class Event:
    """A single observer event."""

    type: EventType
    data: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"type": self.type.value, "data": dict(self.data)}


EventHandler = Callable[[Event], Union[Awaitable[None], None]]


class EventBus:
    """
    Fan-out publish primitive.

    Each subscriber owns an ``asyncio.Queue``. ``publish`` puts the event on
    every queue with ``put_nowait`` and drops it for subscribers whose queue
    is full.
    """

    def __init__(self, max_queue_size: int = 256):
        self._max_queue_size = max_queue_size
        self._subscribers: List[asyncio.Queue] = []
        self._listener_tasks: List[asyncio.Task] = []
        self._dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    @property
    def dropped_count(self) -> int:
        """Number of events dropped because a subscriber queue was full."""
        return self._dropped

    def subscribe(self) -> asyncio.Queue:
        """Register a new subscriber queue and return it."""
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        self._subscribers.append(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        if queue in self._subscribers:
            self._subscribers.remove(queue)

    def publish(self, event_type: EventType, data: Optional[Dict[str, Any]] = None) -> int:
        """
        Publish an event to all subscribers.

        Args:
            event_type: Type of the event
            data: Event payload

        Returns:
            int: Number of subscribers that received the event
        """
        event = Event(type=event_type, data=data or {})
        delivered = 0
        for queue in list(self._subscribers):
            try:
                queue.put_nowait(event)
                delivered += 1
            except asyncio.QueueFull:
                self._dropped += 1
                logger.debug(f"[Events] Subscriber queue full, dropped {event_type.value}")
        return delivered

    def add_listener(self, handler: EventHandler, name: str = "listener") -> asyncio.Task:
        """
        Subscribe a handler and pump events into it from a background task.

        The handler may be sync or async. Exceptions raised by the handler are
        logged and the pump keeps running.
        """
        queue = self.subscribe()
        task = asyncio.create_task(
            self._pump(queue, handler, name), name=f"event_listener_{name}"
        )
        self._listener_tasks.append(task)
        return task

    async def _pump(self, queue: asyncio.Queue, handler: EventHandler, name: str) -> None:
        try:
            while True:
                event = await queue.get()
                try:
                    result = handler(event)
                    if inspect.isawaitable(result):
                        await result
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    logger.warning(f"[Events] Observer '{name}' failed on {event.type.value}: {e}")
        finally:
            self.unsubscribe(queue)

    async def close(self) -> None:
        """Cancel all listener tasks."""
        for task in self._listener_tasks:
            if not task.done():
                task.cancel()
        if self._listener_tasks:
            await asyncio.gather(*self._listener_tasks, return_exceptions=True)
        self._listener_tasks.clear()
