"""In-process event bus for session lifecycle and outcome notifications."""

from __future__ import annotations

import asyncio
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from quibble.common.logging import get_logger


@dataclass
class Event:
    """Event message."""

    topic: str
    data: dict[str, Any]
    source: str
    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    timestamp: float = field(default_factory=time.time)


EventHandler = Callable[[Event], Awaitable[None]]


def topic_matches(topic: str, pattern: str) -> bool:
    """Check whether a dotted topic matches a pattern.

    ``*`` matches exactly one segment, a trailing ``**`` matches the rest.
    """
    topic_parts = topic.split(".")
    pattern_parts = pattern.split(".")

    for index, part in enumerate(pattern_parts):
        if part == "**" and index == len(pattern_parts) - 1:
            return len(topic_parts) > index
        if index >= len(topic_parts):
            return False
        if part != "*" and part != topic_parts[index]:
            return False

    return len(topic_parts) == len(pattern_parts)


class EventBus:
    """Pub/sub bus shared by the session registry and its observers.

    Handlers run concurrently; a failing handler is logged and does not
    affect the others or the publisher.
    """

    def __init__(self, history_limit: int = 500) -> None:
        self._handlers: list[tuple[str, EventHandler]] = []
        self._history: deque[Event] = deque(maxlen=history_limit)
        self.logger = get_logger("event_bus")

    def subscribe(
        self,
        pattern: str,
        handler: EventHandler | None = None,
    ) -> Callable[[EventHandler], EventHandler] | Callable[[], None]:
        """Subscribe to a topic pattern.

        Can be used as a decorator or called directly.

        Returns:
            Decorator (when handler is None) or unsubscribe function.
        """
        if handler is None:

            def decorator(fn: EventHandler) -> EventHandler:
                self._handlers.append((pattern, fn))
                return fn

            return decorator

        entry = (pattern, handler)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            if entry in self._handlers:
                self._handlers.remove(entry)

        return unsubscribe

    async def publish(self, event: Event) -> None:
        """Publish an event to all matching subscribers."""
        self._history.append(event)
        self.logger.debug("publishing_event", topic=event.topic, source=event.source)

        handlers = [h for p, h in self._handlers if topic_matches(event.topic, p)]
        if handlers:
            await asyncio.gather(*(self._safe_dispatch(h, event) for h in handlers))

    async def emit(self, topic: str, source: str, **data: Any) -> Event:
        """Build and publish an event in one call."""
        event = Event(topic=topic, data=data, source=source)
        await self.publish(event)
        return event

    async def _safe_dispatch(self, handler: EventHandler, event: Event) -> None:
        try:
            await handler(event)
        except Exception as e:
            self.logger.exception("event_handler_error", topic=event.topic, error=str(e))

    def get_history(self, pattern: str | None = None, limit: int = 100) -> list[Event]:
        """Get recent events, newest first."""
        events = [e for e in self._history if pattern is None or topic_matches(e.topic, pattern)]
        return list(reversed(events[-limit:]))
