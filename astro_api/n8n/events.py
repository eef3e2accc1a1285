"""
Bounded log of inbound webhook events.

Newest first. Once the log holds ``capacity`` entries, each append evicts the
oldest one from the tail.
"""

from __future__ import annotations

from collections import deque
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Deque, List, Optional, Protocol, runtime_checkable

from astro_api.logger import logger
from astro_api.n8n.models import UNKNOWN_EVENT, WebhookEvent

DEFAULT_CAPACITY = 100


@runtime_checkable
class EventLog(Protocol):
    capacity: int

    async def append(self, event: WebhookEvent) -> None:
        ...

    async def items(self) -> List[WebhookEvent]:
        ...

    async def latest(self) -> Optional[WebhookEvent]:
        ...

    async def clear(self) -> None:
        ...

    async def size(self) -> int:
        ...


class InMemoryEventLog:
    def __init__(self, capacity: int = DEFAULT_CAPACITY) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self.capacity = capacity
        # appendleft on a bounded deque drops from the right
        self._events: Deque[WebhookEvent] = deque(maxlen=capacity)
        self._lock = Lock()

    async def append(self, event: WebhookEvent) -> None:
        with self._lock:
            self._events.appendleft(event)

    async def items(self) -> List[WebhookEvent]:
        with self._lock:
            return list(self._events)

    async def latest(self) -> Optional[WebhookEvent]:
        with self._lock:
            return self._events[0] if self._events else None

    async def clear(self) -> None:
        with self._lock:
            self._events.clear()

    async def size(self) -> int:
        return len(self._events)


def event_name(payload: Any) -> str:
    """Event tag of a payload, or the fallback tag when it has none."""
    if isinstance(payload, dict):
        name = payload.get("event")
        if isinstance(name, str) and name:
            return name
    return UNKNOWN_EVENT


async def receive_webhook(log: EventLog, payload: Any) -> WebhookEvent:
    """Stamp an inbound payload with its receipt time and prepend it to the log."""
    event = WebhookEvent(
        event=event_name(payload),
        timestamp=datetime.now(timezone.utc),
        data=payload,
    )
    await log.append(event)
    logger.info("n8n_webhook_received", webhook_event=event.event)
    return event
