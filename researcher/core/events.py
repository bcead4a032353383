"""Event broadcasting for WebSocket and Server-Sent Events (SSE) clients."""

import asyncio
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable

from researcher.config import settings
from researcher.models.research import LogEntry, Phase, utcnow
from researcher.models.report import Report
from researcher.utils.logging import get_logger

logger = get_logger("events")

EventCallback = Callable[["Event"], Awaitable[None] | None]


@dataclass
class Event:
    """A session event, as sent to observers."""

    event_type: str
    data: Any
    timestamp: datetime = field(default_factory=utcnow)

    def to_message(self) -> dict[str, Any]:
        """WebSocket frame: ``{"type", "payload"}``."""
        return {"type": self.event_type, "payload": self.data}

    def to_sse(self) -> dict[str, str]:
        """Keyword arguments for an sse-starlette ``ServerSentEvent``."""
        return {"event": self.event_type, "data": json.dumps(self.data, default=str)}

    @property
    def is_final(self) -> bool:
        """True for the last event a session emits: the report, or the error phase."""
        if self.event_type == "report":
            return True
        if self.event_type == "phase" and isinstance(self.data, dict):
            return self.data.get("phase") == Phase.ERROR.value
        return False


class Subscription:
    """One observer of a session's events.

    Queue-backed by default; pass a callback for in-process observers.
    """

    def __init__(
        self,
        broadcaster: "EventBroadcaster",
        request_id: str,
        callback: EventCallback | None = None,
        maxsize: int = 0,
    ):
        self.request_id = request_id
        self.callback = callback
        self.queue: asyncio.Queue[Event] | None = (
            None if callback else asyncio.Queue(maxsize=maxsize)
        )
        self._broadcaster = broadcaster
        self.active = True

    async def deliver(self, event: Event) -> None:
        if self.callback is not None:
            result = self.callback(event)
            if asyncio.iscoroutine(result):
                await result
        elif self.queue is not None:
            self.queue.put_nowait(event)

    async def get(self, timeout: float | None = None) -> Event:
        """Next queued event. Only valid for queue-backed subscriptions."""
        if self.queue is None:
            raise RuntimeError("callback subscriptions have no queue")
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout=timeout)

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        if self.active:
            self.active = False
            self._broadcaster.remove(self)


class EventBroadcaster:
    """Fans session events out to every subscriber of that session.

    Delivery is best-effort: a subscriber that fails or whose queue is full
    misses the event, and the rest still receive it.
    """

    def __init__(self, queue_size: int | None = None):
        self._subscribers: dict[str, list[Subscription]] = {}
        self._queue_size = settings.event_queue_size if queue_size is None else queue_size

    def subscribe(
        self,
        request_id: str,
        callback: EventCallback | None = None,
    ) -> Subscription:
        """Subscribe to events for a session."""
        subscription = Subscription(
            self,
            request_id,
            callback=callback,
            maxsize=self._queue_size,
        )
        self._subscribers.setdefault(request_id, []).append(subscription)
        return subscription

    def remove(self, subscription: Subscription) -> None:
        subscribers = self._subscribers.get(subscription.request_id)
        if not subscribers:
            return
        if subscription in subscribers:
            subscribers.remove(subscription)
        if not subscribers:
            del self._subscribers[subscription.request_id]

    def subscriber_count(self, request_id: str) -> int:
        return len(self._subscribers.get(request_id, []))

    async def publish(self, request_id: str, event: Event) -> None:
        """Publish an event to a session's subscribers."""
        for subscription in list(self._subscribers.get(request_id, [])):
            try:
                await subscription.deliver(event)
            except asyncio.QueueFull:
                logger.warning(
                    "events.subscriber_queue_full",
                    request_id=request_id,
                    event_type=event.event_type,
                )
            except Exception as e:
                logger.warning(
                    "events.delivery_failed",
                    request_id=request_id,
                    event_type=event.event_type,
                    error=str(e),
                )

    async def publish_phase(self, request_id: str, phase: Phase, progress: float) -> None:
        """Publish a phase change event."""
        await self.publish(
            request_id,
            Event(event_type="phase", data={"phase": phase.value, "progress": progress}),
        )

    async def publish_progress(self, request_id: str, progress: float) -> None:
        """Publish a progress-only event."""
        await self.publish(
            request_id,
            Event(event_type="progress", data={"progress": progress}),
        )

    async def publish_log(self, request_id: str, entry: LogEntry) -> None:
        """Publish a session log line."""
        await self.publish(
            request_id,
            Event(event_type="log", data=entry.model_dump(mode="json", by_alias=True)),
        )

    async def publish_report(self, request_id: str, report: Report) -> None:
        """Publish the finished report."""
        await self.publish(
            request_id,
            Event(event_type="report", data=report.model_dump(mode="json", by_alias=True)),
        )


# Singleton instance
_event_broadcaster: EventBroadcaster | None = None


def get_event_broadcaster() -> EventBroadcaster:
    """Get the event broadcaster singleton."""
    global _event_broadcaster
    if _event_broadcaster is None:
        _event_broadcaster = EventBroadcaster()
    return _event_broadcaster
