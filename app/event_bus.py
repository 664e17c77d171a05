"""SSE event bus for conversion jobs.

Every message a conversion run posts on its channel is pushed here under the
job id; clients read them back through ``EventBus.subscribe()``, which yields
SSE-formatted strings.

Event Envelope:
  {
    "event": "<message type>",
    "data": {
      "job_id": "<job_id>",
      "timestamp": "<ISO 8601>",
      ...message fields
    }
  }

A job's stream always ends with a ``done`` event published after its channel
is closed.
"""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import AsyncGenerator, Dict, List, Optional, Tuple

from scenegraph.logging_config import get_sse_logger
from scenegraph.settings import (
    EVENT_BUFFER_MAX_AGE_SECS,
    EVENT_BUFFER_MAX_EVENTS,
    SSE_KEEPALIVE_INTERVAL,
)

logger = get_sse_logger()

# Events after which the SSE generator closes the connection
STOP_EVENTS = frozenset({"done"})

KEEPALIVE = ": keepalive\n\n"


@dataclass
class PendingEvents:
    """Events published for a job before anyone subscribed."""
    events: List[dict] = field(default_factory=list)
    created_at: float = field(default_factory=time.monotonic)
    dropped: int = 0


class EventBus:
    """Routes job events to the job's SSE subscriber, or holds them until one
    connects.

    Conversions are short, so a client typically subscribes after the run has
    finished and receives the whole message sequence from the pending buffer.

    Args:
        buffer_max_events: Per-job cap on pending events (extra ones are dropped).
        buffer_max_age_secs: Pending buffers older than this are discarded
            when a new job starts buffering.
    """

    def __init__(
        self,
        buffer_max_events: int = EVENT_BUFFER_MAX_EVENTS,
        buffer_max_age_secs: float = EVENT_BUFFER_MAX_AGE_SECS,
    ):
        self._subscribers: Dict[str, asyncio.Queue] = {}
        self._pending: Dict[str, PendingEvents] = {}
        self._max_events = buffer_max_events
        self._max_age = buffer_max_age_secs
        self._lock = asyncio.Lock()

    def push(self, job_id: str, event_type: str, data: dict) -> None:
        """Publish one event for ``job_id``.

        Synchronous: it has no await points, so it cannot interleave with the
        locked sections of subscribe().
        """
        payload = {"job_id": job_id, **data}
        payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        event = {"event": event_type, "data": payload}

        queue = self._subscribers.get(job_id)
        if queue is not None:
            queue.put_nowait(event)
            logger.debug(f"Event sent: {event_type} for {job_id}")
        else:
            self._hold(job_id, event)

    async def subscribe(
        self,
        job_id: str,
        stop_events: Optional[frozenset] = None,
        keepalive_interval: float = SSE_KEEPALIVE_INTERVAL,
    ) -> AsyncGenerator[str, None]:
        """Yield the job's events as SSE strings until a stop event.

        Pending events are replayed first; a keepalive comment is sent
        whenever no event arrives within ``keepalive_interval`` seconds.
        """
        stop_events = STOP_EVENTS if stop_events is None else stop_events
        queue, backlog = await self._attach(job_id)
        try:
            for event in backlog:
                yield format_sse(event)
                if event["event"] in stop_events:
                    return

            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=keepalive_interval)
                except asyncio.TimeoutError:
                    yield KEEPALIVE
                    continue
                if event is None:
                    return
                yield format_sse(event)
                if event["event"] in stop_events:
                    return
        finally:
            await self._detach(job_id)

    def close_stream(self, job_id: str) -> None:
        """End the active subscription of ``job_id``, if any."""
        queue = self._subscribers.get(job_id)
        if queue is not None:
            queue.put_nowait(None)

    def buffered_count(self, job_id: str) -> int:
        pending = self._pending.get(job_id)
        return len(pending.events) if pending else 0

    async def _attach(self, job_id: str) -> Tuple[asyncio.Queue, List[dict]]:
        queue: asyncio.Queue = asyncio.Queue()
        async with self._lock:
            self._subscribers[job_id] = queue
            pending = self._pending.pop(job_id, None)
        backlog = pending.events if pending else []
        logger.info(f"Client subscribed: {job_id} ({len(backlog)} pending events)")
        if pending and pending.dropped:
            logger.warning(f"{job_id}: {pending.dropped} events were dropped before subscribe")
        return queue, backlog

    async def _detach(self, job_id: str) -> None:
        async with self._lock:
            self._subscribers.pop(job_id, None)
            self._pending.pop(job_id, None)
        logger.info(f"Client unsubscribed: {job_id}")

    def _hold(self, job_id: str, event: dict) -> None:
        pending = self._pending.get(job_id)
        if pending is None:
            self._drop_stale()
            pending = self._pending[job_id] = PendingEvents()

        if len(pending.events) < self._max_events:
            pending.events.append(event)
            logger.debug(f"Event buffered ({len(pending.events)}): {event['event']} for {job_id}")
        else:
            pending.dropped += 1
            logger.warning(
                f"Buffer full ({self._max_events}), dropping: {event['event']} for {job_id}"
            )

    def _drop_stale(self) -> None:
        now = time.monotonic()
        for job_id in [j for j, p in self._pending.items() if now - p.created_at > self._max_age]:
            stale = self._pending.pop(job_id)
            logger.info(f"Discarded stale buffer for {job_id} ({len(stale.events)} events)")


def format_sse(event: dict) -> str:
    """Format an event dict as an SSE string."""
    return f"event: {event['event']}\ndata: {json.dumps(event['data'])}\n\n"


# --- Singleton ---

_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the global EventBus singleton."""
    global _bus
    if _bus is None:
        _bus = EventBus()
    return _bus
