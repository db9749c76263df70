"""Change event hub: narrow "this list changed" notifications over SSE.

Every mutation publishes a ChangeEvent naming the lists it touched, so a
client refetches only those lists instead of invalidating everything.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import AsyncGenerator, Iterable

from fastapi import APIRouter, Query
from fastapi.responses import StreamingResponse

from gtd.models.events import ChangeEvent

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["events"])


class _Subscriber:
    def __init__(self, collections: frozenset[str] | None, maxsize: int) -> None:
        self.collections = collections
        self.queue: asyncio.Queue[ChangeEvent | None] = asyncio.Queue(maxsize=maxsize)

    def wants(self, event: ChangeEvent) -> bool:
        if self.collections is None:
            return True
        return not self.collections.isdisjoint(event.collections)


def _close(queue: asyncio.Queue[ChangeEvent | None]) -> None:
    """Queue the disconnect marker, making room for it if the queue is full."""
    if queue.full():
        try:
            queue.get_nowait()
        except asyncio.QueueEmpty:
            pass
    queue.put_nowait(None)


class ChangeHub:
    """Fan-out of ChangeEvents to subscriber queues.

    Usage:
        hub = ChangeHub()
        queue = hub.subscribe(["tasks:inbox", "emails"])
        await hub.publish(ChangeEvent(entity="email", action="processed",
                                      entity_id=3, collections=["emails"]))
    """

    MAX_SUBSCRIBERS = 20

    def __init__(self) -> None:
        self._subscribers: list[_Subscriber] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        collections: Iterable[str] | None = None,
        maxsize: int = 100,
    ) -> asyncio.Queue[ChangeEvent | None]:
        """Create a subscriber queue, optionally limited to some collections.

        None on the queue signals disconnect.
        """
        if len(self._subscribers) >= self.MAX_SUBSCRIBERS:
            logger.warning(
                "Change hub at capacity (%d/%d), evicting oldest subscriber",
                len(self._subscribers), self.MAX_SUBSCRIBERS,
            )
            _close(self._subscribers.pop(0).queue)

        wanted = frozenset(collections) if collections else None
        sub = _Subscriber(wanted, maxsize)
        self._subscribers.append(sub)
        return sub.queue

    def unsubscribe(self, queue: asyncio.Queue[ChangeEvent | None]) -> None:
        self._subscribers = [s for s in self._subscribers if s.queue is not queue]

    async def publish(self, event: ChangeEvent) -> int:
        """Deliver an event to every interested subscriber.

        Subscribers whose queue is full are dropped and told to disconnect.

        Returns:
            Number of subscribers that received the event.
        """
        sent = 0
        dead: list[_Subscriber] = []
        for sub in self._subscribers:
            if not sub.wants(event):
                continue
            try:
                sub.queue.put_nowait(event)
                sent += 1
            except asyncio.QueueFull:
                dead.append(sub)

        for sub in dead:
            self._subscribers.remove(sub)
            _close(sub.queue)
        if dead:
            logger.warning("Dropped %d slow change subscribers", len(dead))
        return sent

    async def notify(
        self,
        entity: str,
        action: str,
        entity_id: int | None,
        collections: Iterable[str],
    ) -> int:
        """Convenience wrapper building the ChangeEvent."""
        event = ChangeEvent(
            entity=entity,  # type: ignore[arg-type]
            action=action,  # type: ignore[arg-type]
            entity_id=entity_id,
            collections=sorted(set(collections)),
        )
        return await self.publish(event)

    async def event_generator(
        self,
        queue: asyncio.Queue[ChangeEvent | None],
        heartbeat_interval: float = 30.0,
    ) -> AsyncGenerator[str, None]:
        """Yield SSE-formatted strings, with heartbeat comments while idle."""
        try:
            while True:
                try:
                    event = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
                    if event is None:
                        break
                    yield format_sse(event)
                except asyncio.TimeoutError:
                    yield ": heartbeat\n\n"
        finally:
            self.unsubscribe(queue)

    def create_response(self, collections: Iterable[str] | None = None) -> StreamingResponse:
        queue = self.subscribe(collections)
        return StreamingResponse(
            self.event_generator(queue),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",
            },
        )

    async def disconnect_all(self) -> None:
        """Disconnect all subscribers (used during shutdown)."""
        for sub in self._subscribers:
            _close(sub.queue)
        self._subscribers.clear()


def format_sse(event: ChangeEvent) -> str:
    data = {
        "entity": event.entity,
        "action": event.action,
        "entity_id": event.entity_id,
        "collections": event.collections,
        "timestamp": event.timestamp.isoformat(),
    }
    return f"event: {event.event_type}\ndata: {json.dumps(data)}\n\n"


# === Singleton hub instance ===

change_hub = ChangeHub()


@router.get("/events")
async def events_endpoint(
    collections: str | None = Query(default=None, description="Comma-separated list names"),
):
    """Stream change events. Without ``collections`` every event is delivered."""
    wanted = [c.strip() for c in collections.split(",") if c.strip()] if collections else None
    return change_hub.create_response(wanted)
