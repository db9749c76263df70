"""Tests for the change event hub."""

import os
import sys

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', '..'))
os.environ.setdefault("DATABASE_URL", "sqlite:///test.db")

import json

import pytest

from gtd.api.events import ChangeHub, format_sse
from gtd.models.events import ChangeEvent


def _event(collections, entity="task", action="updated", entity_id=1) -> ChangeEvent:
    return ChangeEvent(entity=entity, action=action, entity_id=entity_id, collections=collections)


@pytest.mark.asyncio
async def test_publish_to_all():
    hub = ChangeHub()
    q1 = hub.subscribe()
    q2 = hub.subscribe()
    sent = await hub.publish(_event(["tasks", "tasks:inbox"]))
    assert sent == 2
    assert q1.get_nowait().collections == ["tasks", "tasks:inbox"]
    assert not q2.empty()


@pytest.mark.asyncio
async def test_collection_filter():
    hub = ChangeHub()
    inbox = hub.subscribe(["tasks:inbox", "emails"])
    projects = hub.subscribe(["projects"])

    sent = await hub.notify("email", "processed", 3, ["emails"])
    assert sent == 1
    assert inbox.get_nowait().event_type == "email.processed"
    assert projects.empty()


@pytest.mark.asyncio
async def test_notify_dedupes_and_sorts():
    hub = ChangeHub()
    queue = hub.subscribe()
    await hub.notify("task", "created", 5, {"tasks:inbox", "tasks"})
    assert queue.get_nowait().collections == ["tasks", "tasks:inbox"]


@pytest.mark.asyncio
async def test_full_queue_drops_subscriber():
    hub = ChangeHub()
    slow = hub.subscribe(maxsize=1)
    await hub.publish(_event(["tasks"]))
    await hub.publish(_event(["tasks"]))
    assert hub.subscriber_count == 0
    assert slow.qsize() == 1
    assert slow.get_nowait() is None


@pytest.mark.asyncio
async def test_dropped_subscriber_stream_ends():
    hub = ChangeHub()
    slow = hub.subscribe(maxsize=2)
    for _ in range(3):
        await hub.publish(_event(["tasks"]))

    chunks = [chunk async for chunk in hub.event_generator(slow, heartbeat_interval=0.01)]
    assert len(chunks) == 1
    assert chunks[0].startswith("event: task.updated\n")


def test_capacity_evicts_oldest():
    hub = ChangeHub()
    first = hub.subscribe()
    for _ in range(ChangeHub.MAX_SUBSCRIBERS):
        hub.subscribe()
    assert hub.subscriber_count == ChangeHub.MAX_SUBSCRIBERS
    assert first.get_nowait() is None


def test_unsubscribe():
    hub = ChangeHub()
    queue = hub.subscribe()
    hub.unsubscribe(queue)
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_disconnect_all():
    hub = ChangeHub()
    queue = hub.subscribe()
    await hub.disconnect_all()
    assert queue.get_nowait() is None
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_generator_yields_then_stops():
    hub = ChangeHub()
    queue = hub.subscribe()
    await hub.notify("project", "created", 2, ["projects"])
    queue.put_nowait(None)

    chunks = [chunk async for chunk in hub.event_generator(queue)]
    assert len(chunks) == 1
    assert chunks[0].startswith("event: project.created\n")
    assert hub.subscriber_count == 0


@pytest.mark.asyncio
async def test_generator_heartbeat():
    hub = ChangeHub()
    queue = hub.subscribe()
    gen = hub.event_generator(queue, heartbeat_interval=0.01)
    assert await gen.__anext__() == ": heartbeat\n\n"
    await gen.aclose()
    assert hub.subscriber_count == 0


def test_format_sse():
    text = format_sse(_event(["contexts"], entity="context", action="deleted", entity_id=4))
    lines = text.split("\n")
    assert lines[0] == "event: context.deleted"
    data = json.loads(lines[1].removeprefix("data: "))
    assert data["entity_id"] == 4
    assert data["collections"] == ["contexts"]
    assert text.endswith("\n\n")
