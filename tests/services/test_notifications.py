"""Tests for the notification hub."""
import asyncio
import threading
import uuid

import pytest

from facecatalog.domain.value_objects.events import ErrorEvent, FaceDeleted, FaceDetected
from facecatalog.services.notifications import NotificationHub


def deleted_event() -> FaceDeleted:
    return FaceDeleted(face_id=str(uuid.uuid4()))


def drain(subscription):
    events = []
    while subscription.pending:
        events.append(subscription.get_nowait())
    return events


class TestNotificationHub:
    """Test suite for subscriber registration and broadcast."""

    async def test_broadcast_reaches_all_subscribers_in_order(self, hub):
        """Should deliver every event to every subscriber in broadcast order."""
        _, first = hub.create_connection()
        _, second = hub.create_connection()
        events = [deleted_event(), ErrorEvent(message="boom"), deleted_event()]

        for event in events:
            assert hub.broadcast(event) == 2

        assert drain(first) == events
        assert drain(second) == events

    async def test_removed_subscriber_receives_nothing(self, hub):
        """Should stop delivering to a removed connection."""
        first_id, first = hub.create_connection()
        _, second = hub.create_connection()
        hub.broadcast(deleted_event())

        hub.remove_connection(first_id)
        event = deleted_event()
        delivered = hub.broadcast(event)

        assert delivered == 1
        assert first.pending == 1
        assert drain(second)[-1] == event

    async def test_remove_is_idempotent(self, hub):
        """Should ignore repeated and unknown removals."""
        connection_id, _ = hub.create_connection()

        hub.remove_connection(connection_id)
        hub.remove_connection(connection_id)
        hub.remove_connection("unknown")

        assert hub.connection_count == 0

    async def test_connection_ids_are_unique(self, hub):
        ids = {hub.create_connection()[0] for _ in range(20)}
        assert len(ids) == 20
        assert hub.connection_count == 20

    async def test_broadcast_without_subscribers(self, hub):
        assert hub.broadcast(deleted_event()) == 0

    async def test_full_buffer_drops_events(self):
        """Should drop events for a full subscriber without blocking others."""
        hub = NotificationHub(buffer_size=2)
        _, slow = hub.create_connection()
        _, fast = hub.create_connection()
        events = [deleted_event() for _ in range(3)]

        hub.broadcast(events[0])
        hub.broadcast(events[1])
        drain(fast)
        delivered = hub.broadcast(events[2])

        assert delivered == 1
        assert drain(slow) == events[:2]
        assert drain(fast) == [events[2]]

    async def test_waiting_subscriber_is_woken(self, hub, record_factory):
        """Should wake a subscriber awaiting the next event."""
        _, subscription = hub.create_connection()
        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)

        event = FaceDetected(record=record_factory())
        hub.broadcast(event)

        assert await asyncio.wait_for(waiter, timeout=1) == event

    async def test_iteration_stops_after_removal(self, hub):
        """Should yield buffered events and then stop once removed."""
        connection_id, subscription = hub.create_connection()
        events = [deleted_event(), deleted_event()]
        for event in events:
            hub.broadcast(event)
        hub.remove_connection(connection_id)

        received = [event async for event in subscription]

        assert received == events

    async def test_waiting_consumer_stops_after_removal(self, hub):
        """Should wake an iterating consumer and end it once the connection is removed."""
        connection_id, subscription = hub.create_connection()
        event = deleted_event()
        hub.broadcast(event)

        async def collect():
            return [received async for received in subscription]

        task = asyncio.create_task(collect())
        for _ in range(3):
            await asyncio.sleep(0)
        hub.remove_connection(connection_id)

        assert await asyncio.wait_for(task, timeout=1) == [event]

    async def test_get_returns_none_after_removal(self, hub):
        """Should return None to every reader once removed and drained."""
        connection_id, subscription = hub.create_connection()
        waiter = asyncio.create_task(subscription.get())
        await asyncio.sleep(0)

        hub.remove_connection(connection_id)

        assert await asyncio.wait_for(waiter, timeout=1) is None
        assert await asyncio.wait_for(subscription.get(), timeout=1) is None
        assert subscription.pending == 0
        with pytest.raises(asyncio.QueueEmpty):
            subscription.get_nowait()

    async def test_concurrent_registration(self, hub):
        """Should keep the registry consistent when threads register at once."""
        created = []

        def register():
            for _ in range(50):
                created.append(hub.create_connection()[0])

        threads = [threading.Thread(target=register) for _ in range(4)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert hub.connection_count == 200
        for connection_id in created:
            hub.remove_connection(connection_id)
        assert hub.connection_count == 0


@pytest.mark.parametrize("buffer_size", [1, 5])
async def test_buffer_size_bounds_pending(buffer_size):
    hub = NotificationHub(buffer_size=buffer_size)
    _, subscription = hub.create_connection()

    for _ in range(buffer_size + 3):
        hub.broadcast(deleted_event())

    assert subscription.pending == buffer_size
