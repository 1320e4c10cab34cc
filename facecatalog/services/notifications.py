"""Real-time fan-out of catalog change events.

The hub owns the subscriber registry. Registration and removal are
serialized by a lock that is only held while the dict is touched; broadcast
copies the registry under the lock and delivers outside it.

Delivery is best-effort and at most once per subscriber: each subscriber has
a bounded buffer and misses events while it is full. Events reach a given
subscriber in the order broadcast() was called. The hub is meant to be used
from the thread running the event loop.

Example:
    ```python
    hub = NotificationHub()
    connection_id, subscription = hub.create_connection()

    hub.broadcast(FaceDeleted(face_id=face_id))
    event = await subscription.get()

    hub.remove_connection(connection_id)
    ```
"""
import asyncio
import threading
import uuid
from typing import Dict, List, Optional, Tuple

from facecatalog.core.config import settings
from facecatalog.core.logging import get_logger
from facecatalog.domain.value_objects.events import NotificationEvent

logger = get_logger(__name__)


# Queued behind the last event once the connection is removed
_CLOSED = object()


class Subscription:
    """Receiving end of one connection, owned by the transport that created it.

    Removing the connection queues a close marker behind the buffered events,
    so a consumer waiting in get() wakes up. Events buffered before removal
    are still delivered; iteration stops once they are drained.
    """

    def __init__(self, connection_id: str, buffer_size: int) -> None:
        self.connection_id = connection_id
        self.buffer_size = buffer_size
        # Unbounded so the close marker always fits; offer() enforces buffer_size
        self._queue: asyncio.Queue = asyncio.Queue()
        self.closed = False

    @property
    def pending(self) -> int:
        """Number of buffered, undelivered events."""
        return self._queue.qsize() - (1 if self.closed else 0)

    async def get(self) -> Optional[NotificationEvent]:
        """Wait for the next event.

        Returns:
            The next event, or None once the connection was removed and drained
        """
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker for later readers
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def get_nowait(self) -> NotificationEvent:
        """Return the next buffered event.

        Raises:
            asyncio.QueueEmpty: If nothing is buffered
        """
        item = self._queue.get_nowait()
        if item is _CLOSED:
            self._queue.put_nowait(_CLOSED)
            raise asyncio.QueueEmpty()
        return item

    def offer(self, event: NotificationEvent) -> bool:
        """Buffer an event without waiting; False if the buffer is full or closed."""
        if self.closed or self._queue.qsize() >= self.buffer_size:
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Stop accepting events and wake any waiting consumer."""
        if self.closed:
            return
        self.closed = True
        self._queue.put_nowait(_CLOSED)

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> NotificationEvent:
        event = await self.get()
        if event is None:
            raise StopAsyncIteration
        return event


class NotificationHub:
    """Registry of subscriber connections with non-blocking fan-out."""

    def __init__(self, buffer_size: Optional[int] = None) -> None:
        """Initialize an empty registry.

        Args:
            buffer_size: Events buffered per subscriber, defaults to settings.SUBSCRIBER_BUFFER_SIZE
        """
        self.buffer_size = buffer_size or settings.SUBSCRIBER_BUFFER_SIZE
        self._connections: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    @property
    def connection_count(self) -> int:
        """Number of registered connections."""
        with self._lock:
            return len(self._connections)

    def create_connection(self) -> Tuple[str, Subscription]:
        """Register a new subscriber.

        Returns:
            The connection id and the subscription to read events from
        """
        connection_id = str(uuid.uuid4())
        subscription = Subscription(connection_id, self.buffer_size)
        with self._lock:
            self._connections[connection_id] = subscription

        logger.info("Subscriber connected", connection_id=connection_id)
        return connection_id, subscription

    def remove_connection(self, connection_id: str) -> None:
        """Unregister a subscriber. Unknown or already removed ids are ignored."""
        with self._lock:
            subscription = self._connections.pop(connection_id, None)

        if subscription is None:
            return
        subscription.close()
        logger.info(
            "Subscriber disconnected",
            connection_id=connection_id,
            undelivered=subscription.pending
        )

    def broadcast(self, event: NotificationEvent) -> int:
        """Deliver an event to every registered subscriber.

        Never blocks: subscribers with a full buffer miss the event.

        Returns:
            Number of subscribers that accepted the event
        """
        with self._lock:
            targets: List[Subscription] = list(self._connections.values())

        delivered = 0
        for subscription in targets:
            if subscription.offer(event):
                delivered += 1
            else:
                logger.warning(
                    "Subscriber buffer full, event dropped",
                    connection_id=subscription.connection_id,
                    event_type=event.type
                )

        logger.debug(
            "Broadcast event",
            event_type=event.type,
            subscribers=len(targets),
            delivered=delivered
        )
        return delivered
