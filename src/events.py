"""
Event Streaming - In-memory pub/sub for resource watch events.

The resource stores publish an event for every mutation. The controller
subscribes to turn events into reconcile requests, and the HTTP API streams
them to clients as Server-Sent Events.
"""

import asyncio
import json
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, AsyncIterator, Callable, Dict, Optional, Tuple

from resources import ObjectKey

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Watch event types."""

    ADDED = "ADDED"
    MODIFIED = "MODIFIED"
    DELETED = "DELETED"


@dataclass
class ResourceEvent:
    """Event emitted when a resource changes."""

    event_type: EventType
    kind: str
    namespace: str
    name: str
    resource_version: int
    resource_data: Dict[str, Any]
    timestamp: str

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    def to_sse(self) -> str:
        """
        Format the event as an SSE message.

        Returns:
            SSE-formatted string with event type and JSON data lines.
        """
        data = {
            "type": self.event_type.value,
            "kind": self.kind,
            "namespace": self.namespace,
            "name": self.name,
            "resourceVersion": self.resource_version,
            "object": self.resource_data,
            "timestamp": self.timestamp,
        }
        return f"event: {self.event_type.value}\ndata: {json.dumps(data)}\n\n"

    @classmethod
    def from_resource(cls, event_type: EventType, obj: Any) -> "ResourceEvent":
        """
        Create an event from a typed resource.

        Args:
            event_type: The type of event.
            obj: A DNSZone or DNSRecord.

        Returns:
            A new ResourceEvent instance.
        """
        return cls(
            event_type=event_type,
            kind=obj.KIND,
            namespace=obj.metadata.namespace,
            name=obj.metadata.name,
            resource_version=obj.metadata.resource_version,
            resource_data=obj.to_dict(),
            timestamp=datetime.now(timezone.utc).isoformat(),
        )


class EventSubscription:
    """
    Async iterator over events delivered to one subscriber.

    A ``None`` sentinel on the queue stops iteration.
    """

    def __init__(
        self,
        queue: asyncio.Queue,
        filter_fn: Optional[Callable[[ResourceEvent], bool]] = None,
    ):
        self._queue = queue
        self._filter_fn = filter_fn

    def __aiter__(self) -> AsyncIterator[ResourceEvent]:
        return self

    async def __anext__(self) -> ResourceEvent:
        while True:
            event = await self._queue.get()

            if event is None:
                raise StopAsyncIteration

            if self._filter_fn is None or self._filter_fn(event):
                return event


class EventBus:
    """
    In-memory pub/sub bus for resource events.

    Each subscriber gets its own bounded ``asyncio.Queue``. Publishing never
    blocks; events for a full queue are dropped and logged. Consumers that
    must not miss changes (the controller) also resync periodically.
    """

    def __init__(self, queue_size: int = 1024):
        self._queue_size = queue_size
        self._subscribers: Dict[str, asyncio.Queue] = {}

    async def publish(self, event: ResourceEvent) -> None:
        """
        Publish an event to all subscribers.

        Args:
            event: The event to publish.
        """
        for subscriber_id, queue in list(self._subscribers.items()):
            try:
                queue.put_nowait(event)
            except asyncio.QueueFull:
                logger.warning(
                    f"Dropped {event.event_type.value} event for "
                    f"{event.kind} {event.key}: subscriber {subscriber_id} queue full"
                )

    async def subscribe(
        self,
        filter_fn: Optional[Callable[[ResourceEvent], bool]] = None,
    ) -> Tuple[str, EventSubscription]:
        """
        Subscribe to events.

        Args:
            filter_fn: Optional predicate; only matching events are yielded.

        Returns:
            A tuple of ``(subscriber_id, EventSubscription)``.
        """
        subscriber_id = str(uuid.uuid4())
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers[subscriber_id] = queue

        logger.debug(f"New event subscriber: {subscriber_id}")
        return subscriber_id, EventSubscription(queue, filter_fn)

    async def unsubscribe(self, subscriber_id: str) -> None:
        """
        Remove a subscriber and end its iteration.

        Args:
            subscriber_id: The ID returned by :meth:`subscribe`.
        """
        queue = self._subscribers.pop(subscriber_id, None)
        if queue is None:
            return

        try:
            queue.put_nowait(None)
        except asyncio.QueueFull:
            # Drop the oldest event to fit the sentinel
            queue.get_nowait()
            queue.put_nowait(None)
        logger.debug(f"Unsubscribed: {subscriber_id}")

    def subscriber_count(self) -> int:
        """Return the current number of subscribers."""
        return len(self._subscribers)
