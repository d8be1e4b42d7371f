"""
Resource Store - Interface for loading and persisting resources.

Implementations publish a watch event to the event bus for every mutation;
the controller uses those events to schedule reconciliation.
"""

import asyncio
import copy
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from errors import AlreadyExistsError, ConflictError, NotFoundError
from events import EventBus, EventType, ResourceEvent
from resources import ObjectKey, Scheme

logger = logging.getLogger(__name__)


class ResourceStore(ABC):
    """
    Abstract base class for resource stores.

    Deletion follows the finalizer protocol: delete() only marks a resource
    while finalizers remain, and the resource is purged once an update leaves
    it marked with an empty finalizer list.
    """

    def __init__(self, scheme: Scheme, event_bus: Optional[EventBus] = None):
        self.scheme = scheme
        self._event_bus = event_bus

    def set_event_bus(self, event_bus: EventBus) -> None:
        self._event_bus = event_bus

    async def _publish(self, event_type: EventType, obj: Any) -> None:
        if self._event_bus is not None:
            await self._event_bus.publish(ResourceEvent.from_resource(event_type, obj))

    @abstractmethod
    async def get(self, kind: str, key: ObjectKey) -> Any:
        """
        Load a resource.

        Raises:
            NotFoundError: If no resource exists for the key.
        """
        pass

    @abstractmethod
    async def update(self, obj: Any) -> None:
        """
        Persist metadata, spec, and status of a previously loaded resource.

        The new resource version is written back onto ``obj``.

        Raises:
            NotFoundError: If the resource no longer exists.
            ConflictError: If the resource changed since it was loaded.
        """
        pass

    @abstractmethod
    async def create(self, obj: Any) -> Any:
        """
        Create a resource and return the stored copy.

        Raises:
            AlreadyExistsError: If the key is already taken.
        """
        pass

    @abstractmethod
    async def delete(self, kind: str, key: ObjectKey) -> None:
        """
        Request deletion of a resource.

        Raises:
            NotFoundError: If no resource exists for the key.
        """
        pass

    @abstractmethod
    async def list(self, kind: str, namespace: Optional[str] = None) -> List[Any]:
        """List resources of a kind, optionally within one namespace."""
        pass


class MemoryStore(ResourceStore):
    """Process-local resource store used for development and tests."""

    def __init__(self, scheme: Scheme, event_bus: Optional[EventBus] = None):
        super().__init__(scheme, event_bus)
        self._objects: Dict[Tuple[str, ObjectKey], Any] = {}
        self._lock = asyncio.Lock()

    async def get(self, kind: str, key: ObjectKey) -> Any:
        self.scheme.type_for(kind)
        async with self._lock:
            stored = self._objects.get((kind, key))
            if stored is None:
                raise NotFoundError(kind, key)
            return copy.deepcopy(stored)

    async def create(self, obj: Any) -> Any:
        kind = self.scheme.kind_for(obj)
        key = obj.metadata.key

        async with self._lock:
            if (kind, key) in self._objects:
                raise AlreadyExistsError(kind, key)

            stored = copy.deepcopy(obj)
            stored.metadata.uid = str(uuid.uuid4())
            stored.metadata.resource_version = 1
            stored.metadata.generation = 1
            stored.metadata.creation_timestamp = datetime.now(timezone.utc)
            stored.metadata.deletion_timestamp = None
            self._objects[(kind, key)] = stored
            result = copy.deepcopy(stored)

        logger.info(f"Created {kind} {key}")
        await self._publish(EventType.ADDED, result)
        return result

    async def update(self, obj: Any) -> None:
        kind = self.scheme.kind_for(obj)
        key = obj.metadata.key

        async with self._lock:
            current = self._objects.get((kind, key))
            if current is None:
                raise NotFoundError(kind, key)
            if current.metadata.resource_version != obj.metadata.resource_version:
                raise ConflictError(
                    kind,
                    key,
                    expected=obj.metadata.resource_version,
                    actual=current.metadata.resource_version,
                )

            stored = copy.deepcopy(obj)
            stored.metadata.uid = current.metadata.uid
            stored.metadata.creation_timestamp = current.metadata.creation_timestamp
            stored.metadata.deletion_timestamp = current.metadata.deletion_timestamp
            stored.metadata.resource_version = current.metadata.resource_version + 1
            stored.metadata.generation = current.metadata.generation
            if stored.spec != current.spec:
                stored.metadata.generation += 1

            purge = stored.metadata.is_deleting and not stored.metadata.finalizers
            if purge:
                del self._objects[(kind, key)]
            else:
                self._objects[(kind, key)] = stored

            obj.metadata.resource_version = stored.metadata.resource_version
            obj.metadata.generation = stored.metadata.generation
            result = copy.deepcopy(stored)

        if purge:
            logger.info(f"Last finalizer removed, purged {kind} {key}")
            await self._publish(EventType.DELETED, result)
        else:
            await self._publish(EventType.MODIFIED, result)

    async def delete(self, kind: str, key: ObjectKey) -> None:
        self.scheme.type_for(kind)

        async with self._lock:
            current = self._objects.get((kind, key))
            if current is None:
                raise NotFoundError(kind, key)

            if not current.metadata.finalizers:
                del self._objects[(kind, key)]
                event_type = EventType.DELETED
            elif current.metadata.is_deleting:
                return
            else:
                current.metadata.deletion_timestamp = datetime.now(timezone.utc)
                current.metadata.resource_version += 1
                event_type = EventType.MODIFIED
            result = copy.deepcopy(current)

        if event_type is EventType.DELETED:
            logger.info(f"Deleted {kind} {key}")
        else:
            logger.info(
                f"Marked {kind} {key} for deletion, "
                f"waiting on finalizers: {result.metadata.finalizers}"
            )
        await self._publish(event_type, result)

    async def list(self, kind: str, namespace: Optional[str] = None) -> List[Any]:
        self.scheme.type_for(kind)
        async with self._lock:
            items = [
                copy.deepcopy(obj)
                for (obj_kind, key), obj in self._objects.items()
                if obj_kind == kind and (namespace is None or key.namespace == namespace)
            ]
        return sorted(items, key=lambda o: (o.metadata.namespace, o.metadata.name))
