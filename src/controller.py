"""
DNS Controller - Watch-driven reconciliation loop.

Similar to a Kubernetes controller manager: store events are turned into
reconcile requests on a work queue, and a pool of workers calls the
registered reconciler for each request. Failed requests are retried with
exponential backoff.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Dict, List, Optional, Set, Tuple

from events import EventBus, EventSubscription
from plugins.reconcilers.base import Reconciler
from resources import ObjectKey
from store import ResourceStore

logger = logging.getLogger(__name__)

WorkItem = Tuple[str, ObjectKey]


@dataclass
class ControllerConfig:
    """Configuration for the controller."""

    resync_interval: int = 300
    max_concurrent_reconciles: int = 5

    # Exponential backoff configuration
    backoff_base_delay: float = 1.0  # base delay in seconds
    backoff_max_delay: float = 300.0  # max delay in seconds
    backoff_jitter_factor: float = 0.1  # ±10% jitter


class WorkQueue:
    """
    Deduplicating work queue.

    An item is held by at most one worker at a time. Adding an item that is
    already pending is a no-op; adding one that is being processed defers it
    until done() is called for it.
    """

    def __init__(self):
        self._queue: asyncio.Queue = asyncio.Queue()
        self._dirty: Set[WorkItem] = set()
        self._processing: Set[WorkItem] = set()
        self._shutting_down = False

    def add(self, item: WorkItem) -> None:
        if self._shutting_down or item in self._dirty:
            return
        self._dirty.add(item)
        if item in self._processing:
            return
        self._queue.put_nowait(item)

    async def get(self) -> Optional[WorkItem]:
        """Wait for the next item. Returns None once the queue is shut down."""
        item = await self._queue.get()
        if item is None:
            return None
        self._dirty.discard(item)
        self._processing.add(item)
        return item

    def done(self, item: WorkItem) -> None:
        self._processing.discard(item)
        if item in self._dirty and not self._shutting_down:
            self._queue.put_nowait(item)

    def shut_down(self, workers: int) -> None:
        self._shutting_down = True
        for _ in range(workers):
            self._queue.put_nowait(None)

    def is_processing(self, item: WorkItem) -> bool:
        return item in self._processing

    def __len__(self) -> int:
        return len(self._dirty)


class Controller:
    """
    Dispatches reconcile requests to per-kind reconcilers.

    Requests come from store watch events, a periodic resync of every
    watched kind, backoff retries, and manual triggers.
    """

    def __init__(
        self,
        store: ResourceStore,
        config: Optional[ControllerConfig] = None,
        event_bus: Optional[EventBus] = None,
    ):
        self.store = store
        self.config = config or ControllerConfig()
        self.resync_interval = self.config.resync_interval
        self.max_concurrent_reconciles = self.config.max_concurrent_reconciles
        self.running = False
        self.queue = WorkQueue()
        self._event_bus = event_bus
        self._reconcilers: Dict[str, Reconciler] = {}
        self._failures: Dict[WorkItem, int] = {}
        self._tasks: List[asyncio.Task] = []
        self._subscriber_id: Optional[str] = None

    def watch(self, reconciler: Reconciler) -> None:
        """
        Register a reconciler for its resource kind.

        Raises:
            ValueError: If the kind already has a reconciler.
        """
        kind = reconciler.kind.name
        if kind in self._reconcilers:
            raise ValueError(f"Kind {kind} already has a reconciler")
        self._reconcilers[kind] = reconciler
        logger.info(f"Watching {kind} resources")

    @property
    def watched_kinds(self) -> List[str]:
        return list(self._reconcilers.keys())

    async def start(self):
        """Start watching, resyncing, and reconciling until stopped."""
        logger.info("Starting DNS controller")
        if not self._reconcilers:
            logger.warning("No reconcilers registered, controller has nothing to do")
        self.running = True

        if self._event_bus is not None:
            self._subscriber_id, subscription = await self._event_bus.subscribe(
                lambda event: event.kind in self._reconcilers
            )
            self._tasks.append(asyncio.create_task(self._watch_loop(subscription)))

        self._tasks.append(asyncio.create_task(self._resync_loop()))
        for worker_id in range(self.max_concurrent_reconciles):
            self._tasks.append(asyncio.create_task(self._worker(worker_id)))

        results = await asyncio.gather(*self._tasks, return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.error(f"Controller task failed: {result}")

    async def stop(self):
        """Stop the controller and release all workers."""
        logger.info("Stopping DNS controller")
        self.running = False

        if self._event_bus is not None and self._subscriber_id is not None:
            await self._event_bus.unsubscribe(self._subscriber_id)
            self._subscriber_id = None

        self.queue.shut_down(self.max_concurrent_reconciles)
        for task in self._tasks:
            if not task.done():
                task.cancel()
        self._tasks.clear()

    def enqueue(self, kind: str, key: ObjectKey) -> None:
        self.queue.add((kind, key))

    def enqueue_after(self, kind: str, key: ObjectKey, delay: float) -> None:
        loop = asyncio.get_running_loop()
        loop.call_later(delay, self.queue.add, (kind, key))

    async def trigger_reconciliation(self, kind: str, key: ObjectKey) -> None:
        """Manually trigger reconciliation for a specific resource."""
        logger.info(f"Manually triggering reconciliation for {kind} {key}")
        self.enqueue(kind, key)

    async def resync(self) -> None:
        """Enqueue every stored resource of each watched kind."""
        for kind in self.watched_kinds:
            resources = await self.store.list(kind)
            for resource in resources:
                self.enqueue(kind, resource.metadata.key)
            logger.debug(f"Resynced {len(resources)} {kind} resources")

    async def _watch_loop(self, subscription: EventSubscription):
        async for event in subscription:
            logger.debug(
                f"Received {event.event_type.value} event for {event.kind} {event.key}"
            )
            self.enqueue(event.kind, event.key)

    async def _resync_loop(self):
        while self.running:
            try:
                await self.resync()
            except Exception as e:
                logger.error(f"Error in resync loop: {e}", exc_info=True)
            await asyncio.sleep(self.resync_interval)

    async def _worker(self, worker_id: int):
        while self.running:
            item = await self.queue.get()
            if item is None:
                break
            try:
                await self._process(item)
            finally:
                self.queue.done(item)
        logger.debug(f"Worker {worker_id} exited")

    async def _process(self, item: WorkItem) -> None:
        """Run one reconcile request and schedule any follow-up."""
        kind, key = item
        reconciler = self._reconcilers.get(kind)
        if reconciler is None:
            logger.warning(f"No reconciler registered for {kind}, dropping {key}")
            return

        try:
            result = await reconciler.reconcile(key)
        except Exception as e:
            delay = self._next_backoff(item)
            logger.error(
                f"Error reconciling {kind} {key}, retrying in {delay:.1f}s: {e}"
            )
            self.enqueue_after(kind, key, delay)
            return

        self._failures.pop(item, None)
        if result.requeue_after:
            self.enqueue_after(kind, key, result.requeue_after)
        elif result.requeue:
            self.enqueue_after(kind, key, self._next_backoff(item))

    def _next_backoff(self, item: WorkItem) -> float:
        """Exponential backoff with jitter, based on consecutive failures."""
        failures = self._failures.get(item, 0)
        self._failures[item] = failures + 1

        delay = min(
            self.config.backoff_base_delay * (2 ** min(failures, 10)),
            self.config.backoff_max_delay,
        )
        jitter = delay * self.config.backoff_jitter_factor * (random.random() * 2 - 1)
        return max(0.0, delay + jitter)
