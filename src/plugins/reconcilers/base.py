"""
Reconciler - Finalizer lifecycle and actuator dispatch for one resource kind.

Each call to reconcile() loads the resource and performs exactly one of:
attach the finalizer, delete the external object and release the finalizer,
create the external object, update it, or nothing. All state lives in the
stored resource and the external system, so any invocation can resume from
whatever was last persisted.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from errors import NotFoundError
from plugins.actuators.base import Actuator
from resources import ObjectKey, add_finalizer, delete_finalizer, has_finalizer
from store import ResourceStore

logger = logging.getLogger(__name__)


@dataclass
class ReconcileResult:
    """Result from a successful reconcile() call."""

    requeue: bool = False
    requeue_after: Optional[float] = None


@dataclass(frozen=True)
class ResourceKind:
    """The parameters that distinguish one reconciled kind from another."""

    name: str
    finalizer: str


class Reconciler:
    """
    Drives one kind of resource toward its spec through an actuator.

    Errors from the store or actuator are raised to the caller unchanged;
    retrying is the caller's job. The only swallowed conditions are a
    resource that no longer exists and a deleting resource whose finalizer
    is already gone.
    """

    def __init__(self, kind: ResourceKind, store: ResourceStore, actuator: Actuator):
        self.kind = kind
        self.store = store
        self.actuator = actuator
        self._label = kind.name.lower()

    async def reconcile(self, key: ObjectKey) -> ReconcileResult:
        """
        Reconcile the resource identified by key.

        Raises:
            ConflictError: If a finalizer change raced another writer.
            Exception: Anything else raised by the store or the actuator.
        """
        label = self._label
        finalizer = self.kind.finalizer
        logger.info(f"syncing {label} {key}")

        try:
            resource = await self.store.get(self.kind.name, key)
        except NotFoundError:
            # Purged after this request was queued; cleanup already ran
            logger.warning(f"{label} {key} was not found, nothing to do")
            return ReconcileResult()
        except Exception as e:
            logger.error(f"error retrieving {label} {key}: {e}")
            raise

        deleting = resource.metadata.is_deleting

        if not deleting and not has_finalizer(resource, finalizer):
            add_finalizer(resource, finalizer)
            try:
                await self.store.update(resource)
            except Exception as e:
                logger.error(f"error adding finalizer to {label} {key}: {e}")
                raise
            logger.debug(f"finalizer added to {label} {key}")
            return ReconcileResult()

        if deleting:
            if not has_finalizer(resource, finalizer):
                logger.debug(
                    f"deleted {label} {key} has no finalizer present, nothing to do"
                )
                return ReconcileResult()

            logger.debug(f"{label} {key} is being deleted, calling actuator delete")
            try:
                await self.actuator.delete(resource)
            except Exception as e:
                logger.error(f"error deleting {label} {key}: {e}")
                raise

            logger.debug(f"{label} {key} deletion successful, removing finalizer")
            delete_finalizer(resource, finalizer)
            try:
                await self.store.update(resource)
            except Exception as e:
                logger.error(f"error removing finalizer from {label} {key}: {e}")
                raise
            logger.debug(f"{label} {key} finalizer removed")
            return ReconcileResult()

        try:
            exists = await self.actuator.exists(resource)
        except Exception as e:
            logger.error(f"error checking existence of {label} {key}: {e}")
            raise

        if exists:
            logger.debug(f"{label} {key} exists, calling idempotent update")
            try:
                await self.actuator.update(resource)
            except Exception as e:
                logger.error(f"error updating {label} {key}: {e}")
                raise
            logger.debug(f"{label} {key} updated successfully")
            return ReconcileResult()

        logger.debug(f"{label} {key} does not exist, calling create")
        try:
            await self.actuator.create(resource)
        except Exception as e:
            logger.error(f"error creating {label} {key}: {e}")
            raise
        logger.debug(f"{label} {key} created successfully")
        return ReconcileResult()
