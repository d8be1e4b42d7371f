"""DNSZone reconciler wiring."""

from plugins.actuators.base import DNSZoneActuator
from plugins.reconcilers.base import Reconciler, ResourceKind
from resources import DNSZONE_FINALIZER, DNSZone
from store import ResourceStore

KIND = ResourceKind(name=DNSZone.KIND, finalizer=DNSZONE_FINALIZER)


def new_reconciler(store: ResourceStore, actuator: DNSZoneActuator) -> Reconciler:
    """Build a DNSZone reconciler over the given store and actuator."""
    return Reconciler(KIND, store, actuator)


def add(controller, reconciler: Reconciler) -> None:
    """Register a reconciler with the controller so DNSZone events reach it."""
    controller.watch(reconciler)


def add_with_actuator(controller, actuator: DNSZoneActuator) -> Reconciler:
    """Create a DNSZone reconciler on the controller's store and register it."""
    actuator.set_store(controller.store)
    reconciler = new_reconciler(controller.store, actuator)
    add(controller, reconciler)
    return reconciler
