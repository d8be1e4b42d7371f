"""DNSRecord reconciler wiring."""

from plugins.actuators.base import DNSRecordActuator
from plugins.reconcilers.base import Reconciler, ResourceKind
from resources import DNSRECORD_FINALIZER, DNSRecord
from store import ResourceStore

KIND = ResourceKind(name=DNSRecord.KIND, finalizer=DNSRECORD_FINALIZER)


def new_reconciler(store: ResourceStore, actuator: DNSRecordActuator) -> Reconciler:
    """Build a DNSRecord reconciler over the given store and actuator."""
    return Reconciler(KIND, store, actuator)


def add(controller, reconciler: Reconciler) -> None:
    """Register a reconciler with the controller so DNSRecord events reach it."""
    controller.watch(reconciler)


def add_with_actuator(controller, actuator: DNSRecordActuator) -> Reconciler:
    """Create a DNSRecord reconciler on the controller's store and register it."""
    actuator.set_store(controller.store)
    reconciler = new_reconciler(controller.store, actuator)
    add(controller, reconciler)
    return reconciler
