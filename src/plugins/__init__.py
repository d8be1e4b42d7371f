"""
Plugin system for the DNS controller.

Actuators talk to external DNS systems, reconcilers drive resources through
the finalizer lifecycle, and inputs accept resource declarations.
"""

from plugins.actuators.base import Actuator, DNSRecordActuator, DNSZoneActuator
from plugins.reconcilers.base import Reconciler, ReconcileResult, ResourceKind
from plugins.registry import PluginRegistry, get_registry

__all__ = [
    "Actuator",
    "DNSZoneActuator",
    "DNSRecordActuator",
    "Reconciler",
    "ReconcileResult",
    "ResourceKind",
    "PluginRegistry",
    "get_registry",
]
