"""
Reconciler package.

The finalizer/actuator state machine is implemented once in
plugins.reconcilers.base and instantiated per kind by the dnszone and
dnsrecord modules.
"""

from plugins.reconcilers.base import Reconciler, ReconcileResult, ResourceKind

__all__ = ["Reconciler", "ReconcileResult", "ResourceKind"]
