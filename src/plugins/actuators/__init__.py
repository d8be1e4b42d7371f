"""
Actuator plugins package.

Actuators perform Create/Update/Delete/Exists against the external DNS system
for one resource kind. Third-party actuators are discovered via the
'cloudkit.actuators' entry point group.
"""

from plugins.actuators.base import Actuator, DNSRecordActuator, DNSZoneActuator

__all__ = ["Actuator", "DNSZoneActuator", "DNSRecordActuator"]
