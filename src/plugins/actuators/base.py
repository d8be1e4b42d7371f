"""
Actuator Plugin Base - Abstract interface for external DNS systems.

An actuator is implemented per resource kind by a concrete DNS provider
adapter. The reconciler calls it and propagates whatever it raises.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, Generic, TypeVar

from resources import DNSRecord, DNSZone

R = TypeVar("R")


class Actuator(ABC, Generic[R]):
    """
    Abstract base class for actuator plugins.

    Implementations must make update() and delete() idempotent: update() is
    called on every reconciliation of an existing object, and delete() may be
    repeated when removing the finalizer afterwards fails.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Plugin name (e.g., 'memory'). Unique per resource kind."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Plugin version string."""
        pass

    @property
    @abstractmethod
    def resource_kind(self) -> str:
        """Kind of resource this actuator manages."""
        pass

    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the plugin with configuration.

        Called once when the plugin is loaded.

        Args:
            config: Plugin-specific configuration dictionary
        """
        pass

    def set_store(self, store: Any) -> None:
        """
        Set the resource store used to write back status.

        Args:
            store: A ResourceStore instance
        """
        pass

    @abstractmethod
    async def create(self, resource: R) -> None:
        """Create the external object."""
        pass

    @abstractmethod
    async def update(self, resource: R) -> None:
        """Bring the existing external object in line with resource.spec."""
        pass

    @abstractmethod
    async def delete(self, resource: R) -> None:
        """Delete the external object. Deleting a missing object succeeds."""
        pass

    @abstractmethod
    async def exists(self, resource: R) -> bool:
        """Check whether the external object currently exists."""
        pass

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """
        Load plugin-specific configuration from environment variables.

        Returns:
            Dictionary of configuration values for this plugin.
        """
        return {}


class DNSZoneActuator(Actuator[DNSZone]):
    """Actuator for DNSZone resources."""

    @property
    def resource_kind(self) -> str:
        return DNSZone.KIND


class DNSRecordActuator(Actuator[DNSRecord]):
    """Actuator for DNSRecord resources."""

    @property
    def resource_kind(self) -> str:
        return DNSRecord.KIND
