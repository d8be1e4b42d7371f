"""
Input Plugin Base - Abstract interface for resource input sources.

Input plugins are how users declare zones and records: they create, update,
and request deletion of resources in the resource store. The store's watch
events then drive reconciliation.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict


class InputPlugin(ABC):
    """
    Abstract base class for input plugins.
    """

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this plugin (e.g., 'http')."""
        pass

    @property
    @abstractmethod
    def version(self) -> str:
        """Plugin version string."""
        pass

    @abstractmethod
    async def initialize(self, config: Dict[str, Any]) -> None:
        """
        Initialize the plugin with configuration.

        Args:
            config: Plugin-specific configuration dictionary
        """
        pass

    @abstractmethod
    async def start(self) -> None:
        """
        Start accepting input. Runs until stop() is called.
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop the input plugin gracefully."""
        pass

    @abstractmethod
    async def health_check(self) -> tuple[bool, str]:
        """
        Check if the input plugin is healthy.

        Returns:
            Tuple of (is_healthy, status_message).
        """
        pass

    @classmethod
    def load_config_from_env(cls) -> Dict[str, Any]:
        """
        Load plugin-specific configuration from environment variables.

        Returns:
            Dictionary of configuration values for this plugin.
        """
        return {}

    def set_store(self, store: Any) -> None:
        """
        Set the resource store the plugin writes to.

        Args:
            store: A ResourceStore instance
        """
        pass

    def set_event_bus(self, event_bus: Any) -> None:
        """
        Set the event bus for plugins that stream events.

        Args:
            event_bus: The EventBus instance
        """
        pass
