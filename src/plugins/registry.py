"""
Plugin Registry - Discovery and registration of plugins.

Actuator plugins are registered per resource kind, so a single provider
(e.g. 'memory') can supply both a DNSZone and a DNSRecord actuator.
"""

import logging
from importlib.metadata import entry_points
from typing import Any, Dict, List, Optional, Tuple, Type

from plugins.actuators.base import Actuator
from plugins.inputs.base import InputPlugin

logger = logging.getLogger(__name__)

ACTUATOR_ENTRY_POINT_GROUP = "cloudkit.actuators"

ActuatorId = Tuple[str, str]  # (resource kind, plugin name)


class PluginRegistry:
    """
    Central registry for all plugins.

    Handles registration and instantiation of actuator and input plugins.
    """

    def __init__(self):
        # Registered plugin classes (not instantiated)
        self._actuator_plugins: Dict[ActuatorId, Type[Actuator]] = {}
        self._input_plugins: Dict[str, Type[InputPlugin]] = {}

        # Cached plugin metadata to avoid repeated instantiation
        self._actuator_plugin_info: Dict[ActuatorId, Dict[str, str]] = {}
        self._input_plugin_info: Dict[str, Dict[str, str]] = {}

        # Instantiated and initialized plugin instances
        self._actuator_instances: Dict[ActuatorId, Actuator] = {}
        self._input_instances: Dict[str, InputPlugin] = {}

        # Plugin configurations loaded from environment
        self._actuator_plugin_configs: Dict[ActuatorId, Dict[str, Any]] = {}
        self._input_plugin_configs: Dict[str, Dict[str, Any]] = {}

    # Registration methods

    def register_actuator_plugin(self, plugin_class: Type[Actuator]) -> None:
        """
        Register an actuator plugin class.

        Args:
            plugin_class: The Actuator subclass to register
        """
        temp_instance = plugin_class()
        plugin_id = (temp_instance.resource_kind, temp_instance.name)

        if plugin_id in self._actuator_plugins:
            logger.warning(
                f"Overwriting existing {plugin_id[0]} actuator: {plugin_id[1]}"
            )

        self._actuator_plugins[plugin_id] = plugin_class
        self._actuator_plugin_info[plugin_id] = {
            "name": temp_instance.name,
            "version": temp_instance.version,
            "resource_kind": temp_instance.resource_kind,
        }
        self._actuator_plugin_configs[plugin_id] = plugin_class.load_config_from_env()
        logger.info(
            f"Registered {plugin_id[0]} actuator: {plugin_id[1]} "
            f"v{temp_instance.version}"
        )

    def register_input_plugin(self, plugin_class: Type[InputPlugin]) -> None:
        """
        Register an input plugin class.

        Args:
            plugin_class: The InputPlugin subclass to register
        """
        temp_instance = plugin_class()
        name = temp_instance.name
        version = temp_instance.version

        if name in self._input_plugins:
            logger.warning(f"Overwriting existing input plugin: {name}")

        self._input_plugins[name] = plugin_class
        self._input_plugin_info[name] = {"name": name, "version": version}
        self._input_plugin_configs[name] = plugin_class.load_config_from_env()
        logger.info(f"Registered input plugin: {name} v{version}")

    # Instantiation methods

    async def get_actuator(
        self, resource_kind: str, name: str, config: Optional[Dict[str, Any]] = None
    ) -> Actuator:
        """
        Get an initialized actuator for a resource kind.

        Args:
            resource_kind: The kind the actuator must manage
            name: The actuator plugin name
            config: Configuration merged over the env-loaded plugin config

        Raises:
            ValueError: If no such actuator is registered for the kind
        """
        plugin_id = (resource_kind, name)
        if plugin_id not in self._actuator_plugins:
            available = ", ".join(self.list_actuator_plugins(resource_kind)) or "none"
            raise ValueError(
                f"Unknown {resource_kind} actuator: {name}. "
                f"Available actuators: {available}"
            )

        if plugin_id not in self._actuator_instances:
            plugin_config = dict(self._actuator_plugin_configs.get(plugin_id, {}))
            plugin_config.update(config or {})
            plugin = self._actuator_plugins[plugin_id]()
            await plugin.initialize(plugin_config)
            self._actuator_instances[plugin_id] = plugin
            logger.info(f"Initialized {resource_kind} actuator: {name}")

        return self._actuator_instances[plugin_id]

    async def get_input_plugin(
        self, name: str, config: Optional[Dict[str, Any]] = None
    ) -> InputPlugin:
        """
        Get an initialized input plugin instance.

        Raises:
            ValueError: If the plugin name is not registered
        """
        if name not in self._input_plugins:
            available = ", ".join(self._input_plugins.keys()) or "none"
            raise ValueError(
                f"Unknown input plugin: {name}. Available plugins: {available}"
            )

        if name not in self._input_instances:
            plugin = self._input_plugins[name]()
            await plugin.initialize(config or {})
            self._input_instances[name] = plugin
            logger.info(f"Initialized input plugin: {name}")

        return self._input_instances[name]

    # Discovery methods

    def list_actuator_plugins(self, resource_kind: Optional[str] = None) -> List[str]:
        """List registered actuator names, optionally for one kind."""
        return [
            name
            for kind, name in self._actuator_plugins
            if resource_kind is None or kind == resource_kind
        ]

    def list_input_plugins(self) -> List[str]:
        """List all registered input plugin names."""
        return list(self._input_plugins.keys())

    def has_actuator_plugin(self, resource_kind: str, name: str) -> bool:
        return (resource_kind, name) in self._actuator_plugins

    def has_input_plugin(self, name: str) -> bool:
        return name in self._input_plugins

    def get_actuator_plugin_info(
        self, resource_kind: str, name: str
    ) -> Optional[Dict[str, str]]:
        return self._actuator_plugin_info.get((resource_kind, name))

    def get_input_plugin_info(self, name: str) -> Optional[Dict[str, str]]:
        return self._input_plugin_info.get(name)

    def get_input_plugin_config(self, name: str) -> Dict[str, Any]:
        """Get a copy of the env-loaded configuration for an input plugin."""
        return dict(self._input_plugin_configs.get(name, {}))


# Global registry instance
_registry: Optional[PluginRegistry] = None


def get_registry() -> PluginRegistry:
    """Get the global plugin registry singleton."""
    global _registry
    if _registry is None:
        _registry = PluginRegistry()
    return _registry


def reset_registry() -> None:
    """Reset the global registry (mainly for testing)."""
    global _registry
    _registry = None


def register_builtin_plugins() -> None:
    """
    Register the built-in plugins and discover actuators via entry points.

    Called once during application startup.
    """
    registry = get_registry()

    from plugins.actuators.memory import (
        MemoryDNSRecordActuator,
        MemoryDNSZoneActuator,
    )

    registry.register_actuator_plugin(MemoryDNSZoneActuator)
    registry.register_actuator_plugin(MemoryDNSRecordActuator)

    try:
        from plugins.inputs.http import HTTPInputPlugin

        registry.register_input_plugin(HTTPInputPlugin)
    except ImportError as e:
        logger.warning(f"Could not load HTTP input plugin: {e}")

    for ep in entry_points(group=ACTUATOR_ENTRY_POINT_GROUP):
        try:
            registry.register_actuator_plugin(ep.load())
        except Exception as e:
            logger.warning(f"Could not load actuator plugin {ep.name}: {e}")
