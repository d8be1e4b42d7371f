"""Unit tests for the plugin registry."""

from unittest.mock import MagicMock, patch

import pytest

from plugins.actuators.base import DNSRecordActuator, DNSZoneActuator
from plugins.actuators.memory import MemoryDNSRecordActuator, MemoryDNSZoneActuator
from plugins.inputs.base import InputPlugin
from plugins.registry import (
    ACTUATOR_ENTRY_POINT_GROUP,
    PluginRegistry,
    get_registry,
    register_builtin_plugins,
    reset_registry,
)

# ==================== Test Helpers ====================


class ConfiguredRecordActuator(DNSRecordActuator):
    """Record actuator that keeps the configuration it was initialized with."""

    def __init__(self):
        self.config = None

    @property
    def name(self) -> str:
        return "configured"

    @property
    def version(self) -> str:
        return "2.0.0"

    @classmethod
    def load_config_from_env(cls):
        return {"endpoint": "https://dns.example.com", "timeout": 5}

    async def initialize(self, config):
        self.config = config

    async def create(self, resource):
        pass

    async def update(self, resource):
        pass

    async def delete(self, resource):
        pass

    async def exists(self, resource):
        return False


class DummyInputPlugin(InputPlugin):
    """Input plugin that records its lifecycle."""

    def __init__(self):
        self.config = None

    @property
    def name(self) -> str:
        return "dummy"

    @property
    def version(self) -> str:
        return "0.1.0"

    @classmethod
    def load_config_from_env(cls):
        return {"port": 1234}

    async def initialize(self, config):
        self.config = config

    async def start(self):
        pass

    async def stop(self):
        pass

    async def health_check(self):
        return True, "ok"


@pytest.fixture
def registry():
    return PluginRegistry()


# ==================== Registration ====================


class TestActuatorRegistration:
    """Tests for actuator plugin registration."""

    def test_register_per_kind(self, registry):
        registry.register_actuator_plugin(MemoryDNSZoneActuator)
        registry.register_actuator_plugin(MemoryDNSRecordActuator)

        assert registry.has_actuator_plugin("DNSZone", "memory")
        assert registry.has_actuator_plugin("DNSRecord", "memory")
        assert registry.list_actuator_plugins("DNSZone") == ["memory"]
        assert sorted(registry.list_actuator_plugins()) == ["memory", "memory"]

    def test_plugin_info(self, registry):
        registry.register_actuator_plugin(ConfiguredRecordActuator)

        info = registry.get_actuator_plugin_info("DNSRecord", "configured")
        assert info == {
            "name": "configured",
            "version": "2.0.0",
            "resource_kind": "DNSRecord",
        }
        assert registry.get_actuator_plugin_info("DNSZone", "configured") is None

    def test_overwrite_warns(self, registry, caplog):
        registry.register_actuator_plugin(MemoryDNSZoneActuator)
        registry.register_actuator_plugin(MemoryDNSZoneActuator)
        assert "Overwriting existing DNSZone actuator: memory" in caplog.text


class TestInputRegistration:
    """Tests for input plugin registration."""

    def test_register(self, registry):
        registry.register_input_plugin(DummyInputPlugin)

        assert registry.has_input_plugin("dummy")
        assert registry.list_input_plugins() == ["dummy"]
        assert registry.get_input_plugin_info("dummy") == {
            "name": "dummy",
            "version": "0.1.0",
        }

    def test_input_config_is_a_copy(self, registry):
        registry.register_input_plugin(DummyInputPlugin)

        cfg = registry.get_input_plugin_config("dummy")
        cfg["port"] = 9999

        assert registry.get_input_plugin_config("dummy") == {"port": 1234}

    def test_unknown_input_config(self, registry):
        assert registry.get_input_plugin_config("nope") == {}


# ==================== Instantiation ====================


@pytest.mark.asyncio
class TestInstantiation:
    """Tests for plugin instantiation."""

    async def test_get_actuator_merges_config(self, registry):
        registry.register_actuator_plugin(ConfiguredRecordActuator)

        actuator = await registry.get_actuator(
            "DNSRecord", "configured", {"timeout": 30}
        )

        assert actuator.config == {
            "endpoint": "https://dns.example.com",
            "timeout": 30,
        }

    async def test_get_actuator_is_cached(self, registry):
        registry.register_actuator_plugin(MemoryDNSRecordActuator)

        first = await registry.get_actuator("DNSRecord", "memory")
        second = await registry.get_actuator("DNSRecord", "memory")

        assert first is second

    async def test_get_actuator_wrong_kind(self, registry):
        registry.register_actuator_plugin(MemoryDNSRecordActuator)

        with pytest.raises(ValueError, match="Unknown DNSZone actuator: memory"):
            await registry.get_actuator("DNSZone", "memory")

    async def test_get_actuator_lists_available(self, registry):
        registry.register_actuator_plugin(MemoryDNSRecordActuator)

        with pytest.raises(ValueError, match="Available actuators: memory"):
            await registry.get_actuator("DNSRecord", "route53")

    async def test_get_input_plugin(self, registry):
        registry.register_input_plugin(DummyInputPlugin)

        plugin = await registry.get_input_plugin("dummy", {"port": 80})

        assert plugin.config == {"port": 80}
        assert await registry.get_input_plugin("dummy") is plugin

    async def test_get_unknown_input_plugin(self, registry):
        with pytest.raises(ValueError, match="Unknown input plugin: nope"):
            await registry.get_input_plugin("nope")


# ==================== Global registry ====================


class TestGlobalRegistry:
    """Tests for the registry singleton and built-in registration."""

    def setup_method(self):
        reset_registry()

    def teardown_method(self):
        reset_registry()

    def test_singleton(self):
        assert get_registry() is get_registry()

    def test_reset(self):
        first = get_registry()
        reset_registry()
        assert get_registry() is not first

    @patch("plugins.registry.entry_points", return_value=[])
    def test_register_builtin_plugins(self, mock_entry_points):
        register_builtin_plugins()
        registry = get_registry()

        assert registry.has_actuator_plugin("DNSZone", "memory")
        assert registry.has_actuator_plugin("DNSRecord", "memory")
        assert registry.has_input_plugin("http")
        mock_entry_points.assert_called_once_with(group=ACTUATOR_ENTRY_POINT_GROUP)

    @patch("plugins.registry.entry_points")
    def test_entry_point_discovery(self, mock_entry_points):
        good = MagicMock()
        good.name = "configured"
        good.load.return_value = ConfiguredRecordActuator
        bad = MagicMock()
        bad.name = "broken"
        bad.load.side_effect = ImportError("missing dependency")
        mock_entry_points.return_value = [good, bad]

        register_builtin_plugins()

        registry = get_registry()
        assert registry.has_actuator_plugin("DNSRecord", "configured")
        assert not registry.has_actuator_plugin("DNSRecord", "broken")


class TestActuatorBase:
    """Tests for the kind-specific actuator bases."""

    def test_resource_kinds(self):
        assert MemoryDNSZoneActuator().resource_kind == "DNSZone"
        assert ConfiguredRecordActuator().resource_kind == "DNSRecord"
        assert issubclass(MemoryDNSZoneActuator, DNSZoneActuator)

    def test_default_env_config(self):
        assert MemoryDNSRecordActuator.load_config_from_env() == {}
