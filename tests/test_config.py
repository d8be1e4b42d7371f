"""Unit tests for config.py - Configuration management."""

import os
import pytest
from unittest.mock import patch

import config
from config import (
    APIConfig,
    Config,
    ControllerConfig,
    DatabaseConfig,
    PluginConfig,
    StoreConfig,
    get_config,
    load_config,
    reset_config,
)


class TestStoreConfig:
    """Tests for StoreConfig class."""

    def test_default(self):
        assert StoreConfig().backend == "memory"

    def test_from_env(self):
        with patch.dict(os.environ, {"STORE_BACKEND": "Postgres"}, clear=True):
            assert StoreConfig.from_env().backend == "postgres"

    def test_from_env_invalid_backend(self):
        with patch.dict(os.environ, {"STORE_BACKEND": "etcd"}, clear=True):
            with pytest.raises(ValueError, match="STORE_BACKEND"):
                StoreConfig.from_env()


class TestDatabaseConfig:
    """Tests for DatabaseConfig class."""

    def test_default_values(self):
        """Test default configuration values."""
        cfg = DatabaseConfig()
        assert cfg.host == "localhost"
        assert cfg.port == 5432
        assert cfg.database == "cloudkit_dns"
        assert cfg.user == "cloudkit"
        assert cfg.password == ""
        assert cfg.min_pool_size == 5
        assert cfg.max_pool_size == 20

    def test_from_env(self):
        """Test loading configuration from environment variables."""
        env_vars = {
            "DB_HOST": "envhost",
            "DB_PORT": "5434",
            "DB_NAME": "envdb",
            "DB_USER": "envuser",
            "DB_PASSWORD": "envpassword",
            "DB_MIN_POOL_SIZE": "2",
            "DB_MAX_POOL_SIZE": "8",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            cfg = DatabaseConfig.from_env()
            assert cfg.host == "envhost"
            assert cfg.port == 5434
            assert cfg.database == "envdb"
            assert cfg.user == "envuser"
            assert cfg.password == "envpassword"
            assert cfg.min_pool_size == 2
            assert cfg.max_pool_size == 8

    def test_from_env_missing_password_raises(self):
        """Test that a missing password raises when one is required."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="DB_PASSWORD"):
                DatabaseConfig.from_env()

    def test_from_env_password_optional(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = DatabaseConfig.from_env(require_password=False)
            assert cfg.password == ""

    def test_password_not_in_repr(self):
        """Test that password is excluded from repr."""
        cfg = DatabaseConfig(password="supersecret")
        assert "supersecret" not in repr(cfg)


class TestControllerConfig:
    """Tests for ControllerConfig class."""

    def test_default_values(self):
        cfg = ControllerConfig()
        assert cfg.resync_interval == 300
        assert cfg.max_concurrent_reconciles == 5
        assert cfg.backoff_base_delay == 1.0
        assert cfg.backoff_max_delay == 300.0
        assert cfg.backoff_jitter_factor == 0.1

    def test_from_env(self):
        env_vars = {
            "RESYNC_INTERVAL": "60",
            "MAX_CONCURRENT_RECONCILES": "10",
            "BACKOFF_BASE_DELAY": "0.5",
            "BACKOFF_MAX_DELAY": "30",
            "BACKOFF_JITTER_FACTOR": "0",
        }
        with patch.dict(os.environ, env_vars, clear=False):
            cfg = ControllerConfig.from_env()
            assert cfg.resync_interval == 60
            assert cfg.max_concurrent_reconciles == 10
            assert cfg.backoff_base_delay == 0.5
            assert cfg.backoff_max_delay == 30.0
            assert cfg.backoff_jitter_factor == 0.0

    def test_from_env_defaults(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = ControllerConfig.from_env()
            assert cfg.resync_interval == 300
            assert cfg.max_concurrent_reconciles == 5


class TestAPIConfig:
    """Tests for APIConfig class."""

    def test_default_values(self):
        cfg = APIConfig()
        assert cfg.log_level == "INFO"

    def test_from_env(self):
        env_vars = {"LOG_LEVEL": "debug"}
        with patch.dict(os.environ, env_vars, clear=False):
            cfg = APIConfig.from_env()
            assert cfg.log_level == "DEBUG"


class TestPluginConfig:
    """Tests for PluginConfig class."""

    def test_default_values(self):
        cfg = PluginConfig()
        assert cfg.dnszone_actuator == "memory"
        assert cfg.dnsrecord_actuator == "memory"
        assert cfg.enabled_input_plugins == []
        assert cfg.plugin_configs == {}

    def test_from_env(self):
        env_vars = {
            "DNSZONE_ACTUATOR": "route53",
            "DNSRECORD_ACTUATOR": "route53",
            "ENABLED_INPUT_PLUGINS": "http",
            "PLUGIN_CONFIGS": '{"route53": {"region": "us-east-1"}}',
        }
        with patch.dict(os.environ, env_vars, clear=False):
            cfg = PluginConfig.from_env()
            assert cfg.dnszone_actuator == "route53"
            assert cfg.dnsrecord_actuator == "route53"
            assert cfg.enabled_input_plugins == ["http"]
            assert cfg.get_plugin_config("route53") == {"region": "us-east-1"}

    def test_from_env_invalid_json(self):
        with patch.dict(os.environ, {"PLUGIN_CONFIGS": "{not json"}, clear=True):
            cfg = PluginConfig.from_env()
            assert cfg.plugin_configs == {}

    def test_from_env_whitespace_handling(self):
        env_vars = {"ENABLED_INPUT_PLUGINS": " http , ,grpc "}
        with patch.dict(os.environ, env_vars, clear=False):
            cfg = PluginConfig.from_env()
            assert cfg.enabled_input_plugins == ["http", "grpc"]

    def test_get_plugin_config_missing(self):
        assert PluginConfig().get_plugin_config("nope") == {}


class TestConfig:
    """Tests for the main Config class."""

    def test_default(self):
        cfg = Config.default()
        assert cfg.store.backend == "memory"
        assert isinstance(cfg.database, DatabaseConfig)
        assert isinstance(cfg.controller, ControllerConfig)
        assert isinstance(cfg.api, APIConfig)
        assert isinstance(cfg.plugins, PluginConfig)

    def test_from_env_memory_backend_needs_no_password(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = Config.from_env()
            assert cfg.store.backend == "memory"
            assert cfg.database.password == ""

    def test_from_env_postgres_requires_password(self):
        with patch.dict(os.environ, {"STORE_BACKEND": "postgres"}, clear=True):
            with pytest.raises(ValueError, match="DB_PASSWORD"):
                Config.from_env()


class TestConfigSingleton:
    """Tests for the module-level config accessors."""

    def setup_method(self):
        reset_config()

    def teardown_method(self):
        reset_config()

    def test_load_config(self):
        with patch.dict(os.environ, {"RESYNC_INTERVAL": "42"}, clear=True):
            cfg = load_config()
            assert cfg.controller.resync_interval == 42
            assert config.config is cfg

    def test_get_config_loads_if_none(self):
        with patch.dict(os.environ, {}, clear=True):
            cfg = get_config()
            assert cfg is get_config()

    def test_reset_config(self):
        with patch.dict(os.environ, {}, clear=True):
            get_config()
        reset_config()
        assert config.config is None
