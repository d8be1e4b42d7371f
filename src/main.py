"""
Main entry point for the DNS controller.

Wires the resource store, actuators, reconcilers, controller, and input
plugins together and runs them until a shutdown signal arrives.
"""

import asyncio
import logging
import signal
from typing import List, Optional

from config import Config, get_config
from controller import Controller, ControllerConfig
from db import DatabaseManager
from events import EventBus
from plugins.inputs.base import InputPlugin
from plugins.reconcilers import dnsrecord, dnszone
from plugins.registry import get_registry, register_builtin_plugins
from resources import DNSRecord, DNSZone, Scheme, add_to_scheme
from store import MemoryStore, ResourceStore

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


class Application:
    """Main application that orchestrates the controller and plugins."""

    def __init__(self, config: Optional[Config] = None):
        self.config = config or get_config()
        self.scheme: Optional[Scheme] = None
        self.store: Optional[ResourceStore] = None
        self.controller: Optional[Controller] = None
        self.event_bus: Optional[EventBus] = None
        self.input_plugins: List[InputPlugin] = []
        self.running = False

    async def _create_store(self) -> ResourceStore:
        if self.config.store.backend == "postgres":
            db_config = self.config.database
            db = DatabaseManager(
                host=db_config.host,
                port=db_config.port,
                database=db_config.database,
                user=db_config.user,
                password=db_config.password,
                scheme=self.scheme,
                event_bus=self.event_bus,
                min_pool_size=db_config.min_pool_size,
                max_pool_size=db_config.max_pool_size,
            )
            await db.connect()
            await db.initialize_schema()
            return db

        logger.info("Using in-memory resource store")
        return MemoryStore(self.scheme, self.event_bus)

    async def initialize(self):
        """Initialize all components."""
        logger.info("Initializing DNS controller")

        self.scheme = Scheme()
        add_to_scheme(self.scheme)

        self.event_bus = EventBus()
        self.store = await self._create_store()
        logger.info(f"Resource store initialized ({self.config.store.backend})")

        register_builtin_plugins()
        registry = get_registry()
        plugins_config = self.config.plugins

        ctrl_config = self.config.controller
        self.controller = Controller(
            store=self.store,
            config=ControllerConfig(
                resync_interval=ctrl_config.resync_interval,
                max_concurrent_reconciles=ctrl_config.max_concurrent_reconciles,
                backoff_base_delay=ctrl_config.backoff_base_delay,
                backoff_max_delay=ctrl_config.backoff_max_delay,
                backoff_jitter_factor=ctrl_config.backoff_jitter_factor,
            ),
            event_bus=self.event_bus,
        )

        zone_actuator = await registry.get_actuator(
            DNSZone.KIND,
            plugins_config.dnszone_actuator,
            plugins_config.get_plugin_config(plugins_config.dnszone_actuator),
        )
        dnszone.add_with_actuator(self.controller, zone_actuator)

        record_actuator = await registry.get_actuator(
            DNSRecord.KIND,
            plugins_config.dnsrecord_actuator,
            plugins_config.get_plugin_config(plugins_config.dnsrecord_actuator),
        )
        dnsrecord.add_with_actuator(self.controller, record_actuator)

        enabled_inputs = (
            plugins_config.enabled_input_plugins or registry.list_input_plugins()
        )
        for plugin_name in enabled_inputs:
            if not registry.has_input_plugin(plugin_name):
                logger.warning(f"Input plugin '{plugin_name}' not found, skipping")
                continue

            plugin_config = registry.get_input_plugin_config(plugin_name)
            plugin_config.update(plugins_config.get_plugin_config(plugin_name))

            plugin = await registry.get_input_plugin(plugin_name, plugin_config)
            plugin.set_store(self.store)
            plugin.set_event_bus(self.event_bus)
            self.input_plugins.append(plugin)
            logger.info(f"Initialized input plugin: {plugin_name}")

        logger.info("All components initialized")

    async def start(self):
        """Start the application."""
        if not self.controller:
            await self.initialize()

        self.running = True
        logger.info("Starting DNS controller")

        tasks = [asyncio.create_task(self.controller.start())]
        for plugin in self.input_plugins:
            tasks.append(asyncio.create_task(plugin.start()))

        try:
            await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            logger.info("Application tasks cancelled")

    async def stop(self):
        """Stop the application gracefully."""
        if not self.running:
            return
        logger.info("Stopping DNS controller")
        self.running = False

        if self.controller:
            await self.controller.stop()

        for plugin in self.input_plugins:
            await plugin.stop()

        if isinstance(self.store, DatabaseManager):
            await self.store.close()

        logger.info("DNS controller stopped")


async def main():
    """Main entry point."""
    config = get_config()
    configure_logging(config.api.log_level)
    app = Application(config)

    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Received shutdown signal")
        asyncio.create_task(app.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, signal_handler)

    try:
        await app.start()
    finally:
        await app.stop()


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
