"""
In-memory DNS provider and its zone/record actuators.

Stands in for a cloud DNS API when running locally. Zone and record
actuators share one MemoryDNSProvider so records can only be created in
zones that exist. When given a store, the actuators persist the status they
observe.
"""

import logging
from typing import Any, Dict, Optional, Tuple

from errors import ActuatorError
from plugins.actuators.base import DNSRecordActuator, DNSZoneActuator
from resources import DNSRecord, DNSZone
from store import ResourceStore

logger = logging.getLogger(__name__)

RecordId = Tuple[str, str]  # (record name, record type)


class MemoryDNSProvider:
    """A set of hosted zones, each holding records keyed by name and type."""

    def __init__(self):
        self.zones: Dict[str, Dict[RecordId, Optional[str]]] = {}

    def has_zone(self, zone_name: str) -> bool:
        return zone_name in self.zones

    def create_zone(self, zone_name: str) -> None:
        if zone_name in self.zones:
            raise ActuatorError(f"zone {zone_name} already exists")
        self.zones[zone_name] = {}

    def delete_zone(self, zone_name: str) -> None:
        self.zones.pop(zone_name, None)

    def get_record(self, zone_name: str, record_id: RecordId) -> Optional[str]:
        return self.zones.get(zone_name, {}).get(record_id)

    def has_record(self, zone_name: str, record_id: RecordId) -> bool:
        return record_id in self.zones.get(zone_name, {})

    def put_record(
        self, zone_name: str, record_id: RecordId, value: Optional[str]
    ) -> None:
        if zone_name not in self.zones:
            raise ActuatorError(f"zone {zone_name} does not exist")
        self.zones[zone_name][record_id] = value

    def delete_record(self, zone_name: str, record_id: RecordId) -> None:
        self.zones.get(zone_name, {}).pop(record_id, None)


_provider: Optional[MemoryDNSProvider] = None


def get_memory_provider() -> MemoryDNSProvider:
    """Get the process-wide in-memory provider."""
    global _provider
    if _provider is None:
        _provider = MemoryDNSProvider()
    return _provider


def reset_memory_provider() -> None:
    """Drop all in-memory zones (mainly for testing)."""
    global _provider
    _provider = None


async def _write_status(
    store: Optional[ResourceStore], resource, provider_status: Dict[str, Any]
) -> None:
    """Record provider_status on the resource and persist it if it changed."""
    if resource.status.provider_status == provider_status:
        return
    resource.status.provider_status = provider_status
    if store is not None:
        await store.update(resource)


class MemoryDNSZoneActuator(DNSZoneActuator):
    """Manages zones in the in-memory provider."""

    def __init__(self, provider: Optional[MemoryDNSProvider] = None):
        self._provider = provider
        self._store: Optional[ResourceStore] = None

    @property
    def name(self) -> str:
        return "memory"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def provider(self) -> MemoryDNSProvider:
        return self._provider or get_memory_provider()

    def set_store(self, store: ResourceStore) -> None:
        self._store = store

    async def create(self, resource: DNSZone) -> None:
        zone_name = resource.spec.zone_name
        self.provider.create_zone(zone_name)
        logger.info(f"Created zone {zone_name}")
        await _write_status(self._store, resource, {"zoneName": zone_name})

    async def update(self, resource: DNSZone) -> None:
        zone_name = resource.spec.zone_name
        if not self.provider.has_zone(zone_name):
            raise ActuatorError(f"zone {zone_name} does not exist")
        await _write_status(self._store, resource, {"zoneName": zone_name})

    async def delete(self, resource: DNSZone) -> None:
        self.provider.delete_zone(resource.spec.zone_name)
        logger.info(f"Deleted zone {resource.spec.zone_name}")

    async def exists(self, resource: DNSZone) -> bool:
        return self.provider.has_zone(resource.spec.zone_name)


class MemoryDNSRecordActuator(DNSRecordActuator):
    """
    Manages records in the in-memory provider.

    A record without a value keeps whatever value the provider already holds,
    and the provider's value is reported back in status.
    """

    def __init__(self, provider: Optional[MemoryDNSProvider] = None):
        self._provider = provider
        self._store: Optional[ResourceStore] = None

    @property
    def name(self) -> str:
        return "memory"

    @property
    def version(self) -> str:
        return "1.0.0"

    @property
    def provider(self) -> MemoryDNSProvider:
        return self._provider or get_memory_provider()

    def set_store(self, store: ResourceStore) -> None:
        self._store = store

    @staticmethod
    def _record_id(resource: DNSRecord) -> RecordId:
        return (resource.spec.record_name, resource.spec.record_type.value)

    async def create(self, resource: DNSRecord) -> None:
        zone_name = resource.spec.zone_name
        record_id = self._record_id(resource)
        if self.provider.has_record(zone_name, record_id):
            raise ActuatorError(
                f"record {record_id[0]} {record_id[1]} already exists in {zone_name}"
            )
        self.provider.put_record(zone_name, record_id, resource.spec.value)
        logger.info(f"Created record {record_id[0]} {record_id[1]} in {zone_name}")
        await _write_status(self._store, resource, {"value": resource.spec.value})

    async def update(self, resource: DNSRecord) -> None:
        zone_name = resource.spec.zone_name
        record_id = self._record_id(resource)
        current = self.provider.get_record(zone_name, record_id)
        value = current if resource.spec.value is None else resource.spec.value
        if value != current:
            logger.info(f"Updating record {record_id[0]} {record_id[1]} in {zone_name}")
        self.provider.put_record(zone_name, record_id, value)
        await _write_status(self._store, resource, {"value": value})

    async def delete(self, resource: DNSRecord) -> None:
        record_id = self._record_id(resource)
        self.provider.delete_record(resource.spec.zone_name, record_id)
        logger.info(
            f"Deleted record {record_id[0]} {record_id[1]} "
            f"in {resource.spec.zone_name}"
        )

    async def exists(self, resource: DNSRecord) -> bool:
        return self.provider.has_record(
            resource.spec.zone_name, self._record_id(resource)
        )
