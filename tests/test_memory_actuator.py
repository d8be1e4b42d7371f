"""Tests for the in-memory DNS provider and its actuators."""

import pytest

from conftest import make_record, make_zone
from errors import ActuatorError, ConflictError
from plugins.actuators.memory import (
    MemoryDNSProvider,
    MemoryDNSRecordActuator,
    MemoryDNSZoneActuator,
    get_memory_provider,
    reset_memory_provider,
)
from plugins.reconcilers import dnszone
from resources import DNSRecord, DNSRecordType, DNSZone, ObjectKey

KEY = ObjectKey("testns", "dnsrecord")


@pytest.fixture
def provider():
    return MemoryDNSProvider()


class TestMemoryDNSProvider:
    """Tests for the provider's zone and record bookkeeping."""

    def test_zone_lifecycle(self, provider):
        provider.create_zone("example.com")
        assert provider.has_zone("example.com")

        provider.delete_zone("example.com")
        assert not provider.has_zone("example.com")

    def test_duplicate_zone(self, provider):
        provider.create_zone("example.com")
        with pytest.raises(ActuatorError, match="already exists"):
            provider.create_zone("example.com")

    def test_delete_missing_zone(self, provider):
        provider.delete_zone("nowhere.com")
        assert provider.zones == {}

    def test_put_record_requires_zone(self, provider):
        with pytest.raises(ActuatorError, match="does not exist"):
            provider.put_record("example.com", ("www", "A"), "10.0.0.1")

    def test_record_lifecycle(self, provider):
        provider.create_zone("example.com")
        provider.put_record("example.com", ("www", "A"), "10.0.0.1")

        assert provider.has_record("example.com", ("www", "A"))
        assert provider.get_record("example.com", ("www", "A")) == "10.0.0.1"
        assert not provider.has_record("example.com", ("www", "AAAA"))

        provider.delete_record("example.com", ("www", "A"))
        assert not provider.has_record("example.com", ("www", "A"))

    def test_global_provider(self):
        reset_memory_provider()
        try:
            first = get_memory_provider()
            assert get_memory_provider() is first
            reset_memory_provider()
            assert get_memory_provider() is not first
        finally:
            reset_memory_provider()


@pytest.mark.asyncio
class TestMemoryDNSZoneActuator:
    """Tests for the zone actuator."""

    async def test_create(self, provider):
        actuator = MemoryDNSZoneActuator(provider)
        zone = make_zone()

        await actuator.create(zone)

        assert await actuator.exists(zone)
        assert zone.status.provider_status == {"zoneName": "example.com"}

    async def test_create_existing_zone_fails(self, provider):
        provider.create_zone("example.com")
        with pytest.raises(ActuatorError):
            await MemoryDNSZoneActuator(provider).create(make_zone())

    async def test_update_missing_zone_fails(self, provider):
        with pytest.raises(ActuatorError, match="does not exist"):
            await MemoryDNSZoneActuator(provider).update(make_zone())

    async def test_update(self, provider):
        provider.create_zone("example.com")
        zone = make_zone()

        await MemoryDNSZoneActuator(provider).update(zone)

        assert zone.status.provider_status["zoneName"] == "example.com"

    async def test_delete_is_idempotent(self, provider):
        actuator = MemoryDNSZoneActuator(provider)
        zone = make_zone()
        await actuator.create(zone)

        await actuator.delete(zone)
        await actuator.delete(zone)

        assert not await actuator.exists(zone)

    async def test_metadata(self):
        actuator = MemoryDNSZoneActuator()
        assert actuator.name == "memory"
        assert actuator.version == "1.0.0"
        assert actuator.resource_kind == "DNSZone"


@pytest.mark.asyncio
class TestMemoryDNSRecordActuator:
    """Tests for the record actuator."""

    @pytest.fixture
    def zoned_provider(self, provider):
        provider.create_zone("example.com")
        return provider

    async def test_create(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        record = make_record()

        await actuator.create(record)

        assert await actuator.exists(record)
        assert zoned_provider.get_record("example.com", ("www", "A")) == "10.0.0.1"
        assert record.status.provider_status == {"value": "10.0.0.1"}

    async def test_create_duplicate_fails(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        await actuator.create(make_record())

        with pytest.raises(ActuatorError, match="already exists"):
            await actuator.create(make_record())

    async def test_create_without_zone_fails(self, provider):
        with pytest.raises(ActuatorError, match="does not exist"):
            await MemoryDNSRecordActuator(provider).create(make_record())

    async def test_update_changes_value(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        record = make_record()
        await actuator.create(record)

        record.spec.value = "10.0.0.2"
        await actuator.update(record)
        await actuator.update(record)

        assert zoned_provider.get_record("example.com", ("www", "A")) == "10.0.0.2"

    async def test_update_without_value_keeps_provider_value(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        await actuator.create(make_record())
        record = make_record()
        record.spec.value = None

        await actuator.update(record)

        assert zoned_provider.get_record("example.com", ("www", "A")) == "10.0.0.1"
        assert record.status.provider_status == {"value": "10.0.0.1"}

    async def test_records_keyed_by_type(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        a_record = make_record()
        txt_record = make_record()
        txt_record.spec.record_type = DNSRecordType.TXT
        txt_record.spec.value = "v=spf1 -all"

        await actuator.create(a_record)
        assert not await actuator.exists(txt_record)
        await actuator.create(txt_record)

        assert zoned_provider.get_record("example.com", ("www", "TXT")) == (
            "v=spf1 -all"
        )

    async def test_delete_is_idempotent(self, zoned_provider):
        actuator = MemoryDNSRecordActuator(zoned_provider)
        record = make_record()
        await actuator.create(record)

        await actuator.delete(record)
        await actuator.delete(record)

        assert not await actuator.exists(record)

    async def test_shares_global_provider(self):
        reset_memory_provider()
        try:
            await MemoryDNSZoneActuator().create(make_zone())
            await MemoryDNSRecordActuator().create(make_record())
            assert get_memory_provider().has_record("example.com", ("www", "A"))
        finally:
            reset_memory_provider()


@pytest.mark.asyncio
class TestStatusWriteBack:
    """Tests for actuators persisting provider status through the store."""

    async def test_zone_status_survives_reconcile(self, memory_store, provider):
        created = await memory_store.create(make_zone())
        actuator = MemoryDNSZoneActuator(provider)
        actuator.set_store(memory_store)
        reconciler = dnszone.new_reconciler(memory_store, actuator)

        for _ in range(3):
            await reconciler.reconcile(created.metadata.key)

        assert provider.has_zone("example.com")
        stored = await memory_store.get(DNSZone.KIND, created.metadata.key)
        assert stored.status.provider_status == {"zoneName": "example.com"}

    async def test_unchanged_status_is_not_rewritten(self, memory_store, provider):
        provider.create_zone("example.com")
        provider.put_record("example.com", ("www", "A"), "10.0.0.1")
        created = await memory_store.create(make_record())
        actuator = MemoryDNSRecordActuator(provider)
        actuator.set_store(memory_store)

        await actuator.update(created)
        assert created.metadata.resource_version == 2
        await actuator.update(created)

        stored = await memory_store.get(DNSRecord.KIND, created.metadata.key)
        assert stored.metadata.resource_version == 2
        assert stored.metadata.generation == 1
        assert stored.status.provider_status == {"value": "10.0.0.1"}

    async def test_status_write_conflict_propagates(self, memory_store, provider):
        provider.create_zone("example.com")
        stale = await memory_store.create(make_record())
        await memory_store.update(await memory_store.get(DNSRecord.KIND, KEY))
        actuator = MemoryDNSRecordActuator(provider)
        actuator.set_store(memory_store)

        with pytest.raises(ConflictError):
            await actuator.create(stale)
