"""Pytest configuration and fixtures."""

from typing import List, Optional

import pytest

from events import EventBus
from resources import (
    DNSRECORD_FINALIZER,
    DNSZONE_FINALIZER,
    DNSRecord,
    DNSRecordSpec,
    DNSRecordType,
    DNSZone,
    DNSZoneSpec,
    ObjectMeta,
    Scheme,
    add_to_scheme,
)
from store import MemoryStore


class FakeActuator:
    """Actuator double that records calls and returns configured results."""

    def __init__(self):
        self.calls: List[str] = []
        self.create_error: Optional[Exception] = None
        self.update_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.exists_error: Optional[Exception] = None
        self.exists_result = False
        self.store = None

    @property
    def name(self) -> str:
        return "fake"

    @property
    def version(self) -> str:
        return "0.0.0"

    def set_store(self, store) -> None:
        self.store = store

    async def create(self, resource) -> None:
        self.calls.append("create")
        if self.create_error:
            raise self.create_error

    async def update(self, resource) -> None:
        self.calls.append("update")
        if self.update_error:
            raise self.update_error

    async def delete(self, resource) -> None:
        self.calls.append("delete")
        if self.delete_error:
            raise self.delete_error

    async def exists(self, resource) -> bool:
        self.calls.append("exists")
        if self.exists_error:
            raise self.exists_error
        return self.exists_result

    def on_exists(self, result: bool, error: Optional[Exception] = None) -> None:
        self.exists_result = result
        self.exists_error = error

    def call_count(self, method: Optional[str] = None) -> int:
        if method is None:
            return len(self.calls)
        return self.calls.count(method)

    def called(self, method: str) -> bool:
        return method in self.calls


@pytest.fixture
def fake_actuator():
    return FakeActuator()


@pytest.fixture
def scheme():
    s = Scheme()
    add_to_scheme(s)
    return s


@pytest.fixture
def event_bus():
    return EventBus()


@pytest.fixture
def memory_store(scheme):
    return MemoryStore(scheme)


def make_zone(
    name: str = "example-zone",
    namespace: str = "testns",
    finalizers: Optional[List[str]] = None,
) -> DNSZone:
    return DNSZone(
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            finalizers=list(finalizers) if finalizers is not None else [],
        ),
        spec=DNSZoneSpec(zone_name="example.com"),
    )


def make_record(
    name: str = "dnsrecord",
    namespace: str = "testns",
    finalizers: Optional[List[str]] = None,
) -> DNSRecord:
    return DNSRecord(
        metadata=ObjectMeta(
            name=name,
            namespace=namespace,
            finalizers=list(finalizers) if finalizers is not None else [],
        ),
        spec=DNSRecordSpec(
            zone_name="example.com",
            record_name="www",
            record_type=DNSRecordType.A,
            value="10.0.0.1",
        ),
    )


@pytest.fixture
def zone_factory():
    return make_zone


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def zone_finalizer():
    return DNSZONE_FINALIZER


@pytest.fixture
def record_finalizer():
    return DNSRECORD_FINALIZER
