"""
Resource Model - DNSZone and DNSRecord types and the type scheme.

Resources follow the Kubernetes object shape: metadata, a desired-state spec,
and an opaque observed-state status. The wire format mirrors the
cloudkit.openshift.io/v1alpha1 CRDs.
"""

import copy
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Type

API_VERSION = "cloudkit.openshift.io/v1alpha1"

DNSZONE_FINALIZER = "dnszone.cloudkit.openshift.io"
DNSRECORD_FINALIZER = "dnsrecord.cloudkit.openshift.io"


def _format_time(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class ObjectKey:
    """Namespace-scoped name identifying one resource."""

    namespace: str
    name: str

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


@dataclass
class ObjectMeta:
    """Standard object metadata."""

    name: str
    namespace: str = "default"
    uid: str = ""
    resource_version: int = 0
    generation: int = 0
    creation_timestamp: Optional[datetime] = None
    deletion_timestamp: Optional[datetime] = None
    finalizers: List[str] = field(default_factory=list)
    annotations: Dict[str, str] = field(default_factory=dict)

    @property
    def key(self) -> ObjectKey:
        return ObjectKey(self.namespace, self.name)

    @property
    def is_deleting(self) -> bool:
        """True once deletion has been requested."""
        return self.deletion_timestamp is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "uid": self.uid,
            "resourceVersion": self.resource_version,
            "generation": self.generation,
            "creationTimestamp": _format_time(self.creation_timestamp),
            "deletionTimestamp": _format_time(self.deletion_timestamp),
            "finalizers": list(self.finalizers),
            "annotations": dict(self.annotations),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ObjectMeta":
        return cls(
            name=data["name"],
            namespace=data.get("namespace") or "default",
            uid=data.get("uid") or "",
            resource_version=int(data.get("resourceVersion") or 0),
            generation=int(data.get("generation") or 0),
            creation_timestamp=_parse_time(data.get("creationTimestamp")),
            deletion_timestamp=_parse_time(data.get("deletionTimestamp")),
            finalizers=list(data.get("finalizers") or []),
            annotations=dict(data.get("annotations") or {}),
        )


class DNSRecordType(Enum):
    """Supported DNS record types."""

    A = "A"
    CNAME = "CNAME"
    MX = "MX"
    AAAA = "AAAA"
    TXT = "TXT"
    PTR = "PTR"
    SRV = "SRV"
    SPF = "SPF"
    NAPTR = "NAPTR"
    CAA = "CAA"
    NS = "NS"
    SOA = "SOA"


# ==================== DNSZone ====================


@dataclass
class DNSZoneSpec:
    """Desired state of a DNS zone."""

    zone_name: str
    provider_spec: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"zoneName": self.zone_name}
        if self.provider_spec is not None:
            data["providerSpec"] = self.provider_spec
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNSZoneSpec":
        return cls(
            zone_name=data.get("zoneName", ""),
            provider_spec=data.get("providerSpec"),
        )


@dataclass
class DNSZoneStatus:
    """Observed state of a DNS zone, written by the actuator."""

    provider_status: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.provider_status is None:
            return {}
        return {"providerStatus": self.provider_status}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DNSZoneStatus":
        return cls(provider_status=(data or {}).get("providerStatus"))


@dataclass
class DNSZone:
    """A DNS zone managed in an external DNS provider."""

    KIND = "DNSZone"

    metadata: ObjectMeta
    spec: DNSZoneSpec
    status: DNSZoneStatus = field(default_factory=DNSZoneStatus)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNSZone":
        return cls(
            metadata=ObjectMeta.from_dict(data["metadata"]),
            spec=DNSZoneSpec.from_dict(data.get("spec") or {}),
            status=DNSZoneStatus.from_dict(data.get("status")),
        )


# ==================== DNSRecord ====================


@dataclass
class DNSRecordSpec:
    """Desired state of a DNS record within a zone."""

    zone_name: str
    record_name: str
    record_type: DNSRecordType = DNSRecordType.A
    value: Optional[str] = None
    provider_spec: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "zoneName": self.zone_name,
            "recordName": self.record_name,
            "recordType": self.record_type.value,
        }
        if self.value is not None:
            data["value"] = self.value
        if self.provider_spec is not None:
            data["providerSpec"] = self.provider_spec
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNSRecordSpec":
        return cls(
            zone_name=data.get("zoneName", ""),
            record_name=data.get("recordName", ""),
            record_type=DNSRecordType(data.get("recordType", "A")),
            value=data.get("value"),
            provider_spec=data.get("providerSpec"),
        )


@dataclass
class DNSRecordStatus:
    """Observed state of a DNS record, written by the actuator."""

    provider_status: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        if self.provider_status is None:
            return {}
        return {"providerStatus": self.provider_status}

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "DNSRecordStatus":
        return cls(provider_status=(data or {}).get("providerStatus"))


@dataclass
class DNSRecord:
    """A single DNS record managed in an external DNS provider."""

    KIND = "DNSRecord"

    metadata: ObjectMeta
    spec: DNSRecordSpec
    status: DNSRecordStatus = field(default_factory=DNSRecordStatus)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "apiVersion": API_VERSION,
            "kind": self.KIND,
            "metadata": self.metadata.to_dict(),
            "spec": self.spec.to_dict(),
            "status": self.status.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DNSRecord":
        return cls(
            metadata=ObjectMeta.from_dict(data["metadata"]),
            spec=DNSRecordSpec.from_dict(data.get("spec") or {}),
            status=DNSRecordStatus.from_dict(data.get("status")),
        )


# ==================== Finalizers ====================


def has_finalizer(obj: Any, finalizer: str) -> bool:
    """Check whether the object carries the given finalizer."""
    return finalizer in obj.metadata.finalizers


def add_finalizer(obj: Any, finalizer: str) -> None:
    """Add a finalizer to the object. No-op if already present."""
    if finalizer not in obj.metadata.finalizers:
        obj.metadata.finalizers.append(finalizer)


def delete_finalizer(obj: Any, finalizer: str) -> None:
    """Remove every occurrence of a finalizer from the object."""
    obj.metadata.finalizers = [f for f in obj.metadata.finalizers if f != finalizer]


# ==================== Scheme ====================


class Scheme:
    """
    Registry of resource kinds known to the process.

    Stores and the HTTP API decode wire data through a scheme, so every kind
    they handle must be registered first (see add_to_scheme).
    """

    def __init__(self):
        self._types: Dict[str, Type] = {}

    def add_known_type(self, resource_class: Type) -> None:
        self._types[resource_class.KIND] = resource_class

    def is_registered(self, kind: str) -> bool:
        return kind in self._types

    def known_kinds(self) -> List[str]:
        return list(self._types.keys())

    def type_for(self, kind: str) -> Type:
        try:
            return self._types[kind]
        except KeyError:
            raise ValueError(f"Kind {kind} is not registered in the scheme")

    def kind_for(self, obj: Any) -> str:
        kind = getattr(obj, "KIND", None)
        if kind is None or self._types.get(kind) is not type(obj):
            raise ValueError(f"Type {type(obj).__name__} is not registered")
        return kind

    def decode(self, data: Dict[str, Any]) -> Any:
        """Build a typed resource from its wire representation."""
        kind = data.get("kind")
        if not kind:
            raise ValueError("Object has no kind")
        return self.type_for(kind).from_dict(data)

    def deep_copy(self, obj: Any) -> Any:
        self.kind_for(obj)
        return copy.deepcopy(obj)


def add_to_scheme(scheme: Scheme) -> None:
    """Register the cloudkit DNS kinds. Call once during process startup."""
    scheme.add_known_type(DNSZone)
    scheme.add_known_type(DNSRecord)
