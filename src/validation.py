"""
Schema Validation - JSON Schema checks for DNSZone and DNSRecord specs.

Specs are validated in their wire form before they reach the store.
"""

from typing import Any, Dict, Optional, Tuple

from jsonschema import Draft7Validator

from resources import DNSRecord, DNSRecordType, DNSZone

# RFC 1035 style names, optionally fully qualified with a trailing dot
DNS_NAME_PATTERN = (
    r"^(\*\.)?([A-Za-z0-9_]([A-Za-z0-9_-]{0,61}[A-Za-z0-9])?\.)*"
    r"[A-Za-z0-9_]([A-Za-z0-9_-]{0,61}[A-Za-z0-9])?\.?$"
)

DNSZONE_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["zoneName"],
    "properties": {
        "zoneName": {"type": "string", "maxLength": 253, "pattern": DNS_NAME_PATTERN},
        "providerSpec": {"type": "object"},
    },
    "additionalProperties": False,
}

DNSRECORD_SPEC_SCHEMA: Dict[str, Any] = {
    "type": "object",
    "required": ["zoneName", "recordName", "recordType"],
    "properties": {
        "zoneName": {"type": "string", "maxLength": 253, "pattern": DNS_NAME_PATTERN},
        "recordName": {"type": "string", "minLength": 1, "maxLength": 253},
        "recordType": {"type": "string", "enum": [t.value for t in DNSRecordType]},
        "value": {"type": "string"},
        "providerSpec": {"type": "object"},
    },
    "additionalProperties": False,
}

SPEC_SCHEMAS: Dict[str, Dict[str, Any]] = {
    DNSZone.KIND: DNSZONE_SPEC_SCHEMA,
    DNSRecord.KIND: DNSRECORD_SPEC_SCHEMA,
}

# Spec fields that identify the external object
IMMUTABLE_SPEC_FIELDS: Dict[str, Tuple[str, ...]] = {
    DNSZone.KIND: ("zoneName",),
    DNSRecord.KIND: ("zoneName", "recordName", "recordType"),
}


def validate_spec_against_schema(
    spec: Dict[str, Any], schema: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Validate a spec against a JSON Schema.

    Args:
        spec: The resource specification to validate
        schema: The JSON Schema to validate against

    Returns:
        Tuple of (is_valid, error_message)
    """
    validator = Draft7Validator(schema)
    errors = sorted(
        validator.iter_errors(spec),
        key=lambda e: [str(p) for p in e.absolute_path],
    )
    if not errors:
        return True, None

    error_messages = []
    for error in errors:
        path = ".".join(str(p) for p in error.absolute_path) or "(root)"
        error_messages.append(f"{path}: {error.message}")
    return False, "; ".join(error_messages)


def validate_spec(kind: str, spec: Dict[str, Any]) -> Tuple[bool, Optional[str]]:
    """
    Validate a spec for the given resource kind.

    Returns:
        Tuple of (is_valid, error_message)
    """
    schema = SPEC_SCHEMAS.get(kind)
    if schema is None:
        return False, f"Unknown kind: {kind}"
    return validate_spec_against_schema(spec, schema)


def validate_spec_update(
    kind: str, current: Dict[str, Any], updated: Dict[str, Any]
) -> Tuple[bool, Optional[str]]:
    """
    Check that an updated spec leaves the identifying fields unchanged.

    Args:
        kind: Resource kind
        current: The stored spec in wire form
        updated: The replacement spec in wire form

    Returns:
        Tuple of (is_valid, error_message)
    """
    changed = [
        name
        for name in IMMUTABLE_SPEC_FIELDS.get(kind, ())
        if current.get(name) != updated.get(name)
    ]
    if changed:
        return False, "; ".join(f"{name}: field is immutable" for name in changed)
    return True, None
