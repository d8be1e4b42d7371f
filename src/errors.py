"""
Error taxonomy shared by the resource store, reconcilers, and actuators.

Store errors are the only ones the reconciler treats specially (NotFound on
load). Actuator errors are opaque to the core and propagate unchanged.
"""


class StoreError(Exception):
    """Base class for resource store failures."""

    def __init__(self, kind: str, key, message: str = ""):
        self.kind = kind
        self.key = key
        super().__init__(message or f"{kind} {key}")


class NotFoundError(StoreError):
    """The requested resource does not exist."""

    def __init__(self, kind: str, key):
        super().__init__(kind, key, f"{kind} {key} not found")


class ConflictError(StoreError):
    """The resource was modified since it was loaded."""

    def __init__(self, kind: str, key, expected=None, actual=None):
        self.expected = expected
        self.actual = actual
        super().__init__(
            kind,
            key,
            f"{kind} {key} was modified concurrently "
            f"(resourceVersion {expected}, current {actual})",
        )


class AlreadyExistsError(StoreError):
    """A resource with the same key already exists."""

    def __init__(self, kind: str, key):
        super().__init__(kind, key, f"{kind} {key} already exists")


class ActuatorError(Exception):
    """Failure reported by an actuator against the external system."""
