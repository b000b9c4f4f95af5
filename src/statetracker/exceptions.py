"""
Error taxonomy for state tracking.

Only PropertyAccessError is contained by the tracking engine (logged and
skipped inside apply/persist loops). Everything else propagates to the caller.
"""


class TrackingError(Exception):
    """Base class for all state tracking errors."""


class AmbiguousKeyError(TrackingError, TypeError):
    """More than one property of a type is marked as the tracking key."""

    def __init__(self, target_type: type, key_names):
        self.target_type = target_type
        self.key_names = tuple(key_names)
        super().__init__(
            f"{target_type.__name__} declares more than one tracking key: {', '.join(self.key_names)}"
        )


class NotConfiguredError(TrackingError, LookupError):
    """An operation was requested for a target that has no tracking configuration."""


class PropertyAccessError(TrackingError, AttributeError):
    """Reading, writing or (de)serializing a single tracked property failed."""

    def __init__(self, storage_key: str, message: str):
        self.storage_key = storage_key
        super().__init__(f"{storage_key}: {message}")


class UnsupportedOperationError(TrackingError, NotImplementedError):
    """The backing store does not implement the requested operation."""


class SerializationError(TrackingError, ValueError):
    """A value could not be encoded to or decoded from bytes."""
