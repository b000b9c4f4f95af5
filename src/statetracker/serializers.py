"""
Value serializers.

A serializer turns a property value into bytes for the backing store and
back. The tracking engine never looks inside the bytes.
"""
import json
import pickle
from abc import ABC, abstractmethod
from dataclasses import asdict, fields, is_dataclass
from enum import Enum
from typing import Any, Optional, get_origin

from statetracker.exceptions import SerializationError


class Serializer(ABC):
    """Contract between the object store and a value encoding."""

    @abstractmethod
    def serialize(self, value: Any) -> bytes:
        ...

    @abstractmethod
    def deserialize(self, data: bytes, target_type: Optional[type] = None) -> Any:
        ...


class PickleSerializer(Serializer):
    """Binary serializer for arbitrary picklable values. The default."""

    def __init__(self, protocol: int = pickle.HIGHEST_PROTOCOL):
        self.protocol = protocol

    def serialize(self, value: Any) -> bytes:
        try:
            return pickle.dumps(value, protocol=self.protocol)
        except (pickle.PicklingError, TypeError, AttributeError) as e:
            raise SerializationError(f"Cannot pickle {type(value).__name__}: {e}") from e

    def deserialize(self, data: bytes, target_type: Optional[type] = None) -> Any:
        # target_type unused: pickle data carries its own type
        try:
            return pickle.loads(data)
        except (pickle.UnpicklingError, EOFError, AttributeError, ImportError, IndexError, KeyError, ValueError, TypeError) as e:
            raise SerializationError(f"Cannot unpickle stored value: {e}") from e


class JsonSerializer(Serializer):
    """UTF-8 JSON serializer for plain values, enums and flat dataclasses.

    When a target type is known, JSON objects are rebuilt into dataclasses,
    lists into tuples/sets and raw values into enums.
    """

    def __init__(self, indent: Optional[int] = None):
        self.indent = indent

    def serialize(self, value: Any) -> bytes:
        try:
            return json.dumps(value, default=self._default, indent=self.indent).encode('utf-8')
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot encode {type(value).__name__} as JSON: {e}") from e

    def deserialize(self, data: bytes, target_type: Optional[type] = None) -> Any:
        try:
            value = json.loads(data.decode('utf-8'))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SerializationError(f"Stored value is not valid JSON: {e}") from e
        return self._coerce(value, target_type)

    @staticmethod
    def _default(value: Any) -> Any:
        if isinstance(value, Enum):
            return value.value
        if is_dataclass(value) and not isinstance(value, type):
            return asdict(value)
        if isinstance(value, (set, frozenset, tuple)):
            return list(value)
        raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")

    def _coerce(self, value: Any, target_type: Optional[type]) -> Any:
        if target_type is None or value is None:
            return value
        origin = get_origin(target_type) or target_type
        if not isinstance(origin, type):
            return value
        try:
            if issubclass(origin, Enum):
                return origin(value)
            if is_dataclass(origin) and isinstance(value, dict):
                names = {f.name for f in fields(origin)}
                return origin(**{k: v for k, v in value.items() if k in names})
            if origin in (tuple, set, frozenset) and isinstance(value, list):
                return origin(value)
        except (TypeError, ValueError) as e:
            raise SerializationError(f"Cannot convert stored value to {origin.__name__}: {e}") from e
        return value
