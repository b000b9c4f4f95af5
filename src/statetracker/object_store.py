"""
Object store: typed values in, bytes out.

Sits between a TrackingConfiguration and the (serializer, data store) pair.
One backing-store call per operation; errors propagate untranslated.
"""
from typing import Any, Optional

from statetracker.serializers import Serializer
from statetracker.stores import DataStore


class ObjectStore:
    """Serializes values into a DataStore and reads them back."""

    def __init__(self, data_store: DataStore, serializer: Serializer):
        self.data_store = data_store
        self.serializer = serializer

    def persist(self, value: Any, key: str) -> None:
        self.data_store.set_data(key, self.serializer.serialize(value))

    def retrieve(self, key: str, target_type: Optional[type] = None) -> Any:
        return self.serializer.deserialize(self.data_store.get_data(key), target_type)

    def contains_key(self, key: str) -> bool:
        return self.data_store.contains_key(key)

    def remove(self, key: str) -> None:
        self.data_store.remove_data(key)
