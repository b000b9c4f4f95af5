"""Pytest configuration and shared fixtures."""
import pytest

import statetracker.config as config_module
from statetracker import ObjectStore, PickleSerializer, SettingsTracker, MemoryDataStore
from statetracker.markers import clear_descriptions
from statetracker.metadata import clear_type_metadata_cache


class RecordingDataStore(MemoryDataStore):
    """MemoryDataStore that remembers every write, in order."""

    def __init__(self, initial=None):
        super().__init__(initial)
        self.writes = []

    def set_data(self, identifier, data):
        self.writes.append(identifier)
        super().set_data(identifier, data)


@pytest.fixture(autouse=True)
def reset_tracking_state():
    """Isolate tests from each other's markers, cached metadata and defaults."""
    clear_type_metadata_cache()
    clear_descriptions()
    config_module.reset_config()

    yield

    clear_type_metadata_cache()
    clear_descriptions()
    config_module.reset_config()


@pytest.fixture
def data_store():
    return RecordingDataStore()


@pytest.fixture
def shutdown_hooks():
    """Collects the callbacks a tracker registers for process exit."""
    return []


@pytest.fixture
def tracker(data_store, shutdown_hooks):
    return SettingsTracker(
        ObjectStore(data_store, PickleSerializer()),
        shutdown_hook=shutdown_hooks.append,
    )
