"""
Object state tracking: persist selected properties of live objects and restore them later.

Key Features:
- Declarative markers (decorators, dataclass field metadata, or describe()) decide
  which properties are tracked, per named tracker context
- One tracking configuration per live object, held through a weak reference
- Cancellable lifecycle hooks around apply (restore) and persist (save)
- Pluggable backing stores (memory, files, externally owned mappings) and serializers
- Automatic persistence of AUTOMATIC-mode objects at process exit

Quick Start:
    >>> from dataclasses import dataclass
    >>> from statetracker import SettingsTracker, MemoryDataStore, tracked
    >>>
    >>> @dataclass
    ... class User:
    ...     id: str = tracked("", key=True)
    ...     name: str = tracked("")
    ...     age: int = tracked(0)
    >>>
    >>> tracker = SettingsTracker(data_store=MemoryDataStore())
    >>> user = User(id="1", name="Bob", age=30)
    >>> tracker.configure(user).persist()     # stores "User_1.name", "User_1.age"
    >>> user.name = "Alice"
    >>> tracker.apply_state(user)
    >>> user.name
    'Bob'

Modules:
    - markers: trackable / tracking_key decorators, tracked() fields, describe()
    - metadata: per-(type, context) resolution of tracked properties, cached
    - configuration: TrackingConfiguration with the apply/persist algorithms
    - tracker: SettingsTracker registry and bulk operations
    - object_store, stores, serializers: storage collaborators
    - config: package-level defaults (storage directory, serializer)
"""

# Markers
from statetracker.markers import (
    Trackable,
    TypeDescription,
    trackable,
    tracking_key,
    tracked,
    describe,
)

# Metadata
from statetracker.metadata import TypeTrackingMetaData, resolve_type_metadata

# Tracking
from statetracker.configuration import PersistMode, TrackingConfiguration
from statetracker.tracker import SettingsTracker
from statetracker.events import Event, TrackingOperation
from statetracker.capabilities import PersistRequestNotifier, TrackingAware

# Storage
from statetracker.object_store import ObjectStore
from statetracker.stores import DataStore, FileDataStore, MappingDataStore, MemoryDataStore
from statetracker.serializers import JsonSerializer, PickleSerializer, Serializer

# Configuration
from statetracker.config import (
    set_application_name,
    get_application_name,
    set_default_storage_dir,
    get_default_storage_dir,
    set_default_serializer_type,
    get_default_serializer_type,
)

# Errors
from statetracker.exceptions import (
    TrackingError,
    AmbiguousKeyError,
    NotConfiguredError,
    PropertyAccessError,
    UnsupportedOperationError,
    SerializationError,
)

__all__ = [
    # Markers
    'Trackable',
    'TypeDescription',
    'trackable',
    'tracking_key',
    'tracked',
    'describe',
    # Metadata
    'TypeTrackingMetaData',
    'resolve_type_metadata',
    # Tracking
    'PersistMode',
    'TrackingConfiguration',
    'SettingsTracker',
    'Event',
    'TrackingOperation',
    'PersistRequestNotifier',
    'TrackingAware',
    # Storage
    'ObjectStore',
    'DataStore',
    'FileDataStore',
    'MappingDataStore',
    'MemoryDataStore',
    'JsonSerializer',
    'PickleSerializer',
    'Serializer',
    # Configuration
    'set_application_name',
    'get_application_name',
    'set_default_storage_dir',
    'get_default_storage_dir',
    'set_default_serializer_type',
    'get_default_serializer_type',
    # Errors
    'TrackingError',
    'AmbiguousKeyError',
    'NotConfiguredError',
    'PropertyAccessError',
    'UnsupportedOperationError',
    'SerializationError',
]

__version__ = '1.0.0'
__description__ = 'Generic object state tracking with pluggable storage'
