"""
Type metadata resolution for state tracking.

Decides, once per (type, context) pair, which properties of a type are
tracked and which property holds the instance identity. Results are cached
for the process lifetime and never invalidated.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Tuple

from statetracker.exceptions import AmbiguousKeyError
from statetracker.markers import (
    class_markers,
    declared_property_names,
    find_marker,
    is_key_property,
    property_markers,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TypeTrackingMetaData:
    """Resolved tracking metadata for one (type, context) pair."""
    context: Optional[str]
    key_property_name: Optional[str]
    property_names: Tuple[str, ...]


# Key: (type, context) -> resolved metadata
_type_metadata_cache: Dict[Tuple[type, Optional[str]], TypeTrackingMetaData] = {}
_cache_lock = threading.Lock()


def resolve_type_metadata(target_type: type, context: Optional[str] = None) -> TypeTrackingMetaData:
    """Get the tracking metadata for a type under a tracker context.

    Args:
        target_type: The runtime type of a tracked object
        context: Tracker name; markers for other contexts are ignored

    Returns:
        Cached TypeTrackingMetaData for (target_type, context)

    Raises:
        AmbiguousKeyError: More than one property is marked as the tracking key
    """
    cache_key = (target_type, context)
    metadata = _type_metadata_cache.get(cache_key)
    if metadata is not None:
        return metadata

    with _cache_lock:
        metadata = _type_metadata_cache.get(cache_key)
        if metadata is None:
            metadata = _compute_type_metadata(target_type, context)
            _type_metadata_cache[cache_key] = metadata
    return metadata


def _compute_type_metadata(target_type: type, context: Optional[str]) -> TypeTrackingMetaData:
    names = declared_property_names(target_type)

    key_names = [name for name in names if is_key_property(target_type, name)]
    if len(key_names) > 1:
        raise AmbiguousKeyError(target_type, key_names)
    key_name = key_names[0] if key_names else None

    class_marker = find_marker(class_markers(target_type), context)
    class_is_trackable = class_marker is not None and class_marker.trackable

    tracked = []
    for name in names:
        if name == key_name:
            continue
        marker = find_marker(property_markers(target_type, name), context)
        if marker is None:
            if class_is_trackable:
                tracked.append(name)
        elif marker.trackable:
            tracked.append(name)

    logger.debug(
        f"Resolved tracking metadata: type={target_type.__name__}, context={context!r}, "
        f"key={key_name!r}, properties={tracked}"
    )
    return TypeTrackingMetaData(context, key_name, tuple(tracked))


def clear_type_metadata_cache() -> None:
    """Clear the metadata cache. For testing only."""
    with _cache_lock:
        _type_metadata_cache.clear()
