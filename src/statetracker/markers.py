"""
Declarative trackability markers.

Three equivalent ways to mark what gets tracked:

Decorators on classes and property getters:
    >>> @trackable(context="settings")
    ... class Window:
    ...     @tracking_key
    ...     @property
    ...     def name(self): ...
    ...
    ...     @trackable(trackable=False)
    ...     @property
    ...     def handle(self): ...

Dataclass field metadata:
    >>> @dataclass
    ... class User:
    ...     id: str = tracked("", key=True)
    ...     name: str = tracked("")

Explicit registration (for types you cannot decorate):
    >>> describe(ThirdPartyWidget).key("uid").trackable("width", "height")

Markers are context-scoped: a marker tagged for context "A" is invisible when
resolving for context "B". The None context is its own partition.
"""
import inspect
import logging
from dataclasses import MISSING, dataclass, field
from typing import Any, ClassVar, Dict, List, Optional, Tuple, get_origin

logger = logging.getLogger(__name__)

_MARKERS_ATTR = '__tracking_markers__'
_KEY_ATTR = '__tracking_key__'

# Key under which tracked() stores markers in dataclass field metadata
FIELD_METADATA_KEY = 'statetracker'


@dataclass(frozen=True)
class Trackable:
    """Trackability marker for one context."""
    context: Optional[str] = None
    trackable: bool = True


def _marker_target(obj: Any) -> Any:
    """Markers on a property live on its getter so @x.setter copies keep them."""
    return obj.fget if isinstance(obj, property) else obj


def _attach_marker(obj: Any, marker: Trackable) -> None:
    target = _marker_target(obj)
    # Classes: only look at the class's own namespace, not inherited markers
    existing = target.__dict__.get(_MARKERS_ATTR, ())
    if any(m.context == marker.context for m in existing):
        raise ValueError(
            f"{getattr(target, '__qualname__', target)!s} already has a trackable marker "
            f"for context {marker.context!r}"
        )
    setattr(target, _MARKERS_ATTR, existing + (marker,))


def trackable(context: Optional[str] = None, trackable: bool = True):
    """Mark a class or property as trackable (or explicitly not) for a context.

    On a class, every declared property without its own marker for the same
    context inherits the class's setting. Can be used bare (``@trackable``)
    for the default context.
    """
    if inspect.isclass(context) or inspect.isfunction(context) or isinstance(context, property):
        obj = context
        _attach_marker(obj, Trackable(None, True))
        return obj

    marker = Trackable(context, trackable)

    def decorator(obj):
        _attach_marker(obj, marker)
        return obj
    return decorator


def tracking_key(obj):
    """Mark a property as the identity key used in storage keys."""
    setattr(_marker_target(obj), _KEY_ATTR, True)
    return obj


def tracked(default: Any = MISSING, *, context: Optional[str] = None, trackable: bool = True,
            key: bool = False, **field_kwargs):
    """dataclasses.field() with trackability markers stored in the field metadata."""
    metadata = dict(field_kwargs.pop('metadata', None) or {})
    metadata[FIELD_METADATA_KEY] = {
        'markers': () if key else (Trackable(context, trackable),),
        'key': key,
    }
    return field(default=default, metadata=metadata, **field_kwargs)


@dataclass
class TypeDescription:
    """Explicit marker registration for a single type, built via describe()."""
    target_type: type
    class_markers: List[Trackable] = field(default_factory=list)
    property_markers: Dict[str, List[Trackable]] = field(default_factory=dict)
    key_name: Optional[str] = None

    def trackable(self, *names: str, context: Optional[str] = None) -> 'TypeDescription':
        for name in names:
            self._add(name, Trackable(context, True))
        return self

    def not_trackable(self, *names: str, context: Optional[str] = None) -> 'TypeDescription':
        for name in names:
            self._add(name, Trackable(context, False))
        return self

    def all_trackable(self, context: Optional[str] = None, trackable: bool = True) -> 'TypeDescription':
        self.class_markers = [m for m in self.class_markers if m.context != context]
        self.class_markers.append(Trackable(context, trackable))
        return self

    def key(self, name: str) -> 'TypeDescription':
        self.key_name = name
        return self

    def _add(self, name: str, marker: Trackable) -> None:
        markers = self.property_markers.setdefault(name, [])
        # Re-describing a property for the same context replaces the earlier marker
        markers[:] = [m for m in markers if m.context != marker.context]
        markers.append(marker)


_descriptions: Dict[type, TypeDescription] = {}


def describe(target_type: type) -> TypeDescription:
    """Get (or create) the explicit marker registration for a type.

    Register before the first configuration of the type is created: resolved
    metadata is cached per (type, context) and never recomputed.
    """
    description = _descriptions.get(target_type)
    if description is None:
        description = TypeDescription(target_type)
        _descriptions[target_type] = description
        logger.debug(f"Created type description for {target_type.__name__}")
    return description


def clear_descriptions() -> None:
    """Drop all describe() registrations. For testing only."""
    _descriptions.clear()


# ========== LOOKUP (used by the metadata resolver) ==========

def _mro(cls: type) -> Tuple[type, ...]:
    return tuple(klass for klass in cls.__mro__ if klass is not object)


def _is_classvar(annotation: Any) -> bool:
    if isinstance(annotation, str):
        return annotation.startswith(('ClassVar', 'typing.ClassVar'))
    return annotation is ClassVar or get_origin(annotation) is ClassVar


def declared_property_names(cls: type) -> List[str]:
    """Public properties of a type in declaration order, base classes first.

    Covers annotated attributes (dataclass fields included), property objects
    and names registered with describe().
    """
    names: Dict[str, None] = {}
    for klass in reversed(_mro(cls)):
        for name, annotation in inspect.get_annotations(klass).items():
            if not name.startswith('_') and not _is_classvar(annotation):
                names[name] = None
        for name, value in klass.__dict__.items():
            if isinstance(value, property) and not name.startswith('_'):
                names[name] = None
        description = _descriptions.get(klass)
        if description is not None:
            names.update(dict.fromkeys(description.property_markers))
            if description.key_name:
                names[description.key_name] = None
    return list(names)


def _field_metadata(cls: type, name: str) -> Dict[str, Any]:
    dataclass_fields = getattr(cls, '__dataclass_fields__', {})
    f = dataclass_fields.get(name)
    if f is None:
        return {}
    return f.metadata.get(FIELD_METADATA_KEY, {})


def property_markers(cls: type, name: str) -> Tuple[Trackable, ...]:
    """All markers on a property; describe() registrations come first."""
    markers: List[Trackable] = []
    for klass in _mro(cls):
        description = _descriptions.get(klass)
        if description is not None and name in description.property_markers:
            markers.extend(description.property_markers[name])
            break

    attr = inspect.getattr_static(cls, name, None)
    if isinstance(attr, property) and attr.fget is not None:
        markers.extend(getattr(attr.fget, _MARKERS_ATTR, ()))

    markers.extend(_field_metadata(cls, name).get('markers', ()))
    return tuple(markers)


def class_markers(cls: type) -> Tuple[Trackable, ...]:
    """Class-level markers along the MRO, most derived class first."""
    markers: List[Trackable] = []
    for klass in _mro(cls):
        description = _descriptions.get(klass)
        if description is not None:
            markers.extend(description.class_markers)
        markers.extend(klass.__dict__.get(_MARKERS_ATTR, ()))
    return tuple(markers)


def is_key_property(cls: type, name: str) -> bool:
    for klass in _mro(cls):
        description = _descriptions.get(klass)
        if description is not None and description.key_name == name:
            return True

    attr = inspect.getattr_static(cls, name, None)
    if isinstance(attr, property) and getattr(attr.fget, _KEY_ATTR, False):
        return True

    return bool(_field_metadata(cls, name).get('key', False))


def find_marker(markers: Tuple[Trackable, ...], context: Optional[str]) -> Optional[Trackable]:
    """First marker for exactly this context, or None."""
    return next((m for m in markers if m.context == context), None)
