"""
TrackingConfiguration: per-target tracking state and the apply/persist cycle.

One configuration exists per live target per SettingsTracker. It holds a weak
reference to the target, the set of tracked property names, the identity key
used in storage keys, the persist mode, and the lifecycle hooks.

Apply (restore) and persist (save) are best-effort: a failure on one
property is logged and the remaining properties are still processed.
"""
import logging
import typing
import weakref
from enum import Enum
from typing import Any, Callable, Optional, Set, TYPE_CHECKING, Union

from statetracker.capabilities import PersistRequestNotifier, TrackingAware
from statetracker.events import Event, TrackingOperation
from statetracker.exceptions import PropertyAccessError
from statetracker.metadata import resolve_type_metadata

if TYPE_CHECKING:
    from statetracker.tracker import SettingsTracker

logger = logging.getLogger(__name__)

_MISSING = object()

# Callable attributes with this prefix are treated as subscribe functions: on_saved(callback)
SUBSCRIBE_PREFIX = "on_"


class PersistMode(Enum):
    """When a target's state is written to storage."""
    AUTOMATIC = "automatic"  # persisted in bulk on the shutdown signal
    MANUAL = "manual"  # persisted only on request or via a persist trigger


class TrackingConfiguration:
    """Tracking state for a single target object.

    Created through SettingsTracker.configure(); do not instantiate directly
    unless you manage registration yourself.

    Events:
        applying_state: fired with a TrackingOperation before apply; cancellable
        applied_state: fired with the configuration after apply
        persisting_state: fired with a TrackingOperation before persist; cancellable
        persisted_state: fired with the configuration after persist
    """

    def __init__(self, target: Any, tracker: 'SettingsTracker'):
        self._tracker = tracker
        self.target_reference = weakref.ref(target)
        self.key: str = ""
        self.properties: Set[str] = set()
        self.mode = PersistMode.AUTOMATIC

        self.applied = False
        self.applying_in_progress = False

        self.applying_state = Event()
        self.applied_state = Event()
        self.persisting_state = Event()
        self.persisted_state = Event()

        self._add_metadata(target)

        if isinstance(target, TrackingAware):
            target.init_tracking(self)

        if isinstance(target, PersistRequestNotifier):
            _connect(target.persist_requested, self._on_persist_requested, "persist_requested")

    def __repr__(self) -> str:
        target = self.target
        type_name = type(target).__name__ if target is not None else '<dead>'
        return f"<TrackingConfiguration {type_name} key={self.key!r} mode={self.mode.name} properties={sorted(self.properties)}>"

    @property
    def target(self) -> Optional[Any]:
        """The tracked object, or None once it has been garbage collected."""
        return self.target_reference()

    @property
    def is_alive(self) -> bool:
        return self.target_reference() is not None

    @property
    def tracker(self) -> 'SettingsTracker':
        return self._tracker

    # ========== FLUENT SETUP ==========

    def add_properties(self, *properties: Union[str, property]) -> 'TrackingConfiguration':
        """Track additional properties. Accepts names or property objects."""
        self.properties.update(_property_name(p) for p in properties)
        return self

    def remove_properties(self, *properties: Union[str, property]) -> 'TrackingConfiguration':
        """Stop tracking properties. Names that are not tracked are ignored."""
        self.properties.difference_update(_property_name(p) for p in properties)
        return self

    def set_mode(self, mode: PersistMode) -> 'TrackingConfiguration':
        self.mode = mode
        return self

    def set_key(self, key: str) -> 'TrackingConfiguration':
        self.key = key
        return self

    def register_persist_trigger(self, event_name: str, source: Any = None) -> 'TrackingConfiguration':
        """Persist whenever the named event on ``source`` fires.

        Switches the configuration to MANUAL mode. Firings before the first
        apply() are ignored so default state never overwrites stored state.

        Args:
            event_name: Attribute name of the event on ``source``
            source: Object exposing the event; defaults to the target

        Raises:
            AttributeError: ``source`` has no attribute ``event_name``
            TypeError: the attribute is not something a handler can be attached to
        """
        if source is None:
            source = self.target
            if source is None:
                raise ReferenceError("Cannot register a persist trigger on a collected target")

        event = getattr(source, event_name)

        def handler(*args, **kwargs):
            if self.applied:
                self.persist()

        _connect(event, handler, event_name)
        self.mode = PersistMode.MANUAL
        logger.debug(f"Registered persist trigger '{event_name}' on {type(source).__name__} for {self!r}")
        return self

    # ========== APPLY ==========

    def apply(self) -> None:
        """Restore stored values into the target, firing lifecycle events."""
        self._do_apply(with_events=True)

    def just_apply(self) -> None:
        """Restore stored values without firing lifecycle events.

        Used when propagating state to sibling instances, where the
        cancellable hooks belong to the originating instance.
        """
        self._do_apply(with_events=False)

    def _do_apply(self, with_events: bool) -> None:
        self.applying_in_progress = True
        try:
            target = self.target
            if target is None:
                logger.debug(f"Skipping apply: target collected ({self.key!r})")
                return

            if not self._on_applying_state(with_events):
                logger.debug(f"Apply cancelled for {self!r}")
            else:
                applied_count = 0
                for property_name in list(self.properties):
                    try:
                        if self._apply_property(target, property_name):
                            applied_count += 1
                    except PropertyAccessError as e:
                        logger.warning(f"Applying tracked property failed: {e}")
                logger.debug(f"Applied {applied_count}/{len(self.properties)} properties to {self!r}")
                self._on_applied_state(with_events)

            self.applied = True
        finally:
            self.applying_in_progress = False

    def _apply_property(self, target: Any, property_name: str) -> bool:
        """Set one property from storage. Returns False if nothing is stored."""
        storage_key = self.construct_property_key(property_name, target)
        object_store = self._tracker.object_store
        try:
            if not object_store.contains_key(storage_key):
                return False
            if not _has_property(target, property_name):
                raise AttributeError(f"{type(target).__name__} has no property '{property_name}'")
            value = object_store.retrieve(storage_key, _property_type(type(target), property_name))
            setattr(target, property_name, value)
        except PropertyAccessError:
            raise
        except Exception as e:
            raise PropertyAccessError(storage_key, f"{type(e).__name__}: {e}") from e
        return True

    # ========== PERSIST ==========

    def persist(self) -> None:
        """Write the target's tracked properties to storage.

        No-op while an apply is in progress (property setters that trigger
        persistence must not write half-applied state) or once the target
        has been collected.
        """
        if self.applying_in_progress:
            logger.debug(f"Skipping persist during apply for {self!r}")
            return

        target = self.target
        if target is None:
            logger.debug(f"Skipping persist: target collected ({self.key!r})")
            return

        if not self._on_persisting_state():
            logger.debug(f"Persist cancelled for {self!r}")
            return

        persisted_count = 0
        for property_name in list(self.properties):
            try:
                self._persist_property(target, property_name)
                persisted_count += 1
            except PropertyAccessError as e:
                logger.warning(f"Persisting tracked property failed: {e}")
        logger.debug(f"Persisted {persisted_count}/{len(self.properties)} properties of {self!r}")

        self._on_persisted_state()

    def _persist_property(self, target: Any, property_name: str) -> None:
        storage_key = self.construct_property_key(property_name, target)
        try:
            value = getattr(target, property_name)
            self._tracker.object_store.persist(value, storage_key)
        except Exception as e:
            raise PropertyAccessError(storage_key, f"{type(e).__name__}: {e}") from e

    def _on_persist_requested(self, *args, **kwargs) -> None:
        self.persist()

    # ========== KEYS AND METADATA ==========

    def construct_property_key(self, property_name: str, target: Any = _MISSING) -> str:
        """Storage key for a property: ``{TypeName}_{Key}.{PropertyName}``."""
        if target is _MISSING:
            target = self.target
            if target is None:
                raise ReferenceError("Cannot build a storage key for a collected target")
        return f"{type(target).__name__}_{self.key}.{property_name}"

    def _add_metadata(self, target: Any) -> None:
        metadata = resolve_type_metadata(type(target), self._tracker.name)
        if metadata.key_property_name:
            key_value = getattr(target, metadata.key_property_name)
            self.key = "" if key_value is None else str(key_value)
        self.properties.update(metadata.property_names)

    # ========== EVENTS ==========

    def _on_applying_state(self, with_events: bool) -> bool:
        if not with_events:
            return True
        operation = TrackingOperation(self)
        self.applying_state.fire(operation)
        return not operation.cancel

    def _on_applied_state(self, with_events: bool) -> None:
        if with_events:
            self.applied_state.fire(self)

    def _on_persisting_state(self) -> bool:
        operation = TrackingOperation(self)
        self.persisting_state.fire(operation)
        return not operation.cancel

    def _on_persisted_state(self) -> None:
        self.persisted_state.fire(self)


def _connect(event: Any, handler: Callable[..., Any], event_name: str) -> None:
    """Attach a handler to a signal-like object, a callback list or an ``on_*`` subscribe function.

    Any other callable is an ordinary method and is never invoked here.
    """
    if hasattr(event, 'connect'):
        event.connect(handler)
    elif isinstance(event, list):
        event.append(handler)
    elif callable(event) and event_name.startswith(SUBSCRIBE_PREFIX):
        event(handler)
    else:
        raise TypeError(f"'{event_name}' ({type(event).__name__}) is not an event a handler can be attached to")


def _property_name(prop: Union[str, property]) -> str:
    if isinstance(prop, property):
        return prop.fget.__name__
    return prop


def _has_property(target: Any, name: str) -> bool:
    return hasattr(target, name) or name in getattr(type(target), '__annotations__', {})


def _property_type(target_type: type, name: str) -> Optional[type]:
    """Best-effort type hint of a property, handed to the serializer."""
    attr = getattr(target_type, name, None)
    if isinstance(attr, property) and attr.fget is not None:
        hints = _safe_type_hints(attr.fget)
        return hints.get('return')
    return _safe_type_hints(target_type).get(name)


def _safe_type_hints(obj: Any) -> dict:
    try:
        return typing.get_type_hints(obj)
    except Exception:
        # Unresolvable forward references: the serializer falls back to untyped decoding
        return {}
