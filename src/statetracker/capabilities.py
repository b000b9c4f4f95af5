"""
Optional capabilities a tracked object may implement.

TrackingAware: ``init_tracking(config)`` is called once, when the object's
TrackingConfiguration is created. Use it to add/remove tracked properties or
set a custom key.

PersistRequestNotifier: exposes a ``persist_requested`` event (anything with
``connect(callable)``, e.g. statetracker.events.Event). Firing it persists the
object's state immediately.
"""
from typing import Any, Callable, Protocol, runtime_checkable


@runtime_checkable
class TrackingAware(Protocol):
    def init_tracking(self, config: Any) -> None:
        ...


class _Connectable(Protocol):
    def connect(self, callback: Callable[..., Any]) -> Any:
        ...


@runtime_checkable
class PersistRequestNotifier(Protocol):
    persist_requested: _Connectable
