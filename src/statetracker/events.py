"""
Callback lists for tracking lifecycle hooks.

Cancellable hooks receive a TrackingOperation and cancel by setting
``operation.cancel = True``. Handler exceptions propagate to whoever fired
the event.
"""
from dataclasses import dataclass
from typing import Any, Callable, List


@dataclass
class TrackingOperation:
    """Payload for cancellable hooks (applying_state, persisting_state)."""
    configuration: Any
    cancel: bool = False


class Event:
    """Ordered list of callbacks; connecting the same callback twice is a no-op."""

    def __init__(self) -> None:
        self._callbacks: List[Callable[..., Any]] = []

    def connect(self, callback: Callable[..., Any]) -> None:
        if callback not in self._callbacks:
            self._callbacks.append(callback)

    def disconnect(self, callback: Callable[..., Any]) -> None:
        if callback in self._callbacks:
            self._callbacks.remove(callback)

    def fire(self, *args: Any, **kwargs: Any) -> None:
        # Copy so callbacks may disconnect themselves while firing
        for callback in list(self._callbacks):
            callback(*args, **kwargs)

    __call__ = fire
