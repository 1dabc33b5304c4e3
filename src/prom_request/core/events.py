"""Minimal synchronous event emitter for calls, sockets and stream handles."""

from collections import defaultdict
from typing import Any, Callable, DefaultDict, List

Listener = Callable[..., Any]


class EventEmitter:
    """
    Listeners run synchronously, in registration order, on emit().

    Exceptions raised by a listener propagate to the emitter.
    """

    def __init__(self):
        self._listeners: DefaultDict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> "EventEmitter":
        self._listeners[event].append(listener)
        return self

    def once(self, event: str, listener: Listener) -> "EventEmitter":
        def wrapper(*args: Any) -> None:
            self.remove_listener(event, wrapper)
            listener(*args)

        return self.on(event, wrapper)

    def remove_listener(self, event: str, listener: Listener) -> None:
        if listener in self._listeners[event]:
            self._listeners[event].remove(listener)

    def listener_count(self, event: str) -> int:
        return len(self._listeners[event])

    def emit(self, event: str, *args: Any) -> bool:
        """Call every listener of event; returns False if there were none."""
        listeners = list(self._listeners[event])
        for listener in listeners:
            listener(*args)
        return bool(listeners)
