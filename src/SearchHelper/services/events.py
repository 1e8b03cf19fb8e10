"""Minimal synchronous event emitter used by the helper."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

Listener = Callable[..., Any]


class EventEmitter:
    """Register listeners per event name and call them in registration order."""

    def __init__(self) -> None:
        self._listeners: dict[str, list[tuple[Listener, bool]]] = {}

    def on(self, event: str, listener: Listener) -> EventEmitter:
        self._listeners.setdefault(event, []).append((listener, False))
        return self

    def once(self, event: str, listener: Listener) -> EventEmitter:
        """Register a listener removed after its first call."""
        self._listeners.setdefault(event, []).append((listener, True))
        return self

    def off(self, event: str, listener: Listener | None = None) -> EventEmitter:
        """Remove one listener, or all the listeners of ``event``."""
        if listener is None:
            self._listeners.pop(event, None)
            return self
        remaining = [entry for entry in self._listeners.get(event, []) if entry[0] is not listener]
        if remaining:
            self._listeners[event] = remaining
        else:
            self._listeners.pop(event, None)
        return self

    def listener_count(self, event: str) -> int:
        return len(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> bool:
        """Call the listeners of ``event``.

        Returns:
            True if at least one listener was called.
        """
        entries = self._listeners.get(event)
        if not entries:
            return False
        persistent = [entry for entry in entries if not entry[1]]
        if persistent:
            self._listeners[event] = persistent
        else:
            self._listeners.pop(event, None)
        for listener, _ in entries:
            listener(*args)
        return True


__all__ = ["EventEmitter", "Listener"]
