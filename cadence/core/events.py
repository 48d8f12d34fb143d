"""Event system for Cadence components."""

from typing import Dict, List, Callable, Any
from enum import Enum, auto

from ..logger import get_logger

logger = get_logger(__name__)


class TrackingEventType(Enum):
    """Event types published by the pitch-tracking engine."""

    DISPLAY_UPDATED = auto()
    NOTE_LOCKED = auto()
    SIGNAL_LOST = auto()


class EventEmitter:
    """Event emitter for Cadence components."""

    def __init__(self):
        """Initialize the event emitter."""
        self._listeners: Dict[Any, List[Callable]] = {}

    def on(self, event_type: Any, callback: Callable) -> None:
        """Register a callback for an event type.

        Args:
            event_type: Event type to listen for
            callback: Function to call when the event occurs
        """
        if event_type not in self._listeners:
            self._listeners[event_type] = []

        if callback not in self._listeners[event_type]:
            self._listeners[event_type].append(callback)
            logger.debug(f"Added listener for event {event_type}")

    def off(self, event_type: Any, callback: Callable) -> None:
        """Unregister a callback; unknown callbacks are ignored."""
        listeners = self._listeners.get(event_type, [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event_type: Any, *args, **kwargs) -> None:
        """Emit an event.

        Listener failures are logged and never reach the emitter, which runs
        on the audio callback.
        """
        if event_type not in self._listeners:
            return

        for callback in list(self._listeners[event_type]):
            try:
                callback(*args, **kwargs)
            except Exception as e:
                logger.error(f"Error in event listener for {event_type}: {e}", exc_info=True)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._listeners = {}
        logger.debug("Cleared all event listeners")


class TrackingEvents:
    """Subscriptions to the engine's display snapshots and lock changes."""

    def __init__(self):
        self._emitter = EventEmitter()

    def on_display_updated(self, callback: Callable) -> None:
        """Register ``callback(state: DisplayState)`` for every published snapshot."""
        self._emitter.on(TrackingEventType.DISPLAY_UPDATED, callback)

    def on_note_locked(self, callback: Callable) -> None:
        """Register ``callback(state: DisplayState)`` for each Idle to Locked transition."""
        self._emitter.on(TrackingEventType.NOTE_LOCKED, callback)

    def on_signal_lost(self, callback: Callable) -> None:
        """Register ``callback(reason: str)`` for each loss of a sustaining or locked signal."""
        self._emitter.on(TrackingEventType.SIGNAL_LOST, callback)

    def off(self, event_type: TrackingEventType, callback: Callable) -> None:
        self._emitter.off(event_type, callback)

    def emit_display_updated(self, state) -> None:
        self._emitter.emit(TrackingEventType.DISPLAY_UPDATED, state)

    def emit_note_locked(self, state) -> None:
        self._emitter.emit(TrackingEventType.NOTE_LOCKED, state)

    def emit_signal_lost(self, reason: str) -> None:
        self._emitter.emit(TrackingEventType.SIGNAL_LOST, reason)

    def clear(self) -> None:
        """Remove all event listeners."""
        self._emitter.clear()
