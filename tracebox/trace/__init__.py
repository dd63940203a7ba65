"""Event model, ordered emission and event sinks."""

from .emitter import EventEmitter, EventSink
from .events import TERMINAL_KINDS, Event, EventKind
from .formatting import render_value, render_values
from .mirror import EventLogMirror
from .schema import EVENT_SCHEMAS, EventValidationError, EventValidator

__all__ = [
    "EVENT_SCHEMAS",
    "Event",
    "EventEmitter",
    "EventKind",
    "EventLogMirror",
    "EventSink",
    "EventValidationError",
    "EventValidator",
    "TERMINAL_KINDS",
    "render_value",
    "render_values",
]
