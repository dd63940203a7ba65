"""Ordered event log with sink forwarding."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from .events import Event

__all__ = ["EventEmitter", "EventSink"]

EventSink = Callable[[Any], None]
Encoder = Callable[[Event], Any]

# Frames kept free below an emit so delivery cannot hit the recursion limit.
_DELIVERY_HEADROOM = 48


def _reserve_stack(depth: int = _DELIVERY_HEADROOM) -> None:
    if depth > 0:
        _reserve_stack(depth - 1)


class EventEmitter:
    """Forward each event to the sinks, then append it to an in-memory log.

    Emission is all-or-nothing. The validator and every sink's encoder run
    first; a failure there leaves the log and every sink untouched. Only then
    are the encoded values delivered, in attachment order, and the event
    recorded. Every sink therefore observes the same total order as the log.
    """

    def __init__(self) -> None:
        self._events: list[Event] = []
        self._sinks: list[tuple[EventSink, Encoder | None]] = []
        self._validator: Callable[[Event], None] | None = None

    def attach_sink(self, sink: EventSink, *, encoder: Encoder | None = None) -> None:
        """Register an external sink that receives every emitted event.

        With ``encoder`` the sink receives ``encoder(event)`` instead of the
        event itself.
        """

        self._sinks.append((sink, encoder))

    def detach_sink(self, sink: EventSink) -> None:
        for index, (attached, _encoder) in enumerate(self._sinks):
            if attached == sink:
                del self._sinks[index]
                return
        raise ValueError("sink is not attached")

    def attach_validator(self, validator: Callable[[Event], None] | None) -> None:
        """Register a validator invoked before an event is recorded."""

        self._validator = validator

    def emit(self, event: Event) -> Event:
        if self._validator is not None:
            self._validator(event)
        encoded = [
            (sink, event if encoder is None else encoder(event)) for sink, encoder in self._sinks
        ]
        _reserve_stack()
        for sink, value in encoded:
            sink(value)
        self._events.append(event)
        return event

    @property
    def events(self) -> tuple[Event, ...]:
        return tuple(self._events)

    def __len__(self) -> int:
        return len(self._events)
