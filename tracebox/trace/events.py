"""Event taxonomy for traced runs."""

from __future__ import annotations

import json
import traceback
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Any

__all__ = [
    "Event",
    "EventKind",
    "TERMINAL_KINDS",
    "after_microtask",
    "after_promise",
    "before_microtask",
    "before_promise",
    "before_timeout",
    "console_error",
    "console_log",
    "console_warn",
    "early_termination",
    "enter_function",
    "error_function",
    "exit_function",
    "init_microtask",
    "init_promise",
    "init_timeout",
    "reported_error",
    "resolve_promise",
    "uncaught_error",
]


class EventKind(str, Enum):
    """Every event kind a traced run can post."""

    CONSOLE_LOG = "ConsoleLog"
    CONSOLE_WARN = "ConsoleWarn"
    CONSOLE_ERROR = "ConsoleError"

    ENTER_FUNCTION = "EnterFunction"
    EXIT_FUNCTION = "ExitFunction"
    ERROR_FUNCTION = "ErrorFunction"

    INIT_PROMISE = "InitPromise"
    RESOLVE_PROMISE = "ResolvePromise"
    BEFORE_PROMISE = "BeforePromise"
    AFTER_PROMISE = "AfterPromise"

    INIT_MICROTASK = "InitMicrotask"
    BEFORE_MICROTASK = "BeforeMicrotask"
    AFTER_MICROTASK = "AfterMicrotask"

    INIT_TIMEOUT = "InitTimeout"
    BEFORE_TIMEOUT = "BeforeTimeout"

    UNCAUGHT_ERROR = "UncaughtError"
    EARLY_TERMINATION = "EarlyTermination"


TERMINAL_KINDS = frozenset({EventKind.UNCAUGHT_ERROR.value, EventKind.EARLY_TERMINATION.value})


@dataclass(frozen=True, slots=True)
class Event:
    """Immutable trace record.

    ``kind`` is kept as a plain string so that records decoded from a newer
    producer with kinds this version does not know still round-trip.
    """

    kind: str
    payload: Mapping[str, Any]

    @property
    def known_kind(self) -> EventKind | None:
        try:
            return EventKind(self.kind)
        except ValueError:
            return None

    @property
    def is_terminal(self) -> bool:
        return self.kind in TERMINAL_KINDS

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, "payload": dict(self.payload)}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Event":
        kind = data.get("type", data.get("kind"))
        payload = data.get("payload") or {}
        if not isinstance(payload, Mapping):
            payload = {"value": payload}
        return _event(str(kind), dict(payload))

    @classmethod
    def from_json(cls, text: str) -> "Event":
        return cls.from_dict(json.loads(text))


def _event(kind: EventKind | str, payload: Mapping[str, Any]) -> Event:
    tag = kind.value if isinstance(kind, EventKind) else kind
    return Event(kind=tag, payload=MappingProxyType(dict(payload)))


# ---------------------------------------------------------------------------
# Console
# ---------------------------------------------------------------------------


def console_log(message: str) -> Event:
    return _event(EventKind.CONSOLE_LOG, {"message": message})


def console_warn(message: str) -> Event:
    return _event(EventKind.CONSOLE_WARN, {"message": message})


def console_error(message: str) -> Event:
    return _event(EventKind.CONSOLE_ERROR, {"message": message})


# ---------------------------------------------------------------------------
# Function boundaries
# ---------------------------------------------------------------------------


def enter_function(id: int, name: str, start: int, end: int) -> Event:
    return _event(EventKind.ENTER_FUNCTION, {"id": id, "name": name, "start": start, "end": end})


def exit_function(id: int, name: str, start: int, end: int) -> Event:
    return _event(EventKind.EXIT_FUNCTION, {"id": id, "name": name, "start": start, "end": end})


def error_function(message: str, id: int, name: str, start: int, end: int) -> Event:
    return _event(
        EventKind.ERROR_FUNCTION,
        {"message": message, "id": id, "name": name, "start": start, "end": end},
    )


# ---------------------------------------------------------------------------
# Async lifecycle
# ---------------------------------------------------------------------------


def init_promise(id: int, parent_id: int | None) -> Event:
    return _event(EventKind.INIT_PROMISE, {"id": id, "parentId": parent_id})


def resolve_promise(id: int) -> Event:
    return _event(EventKind.RESOLVE_PROMISE, {"id": id})


def before_promise(id: int) -> Event:
    return _event(EventKind.BEFORE_PROMISE, {"id": id})


def after_promise(id: int) -> Event:
    return _event(EventKind.AFTER_PROMISE, {"id": id})


def init_microtask(id: int, parent_id: int | None) -> Event:
    return _event(EventKind.INIT_MICROTASK, {"id": id, "parentId": parent_id})


def before_microtask(id: int) -> Event:
    return _event(EventKind.BEFORE_MICROTASK, {"id": id})


def after_microtask(id: int) -> Event:
    return _event(EventKind.AFTER_MICROTASK, {"id": id})


def init_timeout(id: int, callback_name: str) -> Event:
    return _event(EventKind.INIT_TIMEOUT, {"id": id, "callbackName": callback_name})


def before_timeout(id: int) -> Event:
    return _event(EventKind.BEFORE_TIMEOUT, {"id": id})


# ---------------------------------------------------------------------------
# Terminal events
# ---------------------------------------------------------------------------


def uncaught_error(error: object) -> Event:
    """Describe ``error``; ``None`` produces empty fields instead of failing."""

    if error is None:
        return _event(EventKind.UNCAUGHT_ERROR, {"name": None, "stack": None, "message": None})
    stack = None
    if isinstance(error, BaseException):
        stack = "".join(traceback.format_exception(error))
    return _event(
        EventKind.UNCAUGHT_ERROR,
        {"name": type(error).__name__, "stack": stack, "message": str(error)},
    )


def early_termination(message: str) -> Event:
    return _event(EventKind.EARLY_TERMINATION, {"message": message})


def reported_error(name: str, message: str, stack: str | None = None) -> Event:
    """``UncaughtError`` for a failure observed outside the program itself."""

    return _event(EventKind.UNCAUGHT_ERROR, {"name": name, "stack": stack, "message": message})
