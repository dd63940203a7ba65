"""JSON schemas for event payloads."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from jsonschema import Draft202012Validator, ValidationError, validators

from .events import Event, EventKind

__all__ = ["EVENT_SCHEMAS", "EventValidationError", "EventValidator"]


_NULLABLE_INT = {"type": ["integer", "null"]}
_NULLABLE_STR = {"type": ["string", "null"]}


def _object(**properties: Mapping[str, Any]) -> dict[str, Any]:
    return {
        "$schema": "https://json-schema.org/draft/2020-12/schema",
        "type": "object",
        "properties": dict(properties),
        "required": sorted(properties),
        "additionalProperties": False,
    }


_MESSAGE = _object(message={"type": "string"})
_ID_ONLY = _object(id={"type": "integer"})
_SITE = _object(
    id={"type": "integer"},
    name={"type": "string"},
    start={"type": "integer"},
    end={"type": "integer"},
)
_LINKED = _object(id={"type": "integer"}, parentId=_NULLABLE_INT)

EVENT_SCHEMAS: Mapping[str, Mapping[str, Any]] = {
    EventKind.CONSOLE_LOG.value: _MESSAGE,
    EventKind.CONSOLE_WARN.value: _MESSAGE,
    EventKind.CONSOLE_ERROR.value: _MESSAGE,
    EventKind.ENTER_FUNCTION.value: _SITE,
    EventKind.EXIT_FUNCTION.value: _SITE,
    EventKind.ERROR_FUNCTION.value: _object(
        message={"type": "string"},
        id={"type": "integer"},
        name={"type": "string"},
        start={"type": "integer"},
        end={"type": "integer"},
    ),
    EventKind.INIT_PROMISE.value: _LINKED,
    EventKind.RESOLVE_PROMISE.value: _ID_ONLY,
    EventKind.BEFORE_PROMISE.value: _ID_ONLY,
    EventKind.AFTER_PROMISE.value: _ID_ONLY,
    EventKind.INIT_MICROTASK.value: _LINKED,
    EventKind.BEFORE_MICROTASK.value: _ID_ONLY,
    EventKind.AFTER_MICROTASK.value: _ID_ONLY,
    EventKind.INIT_TIMEOUT.value: _object(id={"type": "integer"}, callbackName={"type": "string"}),
    EventKind.BEFORE_TIMEOUT.value: _ID_ONLY,
    EventKind.UNCAUGHT_ERROR.value: _object(
        name=_NULLABLE_STR,
        stack=_NULLABLE_STR,
        message=_NULLABLE_STR,
    ),
    EventKind.EARLY_TERMINATION.value: _MESSAGE,
}


class EventValidationError(ValueError):
    """Raised when an event payload does not match the schema for its kind."""

    def __init__(self, event: Event, error: ValidationError) -> None:
        super().__init__(f"{event.kind} payload invalid: {error.message}")
        self.event = event
        self.error = error


class EventValidator:
    """Validate event payloads; unknown kinds pass through untouched."""

    def __init__(self, schemas: Mapping[str, Mapping[str, Any]] | None = None) -> None:
        self._validators: dict[str, Draft202012Validator] = {}
        for kind, schema in (schemas or EVENT_SCHEMAS).items():
            validator_cls = validators.validator_for(schema)
            validator_cls.check_schema(schema)
            self._validators[kind] = validator_cls(schema)

    def __call__(self, event: Event) -> None:
        self.validate(event)

    def validate(self, event: Event) -> None:
        validator = self._validators.get(event.kind)
        if validator is None:
            return
        try:
            validator.validate(dict(event.payload))
        except ValidationError as exc:
            raise EventValidationError(event, exc) from exc
