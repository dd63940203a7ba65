"""Entry points that instrumented programs call to report their activity."""

from __future__ import annotations

from collections.abc import Callable

from ..trace import events
from ..trace.events import Event
from ..trace.formatting import render_values
from .limits import LimitChecker

__all__ = ["TracerHooks"]


class TracerHooks:
    """Tracer hook API, exposed to the sandbox as ``Tracer``.

    The instrumentation passes rewrite programs to call these methods; their
    names and argument order are the contract between both sides.
    """

    __slots__ = ("_post", "_limits")

    def __init__(self, post: Callable[[Event], object], limits: LimitChecker) -> None:
        self._post = post
        self._limits = limits

    def enter_func(self, id: int, name: str, start: int, end: int) -> None:
        self._post(events.enter_function(id, name, start, end))

    def exit_func(self, id: int, name: str, start: int, end: int) -> None:
        self._post(events.exit_function(id, name, start, end))

    def error_func(self, message: str, id: int, name: str, start: int, end: int) -> None:
        self._post(events.error_function(message, id, name, start, end))

    def log(self, *values: object) -> None:
        self._post(events.console_log(render_values(values)))

    def warn(self, *values: object) -> None:
        self._post(events.console_warn(render_values(values)))

    def error(self, *values: object) -> None:
        self._post(events.console_error(render_values(values)))

    def iterate_loop(self) -> None:
        self._limits.check()
