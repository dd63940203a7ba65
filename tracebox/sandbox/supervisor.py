"""Fault boundary around instrumentation and execution of one program."""

from __future__ import annotations

import logging
from collections.abc import Callable

from ..trace import events
from ..trace.events import Event
from .limits import RunState, RunStatus, RunTerminated

__all__ = ["RunSupervisor"]

logger = logging.getLogger(__name__)


class RunSupervisor:
    """Turn unrecovered faults into a terminal event and a terminal status."""

    def __init__(self, state: RunState, post: Callable[[Event], object]) -> None:
        self._state = state
        self._post = post

    def run(self, body: Callable[[], object]) -> RunStatus:
        """Call ``body`` and return the run's terminal status.

        A body that returns normally completes the run unless a limit or a
        fault already ended it.
        """

        try:
            body()
        except RunTerminated as exc:
            logger.debug("program unwound after termination: %s", exc)
        except (Exception, SystemExit) as exc:  # noqa: BLE001
            self.fail(exc)
        if not self._state.terminated:
            self._state.finish(RunStatus.COMPLETED)
        return self._state.status

    def fail(self, error: BaseException | None) -> None:
        """Report ``error`` as uncaught and end the run; later faults are ignored."""

        state = self._state
        if state.terminated:
            logger.debug("ignoring fault after termination: %r", error)
            return
        self._post(events.uncaught_error(error))
        state.finish(RunStatus.FATAL_ERROR)
        logger.info("run ended by uncaught %s", type(error).__name__ if error is not None else "error")
