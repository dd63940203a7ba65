"""Run state and the limit checks that end runaway programs."""

from __future__ import annotations

import itertools
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum

from ..trace import events
from ..trace.events import Event

__all__ = [
    "CEILING_MILLIS",
    "EVENT_LIMIT",
    "TIMEOUT_MILLIS",
    "LimitChecker",
    "RunState",
    "RunStatus",
    "RunTerminated",
]

logger = logging.getLogger(__name__)

TIMEOUT_MILLIS = 5000
EVENT_LIMIT = 500
CEILING_MILLIS = 6000

Clock = Callable[[], float]


class RunStatus(str, Enum):
    """Lifecycle of one traced run; every state but RUNNING is terminal."""

    RUNNING = "running"
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    EVENT_LIMIT = "event_limit"
    FATAL_ERROR = "fatal_error"

    @property
    def is_terminal(self) -> bool:
        return self is not RunStatus.RUNNING

    @property
    def exit_code(self) -> int:
        return 0 if self in (RunStatus.RUNNING, RunStatus.COMPLETED) else 1


class RunTerminated(SystemExit):
    """Raised to unwind the sandboxed program after an early termination.

    Subclasses :class:`SystemExit` so that ``except Exception`` handlers in
    submitted code cannot absorb it.
    """

    def __init__(self, status: RunStatus, message: str) -> None:
        super().__init__(status.exit_code)
        self.status = status
        self.message = message

    def __str__(self) -> str:
        return self.message


@dataclass(slots=True)
class RunState:
    """Process-wide counters for one traced run."""

    start_time: float
    clock: Clock = time.monotonic
    event_count: int = 0
    status: RunStatus = RunStatus.RUNNING
    _synthetic_ids: itertools.count = field(default_factory=itertools.count, repr=False)

    @classmethod
    def start(cls, clock: Clock = time.monotonic) -> "RunState":
        return cls(start_time=clock(), clock=clock)

    @property
    def terminated(self) -> bool:
        return self.status.is_terminal

    def elapsed_ms(self) -> float:
        return (self.clock() - self.start_time) * 1000.0

    def next_synthetic_id(self) -> int:
        """Mint an id for a function-call or loop site; starts at 0."""

        return next(self._synthetic_ids)

    def record_event(self) -> None:
        self.event_count += 1

    def finish(self, status: RunStatus) -> None:
        if self.status.is_terminal:
            raise RuntimeError(f"run already finished with status {self.status.value}")
        if not status.is_terminal:
            raise ValueError("finish() requires a terminal status")
        self.status = status


class LimitChecker:
    """Evaluate the timeout and event-count limits on every loop iteration."""

    def __init__(
        self,
        state: RunState,
        post: Callable[[Event], object],
        *,
        timeout_ms: int = TIMEOUT_MILLIS,
        event_limit: int = EVENT_LIMIT,
    ) -> None:
        if timeout_ms <= 0:
            raise ValueError("timeout_ms must be positive")
        if event_limit <= 0:
            raise ValueError("event_limit must be positive")
        self._state = state
        self._post = post
        self.timeout_ms = int(timeout_ms)
        self.event_limit = int(event_limit)

    def breach(self) -> tuple[RunStatus, str] | None:
        """Return the limit that is currently exceeded, timeout first."""

        if self._state.elapsed_ms() > self.timeout_ms:
            return RunStatus.TIMEOUT, f"Terminated early: Timeout of {self.timeout_ms} millis exceeded."
        if self._state.event_count >= self.event_limit:
            return RunStatus.EVENT_LIMIT, f"Terminated early: Event limit of {self.event_limit} exceeded."
        return None

    def check(self) -> None:
        """Terminate the run if a limit is exceeded.

        Posts exactly one ``EarlyTermination`` event, moves the run to its
        terminal status and raises :class:`RunTerminated`. A run that is
        already terminated raises again without posting.
        """

        state = self._state
        if state.terminated:
            raise RunTerminated(state.status, "run already terminated")
        breach = self.breach()
        if breach is None:
            return
        status, message = breach
        self._post(events.early_termination(message))
        state.finish(status)
        logger.info("run terminated early: %s", message)
        raise RunTerminated(status, message)
