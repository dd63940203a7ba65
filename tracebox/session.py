"""Trace one program from instrumentation to its terminal status."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass

from .config import TracerConfig
from .runtime import AsyncLifecycleTracker, TracedEventLoop
from .sandbox.capabilities import CapabilitySet
from .sandbox.environment import ExecutionEnvironment
from .sandbox.hooks import TracerHooks
from .sandbox.limits import Clock, LimitChecker, RunState, RunStatus
from .sandbox.supervisor import RunSupervisor
from .trace import Event, EventEmitter, EventLogMirror, EventValidator
from .trace.mirror import format_line
from .transforms import instrument

__all__ = ["Channel", "RunOutcome", "TraceSession"]

logger = logging.getLogger(__name__)

Channel = Callable[[str], object]


@dataclass(frozen=True, slots=True)
class RunOutcome:
    """What a finished run produced."""

    status: RunStatus
    events: tuple[Event, ...]
    event_count: int

    @property
    def exit_code(self) -> int:
        return self.status.exit_code


class TraceSession:
    """Single-use owner of the event stream and run state of one program.

    ``post`` is the only way events enter the stream. An event is encoded
    for the optional JSON ``channel`` and the mirror file before anything is
    delivered, and it is counted only after both accepted it, so a post that
    fails leaves the stream unchanged. Once the run has reached a terminal
    status further posts are dropped.
    """

    def __init__(
        self,
        config: TracerConfig | None = None,
        *,
        channel: Channel | None = None,
        clock: Clock = time.monotonic,
    ) -> None:
        self.config = config or TracerConfig()
        self._channel = channel
        self._clock = clock
        self._emitter = EventEmitter()
        self._state: RunState | None = None

    @property
    def state(self) -> RunState | None:
        return self._state

    @property
    def events(self) -> tuple[Event, ...]:
        return self._emitter.events

    def post(self, event: Event) -> None:
        state = self._state
        if state is None:
            raise RuntimeError("post() called before the session started")
        if state.terminated:
            logger.debug("dropping %s posted after termination", event.kind)
            return
        self._emitter.emit(event)
        state.record_event()

    def prepare(self, source: str) -> str:
        """Program text as it will be executed."""

        return instrument(source) if self.config.instrument else source

    def run(self, source: str) -> RunOutcome:
        if not isinstance(source, str):
            raise TypeError("source must be a string")
        if self._state is not None:
            raise RuntimeError("a TraceSession runs exactly one program")

        config = self.config
        state = RunState.start(self._clock)
        self._state = state

        if config.validate_events:
            self._emitter.attach_validator(EventValidator())
        if self._channel is not None:
            self._emitter.attach_sink(self._channel, encoder=Event.to_json)
        mirror = EventLogMirror(config.log_file) if config.log_file else None
        if mirror is not None:
            self._emitter.attach_sink(mirror.write_line, encoder=format_line)

        limits = LimitChecker(
            state, self.post, timeout_ms=config.timeout_ms, event_limit=config.event_limit
        )
        hooks = TracerHooks(self.post, limits)
        supervisor = RunSupervisor(state, self.post)
        loop = TracedEventLoop(AsyncLifecycleTracker(self.post))
        capabilities = CapabilitySet.create(
            tracer=hooks,
            next_id=state.next_synthetic_id,
            loop=loop,
            fetch_timeout_s=config.fetch_timeout_s,
        )
        environment = ExecutionEnvironment(capabilities, loop, supervisor.fail)

        logger.info("run started (%d chars, instrument=%s)", len(source), config.instrument)
        try:
            status = supervisor.run(lambda: environment.execute(self.prepare(source)))
        finally:
            loop.close()
            if mirror is not None:
                mirror.close()
        logger.info("run finished: status=%s events=%d", status.value, state.event_count)
        return RunOutcome(status=status, events=self._emitter.events, event_count=state.event_count)
