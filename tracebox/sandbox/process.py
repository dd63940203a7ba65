"""Run a traced program in a forked worker under a hard wall-clock ceiling."""

from __future__ import annotations

import logging
import math
import os
import time
from collections.abc import Callable
from dataclasses import dataclass
from multiprocessing import connection, get_context
from typing import Any

from ..config import TracerConfig
from ..session import TraceSession
from ..trace import events
from ..trace.events import Event
from .limits import RunStatus

try:  # pragma: no cover - platform guard
    import resource
except ImportError:  # pragma: no cover - resource is POSIX only
    resource = None  # type: ignore[assignment]

__all__ = ["ProcessSandbox", "SandboxResult"]

logger = logging.getLogger(__name__)

CEILING_ERROR_NAME = "SandboxTimeoutError"
WORKER_EXIT_ERROR_NAME = "WorkerExited"


@dataclass(frozen=True, slots=True)
class SandboxResult:
    """Outcome of a program run in the process sandbox."""

    events: tuple[Event, ...]
    exit_code: int
    status: RunStatus
    duration_ms: float
    ceiling_exceeded: bool = False


def _limit_worker(config: TracerConfig) -> list[tuple[int, int]]:
    """Cap the worker's address space and CPU time; returns the limits applied.

    The CPU cap sits one second past the ceiling so the parent's kill is the
    normal path. Limits the kernel refuses are skipped.
    """

    if resource is None:  # pragma: no cover - resource is POSIX only
        return []
    wanted = [(resource.RLIMIT_CPU, math.ceil(config.ceiling_ms / 1000.0) + 1)]
    if config.memory_limit_mb:
        memory = config.memory_limit_mb * 1024 * 1024
        wanted += [(resource.RLIMIT_AS, memory), (resource.RLIMIT_DATA, memory)]
    applied: list[tuple[int, int]] = []
    for which, value in wanted:
        try:
            resource.setrlimit(which, (value, value))
        except (ValueError, OSError) as exc:
            logger.debug("rlimit %s=%s not applied: %s", which, value, exc)
            continue
        applied.append((which, value))
    return applied


def _trace_worker(conn: connection.Connection, source: str, config: TracerConfig) -> None:
    exit_code = 1
    try:
        _limit_worker(config)
        outcome = TraceSession(config, channel=conn.send).run(source)
        exit_code = outcome.exit_code
        conn.send({"status": outcome.status.value, "exit_code": exit_code})
    except BaseException as exc:  # noqa: BLE001 - worker must report everything
        exit_code = 1
        conn.send(events.uncaught_error(exc).to_json())
    finally:
        conn.close()
        os._exit(exit_code)


class ProcessSandbox:
    """Trace programs in a forked worker process.

    The worker streams each event's JSON text over a one-way pipe as it is
    posted. The parent enforces ``ceiling_ms``: past it the worker is
    terminated and an ``UncaughtError`` is appended to the stream.
    """

    def __init__(self, config: TracerConfig | None = None) -> None:
        self.config = config or TracerConfig()

    def run(self, source: str, *, sink: Callable[[Event], object] | None = None) -> SandboxResult:
        if not isinstance(source, str):
            raise TypeError("source must be a string containing the program text")

        config = self.config
        ctx = get_context("fork")
        parent_conn, child_conn = ctx.Pipe(duplex=False)
        proc = ctx.Process(target=_trace_worker, args=(child_conn, source, config))
        start = time.perf_counter()
        deadline = start + config.ceiling_ms / 1000.0
        proc.start()
        child_conn.close()

        received: list[Event] = []
        summary: dict[str, Any] | None = None
        ceiling_exceeded = False

        def deliver(event: Event) -> None:
            received.append(event)
            if sink is not None:
                sink(event)

        try:
            while True:
                remaining = deadline - time.perf_counter()
                if remaining <= 0 or not parent_conn.poll(remaining):
                    ceiling_exceeded = True
                    break
                try:
                    message = parent_conn.recv()
                except EOFError:
                    break
                if isinstance(message, str):
                    deliver(Event.from_json(message))
                elif isinstance(message, dict):
                    summary = message
        finally:
            parent_conn.close()

        if ceiling_exceeded:
            proc.terminate()
        proc.join()
        duration_ms = (time.perf_counter() - start) * 1000.0
        worker_exit = proc.exitcode if proc.exitcode is not None else -1

        if ceiling_exceeded:
            logger.warning("worker killed after %sms ceiling", config.ceiling_ms)
            deliver(
                events.reported_error(
                    CEILING_ERROR_NAME,
                    f"Script execution timed out after {config.ceiling_ms}ms.",
                )
            )
            status = RunStatus.FATAL_ERROR
        elif summary is not None:
            status = RunStatus(summary.get("status", RunStatus.FATAL_ERROR.value))
        elif received and received[-1].is_terminal:
            status = RunStatus.FATAL_ERROR
        else:
            logger.warning("worker exited with code %s before reporting a status", worker_exit)
            deliver(
                events.reported_error(
                    WORKER_EXIT_ERROR_NAME,
                    f"Worker exited with code {worker_exit} before finishing the run.",
                )
            )
            status = RunStatus.FATAL_ERROR

        return SandboxResult(
            events=tuple(received),
            exit_code=status.exit_code,
            status=status,
            duration_ms=duration_ms,
            ceiling_exceeded=ceiling_exceeded,
        )
