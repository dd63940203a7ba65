from __future__ import annotations

import pathlib
import sys
from collections.abc import Iterator

import pytest

REPO_ROOT = pathlib.Path(__file__).resolve().parents[1]

if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from tracebox.config import TracerConfig  # noqa: E402
from tracebox.runtime import TracedEventLoop  # noqa: E402


class TickingClock:
    """Deterministic monotonic clock that advances ``step`` seconds per read."""

    def __init__(self, step: float = 0.0, start: float = 0.0) -> None:
        self.step = step
        self.now = start

    def __call__(self) -> float:
        current = self.now
        self.now += self.step
        return current


@pytest.fixture()
def frozen_clock() -> TickingClock:
    return TickingClock(step=0.0)


@pytest.fixture()
def ticking_clock() -> TickingClock:
    # 10ms per read: a loop crosses the 5000ms timeout after ~500 iterations
    return TickingClock(step=0.01)


@pytest.fixture()
def config() -> TracerConfig:
    return TracerConfig(log_file=None)


@pytest.fixture()
def traced_loop() -> Iterator[TracedEventLoop]:
    loop = TracedEventLoop()
    try:
        yield loop
    finally:
        loop.close()


@pytest.fixture()
def collected() -> list:
    return []
