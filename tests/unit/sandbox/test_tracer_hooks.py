from __future__ import annotations

import pytest

from tracebox.sandbox.hooks import TracerHooks
from tracebox.sandbox.limits import LimitChecker, RunState, RunStatus, RunTerminated


@pytest.fixture()
def state(frozen_clock) -> RunState:
    return RunState.start(frozen_clock)


@pytest.fixture()
def tracer(state: RunState, collected: list) -> TracerHooks:
    def post(event) -> None:
        collected.append(event)
        state.record_event()

    return TracerHooks(post, LimitChecker(state, post, event_limit=3))


def test_console_values_are_rendered_and_joined(tracer: TracerHooks, collected: list) -> None:
    tracer.log("a", 1, {"k": [1, 2]}, None)
    tracer.warn("careful")
    tracer.error()

    assert [event.kind for event in collected] == ["ConsoleLog", "ConsoleWarn", "ConsoleError"]
    assert collected[0].payload["message"] == "a 1 {'k': [1, 2]} None\n"
    assert collected[1].payload["message"] == "careful\n"
    assert collected[2].payload["message"] == "\n"


def test_unprintable_values_do_not_fail(tracer: TracerHooks, collected: list) -> None:
    class Broken:
        def __repr__(self) -> str:
            raise RuntimeError("no repr")

    tracer.log(Broken())

    assert collected[0].payload["message"] == "<unprintable Broken>\n"


def test_function_hooks_carry_site(tracer: TracerHooks, collected: list) -> None:
    tracer.enter_func(0, "f", 3, 30)
    tracer.error_func("x", 0, "f", 3, 30)
    tracer.exit_func(0, "f", 3, 30)

    assert [event.kind for event in collected] == ["EnterFunction", "ErrorFunction", "ExitFunction"]
    assert dict(collected[1].payload) == {"message": "x", "id": 0, "name": "f", "start": 3, "end": 30}


def test_iterate_loop_ends_run_at_event_limit(
    tracer: TracerHooks, state: RunState, collected: list
) -> None:
    for _ in range(3):
        tracer.iterate_loop()
        tracer.log("tick")

    with pytest.raises(RunTerminated):
        tracer.iterate_loop()

    assert collected[-1].kind == "EarlyTermination"
    assert collected[-1].payload["message"] == "Terminated early: Event limit of 3 exceeded."
    assert state.status is RunStatus.EVENT_LIMIT
