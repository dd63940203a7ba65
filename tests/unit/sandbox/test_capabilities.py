from __future__ import annotations

import httpx
import pytest

from tracebox.runtime import TracedEventLoop
from tracebox.sandbox.capabilities import CapabilitySet, make_fetch, safe_builtins
from tracebox.sandbox.hooks import TracerHooks
from tracebox.sandbox.limits import LimitChecker, RunState


@pytest.fixture()
def capabilities(traced_loop: TracedEventLoop, frozen_clock, collected: list) -> CapabilitySet:
    state = RunState.start(frozen_clock)
    tracer = TracerHooks(collected.append, LimitChecker(state, collected.append))
    return CapabilitySet.create(tracer=tracer, next_id=state.next_synthetic_id, loop=traced_loop)


@pytest.mark.parametrize(
    "name",
    ["open", "__import__", "eval", "exec", "compile", "input", "globals", "vars", "breakpoint", "exit", "quit"],
)
def test_dangerous_builtins_are_absent(name: str) -> None:
    assert name not in safe_builtins(print)


def test_exception_classes_and_class_support_are_available() -> None:
    allowed = safe_builtins(print)

    assert allowed["ValueError"] is ValueError
    assert allowed["BaseException"] is BaseException
    assert "__build_class__" in allowed
    assert allowed["len"] is len


def test_namespace_exposes_capabilities(capabilities: CapabilitySet) -> None:
    namespace = capabilities.namespace()

    for name in (
        "Tracer",
        "next_id",
        "console",
        "fetch",
        "set_timeout",
        "clear_timeout",
        "queue_microtask",
        "create_task",
        "sleep",
        "gather",
        "itertools",
        "functools",
        "collections",
        "operator",
        "math",
        "json",
    ):
        assert name in namespace
    assert "os" not in namespace
    assert "sys" not in namespace


def test_namespaces_are_independent(capabilities: CapabilitySet) -> None:
    first = capabilities.namespace()
    first["leak"] = 1

    assert "leak" not in capabilities.namespace()


def test_print_and_console_forward_to_tracer(capabilities: CapabilitySet, collected: list) -> None:
    namespace = capabilities.namespace()

    namespace["__builtins__"]["print"]("via", "print", sep="-")
    namespace["console"].warn("via console")

    assert [(event.kind, event.payload["message"]) for event in collected] == [
        ("ConsoleLog", "via print\n"),
        ("ConsoleWarn", "via console\n"),
    ]


def test_next_id_is_the_run_counter(capabilities: CapabilitySet) -> None:
    next_id = capabilities.namespace()["next_id"]

    assert [next_id(), next_id()] == [0, 1]


def test_fetch_uses_httpx(traced_loop: TracedEventLoop) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"path": request.url.path, "method": request.method})

    fetch = make_fetch(5.0, transport=httpx.MockTransport(handler))

    response = traced_loop.run_until_complete(fetch("https://example.test/items"))

    assert response.status_code == 200
    assert response.json() == {"path": "/items", "method": "GET"}
