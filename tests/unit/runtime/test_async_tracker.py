from __future__ import annotations

from tracebox.runtime import AsyncKind, AsyncLifecycleTracker


def _kinds(collected: list) -> list[str]:
    return [event.kind for event in collected]


def _named_callback() -> None:
    return None


def test_promise_lifecycle_posts_init_before_resolve_after(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    tracker.on_init(1, AsyncKind.PROMISE, None, object())
    tracker.on_before(1)
    tracker.on_promise_resolve(1)
    tracker.on_after(1)
    tracker.on_destroy(1)

    assert _kinds(collected) == ["InitPromise", "BeforePromise", "ResolvePromise", "AfterPromise"]
    assert dict(collected[0].payload) == {"id": 1, "parentId": None}
    assert not tracker.lookup(1).is_known


def test_timer_reports_callback_name_and_no_after(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    tracker.on_init(2, AsyncKind.TIMER, None, _named_callback)
    tracker.on_before(2)
    tracker.on_after(2)
    tracker.on_promise_resolve(2)

    assert _kinds(collected) == ["InitTimeout", "BeforeTimeout"]
    assert collected[0].payload["callbackName"] == "_named_callback"


def test_anonymous_timer_callbacks(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    tracker.on_init(3, AsyncKind.TIMER, None, lambda: None)
    tracker.on_init(4, AsyncKind.TIMER, None, object())

    assert [event.payload["callbackName"] for event in collected] == ["anonymous", "anonymous"]


def test_microtask_lifecycle_links_parent(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    tracker.on_init(5, AsyncKind.MICROTASK, 1, _named_callback)
    tracker.on_before(5)
    tracker.on_after(5)

    assert _kinds(collected) == ["InitMicrotask", "BeforeMicrotask", "AfterMicrotask"]
    assert collected[0].payload["parentId"] == 1


def test_other_resources_are_recorded_silently(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    tracker.on_init(6, AsyncKind.OTHER, None, object())
    tracker.on_before(6)
    tracker.on_after(6)
    tracker.on_destroy(6)

    assert collected == []


def test_unknown_ids_get_an_inert_handle(collected: list) -> None:
    tracker = AsyncLifecycleTracker(collected.append)

    handle = tracker.lookup(99)
    tracker.on_before(99)
    tracker.on_after(99)
    tracker.on_promise_resolve(99)
    tracker.on_destroy(99)

    assert not handle.is_known
    assert handle.kind is AsyncKind.UNKNOWN
    assert collected == []
