"""Event loop that reports async resource lifecycles to registered hooks.

``TracedEventLoop`` is the host scheduler for traced programs. Every unit it
schedules on behalf of the program gets an async id from the loop and goes
through the notification points of :class:`AsyncHooks`:

* tasks (``create_task``) are promises: ``init`` on creation, ``before`` and
  ``after`` around every step, ``promise_resolve`` when the coroutine returns;
* ``set_timeout`` callbacks are timers and ``queue_microtask`` callbacks are
  microtasks: ``init`` when scheduled, ``before``/``after`` around the call;
* futures from ``create_future`` are reported with kind ``OTHER``.

``destroy`` is reported once a unit has settled or been cancelled. Hooks run
synchronously on the loop thread, in the order the scheduler reaches them.
"""

from __future__ import annotations

import asyncio
import collections.abc
import functools
import itertools
import logging
from collections.abc import Callable, Coroutine
from enum import Enum
from typing import Any, Protocol, TypeVar

__all__ = ["AsyncHooks", "AsyncKind", "TracedEventLoop"]

logger = logging.getLogger(__name__)

_T = TypeVar("_T")


class AsyncKind(str, Enum):
    """Kinds of async resources the loop reports."""

    PROMISE = "Promise"
    TIMER = "Timeout"
    MICROTASK = "Microtask"
    OTHER = "Other"
    UNKNOWN = "Unknown"


class AsyncHooks(Protocol):
    """Notification points of the async resource lifecycle."""

    def on_init(
        self, async_id: int, kind: AsyncKind, trigger_id: int | None, resource: object
    ) -> None: ...

    def on_before(self, async_id: int) -> None: ...

    def on_after(self, async_id: int) -> None: ...

    def on_promise_resolve(self, async_id: int) -> None: ...

    def on_destroy(self, async_id: int) -> None: ...


class _NoHooks:
    def on_init(self, async_id: int, kind: AsyncKind, trigger_id: int | None, resource: object) -> None:
        pass

    def on_before(self, async_id: int) -> None:
        pass

    def on_after(self, async_id: int) -> None:
        pass

    def on_promise_resolve(self, async_id: int) -> None:
        pass

    def on_destroy(self, async_id: int) -> None:
        pass


class _TracedCoroutine(collections.abc.Coroutine):
    """Wrap a task's coroutine so each step is bracketed by before/after."""

    def __init__(self, coro: Coroutine[Any, Any, Any], loop: "TracedEventLoop", async_id: int) -> None:
        self._coro = coro
        self._loop = loop
        self._async_id = async_id

    def send(self, value: Any) -> Any:
        return self._step(self._coro.send, value)

    def throw(self, typ: Any, val: Any = None, tb: Any = None) -> Any:
        if val is None and tb is None:
            return self._step(self._coro.throw, typ)
        return self._step(self._coro.throw, typ, val, tb)

    def close(self) -> None:
        self._coro.close()

    def __await__(self) -> Any:
        return self._coro.__await__()

    def __getattr__(self, name: str) -> Any:
        # cr_frame, cr_code, __qualname__ ... for task reprs and stacks
        return getattr(self._coro, name)

    def _step(self, method: Callable[..., Any], *args: Any) -> Any:
        loop = self._loop
        hooks = loop.async_hooks
        previous = loop.current_async_id
        loop.current_async_id = self._async_id
        try:
            hooks.on_before(self._async_id)
            try:
                return method(*args)
            except StopIteration:
                hooks.on_promise_resolve(self._async_id)
                raise
            finally:
                hooks.on_after(self._async_id)
        finally:
            loop.current_async_id = previous


class TracedEventLoop(asyncio.SelectorEventLoop):
    """Selector event loop with async resource lifecycle notifications."""

    def __init__(self, hooks: AsyncHooks | None = None, selector: Any = None) -> None:
        super().__init__(selector)
        self._async_hooks: AsyncHooks = hooks or _NoHooks()
        self._async_ids = itertools.count(1)
        self.current_async_id: int | None = None
        self._timers: dict[int, asyncio.TimerHandle] = {}
        self._pending: set[int] = set()
        self._idle_waiter: asyncio.Future[None] | None = None

    # ------------------------------------------------------------------
    # Hook registration
    # ------------------------------------------------------------------
    @property
    def async_hooks(self) -> AsyncHooks:
        return self._async_hooks

    def set_async_hooks(self, hooks: AsyncHooks | None) -> None:
        """Install ``hooks`` (or clear them with ``None``)."""

        self._async_hooks = hooks or _NoHooks()

    @property
    def pending_count(self) -> int:
        """Number of traced tasks, timers and microtasks not yet settled."""

        return len(self._pending)

    # ------------------------------------------------------------------
    # Scheduling primitives
    # ------------------------------------------------------------------
    def create_task(self, coro: Any, **kwargs: Any) -> asyncio.Task[Any]:
        if not asyncio.iscoroutine(coro):
            return super().create_task(coro, **kwargs)
        async_id = self._next_async_id()
        self._async_hooks.on_init(async_id, AsyncKind.PROMISE, self.current_async_id, coro)
        task = super().create_task(_TracedCoroutine(coro, self, async_id), **kwargs)
        self._pending.add(async_id)
        task.add_done_callback(functools.partial(self._on_task_done, async_id))
        return task

    def create_future(self) -> asyncio.Future[Any]:
        future = super().create_future()
        async_id = self._next_async_id()
        self._async_hooks.on_init(async_id, AsyncKind.OTHER, self.current_async_id, future)
        future.add_done_callback(functools.partial(self._on_future_done, async_id))
        return future

    def set_timeout(self, callback: Callable[..., Any], delay_ms: float = 0, *args: Any) -> int:
        """Schedule ``callback(*args)`` after ``delay_ms`` and return its timer id."""

        async_id = self._next_async_id()
        self._async_hooks.on_init(async_id, AsyncKind.TIMER, self.current_async_id, callback)
        delay = max(float(delay_ms or 0), 0.0) / 1000.0
        self._timers[async_id] = self.call_later(
            delay, self._run_scheduled, async_id, callback, args
        )
        self._pending.add(async_id)
        return async_id

    def clear_timeout(self, timer_id: int) -> bool:
        """Cancel a timer created by :meth:`set_timeout`; unknown ids are ignored."""

        handle = self._timers.pop(timer_id, None)
        if handle is None:
            return False
        handle.cancel()
        self._settle(timer_id)
        self._async_hooks.on_destroy(timer_id)
        return True

    def queue_microtask(self, callback: Callable[..., Any], *args: Any) -> None:
        """Run ``callback(*args)`` on the next pass of the ready queue."""

        async_id = self._next_async_id()
        self._async_hooks.on_init(async_id, AsyncKind.MICROTASK, self.current_async_id, callback)
        self.call_soon(self._run_scheduled, async_id, callback, args)
        self._pending.add(async_id)

    # ------------------------------------------------------------------
    # Running
    # ------------------------------------------------------------------
    def run_untraced(self, main: Coroutine[Any, Any, _T]) -> _T:
        """Run ``main`` to completion without reporting it as a resource."""

        task = asyncio.Task(main, loop=self)
        return self.run_until_complete(task)

    async def until_idle(self) -> None:
        """Wait until every traced task, timer and microtask has settled."""

        while self._pending:
            waiter = asyncio.Future(loop=self)
            self._idle_waiter = waiter
            try:
                await waiter
            finally:
                self._idle_waiter = None

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _next_async_id(self) -> int:
        return next(self._async_ids)

    def _run_scheduled(
        self, async_id: int, callback: Callable[..., Any], args: tuple[Any, ...]
    ) -> None:
        self._timers.pop(async_id, None)
        hooks = self._async_hooks
        previous = self.current_async_id
        self.current_async_id = async_id
        try:
            hooks.on_before(async_id)
            try:
                result = callback(*args)
                if asyncio.iscoroutine(result):
                    self.create_task(result)
            finally:
                hooks.on_after(async_id)
        finally:
            self.current_async_id = previous
            self._settle(async_id)
            hooks.on_destroy(async_id)

    def _on_task_done(self, async_id: int, task: asyncio.Task[Any]) -> None:
        self._settle(async_id)
        self._async_hooks.on_destroy(async_id)

    def _on_future_done(self, async_id: int, future: asyncio.Future[Any]) -> None:
        self._async_hooks.on_destroy(async_id)

    def _settle(self, async_id: int) -> None:
        self._pending.discard(async_id)
        waiter = self._idle_waiter
        if not self._pending and waiter is not None and not waiter.done():
            waiter.set_result(None)
