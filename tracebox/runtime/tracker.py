"""Translate async resource notifications into trace events."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..trace import events
from ..trace.events import Event
from .loop import AsyncKind

__all__ = ["AsyncHandle", "AsyncLifecycleTracker"]

logger = logging.getLogger(__name__)

ANONYMOUS = "anonymous"


@dataclass(frozen=True, slots=True)
class AsyncHandle:
    """The tracker's record of one scheduler-tracked unit."""

    id: int
    trigger_id: int | None
    kind: AsyncKind
    label: str | None = None

    @classmethod
    def unknown(cls, async_id: int) -> "AsyncHandle":
        return cls(id=async_id, trigger_id=None, kind=AsyncKind.UNKNOWN)

    @property
    def is_known(self) -> bool:
        return self.kind is not AsyncKind.UNKNOWN


def callback_label(callback: object) -> str:
    """Declared name of a scheduled callback, ``"anonymous"`` if it has none."""

    name = getattr(callback, "__name__", None)
    if not isinstance(name, str) or not name or name == "<lambda>":
        return ANONYMOUS
    return name


class AsyncLifecycleTracker:
    """Hook set for :class:`~tracebox.runtime.loop.TracedEventLoop`.

    Keeps a map from async id to :class:`AsyncHandle` and posts lifecycle
    events for promises, timers and microtasks. Ids the tracker never saw
    are answered with an inert handle and produce no events.
    """

    def __init__(self, post: Callable[[Event], object]) -> None:
        self._post = post
        self._handles: dict[int, AsyncHandle] = {}

    def lookup(self, async_id: int) -> AsyncHandle:
        handle = self._handles.get(async_id)
        if handle is None:
            return AsyncHandle.unknown(async_id)
        return handle

    # ------------------------------------------------------------------
    # Hook points
    # ------------------------------------------------------------------
    def on_init(
        self, async_id: int, kind: AsyncKind, trigger_id: int | None, resource: object
    ) -> None:
        label = callback_label(resource) if kind is AsyncKind.TIMER else None
        self._handles[async_id] = AsyncHandle(
            id=async_id, trigger_id=trigger_id, kind=kind, label=label
        )
        match kind:
            case AsyncKind.PROMISE:
                self._post(events.init_promise(async_id, trigger_id))
            case AsyncKind.TIMER:
                self._post(events.init_timeout(async_id, label or ANONYMOUS))
            case AsyncKind.MICROTASK:
                self._post(events.init_microtask(async_id, trigger_id))
            case _:
                pass

    def on_before(self, async_id: int) -> None:
        handle = self.lookup(async_id)
        match handle.kind:
            case AsyncKind.PROMISE:
                self._post(events.before_promise(async_id))
            case AsyncKind.TIMER:
                self._post(events.before_timeout(async_id))
            case AsyncKind.MICROTASK:
                self._post(events.before_microtask(async_id))
            case _:
                pass

    def on_after(self, async_id: int) -> None:
        handle = self.lookup(async_id)
        match handle.kind:
            case AsyncKind.PROMISE:
                self._post(events.after_promise(async_id))
            case AsyncKind.MICROTASK:
                self._post(events.after_microtask(async_id))
            case _:
                # timers are one-shot and report no "after"
                pass

    def on_promise_resolve(self, async_id: int) -> None:
        if self.lookup(async_id).kind is AsyncKind.PROMISE:
            self._post(events.resolve_promise(async_id))

    def on_destroy(self, async_id: int) -> None:
        if self._handles.pop(async_id, None) is None:
            logger.debug("destroy for unknown async id %s", async_id)
