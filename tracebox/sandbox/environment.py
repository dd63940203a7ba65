"""Compile and run a program against its capability set on the traced loop."""

from __future__ import annotations

import ast
import asyncio
import gc
import inspect
import logging
import types
from collections.abc import Callable
from typing import Any

from ..runtime.loop import TracedEventLoop
from .capabilities import CapabilitySet
from .limits import RunTerminated

__all__ = ["ExecutionEnvironment"]

logger = logging.getLogger(__name__)

FaultHandler = Callable[[BaseException | None], object]


class ExecutionEnvironment:
    """Run program text inside the sandbox namespace.

    The module body runs inside an untraced root task, so top-level ``await``
    works and scheduling primitives see a running loop. Once the body (and
    its coroutine, if it awaited) is done, the loop keeps running until every
    traced task, timer and microtask has settled.

    Exceptions that reach the loop's exception handler are faults: they are
    reported to ``on_fault`` and the loop is stopped.
    """

    def __init__(
        self,
        capabilities: CapabilitySet,
        loop: TracedEventLoop,
        on_fault: FaultHandler,
        *,
        filename: str = "<program>",
    ) -> None:
        self._capabilities = capabilities
        self._loop = loop
        self._on_fault = on_fault
        self.filename = filename
        self._faulted = False

    @property
    def faulted(self) -> bool:
        return self._faulted

    def compile(self, source: str) -> types.CodeType:
        return compile(
            source,
            self.filename,
            "exec",
            flags=ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
            dont_inherit=True,
        )

    def execute(self, source: str) -> None:
        """Run ``source`` to completion; errors in the module body propagate."""

        code = self.compile(source)
        loop = self._loop
        loop.set_exception_handler(self._handle_loop_exception)
        try:
            loop.run_untraced(self._main(types.FunctionType(code, self._capabilities.namespace())))
        except RuntimeError:
            # run_until_complete complains once a fault has stopped the loop
            if not self._faulted:
                raise
            return
        # The program namespace is unreachable now, so tasks it still held are
        # finalized here and report exceptions nobody retrieved.
        gc.collect()

    async def _main(self, body: Callable[[], Any]) -> None:
        result = body()
        if inspect.iscoroutine(result):
            await result
        await self._loop.until_idle()

    def _handle_loop_exception(
        self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        error = context.get("exception")
        if error is None:
            logger.debug("event loop: %s", context.get("message"))
            return
        if isinstance(error, RunTerminated):
            return
        logger.debug("fault reported by event loop: %s", context.get("message"), exc_info=error)
        self._faulted = True
        self._on_fault(error)
        loop.stop()
