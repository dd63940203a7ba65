"""The explicit set of names a sandboxed program can reach."""

from __future__ import annotations

import asyncio
import builtins
import collections
import functools
import itertools
import json
import math
import operator
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType, ModuleType
from typing import Any

import httpx

from ..runtime.loop import TracedEventLoop
from .hooks import TracerHooks

__all__ = [
    "ALLOWED_BUILTINS",
    "CapabilitySet",
    "SandboxConsole",
    "make_fetch",
    "safe_builtins",
]

ALLOWED_BUILTINS = (
    "abs", "aiter", "all", "anext", "any", "ascii", "bin", "bool", "bytearray", "bytes",
    "callable", "chr", "classmethod", "complex", "delattr", "dict", "divmod", "enumerate",
    "filter", "float", "format", "frozenset", "getattr", "hasattr", "hash", "hex", "id",
    "int", "isinstance", "issubclass", "iter", "len", "list", "map", "max", "min", "next",
    "object", "oct", "ord", "pow", "property", "range", "repr", "reversed", "round", "set",
    "setattr", "slice", "sorted", "staticmethod", "str", "sum", "super", "tuple", "type",
    "zip", "__build_class__", "NotImplemented", "Ellipsis",
)

COLLECTION_UTILITIES: tuple[ModuleType, ...] = (
    itertools,
    functools,
    collections,
    operator,
    math,
    json,
)


def safe_builtins(print_fn: Callable[..., None]) -> dict[str, Any]:
    """Builtins allowlist plus every exception class; ``print`` is replaced.

    ``open``, ``__import__``, ``eval``, ``exec``, ``compile``, ``input`` and
    friends are simply absent, so ``import`` statements fail with ImportError.
    """

    allowed = {name: getattr(builtins, name) for name in ALLOWED_BUILTINS if hasattr(builtins, name)}
    for name, value in vars(builtins).items():
        if isinstance(value, type) and issubclass(value, BaseException):
            allowed[name] = value
    allowed["print"] = print_fn
    return allowed


def make_fetch(
    timeout_s: float, transport: httpx.AsyncBaseTransport | None = None
) -> Callable[..., Any]:
    """Build the sandbox's network fetch coroutine function."""

    async def fetch(url: str, *, method: str = "GET", **kwargs: Any) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=timeout_s, follow_redirects=True, transport=transport
        ) as client:
            return await client.request(method, url, **kwargs)

    return fetch


@dataclass(frozen=True, slots=True)
class SandboxConsole:
    """Console whose methods forward to the tracer hooks."""

    log: Callable[..., None]
    warn: Callable[..., None]
    error: Callable[..., None]


@dataclass(frozen=True, slots=True)
class CapabilitySet:
    """Every name injected into a sandboxed program's globals."""

    tracer: TracerHooks
    next_id: Callable[[], int]
    console: SandboxConsole
    print: Callable[..., None]
    fetch: Callable[..., Any]
    set_timeout: Callable[..., int]
    clear_timeout: Callable[[int], bool]
    queue_microtask: Callable[..., None]
    create_task: Callable[..., Any]
    sleep: Callable[..., Any] = asyncio.sleep
    gather: Callable[..., Any] = asyncio.gather
    utilities: tuple[ModuleType, ...] = COLLECTION_UTILITIES
    extras: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))

    @classmethod
    def create(
        cls,
        *,
        tracer: TracerHooks,
        next_id: Callable[[], int],
        loop: TracedEventLoop,
        fetch_timeout_s: float = 10.0,
        fetch_transport: httpx.AsyncBaseTransport | None = None,
        extras: Mapping[str, Any] | None = None,
    ) -> "CapabilitySet":
        def print_(*values: object, **_options: object) -> None:
            tracer.log(*values)

        return cls(
            tracer=tracer,
            next_id=next_id,
            console=SandboxConsole(log=tracer.log, warn=tracer.warn, error=tracer.error),
            print=print_,
            fetch=make_fetch(fetch_timeout_s, fetch_transport),
            set_timeout=loop.set_timeout,
            clear_timeout=loop.clear_timeout,
            queue_microtask=loop.queue_microtask,
            create_task=loop.create_task,
            extras=MappingProxyType(dict(extras or {})),
        )

    def namespace(self) -> dict[str, Any]:
        """Fresh globals dict for one execution of a program."""

        namespace: dict[str, Any] = {
            "__name__": "__sandbox__",
            "__builtins__": safe_builtins(self.print),
            "Tracer": self.tracer,
            "next_id": self.next_id,
            "console": self.console,
            "fetch": self.fetch,
            "set_timeout": self.set_timeout,
            "clear_timeout": self.clear_timeout,
            "queue_microtask": self.queue_microtask,
            "create_task": self.create_task,
            "sleep": self.sleep,
            "gather": self.gather,
        }
        for module in self.utilities:
            namespace[module.__name__] = module
        namespace.update(self.extras)
        return namespace
