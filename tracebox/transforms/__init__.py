"""Source instrumentation for traced programs."""

from __future__ import annotations

import ast
from collections.abc import Sequence

from .base import InstrumentationPass, SourcePositions
from .console import ConsoleTracer
from .functions import FunctionTracer
from .loops import LoopTracer

__all__ = [
    "ConsoleTracer",
    "DEFAULT_PASSES",
    "FunctionTracer",
    "InstrumentationPass",
    "LoopTracer",
    "SourcePositions",
    "instrument",
]

DEFAULT_PASSES: tuple[type[InstrumentationPass], ...] = (ConsoleTracer, FunctionTracer, LoopTracer)


def instrument(
    source: str, passes: Sequence[type[InstrumentationPass]] = DEFAULT_PASSES
) -> str:
    """Apply ``passes`` in order and return the rewritten program text.

    Raises :class:`SyntaxError` when ``source`` does not parse.
    """

    if not isinstance(source, str):
        raise TypeError("source must be a string")
    tree = compile(
        source, "<program>", "exec", flags=ast.PyCF_ONLY_AST | ast.PyCF_ALLOW_TOP_LEVEL_AWAIT,
        dont_inherit=True,
    )
    for pass_type in passes:
        tree = pass_type(source).apply(tree)
    return ast.unparse(tree)
