"""Route console and print output through the tracer."""

from __future__ import annotations

import ast

from .base import InstrumentationPass

__all__ = ["ConsoleTracer"]

CONSOLE_METHODS = frozenset({"log", "warn", "error"})


class ConsoleTracer(InstrumentationPass):
    """``console.log/warn/error(...)`` and plain ``print(...)`` become Tracer calls.

    ``print`` calls with keyword arguments (``sep``, ``file``...) are left alone.
    """

    def visit_Call(self, node: ast.Call) -> ast.AST:
        self.generic_visit(node)
        func = node.func
        if (
            isinstance(func, ast.Attribute)
            and isinstance(func.value, ast.Name)
            and func.value.id == "console"
            and func.attr in CONSOLE_METHODS
        ):
            node.func = ast.copy_location(_tracer_attribute(func.attr), func)
        elif isinstance(func, ast.Name) and func.id == "print" and not node.keywords:
            node.func = ast.copy_location(_tracer_attribute("log"), func)
        return node


def _tracer_attribute(attr: str) -> ast.Attribute:
    return ast.Attribute(value=ast.Name(id="Tracer", ctx=ast.Load()), attr=attr, ctx=ast.Load())
