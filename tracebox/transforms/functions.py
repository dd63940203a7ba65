"""Bracket every function body with enter/error/exit tracer calls."""

from __future__ import annotations

import ast

from .base import InstrumentationPass, parse_statements

__all__ = ["CALL_ID_NAME", "FunctionTracer"]

CALL_ID_NAME = "_trace_call_id"
ERROR_NAME = "_trace_error"

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef


class FunctionTracer(InstrumentationPass):
    """Rewrite ``def``/``async def`` bodies to report entry, errors and exit.

    The rewritten body draws a call id from ``next_id()``, calls
    ``Tracer.enter_func``, and runs the original statements inside
    ``try``/``except Exception``/``finally``. The handler reports the error
    and re-raises; ``finally`` reports the exit. ``start`` and ``end`` are
    character offsets of the definition in the source text. A docstring stays
    the first statement.
    """

    def visit_FunctionDef(self, node: ast.FunctionDef) -> ast.AST:
        return self._trace(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> ast.AST:
        return self._trace(node)

    def _trace(self, node: FunctionNode) -> ast.AST:
        self.generic_visit(node)
        start, end = self.positions.span(node)
        location = f"{CALL_ID_NAME}, {node.name!r}, {start}, {end}"

        body = list(node.body)
        docstring: list[ast.stmt] = []
        if body and _is_docstring(body[0]):
            docstring = [body.pop(0)]
        if not body:
            body = [ast.Pass()]

        prologue = parse_statements(
            f"{CALL_ID_NAME} = next_id()\n"
            f"Tracer.enter_func({location})\n"
        )
        guard = parse_statements(
            "try:\n"
            "    pass\n"
            f"except Exception as {ERROR_NAME}:\n"
            f"    Tracer.error_func(str({ERROR_NAME}), {location})\n"
            "    raise\n"
            "finally:\n"
            f"    Tracer.exit_func({location})\n"
        )[0]
        guard.body = body
        node.body = docstring + prologue + [guard]
        return node


def _is_docstring(statement: ast.stmt) -> bool:
    return (
        isinstance(statement, ast.Expr)
        and isinstance(statement.value, ast.Constant)
        and isinstance(statement.value.value, str)
    )
