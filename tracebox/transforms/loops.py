"""Give every loop iteration a chance to end a runaway program."""

from __future__ import annotations

import ast

from .base import InstrumentationPass, parse_statements

__all__ = ["LoopTracer"]


class LoopTracer(InstrumentationPass):
    """Insert ``Tracer.iterate_loop()`` as the first statement of each loop body."""

    def visit_For(self, node: ast.For) -> ast.AST:
        return self._guard(node)

    def visit_AsyncFor(self, node: ast.AsyncFor) -> ast.AST:
        return self._guard(node)

    def visit_While(self, node: ast.While) -> ast.AST:
        return self._guard(node)

    def _guard(self, node: ast.For | ast.AsyncFor | ast.While) -> ast.AST:
        self.generic_visit(node)
        node.body = parse_statements("Tracer.iterate_loop()") + list(node.body)
        return node
