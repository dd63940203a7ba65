"""Shared plumbing for the instrumentation passes."""

from __future__ import annotations

import ast
import io

__all__ = ["InstrumentationPass", "SourcePositions", "parse_statements"]


class SourcePositions:
    """Map AST ``(lineno, col_offset)`` pairs to character offsets.

    ``col_offset`` counts UTF-8 bytes, so each line is kept to decode the
    prefix before the column.
    """

    def __init__(self, source: str) -> None:
        self._lines = io.StringIO(source, newline="").readlines()
        self._starts: list[int] = []
        offset = 0
        for line in self._lines:
            self._starts.append(offset)
            offset += len(line)
        self._length = offset

    def offset(self, lineno: int, col_offset: int) -> int:
        index = lineno - 1
        if index >= len(self._lines):
            return self._length
        prefix = self._lines[index].encode("utf-8")[:col_offset]
        return self._starts[index] + len(prefix.decode("utf-8", errors="ignore"))

    def span(self, node: ast.AST) -> tuple[int, int]:
        start = self.offset(node.lineno, node.col_offset)
        end_lineno = node.end_lineno if node.end_lineno is not None else node.lineno
        end_col = node.end_col_offset if node.end_col_offset is not None else node.col_offset
        end = self.offset(end_lineno, end_col)
        return start, end


def parse_statements(text: str) -> list[ast.stmt]:
    return ast.parse(text).body


class InstrumentationPass(ast.NodeTransformer):
    """A source rewrite that inserts calls to the ``Tracer`` hooks."""

    def __init__(self, source: str) -> None:
        self.source = source
        self.positions = SourcePositions(source)

    def apply(self, tree: ast.Module) -> ast.Module:
        return ast.fix_missing_locations(self.visit(tree))
