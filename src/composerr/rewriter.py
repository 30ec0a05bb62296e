"""Signature rewriter: point the placeholder at the generated type.

Rewrites are expressed as text edits against the original source so that
everything outside the edited spans (parameters, other decorators, the
function body, comments) is reproduced byte for byte.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass

from composerr.model import AnnotatedDeclaration, SynthesizedSumType


@dataclass(frozen=True, order=True)
class Edit:
    """Replace ``[start, end)`` (UTF-8 byte offsets) with ``text``.

    ``start == end`` is an insertion.
    """

    start: int
    end: int
    text: str = ""
    label: str = ""


class SourceText:
    """Maps AST positions (line, UTF-8 column) to byte offsets."""

    def __init__(self, source: str):
        self.source = source
        self.data = source.encode("utf-8")
        self.lines = self.data.splitlines(keepends=True)
        self.line_starts = [0]
        for line in self.lines:
            self.line_starts.append(self.line_starts[-1] + len(line))

    @property
    def newline(self) -> str:
        """Line ending used by the source; ``\\n`` if it has none."""
        for line in self.lines:
            if line.endswith(b"\r\n"):
                return "\r\n"
            if line.endswith(b"\r"):
                return "\r"
            if line.endswith(b"\n"):
                return "\n"
        return "\n"

    def offset(self, lineno: int, col: int) -> int:
        return self.line_starts[lineno - 1] + col

    def span(self, node: ast.AST) -> tuple[int, int]:
        return (
            self.offset(node.lineno, node.col_offset),
            self.offset(node.end_lineno, node.end_col_offset),
        )

    def line_start(self, lineno: int) -> int:
        return self.line_starts[lineno - 1]

    def lines_span(self, first: int, last: int) -> tuple[int, int]:
        """Byte span of whole lines ``first..last`` including the final newline."""
        return self.line_starts[first - 1], self.line_starts[min(last, len(self.lines))]

    def indent_of(self, lineno: int) -> str:
        line = self.lines[lineno - 1].decode("utf-8")
        return line[: len(line) - len(line.lstrip(" \t"))]


def remove_decorator(text: SourceText, decorator: ast.expr, label: str = "") -> Edit:
    """Delete the lines holding a decorator, ``@`` and trailing comment included."""
    start, end = text.lines_span(decorator.lineno, decorator.end_lineno)
    return Edit(start, end, "", label or f"remove @{ast.unparse(decorator)}")


class SignatureRewriter:
    """Produces the edits that turn one annotated declaration into plain code."""

    def __init__(self, text: SourceText):
        self.text = text

    def rewrite(
        self,
        declaration: AnnotatedDeclaration,
        placeholder: ast.Name,
        sum_type: SynthesizedSumType,
    ) -> list[Edit]:
        start, end = self.text.span(placeholder)
        return [
            remove_decorator(self.text, declaration.marker),
            Edit(start, end, sum_type.name, f"{declaration.qualified_name} -> {sum_type.name}"),
        ]
