"""Item reassembler: splice generated types and rewrites into the source."""

from __future__ import annotations

import re

from composerr.errors import ComposerrError, ErrorCategory
from composerr.model import ContainerContext, SynthesizedSumType
from composerr.rewriter import Edit, SourceText, remove_decorator

_CODING = re.compile(r"^[ \t\f]*#.*?coding[:=]")


class OverlappingEditsError(ComposerrError):
    """Two edits touch the same span of source."""

    category = ErrorCategory.INTERNAL


class ItemReassembler:
    """Builds the expanded module text.

    Generated types for a container are inserted right before its first
    decorator and any comment block directly above it, at the container's
    indentation, in declaration order.
    """

    def __init__(self, text: SourceText):
        self.text = text

    def container_edits(
        self,
        container: ContainerContext,
        sum_types: list[SynthesizedSumType],
        strip_marker: bool = True,
    ) -> list[Edit]:
        edits = []
        if strip_marker:
            edits.append(remove_decorator(self.text, container.marker))
        if sum_types:
            edits.append(self._insertion(container, sum_types))
        return edits

    def _insertion(self, container: ContainerContext, sum_types: list[SynthesizedSumType]) -> Edit:
        indent = self.text.indent_of(container.first_line)
        blank = "\n\n" if not indent else "\n"
        blocks = []
        for sum_type in sum_types:
            if sum_type.source is None:
                raise ComposerrError(f"{sum_type.name} has no generated source")
            blocks.append(_indent(sum_type.source, indent))
        block = blank.join(blocks) + blank

        offset = self.text.line_start(self._anchor_line(container.first_line, indent))
        return Edit(
            offset,
            offset,
            block.replace("\n", self.text.newline),
            f"insert {', '.join(t.name for t in sum_types)}",
        )

    def _anchor_line(self, first_line: int, indent: str) -> int:
        """First line of the comment block sitting directly above ``first_line``."""
        line = first_line
        while line > 1 and self._is_leading_comment(line - 1, indent):
            line -= 1
        return line

    def _is_leading_comment(self, lineno: int, indent: str) -> bool:
        line = self.text.lines[lineno - 1].decode("utf-8")
        if not line.startswith(indent + "#"):
            return False
        # A shebang or encoding cookie must stay on the first lines of the file
        return not (lineno <= 2 and (line.startswith("#!") or _CODING.match(line)))

    def apply(self, edits: list[Edit]) -> str:
        """Apply non-overlapping edits and return the new source."""
        ordered = sorted(edits)
        for before, after in zip(ordered, ordered[1:]):
            if before.end > after.start:
                raise OverlappingEditsError(
                    f"edits overlap: {before.label!r} and {after.label!r}"
                )

        data = bytearray(self.text.data)
        # Back to front, so earlier offsets stay valid; at equal starts the
        # deletion runs before the insertion that precedes it.
        for edit in reversed(ordered):
            data[edit.start : edit.end] = edit.text.encode("utf-8")
        return data.decode("utf-8")


def _indent(source: str, indent: str) -> str:
    if not indent:
        return source
    return "".join(
        indent + line if line.strip() else line for line in source.splitlines(keepends=True)
    )
