"""Build diagnostics reported while expanding a module.

Every failure is attached to the declaration or marker that caused it and
collected into a DiagnosticSet, which the CLI renders and uses for its exit
status.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any

from composerr.errors import ComposerrError


class Severity(Enum):
    """Severity level of a diagnostic."""

    ERROR = auto()
    WARNING = auto()
    INFO = auto()


@dataclass
class Location:
    """Source code location."""

    file: Path
    line: int
    column: int = 0
    end_line: int | None = None
    end_column: int | None = None

    @classmethod
    def of(cls, node: ast.AST, file: Path) -> Location:
        """Location of an AST node; columns are reported 1-based."""
        return cls(
            file=file,
            line=getattr(node, "lineno", 0),
            column=getattr(node, "col_offset", -1) + 1,
            end_line=getattr(node, "end_lineno", None),
            end_column=getattr(node, "end_col_offset", None),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": str(self.file),
            "line": self.line,
            "column": self.column,
            "end_line": self.end_line,
            "end_column": self.end_column,
        }

    def __str__(self) -> str:
        if self.column:
            return f"{self.file}:{self.line}:{self.column}"
        return f"{self.file}:{self.line}"


@dataclass
class Diagnostic:
    """A single diagnostic (error or warning)."""

    severity: Severity
    message: str
    location: Location | None = None
    code: str | None = None  # e.g. "shape-error"
    declaration: str | None = None
    suggestion: str | None = None

    @classmethod
    def from_error(
        cls,
        error: ComposerrError,
        file: Path,
        declaration: str | None = None,
    ) -> Diagnostic:
        """Turn an error raised by a pipeline stage into a diagnostic."""
        return cls(
            severity=Severity.ERROR,
            message=str(error),
            location=Location.of(error.node, file) if error.node is not None else None,
            code=error.code,
            declaration=declaration,
            suggestion=error.suggestion,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "severity": self.severity.name.lower(),
            "message": self.message,
            "location": self.location.to_dict() if self.location else None,
            "code": self.code,
            "declaration": self.declaration,
            "suggestion": self.suggestion,
        }

    def to_compact(self) -> str:
        """Format as compact single-line summary."""
        parts = []
        if self.location:
            parts.append(str(self.location))
        parts.append(f"[{self.severity.name}]")
        if self.code:
            parts.append(f"({self.code})")
        parts.append(self.message)
        return " ".join(parts)


@dataclass
class DiagnosticSet:
    """Collection of diagnostics from one expansion run."""

    diagnostics: list[Diagnostic] = field(default_factory=list)

    def add(self, diagnostic: Diagnostic) -> None:
        self.diagnostics.append(diagnostic)

    def extend(self, other: DiagnosticSet) -> None:
        self.diagnostics.extend(other.diagnostics)

    def __iter__(self):
        return iter(self.diagnostics)

    def __len__(self) -> int:
        return len(self.diagnostics)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    def sorted(self) -> list[Diagnostic]:
        """Diagnostics ordered by position."""

        def key(d: Diagnostic) -> tuple[str, int, int]:
            if d.location is None:
                return ("", 0, 0)
            return (str(d.location.file), d.location.line, d.location.column)

        return sorted(self.diagnostics, key=key)

    def to_compact(self) -> str:
        """Format as compact summary."""
        if not self.diagnostics:
            return "No diagnostics"

        lines = [f"{self.error_count} errors, {self.warning_count} warnings"]
        for d in self.sorted():
            lines.append(f"  {d.to_compact()}")
        return "\n".join(lines)

    def to_dict(self) -> dict[str, Any]:
        return {
            "error_count": self.error_count,
            "warning_count": self.warning_count,
            "diagnostics": [d.to_dict() for d in self.sorted()],
        }
