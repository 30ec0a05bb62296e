"""Structured errors raised while expanding error sets.

Pipeline stages raise these for a single declaration; the pipeline catches
them and turns them into diagnostics so sibling declarations keep going.
Tool-level failures (bad config, unreadable files) use the same hierarchy.

Usage:
    from composerr.errors import ComposerrError, handle_error

    try:
        expand_paths(paths, write=True)
    except ComposerrError as e:
        result = handle_error(e, {"command": "expand"})
        print(result.to_compact())
"""

from __future__ import annotations

import ast
from dataclasses import dataclass
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for appropriate handling."""

    USAGE = auto()  # Marker misuse or malformed marker
    SHAPE = auto()  # Return annotation not in Result[T, _] form
    COLLISION = auto()  # Two variants or two types would share a name
    PARSE_ERROR = auto()  # Module does not parse
    FILE_NOT_FOUND = auto()
    CONFIG = auto()
    INTERNAL = auto()  # Invariant broken inside composerr itself


# Diagnostic codes reported for each category
CATEGORY_CODES: dict[ErrorCategory, str] = {
    ErrorCategory.USAGE: "usage-error",
    ErrorCategory.SHAPE: "shape-error",
    ErrorCategory.COLLISION: "synthesis-collision",
    ErrorCategory.PARSE_ERROR: "parse-error",
    ErrorCategory.FILE_NOT_FOUND: "file-not-found",
    ErrorCategory.CONFIG: "config-error",
    ErrorCategory.INTERNAL: "internal-error",
}


@dataclass
class ErrorResult:
    """Structured error result with context and suggestions."""

    category: ErrorCategory
    message: str
    original: Exception | None = None
    suggestion: str | None = None
    context: dict[str, Any] | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "category": self.category.name,
            "message": self.message,
            "suggestion": self.suggestion,
            "context": self.context,
        }

    def to_compact(self) -> str:
        """Format as compact string."""
        parts = [f"[{self.category.name}] {self.message}"]
        if self.suggestion:
            parts.append(f"  Try: {self.suggestion}")
        return "\n".join(parts)


class ComposerrError(Exception):
    """Base exception for composerr with structured error handling.

    ``node`` points at the syntax the error is about; the pipeline uses its
    position when reporting the error as a diagnostic.
    """

    category: ErrorCategory = ErrorCategory.INTERNAL

    def __init__(
        self,
        message: str,
        node: ast.AST | None = None,
        suggestion: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.node = node
        self.suggestion = suggestion
        self.context = context or {}

    @property
    def code(self) -> str:
        return CATEGORY_CODES[self.category]

    def to_result(self) -> ErrorResult:
        """Convert to ErrorResult."""
        return ErrorResult(
            category=self.category,
            message=str(self),
            original=self,
            suggestion=self.suggestion,
            context=self.context,
        )


class UsageError(ComposerrError):
    """A marker is misplaced or its arguments cannot be read."""

    category = ErrorCategory.USAGE


class ShapeError(ComposerrError):
    """An annotated declaration does not return ``Result[T, _]``."""

    category = ErrorCategory.SHAPE

    def __init__(self, declaration: str, detail: str, node: ast.AST | None = None):
        super().__init__(
            f"`{declaration}` {detail}",
            node=node,
            suggestion="Declare the return type as Result[<success>, _]",
            context={"declaration": declaration},
        )


class SynthesisCollision(ComposerrError):
    """Two generated names would clash."""

    category = ErrorCategory.COLLISION


class ParseError(ComposerrError):
    """Failed to parse module source."""

    category = ErrorCategory.PARSE_ERROR

    def __init__(self, path: str | Path, line: int | None = None, detail: str = ""):
        loc = f" at line {line}" if line else ""
        msg = f"Parse error in {path}{loc}"
        if detail:
            msg += f": {detail}"
        super().__init__(
            msg,
            suggestion="Check file syntax",
            context={"path": str(path), "line": line},
        )
        self.line = line


class FileNotFoundComposerrError(ComposerrError):
    """File or path not found."""

    category = ErrorCategory.FILE_NOT_FOUND

    def __init__(self, path: str | Path):
        super().__init__(
            f"File not found: {path}",
            suggestion="Check the path exists and spelling is correct",
            context={"path": str(path)},
        )


class ConfigError(ComposerrError):
    """Configuration file or setting issue."""

    category = ErrorCategory.CONFIG

    def __init__(self, message: str, file: str | Path | None = None):
        super().__init__(
            message,
            suggestion="Check composerr.toml or pyproject.toml [tool.composerr]",
            context={"file": str(file) if file else None},
        )


def handle_error(error: ComposerrError, context: dict[str, Any] | None = None) -> ErrorResult:
    """Turn a tool-level failure into the result reported by the CLI."""
    result = error.to_result()
    if context:
        result.context = {**(result.context or {}), **context}
    return result
