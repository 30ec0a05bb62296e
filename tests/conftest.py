"""Shared fixtures for composerr tests."""

import textwrap
from typing import Any

import pytest

from composerr.pipeline import ExpansionResult, expand_source

PRELUDE = """\
from __future__ import annotations

from composerr import compose_errors, errorset


class IoFailure(Exception):
    pass


class FormatFailure(Exception):
    pass


class ParseFailure(Exception):
    pass
"""


def expand(source: str, **kwargs: Any) -> ExpansionResult:
    """Expand a dedented snippet appended to PRELUDE."""
    return expand_source(PRELUDE + "\n\n" + textwrap.dedent(source), **kwargs)


def run(result: ExpansionResult) -> dict[str, Any]:
    """Execute expanded output and return its namespace."""
    assert result.ok, result.diagnostics.to_compact()
    namespace: dict[str, Any] = {"__name__": "expanded"}
    exec(compile(result.output, "<expanded>", "exec"), namespace)
    return namespace


@pytest.fixture
def do_task_module() -> dict[str, Any]:
    result = expand(
        """
        @compose_errors
        @errorset(IoFailure, FormatFailure)
        def do_task() -> Result[None, _]:
            return None
        """
    )
    return run(result)
