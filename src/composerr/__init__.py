"""composerr: generate a narrow error type for every function that declares one.

Usage:
    from composerr import compose_errors, errorset

    @compose_errors
    @errorset(IoFailure, FormatFailure)
    def do_task() -> Result[None, _]:
        ...

Running ``composerr expand tasks.py`` replaces the markers with a
``DoTaskError`` class whose variants wrap ``IoFailure`` and
``FormatFailure``, and rewrites the return type to ``Result[None, DoTaskError]``.
"""

from composerr.config import ComposerrConfig
from composerr.diagnostics import Diagnostic, DiagnosticSet, Severity
from composerr.errors import ComposerrError
from composerr.markers import compose_errors, errorset
from composerr.pipeline import ExpansionPipeline, ExpansionResult, expand_file, expand_source

__version__ = "0.1.0"

__all__ = [
    "ComposerrConfig",
    "ComposerrError",
    "Diagnostic",
    "DiagnosticSet",
    "ExpansionPipeline",
    "ExpansionResult",
    "Severity",
    "compose_errors",
    "errorset",
    "expand_file",
    "expand_source",
]
