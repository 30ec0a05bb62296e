"""Expansion pipeline: scan, validate, synthesize, generate, rewrite, reassemble.

Usage:
    from composerr.pipeline import expand_source

    result = expand_source(source, path=Path("tasks.py"))
    if result.ok:
        Path("tasks.py").write_text(result.output)
    else:
        print(result.diagnostics.to_compact())

Each annotated declaration is processed on its own. A declaration that
fails is left exactly as written and reported; its siblings are still
expanded.
"""

from __future__ import annotations

import ast
import difflib
import fnmatch
from dataclasses import dataclass, field
from pathlib import Path

from composerr.capabilities import CapabilityGenerator
from composerr.config import ComposerrConfig
from composerr.diagnostics import Diagnostic, DiagnosticSet, Location, Severity
from composerr.errors import (
    ComposerrError,
    FileNotFoundComposerrError,
    ParseError,
    SynthesisCollision,
)
from composerr.logging import ComposerrLogger, get_logger
from composerr.model import AnnotatedDeclaration, ContainerContext, SynthesizedSumType
from composerr.reassembler import ItemReassembler
from composerr.rewriter import Edit, SignatureRewriter, SourceText
from composerr.scanner import AnnotationScanner
from composerr.synthesizer import (
    EnumSynthesizer,
    find_name_collisions,
    find_nested_compositions,
    find_shadowed_names,
)
from composerr.validator import PlaceholderValidator

logger = get_logger("pipeline")

DEFAULT_PATH = Path("<string>")


@dataclass
class ExpansionResult:
    """Outcome of expanding one module."""

    path: Path
    source: str
    output: str
    diagnostics: DiagnosticSet = field(default_factory=DiagnosticSet)
    declarations: list[AnnotatedDeclaration] = field(default_factory=list)
    sum_types: list[SynthesizedSumType] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        """True when no error diagnostics were reported."""
        return self.diagnostics.error_count == 0

    @property
    def changed(self) -> bool:
        return self.output != self.source

    def sum_type(self, name: str) -> SynthesizedSumType | None:
        for sum_type in self.sum_types:
            if sum_type.name == name:
                return sum_type
        return None


class ExpansionPipeline:
    """Runs every stage over one module."""

    def __init__(self, config: ComposerrConfig | None = None):
        self.config = config or ComposerrConfig()
        self.scanner = AnnotationScanner(self.config)
        self.validator = PlaceholderValidator(self.config)
        self.synthesizer = EnumSynthesizer(self.config)
        self.generator = CapabilityGenerator(self.config)

    def expand(self, source: str, path: Path = DEFAULT_PATH) -> ExpansionResult:
        log = logger.with_path(str(path))
        result = ExpansionResult(path=path, source=source, output=source)

        with log.timed("expand"):
            try:
                tree = ast.parse(source, filename=str(path))
            except SyntaxError as e:
                error = ParseError(path, e.lineno, e.msg)
                result.diagnostics.add(
                    Diagnostic(
                        severity=Severity.ERROR,
                        message=str(error),
                        location=Location(path, e.lineno or 0, e.offset or 0),
                        code=error.code,
                        suggestion=error.suggestion,
                    )
                )
                return result

            self._expand_tree(tree, result, log)

        return result

    def _expand_tree(
        self, tree: ast.Module, result: ExpansionResult, log: ComposerrLogger
    ) -> None:
        path = result.path
        scan = self.scanner.scan(tree)
        failed_containers: set[int] = set()

        for failure in scan.failures:
            result.diagnostics.add(Diagnostic.from_error(failure.error, path, failure.declaration))
            if failure.container is not None:
                failed_containers.add(id(failure.container.node))

        # Validate and synthesize each declaration on its own
        placeholders: dict[int, ast.Name] = {}
        skeletons: list[SynthesizedSumType] = []
        for declaration in scan.declarations:
            try:
                placeholders[id(declaration.node)] = self.validator.validate(declaration)
                skeletons.append(self.synthesizer.synthesize(declaration))
            except ComposerrError as e:
                self._fail(result, e, declaration, failed_containers, log)

        # Checks spanning declarations of the same module
        shadowed = find_shadowed_names(skeletons, scan.bound_names)
        skeletons = self._drop(skeletons, shadowed, result, failed_containers, log)
        collisions = find_name_collisions(skeletons)
        skeletons = self._drop(skeletons, collisions, result, failed_containers, log)

        for nested in find_nested_compositions(skeletons):
            result.diagnostics.add(
                Diagnostic(
                    severity=Severity.WARNING,
                    message=nested.message,
                    location=Location.of(nested.source.node, path),
                    code="nested-composition",
                    declaration=nested.sum_type.declaration.qualified_name,
                )
            )

        text = SourceText(result.source)
        rewriter = SignatureRewriter(text)
        reassembler = ItemReassembler(text)
        edits: list[Edit] = []

        by_container: dict[int, list[SynthesizedSumType]] = {}
        for skeleton in skeletons:
            sum_type = self.generator.generate(skeleton)
            declaration = sum_type.declaration
            placeholder = placeholders[id(declaration.node)]
            edits.extend(rewriter.rewrite(declaration, placeholder, sum_type))
            by_container.setdefault(id(sum_type.container.node), []).append(sum_type)
            result.sum_types.append(sum_type)
            result.declarations.append(declaration)
            log.debug(
                f"expanded {declaration.qualified_name}",
                sum_type=sum_type.name,
                variants=",".join(sum_type.variant_names),
            )

        for container in scan.containers:
            edits.extend(
                self._container_edits(reassembler, container, by_container, failed_containers)
            )

        if edits:
            result.output = reassembler.apply(edits)

    def _container_edits(
        self,
        reassembler: ItemReassembler,
        container: ContainerContext,
        by_container: dict[int, list[SynthesizedSumType]],
        failed_containers: set[int],
    ) -> list[Edit]:
        # A container with a failed member keeps its marker so the failure
        # is reported again on the next run.
        return reassembler.container_edits(
            container,
            by_container.get(id(container.node), []),
            strip_marker=id(container.node) not in failed_containers,
        )

    def _drop(
        self,
        skeletons: list[SynthesizedSumType],
        collisions: list[tuple[SynthesizedSumType, SynthesisCollision]],
        result: ExpansionResult,
        failed_containers: set[int],
        log: ComposerrLogger,
    ) -> list[SynthesizedSumType]:
        failed: set[int] = set()
        for skeleton, error in collisions:
            failed.add(id(skeleton.declaration.node))
            self._fail(result, error, skeleton.declaration, failed_containers, log)
        return [t for t in skeletons if id(t.declaration.node) not in failed]

    def _fail(
        self,
        result: ExpansionResult,
        error: ComposerrError,
        declaration: AnnotatedDeclaration,
        failed_containers: set[int],
        log: ComposerrLogger,
    ) -> None:
        failed_containers.add(id(declaration.container.node))
        diagnostic = Diagnostic.from_error(error, result.path, declaration.qualified_name)
        result.diagnostics.add(diagnostic)
        log.debug(f"skipped {declaration.qualified_name}", code=error.code)


def expand_source(
    source: str,
    path: Path | str | None = None,
    config: ComposerrConfig | None = None,
) -> ExpansionResult:
    """Expand the error sets declared in a module's source text."""
    return ExpansionPipeline(config).expand(source, Path(path) if path else DEFAULT_PATH)


def expand_file(path: Path | str, config: ComposerrConfig | None = None) -> ExpansionResult:
    """Expand one file; the file itself is not modified."""
    path = Path(path)
    if not path.is_file():
        raise FileNotFoundComposerrError(path)
    return expand_source(read_source(path), path, config)


def read_source(path: Path) -> str:
    # newline="" keeps \r\n line endings intact
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def write_source(path: Path, source: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(source)


# =============================================================================
# Workspace
# =============================================================================

DEFAULT_EXCLUDE_PATTERNS = [
    "*/.git/*",
    "*/__pycache__/*",
    "*/venv/*",
    "*/.venv/*",
    "*/node_modules/*",
]


@dataclass
class FileChange:
    """Expansion result for a file, with its diff."""

    result: ExpansionResult

    @property
    def path(self) -> Path:
        return self.result.path

    @property
    def has_changes(self) -> bool:
        return self.result.changed

    def to_diff(self) -> str:
        """Generate unified diff of changes."""
        diff = difflib.unified_diff(
            self.result.source.splitlines(keepends=True),
            self.result.output.splitlines(keepends=True),
            fromfile=f"a/{self.path}",
            tofile=f"b/{self.path}",
        )
        return "".join(diff)


def collect_files(paths: list[Path], exclude_patterns: list[str] | None = None) -> list[Path]:
    """Python files named directly or found under the given directories."""
    exclude_patterns = exclude_patterns or DEFAULT_EXCLUDE_PATTERNS
    files: list[Path] = []
    for path in paths:
        if path.is_dir():
            for candidate in sorted(path.rglob("*.py")):
                if not any(fnmatch.fnmatch(str(candidate), p) for p in exclude_patterns):
                    files.append(candidate)
        elif path.is_file():
            files.append(path)
        else:
            raise FileNotFoundComposerrError(path)
    return files


def expand_paths(
    paths: list[Path],
    config: ComposerrConfig | None = None,
    write: bool = False,
) -> list[FileChange]:
    """Expand every Python file under ``paths``.

    With ``write=True``, files that expanded without errors are rewritten
    in place; files with errors are never touched.
    """
    pipeline = ExpansionPipeline(config)
    changes = []
    for path in collect_files(paths):
        result = pipeline.expand(read_source(path), path)
        changes.append(FileChange(result))
        if write and result.ok and result.changed:
            write_source(path, result.output)
            logger.with_path(str(path)).info("rewrote file", sum_types=len(result.sum_types))
    return changes
