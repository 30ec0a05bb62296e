"""Annotation scanner: find containers and the declarations they enable.

A container is a function or class decorated with the container marker
(``@compose_errors``). Inside a container, functions decorated with the
declaration marker (``@errorset(A, B)``) become AnnotatedDeclarations. A
declaration marker anywhere else is a usage error.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, field

from composerr.config import ComposerrConfig
from composerr.errors import ComposerrError, UsageError
from composerr.model import (
    AnnotatedDeclaration,
    ContainerContext,
    ContainerKind,
    ContainerNode,
    ErrorSourceSet,
    FunctionNode,
    leaf_name,
)


@dataclass
class ScanFailure:
    """A usage error found while scanning."""

    error: ComposerrError
    declaration: str | None = None
    container: ContainerContext | None = None


@dataclass
class ScanResult:
    """Everything the scanner found in one module, in textual order."""

    containers: list[ContainerContext] = field(default_factory=list)
    declarations: list[AnnotatedDeclaration] = field(default_factory=list)
    untouched: list[FunctionNode] = field(default_factory=list)
    failures: list[ScanFailure] = field(default_factory=list)
    # scope path -> names bound directly in that scope
    bound_names: dict[str, set[str]] = field(default_factory=dict)


def bound_names(scope: ast.Module | ContainerNode) -> set[str]:
    """Names a module, function or class body binds, not counting nested scopes."""
    names: set[str] = set()
    _collect_bindings(scope, names)
    return names


def _collect_bindings(node: ast.AST, names: set[str]) -> None:
    for child in ast.iter_child_nodes(node):
        if isinstance(child, ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef):
            names.add(child.name)
        elif isinstance(child, ast.Import | ast.ImportFrom):
            names.update((alias.asname or alias.name).split(".")[0] for alias in child.names)
        elif isinstance(child, ast.Name) and isinstance(child.ctx, ast.Store):
            names.add(child.id)
        elif isinstance(child, ast.arg):
            names.add(child.arg)
        elif not isinstance(child, ast.Lambda | ast.comprehension):
            _collect_bindings(child, names)


class AnnotationScanner(ast.NodeVisitor):
    """Walks a module collecting marked containers and declarations."""

    def __init__(self, config: ComposerrConfig | None = None):
        self.config = config or ComposerrConfig()
        self._result = ScanResult()
        self._claimed: set[int] = set()
        self._scope: list[str] = []

    def scan(self, tree: ast.Module) -> ScanResult:
        self._result = ScanResult()
        self._claimed = set()
        self._scope = []
        self._result.bound_names[""] = bound_names(tree)
        self.visit(tree)
        self._result.declarations.sort(key=lambda d: (d.node.lineno, d.node.col_offset))
        return self._result

    def visit_FunctionDef(self, node: ast.FunctionDef) -> None:
        self._visit_definition(node)

    def visit_AsyncFunctionDef(self, node: ast.AsyncFunctionDef) -> None:
        self._visit_definition(node)

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        self._visit_definition(node)

    # -- markers ---------------------------------------------------------

    def _markers(self, node: ContainerNode, name: str) -> list[ast.expr]:
        return [d for d in node.decorator_list if leaf_name(d) == name]

    def _fail(
        self,
        error: ComposerrError,
        declaration: str | None = None,
        container: ContainerContext | None = None,
    ) -> None:
        self._result.failures.append(ScanFailure(error, declaration, container))

    # -- traversal -------------------------------------------------------

    def _visit_definition(self, node: ContainerNode) -> None:
        container_markers = self._markers(node, self.config.container_marker)
        if container_markers:
            self._enter_container(node, container_markers)
        # Markers claimed by a container are skipped here
        self._check_stray_markers(node)
        self._scope.append(node.name)
        scope = ".".join(self._scope)
        self._result.bound_names.setdefault(scope, set()).update(bound_names(node))
        self.generic_visit(node)
        self._scope.pop()

    def _check_stray_markers(self, node: ContainerNode) -> None:
        for marker in self._markers(node, self.config.declaration_marker):
            if id(marker) in self._claimed:
                continue
            self._claimed.add(id(marker))
            if isinstance(node, ast.ClassDef):
                error = UsageError(
                    f"`@{self.config.declaration_marker}` applies to functions, "
                    f"not to class `{node.name}`",
                    node=marker,
                    suggestion="Move the marker onto the methods that fail",
                )
            else:
                error = UsageError(
                    f"`@{self.config.declaration_marker}` on `{node.name}` has no "
                    f"enclosing `@{self.config.container_marker}`",
                    node=marker,
                    suggestion=f"Decorate the function or its class with "
                    f"@{self.config.container_marker}",
                )
            self._fail(error, declaration=node.name)

    def _enter_container(self, node: ContainerNode, markers: list[ast.expr]) -> None:
        marker = markers[0]
        context = ContainerContext(
            kind=self._container_kind(node),
            node=node,
            marker=marker,
            owner=node.name if isinstance(node, ast.ClassDef) else None,
            scope=".".join(self._scope),
        )

        members = self._members(node)
        if isinstance(node, ast.FunctionDef | ast.AsyncFunctionDef):
            claimed_by_outer = any(
                id(m) in self._claimed
                for m in self._markers(node, self.config.declaration_marker)
            )
            if claimed_by_outer:
                self._fail(
                    UsageError(
                        f"`{node.name}` is already expanded by its enclosing class; "
                        f"remove the inner `@{self.config.container_marker}`",
                        node=marker,
                    ),
                    declaration=node.name,
                )
                return

        problem = self._container_marker_problem(node, markers)
        if problem is not None:
            # Claim member markers so they are not reported a second time
            for member in members:
                for m in self._markers(member, self.config.declaration_marker):
                    self._claimed.add(id(m))
            self._fail(problem, declaration=node.name)
            return

        self._result.containers.append(context)
        for member in members:
            self._collect_member(member, context)

    def _container_marker_problem(
        self, node: ContainerNode, markers: list[ast.expr]
    ) -> UsageError | None:
        if len(markers) > 1:
            return UsageError(
                f"`{node.name}` carries `@{self.config.container_marker}` more than once",
                node=markers[1],
            )
        marker = markers[0]
        if isinstance(marker, ast.Call) and (marker.args or marker.keywords):
            return UsageError(
                f"`@{self.config.container_marker}` takes no arguments",
                node=marker,
            )
        return None

    def _members(self, node: ContainerNode) -> list[FunctionNode]:
        if isinstance(node, ast.ClassDef):
            return [
                stmt
                for stmt in node.body
                if isinstance(stmt, ast.FunctionDef | ast.AsyncFunctionDef)
            ]
        return [node]

    def _container_kind(self, node: ContainerNode) -> ContainerKind:
        if not isinstance(node, ast.ClassDef):
            return ContainerKind.STANDALONE
        if any(leaf_name(base) in self.config.interface_bases for base in node.bases):
            return ContainerKind.INTERFACE
        for keyword in node.keywords:
            if keyword.arg == "metaclass" and (
                leaf_name(keyword.value) in self.config.interface_metaclasses
            ):
                return ContainerKind.INTERFACE
        return ContainerKind.IMPLEMENTATION

    def _collect_member(self, member: FunctionNode, context: ContainerContext) -> None:
        markers = self._markers(member, self.config.declaration_marker)
        if not markers:
            self._result.untouched.append(member)
            return

        for m in markers:
            self._claimed.add(id(m))

        name = member.name
        try:
            if len(markers) > 1:
                raise UsageError(
                    f"`{name}` carries `@{self.config.declaration_marker}` more than once; "
                    "list every error type in a single marker",
                    node=markers[1],
                )
            marker = markers[0]
            if not isinstance(marker, ast.Call):
                raise UsageError(
                    f"`@{self.config.declaration_marker}` on `{name}` needs a list of "
                    "error types",
                    node=marker,
                )
            sources = ErrorSourceSet.parse(marker)
        except UsageError as e:
            self._fail(e, declaration=name, container=context)
            return

        self._result.declarations.append(
            AnnotatedDeclaration(
                node=member,
                marker=marker,
                sources=sources,
                container=context,
            )
        )


def scan_module(tree: ast.Module, config: ComposerrConfig | None = None) -> ScanResult:
    """Scan a parsed module."""
    return AnnotationScanner(config).scan(tree)
