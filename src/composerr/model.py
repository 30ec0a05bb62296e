"""Data model shared by the expansion stages.

An ``AnnotatedDeclaration`` is what the scanner finds: a function carrying
the error set marker, its ``ErrorSourceSet`` and the ``ContainerContext`` it
lives in. The synthesizer turns each one into a ``SynthesizedSumType``.
Everything here is immutable; later stages build new values rather than
editing the ones they were given.
"""

from __future__ import annotations

import ast
from dataclasses import dataclass, replace
from enum import Enum

from composerr.errors import UsageError

FunctionNode = ast.FunctionDef | ast.AsyncFunctionDef
ContainerNode = ast.FunctionDef | ast.AsyncFunctionDef | ast.ClassDef


def dotted_name(node: ast.expr) -> list[str] | None:
    """Split ``a.b.C`` into its parts; None if the node is not a plain name."""
    parts: list[str] = []
    while isinstance(node, ast.Attribute):
        parts.append(node.attr)
        node = node.value
    if not isinstance(node, ast.Name):
        return None
    parts.append(node.id)
    return parts[::-1]


def leaf_name(node: ast.expr) -> str | None:
    """Last segment of a dotted name, looking through calls and subscripts."""
    if isinstance(node, ast.Call):
        node = node.func
    if isinstance(node, ast.Subscript):
        node = node.value
    parts = dotted_name(node)
    return parts[-1] if parts else None


@dataclass(frozen=True)
class TypeRef:
    """A reference to a source error type, e.g. ``io.UnsupportedOperation``."""

    parts: tuple[str, ...]
    node: ast.expr

    @classmethod
    def parse(cls, node: ast.expr) -> TypeRef:
        parts = dotted_name(node)
        if parts is None:
            raise UsageError(
                f"cannot read `{ast.unparse(node)}` as an error type; "
                "use a class name or a dotted path",
                node=node,
            )
        return cls(parts=tuple(parts), node=node)

    @property
    def dotted(self) -> str:
        return ".".join(self.parts)

    @property
    def leaf(self) -> str:
        return self.parts[-1]

    def __str__(self) -> str:
        return self.dotted


@dataclass(frozen=True)
class ErrorSourceSet:
    """Ordered, distinct source error types attached to one declaration."""

    types: tuple[TypeRef, ...]

    @classmethod
    def parse(cls, marker: ast.Call) -> ErrorSourceSet:
        """Read the arguments of an ``@errorset(...)`` call."""
        if marker.keywords:
            raise UsageError(
                "error set markers take positional type names only",
                node=marker.keywords[0].value,
            )
        if not marker.args:
            raise UsageError("error set is empty; list at least one error type", node=marker)

        types: list[TypeRef] = []
        seen: set[str] = set()
        for arg in marker.args:
            if isinstance(arg, ast.Starred):
                raise UsageError("error set entries cannot be unpacked", node=arg)
            ref = TypeRef.parse(arg)
            if ref.dotted in seen:
                raise UsageError(f"`{ref.dotted}` is listed more than once", node=arg)
            seen.add(ref.dotted)
            types.append(ref)
        return cls(types=tuple(types))

    def __iter__(self):
        return iter(self.types)

    def __len__(self) -> int:
        return len(self.types)

    @property
    def names(self) -> list[str]:
        return [t.dotted for t in self.types]


class ContainerKind(Enum):
    """Where an annotated declaration lives."""

    STANDALONE = "standalone"
    IMPLEMENTATION = "implementation"
    INTERFACE = "interface"


@dataclass(frozen=True)
class ContainerContext:
    """The decorated function or class that enables expansion."""

    kind: ContainerKind
    node: ContainerNode
    marker: ast.expr
    owner: str | None = None  # class name; None for standalone functions
    scope: str = ""  # dotted path of enclosing definitions; "" at module level

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def first_line(self) -> int:
        """First source line of the container, decorators included."""
        lines = [d.lineno for d in self.node.decorator_list]
        return min([self.node.lineno, *lines])


@dataclass(frozen=True)
class AnnotatedDeclaration:
    """A function carrying the error set marker.

    The function body is never inspected; only the signature's return
    annotation is rewritten.
    """

    node: FunctionNode
    marker: ast.expr
    sources: ErrorSourceSet
    container: ContainerContext

    @property
    def name(self) -> str:
        return self.node.name

    @property
    def returns(self) -> ast.expr | None:
        return self.node.returns

    @property
    def qualified_name(self) -> str:
        if self.container.owner:
            return f"{self.container.owner}.{self.name}"
        return self.name


@dataclass(frozen=True)
class Variant:
    """One case of a synthesized sum type, wrapping exactly one source type."""

    name: str
    wraps: TypeRef


@dataclass(frozen=True)
class SynthesizedSumType:
    """Generated error type for one annotated declaration.

    ``source`` holds the generated class definitions once the capability
    generator has run; a skeleton has ``source=None``.
    """

    name: str
    variants: tuple[Variant, ...]
    declaration: AnnotatedDeclaration
    source: str | None = None

    @property
    def variant_names(self) -> list[str]:
        return [v.name for v in self.variants]

    @property
    def container(self) -> ContainerContext:
        return self.declaration.container

    def with_source(self, source: str) -> SynthesizedSumType:
        return replace(self, source=source)
