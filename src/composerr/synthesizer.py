"""Enum synthesizer: name the generated error type and lay out its variants."""

from __future__ import annotations

from dataclasses import dataclass

from composerr.capabilities import RESERVED_MEMBERS
from composerr.config import ComposerrConfig
from composerr.errors import SynthesisCollision
from composerr.model import (
    AnnotatedDeclaration,
    ContainerKind,
    SynthesizedSumType,
    TypeRef,
    Variant,
)


def snake_to_pascal(name: str) -> str:
    """``do_task`` -> ``DoTask``; ``doTask`` -> ``DoTask``; ``__call__`` -> ``Call``."""
    return "".join(word[0].upper() + word[1:] for word in name.split("_") if word)


class EnumSynthesizer:
    """Builds the skeleton of the sum type for one declaration."""

    def __init__(self, config: ComposerrConfig | None = None):
        self.config = config or ComposerrConfig()

    def type_name(self, declaration: AnnotatedDeclaration) -> str:
        container = declaration.container
        prefix = ""
        if container.kind is ContainerKind.IMPLEMENTATION:
            prefix = snake_to_pascal(container.owner or "") + self.config.implementation_infix
        elif container.kind is ContainerKind.INTERFACE:
            prefix = snake_to_pascal(container.owner or "") + self.config.interface_infix
        return prefix + snake_to_pascal(declaration.name) + self.config.suffix

    def synthesize(self, declaration: AnnotatedDeclaration) -> SynthesizedSumType:
        """Raise SynthesisCollision if two variants would share a name."""
        name = self.type_name(declaration)
        variants: list[Variant] = []
        by_name: dict[str, TypeRef] = {}

        for ref in declaration.sources:
            if ref.dotted == name:
                raise SynthesisCollision(
                    f"`{ref.dotted}` in the error set of `{declaration.qualified_name}` "
                    f"has the name of the type generated for it",
                    node=ref.node,
                    suggestion="Rename the error type or import it under a different name",
                    context={"declaration": declaration.qualified_name},
                )
            other = by_name.get(ref.leaf)
            if other is not None:
                raise SynthesisCollision(
                    f"`{other.dotted}` and `{ref.dotted}` would both become variant "
                    f"`{name}.{ref.leaf}`",
                    node=ref.node,
                    suggestion="Import one of them under a different name",
                    context={"declaration": declaration.qualified_name},
                )
            if ref.leaf in RESERVED_MEMBERS:
                raise SynthesisCollision(
                    f"variant name `{ref.leaf}` clashes with `{name}.{ref.leaf}`",
                    node=ref.node,
                    suggestion="Import the error type under a different name",
                    context={"declaration": declaration.qualified_name},
                )
            by_name[ref.leaf] = ref
            variants.append(Variant(name=ref.leaf, wraps=ref))

        return SynthesizedSumType(name=name, variants=tuple(variants), declaration=declaration)


@dataclass
class NestedComposition:
    """A source type that is itself a type synthesized in the same module."""

    sum_type: SynthesizedSumType
    source: TypeRef

    @property
    def message(self) -> str:
        return (
            f"`{self.source.dotted}` in the error set of "
            f"`{self.sum_type.declaration.qualified_name}` is a generated error type; "
            f"it is wrapped as a single variant and not flattened"
        )


def find_name_collisions(
    sum_types: list[SynthesizedSumType],
) -> list[tuple[SynthesizedSumType, SynthesisCollision]]:
    """Report every type after the first that reuses an earlier generated name.

    Types are compared per emission scope: two containers nested in
    different functions may reuse a name.
    """
    collisions: list[tuple[SynthesizedSumType, SynthesisCollision]] = []
    seen: dict[tuple[str, str], SynthesizedSumType] = {}
    for sum_type in sum_types:
        key = (sum_type.container.scope, sum_type.name)
        first = seen.get(key)
        if first is None:
            seen[key] = sum_type
            continue
        error = SynthesisCollision(
            f"`{sum_type.declaration.qualified_name}` and "
            f"`{first.declaration.qualified_name}` would both generate `{sum_type.name}`",
            node=sum_type.declaration.marker,
            suggestion="Rename one of the functions",
            context={"declaration": sum_type.declaration.qualified_name},
        )
        collisions.append((sum_type, error))
    return collisions


def find_shadowed_names(
    sum_types: list[SynthesizedSumType],
    bound: dict[str, set[str]],
) -> list[tuple[SynthesizedSumType, SynthesisCollision]]:
    """Report types whose name is already bound where they would be emitted.

    The generated class is inserted before its container, so it would
    replace the existing binding for the rest of the scope.
    """
    collisions: list[tuple[SynthesizedSumType, SynthesisCollision]] = []
    for sum_type in sum_types:
        if sum_type.name not in bound.get(sum_type.container.scope, set()):
            continue
        error = SynthesisCollision(
            f"`{sum_type.declaration.qualified_name}` would generate `{sum_type.name}`, "
            f"which is already defined in this scope",
            node=sum_type.declaration.marker,
            suggestion="Rename the existing definition or the function",
            context={"declaration": sum_type.declaration.qualified_name},
        )
        collisions.append((sum_type, error))
    return collisions


def find_nested_compositions(sum_types: list[SynthesizedSumType]) -> list[NestedComposition]:
    """Source types naming a type generated in the same scope."""
    generated = {(t.container.scope, t.name) for t in sum_types}
    return [
        NestedComposition(sum_type, variant.wraps)
        for sum_type in sum_types
        for variant in sum_type.variants
        if (sum_type.container.scope, variant.wraps.dotted) in generated
    ]
