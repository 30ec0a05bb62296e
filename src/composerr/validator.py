"""Placeholder validator: annotated functions must return ``Result[T, _]``."""

from __future__ import annotations

import ast

from composerr.config import ComposerrConfig
from composerr.errors import ShapeError
from composerr.model import AnnotatedDeclaration, leaf_name


class PlaceholderValidator:
    """Checks the return annotation of an annotated declaration.

    The error slot of the result type must be exactly the placeholder name,
    and the placeholder must not appear anywhere else in the annotation.
    """

    def __init__(self, config: ComposerrConfig | None = None):
        self.config = config or ComposerrConfig()

    def validate(self, declaration: AnnotatedDeclaration) -> ast.Name:
        """Return the placeholder node to rewrite, or raise ShapeError."""
        name = declaration.qualified_name
        returns = declaration.returns
        expected = f"{self.config.result_types[0]}[<success>, {self.config.placeholder}]"

        if returns is None:
            raise ShapeError(
                name, f"has no return annotation; expected {expected}", declaration.node
            )
        if isinstance(returns, ast.Constant) and isinstance(returns.value, str):
            raise ShapeError(
                name,
                "uses a string return annotation; write the annotation unquoted "
                "(use `from __future__ import annotations` for forward references)",
                returns,
            )
        if not isinstance(returns, ast.Subscript) or leaf_name(returns.value) not in (
            self.config.result_types
        ):
            raise ShapeError(
                name,
                f"must return {expected}, not `{ast.unparse(returns)}`",
                returns,
            )

        slots = returns.slice
        if not isinstance(slots, ast.Tuple) or len(slots.elts) != 2:
            raise ShapeError(
                name,
                f"must give its result type a success and an error component, "
                f"not `{ast.unparse(returns)}`",
                returns,
            )

        placeholders = [
            node
            for node in ast.walk(returns)
            if isinstance(node, ast.Name) and node.id == self.config.placeholder
        ]
        error_slot = slots.elts[1]
        if not (isinstance(error_slot, ast.Name) and error_slot.id == self.config.placeholder):
            raise ShapeError(
                name,
                f"declares the explicit error type `{ast.unparse(error_slot)}`; "
                f"use `{self.config.placeholder}` to have it generated",
                error_slot,
            )
        if len(placeholders) > 1:
            raise ShapeError(
                name,
                f"uses `{self.config.placeholder}` more than once in its return annotation",
                returns,
            )
        return error_slot
