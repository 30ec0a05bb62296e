"""Tests for the placeholder validator."""

import ast
import textwrap

import pytest

from composerr.config import ComposerrConfig
from composerr.errors import ShapeError
from composerr.model import AnnotatedDeclaration
from composerr.scanner import scan_module
from composerr.validator import PlaceholderValidator


def declaration(signature: str, config: ComposerrConfig | None = None) -> AnnotatedDeclaration:
    source = textwrap.dedent(
        f"""
        @compose_errors
        @errorset(IoFailure)
        {signature}
            pass
        """
    )
    return scan_module(ast.parse(source), config).declarations[0]


class TestPlaceholderValidator:
    """Tests for PlaceholderValidator."""

    def test_returns_placeholder_node(self):
        node = PlaceholderValidator().validate(declaration("def f() -> Result[int, _]:"))

        assert isinstance(node, ast.Name)
        assert node.id == "_"
        assert (node.lineno, node.col_offset) == (4, 23)

    def test_nested_success_type(self):
        node = PlaceholderValidator().validate(
            declaration("def f() -> Result[dict[str, list[int]], _]:")
        )

        assert node.id == "_"

    def test_dotted_result_type(self):
        node = PlaceholderValidator().validate(declaration("def f() -> result.Result[int, _]:"))

        assert node.id == "_"

    def test_missing_annotation(self):
        with pytest.raises(ShapeError, match="has no return annotation"):
            PlaceholderValidator().validate(declaration("def f():"))

    def test_wrong_result_type(self):
        with pytest.raises(ShapeError, match="must return Result\\[<success>, _\\], not `int`"):
            PlaceholderValidator().validate(declaration("def f() -> int:"))

    def test_string_annotation(self):
        with pytest.raises(ShapeError, match="string return annotation"):
            PlaceholderValidator().validate(declaration("def f() -> 'Result[int, _]':"))

    def test_one_component(self):
        with pytest.raises(ShapeError, match="success and an error component"):
            PlaceholderValidator().validate(declaration("def f() -> Result[int]:"))

    def test_three_components(self):
        with pytest.raises(ShapeError, match="success and an error component"):
            PlaceholderValidator().validate(declaration("def f() -> Result[int, _, str]:"))

    def test_explicit_error_type(self):
        with pytest.raises(ShapeError, match="explicit error type `IoFailure`") as exc_info:
            PlaceholderValidator().validate(declaration("def f() -> Result[int, IoFailure]:"))

        assert exc_info.value.code == "shape-error"
        assert isinstance(exc_info.value.node, ast.Name)

    def test_placeholder_in_success_slot(self):
        with pytest.raises(ShapeError, match="more than once"):
            PlaceholderValidator().validate(declaration("def f() -> Result[list[_], _]:"))

    def test_placeholder_only_in_success_slot(self):
        with pytest.raises(ShapeError, match="explicit error type"):
            PlaceholderValidator().validate(declaration("def f() -> Result[_, int]:"))

    def test_configured_result_types(self):
        config = ComposerrConfig(result_types=["Result", "Outcome"], placeholder="E")
        validator = PlaceholderValidator(config)

        node = validator.validate(declaration("def f() -> Outcome[int, E]:", config))

        assert node.id == "E"
