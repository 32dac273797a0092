"""
Unit tests for canonical expression forms.
"""

import pytest

from shaderlint.lint.canonical import (
    ExpressionKey,
    factors,
    is_fully_understood,
    is_integer_literal,
    numeric_value,
    same_expression,
    terms,
)
from shaderlint.syntax.ast_nodes import OpaqueExpression
from shaderlint.syntax.printer import to_source
from shaderlint.utils.diagnostics import SourceSpan


@pytest.fixture
def expr(parse):
    """Fixture to parse 'x = <source>' inside main() and return the right-hand side."""

    def _expr(source: str):
        unit = parse(f"void main() {{ x = {source}; }}")
        return unit.find_function("main").body.statements[0].expression.value

    return _expr


class TestExpressionKey:
    """Tests for canonical key equality."""

    @pytest.mark.parametrize(
        "left,right",
        [
            ("a + b", "b + a"),
            ("a * b * c", "c * (b * a)"),
            ("x * (1.0 - t) + y * t", "t * y + (1.0 - t) * x"),
            ("2 * a", "a * 2.0"),
            ("+a", "a"),
            ("(a)", "a"),
            ("f(a + b)", "f(b + a)"),
            ("v.xy", "(v).xy"),
            ("-1.5", "-(1.5)"),
        ],
    )
    def test_equal(self, expr, left, right):
        assert same_expression(expr(left), expr(right))

    @pytest.mark.parametrize(
        "left,right",
        [
            ("a - b", "b - a"),
            ("a / b", "b / a"),
            ("a + b", "a + b + c"),
            ("v.xy", "v.yx"),
            ("f(a)", "g(a)"),
            ("-a", "a"),
        ],
    )
    def test_not_equal(self, expr, left, right):
        assert not same_expression(expr(left), expr(right))

    def test_keys_are_hashable(self, expr):
        keys = {ExpressionKey.from_expression(expr(s)) for s in ("a + b", "b + a", "a - b")}
        assert len(keys) == 2

    def test_opaque_has_no_key(self):
        opaque = OpaqueExpression("a +", SourceSpan.file_start())
        assert ExpressionKey.from_expression(opaque) is None
        assert not same_expression(opaque, opaque)

    def test_mutation_has_no_key(self, expr):
        assert ExpressionKey.from_expression(expr("i++")) is None


class TestFlattening:
    """Tests for term and factor flattening."""

    def test_terms(self, expr):
        parts = terms(expr("a + (b + c) + d * e"))
        assert [to_source(p) for p in parts] == ["a", "b", "c", "d * e"]

    def test_factors(self, expr):
        parts = factors(expr("a * (b + c) * d"))
        assert [to_source(p) for p in parts] == ["a", "b + c", "d"]

    def test_subtraction_not_flattened(self, expr):
        assert len(terms(expr("a - b"))) == 1


class TestLiteralHelpers:
    """Tests for numeric literal helpers."""

    @pytest.mark.parametrize(
        "source,value",
        [("2", 2.0), ("0.5", 0.5), ("-3.0", -3.0), ("+4", 4.0), ("-(-1.0)", 1.0)],
    )
    def test_numeric_value(self, expr, source, value):
        assert numeric_value(expr(source)) == value

    @pytest.mark.parametrize("source", ["a", "-a", "f(1.0)", "1.0 + 2.0", "1e999", "-1e999"])
    def test_not_numeric(self, expr, source):
        assert numeric_value(expr(source)) is None

    def test_is_integer_literal(self, expr):
        assert is_integer_literal(expr("3"))
        assert is_integer_literal(expr("-3"))
        assert not is_integer_literal(expr("3.0"))

    def test_fully_understood(self, expr, parse_with_diagnostics):
        assert is_fully_understood(expr("a * (b + f(c))"))
        assert not is_fully_understood(expr("a + (b = c)"))
        unit, _ = parse_with_diagnostics("void main() { x = a +; }")
        opaque = unit.find_function("main").body.statements[0].expression
        assert not is_fully_understood(opaque)
