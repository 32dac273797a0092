"""
Canonical forms of expressions for pattern matching.

Optimization rules compare expressions structurally "up to reordering":
``x * (1.0 - t) + y * t`` and ``t * y + (1.0 - t) * x`` are the same shape.
An ``ExpressionKey`` is a hashable normal form in which chains of the
commutative, associative operators ``+`` and ``*`` are flattened and their
operands sorted, and numeric literals compare by value (``1`` == ``1.0``).
Subtraction and division keep their operand order.

Expressions the linter cannot fully understand (opaque text) have no key,
so they never compare equal to anything.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from shaderlint.syntax.ast_nodes import (
    Assignment,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CallExpression,
    ConditionalExpression,
    Expression,
    FloatLiteral,
    Identifier,
    IndexExpression,
    IntegerLiteral,
    MemberAccess,
    OpaqueExpression,
    StringLiteral,
    UnaryExpression,
    UnaryOperator,
    walk,
)

COMMUTATIVE_OPERATORS: frozenset[BinaryOperator] = frozenset({
    BinaryOperator.ADD,
    BinaryOperator.MUL,
})


@dataclass(frozen=True)
class ExpressionKey:
    """
    Hashable canonical form of an expression.
    """

    type_name: str
    data: tuple

    @staticmethod
    def from_expression(expr: Expression) -> Optional["ExpressionKey"]:
        """Create the canonical key of an expression, None if it has none."""
        if isinstance(expr, BinaryExpression):
            if expr.operator in COMMUTATIVE_OPERATORS:
                operand_keys = []
                for operand in flatten(expr, expr.operator):
                    key = ExpressionKey.from_expression(operand)
                    if key is None:
                        return None
                    operand_keys.append(key)
                return ExpressionKey(
                    type_name="Chain",
                    data=(expr.operator.name, tuple(sorted(operand_keys, key=repr))),
                )
            left_key = ExpressionKey.from_expression(expr.left)
            right_key = ExpressionKey.from_expression(expr.right)
            if left_key is None or right_key is None:
                return None
            return ExpressionKey(
                type_name="Binary",
                data=(expr.operator.name, left_key, right_key),
            )
        if isinstance(expr, UnaryExpression):
            if expr.operator == UnaryOperator.POS:
                return ExpressionKey.from_expression(expr.operand)
            if expr.operator.is_mutation:
                return None
            value = numeric_value(expr)
            if value is not None:
                return ExpressionKey(type_name="Number", data=(value,))
            operand_key = ExpressionKey.from_expression(expr.operand)
            if operand_key is None:
                return None
            return ExpressionKey(
                type_name="Unary",
                data=(expr.operator.name, operand_key),
            )
        if isinstance(expr, Identifier):
            return ExpressionKey(type_name="Identifier", data=(expr.name,))
        if isinstance(expr, (IntegerLiteral, FloatLiteral)):
            return ExpressionKey(type_name="Number", data=(float(expr.value),))
        if isinstance(expr, StringLiteral):
            return ExpressionKey(type_name="String", data=(expr.value,))
        if isinstance(expr, BooleanLiteral):
            return ExpressionKey(type_name="Boolean", data=(expr.value,))
        if isinstance(expr, CallExpression):
            if expr.callee_name is None:
                return None
            arg_keys = []
            for arg in expr.arguments:
                key = ExpressionKey.from_expression(arg)
                if key is None:
                    return None
                arg_keys.append(key)
            return ExpressionKey(
                type_name="Call",
                data=(expr.callee_name, tuple(arg_keys)),
            )
        if isinstance(expr, MemberAccess):
            obj_key = ExpressionKey.from_expression(expr.object)
            if obj_key is None:
                return None
            return ExpressionKey(
                type_name="MemberAccess",
                data=(obj_key, expr.member),
            )
        if isinstance(expr, IndexExpression):
            obj_key = ExpressionKey.from_expression(expr.object)
            idx_key = ExpressionKey.from_expression(expr.index)
            if obj_key is None or idx_key is None:
                return None
            return ExpressionKey(
                type_name="Index",
                data=(obj_key, idx_key),
            )
        if isinstance(expr, ConditionalExpression):
            parts = [
                ExpressionKey.from_expression(e)
                for e in (expr.condition, expr.then_expr, expr.else_expr)
            ]
            if any(part is None for part in parts):
                return None
            return ExpressionKey(type_name="Conditional", data=tuple(parts))
        return None


def flatten(expr: Expression, operator: BinaryOperator) -> list[Expression]:
    """
    Flatten a left- or right-nested chain of one operator.

    Example:
        flatten(a + (b + c) + d, ADD) -> [a, b, c, d]
    """
    if isinstance(expr, BinaryExpression) and expr.operator == operator:
        return flatten(expr.left, operator) + flatten(expr.right, operator)
    return [expr]


def terms(expr: Expression) -> list[Expression]:
    return flatten(expr, BinaryOperator.ADD)


def factors(expr: Expression) -> list[Expression]:
    return flatten(expr, BinaryOperator.MUL)


def same_expression(left: Expression, right: Expression) -> bool:
    """Whether two expressions have equal canonical forms."""
    left_key = ExpressionKey.from_expression(left)
    return left_key is not None and left_key == ExpressionKey.from_expression(right)


def numeric_value(expr: Expression) -> Optional[float]:
    """Value of a finite numeric literal, optionally negated; None for anything else."""
    if isinstance(expr, (IntegerLiteral, FloatLiteral)):
        try:
            value = float(expr.value)
        except OverflowError:
            return None
        return value if math.isfinite(value) else None
    if isinstance(expr, UnaryExpression) and expr.operator in (UnaryOperator.NEG, UnaryOperator.POS):
        inner = numeric_value(expr.operand)
        if inner is None:
            return None
        return -inner if expr.operator == UnaryOperator.NEG else inner
    return None


def is_integer_literal(expr: Expression) -> bool:
    """An integer literal, optionally negated."""
    if isinstance(expr, UnaryExpression) and expr.operator in (UnaryOperator.NEG, UnaryOperator.POS):
        return is_integer_literal(expr.operand)
    return isinstance(expr, IntegerLiteral)


def is_fully_understood(expr: Expression) -> bool:
    """False if any part of the expression is opaque or an assignment."""
    return not any(isinstance(node, (OpaqueExpression, Assignment)) for node in walk(expr))
