"""
Expression printer.

Renders expression trees back to shader source text, inserting only the
parentheses that precedence and associativity require. Used to build the
replacement text of suggested fixes.
"""

import math

from shaderlint.syntax.ast_nodes import (
    ASTVisitor,
    Assignment,
    BinaryExpression,
    BinaryOperator,
    BooleanLiteral,
    CallExpression,
    CommaExpression,
    ConditionalExpression,
    Expression,
    FloatLiteral,
    Identifier,
    IndexExpression,
    InitializerList,
    IntegerLiteral,
    MemberAccess,
    OpaqueExpression,
    StringLiteral,
    UnaryExpression,
    UnaryOperator,
)

COMMA = 1
ASSIGNMENT = 2
CONDITIONAL = 3
UNARY = 15
POSTFIX = 16
PRIMARY = 17

BINARY_PRECEDENCE: dict[BinaryOperator, int] = {
    BinaryOperator.OR: 4,
    BinaryOperator.XOR: 5,
    BinaryOperator.AND: 6,
    BinaryOperator.BIT_OR: 7,
    BinaryOperator.BIT_XOR: 8,
    BinaryOperator.BIT_AND: 9,
    BinaryOperator.EQ: 10,
    BinaryOperator.NE: 10,
    BinaryOperator.LT: 11,
    BinaryOperator.GT: 11,
    BinaryOperator.LE: 11,
    BinaryOperator.GE: 11,
    BinaryOperator.SHL: 12,
    BinaryOperator.SHR: 12,
    BinaryOperator.ADD: 13,
    BinaryOperator.SUB: 13,
    BinaryOperator.MUL: 14,
    BinaryOperator.DIV: 14,
    BinaryOperator.MOD: 14,
}


def precedence_of(expr: Expression) -> int:
    """Binding strength of the outermost construct of an expression."""
    if isinstance(expr, CommaExpression):
        return COMMA
    if isinstance(expr, Assignment):
        return ASSIGNMENT
    if isinstance(expr, ConditionalExpression):
        return CONDITIONAL
    if isinstance(expr, BinaryExpression):
        return BINARY_PRECEDENCE[expr.operator]
    if isinstance(expr, UnaryExpression):
        return POSTFIX if expr.operator.is_postfix else UNARY
    if isinstance(expr, (CallExpression, IndexExpression, MemberAccess)):
        return POSTFIX
    if isinstance(expr, (IntegerLiteral, FloatLiteral)) and expr.text.startswith("-"):
        return UNARY
    return PRIMARY


class SourcePrinter(ASTVisitor):
    """Visitor that renders an expression as source text."""

    def print(self, expr: Expression) -> str:
        return self.visit(expr)

    def wrap(self, expr: Expression, minimum: int) -> str:
        """Render a child, parenthesized if it binds looser than ``minimum``."""
        text = self.visit(expr)
        if precedence_of(expr) < minimum:
            return f"({text})"
        return text

    def visit_identifier(self, node: Identifier) -> str:
        return node.name

    def visit_integer_literal(self, node: IntegerLiteral) -> str:
        return node.text

    def visit_float_literal(self, node: FloatLiteral) -> str:
        return node.text

    def visit_boolean_literal(self, node: BooleanLiteral) -> str:
        return "true" if node.value else "false"

    def visit_string_literal(self, node: StringLiteral) -> str:
        escaped = node.value.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'

    def visit_binary_expression(self, node: BinaryExpression) -> str:
        precedence = BINARY_PRECEDENCE[node.operator]
        left = self.wrap(node.left, precedence)
        right = self.wrap(node.right, precedence + 1)
        return f"{left} {node.operator.symbol} {right}"

    def visit_unary_expression(self, node: UnaryExpression) -> str:
        if node.operator.is_postfix:
            return f"{self.wrap(node.operand, POSTFIX)}{node.operator.symbol}"
        operand = self.wrap(node.operand, UNARY)
        # Keep '- -x' and '+ ++x' from fusing into another operator
        if operand[:1] in ("-", "+") and node.operator in (UnaryOperator.NEG, UnaryOperator.POS):
            operand = f"({operand})"
        return f"{node.operator.symbol}{operand}"

    def visit_call_expression(self, node: CallExpression) -> str:
        callee = self.wrap(node.callee, POSTFIX)
        arguments = ", ".join(self.wrap(arg, ASSIGNMENT) for arg in node.arguments)
        return f"{callee}({arguments})"

    def visit_member_access(self, node: MemberAccess) -> str:
        return f"{self.wrap(node.object, POSTFIX)}.{node.member}"

    def visit_index_expression(self, node: IndexExpression) -> str:
        return f"{self.wrap(node.object, POSTFIX)}[{self.visit(node.index)}]"

    def visit_conditional_expression(self, node: ConditionalExpression) -> str:
        condition = self.wrap(node.condition, CONDITIONAL + 1)
        then_expr = self.wrap(node.then_expr, ASSIGNMENT)
        else_expr = self.wrap(node.else_expr, CONDITIONAL)
        return f"{condition} ? {then_expr} : {else_expr}"

    def visit_assignment(self, node: Assignment) -> str:
        target = self.wrap(node.target, UNARY)
        value = self.wrap(node.value, ASSIGNMENT)
        return f"{target} {node.operator.symbol} {value}"

    def visit_comma_expression(self, node: CommaExpression) -> str:
        return ", ".join(self.wrap(expr, ASSIGNMENT) for expr in node.expressions)

    def visit_initializer_list(self, node: InitializerList) -> str:
        return "{" + ", ".join(self.wrap(e, ASSIGNMENT) for e in node.elements) + "}"

    def visit_opaque_expression(self, node: OpaqueExpression) -> str:
        return node.text


def to_source(expr: Expression) -> str:
    """
    Render an expression as source text.

    Args:
        expr: The expression to print

    Returns:
        Source text with minimal parentheses
    """
    return SourcePrinter().print(expr)


def wrap_operand(expr: Expression, minimum: int) -> str:
    """Render an expression for use as an operand of a given precedence."""
    return SourcePrinter().wrap(expr, minimum)


def format_float(value: float) -> str:
    """
    Format a float as a shader floating-point literal.

    Examples:
        0.5 -> '0.5', 2.0 -> '2.0', 1e-05 -> '1e-05'
    """
    if not math.isfinite(value):
        raise ValueError(f"cannot format non-finite value {value!r}")
    text = repr(float(value))
    if "." not in text and "e" not in text:
        text += ".0"
    return text
