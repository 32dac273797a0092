"""
Optimization rules: expression-tree patterns with a cheaper equivalent.

Every rule here matches the shape of expressions in canonical form (see
``shaderlint.lint.canonical``) and suggests a rewrite. Rules must not flag
code they cannot fully understand: an expression containing opaque text,
or whose types cannot be resolved when the rewrite depends on them, is
skipped. A missed suggestion is acceptable; a wrong one is not.
"""

from __future__ import annotations

import math
import re
from typing import Iterator, Optional

from shaderlint.lint.canonical import (
    factors,
    is_fully_understood,
    is_integer_literal,
    numeric_value,
    same_expression,
    terms,
)
from shaderlint.lint.context import AnnotatedShader, ShaderStage
from shaderlint.lint.resolve import (
    Constness,
    component_type,
    is_float_type,
    is_sampling_function,
    is_vector_type,
    vector_size,
)
from shaderlint.lint.rules import (
    DIVISION_BY_CONSTANT,
    DYNAMIC_LOOP_BOUND,
    FRAGMENT_UV_MUTATION,
    MAD_FORM,
    MANUAL_LERP,
    SUM_AS_DOT,
    SWIZZLE_OPPORTUNITY,
)
from shaderlint.lint.symbols import SymbolRole, split_words
from shaderlint.syntax.ast_nodes import (
    SWIZZLE_SETS,
    Assignment,
    AssignmentOperator,
    BinaryExpression,
    BinaryOperator,
    CallExpression,
    Expression,
    ExpressionStatement,
    ForStatement,
    Identifier,
    IndexExpression,
    MemberAccess,
    UnaryExpression,
    VariableDeclaration,
    walk,
)
from shaderlint.syntax.printer import (
    ASSIGNMENT,
    POSTFIX,
    UNARY,
    format_float,
    to_source,
    wrap_operand,
)
from shaderlint.syntax.tokens import VECTOR_TYPES
from shaderlint.utils.diagnostics import Diagnostic, SourceSpan

MULTIPLICATIVE = 14

_LOOP_COMPARISONS: frozenset[BinaryOperator] = frozenset({
    BinaryOperator.LT,
    BinaryOperator.LE,
    BinaryOperator.GT,
    BinaryOperator.GE,
    BinaryOperator.NE,
})

_UV_WORD = re.compile(r"^(?:uvw?s?|texcoords?)\d*$")


def _product_text(parts: list[Expression]) -> str:
    """Render factors as an argument: 'a', 'a * b', '(a + b) * c'."""
    if len(parts) == 1:
        return wrap_operand(parts[0], ASSIGNMENT)
    rendered = [wrap_operand(parts[0], MULTIPLICATIVE)]
    rendered.extend(wrap_operand(part, MULTIPLICATIVE + 1) for part in parts[1:])
    return " * ".join(rendered)


def _format_number(value: float, as_integer: bool) -> str:
    if as_integer:
        return str(int(value))
    return format_float(float(f"{value:.9g}"))


# =============================================================================
# division-by-constant
# =============================================================================


def _reciprocal_text(value: float) -> str:
    """Reciprocal literal when it is short and exact, otherwise '(1.0 / v)'."""
    reciprocal = 1.0 / value
    text = format_float(reciprocal)
    if 1.0 / reciprocal == value and len(text) <= 10:
        return text
    return f"(1.0 / {format_float(value)})"


def check_division_by_constant(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Suggest multiplying by the reciprocal instead of dividing by a literal.

    Integer-literal divisors are only reported when the dividend is known to
    be floating point, so integer division is never rewritten.
    """
    resolver = shader.resolver
    for scope, expr in shader.expressions():
        if isinstance(expr, BinaryExpression) and expr.operator == BinaryOperator.DIV:
            dividend, divisor = expr.left, expr.right
        elif isinstance(expr, Assignment) and expr.operator == AssignmentOperator.DIV:
            dividend, divisor = expr.target, expr.value
        else:
            continue

        value = numeric_value(divisor)
        if value is None or value == 0.0 or not math.isfinite(1.0 / value):
            continue
        if not is_fully_understood(dividend):
            continue
        # Folded by the compiler
        if resolver.constness(expr, scope) == Constness.CONSTANT:
            continue
        if is_integer_literal(divisor) and not is_float_type(resolver.type_of(dividend, scope)):
            continue

        reciprocal = _reciprocal_text(value)
        if isinstance(expr, Assignment):
            fix = f"{to_source(dividend)} *= {reciprocal}"
        else:
            fix = f"{wrap_operand(dividend, MULTIPLICATIVE)} * {reciprocal}"
        yield DIVISION_BY_CONSTANT.diagnostic(expr.span, to_source(divisor), suggested_fix=fix)


# =============================================================================
# mad-form
# =============================================================================


def match_mad(expr: BinaryExpression) -> Optional[str]:
    """
    Match '(x + c1) * c2' and its variants; return the multiply-add rewrite.

    Handles '(x - c1) * c2', '(c1 - x) * c2' and either operand order of
    the outer multiplication. Returns None when the shape does not match.
    """
    if expr.operator != BinaryOperator.MUL:
        return None
    for inner, scale in ((expr.left, expr.right), (expr.right, expr.left)):
        scale_value = numeric_value(scale)
        if scale_value is None or not isinstance(inner, BinaryExpression):
            continue
        if inner.operator not in (BinaryOperator.ADD, BinaryOperator.SUB):
            continue

        left_value = numeric_value(inner.left)
        right_value = numeric_value(inner.right)
        if right_value is not None and left_value is None:
            x, constant, constant_value = inner.left, inner.right, right_value
            multiplier = scale_value
            sign = 1.0 if inner.operator == BinaryOperator.ADD else -1.0
            offset = sign * constant_value * scale_value
        elif left_value is not None and right_value is None:
            x, constant, constant_value = inner.right, inner.left, left_value
            multiplier = scale_value if inner.operator == BinaryOperator.ADD else -scale_value
            offset = constant_value * scale_value
        else:
            continue

        if offset == 0.0 or not math.isfinite(offset) or not is_fully_understood(x):
            continue

        as_integer = is_integer_literal(constant) and is_integer_literal(scale)
        if multiplier == scale_value:
            multiplier_text = wrap_operand(scale, UNARY)
        else:
            multiplier_text = _format_number(multiplier, as_integer)
        product = f"{wrap_operand(x, MULTIPLICATIVE)} * {multiplier_text}"
        if offset < 0:
            return f"{product} - {_format_number(-offset, as_integer)}"
        return f"{product} + {_format_number(offset, as_integer)}"
    return None


def check_mad_form(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """Suggest folding '(x + c1) * c2' into the single multiply-add 'x * c2 + c1*c2'."""
    resolver = shader.resolver
    for scope, expr in shader.expressions():
        if not isinstance(expr, BinaryExpression):
            continue
        if resolver.constness(expr, scope) == Constness.CONSTANT:
            continue
        rewrite = match_mad(expr)
        if rewrite is not None:
            yield MAD_FORM.diagnostic(expr.span, suggested_fix=rewrite)


# =============================================================================
# manual-lerp
# =============================================================================


def _is_one_minus(expr: Expression, t: Expression) -> bool:
    return (
        isinstance(expr, BinaryExpression)
        and expr.operator == BinaryOperator.SUB
        and numeric_value(expr.left) == 1.0
        and same_expression(expr.right, t)
    )


def _match_weighted_sum(
    first: Expression,
    second: Expression,
) -> Optional[tuple[str, str, str]]:
    """Match first = x * (1 - t), second = y * t."""
    first_factors = factors(first)
    second_factors = factors(second)
    if len(first_factors) < 2 or len(second_factors) < 2:
        return None
    for j, t in enumerate(second_factors):
        for i, factor in enumerate(first_factors):
            if _is_one_minus(factor, t):
                x = first_factors[:i] + first_factors[i + 1:]
                y = second_factors[:j] + second_factors[j + 1:]
                return _product_text(x), _product_text(y), wrap_operand(t, ASSIGNMENT)
    return None


def _match_offset_form(
    first: Expression,
    second: Expression,
) -> Optional[tuple[str, str, str]]:
    """Match first = x, second = (y - x) * t."""
    second_factors = factors(second)
    if len(second_factors) < 2:
        return None
    for i, factor in enumerate(second_factors):
        if (
            isinstance(factor, BinaryExpression)
            and factor.operator == BinaryOperator.SUB
            and same_expression(factor.right, first)
        ):
            t = second_factors[:i] + second_factors[i + 1:]
            return (
                wrap_operand(first, ASSIGNMENT),
                wrap_operand(factor.left, ASSIGNMENT),
                _product_text(t),
            )
    return None


def match_lerp(expr: Expression) -> Optional[tuple[str, str, str]]:
    """
    Match a manual linear interpolation.

    Recognizes 'x * (1 - t) + y * t' and 'x + (y - x) * t' up to
    reordering of '+' and '*' operands.

    Returns:
        Source texts of (x, y, t), or None
    """
    if not isinstance(expr, BinaryExpression) or expr.operator != BinaryOperator.ADD:
        return None
    parts = terms(expr)
    if len(parts) != 2 or not is_fully_understood(expr):
        return None
    for first, second in (parts, parts[::-1]):
        found = _match_weighted_sum(first, second) or _match_offset_form(first, second)
        if found is not None:
            return found
    return None


def check_manual_lerp(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """Suggest mix() for hand-written linear interpolation."""
    for _, expr in shader.expressions():
        found = match_lerp(expr)
        if found is not None:
            yield MANUAL_LERP.diagnostic(expr.span, suggested_fix=f"mix({', '.join(found)})")


# =============================================================================
# sum-as-dot
# =============================================================================


def check_sum_as_dot(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Suggest dot(v, vecN(1.0)) for a sum over every component of one vector.

    The vector must resolve to a floating-point vector type, and every one
    of its components must appear exactly once.
    """
    resolver = shader.resolver
    for scope, expr in shader.expressions():
        if not isinstance(expr, BinaryExpression) or expr.operator != BinaryOperator.ADD:
            continue
        parts = terms(expr)
        if not all(isinstance(p, MemberAccess) and p.is_swizzle and len(p.member) == 1 for p in parts):
            continue
        source = parts[0].object
        if not all(same_expression(p.object, source) for p in parts[1:]):
            continue

        vector = resolver.type_of(source, scope)
        if not is_vector_type(vector) or not is_float_type(vector):
            continue
        indices = sorted(p.component_indices[0] for p in parts)
        if indices != list(range(vector_size(vector))):
            continue

        ones = f"{vector}(1.0)"
        fix = f"dot({wrap_operand(source, ASSIGNMENT)}, {ones})"
        yield SUM_AS_DOT.diagnostic(expr.span, to_source(source), ones, suggested_fix=fix)


# =============================================================================
# swizzle-opportunity
# =============================================================================


def _swizzle_charset(members: list[str]) -> str:
    """The component set shared by all members, 'xyzw' when they differ."""
    charsets = {
        next(charset for charset in SWIZZLE_SETS if all(c in charset for c in member))
        for member in members
    }
    return charsets.pop() if len(charsets) == 1 else SWIZZLE_SETS[0]


def check_swizzle_opportunity(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Suggest a swizzle for a vector constructed from components of one vector.

    Example:
        vec3(v.z, v.y, v.x) -> v.zyx
    """
    resolver = shader.resolver
    for scope, expr in shader.expressions():
        if not isinstance(expr, CallExpression):
            continue
        constructor = expr.callee_name
        if constructor not in VECTOR_TYPES or len(expr.arguments) < 2:
            continue
        arguments = expr.arguments
        if not all(isinstance(arg, MemberAccess) and arg.is_swizzle for arg in arguments):
            continue
        source = arguments[0].object
        if not all(same_expression(arg.object, source) for arg in arguments[1:]):
            continue

        source_type = resolver.type_of(source, scope)
        if not is_vector_type(source_type) or component_type(source_type) != component_type(constructor):
            continue
        indices = [index for arg in arguments for index in arg.component_indices]
        source_size = vector_size(source_type)
        if len(indices) != vector_size(constructor) or any(i >= source_size for i in indices):
            continue

        base = wrap_operand(source, POSTFIX)
        if indices == list(range(source_size)):
            fix = base
        else:
            charset = _swizzle_charset([arg.member for arg in arguments])
            fix = f"{base}.{''.join(charset[i] for i in indices)}"
        yield SWIZZLE_OPPORTUNITY.diagnostic(
            expr.span, constructor, to_source(source), suggested_fix=fix,
        )


# =============================================================================
# dynamic-loop-bound
# =============================================================================


def _assigned_names(expr: Expression) -> set[str]:
    names: set[str] = set()
    for node in walk(expr):
        target = _mutated_variable(node)
        if target is not None:
            names.add(target)
    return names


def loop_variables(loop: ForStatement) -> set[str]:
    """Names declared or assigned in a for-loop's init, or mutated in its increment."""
    names: set[str] = set()
    if isinstance(loop.init, VariableDeclaration):
        names.update(declarator.name for declarator in loop.init.declarators)
    elif isinstance(loop.init, ExpressionStatement):
        names.update(_assigned_names(loop.init.expression))
    if loop.increment is not None:
        names.update(_assigned_names(loop.increment))
    return names


def loop_bound(loop: ForStatement) -> Optional[Expression]:
    """The side of the loop condition compared against the loop variable."""
    condition = loop.condition
    if not isinstance(condition, BinaryExpression) or condition.operator not in _LOOP_COMPARISONS:
        return None
    variables = loop_variables(loop)
    if isinstance(condition.left, Identifier) and condition.left.name in variables:
        return condition.right
    if isinstance(condition.right, Identifier) and condition.right.name in variables:
        return condition.left
    return None


def check_dynamic_loop_bound(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Report for-loops whose bound is not a compile-time constant.

    Bounds that cannot be classified (opaque text, macro calls) are not
    reported.
    """
    resolver = shader.resolver
    for function in shader.function_definitions():
        for node in walk(function.body):
            if not isinstance(node, ForStatement):
                continue
            bound = loop_bound(node)
            if bound is None:
                continue
            if resolver.constness(bound, function.name) == Constness.DYNAMIC:
                yield DYNAMIC_LOOP_BOUND.diagnostic(bound.span, to_source(bound))


# =============================================================================
# fragment-uv-mutation
# =============================================================================


def _base_identifier(expr: Expression) -> Optional[str]:
    while isinstance(expr, (MemberAccess, IndexExpression)):
        expr = expr.object
    return expr.name if isinstance(expr, Identifier) else None


def _mutated_variable(node: object) -> Optional[str]:
    """Name of the variable an assignment or ++/-- writes to."""
    if isinstance(node, Assignment):
        return _base_identifier(node.target)
    if isinstance(node, UnaryExpression) and node.operator.is_mutation:
        return _base_identifier(node.operand)
    return None


def is_texture_coordinate_name(name: str) -> bool:
    """
    Whether a name reads as a texture coordinate.

    Example:
        uv, in_uv0, fragUV, tex_coord, texCoords -> True
    """
    words = split_words(name)
    if any(_UV_WORD.match(word) for word in words):
        return True
    return any(a == "tex" and b.startswith("coord") for a, b in zip(words, words[1:]))


def _is_texture_coordinate(shader: AnnotatedShader, name: str, scope: str, at: SourceSpan) -> bool:
    if is_texture_coordinate_name(name):
        return True
    symbol = shader.symbols.lookup(name, scope, at)
    return (
        symbol is not None
        and symbol.role == SymbolRole.STAGE_INPUT
        and symbol.type_name == "vec2"
    )


def _references(expr: Expression, name: str) -> bool:
    return any(isinstance(node, Identifier) and node.name == name for node in walk(expr))


def check_fragment_uv_mutation(shader: AnnotatedShader) -> Iterator[Diagnostic]:
    """
    Report texture coordinates modified before being used to sample.

    Fragment shaders only, and only in functions reachable from main. The
    assignment is reported once, however many samples follow it.
    """
    if shader.stage != ShaderStage.FRAGMENT:
        return
    reachable = shader.reachable_functions
    for function in shader.function_definitions():
        if function.name not in reachable:
            continue

        mutations: list[tuple[str, Expression]] = []
        samples: list[CallExpression] = []
        for node in walk(function.body):
            target = _mutated_variable(node)
            if target is not None:
                if _is_texture_coordinate(shader, target, function.name, node.span):
                    mutations.append((target, node))
            elif (
                isinstance(node, CallExpression)
                and is_sampling_function(node.callee_name)
                and len(node.arguments) >= 2
            ):
                samples.append(node)

        for name, mutation in mutations:
            end = (mutation.span.end_line, mutation.span.end_col)
            for sample in samples:
                start = (sample.span.start_line, sample.span.start_col)
                if start >= end and _references(sample.arguments[1], name):
                    yield FRAGMENT_UV_MUTATION.diagnostic(mutation.span, name)
                    break
