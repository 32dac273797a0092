"""
Expression resolution against the symbol table.

Two questions pattern rules need answered about an expression:

- Constness: is it a compile-time constant, a runtime value, or something
  the linter cannot tell (opaque text, macro calls)?
- Type: what shading-language type does it evaluate to, when that can be
  determined from declarations, literals and built-in signatures?

Resolution is deliberately partial. Whenever an answer is not certain the
resolver says so (``Constness.UNKNOWN`` or a ``None`` type), so rules can
stay silent instead of guessing.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Iterable, Optional

from shaderlint.lint.symbols import SymbolRole, SymbolTable
from shaderlint.syntax.ast_nodes import (
    Assignment,
    BinaryExpression,
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
from shaderlint.syntax.tokens import BUILTIN_TYPES, MATRIX_TYPES, SCALAR_TYPES


class Constness(Enum):
    """Whether an expression is known at compile time."""

    CONSTANT = "constant"
    DYNAMIC = "dynamic"
    UNKNOWN = "unknown"

    @staticmethod
    def combine(parts: Iterable["Constness"]) -> "Constness":
        """Unknown wins over dynamic, dynamic wins over constant."""
        result = Constness.CONSTANT
        for part in parts:
            if part == Constness.UNKNOWN:
                return Constness.UNKNOWN
            if part == Constness.DYNAMIC:
                result = Constness.DYNAMIC
        return result


# =============================================================================
# Type Helpers
# =============================================================================

_VECTOR_PATTERN = re.compile(r"^([ibud]?)vec([234])$")
_MATRIX_PATTERN = re.compile(r"^(d?)mat([234])(?:x([234]))?$")

_PREFIX_COMPONENTS: dict[str, str] = {
    "": "float",
    "i": "int",
    "u": "uint",
    "b": "bool",
    "d": "double",
}
_COMPONENT_PREFIXES: dict[str, str] = {v: k for k, v in _PREFIX_COMPONENTS.items()}

_FLOAT_COMPONENTS: frozenset[str] = frozenset({"float", "double"})
_INTEGER_COMPONENTS: frozenset[str] = frozenset({"int", "uint"})


def vector_size(type_name: Optional[str]) -> int:
    """Number of components of a scalar or vector type, 0 for anything else."""
    if type_name is None:
        return 0
    if type_name in SCALAR_TYPES and type_name != "void":
        return 1
    match = _VECTOR_PATTERN.match(type_name)
    return int(match.group(2)) if match else 0


def component_type(type_name: Optional[str]) -> Optional[str]:
    """Scalar component type of a scalar, vector or matrix type."""
    if type_name is None:
        return None
    if type_name in SCALAR_TYPES and type_name != "void":
        return type_name
    match = _VECTOR_PATTERN.match(type_name)
    if match:
        return _PREFIX_COMPONENTS[match.group(1)]
    match = _MATRIX_PATTERN.match(type_name)
    if match:
        return "double" if match.group(1) else "float"
    return None


def vector_type(component: Optional[str], size: int) -> Optional[str]:
    """Build a scalar or vector type name: ('float', 3) -> 'vec3'."""
    if component not in _COMPONENT_PREFIXES or not 1 <= size <= 4:
        return None
    if size == 1:
        return component
    return f"{_COMPONENT_PREFIXES[component]}vec{size}"


def is_vector_type(type_name: Optional[str]) -> bool:
    return type_name is not None and _VECTOR_PATTERN.match(type_name) is not None


def is_matrix_type(type_name: Optional[str]) -> bool:
    return type_name is not None and type_name in MATRIX_TYPES


def is_float_type(type_name: Optional[str]) -> bool:
    """Whether a type is float/double based (scalar, vector or matrix)."""
    return component_type(type_name) in _FLOAT_COMPONENTS


def _matrix_column_type(type_name: str) -> Optional[str]:
    match = _MATRIX_PATTERN.match(type_name)
    if not match:
        return None
    rows = int(match.group(3) or match.group(2))
    return vector_type("double" if match.group(1) else "float", rows)


def _element_type(type_name: str) -> Optional[str]:
    """Type produced by indexing a value of the given type."""
    if type_name.endswith("]"):
        return type_name[: type_name.rindex("[")]
    if is_vector_type(type_name):
        return component_type(type_name)
    if is_matrix_type(type_name):
        return _matrix_column_type(type_name)
    return None


# =============================================================================
# Built-in Signatures
# =============================================================================

# Functions whose result has the type of their first argument
_GENTYPE_FUNCTIONS: frozenset[str] = frozenset({
    "abs", "sign", "floor", "ceil", "fract", "round", "roundEven", "trunc",
    "mod", "min", "max", "clamp", "mix", "step", "smoothstep",
    "sqrt", "inversesqrt", "pow", "exp", "exp2", "log", "log2",
    "sin", "cos", "tan", "asin", "acos", "atan", "sinh", "cosh", "tanh",
    "radians", "degrees", "normalize", "reflect", "refract", "faceforward",
    "cross", "dFdx", "dFdy", "fwidth", "dFdxFine", "dFdyFine", "dFdxCoarse",
    "dFdyCoarse", "transpose", "inverse",
})

# Functions returning a scalar of the first argument's component type
_REDUCING_FUNCTIONS: frozenset[str] = frozenset({"length", "distance", "dot", "determinant"})

_SAMPLING_FUNCTIONS: frozenset[str] = frozenset({
    "texture", "textureLod", "textureOffset", "textureLodOffset", "textureProj",
    "textureProjLod", "textureProjOffset", "textureGrad", "textureGradOffset",
    "textureGather", "textureGatherOffset", "texelFetch", "texelFetchOffset",
    "subpassLoad", "imageLoad",
})

_TEXTURE_QUERIES: frozenset[str] = frozenset({
    "textureSize", "textureQueryLod", "textureQueryLevels", "textureSamples",
})

_PURE_BUILTIN_FUNCTIONS: frozenset[str] = (
    _GENTYPE_FUNCTIONS | _REDUCING_FUNCTIONS
    | frozenset({"any", "all", "not", "lessThan", "greaterThan", "equal", "notEqual"})
)

BUILTIN_VARIABLE_TYPES: dict[str, str] = {
    "gl_Position": "vec4",
    "gl_PointSize": "float",
    "gl_VertexIndex": "int",
    "gl_InstanceIndex": "int",
    "gl_VertexID": "int",
    "gl_InstanceID": "int",
    "gl_FragCoord": "vec4",
    "gl_FrontFacing": "bool",
    "gl_PointCoord": "vec2",
    "gl_FragDepth": "float",
    "gl_SampleID": "int",
    "gl_GlobalInvocationID": "uvec3",
    "gl_LocalInvocationID": "uvec3",
    "gl_WorkGroupID": "uvec3",
    "gl_NumWorkGroups": "uvec3",
    "gl_WorkGroupSize": "uvec3",
    "gl_LocalInvocationIndex": "uint",
}


def is_sampling_function(name: Optional[str]) -> bool:
    """Whether a call name is a texture sampling or texel fetch function."""
    if name is None or name in _TEXTURE_QUERIES:
        return False
    return name.startswith(("texture", "texelFetch"))


def _sample_result_type(sampler_type: Optional[str]) -> Optional[str]:
    if sampler_type is None:
        return None
    if "Shadow" in sampler_type:
        return "float"
    if sampler_type.startswith(("isampler", "itexture", "iimage", "isubpass")):
        return "ivec4"
    if sampler_type.startswith(("usampler", "utexture", "uimage", "usubpass")):
        return "uvec4"
    return "vec4"


# =============================================================================
# Resolver
# =============================================================================


class ExpressionResolver:
    """
    Resolves constness and types of expressions within one shader.

    Usage:
        resolver = ExpressionResolver(symbols, user_functions={"shade"})
        resolver.constness(expr, scope="main")
        resolver.type_of(expr, scope="main")
    """

    def __init__(self, symbols: SymbolTable, user_functions: Iterable[str] = ()) -> None:
        self._symbols = symbols
        self._user_functions = frozenset(user_functions)

    @property
    def symbols(self) -> SymbolTable:
        return self._symbols

    # -------------------------------------------------------------------------
    # Constness
    # -------------------------------------------------------------------------

    def constness(self, expr: Expression, scope: Optional[str] = None) -> Constness:
        """
        Classify an expression as compile-time constant, dynamic or unknown.

        Constants are literals, const-qualified variables, macros, gl_Max*
        built-ins and expressions built only from those with operators,
        constructors and pure built-in functions.
        """
        if isinstance(expr, (IntegerLiteral, FloatLiteral, BooleanLiteral, StringLiteral)):
            return Constness.CONSTANT

        if isinstance(expr, OpaqueExpression):
            return Constness.UNKNOWN

        if isinstance(expr, Identifier):
            return self._identifier_constness(expr, scope)

        if isinstance(expr, BinaryExpression):
            return Constness.combine(
                self.constness(part, scope) for part in (expr.left, expr.right)
            )

        if isinstance(expr, UnaryExpression):
            if expr.operator.is_mutation:
                return Constness.DYNAMIC
            return self.constness(expr.operand, scope)

        if isinstance(expr, MemberAccess):
            return self.constness(expr.object, scope)

        if isinstance(expr, IndexExpression):
            return Constness.combine(
                self.constness(part, scope) for part in (expr.object, expr.index)
            )

        if isinstance(expr, ConditionalExpression):
            return Constness.combine(
                self.constness(part, scope)
                for part in (expr.condition, expr.then_expr, expr.else_expr)
            )

        if isinstance(expr, Assignment):
            return Constness.DYNAMIC

        if isinstance(expr, CommaExpression):
            return Constness.combine(self.constness(e, scope) for e in expr.expressions)

        if isinstance(expr, InitializerList):
            return Constness.combine(self.constness(e, scope) for e in expr.elements)

        if isinstance(expr, CallExpression):
            return self._call_constness(expr, scope)

        return Constness.UNKNOWN

    def _identifier_constness(self, expr: Identifier, scope: Optional[str]) -> Constness:
        if expr.name in self._symbols.macros or expr.name.startswith("gl_Max"):
            return Constness.CONSTANT
        symbol = self._symbols.lookup(expr.name, scope, expr.span)
        if symbol is not None and symbol.role == SymbolRole.CONSTANT:
            return Constness.CONSTANT
        return Constness.DYNAMIC

    def _call_constness(self, expr: CallExpression, scope: Optional[str]) -> Constness:
        name = expr.callee_name
        if name is None:
            # e.g. arr.length(): constant only for sized arrays
            return Constness.UNKNOWN
        arguments = Constness.combine(self.constness(arg, scope) for arg in expr.arguments)
        base_name = name[:-2] if name.endswith("[]") else name
        if base_name in BUILTIN_TYPES or self._symbols.is_struct_type(base_name):
            return arguments
        if name in _PURE_BUILTIN_FUNCTIONS:
            return arguments
        if name in self._user_functions:
            return Constness.DYNAMIC
        return Constness.UNKNOWN

    # -------------------------------------------------------------------------
    # Types
    # -------------------------------------------------------------------------

    def type_of(self, expr: Expression, scope: Optional[str] = None) -> Optional[str]:
        """
        Determine the type of an expression.

        Returns:
            The type name (e.g. 'vec3', 'float', 'Light'), or None when it
            cannot be determined
        """
        if isinstance(expr, IntegerLiteral):
            return "uint" if expr.is_unsigned else "int"
        if isinstance(expr, FloatLiteral):
            return "double" if expr.text.lower().endswith("lf") else "float"
        if isinstance(expr, BooleanLiteral):
            return "bool"
        if isinstance(expr, Identifier):
            return self._identifier_type(expr, scope)
        if isinstance(expr, MemberAccess):
            return self._member_type(expr, scope)
        if isinstance(expr, IndexExpression):
            object_type = self.type_of(expr.object, scope)
            return _element_type(object_type) if object_type else None
        if isinstance(expr, BinaryExpression):
            if expr.operator.is_comparison or expr.operator.name in ("AND", "OR", "XOR"):
                return "bool"
            return self._arithmetic_type(
                expr.operator.name,
                self.type_of(expr.left, scope),
                self.type_of(expr.right, scope),
            )
        if isinstance(expr, UnaryExpression):
            if expr.operator == UnaryOperator.NOT:
                return "bool"
            return self.type_of(expr.operand, scope)
        if isinstance(expr, ConditionalExpression):
            then_type = self.type_of(expr.then_expr, scope)
            return then_type if then_type == self.type_of(expr.else_expr, scope) else None
        if isinstance(expr, Assignment):
            return self.type_of(expr.target, scope)
        if isinstance(expr, CommaExpression):
            return self.type_of(expr.expressions[-1], scope)
        if isinstance(expr, CallExpression):
            return self._call_type(expr, scope)
        return None

    def _identifier_type(self, expr: Identifier, scope: Optional[str]) -> Optional[str]:
        if expr.name in BUILTIN_VARIABLE_TYPES:
            return BUILTIN_VARIABLE_TYPES[expr.name]
        if expr.name in self._symbols.macros:
            return None
        symbol = self._symbols.lookup(expr.name, scope, expr.span)
        return symbol.type_name if symbol is not None else None

    def _member_type(self, expr: MemberAccess, scope: Optional[str]) -> Optional[str]:
        object_type = self.type_of(expr.object, scope)
        if object_type is None:
            return None
        if is_vector_type(object_type) or object_type in SCALAR_TYPES:
            if not expr.is_swizzle:
                return None
            size = vector_size(object_type)
            if any(index >= size for index in expr.component_indices):
                return None
            return vector_type(component_type(object_type), len(expr.member))
        return self._symbols.field_type(object_type, expr.member)

    @staticmethod
    def _arithmetic_type(operator: str, left: Optional[str], right: Optional[str]) -> Optional[str]:
        if left is None or right is None:
            return None
        if operator in ("SHL", "SHR"):
            return left
        if left == right:
            return left

        left_size, right_size = vector_size(left), vector_size(right)
        left_component, right_component = component_type(left), component_type(right)

        # Implicit int -> float conversion between scalars and vectors
        if left_component != right_component:
            if {left_component, right_component} <= (_FLOAT_COMPONENTS | _INTEGER_COMPONENTS):
                if left_size == 1 and right_size == 1:
                    return "double" if "double" in (left_component, right_component) else "float"
            return None

        if left_size == 1 and right_size > 1:
            return right
        if right_size == 1 and left_size > 1:
            return left
        if is_matrix_type(left) and right_size == 1:
            return left
        if is_matrix_type(right) and left_size == 1:
            return right
        if operator == "MUL":
            if is_matrix_type(left) and right_size > 1:
                return _matrix_column_type(left)
            if is_vector_type(left) and is_matrix_type(right):
                match = _MATRIX_PATTERN.match(right)
                if match:
                    return vector_type(left_component, int(match.group(2)))
        return None

    def _call_type(self, expr: CallExpression, scope: Optional[str]) -> Optional[str]:
        name = expr.callee_name
        if name is None:
            return None
        if name.endswith("[]"):
            return None
        if name in BUILTIN_TYPES or self._symbols.is_struct_type(name):
            return name
        if name in self._user_functions:
            symbol = self._symbols.function(name)
            return symbol.type_name if symbol is not None else None
        if not expr.arguments:
            return None
        first = self.type_of(expr.arguments[0], scope)
        if name in _GENTYPE_FUNCTIONS:
            return first
        if name in _REDUCING_FUNCTIONS:
            return component_type(first)
        if name in _SAMPLING_FUNCTIONS:
            return _sample_result_type(first)
        return None
