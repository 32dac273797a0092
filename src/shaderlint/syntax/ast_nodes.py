"""
Abstract Syntax Tree (AST) node definitions for shader source.

This module defines all AST node types representing the structure of a
shader after parsing: top-level resource and function declarations and,
within function bodies, statements and expressions. Each node is immutable
and carries the source span it was parsed from.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, fields
from enum import Enum, auto
from typing import Any, Iterator, Optional

from shaderlint.utils.diagnostics import SourceSpan


class ASTNode(ABC):
    """Base class for all AST nodes."""

    span: SourceSpan

    @abstractmethod
    def accept(self, visitor: "ASTVisitor") -> Any:
        """Accept a visitor for tree traversal."""
        pass


class ASTVisitor(ABC):
    """
    Visitor pattern base class for AST traversal.

    Implement this to create custom AST processors (symbol collectors,
    lint rules, printers, etc.).
    """

    def visit(self, node: ASTNode) -> Any:
        """Dispatch to the appropriate visit method."""
        return node.accept(self)


def iter_child_nodes(node: ASTNode) -> Iterator[ASTNode]:
    """Yield the direct children of a node in field order."""
    for f in fields(node):
        value = getattr(node, f.name)
        if isinstance(value, ASTNode):
            yield value
        elif isinstance(value, tuple):
            for item in value:
                if isinstance(item, ASTNode):
                    yield item


def walk(node: ASTNode) -> Iterator[ASTNode]:
    """Yield a node and all of its descendants in pre-order."""
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(iter_child_nodes(current))))


# -----------------------------------------------------------------------------
# Expressions
# -----------------------------------------------------------------------------


class Expression(ASTNode):
    """Base class for all expression nodes."""

    pass


@dataclass(frozen=True, slots=True)
class Identifier(Expression):
    """
    A reference to a variable, function, constant or built-in type name.

    Examples:
        albedo, gl_FragCoord, vec3 (as a constructor callee)
    """

    name: str
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_identifier(self)


@dataclass(frozen=True, slots=True)
class IntegerLiteral(Expression):
    """An integer literal, e.g. 42, 0xFFu, 017."""

    value: int
    text: str
    span: SourceSpan

    @property
    def is_unsigned(self) -> bool:
        return self.text[-1:] in ("u", "U")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_integer_literal(self)


@dataclass(frozen=True, slots=True)
class FloatLiteral(Expression):
    """A floating-point literal, e.g. 3.14, .5, 1e-3, 2.0lf."""

    value: float
    text: str
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_float_literal(self)


@dataclass(frozen=True, slots=True)
class BooleanLiteral(Expression):
    """A boolean literal: true or false."""

    value: bool
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_boolean_literal(self)


@dataclass(frozen=True, slots=True)
class StringLiteral(Expression):
    """A string literal, only meaningful as an extension call argument."""

    value: str
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_string_literal(self)


class BinaryOperator(Enum):
    """Binary operator types."""

    # Arithmetic
    ADD = auto()
    SUB = auto()
    MUL = auto()
    DIV = auto()
    MOD = auto()

    # Comparison
    EQ = auto()
    NE = auto()
    LT = auto()
    GT = auto()
    LE = auto()
    GE = auto()

    # Logical
    AND = auto()
    OR = auto()
    XOR = auto()

    # Bitwise
    BIT_AND = auto()
    BIT_OR = auto()
    BIT_XOR = auto()
    SHL = auto()
    SHR = auto()

    @property
    def symbol(self) -> str:
        return _BINARY_SYMBOLS[self]

    @property
    def is_comparison(self) -> bool:
        return self in (
            BinaryOperator.EQ, BinaryOperator.NE, BinaryOperator.LT,
            BinaryOperator.GT, BinaryOperator.LE, BinaryOperator.GE,
        )


_BINARY_SYMBOLS: dict[BinaryOperator, str] = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUB: "-",
    BinaryOperator.MUL: "*",
    BinaryOperator.DIV: "/",
    BinaryOperator.MOD: "%",
    BinaryOperator.EQ: "==",
    BinaryOperator.NE: "!=",
    BinaryOperator.LT: "<",
    BinaryOperator.GT: ">",
    BinaryOperator.LE: "<=",
    BinaryOperator.GE: ">=",
    BinaryOperator.AND: "&&",
    BinaryOperator.OR: "||",
    BinaryOperator.XOR: "^^",
    BinaryOperator.BIT_AND: "&",
    BinaryOperator.BIT_OR: "|",
    BinaryOperator.BIT_XOR: "^",
    BinaryOperator.SHL: "<<",
    BinaryOperator.SHR: ">>",
}


class UnaryOperator(Enum):
    """Unary operator types, prefix and postfix."""

    NEG = auto()       # -
    POS = auto()       # +
    NOT = auto()       # !
    BIT_NOT = auto()   # ~
    PRE_INC = auto()   # ++x
    PRE_DEC = auto()   # --x
    POST_INC = auto()  # x++
    POST_DEC = auto()  # x--

    @property
    def symbol(self) -> str:
        return _UNARY_SYMBOLS[self]

    @property
    def is_postfix(self) -> bool:
        return self in (UnaryOperator.POST_INC, UnaryOperator.POST_DEC)

    @property
    def is_mutation(self) -> bool:
        return self in (
            UnaryOperator.PRE_INC, UnaryOperator.PRE_DEC,
            UnaryOperator.POST_INC, UnaryOperator.POST_DEC,
        )


_UNARY_SYMBOLS: dict[UnaryOperator, str] = {
    UnaryOperator.NEG: "-",
    UnaryOperator.POS: "+",
    UnaryOperator.NOT: "!",
    UnaryOperator.BIT_NOT: "~",
    UnaryOperator.PRE_INC: "++",
    UnaryOperator.PRE_DEC: "--",
    UnaryOperator.POST_INC: "++",
    UnaryOperator.POST_DEC: "--",
}


class AssignmentOperator(Enum):
    """Plain and compound assignment operators."""

    ASSIGN = "="
    ADD = "+="
    SUB = "-="
    MUL = "*="
    DIV = "/="
    MOD = "%="
    BIT_AND = "&="
    BIT_OR = "|="
    BIT_XOR = "^="
    SHL = "<<="
    SHR = ">>="

    @property
    def symbol(self) -> str:
        return self.value

    @property
    def binary_operator(self) -> Optional[BinaryOperator]:
        """The arithmetic operator of a compound assignment, None for '='."""
        if self == AssignmentOperator.ASSIGN:
            return None
        return BinaryOperator[self.name]


@dataclass(frozen=True, slots=True)
class BinaryExpression(Expression):
    """
    A binary operation expression.

    Example:
        a + b, n.x * 0.5, i < count
    """

    left: Expression
    operator: BinaryOperator
    right: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_binary_expression(self)


@dataclass(frozen=True, slots=True)
class UnaryExpression(Expression):
    """
    A unary operation expression, prefix or postfix.

    Example:
        -x, !visible, ++i, i--
    """

    operator: UnaryOperator
    operand: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_unary_expression(self)


@dataclass(frozen=True, slots=True)
class CallExpression(Expression):
    """
    A function call or type constructor.

    Example:
        texture(albedo_map, uv), vec3(1.0), normalize(n)
    """

    callee: Expression
    arguments: tuple[Expression, ...]
    span: SourceSpan

    @property
    def callee_name(self) -> Optional[str]:
        """The called name when the callee is a plain identifier."""
        if isinstance(self.callee, Identifier):
            return self.callee.name
        return None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_call_expression(self)


SWIZZLE_SETS: tuple[str, ...] = ("xyzw", "rgba", "stpq")


@dataclass(frozen=True, slots=True)
class MemberAccess(Expression):
    """
    Member access or swizzle.

    Example:
        light.color, v.xyz, c.rgba
    """

    object: Expression
    member: str
    span: SourceSpan
    member_span: SourceSpan

    @property
    def is_swizzle(self) -> bool:
        """Whether the member spells a swizzle from a single component set."""
        if not 1 <= len(self.member) <= 4:
            return False
        return any(all(c in charset for c in self.member) for charset in SWIZZLE_SETS)

    @property
    def component_indices(self) -> tuple[int, ...]:
        """Component indices selected by a swizzle, e.g. 'zy' -> (2, 1)."""
        for charset in SWIZZLE_SETS:
            if all(c in charset for c in self.member):
                return tuple(charset.index(c) for c in self.member)
        return ()

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_member_access(self)


@dataclass(frozen=True, slots=True)
class IndexExpression(Expression):
    """Array or vector indexing, e.g. weights[i]."""

    object: Expression
    index: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_index_expression(self)


@dataclass(frozen=True, slots=True)
class ConditionalExpression(Expression):
    """Ternary conditional, e.g. lit ? color : ambient."""

    condition: Expression
    then_expr: Expression
    else_expr: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_conditional_expression(self)


@dataclass(frozen=True, slots=True)
class Assignment(Expression):
    """
    Assignment expression, plain or compound.

    Example:
        color = vec4(1.0), uv *= 2.0
    """

    target: Expression
    operator: AssignmentOperator
    value: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_assignment(self)


@dataclass(frozen=True, slots=True)
class CommaExpression(Expression):
    """A comma sequence, e.g. i++, j-- in a for increment."""

    expressions: tuple[Expression, ...]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_comma_expression(self)


@dataclass(frozen=True, slots=True)
class InitializerList(Expression):
    """A brace initializer, e.g. float weights[3] = {0.2, 0.5, 0.3}."""

    elements: tuple[Expression, ...]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_initializer_list(self)


@dataclass(frozen=True, slots=True)
class OpaqueExpression(Expression):
    """
    An expression the parser could not understand.

    Holds the skipped source text. Pattern rules never match inside it.
    """

    text: str
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_opaque_expression(self)


# -----------------------------------------------------------------------------
# Types and Layout
# -----------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class TypeSpec(ASTNode):
    """
    A type reference with optional array dimensions.

    Example:
        vec3, float[4], Light[MAX_LIGHTS], sampler2D
    """

    name: str
    array_sizes: tuple[Optional[Expression], ...]
    span: SourceSpan

    @property
    def is_array(self) -> bool:
        return bool(self.array_sizes)

    def with_array(self, sizes: tuple[Optional[Expression], ...]) -> "TypeSpec":
        """Return a copy with extra array dimensions appended."""
        if not sizes:
            return self
        return TypeSpec(self.name, self.array_sizes + sizes, self.span)

    def __str__(self) -> str:
        return self.name + "[]" * len(self.array_sizes)

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_type_spec(self)


@dataclass(frozen=True, slots=True)
class LayoutEntry(ASTNode):
    """A single layout qualifier entry, e.g. binding = 2 or std140."""

    key: str
    value: Optional[Expression]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_layout_entry(self)


@dataclass(frozen=True, slots=True)
class LayoutQualifier(ASTNode):
    """
    A layout(...) qualifier with its entries in source order.

    Example:
        layout(set = 0, binding = 1, std140)
    """

    entries: tuple[LayoutEntry, ...]
    span: SourceSpan

    def get(self, key: str) -> Optional[LayoutEntry]:
        """Find the last entry with the given key."""
        found = None
        for entry in self.entries:
            if entry.key == key:
                found = entry
        return found

    def has(self, key: str) -> bool:
        return self.get(key) is not None

    def int_value(self, key: str) -> Optional[int]:
        """The integer value of an entry, if it is an integer literal."""
        entry = self.get(key)
        if entry is not None and isinstance(entry.value, IntegerLiteral):
            return entry.value.value
        return None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_layout_qualifier(self)


def _layout_int(layout: Optional[LayoutQualifier], key: str) -> Optional[int]:
    return layout.int_value(key) if layout is not None else None


# -----------------------------------------------------------------------------
# Statements
# -----------------------------------------------------------------------------


class Statement(ASTNode):
    """Base class for all statement nodes."""

    pass


@dataclass(frozen=True, slots=True)
class Block(Statement):
    """A brace-delimited block of statements."""

    statements: tuple[Statement, ...]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_block(self)


@dataclass(frozen=True, slots=True)
class Declarator(ASTNode):
    """
    One declared name within a declaration.

    Example:
        the `weights[3] = {...}` part of `float weights[3] = {...};`
    """

    name: str
    array_sizes: tuple[Optional[Expression], ...]
    initializer: Optional[Expression]
    span: SourceSpan
    name_span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_declarator(self)


@dataclass(frozen=True, slots=True)
class VariableDeclaration(Statement):
    """
    A local variable declaration.

    Example:
        const float INTENSITY = 2.0;
        vec3 n = normalize(normal), l;
    """

    qualifiers: tuple[str, ...]
    type: TypeSpec
    declarators: tuple[Declarator, ...]
    span: SourceSpan

    @property
    def is_const(self) -> bool:
        return "const" in self.qualifiers

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_variable_declaration(self)


@dataclass(frozen=True, slots=True)
class ExpressionStatement(Statement):
    """An expression evaluated for its side effects."""

    expression: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_expression_statement(self)


@dataclass(frozen=True, slots=True)
class EmptyStatement(Statement):
    """A lone semicolon."""

    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_empty_statement(self)


@dataclass(frozen=True, slots=True)
class IfStatement(Statement):
    """An if statement with optional else branch."""

    condition: Expression
    then_branch: Statement
    else_branch: Optional[Statement]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_if_statement(self)


@dataclass(frozen=True, slots=True)
class ForStatement(Statement):
    """
    A C-style for loop.

    Example:
        for (int i = 0; i < LIGHT_COUNT; ++i) { ... }
    """

    init: Optional[Statement]
    condition: Optional[Expression]
    increment: Optional[Expression]
    body: Statement
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_for_statement(self)


@dataclass(frozen=True, slots=True)
class WhileStatement(Statement):
    """A while loop."""

    condition: Expression
    body: Statement
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_while_statement(self)


@dataclass(frozen=True, slots=True)
class DoWhileStatement(Statement):
    """A do { ... } while (...); loop."""

    body: Statement
    condition: Expression
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_do_while_statement(self)


@dataclass(frozen=True, slots=True)
class ReturnStatement(Statement):
    """A return statement with optional value."""

    value: Optional[Expression]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_return_statement(self)


@dataclass(frozen=True, slots=True)
class BreakStatement(Statement):
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_break_statement(self)


@dataclass(frozen=True, slots=True)
class ContinueStatement(Statement):
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_continue_statement(self)


@dataclass(frozen=True, slots=True)
class DiscardStatement(Statement):
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_discard_statement(self)


@dataclass(frozen=True, slots=True)
class OpaqueStatement(Statement):
    """
    A statement kept only as source text.

    Produced for unsupported forms such as switch and for statements the
    parser recovered from.
    """

    text: str
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_opaque_statement(self)


# -----------------------------------------------------------------------------
# Top-level Declarations
# -----------------------------------------------------------------------------


class Declaration(ASTNode):
    """Base class for top-level declarations."""

    pass


@dataclass(frozen=True, slots=True)
class StageIO(Declaration):
    """
    A stage input or output variable.

    Example:
        layout(location = 0) in vec2 uv;
        layout(location = 0) out vec4 frag_color;
    """

    direction: str
    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    type: TypeSpec
    name: str
    span: SourceSpan
    name_span: SourceSpan

    @property
    def location(self) -> Optional[int]:
        return _layout_int(self.layout, "location")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_stage_io(self)


@dataclass(frozen=True, slots=True)
class StructField(ASTNode):
    """A field of a struct or block member."""

    type: TypeSpec
    qualifiers: tuple[str, ...]
    name: str
    span: SourceSpan
    name_span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_struct_field(self)


@dataclass(frozen=True, slots=True)
class InterfaceBlock(Declaration):
    """
    A named in/out interface block between stages.

    Example:
        out VertexData { vec3 normal; vec2 uv; } vs_out;
    """

    direction: str
    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    block_name: str
    fields: tuple[StructField, ...]
    instance_name: Optional[str]
    span: SourceSpan
    name_span: SourceSpan
    instance_span: Optional[SourceSpan]

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_interface_block(self)


@dataclass(frozen=True, slots=True)
class InputAttachment(Declaration):
    """
    A subpass input attachment.

    Example:
        layout(input_attachment_index = 0, set = 0, binding = 0) uniform subpassInput g_albedo;
    """

    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    type: TypeSpec
    name: str
    span: SourceSpan
    name_span: SourceSpan

    @property
    def index(self) -> Optional[int]:
        return _layout_int(self.layout, "input_attachment_index")

    @property
    def set(self) -> Optional[int]:
        return _layout_int(self.layout, "set")

    @property
    def binding(self) -> Optional[int]:
        return _layout_int(self.layout, "binding")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_input_attachment(self)


@dataclass(frozen=True, slots=True)
class Sampler(Declaration):
    """
    An opaque sampler, texture or image resource.

    Example:
        layout(set = 1, binding = 0) uniform sampler2D albedo_map;
    """

    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    type: TypeSpec
    name: str
    span: SourceSpan
    name_span: SourceSpan

    @property
    def set(self) -> Optional[int]:
        return _layout_int(self.layout, "set")

    @property
    def binding(self) -> Optional[int]:
        return _layout_int(self.layout, "binding")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_sampler(self)


@dataclass(frozen=True, slots=True)
class UniformBlock(Declaration):
    """
    A uniform or shader storage block, including push constants.

    Example:
        layout(push_constant) uniform Constants { mat4 model; } pc;
        layout(set = 0, binding = 0) buffer Particles { vec4 positions[]; };
    """

    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    storage: str
    block_name: str
    fields: tuple[StructField, ...]
    instance_name: Optional[str]
    span: SourceSpan
    name_span: SourceSpan
    instance_span: Optional[SourceSpan]

    @property
    def is_push_constant(self) -> bool:
        return self.layout is not None and self.layout.has("push_constant")

    @property
    def set(self) -> Optional[int]:
        return _layout_int(self.layout, "set")

    @property
    def binding(self) -> Optional[int]:
        return _layout_int(self.layout, "binding")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_uniform_block(self)


@dataclass(frozen=True, slots=True)
class Struct(Declaration):
    """
    A struct type definition.

    Example:
        struct Light { vec3 position; vec3 color; };
    """

    name: str
    fields: tuple[StructField, ...]
    span: SourceSpan
    name_span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_struct(self)


@dataclass(frozen=True, slots=True)
class Parameter(ASTNode):
    """
    A function parameter.

    The name is absent for unnamed prototype parameters.
    """

    qualifiers: tuple[str, ...]
    type: TypeSpec
    name: Optional[str]
    span: SourceSpan
    name_span: Optional[SourceSpan]

    @property
    def direction(self) -> str:
        """'in', 'out' or 'inout'; unqualified parameters are 'in'."""
        for qualifier in ("inout", "out"):
            if qualifier in self.qualifiers:
                return qualifier
        return "in"

    @property
    def is_output(self) -> bool:
        return self.direction in ("out", "inout")

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_parameter(self)


@dataclass(frozen=True, slots=True)
class Function(Declaration):
    """
    A function definition or prototype.

    Example:
        vec3 shade(in Light light, out float attenuation_out) { ... }
    """

    qualifiers: tuple[str, ...]
    return_type: TypeSpec
    name: str
    parameters: tuple[Parameter, ...]
    body: Optional[Block]
    span: SourceSpan
    name_span: SourceSpan

    @property
    def is_prototype(self) -> bool:
        return self.body is None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_function(self)


@dataclass(frozen=True, slots=True)
class GlobalVariable(Declaration):
    """
    Any other global variable declaration.

    Example:
        const int LIGHT_COUNT = 4;
        uniform float exposure;
        shared vec4 tile_cache[64];
    """

    layout: Optional[LayoutQualifier]
    qualifiers: tuple[str, ...]
    type: TypeSpec
    declarators: tuple[Declarator, ...]
    span: SourceSpan

    @property
    def is_const(self) -> bool:
        return "const" in self.qualifiers

    @property
    def is_uniform(self) -> bool:
        return "uniform" in self.qualifiers

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_global_variable(self)


@dataclass(frozen=True, slots=True)
class PrecisionDeclaration(Declaration):
    """A default precision statement, e.g. precision highp float;"""

    precision: str
    type: TypeSpec
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_precision_declaration(self)


@dataclass(frozen=True, slots=True)
class LayoutDefault(Declaration):
    """
    A layout default with no declarator.

    Example:
        layout(local_size_x = 8, local_size_y = 8) in;
    """

    layout: LayoutQualifier
    qualifiers: tuple[str, ...]
    span: SourceSpan

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_layout_default(self)


@dataclass(frozen=True, slots=True)
class DirectiveDeclaration(Declaration):
    """
    A preprocessor line at the top level, kept as opaque text.

    For #define, macro_name is the defined name.
    """

    name: str
    text: str
    macro_name: Optional[str]
    span: SourceSpan
    macro_span: Optional[SourceSpan]

    @property
    def is_version(self) -> bool:
        return self.name == "version"

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_directive_declaration(self)


@dataclass(frozen=True, slots=True)
class TranslationUnit(ASTNode):
    """
    The root node: all top-level declarations in source order.

    Directives found inside a declaration (e.g. a #define within a function
    body) are not declarations; they are kept in nested_directives.
    """

    declarations: tuple[Declaration, ...]
    nested_directives: tuple[DirectiveDeclaration, ...]
    span: SourceSpan

    @property
    def directives(self) -> list[DirectiveDeclaration]:
        """Every preprocessor directive in source order."""
        found = [d for d in self.declarations if isinstance(d, DirectiveDeclaration)]
        found.extend(self.nested_directives)
        return sorted(found, key=lambda d: d.span.sort_key)

    @property
    def functions(self) -> list[Function]:
        return [d for d in self.declarations if isinstance(d, Function)]

    def find_function(self, name: str) -> Optional[Function]:
        """Find the definition of a function by name (prototypes skipped)."""
        for decl in self.declarations:
            if isinstance(decl, Function) and decl.name == name and decl.body is not None:
                return decl
        return None

    def accept(self, visitor: ASTVisitor) -> Any:
        return visitor.visit_translation_unit(self)


# -----------------------------------------------------------------------------
# Base Visitor
# -----------------------------------------------------------------------------


class BaseASTVisitor(ASTVisitor):
    """
    Base visitor with default implementations that traverse children.

    Subclass this and override specific visit_* methods as needed.
    """

    def visit_translation_unit(self, node: TranslationUnit) -> Any:
        for decl in node.declarations:
            self.visit(decl)

    # Declarations
    def visit_stage_io(self, node: StageIO) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        self.visit(node.type)

    def visit_interface_block(self, node: InterfaceBlock) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        for f in node.fields:
            self.visit(f)

    def visit_input_attachment(self, node: InputAttachment) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        self.visit(node.type)

    def visit_sampler(self, node: Sampler) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        self.visit(node.type)

    def visit_uniform_block(self, node: UniformBlock) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        for f in node.fields:
            self.visit(f)

    def visit_struct(self, node: Struct) -> Any:
        for f in node.fields:
            self.visit(f)

    def visit_struct_field(self, node: StructField) -> Any:
        self.visit(node.type)

    def visit_function(self, node: Function) -> Any:
        self.visit(node.return_type)
        for param in node.parameters:
            self.visit(param)
        if node.body is not None:
            self.visit(node.body)

    def visit_parameter(self, node: Parameter) -> Any:
        self.visit(node.type)

    def visit_global_variable(self, node: GlobalVariable) -> Any:
        if node.layout is not None:
            self.visit(node.layout)
        self.visit(node.type)
        for declarator in node.declarators:
            self.visit(declarator)

    def visit_precision_declaration(self, node: PrecisionDeclaration) -> Any:
        pass

    def visit_layout_default(self, node: LayoutDefault) -> Any:
        self.visit(node.layout)

    def visit_directive_declaration(self, node: DirectiveDeclaration) -> Any:
        pass

    # Types and layout
    def visit_type_spec(self, node: TypeSpec) -> Any:
        for size in node.array_sizes:
            if size is not None:
                self.visit(size)

    def visit_layout_qualifier(self, node: LayoutQualifier) -> Any:
        for entry in node.entries:
            self.visit(entry)

    def visit_layout_entry(self, node: LayoutEntry) -> Any:
        if node.value is not None:
            self.visit(node.value)

    # Statements
    def visit_block(self, node: Block) -> Any:
        for stmt in node.statements:
            self.visit(stmt)

    def visit_variable_declaration(self, node: VariableDeclaration) -> Any:
        self.visit(node.type)
        for declarator in node.declarators:
            self.visit(declarator)

    def visit_declarator(self, node: Declarator) -> Any:
        for size in node.array_sizes:
            if size is not None:
                self.visit(size)
        if node.initializer is not None:
            self.visit(node.initializer)

    def visit_expression_statement(self, node: ExpressionStatement) -> Any:
        self.visit(node.expression)

    def visit_empty_statement(self, node: EmptyStatement) -> Any:
        pass

    def visit_if_statement(self, node: IfStatement) -> Any:
        self.visit(node.condition)
        self.visit(node.then_branch)
        if node.else_branch is not None:
            self.visit(node.else_branch)

    def visit_for_statement(self, node: ForStatement) -> Any:
        if node.init is not None:
            self.visit(node.init)
        if node.condition is not None:
            self.visit(node.condition)
        if node.increment is not None:
            self.visit(node.increment)
        self.visit(node.body)

    def visit_while_statement(self, node: WhileStatement) -> Any:
        self.visit(node.condition)
        self.visit(node.body)

    def visit_do_while_statement(self, node: DoWhileStatement) -> Any:
        self.visit(node.body)
        self.visit(node.condition)

    def visit_return_statement(self, node: ReturnStatement) -> Any:
        if node.value is not None:
            self.visit(node.value)

    def visit_break_statement(self, node: BreakStatement) -> Any:
        pass

    def visit_continue_statement(self, node: ContinueStatement) -> Any:
        pass

    def visit_discard_statement(self, node: DiscardStatement) -> Any:
        pass

    def visit_opaque_statement(self, node: OpaqueStatement) -> Any:
        pass

    # Expressions
    def visit_identifier(self, node: Identifier) -> Any:
        pass

    def visit_integer_literal(self, node: IntegerLiteral) -> Any:
        pass

    def visit_float_literal(self, node: FloatLiteral) -> Any:
        pass

    def visit_boolean_literal(self, node: BooleanLiteral) -> Any:
        pass

    def visit_string_literal(self, node: StringLiteral) -> Any:
        pass

    def visit_binary_expression(self, node: BinaryExpression) -> Any:
        self.visit(node.left)
        self.visit(node.right)

    def visit_unary_expression(self, node: UnaryExpression) -> Any:
        self.visit(node.operand)

    def visit_call_expression(self, node: CallExpression) -> Any:
        self.visit(node.callee)
        for arg in node.arguments:
            self.visit(arg)

    def visit_member_access(self, node: MemberAccess) -> Any:
        self.visit(node.object)

    def visit_index_expression(self, node: IndexExpression) -> Any:
        self.visit(node.object)
        self.visit(node.index)

    def visit_conditional_expression(self, node: ConditionalExpression) -> Any:
        self.visit(node.condition)
        self.visit(node.then_expr)
        self.visit(node.else_expr)

    def visit_assignment(self, node: Assignment) -> Any:
        self.visit(node.target)
        self.visit(node.value)

    def visit_comma_expression(self, node: CommaExpression) -> Any:
        for expr in node.expressions:
            self.visit(expr)

    def visit_initializer_list(self, node: InitializerList) -> Any:
        for element in node.elements:
            self.visit(element)

    def visit_opaque_expression(self, node: OpaqueExpression) -> Any:
        pass
