"""
Symbol classification for shader source.

The classifier walks the declarations of a translation unit once and tags
every declared name with its role (stage input, uniform, struct field,
function parameter, ...) and the case style it was written in. The AST is
never modified; the result is a side table consumed by the naming and
ordering rules and by expression resolution.

Example:
    table = classify_symbols(unit)
    for symbol in table.by_role(SymbolRole.STRUCT_TYPE):
        print(symbol.name, symbol.case_style)
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional

from shaderlint.syntax.ast_nodes import (
    BaseASTVisitor,
    Block,
    ForStatement,
    Function,
    GlobalVariable,
    InputAttachment,
    InterfaceBlock,
    Parameter,
    Sampler,
    StageIO,
    Struct,
    StructField,
    TranslationUnit,
    UniformBlock,
    VariableDeclaration,
)
from shaderlint.utils.diagnostics import SourceSpan


# =============================================================================
# Roles and Case Styles
# =============================================================================


class SymbolRole(Enum):
    """The role a declared name plays in a shader."""

    STAGE_INPUT = "stage input"
    STAGE_OUTPUT = "stage output"
    INPUT_ATTACHMENT = "input attachment"
    SAMPLER = "sampler"
    UNIFORM_BLOCK = "uniform block"
    PUSH_CONSTANT = "push constant block"
    STORAGE_BUFFER = "storage buffer"
    INTERFACE_BLOCK = "interface block"
    UNIFORM = "uniform"
    STRUCT_TYPE = "struct"
    STRUCT_FIELD = "struct field"
    FUNCTION = "function"
    PARAMETER_IN = "parameter"
    PARAMETER_OUT = "out parameter"
    PARAMETER_INOUT = "inout parameter"
    LOCAL_VARIABLE = "local variable"
    GLOBAL_VARIABLE = "global variable"
    CONSTANT = "constant"
    MACRO = "macro"

    @property
    def is_type_name(self) -> bool:
        return self in _TYPE_ROLES

    @property
    def is_parameter(self) -> bool:
        return self in (
            SymbolRole.PARAMETER_IN,
            SymbolRole.PARAMETER_OUT,
            SymbolRole.PARAMETER_INOUT,
        )

    @property
    def holds_value(self) -> bool:
        """Whether an identifier with this role names a value in expressions."""
        return not self.is_type_name and self not in (
            SymbolRole.STRUCT_FIELD,
            SymbolRole.FUNCTION,
            SymbolRole.MACRO,
        )


_TYPE_ROLES: frozenset[SymbolRole] = frozenset({
    SymbolRole.STRUCT_TYPE,
    SymbolRole.UNIFORM_BLOCK,
    SymbolRole.PUSH_CONSTANT,
    SymbolRole.STORAGE_BUFFER,
    SymbolRole.INTERFACE_BLOCK,
})

_PARAMETER_ROLES: dict[str, SymbolRole] = {
    "in": SymbolRole.PARAMETER_IN,
    "out": SymbolRole.PARAMETER_OUT,
    "inout": SymbolRole.PARAMETER_INOUT,
}


class CaseStyle(Enum):
    """Naming case styles."""

    LOWER_SNAKE = "lower_snake_case"
    UPPER_SNAKE = "UPPER_SNAKE_CASE"
    UPPER_CAMEL = "UpperCamelCase"
    LOWER_CAMEL = "lowerCamelCase"
    OTHER = "mixed case"


_LOWER_SNAKE = re.compile(r"^[a-z][a-z0-9]*(_[a-z0-9]+)*$")
_UPPER_SNAKE = re.compile(r"^[A-Z][A-Z0-9]*(_[A-Z0-9]+)*$")
_UPPER_CAMEL = re.compile(r"^[A-Z][a-zA-Z0-9]*$")
_LOWER_CAMEL = re.compile(r"^[a-z][a-zA-Z0-9]*$")

_STYLE_PATTERNS: dict[CaseStyle, re.Pattern[str]] = {
    CaseStyle.LOWER_SNAKE: _LOWER_SNAKE,
    CaseStyle.UPPER_SNAKE: _UPPER_SNAKE,
    CaseStyle.UPPER_CAMEL: _UPPER_CAMEL,
    CaseStyle.LOWER_CAMEL: _LOWER_CAMEL,
}

_WORD_BOUNDARY_LOWER = re.compile(r"([a-z0-9])([A-Z])")
_WORD_BOUNDARY_ACRONYM = re.compile(r"([A-Z]+)([A-Z][a-z])")


def classify_case(name: str) -> CaseStyle:
    """
    Determine the case style a name is written in.

    Names that satisfy several styles resolve in declaration order of
    ``CaseStyle`` (so 'LIGHTS' is UPPER_SNAKE, not UPPER_CAMEL).
    """
    for style, pattern in _STYLE_PATTERNS.items():
        if pattern.match(name):
            return style
    return CaseStyle.OTHER


def matches_style(name: str, style: CaseStyle) -> bool:
    """Check a name against one case style."""
    pattern = _STYLE_PATTERNS.get(style)
    return pattern is not None and pattern.match(name) is not None


def split_words(name: str) -> list[str]:
    """Split an identifier into lowercase words, e.g. 'lightHDRColor' -> light, hdr, color."""
    spaced = _WORD_BOUNDARY_ACRONYM.sub(r"\1_\2", name)
    spaced = _WORD_BOUNDARY_LOWER.sub(r"\1_\2", spaced)
    return [word.lower() for word in spaced.split("_") if word]


def to_lower_snake(name: str) -> str:
    """Convert a name to lower_snake_case: 'lightData' -> 'light_data'."""
    return "_".join(split_words(name)) or name


def to_upper_camel(name: str) -> str:
    """Convert a name to UpperCamelCase: 'light_data' -> 'LightData'."""
    return "".join(word[:1].upper() + word[1:] for word in split_words(name)) or name


def to_upper_snake(name: str) -> str:
    return to_lower_snake(name).upper()


# =============================================================================
# Symbol Table
# =============================================================================


@dataclass(frozen=True, slots=True)
class SymbolInfo:
    """
    A declared name and what is known about it.

    Attributes:
        name: The declared name
        role: What the name declares
        case_style: The case style the name is written in
        span: Span of the name at its declaration
        type_name: Declared type (return type for functions, the block
            name for block instances), None for type names and macros
        is_const: Whether the declaration is const-qualified
        scope: Owning function name, None for globals
        owner: Enclosing struct or block type for fields and members of
            instanced blocks, None otherwise
        visible: For locals, the source range the name is visible in:
            from the end of its declarator to the end of the enclosing
            block (or loop statement). None for globals and parameters.
    """

    name: str
    role: SymbolRole
    case_style: CaseStyle
    span: SourceSpan
    type_name: Optional[str] = None
    is_const: bool = False
    scope: Optional[str] = None
    owner: Optional[str] = None
    visible: Optional[SourceSpan] = None

    @property
    def is_builtin(self) -> bool:
        return self.name.startswith("gl_")


class SymbolTable:
    """
    Side table from declared names to roles.

    Symbols are kept in declaration order; the same name may appear more
    than once (e.g. locals of different functions).
    """

    def __init__(self) -> None:
        self._symbols: list[SymbolInfo] = []
        self._types: dict[str, dict[str, str]] = {}

    def add(self, symbol: SymbolInfo) -> None:
        self._symbols.append(symbol)

    def declare_type(self, name: str, fields: dict[str, str]) -> None:
        """Record the field types of a struct or block type."""
        self._types.setdefault(name, fields)

    def __iter__(self) -> Iterator[SymbolInfo]:
        return iter(self._symbols)

    def __len__(self) -> int:
        return len(self._symbols)

    def __contains__(self, name: object) -> bool:
        return any(symbol.name == name for symbol in self._symbols)

    def by_role(self, *roles: SymbolRole) -> list[SymbolInfo]:
        """Get all symbols with one of the given roles, in declaration order."""
        return [symbol for symbol in self._symbols if symbol.role in roles]

    def roles_of(self, name: str) -> set[SymbolRole]:
        return {symbol.role for symbol in self._symbols if symbol.name == name}

    def lookup(
        self,
        name: str,
        scope: Optional[str] = None,
        at: Optional[SourceSpan] = None,
    ) -> Optional[SymbolInfo]:
        """
        Resolve a name used as a value inside ``scope`` at span ``at``.

        The innermost local whose visible range contains the use wins,
        then a parameter of the scope, then a global. When the scope has
        locals of that name but no use position is given, the answer is
        undecidable and None is returned. Type names, functions, macros
        and members of instanced blocks never resolve.
        """
        local: Optional[SymbolInfo] = None
        parameter: Optional[SymbolInfo] = None
        found: Optional[SymbolInfo] = None
        for symbol in self._symbols:
            if symbol.name != name or symbol.owner is not None or not symbol.role.holds_value:
                continue
            if symbol.scope is None:
                if found is None:
                    found = symbol
            elif scope is not None and symbol.scope == scope:
                if symbol.visible is None:
                    if parameter is None:
                        parameter = symbol
                elif at is None:
                    return None
                elif symbol.visible.contains(at) and (
                    local is None or symbol.visible.sort_key > local.visible.sort_key
                ):
                    local = symbol
        return local or parameter or found

    def function(self, name: str) -> Optional[SymbolInfo]:
        for symbol in self._symbols:
            if symbol.role == SymbolRole.FUNCTION and symbol.name == name:
                return symbol
        return None

    @property
    def macros(self) -> frozenset[str]:
        return frozenset(s.name for s in self._symbols if s.role == SymbolRole.MACRO)

    def is_struct_type(self, name: str) -> bool:
        return name in self._types

    def field_type(self, type_name: str, field_name: str) -> Optional[str]:
        """Type of a field of a struct or block type, None if unknown."""
        return self._types.get(type_name, {}).get(field_name)

    def __repr__(self) -> str:
        return f"SymbolTable(symbols={len(self._symbols)}, types={len(self._types)})"


# =============================================================================
# Classifier
# =============================================================================


class SymbolClassifier(BaseASTVisitor):
    """
    AST visitor that builds a SymbolTable from a translation unit.

    Usage:
        table = SymbolClassifier().classify(unit)
    """

    def __init__(self) -> None:
        self._table = SymbolTable()
        self._scope: Optional[str] = None
        self._regions: list[SourceSpan] = []
        self._seen_functions: set[str] = set()
        self._defined_functions: set[str] = set()

    def classify(self, unit: TranslationUnit) -> SymbolTable:
        """
        Classify every declared name in a translation unit.

        Args:
            unit: The parsed translation unit

        Returns:
            The populated symbol table
        """
        self._table = SymbolTable()
        self._scope = None
        self._regions = []
        self._seen_functions = set()
        self._defined_functions = {f.name for f in unit.functions if not f.is_prototype}

        for directive in unit.directives:
            if directive.macro_name and directive.macro_span is not None:
                self._define(directive.macro_name, SymbolRole.MACRO, directive.macro_span)

        self.visit(unit)
        return self._table

    def _define(
        self,
        name: str,
        role: SymbolRole,
        span: SourceSpan,
        type_name: Optional[str] = None,
        is_const: bool = False,
        owner: Optional[str] = None,
        visible: Optional[SourceSpan] = None,
    ) -> None:
        self._table.add(SymbolInfo(
            name=name,
            role=role,
            case_style=classify_case(name),
            span=span,
            type_name=type_name,
            is_const=is_const,
            scope=self._scope,
            owner=owner,
            visible=visible,
        ))

    def _define_members(
        self,
        type_name: str,
        type_role: SymbolRole,
        type_span: SourceSpan,
        fields: tuple[StructField, ...],
        member_role: SymbolRole,
        instance_name: Optional[str],
        instance_span: Optional[SourceSpan],
    ) -> None:
        """Define a block type, its members and its instance."""
        self._define(type_name, type_role, type_span)
        self._table.declare_type(type_name, {f.name: str(f.type) for f in fields})
        owner = type_name if instance_name else None
        for f in fields:
            self._define(f.name, member_role, f.name_span, str(f.type), owner=owner)
        if instance_name and instance_span is not None:
            self._define(instance_name, member_role, instance_span, type_name)

    # -------------------------------------------------------------------------
    # Declarations
    # -------------------------------------------------------------------------

    def visit_stage_io(self, node: StageIO) -> None:
        role = SymbolRole.STAGE_OUTPUT if node.direction == "out" else SymbolRole.STAGE_INPUT
        self._define(node.name, role, node.name_span, str(node.type))

    def visit_interface_block(self, node: InterfaceBlock) -> None:
        role = SymbolRole.STAGE_OUTPUT if node.direction == "out" else SymbolRole.STAGE_INPUT
        self._define_members(
            node.block_name, SymbolRole.INTERFACE_BLOCK, node.name_span,
            node.fields, role, node.instance_name, node.instance_span,
        )

    def visit_input_attachment(self, node: InputAttachment) -> None:
        self._define(node.name, SymbolRole.INPUT_ATTACHMENT, node.name_span, str(node.type))

    def visit_sampler(self, node: Sampler) -> None:
        self._define(node.name, SymbolRole.SAMPLER, node.name_span, str(node.type))

    def visit_uniform_block(self, node: UniformBlock) -> None:
        if node.is_push_constant:
            type_role = SymbolRole.PUSH_CONSTANT
        elif node.storage == "buffer":
            type_role = SymbolRole.STORAGE_BUFFER
        else:
            type_role = SymbolRole.UNIFORM_BLOCK
        self._define_members(
            node.block_name, type_role, node.name_span,
            node.fields, SymbolRole.UNIFORM, node.instance_name, node.instance_span,
        )

    def visit_struct(self, node: Struct) -> None:
        self._define(node.name, SymbolRole.STRUCT_TYPE, node.name_span)
        self._table.declare_type(node.name, {f.name: str(f.type) for f in node.fields})
        for f in node.fields:
            self._define(
                f.name, SymbolRole.STRUCT_FIELD, f.name_span, str(f.type),
                is_const="const" in f.qualifiers, owner=node.name,
            )

    def visit_global_variable(self, node: GlobalVariable) -> None:
        if not node.type.name:
            # Built-in redeclaration such as 'invariant gl_Position;'
            return
        if node.is_const:
            role = SymbolRole.CONSTANT
        elif node.is_uniform:
            role = SymbolRole.UNIFORM
        else:
            role = SymbolRole.GLOBAL_VARIABLE
        for declarator in node.declarators:
            decl_type = node.type.with_array(declarator.array_sizes)
            self._define(
                declarator.name, role, declarator.name_span, str(decl_type),
                is_const=node.is_const,
            )

    def visit_function(self, node: Function) -> None:
        if node.name not in self._seen_functions:
            self._seen_functions.add(node.name)
            self._define(node.name, SymbolRole.FUNCTION, node.name_span, str(node.return_type))

        # Parameters of a prototype are only classified when no definition exists
        if node.is_prototype and node.name in self._defined_functions:
            return

        self._scope = node.name
        try:
            for param in node.parameters:
                self.visit(param)
            if node.body is not None:
                self.visit(node.body)
        finally:
            self._scope = None

    def visit_parameter(self, node: Parameter) -> None:
        if node.name is None or node.name_span is None:
            return
        self._define(
            node.name,
            _PARAMETER_ROLES[node.direction],
            node.name_span,
            str(node.type),
            is_const="const" in node.qualifiers,
        )

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def visit_block(self, node: Block) -> None:
        self._regions.append(node.span)
        try:
            super().visit_block(node)
        finally:
            self._regions.pop()

    def visit_for_statement(self, node: ForStatement) -> None:
        # Loop variables are visible in the condition, increment and body
        self._regions.append(node.span)
        try:
            super().visit_for_statement(node)
        finally:
            self._regions.pop()

    def visit_variable_declaration(self, node: VariableDeclaration) -> None:
        role = SymbolRole.CONSTANT if node.is_const else SymbolRole.LOCAL_VARIABLE
        region = self._regions[-1] if self._regions else None
        for declarator in node.declarators:
            decl_type = node.type.with_array(declarator.array_sizes)
            visible = None
            if region is not None:
                visible = SourceSpan(
                    start_line=declarator.span.end_line,
                    start_col=declarator.span.end_col,
                    end_line=region.end_line,
                    end_col=region.end_col,
                )
            self._define(
                declarator.name, role, declarator.name_span, str(decl_type),
                is_const=node.is_const, visible=visible,
            )
            if declarator.initializer is not None:
                self.visit(declarator.initializer)


def classify_symbols(unit: TranslationUnit) -> SymbolTable:
    """
    Build the symbol table of a translation unit.

    Args:
        unit: The parsed translation unit

    Returns:
        Symbol table with one entry per declared name
    """
    return SymbolClassifier().classify(unit)


def expected_styles(symbol: SymbolInfo) -> tuple[CaseStyle, ...]:
    """
    The case styles a symbol may be written in; empty if unchecked.

    Type names are UpperCamelCase, const names may be lower_snake_case or
    UPPER_SNAKE_CASE, everything else is lower_snake_case. Built-ins and
    macros are not checked.
    """
    if symbol.is_builtin or symbol.role == SymbolRole.MACRO:
        return ()
    if symbol.role.is_type_name:
        return (CaseStyle.UPPER_CAMEL,)
    if symbol.is_const:
        return (CaseStyle.LOWER_SNAKE, CaseStyle.UPPER_SNAKE)
    return (CaseStyle.LOWER_SNAKE,)


def suggest_name(name: str, style: CaseStyle) -> str:
    """Rewrite a name in the given case style."""
    if style == CaseStyle.UPPER_CAMEL:
        return to_upper_camel(name)
    if style == CaseStyle.UPPER_SNAKE:
        return to_upper_snake(name)
    return to_lower_snake(name)
