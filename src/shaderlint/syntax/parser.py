"""
Shader Parser.

A recursive descent parser that transforms a token stream into an Abstract
Syntax Tree (AST). Implements operator precedence parsing for expressions
and recovers from malformed input at three levels:

- top level: a failed declaration is skipped up to the next ``;`` at brace
  depth 0 or the ``}`` that closes depth 0
- statement level: a failed statement becomes an ``OpaqueStatement``
- expression level: a failed condition, increment, initializer or
  expression statement becomes an ``OpaqueExpression``

Every recovery emits exactly one ``parse-error`` diagnostic.
"""

import logging
import re
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from shaderlint.syntax.tokens import (
    PRECISION_QUALIFIERS,
    SAMPLER_TYPES,
    SUBPASS_TYPES,
    Token,
    TokenType,
)
from shaderlint.syntax.ast_nodes import (
    # Root
    TranslationUnit,
    # Types and layout
    TypeSpec,
    LayoutEntry,
    LayoutQualifier,
    # Expressions
    Expression,
    Identifier,
    IntegerLiteral,
    FloatLiteral,
    BooleanLiteral,
    StringLiteral,
    BinaryExpression,
    UnaryExpression,
    CallExpression,
    MemberAccess,
    IndexExpression,
    ConditionalExpression,
    Assignment,
    CommaExpression,
    InitializerList,
    OpaqueExpression,
    BinaryOperator,
    UnaryOperator,
    AssignmentOperator,
    # Statements
    Statement,
    Block,
    Declarator,
    VariableDeclaration,
    ExpressionStatement,
    EmptyStatement,
    IfStatement,
    ForStatement,
    WhileStatement,
    DoWhileStatement,
    ReturnStatement,
    BreakStatement,
    ContinueStatement,
    DiscardStatement,
    OpaqueStatement,
    # Declarations
    Declaration,
    StageIO,
    StructField,
    InterfaceBlock,
    InputAttachment,
    Sampler,
    UniformBlock,
    Struct,
    Parameter,
    Function,
    GlobalVariable,
    PrecisionDeclaration,
    LayoutDefault,
    DirectiveDeclaration,
)
from shaderlint.utils.diagnostics import Diagnostic, ErrorCode, Severity, SourceSpan
from shaderlint.utils.errors import ParserError, SourceLocation

logger = logging.getLogger(__name__)

# Bound on recursion through statements, unary operators and nested
# expressions. Exceeding it is an ordinary recoverable parse error.
MAX_NESTING_DEPTH = 128

# Bound on the tree depth added by flat operator and postfix chains, such
# as the long sums of an unrolled filter kernel.
MAX_CHAIN_LENGTH = 512

PARSE_ERROR_RULE = "parse-error"
LEX_ERROR_RULE = "lex-error"


# Operator precedence levels (higher = tighter binding)
class Precedence:
    """Operator precedence levels."""

    NONE = 0
    COMMA = 1           # ,
    ASSIGNMENT = 2      # = += -= ... (right associative)
    CONDITIONAL = 3     # ? : (right associative)
    LOGICAL_OR = 4      # ||
    LOGICAL_XOR = 5     # ^^
    LOGICAL_AND = 6     # &&
    BITWISE_OR = 7      # |
    BITWISE_XOR = 8     # ^
    BITWISE_AND = 9     # &
    EQUALITY = 10       # == !=
    RELATIONAL = 11     # < > <= >=
    SHIFT = 12          # << >>
    ADDITIVE = 13       # + -
    MULTIPLICATIVE = 14 # * / %
    UNARY = 15          # - + ! ~ ++ --
    POSTFIX = 16        # () [] . ++ --


# Map token types to binary operators
BINARY_OP_MAP: dict[TokenType, BinaryOperator] = {
    # Arithmetic
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUB,
    TokenType.STAR: BinaryOperator.MUL,
    TokenType.SLASH: BinaryOperator.DIV,
    TokenType.PERCENT: BinaryOperator.MOD,
    # Comparison
    TokenType.EQ: BinaryOperator.EQ,
    TokenType.NE: BinaryOperator.NE,
    TokenType.LT: BinaryOperator.LT,
    TokenType.GT: BinaryOperator.GT,
    TokenType.LE: BinaryOperator.LE,
    TokenType.GE: BinaryOperator.GE,
    # Logical
    TokenType.AND: BinaryOperator.AND,
    TokenType.OR: BinaryOperator.OR,
    TokenType.XOR: BinaryOperator.XOR,
    # Bitwise
    TokenType.AMPERSAND: BinaryOperator.BIT_AND,
    TokenType.PIPE: BinaryOperator.BIT_OR,
    TokenType.CARET: BinaryOperator.BIT_XOR,
    TokenType.LEFT_SHIFT: BinaryOperator.SHL,
    TokenType.RIGHT_SHIFT: BinaryOperator.SHR,
}

ASSIGNMENT_OP_MAP: dict[TokenType, AssignmentOperator] = {
    TokenType.ASSIGN: AssignmentOperator.ASSIGN,
    TokenType.PLUS_ASSIGN: AssignmentOperator.ADD,
    TokenType.MINUS_ASSIGN: AssignmentOperator.SUB,
    TokenType.STAR_ASSIGN: AssignmentOperator.MUL,
    TokenType.SLASH_ASSIGN: AssignmentOperator.DIV,
    TokenType.PERCENT_ASSIGN: AssignmentOperator.MOD,
    TokenType.AND_ASSIGN: AssignmentOperator.BIT_AND,
    TokenType.OR_ASSIGN: AssignmentOperator.BIT_OR,
    TokenType.XOR_ASSIGN: AssignmentOperator.BIT_XOR,
    TokenType.LEFT_SHIFT_ASSIGN: AssignmentOperator.SHL,
    TokenType.RIGHT_SHIFT_ASSIGN: AssignmentOperator.SHR,
}

# Map token types to their precedence
PRECEDENCE_MAP: dict[TokenType, int] = {
    TokenType.COMMA: Precedence.COMMA,
    # Conditional
    TokenType.QUESTION: Precedence.CONDITIONAL,
    # Logical
    TokenType.OR: Precedence.LOGICAL_OR,
    TokenType.XOR: Precedence.LOGICAL_XOR,
    TokenType.AND: Precedence.LOGICAL_AND,
    # Bitwise
    TokenType.PIPE: Precedence.BITWISE_OR,
    TokenType.CARET: Precedence.BITWISE_XOR,
    TokenType.AMPERSAND: Precedence.BITWISE_AND,
    # Equality
    TokenType.EQ: Precedence.EQUALITY,
    TokenType.NE: Precedence.EQUALITY,
    # Relational
    TokenType.LT: Precedence.RELATIONAL,
    TokenType.GT: Precedence.RELATIONAL,
    TokenType.LE: Precedence.RELATIONAL,
    TokenType.GE: Precedence.RELATIONAL,
    # Shift
    TokenType.LEFT_SHIFT: Precedence.SHIFT,
    TokenType.RIGHT_SHIFT: Precedence.SHIFT,
    # Additive
    TokenType.PLUS: Precedence.ADDITIVE,
    TokenType.MINUS: Precedence.ADDITIVE,
    # Multiplicative
    TokenType.STAR: Precedence.MULTIPLICATIVE,
    TokenType.SLASH: Precedence.MULTIPLICATIVE,
    TokenType.PERCENT: Precedence.MULTIPLICATIVE,
}
PRECEDENCE_MAP.update({token_type: Precedence.ASSIGNMENT for token_type in ASSIGNMENT_OP_MAP})

PREFIX_OP_MAP: dict[TokenType, UnaryOperator] = {
    TokenType.MINUS: UnaryOperator.NEG,
    TokenType.PLUS: UnaryOperator.POS,
    TokenType.BANG: UnaryOperator.NOT,
    TokenType.TILDE: UnaryOperator.BIT_NOT,
    TokenType.INCREMENT: UnaryOperator.PRE_INC,
    TokenType.DECREMENT: UnaryOperator.PRE_DEC,
}

_OPENERS = (TokenType.LPAREN, TokenType.LBRACKET, TokenType.LBRACE)
_CLOSERS = (TokenType.RPAREN, TokenType.RBRACKET, TokenType.RBRACE)

_DEFINE_PATTERN = re.compile(r"#\s*define\s+([A-Za-z_][A-Za-z0-9_]*)")


class Parser:
    """
    Recursive descent parser for shader source.

    Parses a stream of tokens into a ``TranslationUnit``. Syntax errors never
    escape: they are collected in ``diagnostics`` together with the lexer's
    ERROR tokens.

    Usage:
        parser = Parser(tokens)
        unit = parser.parse()
        problems = parser.diagnostics
    """

    def __init__(self, tokens: Iterable[Token], filename: Optional[str] = None) -> None:
        """
        Initialize the parser.

        Args:
            tokens: Tokens from the lexer (ERROR and directive tokens included)
            filename: Optional filename for logging
        """
        self._filename = filename
        self.diagnostics: list[Diagnostic] = []
        self.tokens: list[Token] = []
        # (index of the following token, directive token) in source order
        self._directives: list[tuple[int, Token]] = []

        for token in tokens:
            if token.type == TokenType.ERROR:
                self.diagnostics.append(Diagnostic(
                    rule_id=LEX_ERROR_RULE,
                    severity=Severity.ERROR,
                    message=str(token.value),
                    span=token.span,
                    code=ErrorCode.E0101,
                ))
            elif token.type in (TokenType.VERSION_DIRECTIVE, TokenType.DIRECTIVE):
                self._directives.append((len(self.tokens), token))
            else:
                self.tokens.append(token)
                if token.type == TokenType.EOF:
                    break

        if not self.tokens or self.tokens[-1].type != TokenType.EOF:
            self.tokens.append(self._synthetic_eof())

        self.pos = 0
        self._depth = 0
        self._chain = 0
        self._next_directive = 0

    def _synthetic_eof(self) -> Token:
        if self.tokens:
            last = self.tokens[-1]
            return Token(TokenType.EOF, "", None, last.end, last.end)
        if self._directives:
            last = self._directives[-1][1]
            return Token(TokenType.EOF, "", None, last.end, last.end)
        origin = SourceLocation(1, 1, 0, self._filename)
        return Token(TokenType.EOF, "", None, origin, origin)

    # -------------------------------------------------------------------------
    # Token Cursor
    # -------------------------------------------------------------------------

    @property
    def _current(self) -> Token:
        """Get the current token."""
        if self.pos >= len(self.tokens):
            return self.tokens[-1]  # Return EOF
        return self.tokens[self.pos]

    @property
    def _previous(self) -> Token:
        """Get the previous token."""
        return self.tokens[self.pos - 1] if self.pos > 0 else self.tokens[0]

    def _peek(self, offset: int = 1) -> Token:
        """Peek at a token ahead of the current position."""
        pos = self.pos + offset
        if pos >= len(self.tokens):
            return self.tokens[-1]
        return self.tokens[pos]

    def _is_at_end(self) -> bool:
        """Check if we've reached the end of tokens."""
        return self._current.type == TokenType.EOF

    def _check(self, *types: TokenType) -> bool:
        """Check if the current token is one of the given types."""
        return self._current.type in types

    def _advance(self) -> Token:
        """Consume and return the current token."""
        token = self._current
        if not self._is_at_end():
            self.pos += 1
        return token

    def _match(self, *types: TokenType) -> bool:
        """Consume current token if it matches one of the given types."""
        if self._check(*types):
            self._advance()
            return True
        return False

    def _expect(self, token_type: TokenType, what: str) -> Token:
        """Consume current token if it matches, else raise error."""
        if self._check(token_type):
            return self._advance()
        raise self._error(f"expected {what}, found {self._describe(self._current)}")

    def _span_from(self, start: Token) -> SourceSpan:
        """Span from a start token through the last consumed token."""
        end = self._previous
        if end.location.offset < start.location.offset:
            return start.span
        return start.span.to(end.span)

    def _extend(self, span: SourceSpan) -> SourceSpan:
        """Extend a span through the last consumed token."""
        return span.to(self._previous.span)

    @staticmethod
    def _describe(token: Token) -> str:
        if token.type == TokenType.EOF:
            return "end of file"
        return f"'{token.lexeme}'"

    def _error(self, message: str) -> ParserError:
        """Create a parser error at the current token."""
        token = self._current
        return ParserError(message, token.location, token.span)

    def _report(self, error: ParserError) -> None:
        """Record a parse error as a diagnostic."""
        span = error.span if error.span is not None else self._current.span
        self.diagnostics.append(Diagnostic(
            rule_id=PARSE_ERROR_RULE,
            severity=Severity.ERROR,
            message=error.message,
            span=span,
            code=ErrorCode.E0102,
        ))

    @contextmanager
    def _nested(self) -> Iterator[None]:
        """Track one level of recursion, failing past MAX_NESTING_DEPTH."""
        if self._depth >= MAX_NESTING_DEPTH:
            raise self._error("nesting too deep")
        self._depth += 1
        try:
            yield
        finally:
            self._depth -= 1

    def _deepen(self) -> None:
        """Count one more tree level for left-leaning operator and postfix chains."""
        if self._chain >= MAX_CHAIN_LENGTH:
            raise self._error("expression chain too long")
        self._chain += 1

    def _skip_balanced(self, stops: tuple[TokenType, ...]) -> list[Token]:
        """
        Skip tokens until one of ``stops`` at bracket depth 0.

        Stops before an unmatched closing bracket. The stop token itself is
        not consumed.
        """
        skipped: list[Token] = []
        depth = 0
        while not self._is_at_end():
            token = self._current
            if depth == 0 and token.type in stops:
                break
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                if depth == 0:
                    break
                depth -= 1
            skipped.append(self._advance())
        return skipped

    @staticmethod
    def _join(tokens: list[Token]) -> str:
        return " ".join(token.lexeme for token in tokens)

    # -------------------------------------------------------------------------
    # Translation Unit
    # -------------------------------------------------------------------------

    def parse(self) -> TranslationUnit:
        """
        Parse the entire translation unit.

        Returns:
            The root TranslationUnit AST node.
        """
        first = self._current
        declarations: list[Declaration] = []
        nested_directives: list[DirectiveDeclaration] = []

        while True:
            self._collect_directives(declarations, nested_directives)
            if self._is_at_end():
                break
            if self._match(TokenType.SEMICOLON):
                continue

            start_pos = self.pos
            try:
                declarations.extend(self._parse_external_declaration())
            except ParserError as e:
                self._report(e)
                logger.debug(f"Recovering from top-level parse error: {e.message}")
                self.pos = start_pos
                self._skip_declaration()
            if self.pos == start_pos:
                self._advance()

        start = first.span
        if self._directives and self._directives[0][1].span.sort_key < start.sort_key:
            start = self._directives[0][1].span
        span = start.to(self._current.span)
        return TranslationUnit(
            declarations=tuple(declarations),
            nested_directives=tuple(nested_directives),
            span=span,
        )

    def _collect_directives(
        self,
        declarations: list[Declaration],
        nested: list[DirectiveDeclaration],
    ) -> None:
        """Attach directives preceding the current token."""
        while self._next_directive < len(self._directives):
            index, token = self._directives[self._next_directive]
            if index > self.pos:
                break
            self._next_directive += 1
            directive = self._make_directive(token)
            if index == self.pos:
                declarations.append(directive)
            else:
                nested.append(directive)

    @staticmethod
    def _make_directive(token: Token) -> DirectiveDeclaration:
        macro_name = None
        macro_span = None
        match = _DEFINE_PATTERN.match(token.lexeme)
        if match is not None:
            macro_name = match.group(1)
            macro_span = SourceSpan.from_location(
                token.location.line,
                token.location.column + match.start(1),
                len(macro_name),
            )
        return DirectiveDeclaration(
            name=token.directive_name or "",
            text=str(token.value),
            macro_name=macro_name,
            span=token.span,
            macro_span=macro_span,
        )

    def _skip_declaration(self) -> None:
        """
        Resynchronize after a failed top-level declaration.

        Skips to the next ';' at brace depth 0 (consumed) or past the '}'
        that returns to depth 0, together with a trailing 'name;'.
        """
        depth = 0
        while not self._is_at_end():
            token = self._advance()
            if token.type == TokenType.LBRACE:
                depth += 1
            elif token.type == TokenType.RBRACE:
                depth -= 1
                if depth <= 0:
                    if self._check(TokenType.IDENTIFIER) and self._peek().type == TokenType.SEMICOLON:
                        self._advance()
                    self._match(TokenType.SEMICOLON)
                    return
            elif token.type == TokenType.SEMICOLON and depth == 0:
                return

    # -------------------------------------------------------------------------
    # Top-level Declarations
    # -------------------------------------------------------------------------

    def _parse_external_declaration(self) -> list[Declaration]:
        """Parse one top-level declaration (several for multi-declarators)."""
        start = self._current

        if self._check(TokenType.PRECISION):
            return [self._parse_precision()]

        layout, qualifiers = self._parse_qualifier_list()

        if self._check(TokenType.SEMICOLON):
            if layout is None:
                raise self._error(f"expected declaration, found {self._describe(self._current)}")
            self._advance()
            return [LayoutDefault(layout=layout, qualifiers=qualifiers, span=self._span_from(start))]

        if self._check(TokenType.STRUCT):
            return self._parse_struct(start, layout, qualifiers)

        if (
            qualifiers
            and self._check(TokenType.IDENTIFIER)
            and self._peek().type == TokenType.LBRACE
        ):
            return [self._parse_block_declaration(start, layout, qualifiers)]

        if (
            qualifiers
            and self._check(TokenType.IDENTIFIER)
            and self._peek().type in (TokenType.SEMICOLON, TokenType.COMMA)
        ):
            # Redeclaration such as 'invariant gl_Position;'
            type_spec = TypeSpec(name="", array_sizes=(), span=self._current.span)
            declarators = self._parse_declarators(allow_initializer=False)
            self._expect(TokenType.SEMICOLON, "';' after declaration")
            return [GlobalVariable(layout, qualifiers, type_spec, declarators, self._span_from(start))]

        if not self._check(TokenType.TYPE_NAME, TokenType.IDENTIFIER):
            raise self._error(f"expected declaration, found {self._describe(self._current)}")

        type_spec = self._parse_type()

        if self._check(TokenType.IDENTIFIER) and self._peek().type == TokenType.LPAREN:
            return [self._parse_function(start, qualifiers, type_spec)]

        declarators = self._parse_declarators(allow_initializer=True)
        self._expect(TokenType.SEMICOLON, "';' after declaration")
        return self._classify_declaration(start, layout, qualifiers, type_spec, declarators)

    def _parse_qualifier_list(self) -> tuple[Optional[LayoutQualifier], tuple[str, ...]]:
        """Parse any mix of layout(...) and qualifier keywords."""
        layouts: list[LayoutQualifier] = []
        qualifiers: list[str] = []
        while self._check(TokenType.LAYOUT, TokenType.QUALIFIER):
            if self._check(TokenType.LAYOUT):
                layouts.append(self._parse_layout_qualifier())
            else:
                qualifiers.append(self._advance().value)

        layout: Optional[LayoutQualifier] = None
        if len(layouts) == 1:
            layout = layouts[0]
        elif layouts:
            entries = tuple(entry for lq in layouts for entry in lq.entries)
            layout = LayoutQualifier(entries, layouts[0].span.to(layouts[-1].span))
        return layout, tuple(qualifiers)

    def _parse_layout_qualifier(self) -> LayoutQualifier:
        """
        Parse a layout qualifier.

        Syntax:
            layout(key [= constant-expression], ...)
        """
        start = self._expect(TokenType.LAYOUT, "'layout'")
        self._expect(TokenType.LPAREN, "'(' after 'layout'")
        entries: list[LayoutEntry] = []

        if not self._check(TokenType.RPAREN):
            while True:
                key_token = self._current
                if not self._check(TokenType.IDENTIFIER, TokenType.QUALIFIER, TokenType.TYPE_NAME):
                    raise self._error(f"expected layout qualifier name, found {self._describe(key_token)}")
                self._advance()
                value: Optional[Expression] = None
                if self._match(TokenType.ASSIGN):
                    value = self._parse_expression(Precedence.COMMA)
                entries.append(LayoutEntry(str(key_token.value), value, self._span_from(key_token)))
                if not self._match(TokenType.COMMA):
                    break

        self._expect(TokenType.RPAREN, "')' after layout qualifiers")
        return LayoutQualifier(tuple(entries), self._span_from(start))

    def _parse_precision(self) -> PrecisionDeclaration:
        start = self._expect(TokenType.PRECISION, "'precision'")
        if not (self._check(TokenType.QUALIFIER) and self._current.value in PRECISION_QUALIFIERS):
            raise self._error(f"expected precision qualifier, found {self._describe(self._current)}")
        precision = self._advance().value
        type_spec = self._parse_type()
        self._expect(TokenType.SEMICOLON, "';' after precision statement")
        return PrecisionDeclaration(precision, type_spec, self._span_from(start))

    def _parse_type(self) -> TypeSpec:
        """Parse a type name with optional array dimensions."""
        token = self._current
        if not self._check(TokenType.TYPE_NAME, TokenType.IDENTIFIER):
            raise self._error(f"expected type name, found {self._describe(token)}")
        self._advance()
        sizes = self._parse_array_sizes()
        return TypeSpec(name=str(token.value), array_sizes=sizes, span=self._span_from(token))

    def _parse_array_sizes(self) -> tuple[Optional[Expression], ...]:
        """Parse zero or more [size] suffixes; sizes may be omitted."""
        sizes: list[Optional[Expression]] = []
        while self._match(TokenType.LBRACKET):
            if self._match(TokenType.RBRACKET):
                sizes.append(None)
                continue
            sizes.append(self._parse_expression(Precedence.COMMA))
            self._expect(TokenType.RBRACKET, "']' after array size")
        return tuple(sizes)

    def _parse_declarators(self, allow_initializer: bool) -> tuple[Declarator, ...]:
        """
        Parse a comma-separated declarator list.

        Syntax:
            name [sizes] [= initializer] {, name [sizes] [= initializer]}
        """
        declarators: list[Declarator] = []
        while True:
            name_token = self._expect(TokenType.IDENTIFIER, "identifier")
            sizes = self._parse_array_sizes()
            initializer: Optional[Expression] = None
            if allow_initializer and self._match(TokenType.ASSIGN):
                initializer = self._parse_initializer()
            declarators.append(Declarator(
                name=name_token.value,
                array_sizes=sizes,
                initializer=initializer,
                span=self._span_from(name_token),
                name_span=name_token.span,
            ))
            if not self._match(TokenType.COMMA):
                break
        return tuple(declarators)

    def _parse_initializer(self) -> Expression:
        """Parse an initializer: an assignment expression or a brace list."""
        if self._check(TokenType.LBRACE):
            with self._nested():
                start = self._advance()
                elements: list[Expression] = []
                while not self._check(TokenType.RBRACE):
                    elements.append(self._parse_initializer())
                    if not self._match(TokenType.COMMA):
                        break
                self._expect(TokenType.RBRACE, "'}' after initializer list")
                return InitializerList(tuple(elements), self._span_from(start))
        return self._parse_guarded_expression(
            (TokenType.COMMA, TokenType.SEMICOLON, TokenType.RBRACE),
            Precedence.COMMA,
        )

    def _classify_declaration(
        self,
        start: Token,
        layout: Optional[LayoutQualifier],
        qualifiers: tuple[str, ...],
        type_spec: TypeSpec,
        declarators: tuple[Declarator, ...],
    ) -> list[Declaration]:
        """Turn a global declaration into resource nodes by qualifier and type."""
        span = self._span_from(start)
        direction = None
        if "uniform" not in qualifiers:
            if "out" in qualifiers:
                direction = "out"
            elif any(q in qualifiers for q in ("in", "attribute", "varying")):
                direction = "in"

        if direction is None and type_spec.name not in SUBPASS_TYPES and type_spec.name not in SAMPLER_TYPES:
            return [GlobalVariable(layout, qualifiers, type_spec, declarators, span)]

        result: list[Declaration] = []
        for declarator in declarators:
            decl_type = type_spec.with_array(declarator.array_sizes)
            if direction is not None:
                result.append(StageIO(
                    direction, layout, qualifiers, decl_type, declarator.name, span, declarator.name_span,
                ))
            elif type_spec.name in SUBPASS_TYPES:
                result.append(InputAttachment(
                    layout, qualifiers, decl_type, declarator.name, span, declarator.name_span,
                ))
            else:
                result.append(Sampler(
                    layout, qualifiers, decl_type, declarator.name, span, declarator.name_span,
                ))
        return result

    def _parse_member_list(self) -> tuple[StructField, ...]:
        """
        Parse the brace-delimited member list of a struct or block.

        Syntax:
            { [layout] [qualifiers] type name [sizes] {, name [sizes]} ; ... }
        """
        self._expect(TokenType.LBRACE, "'{'")
        members: list[StructField] = []
        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            member_start = self._current
            _, qualifiers = self._parse_qualifier_list()
            type_spec = self._parse_type()
            while True:
                name_token = self._expect(TokenType.IDENTIFIER, "member name")
                sizes = self._parse_array_sizes()
                members.append(StructField(
                    type=type_spec.with_array(sizes),
                    qualifiers=qualifiers,
                    name=name_token.value,
                    span=self._span_from(member_start),
                    name_span=name_token.span,
                ))
                if not self._match(TokenType.COMMA):
                    break
            self._expect(TokenType.SEMICOLON, "';' after member declaration")
        self._expect(TokenType.RBRACE, "'}' after member list")
        return tuple(members)

    def _parse_struct(
        self,
        start: Token,
        layout: Optional[LayoutQualifier],
        qualifiers: tuple[str, ...],
    ) -> list[Declaration]:
        """
        Parse a struct definition, optionally followed by declarators.

        Syntax:
            struct Name { members } [declarators] ;
        """
        self._expect(TokenType.STRUCT, "'struct'")
        name_token = self._expect(TokenType.IDENTIFIER, "struct name")
        fields = self._parse_member_list()
        struct = Struct(
            name=name_token.value,
            fields=fields,
            span=self._span_from(start),
            name_span=name_token.span,
        )
        result: list[Declaration] = [struct]
        if self._check(TokenType.IDENTIFIER):
            declarators = self._parse_declarators(allow_initializer=True)
            type_spec = TypeSpec(name_token.value, (), name_token.span)
            self._expect(TokenType.SEMICOLON, "';' after struct declaration")
            result.append(GlobalVariable(layout, qualifiers, type_spec, declarators, self._span_from(start)))
        else:
            self._expect(TokenType.SEMICOLON, "';' after struct definition")
        return result

    def _parse_block_declaration(
        self,
        start: Token,
        layout: Optional[LayoutQualifier],
        qualifiers: tuple[str, ...],
    ) -> Declaration:
        """
        Parse a uniform, buffer or interface block.

        Syntax:
            qualifiers BlockName { members } [instance [sizes]] ;
        """
        name_token = self._expect(TokenType.IDENTIFIER, "block name")
        fields = self._parse_member_list()

        instance_name: Optional[str] = None
        instance_span: Optional[SourceSpan] = None
        if self._check(TokenType.IDENTIFIER):
            instance_token = self._advance()
            instance_name = instance_token.value
            instance_span = instance_token.span
            self._parse_array_sizes()
        self._expect(TokenType.SEMICOLON, "';' after block declaration")
        span = self._span_from(start)

        if "uniform" in qualifiers or "buffer" in qualifiers:
            storage = "buffer" if "buffer" in qualifiers else "uniform"
            return UniformBlock(
                layout, qualifiers, storage, name_token.value, fields,
                instance_name, span, name_token.span, instance_span,
            )
        if "in" in qualifiers or "out" in qualifiers:
            direction = "out" if "out" in qualifiers else "in"
            return InterfaceBlock(
                direction, layout, qualifiers, name_token.value, fields,
                instance_name, span, name_token.span, instance_span,
            )
        raise ParserError(
            "block declaration requires a uniform, buffer, in or out qualifier",
            name_token.location,
            name_token.span,
        )

    def _parse_function(
        self,
        start: Token,
        qualifiers: tuple[str, ...],
        return_type: TypeSpec,
    ) -> Function:
        """
        Parse a function definition or prototype.

        Syntax:
            type name(parameters) { body }
            type name(parameters);
        """
        name_token = self._expect(TokenType.IDENTIFIER, "function name")
        parameters = self._parse_parameters()

        body: Optional[Block] = None
        if not self._match(TokenType.SEMICOLON):
            body = self._parse_block()

        return Function(
            qualifiers=qualifiers,
            return_type=return_type,
            name=name_token.value,
            parameters=parameters,
            body=body,
            span=self._span_from(start),
            name_span=name_token.span,
        )

    def _parse_parameters(self) -> tuple[Parameter, ...]:
        """Parse a parenthesized parameter list; '(void)' means none."""
        self._expect(TokenType.LPAREN, "'(' after function name")
        parameters: list[Parameter] = []

        if (
            self._check(TokenType.TYPE_NAME)
            and self._current.value == "void"
            and self._peek().type == TokenType.RPAREN
        ):
            self._advance()

        if not self._check(TokenType.RPAREN):
            while True:
                param_start = self._current
                _, qualifiers = self._parse_qualifier_list()
                type_spec = self._parse_type()
                name: Optional[str] = None
                name_span: Optional[SourceSpan] = None
                if self._check(TokenType.IDENTIFIER):
                    name_token = self._advance()
                    name = name_token.value
                    name_span = name_token.span
                    type_spec = type_spec.with_array(self._parse_array_sizes())
                parameters.append(Parameter(
                    qualifiers=qualifiers,
                    type=type_spec,
                    name=name,
                    span=self._span_from(param_start),
                    name_span=name_span,
                ))
                if not self._match(TokenType.COMMA):
                    break

        self._expect(TokenType.RPAREN, "')' after parameters")
        return tuple(parameters)

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _parse_block(self) -> Block:
        """
        Parse a brace-delimited block.

        A statement that fails to parse is reported once and kept as an
        OpaqueStatement; the rest of the block is still parsed.
        """
        start = self._expect(TokenType.LBRACE, "'{'")
        statements: list[Statement] = []

        while not self._check(TokenType.RBRACE) and not self._is_at_end():
            start_pos = self.pos
            try:
                statements.append(self._parse_statement())
            except ParserError as e:
                self._report(e)
                logger.debug(f"Recovering from statement parse error: {e.message}")
                self.pos = start_pos
                statements.append(self._recover_statement())

        self._expect(TokenType.RBRACE, "'}' to close block")
        return Block(tuple(statements), self._span_from(start))

    def _recover_statement(self) -> OpaqueStatement:
        """Skip one malformed statement, ending at ';' or its closing '}'."""
        start = self._current
        skipped: list[Token] = []
        depth = 0
        while not self._is_at_end():
            token = self._current
            if token.type == TokenType.RBRACE and depth == 0:
                break
            skipped.append(self._advance())
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                depth = max(depth - 1, 0)
                if depth == 0 and token.type == TokenType.RBRACE:
                    break
            elif token.type == TokenType.SEMICOLON and depth == 0:
                break
        span = self._span_from(start) if skipped else start.span
        return OpaqueStatement(self._join(skipped), span)

    def _parse_statement(self) -> Statement:
        """Parse a single statement."""
        with self._nested():
            token = self._current

            if self._check(TokenType.LBRACE):
                return self._parse_block()
            if self._match(TokenType.SEMICOLON):
                return EmptyStatement(token.span)
            if self._check(TokenType.IF):
                return self._parse_if()
            if self._check(TokenType.FOR):
                return self._parse_for()
            if self._check(TokenType.WHILE):
                return self._parse_while()
            if self._check(TokenType.DO):
                return self._parse_do_while()
            if self._check(TokenType.RETURN):
                return self._parse_return()
            if self._check(TokenType.BREAK, TokenType.CONTINUE, TokenType.DISCARD):
                return self._parse_jump()
            if self._check(TokenType.SWITCH, TokenType.STRUCT, TokenType.PRECISION, TokenType.LAYOUT):
                return self._parse_opaque_statement()
            if self._is_declaration_start():
                return self._parse_declaration_or_expression()
            return self._parse_expression_statement()

    def _is_declaration_start(self) -> bool:
        """Whether the current token begins a local variable declaration."""
        if self._check(TokenType.QUALIFIER):
            return True
        next_type = self._peek().type
        if self._check(TokenType.TYPE_NAME):
            return next_type != TokenType.LPAREN
        if self._check(TokenType.IDENTIFIER):
            return next_type in (TokenType.IDENTIFIER, TokenType.LBRACKET)
        return False

    def _parse_declaration_or_expression(self) -> Statement:
        """
        Parse a local declaration, backtracking to an expression statement.

        'weights[i] = w;' and 'float[2](a, b);' start like declarations.
        """
        if self._check(TokenType.QUALIFIER) or self._peek().type != TokenType.LBRACKET:
            return self._parse_local_declaration()

        saved_pos = self.pos
        saved_diagnostics = len(self.diagnostics)
        try:
            return self._parse_local_declaration()
        except ParserError:
            self.pos = saved_pos
            del self.diagnostics[saved_diagnostics:]
            return self._parse_expression_statement()

    def _parse_local_declaration(self) -> VariableDeclaration:
        """
        Parse a local variable declaration.

        Syntax:
            [qualifiers] type name [sizes] [= initializer] {, ...} ;
        """
        start = self._current
        _, qualifiers = self._parse_qualifier_list()
        type_spec = self._parse_type()
        declarators = self._parse_declarators(allow_initializer=True)
        self._expect(TokenType.SEMICOLON, "';' after declaration")
        return VariableDeclaration(qualifiers, type_spec, declarators, self._span_from(start))

    def _parse_expression_statement(self) -> Statement:
        start = self._current
        expr = self._parse_guarded_expression((TokenType.SEMICOLON,))
        if isinstance(expr, OpaqueExpression):
            self._match(TokenType.SEMICOLON)
        else:
            self._expect(TokenType.SEMICOLON, "';' after expression")
        return ExpressionStatement(expr, self._span_from(start))

    def _parse_opaque_statement(self) -> OpaqueStatement:
        """
        Keep an unsupported statement form as text without a diagnostic.

        Consumes through the first ';' at depth 0 or the '}' that returns to
        depth 0, e.g. a whole switch statement.
        """
        start = self._current
        skipped = [self._advance()]
        depth = 0
        while not self._is_at_end():
            token = self._current
            if token.type in _CLOSERS and depth == 0:
                break
            skipped.append(self._advance())
            if token.type in _OPENERS:
                depth += 1
            elif token.type in _CLOSERS:
                depth -= 1
                if depth == 0 and token.type == TokenType.RBRACE:
                    break
            elif token.type == TokenType.SEMICOLON and depth == 0:
                break
        return OpaqueStatement(self._join(skipped), self._span_from(start))

    def _parse_condition(self) -> Expression:
        """Parse '(' expression ')' for if/while/do-while."""
        self._expect(TokenType.LPAREN, "'('")
        condition = self._parse_guarded_expression((TokenType.RPAREN,))
        self._expect(TokenType.RPAREN, "')' after condition")
        return condition

    def _parse_if(self) -> IfStatement:
        """
        Parse an if statement.

        Syntax:
            if (condition) statement [else statement]
        """
        start = self._expect(TokenType.IF, "'if'")
        condition = self._parse_condition()
        then_branch = self._parse_statement()
        else_branch: Optional[Statement] = None
        if self._match(TokenType.ELSE):
            else_branch = self._parse_statement()
        return IfStatement(condition, then_branch, else_branch, self._span_from(start))

    def _parse_for(self) -> ForStatement:
        """
        Parse a for loop.

        Syntax:
            for (init; condition; increment) statement
        """
        start = self._expect(TokenType.FOR, "'for'")
        self._expect(TokenType.LPAREN, "'(' after 'for'")

        init: Optional[Statement] = None
        if self._check(TokenType.SEMICOLON):
            self._advance()
        elif self._is_declaration_start():
            init = self._parse_declaration_or_expression()
        else:
            init = self._parse_expression_statement()

        condition: Optional[Expression] = None
        if not self._check(TokenType.SEMICOLON):
            condition = self._parse_guarded_expression((TokenType.SEMICOLON,))
        self._expect(TokenType.SEMICOLON, "';' after loop condition")

        increment: Optional[Expression] = None
        if not self._check(TokenType.RPAREN):
            increment = self._parse_guarded_expression((TokenType.RPAREN,))
        self._expect(TokenType.RPAREN, "')' after loop header")

        body = self._parse_statement()
        return ForStatement(init, condition, increment, body, self._span_from(start))

    def _parse_while(self) -> WhileStatement:
        start = self._expect(TokenType.WHILE, "'while'")
        condition = self._parse_condition()
        body = self._parse_statement()
        return WhileStatement(condition, body, self._span_from(start))

    def _parse_do_while(self) -> DoWhileStatement:
        start = self._expect(TokenType.DO, "'do'")
        body = self._parse_statement()
        self._expect(TokenType.WHILE, "'while' after do body")
        condition = self._parse_condition()
        self._expect(TokenType.SEMICOLON, "';' after do-while")
        return DoWhileStatement(body, condition, self._span_from(start))

    def _parse_return(self) -> ReturnStatement:
        start = self._expect(TokenType.RETURN, "'return'")
        value: Optional[Expression] = None
        if not self._check(TokenType.SEMICOLON):
            value = self._parse_guarded_expression((TokenType.SEMICOLON,))
        if isinstance(value, OpaqueExpression):
            self._match(TokenType.SEMICOLON)
        else:
            self._expect(TokenType.SEMICOLON, "';' after return")
        return ReturnStatement(value, self._span_from(start))

    def _parse_jump(self) -> Statement:
        token = self._advance()
        self._expect(TokenType.SEMICOLON, f"';' after '{token.lexeme}'")
        span = self._span_from(token)
        if token.type == TokenType.BREAK:
            return BreakStatement(span)
        if token.type == TokenType.CONTINUE:
            return ContinueStatement(span)
        return DiscardStatement(span)

    # -------------------------------------------------------------------------
    # Expression Parsing (Precedence Climbing)
    # -------------------------------------------------------------------------

    def _parse_guarded_expression(
        self,
        stops: tuple[TokenType, ...],
        min_precedence: int = Precedence.NONE,
    ) -> Expression:
        """
        Parse an expression that must be followed by one of ``stops``.

        On failure the error is reported once, the tokens up to the stop are
        skipped and an OpaqueExpression holding them is returned.
        """
        start_pos = self.pos
        start = self._current
        try:
            expr = self._parse_expression(min_precedence)
            if not self._check(*stops):
                raise self._error(f"unexpected {self._describe(self._current)} in expression")
            return expr
        except ParserError as e:
            self._report(e)
            logger.debug(f"Recovering from expression parse error: {e.message}")
            self.pos = start_pos
            skipped = self._skip_balanced(stops)
            span = self._span_from(start) if skipped else start.span
            return OpaqueExpression(self._join(skipped), span)

    def _parse_expression(self, min_precedence: int = Precedence.NONE) -> Expression:
        """
        Parse an expression using precedence climbing.

        Binary operators are left associative; assignment and the
        conditional operator are right associative.
        """
        with self._nested():
            base_chain = self._chain
            try:
                return self._parse_operators(self._parse_prefix(), min_precedence)
            finally:
                self._chain = base_chain

    def _parse_operators(self, left: Expression, min_precedence: int) -> Expression:
        """Fold infix operators binding tighter than ``min_precedence`` onto ``left``."""
        while True:
            token = self._current
            precedence = PRECEDENCE_MAP.get(token.type, Precedence.NONE)
            if precedence <= min_precedence:
                break
            self._deepen()

            if token.type == TokenType.COMMA:
                expressions = [left]
                while self._match(TokenType.COMMA):
                    expressions.append(self._parse_expression(Precedence.COMMA))
                left = CommaExpression(tuple(expressions), self._extend(left.span))
            elif token.type in ASSIGNMENT_OP_MAP:
                self._advance()
                value = self._parse_expression(Precedence.ASSIGNMENT - 1)
                left = Assignment(
                    target=left,
                    operator=ASSIGNMENT_OP_MAP[token.type],
                    value=value,
                    span=self._extend(left.span),
                )
            elif token.type == TokenType.QUESTION:
                self._advance()
                then_expr = self._parse_expression(Precedence.COMMA)
                self._expect(TokenType.COLON, "':' in conditional expression")
                else_expr = self._parse_expression(Precedence.CONDITIONAL - 1)
                left = ConditionalExpression(left, then_expr, else_expr, self._extend(left.span))
            else:
                self._advance()
                right = self._parse_expression(precedence)
                left = BinaryExpression(
                    left=left,
                    operator=BINARY_OP_MAP[token.type],
                    right=right,
                    span=self._extend(left.span),
                )

        return left

    def _parse_prefix(self) -> Expression:
        """Parse a prefix expression (unary operators, grouping, primaries)."""
        token = self._current

        if token.type in PREFIX_OP_MAP:
            with self._nested():
                self._advance()
                operand = self._parse_prefix()
                return UnaryExpression(PREFIX_OP_MAP[token.type], operand, self._span_from(token))

        if self._match(TokenType.LPAREN):
            expr = self._parse_expression()
            self._expect(TokenType.RPAREN, "')' after expression")
            return self._continue_postfix(expr, token.span)

        return self._continue_postfix(self._parse_primary())

    def _parse_primary(self) -> Expression:
        """Parse a primary expression: literal, identifier or constructor."""
        token = self._current

        if self._match(TokenType.INTEGER):
            return IntegerLiteral(token.value, token.lexeme, token.span)
        if self._match(TokenType.FLOAT):
            return FloatLiteral(token.value, token.lexeme, token.span)
        if self._match(TokenType.BOOLEAN):
            return BooleanLiteral(token.value, token.span)
        if self._match(TokenType.STRING):
            return StringLiteral(token.value, token.span)
        if self._match(TokenType.IDENTIFIER):
            return Identifier(token.value, token.span)

        if self._match(TokenType.TYPE_NAME):
            name = str(token.value)
            if self._check(TokenType.LBRACKET):
                # Array constructor: float[3](...) or float[](...)
                self._advance()
                if not self._check(TokenType.RBRACKET):
                    self._parse_expression(Precedence.COMMA)
                self._expect(TokenType.RBRACKET, "']' in array constructor")
                name += "[]"
            if not self._check(TokenType.LPAREN):
                raise self._error(f"expected '(' after type name '{token.lexeme}'")
            return Identifier(name, self._span_from(token))

        raise self._error(f"expected expression, found {self._describe(token)}")

    def _continue_postfix(self, expr: Expression, start: Optional[SourceSpan] = None) -> Expression:
        """Continue parsing postfix operations (calls, indexing, member access, ++/--)."""
        span_start = start if start is not None else expr.span
        base_chain = self._chain
        try:
            while True:
                if self._match(TokenType.LPAREN):
                    arguments = self._parse_arguments()
                    self._expect(TokenType.RPAREN, "')' after arguments")
                    expr = CallExpression(expr, arguments, self._extend(span_start))
                elif self._match(TokenType.LBRACKET):
                    index = self._parse_expression()
                    self._expect(TokenType.RBRACKET, "']' after index")
                    expr = IndexExpression(expr, index, self._extend(span_start))
                elif self._match(TokenType.DOT):
                    member_token = self._expect(TokenType.IDENTIFIER, "member name after '.'")
                    expr = MemberAccess(expr, member_token.value, self._extend(span_start), member_token.span)
                elif self._check(TokenType.INCREMENT, TokenType.DECREMENT):
                    operator = (
                        UnaryOperator.POST_INC
                        if self._advance().type == TokenType.INCREMENT
                        else UnaryOperator.POST_DEC
                    )
                    expr = UnaryExpression(operator, expr, self._extend(span_start))
                else:
                    return expr
                self._deepen()
        finally:
            self._chain = base_chain

    def _parse_arguments(self) -> tuple[Expression, ...]:
        """Parse call arguments up to (not including) ')'."""
        arguments: list[Expression] = []
        if self._check(TokenType.RPAREN):
            return ()
        if (
            self._check(TokenType.TYPE_NAME)
            and self._current.value == "void"
            and self._peek().type == TokenType.RPAREN
        ):
            self._advance()
            return ()
        while True:
            arguments.append(self._parse_expression(Precedence.COMMA))
            if not self._match(TokenType.COMMA):
                break
        return tuple(arguments)


def parse(
    tokens: Iterable[Token],
    filename: Optional[str] = None,
) -> tuple[TranslationUnit, list[Diagnostic]]:
    """
    Convenience function to parse tokens into an AST.

    Args:
        tokens: Tokens from the lexer
        filename: Optional filename for logging

    Returns:
        The root TranslationUnit and the lex/parse diagnostics
    """
    parser = Parser(tokens, filename)
    unit = parser.parse()
    return unit, parser.diagnostics
