"""
Token definitions for the shader lexer.

This module defines all token types recognized in GLSL-style shading
language source: keywords, built-in type names, qualifiers, operators,
literals and preprocessor directives.
"""

from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Optional

from shaderlint.utils.diagnostics import SourceSpan
from shaderlint.utils.errors import SourceLocation


class TokenType(Enum):
    """Enumeration of all token types."""

    # End of file
    EOF = auto()

    # Malformed input (value holds the message)
    ERROR = auto()

    # Literals
    INTEGER = auto()
    FLOAT = auto()
    BOOLEAN = auto()
    STRING = auto()

    # Identifiers
    IDENTIFIER = auto()

    # Built-in type names (vec3, sampler2D, ...); value holds the name
    TYPE_NAME = auto()

    # Storage, parameter, interpolation, precision and memory qualifiers
    QUALIFIER = auto()

    # Keywords
    LAYOUT = auto()
    STRUCT = auto()
    PRECISION = auto()
    IF = auto()
    ELSE = auto()
    FOR = auto()
    WHILE = auto()
    DO = auto()
    SWITCH = auto()
    CASE = auto()
    DEFAULT = auto()
    RETURN = auto()
    BREAK = auto()
    CONTINUE = auto()
    DISCARD = auto()

    # Preprocessor
    VERSION_DIRECTIVE = auto()  # #version ...
    DIRECTIVE = auto()          # any other #... line

    # Arithmetic operators
    PLUS = auto()          # +
    MINUS = auto()         # -
    STAR = auto()          # *
    SLASH = auto()         # /
    PERCENT = auto()       # %
    INCREMENT = auto()     # ++
    DECREMENT = auto()     # --

    # Bitwise operators
    AMPERSAND = auto()     # &
    PIPE = auto()          # |
    CARET = auto()         # ^
    TILDE = auto()         # ~
    LEFT_SHIFT = auto()    # <<
    RIGHT_SHIFT = auto()   # >>

    # Logical operators
    AND = auto()           # &&
    OR = auto()            # ||
    XOR = auto()           # ^^
    BANG = auto()          # !

    # Comparison operators
    EQ = auto()            # ==
    NE = auto()            # !=
    LT = auto()            # <
    GT = auto()            # >
    LE = auto()            # <=
    GE = auto()            # >=

    # Assignment
    ASSIGN = auto()              # =
    PLUS_ASSIGN = auto()         # +=
    MINUS_ASSIGN = auto()        # -=
    STAR_ASSIGN = auto()         # *=
    SLASH_ASSIGN = auto()        # /=
    PERCENT_ASSIGN = auto()      # %=
    AND_ASSIGN = auto()          # &=
    OR_ASSIGN = auto()           # |=
    XOR_ASSIGN = auto()          # ^=
    LEFT_SHIFT_ASSIGN = auto()   # <<=
    RIGHT_SHIFT_ASSIGN = auto()  # >>=

    # Delimiters
    LPAREN = auto()        # (
    RPAREN = auto()        # )
    LBRACE = auto()        # {
    RBRACE = auto()        # }
    LBRACKET = auto()      # [
    RBRACKET = auto()      # ]

    # Punctuation
    COMMA = auto()         # ,
    DOT = auto()           # .
    COLON = auto()         # :
    SEMICOLON = auto()     # ;
    QUESTION = auto()      # ?


class TokenKind(Enum):
    """Coarse token categories."""

    IDENTIFIER = "identifier"
    KEYWORD = "keyword"
    QUALIFIER = "qualifier"
    TYPE = "type"
    OPERATOR = "operator"
    LITERAL = "literal"
    PUNCTUATION = "punctuation"
    DIRECTIVE = "directive"
    ERROR = "error"
    EOF = "eof"


# Mapping of structural keywords to token types
KEYWORDS: dict[str, TokenType] = {
    "layout": TokenType.LAYOUT,
    "struct": TokenType.STRUCT,
    "precision": TokenType.PRECISION,
    "if": TokenType.IF,
    "else": TokenType.ELSE,
    "for": TokenType.FOR,
    "while": TokenType.WHILE,
    "do": TokenType.DO,
    "switch": TokenType.SWITCH,
    "case": TokenType.CASE,
    "default": TokenType.DEFAULT,
    "return": TokenType.RETURN,
    "break": TokenType.BREAK,
    "continue": TokenType.CONTINUE,
    "discard": TokenType.DISCARD,
    "true": TokenType.BOOLEAN,
    "false": TokenType.BOOLEAN,
}

# Parameter and storage qualifiers
STORAGE_QUALIFIERS: frozenset[str] = frozenset({
    "const", "in", "out", "inout", "uniform", "buffer", "shared",
    "attribute", "varying", "patch", "sample", "centroid",
})

INTERPOLATION_QUALIFIERS: frozenset[str] = frozenset({
    "flat", "smooth", "noperspective",
})

PRECISION_QUALIFIERS: frozenset[str] = frozenset({
    "highp", "mediump", "lowp",
})

MEMORY_QUALIFIERS: frozenset[str] = frozenset({
    "coherent", "volatile", "restrict", "readonly", "writeonly",
    "invariant", "precise",
})

QUALIFIERS: frozenset[str] = (
    STORAGE_QUALIFIERS | INTERPOLATION_QUALIFIERS | PRECISION_QUALIFIERS | MEMORY_QUALIFIERS
)


def _vector_family(prefix: str) -> set[str]:
    return {f"{prefix}{n}" for n in (2, 3, 4)}


def _matrix_family(prefix: str) -> set[str]:
    names = {f"{prefix}{n}" for n in (2, 3, 4)}
    names |= {f"{prefix}{c}x{r}" for c in (2, 3, 4) for r in (2, 3, 4)}
    return names


_SAMPLER_SHAPES = (
    "1D", "2D", "3D", "Cube", "2DRect", "1DArray", "2DArray", "CubeArray",
    "Buffer", "2DMS", "2DMSArray",
)
_SHADOW_SHAPES = (
    "1DShadow", "2DShadow", "CubeShadow", "2DRectShadow", "1DArrayShadow",
    "2DArrayShadow", "CubeArrayShadow",
)

SAMPLER_TYPES: frozenset[str] = frozenset(
    {f"{p}sampler{s}" for p in ("", "i", "u") for s in _SAMPLER_SHAPES}
    | {f"sampler{s}" for s in _SHADOW_SHAPES}
    | {f"{p}texture{s}" for p in ("", "i", "u") for s in _SAMPLER_SHAPES}
    | {f"{p}image{s}" for p in ("", "i", "u") for s in _SAMPLER_SHAPES}
    | {"sampler", "samplerShadow"}
)

SUBPASS_TYPES: frozenset[str] = frozenset({
    "subpassInput", "subpassInputMS",
    "isubpassInput", "isubpassInputMS",
    "usubpassInput", "usubpassInputMS",
})

SCALAR_TYPES: frozenset[str] = frozenset({
    "void", "bool", "int", "uint", "float", "double",
})

VECTOR_TYPES: frozenset[str] = frozenset(
    _vector_family("vec") | _vector_family("ivec") | _vector_family("uvec")
    | _vector_family("bvec") | _vector_family("dvec")
)

MATRIX_TYPES: frozenset[str] = frozenset(_matrix_family("mat") | _matrix_family("dmat"))

BUILTIN_TYPES: frozenset[str] = (
    SCALAR_TYPES | VECTOR_TYPES | MATRIX_TYPES | SAMPLER_TYPES | SUBPASS_TYPES
    | frozenset({"atomic_uint", "accelerationStructureEXT", "rayQueryEXT"})
)

# Operators, longest first so that maximal munch wins
OPERATORS: dict[str, TokenType] = {
    "<<=": TokenType.LEFT_SHIFT_ASSIGN,
    ">>=": TokenType.RIGHT_SHIFT_ASSIGN,
    "++": TokenType.INCREMENT,
    "--": TokenType.DECREMENT,
    "<<": TokenType.LEFT_SHIFT,
    ">>": TokenType.RIGHT_SHIFT,
    "&&": TokenType.AND,
    "||": TokenType.OR,
    "^^": TokenType.XOR,
    "==": TokenType.EQ,
    "!=": TokenType.NE,
    "<=": TokenType.LE,
    ">=": TokenType.GE,
    "+=": TokenType.PLUS_ASSIGN,
    "-=": TokenType.MINUS_ASSIGN,
    "*=": TokenType.STAR_ASSIGN,
    "/=": TokenType.SLASH_ASSIGN,
    "%=": TokenType.PERCENT_ASSIGN,
    "&=": TokenType.AND_ASSIGN,
    "|=": TokenType.OR_ASSIGN,
    "^=": TokenType.XOR_ASSIGN,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "%": TokenType.PERCENT,
    "&": TokenType.AMPERSAND,
    "|": TokenType.PIPE,
    "^": TokenType.CARET,
    "~": TokenType.TILDE,
    "!": TokenType.BANG,
    "<": TokenType.LT,
    ">": TokenType.GT,
    "=": TokenType.ASSIGN,
    "(": TokenType.LPAREN,
    ")": TokenType.RPAREN,
    "{": TokenType.LBRACE,
    "}": TokenType.RBRACE,
    "[": TokenType.LBRACKET,
    "]": TokenType.RBRACKET,
    ",": TokenType.COMMA,
    ".": TokenType.DOT,
    ":": TokenType.COLON,
    ";": TokenType.SEMICOLON,
    "?": TokenType.QUESTION,
}

_PUNCTUATION: frozenset[TokenType] = frozenset({
    TokenType.LPAREN, TokenType.RPAREN, TokenType.LBRACE, TokenType.RBRACE,
    TokenType.LBRACKET, TokenType.RBRACKET, TokenType.COMMA, TokenType.DOT,
    TokenType.COLON, TokenType.SEMICOLON, TokenType.QUESTION,
})

_LITERALS: frozenset[TokenType] = frozenset({
    TokenType.INTEGER, TokenType.FLOAT, TokenType.BOOLEAN, TokenType.STRING,
})

_OPERATOR_TYPES: frozenset[TokenType] = frozenset(OPERATORS.values()) - _PUNCTUATION


@dataclass(frozen=True, slots=True)
class Trivia:
    """
    A comment preserved from the source.

    Attributes:
        text: The full comment text including its delimiters
        location: Where the comment starts
        is_block: True for /* */ comments, False for // comments
    """

    text: str
    location: SourceLocation
    is_block: bool = False

    @property
    def body(self) -> str:
        """The comment text without its delimiters."""
        if self.is_block:
            return self.text[2:-2] if self.text.endswith("*/") else self.text[2:]
        return self.text[2:]


@dataclass(frozen=True, slots=True)
class Token:
    """
    Represents a single token from the source code.

    Attributes:
        type: The type of this token
        lexeme: The exact source text of the token
        value: The parsed value for literals, the name for identifiers and
            keywords, the message for error tokens
        location: Source location of the first character
        end: Source location just past the last character
        trivia: Comments that precede this token
    """

    type: TokenType
    lexeme: str
    value: Any
    location: SourceLocation
    end: SourceLocation
    trivia: tuple[Trivia, ...] = ()

    def __repr__(self) -> str:
        return f"Token({self.type.name}, {self.lexeme!r}, {self.location})"

    @property
    def span(self) -> SourceSpan:
        """Source span of the token; the empty EOF token covers one column."""
        end_col = self.end.column
        if (self.end.line, self.end.column) == (self.location.line, self.location.column):
            end_col += 1
        return SourceSpan(
            start_line=self.location.line,
            start_col=self.location.column,
            end_line=self.end.line,
            end_col=end_col,
        )

    @property
    def kind(self) -> TokenKind:
        """The coarse category of this token."""
        if self.type == TokenType.IDENTIFIER:
            return TokenKind.IDENTIFIER
        if self.type == TokenType.TYPE_NAME:
            return TokenKind.TYPE
        if self.type == TokenType.QUALIFIER:
            return TokenKind.QUALIFIER
        if self.type in _LITERALS:
            return TokenKind.LITERAL
        if self.type in (TokenType.VERSION_DIRECTIVE, TokenType.DIRECTIVE):
            return TokenKind.DIRECTIVE
        if self.type == TokenType.ERROR:
            return TokenKind.ERROR
        if self.type == TokenType.EOF:
            return TokenKind.EOF
        if self.type in _PUNCTUATION:
            return TokenKind.PUNCTUATION
        if self.type in _OPERATOR_TYPES:
            return TokenKind.OPERATOR
        return TokenKind.KEYWORD

    @property
    def is_literal(self) -> bool:
        """Check if this token represents a literal value."""
        return self.type in _LITERALS

    @property
    def is_operator(self) -> bool:
        """Check if this token represents an operator."""
        return self.type in _OPERATOR_TYPES

    @property
    def directive_name(self) -> Optional[str]:
        """For directive tokens, the word after '#' (e.g. 'version', 'define')."""
        if self.type not in (TokenType.VERSION_DIRECTIVE, TokenType.DIRECTIVE):
            return None
        text = self.lexeme.lstrip()[1:].lstrip()
        name_chars: list[str] = []
        for char in text:
            if not (char.isalnum() or char == "_"):
                break
            name_chars.append(char)
        return "".join(name_chars)
