"""
Shader Lexer (Tokenizer).

Transforms shading-language source code into a lazy stream of tokens.
Comments are kept as trivia attached to the following token, preprocessor
lines are opaque directive tokens, and malformed input produces ERROR
tokens instead of aborting the scan.
"""

import re
from typing import Iterator, Optional

from shaderlint.syntax.tokens import (
    BUILTIN_TYPES,
    KEYWORDS,
    OPERATORS,
    QUALIFIERS,
    Token,
    TokenType,
    Trivia,
)
from shaderlint.utils.errors import SourceLocation

_MAX_OPERATOR_LENGTH = max(len(op) for op in OPERATORS)

# A version directive written after code on the same line
_TRAILING_VERSION = re.compile(r"#[ \t]*version\b")


def _is_identifier_start(char: Optional[str]) -> bool:
    return char is not None and char.isascii() and (char.isalpha() or char == "_")


def _is_identifier_char(char: Optional[str]) -> bool:
    return char is not None and char.isascii() and (char.isalnum() or char == "_")


def _is_digit(char: Optional[str]) -> bool:
    return char is not None and "0" <= char <= "9"


class Lexer:
    """
    Tokenizer for shader source code.

    The lexer supports:
    - Identifiers, keywords, built-in type names and qualifiers
    - Integer literals (decimal, octal, hex, with u/U suffix)
    - Floating-point literals (fraction, exponent, f/F/lf/LF suffix)
    - String literals (used by printf-style extensions)
    - Comments (// single line, /* multi-line */) kept as trivia
    - Preprocessor directives as opaque tokens

    Iterating a lexer always starts again from the beginning of the source.

    Usage:
        lexer = Lexer(source_code)
        tokens = lexer.tokenize()
        # or lazily: for token in lexer: ...
    """

    def __init__(self, source: str, filename: Optional[str] = None) -> None:
        """
        Initialize the lexer with source code.

        Args:
            source: The shader source code to tokenize
            filename: Optional filename recorded in token locations
        """
        self.source = source
        self.filename = filename
        self.pos = 0
        self.line = 1
        self.column = 1
        self._at_line_start = True
        self._pending_trivia: list[Trivia] = []

    def _reset(self) -> None:
        self.pos = 0
        self.line = 1
        self.column = 1
        self._at_line_start = True
        self._pending_trivia = []

    @property
    def _current_char(self) -> Optional[str]:
        """Return the current character or None if at end."""
        if self.pos >= len(self.source):
            return None
        return self.source[self.pos]

    @property
    def _peek_char(self) -> Optional[str]:
        """Return the next character without consuming it."""
        return self._peek_ahead(1)

    def _peek_ahead(self, n: int) -> Optional[str]:
        """Return the character n positions ahead."""
        peek_pos = self.pos + n
        if peek_pos >= len(self.source):
            return None
        return self.source[peek_pos]

    def _location(self) -> SourceLocation:
        """Create a SourceLocation for the current position."""
        return SourceLocation(
            line=self.line,
            column=self.column,
            offset=self.pos,
            filename=self.filename,
        )

    def _advance(self) -> str:
        """Consume and return the current character."""
        char = self.source[self.pos]
        self.pos += 1

        if char == "\n":
            self.line += 1
            self.column = 1
            self._at_line_start = True
        else:
            self.column += 1

        return char

    def _make_token(
        self,
        token_type: TokenType,
        start: SourceLocation,
        value: object = None,
    ) -> Token:
        """Build a token spanning from start to the current position."""
        trivia = tuple(self._pending_trivia)
        self._pending_trivia = []
        self._at_line_start = False
        return Token(
            type=token_type,
            lexeme=self.source[start.offset:self.pos],
            value=value,
            location=start,
            end=self._location(),
            trivia=trivia,
        )

    def _make_error(self, message: str, start: SourceLocation) -> Token:
        """Build an ERROR token; pending trivia stays for the next real token."""
        self._at_line_start = False
        return Token(
            type=TokenType.ERROR,
            lexeme=self.source[start.offset:self.pos],
            value=message,
            location=start,
            end=self._location(),
        )

    def _skip_whitespace(self) -> None:
        """Skip whitespace characters including newlines."""
        while self._current_char is not None and self._current_char in " \t\r\n\f\v":
            self._advance()

    def _read_line_comment(self) -> None:
        """Read a // comment into pending trivia."""
        start = self._location()
        while self._current_char is not None and self._current_char != "\n":
            self._advance()
        self._pending_trivia.append(Trivia(self.source[start.offset:self.pos], start, False))

    def _read_block_comment(self) -> Optional[Token]:
        """
        Read a /* ... */ comment into pending trivia.

        Returns:
            An ERROR token if the comment is unterminated, otherwise None.
            An unterminated comment swallows the rest of the file.
        """
        start = self._location()
        at_line_start = self._at_line_start
        self._advance()  # /
        self._advance()  # *

        while self._current_char is not None:
            if self._current_char == "*" and self._peek_char == "/":
                self._advance()
                self._advance()
                self._pending_trivia.append(
                    Trivia(self.source[start.offset:self.pos], start, True)
                )
                # A block comment does not end the leading whitespace of a line
                self._at_line_start = at_line_start or self._at_line_start
                return None
            self._advance()

        return self._make_error("unterminated block comment", start)

    def _read_directive(self) -> Token:
        """
        Read a preprocessor directive through the end of its logical line.

        Backslash-newline continuations are part of the directive.
        """
        start = self._location()
        while self._current_char is not None:
            if self._current_char == "\\" and self._peek_char == "\n":
                self._advance()
                self._advance()
                continue
            if self._current_char == "\\" and self._peek_char == "\r" and self._peek_ahead(2) == "\n":
                self._advance()
                self._advance()
                self._advance()
                continue
            if self._current_char == "\n":
                break
            self._advance()

        text = self.source[start.offset:self.pos].rstrip()
        words = text[1:].split()
        token_type = TokenType.DIRECTIVE
        if words and words[0] == "version":
            token_type = TokenType.VERSION_DIRECTIVE
        token = self._make_token(token_type, start, value=text)
        return token

    def _read_string(self) -> Token:
        """
        Read a double-quoted string literal on a single line.

        An unterminated string yields an ERROR token covering only the
        opening quote so that scanning resumes right after it.
        """
        start = self._location()
        scan = self.pos + 1
        chars: list[str] = []
        while scan < len(self.source):
            char = self.source[scan]
            if char == "\n":
                break
            if char == "\\" and scan + 1 < len(self.source) and self.source[scan + 1] != "\n":
                chars.append(self.source[scan + 1])
                scan += 2
                continue
            if char == '"':
                while self.pos <= scan:
                    self._advance()
                return self._make_token(TokenType.STRING, start, value="".join(chars))
            chars.append(char)
            scan += 1

        self._advance()  # skip the offending quote
        return self._make_error("unterminated string literal", start)

    def _read_digits(self, hex_digits: bool = False) -> None:
        while self._current_char is not None:
            char = self._current_char
            if _is_digit(char) or (hex_digits and char in "abcdefABCDEF"):
                self._advance()
            else:
                break

    def _read_number(self) -> Token:
        """
        Read a numeric literal (integer or float).

        Supports:
        - Decimal integers: 123, 7u
        - Octal integers: 017
        - Hex integers: 0xFF, 0x10u
        - Floats: 1.0, .5, 2., 1e3, 1.5e-3, 1.0f, 2.0lf

        Returns:
            An INTEGER or FLOAT token.
        """
        start = self._location()

        # Hexadecimal
        if self._current_char == "0" and self._peek_char in ("x", "X"):
            self._advance()
            self._advance()
            digits_start = self.pos
            self._read_digits(hex_digits=True)
            digits = self.source[digits_start:self.pos]
            if self._current_char in ("u", "U"):
                self._advance()
            value = int(digits, 16) if digits else 0
            return self._make_token(TokenType.INTEGER, start, value=value)

        is_float = False
        self._read_digits()

        if self._current_char == ".":
            is_float = True
            self._advance()
            self._read_digits()

        if self._current_char in ("e", "E"):
            sign_offset = 2 if self._peek_char in ("+", "-") else 1
            if _is_digit(self._peek_ahead(sign_offset)):
                is_float = True
                for _ in range(sign_offset):
                    self._advance()
                self._read_digits()

        number_text = self.source[start.offset:self.pos]

        if self._current_char in ("f", "F"):
            is_float = True
            self._advance()
        elif self._current_char in ("l", "L") and self._peek_char in ("f", "F"):
            is_float = True
            self._advance()
            self._advance()
        elif not is_float and self._current_char in ("u", "U"):
            self._advance()

        if is_float:
            return self._make_token(TokenType.FLOAT, start, value=float(number_text))

        if len(number_text) > 1 and number_text.startswith("0") and all(c in "01234567" for c in number_text):
            value = int(number_text, 8)
        else:
            try:
                value = int(number_text)
            except ValueError:
                # Past the interpreter's integer string conversion limit
                return self._make_error("integer literal too long", start)
        return self._make_token(TokenType.INTEGER, start, value=value)

    def _read_identifier_or_keyword(self) -> Token:
        """
        Read an identifier, keyword, built-in type name or qualifier.

        Returns:
            The token with the appropriate type.
        """
        start = self._location()
        while _is_identifier_char(self._current_char):
            self._advance()

        word = self.source[start.offset:self.pos]

        if word in KEYWORDS:
            token_type = KEYWORDS[word]
            if token_type == TokenType.BOOLEAN:
                return self._make_token(token_type, start, value=word == "true")
            return self._make_token(token_type, start, value=word)
        if word in BUILTIN_TYPES:
            return self._make_token(TokenType.TYPE_NAME, start, value=word)
        if word in QUALIFIERS:
            return self._make_token(TokenType.QUALIFIER, start, value=word)
        return self._make_token(TokenType.IDENTIFIER, start, value=word)

    def _read_operator(self) -> Optional[Token]:
        """
        Read an operator or punctuation token, longest match first.

        Returns:
            The token, or None if the current character starts no operator.
        """
        start = self._location()
        for length in range(_MAX_OPERATOR_LENGTH, 0, -1):
            candidate = self.source[self.pos:self.pos + length]
            if len(candidate) == length and candidate in OPERATORS:
                for _ in range(length):
                    self._advance()
                return self._make_token(OPERATORS[candidate], start, value=candidate)
        return None

    def _next_token(self) -> Token:
        """
        Extract the next token from the source.

        Returns:
            The next token; EOF once the source is exhausted.
        """
        # Skip whitespace and collect comments
        while True:
            self._skip_whitespace()

            if self._current_char == "/" and self._peek_char == "/":
                self._read_line_comment()
                continue

            if self._current_char == "/" and self._peek_char == "*":
                error = self._read_block_comment()
                if error is not None:
                    return error
                continue

            break

        char = self._current_char
        if char is None:
            return self._make_token(TokenType.EOF, self._location())

        if char == "#" and (self._at_line_start or _TRAILING_VERSION.match(self.source, self.pos)):
            return self._read_directive()

        if char == '"':
            return self._read_string()

        if _is_digit(char) or (char == "." and _is_digit(self._peek_char)):
            return self._read_number()

        if _is_identifier_start(char):
            return self._read_identifier_or_keyword()

        op_token = self._read_operator()
        if op_token is not None:
            return op_token

        # Unknown character: report it and resume after it
        start = self._location()
        self._advance()
        return self._make_error(f"unexpected character {char!r}", start)

    def _scan(self) -> Iterator[Token]:
        self._reset()
        while True:
            token = self._next_token()
            yield token
            if token.type == TokenType.EOF:
                return

    def tokenize(self) -> list[Token]:
        """
        Tokenize the entire source code.

        Returns:
            A list of all tokens including the final EOF token.
        """
        return list(self._scan())

    def __iter__(self) -> Iterator[Token]:
        """Lazily iterate over tokens, starting from the beginning."""
        return self._scan()


def tokenize(source: str, filename: Optional[str] = None) -> Iterator[Token]:
    """
    Lazily tokenize source code.

    Args:
        source: Shader source code
        filename: Optional filename recorded in token locations

    Returns:
        An iterator of tokens ending with EOF
    """
    return iter(Lexer(source, filename))
