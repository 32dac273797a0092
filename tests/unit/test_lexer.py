"""
Unit tests for the shader Lexer.
"""

import sys
from collections.abc import Iterator

import pytest

from shaderlint.syntax.lexer import Lexer, tokenize as lazy_tokenize
from shaderlint.syntax.tokens import TokenKind, TokenType


def types_of(tokens):
    return [token.type for token in tokens]


class TestLexerBasics:
    """Basic lexer functionality tests."""

    def test_empty_source(self, tokenize):
        """Empty source produces only EOF."""
        tokens = tokenize("")
        assert types_of(tokens) == [TokenType.EOF]

    def test_whitespace_only(self, tokenize):
        tokens = tokenize("   \n\t\n  ")
        assert types_of(tokens) == [TokenType.EOF]

    def test_simple_declaration(self, tokenize):
        tokens = tokenize("vec3 color;")
        assert types_of(tokens) == [
            TokenType.TYPE_NAME,
            TokenType.IDENTIFIER,
            TokenType.SEMICOLON,
            TokenType.EOF,
        ]
        assert tokens[0].value == "vec3"
        assert tokens[1].value == "color"

    def test_tokenize_is_lazy(self):
        """The module-level tokenize returns an iterator."""
        tokens = lazy_tokenize("float x;")
        assert isinstance(tokens, Iterator)
        assert next(tokens).type == TokenType.TYPE_NAME

    def test_iteration_restarts_from_scratch(self):
        lexer = Lexer("float x = 1.0;")
        first = list(lexer)
        second = list(lexer)
        assert first == second


class TestLexerKeywordsAndTypes:
    """Tests for keywords, qualifiers and built-in type names."""

    @pytest.mark.parametrize(
        "word,expected",
        [
            ("layout", TokenType.LAYOUT),
            ("struct", TokenType.STRUCT),
            ("precision", TokenType.PRECISION),
            ("for", TokenType.FOR),
            ("discard", TokenType.DISCARD),
            ("switch", TokenType.SWITCH),
        ],
    )
    def test_keywords(self, tokenize, word, expected):
        assert tokenize(word)[0].type == expected

    @pytest.mark.parametrize(
        "word",
        ["in", "out", "inout", "uniform", "buffer", "const", "flat", "highp", "readonly"],
    )
    def test_qualifiers(self, tokenize, word):
        token = tokenize(word)[0]
        assert token.type == TokenType.QUALIFIER
        assert token.kind == TokenKind.QUALIFIER
        assert token.value == word

    @pytest.mark.parametrize(
        "word",
        ["float", "ivec2", "mat3x4", "dvec4", "sampler2D", "texture2DArray", "image2D", "subpassInput"],
    )
    def test_builtin_types(self, tokenize, word):
        token = tokenize(word)[0]
        assert token.type == TokenType.TYPE_NAME
        assert token.kind == TokenKind.TYPE

    def test_boolean_literals(self, tokenize):
        tokens = tokenize("true false")
        assert [t.value for t in tokens[:2]] == [True, False]
        assert all(t.type == TokenType.BOOLEAN for t in tokens[:2])

    def test_user_type_is_identifier(self, tokenize):
        assert tokenize("LightData")[0].type == TokenType.IDENTIFIER


class TestLexerNumbers:
    """Tests for numeric literals."""

    @pytest.mark.parametrize(
        "source,value",
        [
            ("42", 42),
            ("0", 0),
            ("7u", 7),
            ("0xFF", 255),
            ("0x10U", 16),
            ("017", 15),
        ],
    )
    def test_integers(self, tokenize, source, value):
        token = tokenize(source)[0]
        assert token.type == TokenType.INTEGER
        assert token.value == value
        assert token.lexeme == source

    @pytest.mark.parametrize(
        "source,value",
        [
            ("1.0", 1.0),
            (".5", 0.5),
            ("2.", 2.0),
            ("1e3", 1000.0),
            ("1.5e-3", 0.0015),
            ("1.0f", 1.0),
            ("2.0lf", 2.0),
            ("3F", 3.0),
        ],
    )
    def test_floats(self, tokenize, source, value):
        token = tokenize(source)[0]
        assert token.type == TokenType.FLOAT
        assert token.value == pytest.approx(value)
        assert token.lexeme == source

    def test_overflowing_float_is_infinite(self, tokenize):
        token = tokenize("1e999")[0]
        assert token.type == TokenType.FLOAT
        assert token.value == float("inf")

    @pytest.mark.skipif(
        getattr(sys, "get_int_max_str_digits", lambda: 0)() == 0,
        reason="interpreter has no integer string conversion limit",
    )
    def test_integer_too_long(self, tokenize):
        tokens = tokenize("1" * 5000 + ";")
        assert tokens[0].type == TokenType.ERROR
        assert tokens[0].value == "integer literal too long"
        assert tokens[1].type == TokenType.SEMICOLON

    def test_swizzle_tokens(self, tokenize):
        tokens = tokenize("v.x")
        assert types_of(tokens) == [
            TokenType.IDENTIFIER,
            TokenType.DOT,
            TokenType.IDENTIFIER,
            TokenType.EOF,
        ]


class TestLexerOperators:
    """Tests for operators and punctuation."""

    @pytest.mark.parametrize(
        "source,expected",
        [
            ("<<=", TokenType.LEFT_SHIFT_ASSIGN),
            (">>", TokenType.RIGHT_SHIFT),
            ("++", TokenType.INCREMENT),
            ("^^", TokenType.XOR),
            ("&&", TokenType.AND),
            ("/=", TokenType.SLASH_ASSIGN),
            ("!=", TokenType.NE),
            ("?", TokenType.QUESTION),
        ],
    )
    def test_operators(self, tokenize, source, expected):
        assert tokenize(source)[0].type == expected

    def test_maximal_munch(self, tokenize):
        tokens = tokenize("i+++j")
        assert types_of(tokens)[:4] == [
            TokenType.IDENTIFIER,
            TokenType.INCREMENT,
            TokenType.PLUS,
            TokenType.IDENTIFIER,
        ]


class TestLexerDirectives:
    """Tests for preprocessor directives."""

    def test_version_directive(self, tokenize):
        tokens = tokenize("#version 450\nvoid main() {}")
        assert tokens[0].type == TokenType.VERSION_DIRECTIVE
        assert tokens[0].value == "#version 450"
        assert tokens[0].directive_name == "version"
        assert tokens[1].type == TokenType.TYPE_NAME
        assert tokens[1].location.line == 2

    def test_version_with_space_after_hash(self, tokenize):
        assert tokenize("# version 450")[0].type == TokenType.VERSION_DIRECTIVE

    def test_other_directive(self, tokenize):
        token = tokenize("#extension GL_EXT_debug_printf : enable")[0]
        assert token.type == TokenType.DIRECTIVE
        assert token.kind == TokenKind.DIRECTIVE
        assert token.directive_name == "extension"

    def test_line_continuation(self, tokenize):
        tokens = tokenize("#define SCALE \\\n  2.0\nfloat x;")
        assert tokens[0].type == TokenType.DIRECTIVE
        assert "2.0" in tokens[0].value
        assert tokens[1].type == TokenType.TYPE_NAME
        assert tokens[1].location.line == 3

    def test_indented_directive(self, tokenize):
        assert tokenize("   #version 450")[0].type == TokenType.VERSION_DIRECTIVE

    def test_hash_mid_line_is_error(self, tokenize):
        tokens = tokenize("x # y")
        assert tokens[1].type == TokenType.ERROR

    def test_version_after_code(self, tokenize):
        tokens = tokenize("int a; #version 450\nvoid main() {}")
        assert types_of(tokens)[:4] == [
            TokenType.TYPE_NAME,
            TokenType.IDENTIFIER,
            TokenType.SEMICOLON,
            TokenType.VERSION_DIRECTIVE,
        ]
        assert tokens[3].value == "#version 450"
        assert (tokens[3].location.line, tokens[3].location.column) == (1, 8)
        assert tokens[4].type == TokenType.TYPE_NAME

    @pytest.mark.parametrize("source", ["x #define Y", "x #versions"])
    def test_other_hash_after_code_is_error(self, tokenize, source):
        assert tokenize(source)[1].type == TokenType.ERROR


class TestLexerComments:
    """Tests for comments kept as trivia."""

    def test_line_comment_attaches_to_next_token(self, tokenize):
        tokens = tokenize("// hello\nfloat x;")
        assert tokens[0].type == TokenType.TYPE_NAME
        assert len(tokens[0].trivia) == 1
        assert tokens[0].trivia[0].text == "// hello"
        assert tokens[0].trivia[0].body == " hello"
        assert not tokens[0].trivia[0].is_block

    def test_block_comment(self, tokenize):
        tokens = tokenize("/* note */ float x;")
        trivia = tokens[0].trivia[0]
        assert trivia.is_block
        assert trivia.body == " note "

    def test_trailing_comment_attaches_to_eof(self, tokenize):
        tokens = tokenize("float x; // done")
        assert tokens[-1].type == TokenType.EOF
        assert tokens[-1].trivia[0].text == "// done"

    def test_comment_before_directive_keeps_line_start(self, tokenize):
        tokens = tokenize("/* header */ #version 450")
        assert tokens[0].type == TokenType.VERSION_DIRECTIVE


class TestLexerErrors:
    """Tests for recovery from malformed input."""

    def test_unexpected_character(self, tokenize):
        tokens = tokenize("float @x;")
        assert types_of(tokens) == [
            TokenType.TYPE_NAME,
            TokenType.ERROR,
            TokenType.IDENTIFIER,
            TokenType.SEMICOLON,
            TokenType.EOF,
        ]
        assert "unexpected character" in tokens[1].value
        assert tokens[1].kind == TokenKind.ERROR

    def test_unterminated_string(self, tokenize):
        tokens = tokenize('"abc')
        assert tokens[0].type == TokenType.ERROR
        assert tokens[0].lexeme == '"'
        assert tokens[1].type == TokenType.IDENTIFIER
        assert tokens[1].value == "abc"

    def test_string_literal(self, tokenize):
        token = tokenize('"value: %f"')[0]
        assert token.type == TokenType.STRING
        assert token.value == "value: %f"

    def test_unterminated_block_comment_consumes_rest(self, tokenize):
        tokens = tokenize("float x; /* never closed\nvec3 y;")
        assert types_of(tokens) == [
            TokenType.TYPE_NAME,
            TokenType.IDENTIFIER,
            TokenType.SEMICOLON,
            TokenType.ERROR,
            TokenType.EOF,
        ]
        assert tokens[3].value == "unterminated block comment"

    def test_non_ascii_identifier_character(self, tokenize):
        tokens = tokenize("float é;")
        assert TokenType.ERROR in types_of(tokens)


class TestLexerLocations:
    """Tests for token locations and spans."""

    def test_line_and_column(self, tokenize):
        tokens = tokenize("float x;\n  vec2 y;")
        vec2 = tokens[3]
        assert vec2.value == "vec2"
        assert vec2.location.line == 2
        assert vec2.location.column == 3

    def test_span_end_is_exclusive(self, tokenize):
        token = tokenize("color")[0]
        span = token.span
        assert (span.start_line, span.start_col, span.end_line, span.end_col) == (1, 1, 1, 6)

    def test_filename_recorded(self, lexer_factory):
        token = lexer_factory("x", "blur.frag").tokenize()[0]
        assert token.location.filename == "blur.frag"
