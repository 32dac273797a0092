"""
shaderlint Syntax Package.

Lexer, parser, AST and expression printer for GLSL-style shader source.
"""

from shaderlint.syntax.lexer import Lexer, tokenize
from shaderlint.syntax.parser import MAX_CHAIN_LENGTH, MAX_NESTING_DEPTH, Parser, parse
from shaderlint.syntax.printer import to_source
from shaderlint.syntax.tokens import Token, TokenKind, TokenType, Trivia

__all__ = [
    # Lexer
    "Lexer",
    "tokenize",
    "Token",
    "TokenKind",
    "TokenType",
    "Trivia",
    # Parser
    "Parser",
    "parse",
    "MAX_CHAIN_LENGTH",
    "MAX_NESTING_DEPTH",
    # Printer
    "to_source",
]
