"""
Pytest configuration and shared fixtures for shaderlint tests.
"""

from typing import Callable, Iterable, Optional

import pytest

from shaderlint.lint.config import LintConfiguration
from shaderlint.lint.context import AnnotatedShader, annotate
from shaderlint.lint.engine import analyze
from shaderlint.lint.rules import RuleRegistry
from shaderlint.syntax.ast_nodes import TranslationUnit
from shaderlint.syntax.lexer import Lexer
from shaderlint.syntax.parser import parse as parse_tokens
from shaderlint.syntax.tokens import Token
from shaderlint.utils.diagnostics import AnalysisResult, Diagnostic

DEFAULT_FILE = "test_shader.frag"


@pytest.fixture
def lexer_factory():
    """Factory fixture for creating lexers."""

    def _create_lexer(source: str, filename: str = DEFAULT_FILE) -> Lexer:
        return Lexer(source, filename)

    return _create_lexer


@pytest.fixture
def tokenize(lexer_factory):
    """Fixture to tokenize source code into a list."""

    def _tokenize(source: str) -> list[Token]:
        return list(lexer_factory(source).tokenize())

    return _tokenize


@pytest.fixture
def parse_with_diagnostics(tokenize):
    """Fixture to parse source code into an AST plus parse diagnostics."""

    def _parse(source: str) -> tuple[TranslationUnit, list[Diagnostic]]:
        return parse_tokens(tokenize(source), DEFAULT_FILE)

    return _parse


@pytest.fixture
def parse(parse_with_diagnostics):
    """Fixture to parse source code into an AST, requiring a clean parse."""

    def _parse(source: str) -> TranslationUnit:
        unit, diagnostics = parse_with_diagnostics(source)
        assert diagnostics == [], [str(d) for d in diagnostics]
        return unit

    return _parse


@pytest.fixture
def annotate_source():
    """Fixture to run the front end and get the annotated shader."""

    def _annotate(source: str, file_identifier: str = DEFAULT_FILE) -> AnnotatedShader:
        return annotate(file_identifier, source)

    return _annotate


@pytest.fixture
def analyze_source():
    """Fixture to run the full analysis on source code."""

    def _analyze(
        source: str,
        file_identifier: str = DEFAULT_FILE,
        registry: Optional[RuleRegistry] = None,
        config: Optional[LintConfiguration] = None,
    ) -> AnalysisResult:
        return analyze(file_identifier, source, registry=registry, config=config)

    return _analyze


@pytest.fixture
def run_check(annotate_source):
    """Fixture to run a single rule check function over source code."""

    def _run(
        check: Callable[[AnnotatedShader], Iterable[Diagnostic]],
        source: str,
        file_identifier: str = DEFAULT_FILE,
    ) -> list[Diagnostic]:
        return list(check(annotate_source(source, file_identifier)))

    return _run
