"""
Rule engine and diagnostic aggregator.

``analyze`` is the single entry point of the core: it runs the front end
once, runs every enabled rule behind a failure boundary and returns the
ordered, deduplicated diagnostics of the file.

Example:
    result = analyze("lighting.frag", source)
    for diagnostic in result:
        print(diagnostic)
"""

from __future__ import annotations

import logging
import sys
from contextlib import contextmanager
from typing import Iterable, Iterator, Optional

from shaderlint.lint.config import LintConfiguration, inline_allowed_rules
from shaderlint.lint.context import AnnotatedShader, annotate
from shaderlint.lint.registry import DEFAULT_REGISTRY
from shaderlint.lint.rules import INTERNAL_RULE_ERROR, RuleEntry, RuleRegistry
from shaderlint.syntax.parser import MAX_CHAIN_LENGTH, MAX_NESTING_DEPTH
from shaderlint.utils.diagnostics import AnalysisResult, Diagnostic, SourceSpan
from shaderlint.utils.errors import AnalysisInputError, RuleInternalError

logger = logging.getLogger(__name__)


# Python frames per AST level in the recursive passes (visitors, printer,
# resolver) and the deepest tree the parser can produce
_FRAMES_PER_LEVEL = 6
_MAX_TREE_DEPTH = MAX_NESTING_DEPTH + 2 * MAX_CHAIN_LENGTH


@contextmanager
def recursion_headroom() -> Iterator[None]:
    """Raise the interpreter recursion limit to fit the deepest accepted tree."""
    limit = sys.getrecursionlimit()
    needed = 1000 + _FRAMES_PER_LEVEL * _MAX_TREE_DEPTH
    if needed > limit:
        sys.setrecursionlimit(needed)
    try:
        yield
    finally:
        sys.setrecursionlimit(limit)


def run_rule(entry: RuleEntry, shader: AnnotatedShader) -> list[Diagnostic]:
    """
    Run one rule, converting any failure into an internal-rule-error diagnostic.

    A failing rule's partial output is discarded.
    """
    logger.debug(f"Running rule {entry.rule_id} on {shader.file_identifier}")
    try:
        return list(entry.check(shader))
    except Exception as exc:
        error = RuleInternalError(entry.rule_id, exc)
        logger.warning(
            f"{error.message} while checking {shader.file_identifier}",
            exc_info=True,
        )
        return [INTERNAL_RULE_ERROR.diagnostic(SourceSpan.file_start(), error.message)]


def aggregate(
    file_identifier: str,
    parse_diagnostics: Iterable[Diagnostic],
    rule_outputs: Iterable[list[Diagnostic]],
) -> AnalysisResult:
    """
    Order and deduplicate the diagnostics of one file.

    Args:
        file_identifier: Identifier echoed in the result
        parse_diagnostics: Lex and parse diagnostics
        rule_outputs: Diagnostics of each rule, in registration order

    Returns:
        Parse diagnostics in source order followed by rule diagnostics in
        source order, ties broken by registration order then emission order.
        Exact duplicates (same rule, span and message) are dropped.
    """
    ordered = sorted(parse_diagnostics, key=lambda d: d.span.sort_key[:2])

    keyed: list[tuple[tuple[int, int, int, int], Diagnostic]] = []
    for rule_index, diagnostics in enumerate(rule_outputs):
        for emission_index, diagnostic in enumerate(diagnostics):
            span = diagnostic.span
            keyed.append(((span.start_line, span.start_col, rule_index, emission_index), diagnostic))
    keyed.sort(key=lambda item: item[0])
    ordered.extend(diagnostic for _, diagnostic in keyed)

    seen: set[tuple[str, SourceSpan, str]] = set()
    unique: list[Diagnostic] = []
    for diagnostic in ordered:
        key = (diagnostic.rule_id, diagnostic.span, diagnostic.message)
        if key in seen:
            continue
        seen.add(key)
        unique.append(diagnostic)
    return AnalysisResult(file_identifier=file_identifier, diagnostics=tuple(unique))


def analyze(
    file_identifier: str,
    source_text: str,
    registry: Optional[RuleRegistry] = None,
    config: Optional[LintConfiguration] = None,
) -> AnalysisResult:
    """
    Analyze one shader source file.

    Args:
        file_identifier: Name of the file; only used for the file-name rule
            and the stage, never opened
        source_text: The shader source
        registry: Rules to run (the default registry when None)
        config: Configuration selecting rules (everything when None)

    Returns:
        The ordered diagnostics of the file

    Raises:
        AnalysisInputError: If file_identifier or source_text is not a str
    """
    if not isinstance(file_identifier, str):
        raise AnalysisInputError(
            f"file_identifier must be str, not {type(file_identifier).__name__}"
        )
    if not isinstance(source_text, str):
        raise AnalysisInputError(
            f"source_text must be str, not {type(source_text).__name__}"
        )

    if registry is None:
        registry = DEFAULT_REGISTRY
    if config is None:
        config = LintConfiguration()

    with recursion_headroom():
        shader = annotate(file_identifier, source_text)
        file_allowed = inline_allowed_rules(shader.tokens)
        if file_allowed:
            logger.debug(f"{file_identifier}: rules allowed inline: {', '.join(sorted(file_allowed))}")
        active = config.apply(registry).filtered(exclude=file_allowed)

        parse_diagnostics = [
            d for d in shader.parse_diagnostics
            if d.rule_id not in file_allowed and config.is_enabled(d.rule_id, d.severity)
        ]
        rule_outputs = [run_rule(entry, shader) for entry in active]
    return aggregate(file_identifier, parse_diagnostics, rule_outputs)
