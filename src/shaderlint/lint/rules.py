"""
Lint rule definitions and the rule registry.

A rule is data: a ``LintRule`` describing it (code, name, category,
severity, message template) paired with a check function in a
``RuleEntry``. The registry is an immutable, ordered sequence of entries;
filtering or extending it produces a new registry, so new rules are added
by registering entries, never by editing existing ones.

Example:
    registry = DEFAULT_REGISTRY.filtered(severities={Severity.WARNING})
    for entry in registry:
        print(entry.rule)
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional

from shaderlint.syntax.parser import LEX_ERROR_RULE, PARSE_ERROR_RULE
from shaderlint.utils.diagnostics import Diagnostic, ErrorCode, Severity, SourceSpan

if TYPE_CHECKING:
    from shaderlint.lint.context import AnnotatedShader


# =============================================================================
# Lint Rule Definitions
# =============================================================================


class LintCategory(Enum):
    """
    Categories of lint rules for organization and filtering.
    """

    SYNTAX = "syntax"              # Lexing and parsing problems
    POLICY = "policy"              # Requirements imposed by the build
    STYLE = "style"                # Naming and declaration layout
    PERFORMANCE = "performance"    # Patterns with a known runtime cost
    OPTIMIZATION = "optimization"  # Cheaper equivalent formulations
    TOOL = "tool"                  # Problems of the linter itself


@dataclass(frozen=True)
class LintRule:
    """
    Definition of a single lint rule.

    Attributes:
        code: Catalog code (e.g., "W0103")
        name: Rule identifier reported in diagnostics (e.g., "declaration-order")
        category: The category this rule belongs to
        message: Template message for the violation (use {} for placeholders)
        severity: Severity of the diagnostics this rule produces
        suggestion: Optional template for the suggested fix
    """

    code: str
    name: str
    category: LintCategory
    message: str
    severity: Severity = Severity.WARNING
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.code} ({self.name})"

    def diagnostic(
        self,
        span: SourceSpan,
        *format_args: object,
        suggested_fix: Optional[str] = None,
    ) -> Diagnostic:
        """
        Create a diagnostic for a violation of this rule.

        Args:
            span: Source span the violation refers to
            format_args: Arguments formatted into the message template
            suggested_fix: Replacement text; defaults to the formatted
                suggestion template, if the rule has one

        Returns:
            The diagnostic
        """
        message = self.message.format(*format_args) if format_args else self.message
        if suggested_fix is None and self.suggestion is not None and format_args:
            suggested_fix = self.suggestion.format(*format_args)
        return Diagnostic(
            rule_id=self.name,
            severity=self.severity,
            message=message,
            span=span,
            suggested_fix=suggested_fix,
            code=self.code,
        )


# =============================================================================
# Lint Rules - Syntax and Policy
# =============================================================================

LEX_ERROR = LintRule(
    code=ErrorCode.E0101,
    name=LEX_ERROR_RULE,
    category=LintCategory.SYNTAX,
    message="{}",
    severity=Severity.ERROR,
)

PARSE_ERROR = LintRule(
    code=ErrorCode.E0102,
    name=PARSE_ERROR_RULE,
    category=LintCategory.SYNTAX,
    message="{}",
    severity=Severity.ERROR,
)

VERSION_DIRECTIVE = LintRule(
    code=ErrorCode.E0201,
    name="version-directive",
    category=LintCategory.POLICY,
    message="'#version' must not appear in shader source; the build injects it",
    severity=Severity.ERROR,
)


# =============================================================================
# Lint Rules - Style
# =============================================================================

IDENTIFIER_CASE = LintRule(
    code=ErrorCode.W0101,
    name="identifier-case",
    category=LintCategory.STYLE,
    message="{} '{}' should be {}",
)

OUT_PARAMETER_SUFFIX = LintRule(
    code=ErrorCode.W0102,
    name="out-parameter-suffix",
    category=LintCategory.STYLE,
    message="{} '{}' should end in '_out'",
    suggestion="{1}_out",
)

DECLARATION_ORDER = LintRule(
    code=ErrorCode.W0103,
    name="declaration-order",
    category=LintCategory.STYLE,
    message="declaration out of canonical order: {} '{}' must come after {} '{}'",
)

FILE_NAME = LintRule(
    code=ErrorCode.W0104,
    name="file-name",
    category=LintCategory.STYLE,
    message="{}",
)


# =============================================================================
# Lint Rules - Performance and Optimization
# =============================================================================

FRAGMENT_UV_MUTATION = LintRule(
    code=ErrorCode.W0201,
    name="fragment-uv-mutation",
    category=LintCategory.PERFORMANCE,
    message="texture coordinate '{}' is modified before it is used for sampling; "
            "dependent texture reads prevent texel prefetching",
)

DIVISION_BY_CONSTANT = LintRule(
    code=ErrorCode.I0101,
    name="division-by-constant",
    category=LintCategory.OPTIMIZATION,
    message="division by constant {} can be a multiplication by its reciprocal",
    severity=Severity.INFO,
)

MAD_FORM = LintRule(
    code=ErrorCode.I0102,
    name="mad-form",
    category=LintCategory.OPTIMIZATION,
    message="expression can be written as a single multiply-add",
    severity=Severity.INFO,
)

MANUAL_LERP = LintRule(
    code=ErrorCode.I0103,
    name="manual-lerp",
    category=LintCategory.OPTIMIZATION,
    message="manual linear interpolation; use the built-in mix()",
    severity=Severity.INFO,
)

SUM_AS_DOT = LintRule(
    code=ErrorCode.I0104,
    name="sum-as-dot",
    category=LintCategory.OPTIMIZATION,
    message="sum of the components of '{}' can be a dot product with {}",
    severity=Severity.INFO,
)

SWIZZLE_OPPORTUNITY = LintRule(
    code=ErrorCode.I0105,
    name="swizzle-opportunity",
    category=LintCategory.OPTIMIZATION,
    message="{} built from components of '{}' can be a swizzle",
    severity=Severity.INFO,
)

DYNAMIC_LOOP_BOUND = LintRule(
    code=ErrorCode.I0106,
    name="dynamic-loop-bound",
    category=LintCategory.OPTIMIZATION,
    message="loop bound '{}' is not a compile-time constant; the loop cannot be unrolled",
    severity=Severity.INFO,
)


# =============================================================================
# Lint Rules - Tool
# =============================================================================

INTERNAL_RULE_ERROR = LintRule(
    code=ErrorCode.W0901,
    name="internal-rule-error",
    category=LintCategory.TOOL,
    message="{}",
)


ALL_RULES: dict[str, LintRule] = {
    rule.code: rule
    for rule in (
        LEX_ERROR,
        PARSE_ERROR,
        VERSION_DIRECTIVE,
        IDENTIFIER_CASE,
        OUT_PARAMETER_SUFFIX,
        DECLARATION_ORDER,
        FILE_NAME,
        FRAGMENT_UV_MUTATION,
        DIVISION_BY_CONSTANT,
        MAD_FORM,
        MANUAL_LERP,
        SUM_AS_DOT,
        SWIZZLE_OPPORTUNITY,
        DYNAMIC_LOOP_BOUND,
        INTERNAL_RULE_ERROR,
    )
}

# Also index by name
RULES_BY_NAME: dict[str, LintRule] = {
    rule.name: rule for rule in ALL_RULES.values()
}


def get_rule_by_name(name: str) -> Optional[LintRule]:
    """Get a lint rule by its name."""
    return RULES_BY_NAME.get(name)


def get_rule_by_code(code: str) -> Optional[LintRule]:
    """Get a lint rule by its code."""
    return ALL_RULES.get(code)


# =============================================================================
# Rule Registry
# =============================================================================

RuleCheck = Callable[["AnnotatedShader"], Iterable[Diagnostic]]


@dataclass(frozen=True)
class RuleEntry:
    """A rule paired with the function that checks it."""

    rule: LintRule
    check: RuleCheck

    @property
    def rule_id(self) -> str:
        return self.rule.name


class RuleRegistry:
    """
    Immutable ordered collection of rule entries.

    Running order is registration order. Rule ids must be unique.
    """

    __slots__ = ("_entries",)

    def __init__(self, entries: Iterable[RuleEntry] = ()) -> None:
        entries = tuple(entries)
        seen: set[str] = set()
        for entry in entries:
            if entry.rule_id in seen:
                raise ValueError(f"rule '{entry.rule_id}' is registered more than once")
            seen.add(entry.rule_id)
        self._entries: tuple[RuleEntry, ...] = entries

    @property
    def entries(self) -> tuple[RuleEntry, ...]:
        return self._entries

    def rule_ids(self) -> list[str]:
        return [entry.rule_id for entry in self._entries]

    def get(self, rule_id: str) -> Optional[RuleEntry]:
        for entry in self._entries:
            if entry.rule_id == rule_id:
                return entry
        return None

    def filtered(
        self,
        severities: Optional[Iterable[Severity]] = None,
        rule_ids: Optional[Iterable[str]] = None,
        exclude: Iterable[str] = (),
    ) -> "RuleRegistry":
        """
        Create a registry keeping only some entries, in the same order.

        Args:
            severities: Keep rules of these severities (all when None)
            rule_ids: Keep rules with these ids (all when None)
            exclude: Drop rules with these ids

        Returns:
            A new registry
        """
        wanted_severities = set(severities) if severities is not None else None
        wanted_ids = set(rule_ids) if rule_ids is not None else None
        excluded = set(exclude)
        return RuleRegistry(
            entry for entry in self._entries
            if (wanted_severities is None or entry.rule.severity in wanted_severities)
            and (wanted_ids is None or entry.rule_id in wanted_ids)
            and entry.rule_id not in excluded
        )

    def extended(self, entries: Iterable[RuleEntry]) -> "RuleRegistry":
        """Create a registry with additional entries appended."""
        return RuleRegistry(self._entries + tuple(entries))

    def __iter__(self) -> Iterator[RuleEntry]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, rule_id: object) -> bool:
        return any(entry.rule_id == rule_id for entry in self._entries)

    def __repr__(self) -> str:
        return f"RuleRegistry({', '.join(self.rule_ids())})"
