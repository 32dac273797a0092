"""
Diagnostic model for shaderlint.

A diagnostic is the unit of output of the core: a rule identifier, a
severity, a message, the span of source it refers to and an optional
suggested fix. ``AnalysisResult`` bundles the ordered diagnostics of one
file for consumption by reporting layers.

Example:
    warning[W0101] identifier-case: struct name 'lightData' should be UpperCamelCase
      --> lighting.frag:3:8
      = suggestion: LightData
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


# =============================================================================
# Error Codes Catalog
# =============================================================================


class ErrorCode:
    """
    Centralized catalog of diagnostic codes.

    Codes are organized by category:
    - E01xx: Syntax errors (lexing and parsing)
    - E02xx: Policy errors
    - W01xx: Style warnings
    - W02xx: Performance warnings
    - I01xx: Optimization suggestions
    - W09xx: Tool problems
    """

    # Syntax errors: E01xx
    E0101 = "E0101"  # lex error
    E0102 = "E0102"  # parse error

    # Policy errors: E02xx
    E0201 = "E0201"  # version directive

    # Style warnings: W01xx
    W0101 = "W0101"  # identifier case
    W0102 = "W0102"  # out parameter suffix
    W0103 = "W0103"  # declaration order
    W0104 = "W0104"  # file name

    # Performance warnings: W02xx
    W0201 = "W0201"  # fragment uv mutation

    # Optimization suggestions: I01xx
    I0101 = "I0101"  # division by constant
    I0102 = "I0102"  # mad form
    I0103 = "I0103"  # manual lerp
    I0104 = "I0104"  # sum as dot
    I0105 = "I0105"  # swizzle opportunity
    I0106 = "I0106"  # dynamic loop bound

    # Tool problems: W09xx
    W0901 = "W0901"  # internal rule error


# =============================================================================
# Diagnostic Types
# =============================================================================


class Severity(Enum):
    """Severity level of a diagnostic message."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"

    @property
    def rank(self) -> int:
        """Numeric rank, higher is more severe."""
        return _SEVERITY_RANKS[self]

    def at_least(self, other: "Severity") -> bool:
        """Check if this severity is at least as severe as another."""
        return self.rank >= other.rank


_SEVERITY_RANKS: dict[Severity, int] = {
    Severity.INFO: 0,
    Severity.WARNING: 1,
    Severity.ERROR: 2,
}


@dataclass(frozen=True, slots=True)
class SourceSpan:
    """
    A span of source code, representing a range of characters.

    Attributes:
        start_line: 1-indexed starting line number
        start_col: 1-indexed starting column number
        end_line: 1-indexed ending line number
        end_col: 1-indexed ending column number (exclusive)
    """

    start_line: int
    start_col: int
    end_line: int
    end_col: int

    @classmethod
    def from_location(cls, line: int, col: int, length: int = 1) -> "SourceSpan":
        """Create a span from a single location with a given length."""
        return cls(
            start_line=line,
            start_col=col,
            end_line=line,
            end_col=col + length,
        )

    @classmethod
    def file_start(cls) -> "SourceSpan":
        """Span used for diagnostics that concern the file as a whole."""
        return cls(start_line=1, start_col=1, end_line=1, end_col=2)

    def to(self, other: "SourceSpan") -> "SourceSpan":
        """Create a span from the start of this span to the end of another."""
        return SourceSpan(
            start_line=self.start_line,
            start_col=self.start_col,
            end_line=other.end_line,
            end_col=other.end_col,
        )

    def __str__(self) -> str:
        return f"{self.start_line}:{self.start_col}"

    @property
    def is_multiline(self) -> bool:
        """Check if this span covers multiple lines."""
        return self.start_line != self.end_line

    @property
    def sort_key(self) -> tuple[int, int, int, int]:
        return (self.start_line, self.start_col, self.end_line, self.end_col)

    def contains(self, other: "SourceSpan") -> bool:
        """Check if another span lies entirely within this one."""
        return (
            (self.start_line, self.start_col) <= (other.start_line, other.start_col)
            and (other.end_line, other.end_col) <= (self.end_line, self.end_col)
        )


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """
    A single finding about a shader source file.

    Attributes:
        rule_id: Identifier of the rule that produced this diagnostic
            (e.g. "declaration-order")
        severity: ERROR, WARNING or INFO
        message: Human-readable description
        span: The source range the diagnostic refers to
        suggested_fix: Optional replacement text for the flagged code
        code: Catalog code (e.g. "W0103")
    """

    rule_id: str
    severity: Severity
    message: str
    span: SourceSpan
    suggested_fix: Optional[str] = None
    code: str = ""

    def __str__(self) -> str:
        return f"{self.span}: {self.severity.value}[{self.code}] {self.rule_id}: {self.message}"

    def to_simple_message(self) -> str:
        """Get a simple one-line message."""
        return f"[{self.code}] {self.message}"


@dataclass(frozen=True)
class AnalysisResult:
    """
    The ordered diagnostics for one analyzed file.

    Parse diagnostics come first in source order, followed by rule
    diagnostics in source order (ties broken by rule registration order).
    """

    file_identifier: str
    diagnostics: tuple[Diagnostic, ...] = field(default_factory=tuple)

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.WARNING]

    @property
    def suggestions(self) -> list[Diagnostic]:
        return [d for d in self.diagnostics if d.severity == Severity.INFO]

    @property
    def has_errors(self) -> bool:
        return any(d.severity == Severity.ERROR for d in self.diagnostics)

    def by_rule(self, rule_id: str) -> list[Diagnostic]:
        """Get all diagnostics produced by one rule."""
        return [d for d in self.diagnostics if d.rule_id == rule_id]

    def rule_ids(self) -> list[str]:
        return [d.rule_id for d in self.diagnostics]

    def __len__(self) -> int:
        return len(self.diagnostics)

    def __iter__(self):
        return iter(self.diagnostics)
