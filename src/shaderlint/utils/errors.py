"""
Error types and source location tracking for the shaderlint core.

Parser and rule errors are internal control flow: they are always caught
and recovered inside the core and surfaced as diagnostics. The only error a
caller ever sees is ``AnalysisInputError``.
"""

from dataclasses import dataclass
from typing import Optional

from shaderlint.utils.diagnostics import SourceSpan


@dataclass(frozen=True, slots=True)
class SourceLocation:
    """
    Represents a location in the source code.

    Attributes:
        line: 1-indexed line number
        column: 1-indexed column number
        offset: 0-indexed character offset from start of source
        filename: Optional filename for error reporting
    """

    line: int
    column: int
    offset: int = 0
    filename: Optional[str] = None

    def __str__(self) -> str:
        if self.filename:
            return f"{self.filename}:{self.line}:{self.column}"
        return f"{self.line}:{self.column}"


class ShaderLintError(Exception):
    """Base exception for all shaderlint errors."""

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
    ) -> None:
        self.message = message
        self.location = location
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.location:
            return f"[{self.location}] {self.message}"
        return self.message


class ParserError(ShaderLintError):
    """
    Raised when the parser encounters a syntax error.

    Never escapes the parser: each recovery point turns it into a
    ``parse-error`` diagnostic covering ``span``.
    """

    def __init__(
        self,
        message: str,
        location: Optional[SourceLocation] = None,
        span: Optional[SourceSpan] = None,
    ) -> None:
        self.span = span
        super().__init__(message, location)


class RuleInternalError(ShaderLintError):
    """
    Raised when a lint rule fails while checking a file.

    The engine never lets this escape; it is logged and converted into an
    ``internal-rule-error`` diagnostic.
    """

    def __init__(self, rule_id: str, cause: BaseException) -> None:
        self.rule_id = rule_id
        self.cause = cause
        super().__init__(f"rule '{rule_id}' failed: {type(cause).__name__}: {cause}")


class AnalysisInputError(ShaderLintError):
    """Raised when ``analyze`` is called with arguments that violate its contract."""

    pass
