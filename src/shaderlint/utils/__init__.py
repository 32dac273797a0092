"""
shaderlint Utilities Package.

Common utilities for error handling, source locations, and diagnostics.
"""

from shaderlint.utils.diagnostics import (
    AnalysisResult,
    Diagnostic,
    ErrorCode,
    Severity,
    SourceSpan,
)
from shaderlint.utils.errors import (
    AnalysisInputError,
    ParserError,
    RuleInternalError,
    ShaderLintError,
    SourceLocation,
)

__all__ = [
    # Errors
    "ShaderLintError",
    "ParserError",
    "RuleInternalError",
    "AnalysisInputError",
    "SourceLocation",
    # Error codes
    "ErrorCode",
    # Diagnostic types
    "Severity",
    "SourceSpan",
    "Diagnostic",
    "AnalysisResult",
]
