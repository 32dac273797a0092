"""
shaderlint - A style and optimization linter for GLSL-style shaders.

shaderlint parses vertex, fragment and compute shader sources and checks
them against a shading-language style guide: naming conventions,
declaration order, forbidden version directives and a set of GPU
micro-optimization idioms.
"""

from shaderlint.lint.config import LintConfiguration
from shaderlint.lint.engine import analyze
from shaderlint.lint.registry import DEFAULT_REGISTRY
from shaderlint.lint.rules import RuleEntry, RuleRegistry
from shaderlint.utils.diagnostics import AnalysisResult, Diagnostic, Severity, SourceSpan

__version__ = "0.1.0"
__all__ = [
    "analyze",
    "AnalysisResult",
    "Diagnostic",
    "Severity",
    "SourceSpan",
    "LintConfiguration",
    "RuleEntry",
    "RuleRegistry",
    "DEFAULT_REGISTRY",
]
