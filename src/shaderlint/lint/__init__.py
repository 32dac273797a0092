"""
shaderlint Lint Package.

Symbol classification, expression analysis, lint rules and the rule engine.
"""

from shaderlint.lint.config import LintConfiguration
from shaderlint.lint.context import AnnotatedShader, ShaderStage, annotate
from shaderlint.lint.engine import aggregate, analyze
from shaderlint.lint.registry import DEFAULT_REGISTRY
from shaderlint.lint.rules import (
    ALL_RULES,
    RULES_BY_NAME,
    LintCategory,
    LintRule,
    RuleEntry,
    RuleRegistry,
    get_rule_by_code,
    get_rule_by_name,
)
from shaderlint.lint.symbols import SymbolInfo, SymbolRole, SymbolTable, classify_symbols

__all__ = [
    # Engine
    "analyze",
    "aggregate",
    "annotate",
    "AnnotatedShader",
    "ShaderStage",
    # Configuration
    "LintConfiguration",
    # Rules
    "LintCategory",
    "LintRule",
    "RuleEntry",
    "RuleRegistry",
    "DEFAULT_REGISTRY",
    "ALL_RULES",
    "RULES_BY_NAME",
    "get_rule_by_code",
    "get_rule_by_name",
    # Symbols
    "SymbolInfo",
    "SymbolRole",
    "SymbolTable",
    "classify_symbols",
]
