"""
The default rule registry.

Built once at import time and never modified. Registration order is the
running order and the tie-break for diagnostics at the same position.
"""

from shaderlint.lint import optimization, style
from shaderlint.lint.rules import (
    DECLARATION_ORDER,
    DIVISION_BY_CONSTANT,
    DYNAMIC_LOOP_BOUND,
    FILE_NAME,
    FRAGMENT_UV_MUTATION,
    IDENTIFIER_CASE,
    MAD_FORM,
    MANUAL_LERP,
    OUT_PARAMETER_SUFFIX,
    SUM_AS_DOT,
    SWIZZLE_OPPORTUNITY,
    VERSION_DIRECTIVE,
    RuleEntry,
    RuleRegistry,
)

DEFAULT_REGISTRY = RuleRegistry([
    # Policy and style
    RuleEntry(VERSION_DIRECTIVE, style.check_version_directive),
    RuleEntry(FILE_NAME, style.check_file_name),
    RuleEntry(IDENTIFIER_CASE, style.check_identifier_case),
    RuleEntry(OUT_PARAMETER_SUFFIX, style.check_out_parameter_suffix),
    RuleEntry(DECLARATION_ORDER, style.check_declaration_order),
    # Optimization
    RuleEntry(DIVISION_BY_CONSTANT, optimization.check_division_by_constant),
    RuleEntry(MAD_FORM, optimization.check_mad_form),
    RuleEntry(MANUAL_LERP, optimization.check_manual_lerp),
    RuleEntry(SUM_AS_DOT, optimization.check_sum_as_dot),
    RuleEntry(SWIZZLE_OPPORTUNITY, optimization.check_swizzle_opportunity),
    RuleEntry(DYNAMIC_LOOP_BOUND, optimization.check_dynamic_loop_bound),
    # Performance
    RuleEntry(FRAGMENT_UV_MUTATION, optimization.check_fragment_uv_mutation),
])
