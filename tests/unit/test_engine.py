"""
Unit tests for the rule registry, configuration and the rule engine.
"""

import logging

import pytest

from shaderlint.lint.config import LintConfiguration, inline_allowed_rules
from shaderlint.lint.engine import aggregate, analyze, run_rule
from shaderlint.lint.registry import DEFAULT_REGISTRY
from shaderlint.lint.rules import (
    ALL_RULES,
    MAD_FORM,
    RULES_BY_NAME,
    VERSION_DIRECTIVE,
    LintCategory,
    LintRule,
    RuleEntry,
    RuleRegistry,
    get_rule_by_code,
    get_rule_by_name,
)
from shaderlint.utils.diagnostics import Diagnostic, Severity, SourceSpan
from shaderlint.utils.errors import AnalysisInputError

EXPLODING = LintRule(
    code="W0999",
    name="exploding",
    category=LintCategory.TOOL,
    message="never produced",
)


def explode(shader):
    raise RuntimeError("boom")


def explode_midway(shader):
    yield EXPLODING.diagnostic(SourceSpan.file_start())
    raise KeyError("missing")


def make_diagnostic(rule_id: str, line: int, col: int, message: str = "message") -> Diagnostic:
    return Diagnostic(
        rule_id=rule_id,
        severity=Severity.WARNING,
        message=message,
        span=SourceSpan.from_location(line, col),
    )


class TestRuleCatalog:
    """Tests for the rule definitions."""

    def test_codes_and_names_unique(self):
        assert len(ALL_RULES) == len(RULES_BY_NAME) == 15

    def test_lookup(self):
        assert get_rule_by_name("mad-form") is MAD_FORM
        assert get_rule_by_code("E0201") is VERSION_DIRECTIVE
        assert get_rule_by_name("no-such-rule") is None

    def test_diagnostic_formats_message(self):
        diagnostic = VERSION_DIRECTIVE.diagnostic(SourceSpan.file_start())
        assert diagnostic.rule_id == "version-directive"
        assert diagnostic.code == "E0201"
        assert diagnostic.severity == Severity.ERROR
        assert str(diagnostic).startswith("1:1: error[E0201] version-directive:")


class TestRuleRegistry:
    """Tests for the immutable rule registry."""

    def test_default_order(self):
        assert DEFAULT_REGISTRY.rule_ids() == [
            "version-directive",
            "file-name",
            "identifier-case",
            "out-parameter-suffix",
            "declaration-order",
            "division-by-constant",
            "mad-form",
            "manual-lerp",
            "sum-as-dot",
            "swizzle-opportunity",
            "dynamic-loop-bound",
            "fragment-uv-mutation",
        ]

    def test_duplicate_rejected(self):
        entry = RuleEntry(EXPLODING, explode)
        with pytest.raises(ValueError, match="exploding"):
            RuleRegistry([entry, entry])

    def test_filtered_by_severity(self):
        errors = DEFAULT_REGISTRY.filtered(severities={Severity.ERROR})
        assert errors.rule_ids() == ["version-directive"]

    def test_filtered_keeps_order(self):
        registry = DEFAULT_REGISTRY.filtered(
            rule_ids={"mad-form", "file-name", "manual-lerp"},
            exclude={"manual-lerp"},
        )
        assert registry.rule_ids() == ["file-name", "mad-form"]

    def test_extended_is_new_registry(self):
        extended = DEFAULT_REGISTRY.extended([RuleEntry(EXPLODING, explode)])
        assert extended.rule_ids()[-1] == "exploding"
        assert "exploding" in extended
        assert "exploding" not in DEFAULT_REGISTRY
        assert len(extended) == len(DEFAULT_REGISTRY) + 1

    def test_extended_rejects_existing_id(self):
        with pytest.raises(ValueError):
            DEFAULT_REGISTRY.extended([DEFAULT_REGISTRY.get("mad-form")])

    def test_get(self):
        assert DEFAULT_REGISTRY.get("mad-form").rule is MAD_FORM
        assert DEFAULT_REGISTRY.get("exploding") is None


class TestLintConfiguration:
    """Tests for rule selection and inline directives."""

    def test_parse_directive(self):
        action, rule_ids = LintConfiguration.parse_directive(
            " shaderlint: allow(mad-form, manual-lerp)"
        )
        assert action == "allow"
        assert rule_ids == ["mad-form", "manual-lerp"]

    @pytest.mark.parametrize("comment", ["shaderlint allow(mad-form)", "shaderlint: deny(x)", "todo"])
    def test_parse_directive_invalid(self, comment):
        with pytest.raises(ValueError):
            LintConfiguration.parse_directive(comment)

    def test_is_enabled(self):
        config = LintConfiguration()
        config.allow("mad-form")
        config.min_severity = Severity.WARNING
        assert not config.is_enabled("mad-form", Severity.WARNING)
        assert not config.is_enabled("manual-lerp", Severity.INFO)
        assert config.is_enabled("parse-error", Severity.ERROR)

    def test_select_is_cumulative(self):
        config = LintConfiguration()
        config.select("mad-form")
        config.select("file-name")
        assert config.apply(DEFAULT_REGISTRY).rule_ids() == ["file-name", "mad-form"]

    def test_apply_min_severity(self):
        config = LintConfiguration(min_severity=Severity.WARNING)
        registry = config.apply(DEFAULT_REGISTRY)
        assert all(entry.rule.severity != Severity.INFO for entry in registry)
        assert "fragment-uv-mutation" in registry

    def test_inline_allowed_rules(self, tokenize):
        tokens = tokenize(
            "// shaderlint: allow(mad-form)\n"
            "float f() { /* shaderlint: allow(sum-as-dot, swizzle-opportunity) */ return 1.0; }\n"
            "// shaderlint: alow(file-name)\n"
        )
        assert inline_allowed_rules(tokens) == {"mad-form", "sum-as-dot", "swizzle-opportunity"}


class TestRunRule:
    """Tests for the per-rule failure boundary."""

    def test_failure_becomes_diagnostic(self, annotate_source):
        diagnostics = run_rule(RuleEntry(EXPLODING, explode), annotate_source("void main() {}"))
        assert len(diagnostics) == 1
        diagnostic = diagnostics[0]
        assert diagnostic.rule_id == "internal-rule-error"
        assert diagnostic.severity == Severity.WARNING
        assert diagnostic.span == SourceSpan.file_start()
        assert diagnostic.message == "rule 'exploding' failed: RuntimeError: boom"

    def test_partial_output_discarded(self, annotate_source):
        diagnostics = run_rule(RuleEntry(EXPLODING, explode_midway), annotate_source("void main() {}"))
        assert [d.rule_id for d in diagnostics] == ["internal-rule-error"]
        assert "KeyError" in diagnostics[0].message

    def test_failure_logged(self, annotate_source, caplog):
        with caplog.at_level(logging.WARNING, logger="shaderlint.lint.engine"):
            run_rule(RuleEntry(EXPLODING, explode), annotate_source("void main() {}"))
        assert "exploding" in caplog.text

    def test_other_rules_still_run(self, analyze_source):
        registry = DEFAULT_REGISTRY.extended([RuleEntry(EXPLODING, explode)])
        result = analyze_source("#version 450\nvoid main() {}", registry=registry)
        assert result.rule_ids() == ["version-directive", "internal-rule-error"]


class TestAggregate:
    """Tests for diagnostic ordering and deduplication."""

    def test_parse_diagnostics_first(self):
        result = aggregate(
            "a.frag",
            [make_diagnostic("parse-error", 9, 1), make_diagnostic("lex-error", 2, 4)],
            [[make_diagnostic("mad-form", 1, 1)]],
        )
        assert [(d.rule_id, d.span.start_line) for d in result] == [
            ("lex-error", 2),
            ("parse-error", 9),
            ("mad-form", 1),
        ]

    def test_source_order_then_registration_order(self):
        result = aggregate(
            "a.frag",
            [],
            [
                [make_diagnostic("first", 3, 5), make_diagnostic("first", 1, 1)],
                [make_diagnostic("second", 3, 5), make_diagnostic("second", 2, 1)],
            ],
        )
        assert [(d.rule_id, d.span.start_line) for d in result] == [
            ("first", 1),
            ("second", 2),
            ("first", 3),
            ("second", 3),
        ]

    def test_emission_order_within_rule(self):
        result = aggregate(
            "a.frag",
            [],
            [[make_diagnostic("rule", 1, 1, "b"), make_diagnostic("rule", 1, 1, "a")]],
        )
        assert [d.message for d in result] == ["b", "a"]

    def test_exact_duplicates_dropped(self):
        duplicate = make_diagnostic("rule", 4, 2)
        result = aggregate(
            "a.frag",
            [],
            [[duplicate, duplicate, make_diagnostic("rule", 4, 2, "other")]],
        )
        assert len(result) == 2
        assert result.file_identifier == "a.frag"


class TestAnalyze:
    """Tests for the analyze entry point."""

    @pytest.mark.parametrize(
        "file_identifier,source",
        [(None, "void main() {}"), ("a.frag", b"void main() {}"), (3, 4)],
    )
    def test_invalid_input(self, file_identifier, source):
        with pytest.raises(AnalysisInputError):
            analyze(file_identifier, source)

    def test_empty_source(self, analyze_source):
        result = analyze_source("")
        assert result.diagnostics == ()
        assert result.file_identifier == "test_shader.frag"

    def test_min_severity(self, analyze_source):
        source = "uniform float exposure;\nvoid main() { float y = exposure / 2.0; }"
        assert analyze_source(source).rule_ids() == ["division-by-constant"]
        config = LintConfiguration(min_severity=Severity.WARNING)
        assert analyze_source(source, config=config).diagnostics == ()

    def test_inline_allow(self, analyze_source):
        source = (
            "// shaderlint: allow(division-by-constant)\n"
            "uniform float exposure;\n"
            "void main() { float y = exposure / 2.0; }\n"
        )
        assert analyze_source(source).diagnostics == ()

    def test_inline_allow_parse_error(self, analyze_source):
        source = "// shaderlint: allow(parse-error)\nvoid main() { x = ; }"
        assert "parse-error" not in analyze_source(source).rule_ids()
        assert "parse-error" in analyze_source("void main() { x = ; }").rule_ids()

    def test_config_allow(self, analyze_source):
        config = LintConfiguration()
        config.allow("version-directive")
        assert analyze_source("#version 450\nvoid main() {}", config=config).diagnostics == ()

    def test_custom_registry(self, analyze_source):
        registry = RuleRegistry([DEFAULT_REGISTRY.get("file-name")])
        result = analyze_source("#version 450\n", "Bad.frag", registry=registry)
        assert result.rule_ids() == ["file-name"]
