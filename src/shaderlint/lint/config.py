"""
In-memory lint configuration.

Loading configuration from files is left to callers; this module only
models the result and applies it to a rule registry. Source files may also
disable rules for themselves with a comment directive:

    // shaderlint: allow(dynamic-loop-bound)
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from shaderlint.lint.rules import RuleRegistry
from shaderlint.syntax.tokens import Token
from shaderlint.utils.diagnostics import Severity

logger = logging.getLogger(__name__)

_DIRECTIVE_PATTERN = re.compile(r"shaderlint:\s*(allow)\(\s*([a-zA-Z0-9_,\s-]+?)\s*\)")


@dataclass
class LintConfiguration:
    """
    Configuration selecting which rules run.

    Example:
        config = LintConfiguration()
        config.allow("mad-form")
        config.min_severity = Severity.WARNING
    """

    allowed: set[str] = field(default_factory=set)
    selected: Optional[set[str]] = None
    min_severity: Severity = Severity.INFO

    def allow(self, rule_id: str) -> None:
        """Disable a rule."""
        self.allowed.add(rule_id)

    def select(self, *rule_ids: str) -> None:
        """Run only the given rules (cumulative across calls)."""
        if self.selected is None:
            self.selected = set()
        self.selected.update(rule_ids)

    def is_enabled(self, rule_id: str, severity: Severity) -> bool:
        if rule_id in self.allowed:
            return False
        if self.selected is not None and rule_id not in self.selected:
            return False
        return severity.at_least(self.min_severity)

    def apply(self, registry: RuleRegistry) -> RuleRegistry:
        """Filter a registry down to the rules this configuration enables."""
        severities = [s for s in Severity if s.at_least(self.min_severity)]
        return registry.filtered(
            severities=severities,
            rule_ids=self.selected,
            exclude=self.allowed,
        )

    @classmethod
    def parse_directive(cls, comment: str) -> tuple[str, list[str]]:
        """
        Parse a lint directive from comment text.

        Formats:
            shaderlint: allow(rule-id)
            shaderlint: allow(rule-a, rule-b)

        Returns:
            Tuple of (action, rule_ids)

        Raises:
            ValueError: If the comment holds no directive
        """
        match = _DIRECTIVE_PATTERN.search(comment)
        if not match:
            raise ValueError(f"Invalid lint directive: {comment}")
        rule_ids = [part.strip() for part in match.group(2).split(",") if part.strip()]
        return match.group(1), rule_ids


def inline_allowed_rules(tokens: Iterable[Token]) -> set[str]:
    """Collect rule ids disabled by ``shaderlint: allow(...)`` comments."""
    allowed: set[str] = set()
    for token in tokens:
        for trivia in token.trivia:
            if "shaderlint:" not in trivia.text:
                continue
            try:
                _, rule_ids = LintConfiguration.parse_directive(trivia.body)
            except ValueError:
                logger.debug(f"Ignoring malformed lint directive at {trivia.location}")
                continue
            allowed.update(rule_ids)
    return allowed
