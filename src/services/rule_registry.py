"""Rule registry.

Holds FormatRule definitions in registration order. Registration order is the
detection order, which keeps detector output deterministic.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from src.models.document import DocumentModel
from src.models.formatting import AutoFormatOptions, FormatCategory, FormatChange, Problem

from .errors import DuplicateRuleError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatRule:
    """Stateless detector + fixer pair for one formatting concern."""
    id: str
    name: str
    category: str
    detect: Callable[[DocumentModel], list[Problem]]
    generate_fix: Callable[[Problem], FormatChange]

    @property
    def format_category(self) -> Optional[FormatCategory]:
        """Parsed category, None when the label isn't a known category."""
        try:
            return FormatCategory(self.category)
        except ValueError:
            return None


class RuleRegistry:
    """Ordered collection of rules with unique ids.

    Usage:
        registry = RuleRegistry()
        registry.register(rule)
        active = registry.get_enabled(options)
    """

    def __init__(self, rules: Optional[Iterable[FormatRule]] = None):
        self._rules: dict[str, FormatRule] = {}
        for rule in rules or ():
            self.register(rule)

    def register(self, rule: FormatRule) -> None:
        """Add a rule.

        Raises:
            DuplicateRuleError: If a rule with the same id is already registered.
        """
        if rule.id in self._rules:
            raise DuplicateRuleError(rule.id)
        if rule.format_category is None:
            logger.warning(
                f"Rule '{rule.id}' has unknown category '{rule.category}'; it will never be enabled"
            )
        self._rules[rule.id] = rule

    def get(self, rule_id: str) -> Optional[FormatRule]:
        return self._rules.get(rule_id)

    def get_by_category(self, category: FormatCategory | str) -> list[FormatRule]:
        label = category.value if isinstance(category, FormatCategory) else category
        return [r for r in self._rules.values() if r.category == label]

    def get_enabled(self, options: AutoFormatOptions) -> list[FormatRule]:
        """Rules whose category is switched on in the options.

        Rules with unknown categories are always excluded.
        """
        enabled = []
        for rule in self._rules.values():
            category = rule.format_category
            if category is None:
                continue
            if options.is_enabled(category):
                enabled.append(rule)
        return enabled

    @property
    def rules(self) -> list[FormatRule]:
        return list(self._rules.values())

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._rules
