from __future__ import annotations

from functools import lru_cache
from typing import Iterable, Iterator

from rpgle_lint.models import Rule
from rpgle_lint.rules import (
    bifs,
    control,
    declarations,
    diagnostics,
    errors,
    expressions,
    procedures,
    sql,
    structure,
)

RULE_MODULES = (
    declarations,
    bifs,
    expressions,
    control,
    procedures,
    sql,
    errors,
    structure,
    diagnostics,
)


class RuleRegistry:
    """Ordered, read-only collection of rules indexed by id."""

    def __init__(self, rules: Iterable[Rule]):
        self._rules = tuple(rules)
        self._index: dict[str, Rule] = {}
        for rule in self._rules:
            if rule.id in self._index:
                raise ValueError(f"Duplicate rule id: {rule.id}")
            self._index[rule.id] = rule

    def __iter__(self) -> Iterator[Rule]:
        return iter(self._rules)

    def __len__(self) -> int:
        return len(self._rules)

    def __contains__(self, rule_id: object) -> bool:
        return rule_id in self._index

    def get(self, rule_id: str) -> Rule | None:
        return self._index.get(rule_id)

    def ids(self) -> list[str]:
        return [rule.id for rule in self._rules]

    def categories(self) -> list[str]:
        return sorted({rule.category for rule in self._rules})

    def without(self, rule_ids: Iterable[str]) -> RuleRegistry:
        dropped = set(rule_ids)
        return RuleRegistry(rule for rule in self._rules if rule.id not in dropped)

    def with_rules(self, rules: Iterable[Rule]) -> RuleRegistry:
        """Returns a registry where rules replace same-id entries in place; new ids are appended."""
        replacements = {rule.id: rule for rule in rules}
        merged = [replacements.pop(rule.id, rule) for rule in self._rules]
        merged.extend(replacements.values())
        return RuleRegistry(merged)


@lru_cache(maxsize=1)
def default_registry() -> RuleRegistry:
    return RuleRegistry(rule for module in RULE_MODULES for rule in module.RULES)
