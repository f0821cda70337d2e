# src/llmregistry/catalog/overrides.py
"""
Pattern-based overrides applied on top of the aggregated catalog.

An override rule selects entries (exact id, regex, provider and/or an
arbitrary predicate) and carries an EntryPatch. All matching rules are
applied to an entry in declaration order, so later rules win on the
fields they both touch.

Usage:
    rules = [
        OverrideRule(provider="openai", patch={"metadata": {"region": "us"}}),
        OverrideRule(model_id="openai/gpt-4o", patch={"context_window": 128000}),
    ]
    entries = OverrideMerger(rules).apply(entries)
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import AggregationConfigError, ConfigError
from .schema import CatalogEntry, EntryPatch

logger = logging.getLogger(__name__)

EntryPredicate = Callable[[CatalogEntry], bool]


class OverrideRule(BaseModel):
    """
    A declarative patch for catalog entries matching a pattern.

    All given match conditions must hold. A rule with no conditions
    applies to every entry.

    Attributes:
        name: Optional unique name, used in logs and for duplicate detection
        model_id: Exact id to match
        pattern: Regular expression searched in the id
        provider: Provider name to match
        predicate: Callable taking a CatalogEntry and returning bool
        patch: Fields to change
    """

    name: str | None = None
    model_id: str | None = None
    pattern: re.Pattern[str] | None = None
    provider: str | None = None
    predicate: EntryPredicate | None = Field(None, exclude=True)
    patch: EntryPatch = Field(default_factory=EntryPatch)

    model_config = ConfigDict(frozen=True, extra="forbid", arbitrary_types_allowed=True)

    @property
    def label(self) -> str:
        if self.name:
            return self.name
        target = self.model_id or (self.pattern.pattern if self.pattern else None) or self.provider
        return f"override[{target or '*'}]"

    def matches(self, entry: CatalogEntry) -> bool:
        if self.model_id is not None and entry.id != self.model_id:
            return False
        if self.provider is not None and entry.provider != self.provider:
            return False
        if self.pattern is not None and not self.pattern.search(entry.id):
            return False
        if self.predicate is not None and not self.predicate(entry):
            return False
        return True


def parse_override_rules(raw_rules: Iterable[OverrideRule | Mapping[str, Any]]) -> list[OverrideRule]:
    """
    Validate override rules given as mappings (e.g. from a config file).

    Raises:
        ConfigError: If any rule is invalid.
    """
    rules: list[OverrideRule] = []
    for position, raw in enumerate(raw_rules):
        if isinstance(raw, OverrideRule):
            rules.append(raw)
            continue
        try:
            rules.append(OverrideRule.model_validate(raw))
        except ValidationError as e:
            raise ConfigError(f"Invalid override rule at position {position}: {e}") from e
    return rules


class OverrideMerger:
    """
    Applies an ordered list of override rules to catalog entries.

    Applying the same rules to the same entries twice yields the same
    result as applying them once: patches overwrite, they never append.
    """

    def __init__(self, rules: Sequence[OverrideRule] = ()) -> None:
        self._rules: tuple[OverrideRule, ...] = tuple(rules)

    @property
    def rules(self) -> tuple[OverrideRule, ...]:
        return self._rules

    def validate(self) -> None:
        """
        Check the rule set for structural problems.

        Raises:
            AggregationConfigError: If two rules share the same name.
        """
        seen: set[str] = set()
        for rule in self._rules:
            if rule.name is None:
                continue
            if rule.name in seen:
                raise AggregationConfigError(
                    f"Duplicate override rule name '{rule.name}'; rule names must be unique."
                )
            seen.add(rule.name)

    def apply(self, entries: Sequence[CatalogEntry]) -> list[CatalogEntry]:
        """
        Apply all matching rules to each entry, preserving entry order.

        Raises:
            AggregationConfigError: On duplicate rule names, a predicate that
                raises, or a patch that produces an invalid entry.
        """
        self.validate()
        if not self._rules:
            return list(entries)

        result: list[CatalogEntry] = []
        applied = 0
        for entry in entries:
            current = entry
            for rule in self._rules:
                try:
                    matched = rule.matches(current)
                except Exception as e:
                    raise AggregationConfigError(
                        f"Override rule '{rule.label}' failed while matching '{entry.id}': {e}"
                    ) from e
                if not matched:
                    continue
                try:
                    current = rule.patch.apply_to(current)
                except ValidationError as e:
                    raise AggregationConfigError(
                        f"Override rule '{rule.label}' produced an invalid entry for '{entry.id}': {e}"
                    ) from e
                applied += 1
            result.append(current)

        logger.debug(f"Applied {applied} override matches across {len(result)} entries")
        return result
