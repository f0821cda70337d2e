# src/llmregistry/selection/filter.py
"""
Constraint Filter - hard exclusions applied before scoring.

Checks run in a fixed order and the first failing check decides the
reason logged for an excluded entry:

1. required capabilities (on the model, and on its provider when the
   provider declared a capability set)
2. provider allow / deny lists
3. minimum context window
4. minimum output tokens (unknown limits fail)
5. tier
6. budget (average price per 1M tokens, then estimated cost per request)

Entries with unknown pricing are never excluded by a budget.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping

from ..catalog.schema import CatalogEntry
from .criteria import SelectionCriteria

logger = logging.getLogger(__name__)

TOKENS_PER_PRICE_UNIT = 1_000_000


class ConstraintFilter:
    """Removes catalog entries that cannot satisfy a SelectionCriteria."""

    def filter(
        self,
        entries: Iterable[CatalogEntry],
        criteria: SelectionCriteria,
        estimated_tokens: int | None = None,
        provider_capabilities: Mapping[str, frozenset[str]] | None = None,
    ) -> list[CatalogEntry]:
        """
        Return the entries that pass every constraint, in input order.

        Args:
            entries: Catalog entries to check
            criteria: Constraints to apply
            estimated_tokens: Token estimate for the request; enables the
                ``max_cost_per_request`` check
            provider_capabilities: Capability sets declared by providers,
                usually ``CatalogSnapshot.provider_capabilities``

        Returns:
            Passing entries, in the order given
        """
        passed: list[CatalogEntry] = []
        excluded = 0
        for entry in entries:
            reason = self.exclusion_reason(entry, criteria, estimated_tokens, provider_capabilities)
            if reason is None:
                passed.append(entry)
            else:
                excluded += 1
                logger.debug(f"Excluding '{entry.id}': {reason}")

        logger.debug(f"Constraint filter kept {len(passed)} models, excluded {excluded}")
        return passed

    def exclusion_reason(
        self,
        entry: CatalogEntry,
        criteria: SelectionCriteria,
        estimated_tokens: int | None = None,
        provider_capabilities: Mapping[str, frozenset[str]] | None = None,
    ) -> str | None:
        """Return why ``entry`` fails ``criteria``, or None if it passes."""
        missing = criteria.required - entry.capabilities
        if missing:
            return f"missing capabilities {sorted(missing)}"
        declared = (provider_capabilities or {}).get(entry.provider)
        if declared is not None:
            unsupported = criteria.required - declared
            if unsupported:
                return f"provider '{entry.provider}' does not support {sorted(unsupported)}"

        if criteria.providers.allow and entry.provider not in criteria.providers.allow:
            return f"provider '{entry.provider}' not in allow list"
        if entry.provider in criteria.providers.deny:
            return f"provider '{entry.provider}' is denied"

        if criteria.min_context_window is not None and entry.context_window < criteria.min_context_window:
            return f"context window {entry.context_window} < {criteria.min_context_window}"

        if criteria.min_output_tokens is not None:
            if entry.max_output_tokens is None:
                return "output token limit unknown"
            if entry.max_output_tokens < criteria.min_output_tokens:
                return f"max output tokens {entry.max_output_tokens} < {criteria.min_output_tokens}"

        if criteria.tier is not None and entry.tier != criteria.tier:
            return f"tier '{entry.tier.value}' != '{criteria.tier.value}'"

        average = entry.average_price_per_1m
        if average is None:
            return None

        budget = criteria.budget
        if budget.max_cost_per_million_tokens is not None and average > budget.max_cost_per_million_tokens:
            return f"average price {average:.4f}/1M exceeds {budget.max_cost_per_million_tokens}/1M"

        if budget.max_cost_per_request is not None and estimated_tokens is not None:
            cost = estimated_tokens / TOKENS_PER_PRICE_UNIT * average
            if cost > budget.max_cost_per_request:
                return f"estimated request cost {cost:.6f} exceeds {budget.max_cost_per_request}"

        return None
