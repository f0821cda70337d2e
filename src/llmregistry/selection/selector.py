# src/llmregistry/selection/selector.py
"""
Model Selector - picks one catalog entry for a request.

One selection runs through these states:

    ExplicitLookup -> Resolved
    Filtering -> Scoring -> Ranking -> Resolved | NoCandidate

The registry snapshot is captured once when a selection starts, so a
refresh that completes while async hooks are running does not change
the catalog that selection sees.

Usage:
    from llmregistry import ModelRegistry, ModelSelector, SelectionCriteria

    registry = await ModelRegistry.create(providers=providers)
    selector = ModelSelector(registry)

    result = await selector.select(
        SelectionCriteria(required={"chat", "vision"}, weights="cost_priority")
    )
    print(f"Selected: {result.entry.id} (score {result.score:.3f})")
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Protocol

from ..catalog.schema import CatalogSnapshot
from ..config.models import RegistrySettings, SelectionWeights
from ..exceptions import ConfigError, NoCandidateModelError, UnknownModelError
from .criteria import ScoredCandidate, SelectionCriteria, SelectionResult
from .filter import ConstraintFilter
from .hooks import SelectionHooks
from .scorer import Scorer

logger = logging.getLogger(__name__)

EXPLICIT_SELECTION_SCORE = 1.0


class SnapshotSource(Protocol):
    """Anything that can hand out the current catalog snapshot (e.g. ModelRegistry)."""

    def snapshot(self) -> CatalogSnapshot: ...


class ModelSelector:
    """
    Selects the best model from a registry for given criteria.

    Args:
        registry: Source of the catalog snapshot, usually a ModelRegistry
        settings: Settings providing weight profiles and default weights.
            Defaults to the registry's settings when it has any.
        hooks: Before/after selection hooks
        constraint_filter: Filter implementation (default ConstraintFilter)
        scorer: Scorer implementation (default Scorer)
    """

    def __init__(
        self,
        registry: SnapshotSource,
        settings: RegistrySettings | None = None,
        hooks: SelectionHooks | None = None,
        *,
        constraint_filter: ConstraintFilter | None = None,
        scorer: Scorer | None = None,
    ) -> None:
        self.registry = registry
        self.settings = settings or getattr(registry, "settings", None) or RegistrySettings()
        self.hooks = hooks if hooks is not None else SelectionHooks()
        self._filter = constraint_filter or ConstraintFilter()
        self._scorer = scorer or Scorer()

    async def select(
        self,
        criteria: SelectionCriteria | Mapping[str, Any] | None = None,
        *,
        estimated_tokens: int | None = None,
    ) -> SelectionResult:
        """
        Select one model.

        Args:
            criteria: Constraints and preferences (a mapping is validated
                into SelectionCriteria)
            estimated_tokens: Token estimate used by ``max_cost_per_request``

        Returns:
            SelectionResult with the chosen entry and the ranked candidates

        Raises:
            UnknownModelError: If an explicit model id is not in the catalog
            NoCandidateModelError: If no model satisfies the criteria
            HookError: If a selection hook fails
            ConfigError: If the criteria name an unknown weight profile
        """
        snapshot = self.registry.snapshot()
        effective = await self.hooks.run_before(_coerce_criteria(criteria))

        if effective.model:
            entry = snapshot.get(effective.model)
            if entry is None:
                raise UnknownModelError(effective.model)
            logger.debug(f"Explicit model requested: '{entry.id}'")
            ranked = [ScoredCandidate(entry=entry, score=EXPLICIT_SELECTION_SCORE)]
        else:
            ranked = self._rank(snapshot, effective, estimated_tokens)
            if not ranked:
                logger.info(
                    f"No model satisfies the criteria ({effective.describe()}) "
                    f"in catalog version {snapshot.version}"
                )
                raise NoCandidateModelError(effective)

        best = ranked[0]
        chosen = await self.hooks.run_after(best.entry, snapshot)
        score = best.score
        if chosen.id != best.entry.id:
            score = next((c.score for c in ranked if c.entry.id == chosen.id), 0.0)

        logger.info(
            f"Selected model '{chosen.id}' (score {score:.4f}) from {len(ranked)} candidates"
        )
        return SelectionResult(
            entry=chosen,
            score=score,
            candidates=tuple(ranked),
            criteria=effective,
            snapshot_version=snapshot.version,
        )

    def search(
        self,
        criteria: SelectionCriteria | Mapping[str, Any] | None = None,
        *,
        estimated_tokens: int | None = None,
    ) -> list[ScoredCandidate]:
        """
        Rank every model that satisfies the criteria, best first.

        Hooks are not run. An empty list is returned when nothing matches,
        including an explicit model id that is not in the catalog.
        """
        snapshot = self.registry.snapshot()
        criteria = _coerce_criteria(criteria)
        if criteria.model:
            entry = snapshot.get(criteria.model)
            return [] if entry is None else [ScoredCandidate(entry=entry, score=EXPLICIT_SELECTION_SCORE)]
        return self._rank(snapshot, criteria, estimated_tokens)

    def resolve_weights(self, weights: SelectionWeights | str | None) -> SelectionWeights:
        """
        Resolve criteria weights to concrete SelectionWeights.

        Order: explicit weights, named profile, settings default, all zero.

        Raises:
            ConfigError: If ``weights`` names an unknown profile.
        """
        if isinstance(weights, SelectionWeights):
            return weights
        if isinstance(weights, str):
            profile = self.settings.resolve_profile(weights)
            if profile is None:
                known = ", ".join(sorted(self.settings.all_profiles()))
                raise ConfigError(f"Unknown weight profile '{weights}'. Available profiles: {known}")
            return profile
        if self.settings.default_weights is not None:
            return self.settings.default_weights
        return SelectionWeights()

    def _rank(
        self,
        snapshot: CatalogSnapshot,
        criteria: SelectionCriteria,
        estimated_tokens: int | None,
    ) -> list[ScoredCandidate]:
        weights = self.resolve_weights(criteria.weights)
        candidates = self._filter.filter(
            snapshot.entries, criteria, estimated_tokens, snapshot.provider_capabilities
        )
        if not candidates:
            return []
        if weights.is_zero():
            logger.debug("All selection weights are zero; ranking falls back to tier and id")
        return self._scorer.rank(self._scorer.score(candidates, criteria, weights))


def _coerce_criteria(criteria: SelectionCriteria | Mapping[str, Any] | None) -> SelectionCriteria:
    if criteria is None:
        return SelectionCriteria()
    if isinstance(criteria, SelectionCriteria):
        return criteria
    return SelectionCriteria.model_validate(dict(criteria))
