# src/llmregistry/selection/scorer.py
"""
Scorer - computes per-metric values and a weighted composite score.

Metrics are in [0, 1], higher is better:

- cost: min-max normalized over the known average prices of the
  candidate set (cheapest 1, most expensive 0). Unknown pricing scores 0.
- speed: the ``speed`` metadata hint, or ``tokens_per_second`` / 100,
  otherwise a tier proxy.
- quality: a tier proxy plus a bonus per matched optional capability.

Only cost depends on the rest of the candidate set; speed and quality
are fixed per entry.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..catalog.schema import CatalogEntry, ModelTier
from ..config.models import SCORING_METRICS, SelectionWeights
from .criteria import ScoredCandidate, SelectionCriteria

logger = logging.getLogger(__name__)

# Scores are compared after rounding to this many decimal places.
SCORE_DECIMALS = 9
SCORE_EPSILON = 10.0 ** -SCORE_DECIMALS

TIER_SPEED: dict[ModelTier, float] = {
    ModelTier.FLAGSHIP: 0.5,
    ModelTier.EFFICIENT: 1.0,
    ModelTier.EXPERIMENTAL: 0.7,
}

TIER_QUALITY: dict[ModelTier, float] = {
    ModelTier.FLAGSHIP: 1.0,
    ModelTier.EFFICIENT: 0.6,
    ModelTier.EXPERIMENTAL: 0.4,
}

OPTIONAL_CAPABILITY_BONUS = 0.1
TOKENS_PER_SECOND_SCALE = 100.0


def _clamp(value: float) -> float:
    return max(0.0, min(1.0, value))


def _as_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value)


class Scorer:
    """Scores filtered candidates against selection weights."""

    def score(
        self,
        candidates: Sequence[CatalogEntry],
        criteria: SelectionCriteria,
        weights: SelectionWeights,
    ) -> list[ScoredCandidate]:
        """
        Score every candidate.

        Args:
            candidates: Entries that passed the constraint filter
            criteria: Criteria (its ``optional`` set feeds the quality metric)
            weights: Resolved metric weights

        Returns:
            One ScoredCandidate per entry, in input order
        """
        cost_scores = self._cost_scores(candidates)
        weight_map = weights.as_dict()

        scored: list[ScoredCandidate] = []
        for entry, cost in zip(candidates, cost_scores):
            matched = criteria.optional & entry.capabilities
            metrics = {
                "cost": cost,
                "speed": self.speed_score(entry),
                "quality": self.quality_score(entry, len(matched)),
            }
            composite = sum(weight_map[metric] * metrics[metric] for metric in SCORING_METRICS)
            scored.append(
                ScoredCandidate(
                    entry=entry,
                    score=composite,
                    metrics=metrics,
                    matched_optional=frozenset(matched),
                )
            )
        return scored

    def rank(self, scored: Sequence[ScoredCandidate]) -> list[ScoredCandidate]:
        """
        Order candidates best first.

        Scores are rounded to SCORE_DECIMALS places; equal rounded scores
        are broken by tier (flagship first), then by the smallest id. The
        result does not depend on the input order.
        """
        return sorted(scored, key=_rank_key)

    # -------------------------------------------------------------------------
    # Metrics
    # -------------------------------------------------------------------------

    @staticmethod
    def _cost_scores(candidates: Sequence[CatalogEntry]) -> list[float]:
        averages = [entry.average_price_per_1m for entry in candidates]
        known = [a for a in averages if a is not None]
        if not known:
            return [0.0] * len(candidates)

        low, high = min(known), max(known)
        spread = high - low
        scores = []
        for average in averages:
            if average is None:
                scores.append(0.0)
            elif spread <= 0:
                scores.append(1.0)
            else:
                scores.append((high - average) / spread)
        return scores

    @staticmethod
    def speed_score(entry: CatalogEntry) -> float:
        hint = _as_number(entry.metadata.get("speed"))
        if hint is not None:
            return _clamp(hint)
        throughput = _as_number(entry.metadata.get("tokens_per_second"))
        if throughput is not None:
            return _clamp(throughput / TOKENS_PER_SECOND_SCALE)
        return TIER_SPEED[entry.tier]

    @staticmethod
    def quality_score(entry: CatalogEntry, matched_optional: int = 0) -> float:
        return min(1.0, TIER_QUALITY[entry.tier] + OPTIONAL_CAPABILITY_BONUS * matched_optional)


def _rank_key(candidate: ScoredCandidate) -> tuple[float, int, str]:
    return (-round(candidate.score, SCORE_DECIMALS), -candidate.entry.tier_rank, candidate.entry.id)
