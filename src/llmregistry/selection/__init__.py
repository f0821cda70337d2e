# src/llmregistry/selection/__init__.py
"""
Model selection for llmregistry.

Filters the catalog snapshot by hard constraints, scores the survivors
on cost, speed and quality, ranks them deterministically and returns the
best one, with optional hooks before and after the decision.

Key Components:
    - SelectionCriteria: Required/optional capabilities, provider lists,
      limits, budget, weights or an explicit model id
    - ConstraintFilter: Hard exclusions
    - Scorer: Per-metric values, weighted composite and ranking
    - SelectionHooks: Named before/after interception points
    - ModelSelector: Runs one selection against a registry snapshot
"""

from .criteria import (
    Budget,
    ProviderFilter,
    ScoredCandidate,
    SelectionCriteria,
    SelectionResult,
)
from .filter import ConstraintFilter
from .hooks import NamedHook, SelectionHooks
from .scorer import SCORE_EPSILON, TIER_QUALITY, TIER_SPEED, Scorer
from .selector import ModelSelector

__all__ = [
    # Criteria & results
    "Budget",
    "ProviderFilter",
    "ScoredCandidate",
    "SelectionCriteria",
    "SelectionResult",
    # Pipeline
    "ConstraintFilter",
    "Scorer",
    "SCORE_EPSILON",
    "TIER_QUALITY",
    "TIER_SPEED",
    # Hooks
    "NamedHook",
    "SelectionHooks",
    # Selector
    "ModelSelector",
]
