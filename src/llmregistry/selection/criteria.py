# src/llmregistry/selection/criteria.py
"""
Data models for model selection.

- SelectionCriteria: the caller's constraints and preferences
- ScoredCandidate: one candidate with its composite and per-metric scores
- SelectionResult: the outcome of one ``select()`` call

Criteria are mutable pydantic models (assignments are validated) so that
before-selection hooks can adjust a copy in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from ..catalog.schema import CatalogEntry, ModelTier, normalize_capabilities
from ..config.models import SelectionWeights


def _as_name_set(value: Any) -> frozenset[str]:
    if value is None:
        return frozenset()
    if isinstance(value, str):
        return frozenset([value])
    return frozenset(str(item) for item in value)


class ProviderFilter(BaseModel):
    """Provider allow/deny lists. An empty allow list allows every provider."""

    allow: frozenset[str] = Field(default_factory=frozenset)
    deny: frozenset[str] = Field(default_factory=frozenset)

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator("allow", "deny", mode="before")
    @classmethod
    def _coerce(cls, value: Any) -> frozenset[str]:
        return _as_name_set(value)

    def permits(self, provider: str) -> bool:
        if self.allow and provider not in self.allow:
            return False
        return provider not in self.deny


class Budget(BaseModel):
    """Spending limits. Entries with unknown pricing are never excluded by a budget."""

    max_cost_per_request: float | None = Field(
        None, ge=0, description="Limit for estimated_tokens / 1e6 x average price"
    )
    max_cost_per_million_tokens: float | None = Field(
        None, ge=0, description="Limit for the average price per 1M tokens"
    )

    model_config = ConfigDict(extra="forbid", validate_assignment=True)


class SelectionCriteria(BaseModel):
    """
    Constraints and preferences for picking one model.

    Attributes:
        required: Capabilities every candidate must have
        optional: Nice-to-have capabilities, rewarded by the quality metric
        providers: Provider allow/deny lists
        min_context_window: Minimum context window in tokens
        min_output_tokens: Minimum output token limit (unknown limits fail it)
        tier: Only consider models of this tier
        budget: Spending limits
        weights: Metric weights, or the name of a weight profile
        model: Explicit model id; bypasses filtering and scoring

    Example:
        >>> criteria = SelectionCriteria(
        ...     required={"chat", "vision"},
        ...     providers={"deny": ["legacy-vendor"]},
        ...     weights={"cost": 1.0},
        ... )
    """

    required: frozenset[str] = Field(default_factory=frozenset)
    optional: frozenset[str] = Field(default_factory=frozenset)
    providers: ProviderFilter = Field(default_factory=ProviderFilter)
    min_context_window: int | None = Field(None, ge=0)
    min_output_tokens: int | None = Field(None, ge=0)
    tier: ModelTier | None = None
    budget: Budget = Field(default_factory=Budget)
    weights: SelectionWeights | str | None = None
    model: str | None = None

    model_config = ConfigDict(extra="forbid", validate_assignment=True)

    @field_validator("required", "optional", mode="before")
    @classmethod
    def _normalize_capabilities(cls, value: Any) -> frozenset[str]:
        return normalize_capabilities(value)

    @field_validator("providers", "budget", mode="before")
    @classmethod
    def _none_to_default(cls, value: Any, info: ValidationInfo) -> Any:
        if value is None:
            return ProviderFilter() if info.field_name == "providers" else Budget()
        return value

    def describe(self) -> str:
        """Compact, human-readable summary of the constraints that are set."""
        parts: list[str] = []
        if self.model:
            parts.append(f"model={self.model}")
        if self.required:
            parts.append(f"required={sorted(self.required)}")
        if self.optional:
            parts.append(f"optional={sorted(self.optional)}")
        if self.providers.allow:
            parts.append(f"allow={sorted(self.providers.allow)}")
        if self.providers.deny:
            parts.append(f"deny={sorted(self.providers.deny)}")
        if self.min_context_window is not None:
            parts.append(f"min_context_window={self.min_context_window}")
        if self.min_output_tokens is not None:
            parts.append(f"min_output_tokens={self.min_output_tokens}")
        if self.tier is not None:
            parts.append(f"tier={self.tier.value}")
        if self.budget.max_cost_per_million_tokens is not None:
            parts.append(f"max_cost_per_million_tokens={self.budget.max_cost_per_million_tokens}")
        if self.budget.max_cost_per_request is not None:
            parts.append(f"max_cost_per_request={self.budget.max_cost_per_request}")
        return ", ".join(parts) if parts else "<no constraints>"


@dataclass(frozen=True)
class ScoredCandidate:
    """A filtered candidate with its composite score and per-metric values."""

    entry: CatalogEntry
    score: float
    metrics: dict[str, float] = field(default_factory=dict)
    matched_optional: frozenset[str] = field(default_factory=frozenset)

    @property
    def id(self) -> str:
        return self.entry.id


@dataclass(frozen=True)
class SelectionResult:
    """Result of model selection."""

    entry: CatalogEntry
    score: float
    candidates: tuple[ScoredCandidate, ...]
    criteria: SelectionCriteria
    snapshot_version: int

    @property
    def model_id(self) -> str:
        return self.entry.id

    @property
    def alternatives(self) -> list[str]:
        """Ids of the other ranked candidates, best first."""
        return [c.entry.id for c in self.candidates if c.entry.id != self.entry.id]
