# src/llmregistry/catalog/__init__.py
"""
Model catalog for llmregistry.

This package builds the unified model catalog from pluggable producers
and serves it from an immutable, atomically swapped snapshot.

Key Components:
    - CatalogEntry: One model with capabilities, tier, pricing and limits
    - SourceAggregator: Fetches providers and enrichment sources concurrently
    - OverrideMerger: Applies pattern-based patches to the aggregated catalog
    - ModelRegistry: Owns the current snapshot and coalesces refreshes

Quick Start:
    >>> from llmregistry.catalog import ModelRegistry
    >>>
    >>> registry = await ModelRegistry.create(providers={"openai": provider})
    >>> for entry in registry.list():
    ...     print(f"{entry.id}: {entry.context_window} tokens")
"""

# =============================================================================
# Schema Exports - Core Data Models
# =============================================================================
from .schema import (
    PATCH_FIELDS,
    TIER_RANK,
    Capability,
    CatalogEntry,
    CatalogSnapshot,
    EntryPatch,
    ModelFragment,
    ModelTier,
    Pricing,
    PricingPatch,
    normalize_capabilities,
)

# =============================================================================
# Detection, Aggregation & Overrides
# =============================================================================
from .detection import detect_capabilities_from_modality, detect_tier
from .aggregator import (
    AggregationReport,
    IdCollision,
    ModelProvider,
    ModelSource,
    SourceAggregator,
)
from .overrides import OverrideMerger, OverrideRule, parse_override_rules

# =============================================================================
# Registry Exports
# =============================================================================
from .registry import ModelRegistry

__all__ = [
    # Schema
    "PATCH_FIELDS",
    "TIER_RANK",
    "Capability",
    "CatalogEntry",
    "CatalogSnapshot",
    "EntryPatch",
    "ModelFragment",
    "ModelTier",
    "Pricing",
    "PricingPatch",
    "normalize_capabilities",
    # Detection
    "detect_capabilities_from_modality",
    "detect_tier",
    # Aggregation
    "AggregationReport",
    "IdCollision",
    "ModelProvider",
    "ModelSource",
    "SourceAggregator",
    # Overrides
    "OverrideMerger",
    "OverrideRule",
    "parse_override_rules",
    # Registry
    "ModelRegistry",
]
