# src/llmregistry/__init__.py
"""
llmregistry - a model registry and selection engine for multi-vendor LLM catalogs.

The registry aggregates the model listings of independent providers,
enriches them from external model sources, applies configured overrides
and serves the result as an immutable snapshot. The selector picks the
best model for a request from that snapshot under capability, cost,
context-window and provider constraints.

Quick Start:
    >>> from llmregistry import ModelRegistry, ModelSelector, SelectionCriteria
    >>>
    >>> registry = await ModelRegistry.create(providers={"openai": openai_provider})
    >>> selector = ModelSelector(registry)
    >>> result = await selector.select(SelectionCriteria(required={"chat"}, weights="balanced"))
    >>> print(result.entry.id)
"""

from importlib.metadata import PackageNotFoundError, version

from .catalog import (
    AggregationReport,
    Capability,
    CatalogEntry,
    CatalogSnapshot,
    EntryPatch,
    ModelFragment,
    ModelProvider,
    ModelRegistry,
    ModelSource,
    ModelTier,
    OverrideMerger,
    OverrideRule,
    Pricing,
    SourceAggregator,
)
from .config import (
    RegistrySettings,
    SelectionWeights,
    load_registry_settings,
    load_registry_settings_file,
)
from .exceptions import (
    AggregationConfigError,
    ConfigError,
    HookError,
    LLMRegistryError,
    NoCandidateModelError,
    ProducerFetchError,
    SelectionError,
    UnknownModelError,
)
from .logging_config import configure_logging, log_display
from .selection import (
    Budget,
    ConstraintFilter,
    ModelSelector,
    ProviderFilter,
    ScoredCandidate,
    Scorer,
    SelectionCriteria,
    SelectionHooks,
    SelectionResult,
)

try:
    __version__ = version("llmregistry")
except PackageNotFoundError:
    __version__ = "0.0.0"


__all__ = [
    # ==========================================================================
    # Catalog
    # ==========================================================================
    "AggregationReport",
    "Capability",
    "CatalogEntry",
    "CatalogSnapshot",
    "EntryPatch",
    "ModelFragment",
    "ModelProvider",
    "ModelRegistry",
    "ModelSource",
    "ModelTier",
    "OverrideMerger",
    "OverrideRule",
    "Pricing",
    "SourceAggregator",
    # ==========================================================================
    # Selection
    # ==========================================================================
    "Budget",
    "ConstraintFilter",
    "ModelSelector",
    "ProviderFilter",
    "ScoredCandidate",
    "Scorer",
    "SelectionCriteria",
    "SelectionHooks",
    "SelectionResult",
    # ==========================================================================
    # Configuration & logging
    # ==========================================================================
    "RegistrySettings",
    "SelectionWeights",
    "load_registry_settings",
    "load_registry_settings_file",
    "configure_logging",
    "log_display",
    # ==========================================================================
    # Exceptions
    # ==========================================================================
    "AggregationConfigError",
    "ConfigError",
    "HookError",
    "LLMRegistryError",
    "NoCandidateModelError",
    "ProducerFetchError",
    "SelectionError",
    "UnknownModelError",
    "__version__",
]
