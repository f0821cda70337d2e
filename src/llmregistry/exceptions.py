# src/llmregistry/exceptions.py
"""
Custom exceptions for the llmregistry library.

This module defines a hierarchy of exception classes so that callers can
tell apart configuration problems, degraded catalog fetches and the
different ways a model selection can fail.
"""

from typing import Any, Optional


class LLMRegistryError(Exception):
    """Base class for all llmregistry specific errors."""
    def __init__(self, message: str = "An unspecified error occurred in llmregistry."):
        super().__init__(message)

class ConfigError(LLMRegistryError):
    """Raised for errors related to configuration loading or validation."""
    def __init__(self, message: str = "Configuration error."):
        super().__init__(message)

class ProducerFetchError(LLMRegistryError):
    """
    A single provider or model source failed during a refresh.

    These are recorded in the aggregation report and logged; they are never
    raised to the caller of ``refresh()``.
    """
    def __init__(self, producer_name: str = "Unknown", message: str = "Producer fetch failed.", kind: str = "provider"):
        self.producer_name = producer_name
        self.kind = kind
        super().__init__(f"Error fetching models from {kind} '{producer_name}': {message}")

class AggregationConfigError(LLMRegistryError):
    """Raised when the catalog cannot be assembled because of a structural misconfiguration."""
    def __init__(self, message: str = "Catalog aggregation configuration error."):
        super().__init__(message)

class SelectionError(LLMRegistryError):
    """Base class for errors raised while selecting a model."""
    def __init__(self, message: str = "Model selection failed."):
        super().__init__(message)

class NoCandidateModelError(SelectionError):
    """Raised when automatic selection finds no model satisfying the criteria."""
    def __init__(self, criteria: Any = None, message: str = "No model satisfies the selection criteria."):
        self.criteria = criteria
        detail = ""
        if criteria is not None and hasattr(criteria, "describe"):
            detail = f" Criteria: {criteria.describe()}"
        super().__init__(f"{message}{detail}")

class UnknownModelError(SelectionError):
    """Raised when an explicitly requested model id is not in the current catalog."""
    def __init__(self, model_id: str, message: str = "Model not found in catalog."):
        self.model_id = model_id
        super().__init__(f"{message} Model ID: '{model_id}'")

class HookError(SelectionError):
    """Raised when a selection hook fails or returns an unusable value."""
    def __init__(self, hook_name: str = "Unknown", stage: str = "unknown", message: str = "Hook failed.", cause: Optional[BaseException] = None):
        self.hook_name = hook_name
        self.stage = stage
        self.cause = cause
        super().__init__(f"Error in {stage} hook '{hook_name}': {message}")
