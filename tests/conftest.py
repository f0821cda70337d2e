# tests/conftest.py
"""
Shared pytest fixtures for llmregistry tests.

Provides in-memory providers and model sources implementing the
producer protocols, a static snapshot holder for selector tests, and the
three-model catalog used by the selection scenarios.
"""

import asyncio
from collections.abc import Sequence
from typing import Any

import pytest

from llmregistry.catalog.schema import CatalogEntry, CatalogSnapshot, ModelTier, Pricing

# ============================================================================
# FAKE PRODUCERS
# ============================================================================


class FakeProvider:
    """Provider returning a fixed list, optionally after a delay or with an error."""

    def __init__(
        self,
        models: Sequence[Any] = (),
        *,
        delay: float = 0.0,
        error: BaseException | None = None,
        capabilities: Sequence[str] | None = None,
    ) -> None:
        self.models = list(models)
        self.delay = delay
        self.error = error
        self.capabilities = capabilities
        self.calls = 0
        self.closed = False

    async def list_models(self) -> Any:
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error is not None:
            raise self.error
        return list(self.models)

    async def close(self) -> None:
        self.closed = True


class GatedProvider:
    """Provider whose fetch blocks until ``release`` is set."""

    def __init__(self, models: Sequence[Any] = ()) -> None:
        self.models = list(models)
        self.started = asyncio.Event()
        self.release = asyncio.Event()
        self.calls = 0
        self.cancelled = False

    async def list_models(self) -> list[Any]:
        self.calls += 1
        self.started.set()
        try:
            await self.release.wait()
        except asyncio.CancelledError:
            self.cancelled = True
            raise
        return list(self.models)


class FakeSource:
    """Model source returning fixed fragments."""

    def __init__(self, name: str, fragments: Sequence[Any] = (), *, error: BaseException | None = None) -> None:
        self.name = name
        self.fragments = list(fragments)
        self.error = error
        self.calls = 0

    async def fetch_models(self) -> list[Any]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.fragments)


class StaticCatalog:
    """Minimal snapshot holder standing in for a ModelRegistry."""

    def __init__(self, entries: Sequence[CatalogEntry], version: int = 1, provider_order: Sequence[str] = ()) -> None:
        self._snapshot = CatalogSnapshot.build(entries, version=version, provider_order=provider_order)

    def snapshot(self) -> CatalogSnapshot:
        return self._snapshot


def make_entry(
    model_id: str,
    provider: str = "acme",
    *,
    capabilities: Sequence[str] = ("chat",),
    tier: ModelTier | None = ModelTier.FLAGSHIP,
    price: float | None = None,
    context_window: int = 128_000,
    max_output_tokens: int | None = 4096,
    metadata: dict[str, Any] | None = None,
) -> CatalogEntry:
    """Build a CatalogEntry with a symmetric price (input == output)."""
    return CatalogEntry(
        id=model_id,
        provider=provider,
        capabilities=frozenset(capabilities),
        tier=tier,
        pricing=None if price is None else Pricing(input_per_1m=price, output_per_1m=price),
        context_window=context_window,
        max_output_tokens=max_output_tokens,
        metadata=metadata or {},
    )


# ============================================================================
# FIXTURES
# ============================================================================


@pytest.fixture
def scenario_entries() -> list[CatalogEntry]:
    """A (cheap, chat only), B (expensive flagship, vision), C (mid-priced, vision)."""
    return [
        make_entry("A", "budget-vendor", capabilities=["chat"], tier=ModelTier.EFFICIENT, price=1.0),
        make_entry("B", "flagship-vendor", capabilities=["chat", "vision"], tier=ModelTier.FLAGSHIP, price=10.0),
        make_entry("C", "budget-vendor", capabilities=["chat", "vision"], tier=ModelTier.EFFICIENT, price=5.0),
    ]


@pytest.fixture
def scenario_catalog(scenario_entries: list[CatalogEntry]) -> StaticCatalog:
    return StaticCatalog(scenario_entries, version=7)


@pytest.fixture
def openai_models() -> list[dict[str, Any]]:
    """Raw provider descriptors as mappings, without the provider key."""
    return [
        {
            "id": "openai/gpt-4o",
            "capabilities": ["chat", "vision", "tools"],
            "pricing": {"input_per_1m": 2.5, "output_per_1m": 10.0},
            "context_window": 128000,
            "max_output_tokens": 16384,
        },
        {
            "id": "openai/gpt-4o-mini",
            "capabilities": ["chat", "vision", "tools"],
            "pricing": {"input_per_1m": 0.15, "output_per_1m": 0.6},
            "context_window": 128000,
            "max_output_tokens": 16384,
        },
    ]


@pytest.fixture
def anthropic_models() -> list[dict[str, Any]]:
    return [
        {
            "id": "anthropic/claude-sonnet-4",
            "capabilities": ["chat", "vision", "tools", "reasoning"],
            "pricing": {"input_per_1m": 3.0, "output_per_1m": 15.0},
            "context_window": 200000,
            "max_output_tokens": 64000,
        },
        {
            "id": "anthropic/claude-3-5-haiku",
            "capabilities": ["chat", "tools"],
            "context_window": 200000,
        },
    ]
