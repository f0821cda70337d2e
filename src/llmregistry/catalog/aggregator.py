# src/llmregistry/catalog/aggregator.py
"""
Source Aggregator - fetches raw catalogs from all producers and merges them.

Producers come in two kinds:

- Providers (``ModelProvider``): vendors that advertise the models they
  serve. They are the only producers that can introduce models.
- Model sources (``ModelSource``): external, non-authoritative
  enrichment feeds keyed by model id (pricing databases, benchmark
  tables, ...). Their fragments are merged onto existing entries.

Every producer is fetched concurrently under its own timeout. A
producer that fails is skipped and recorded; the rest of the catalog is
still built.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable

from pydantic import ValidationError

from ..exceptions import ProducerFetchError
from ..logging_config import log_display
from .detection import detect_capabilities_from_modality
from .schema import CatalogEntry, ModelFragment, Pricing, normalize_capabilities

logger = logging.getLogger(__name__)

DEFAULT_FETCH_TIMEOUT_SECONDS = 30.0


# =============================================================================
# Producer Protocols
# =============================================================================


@runtime_checkable
class ModelProvider(Protocol):
    """
    Anything that can list the models it serves.

    A provider may also expose a ``capabilities`` attribute (an iterable of
    tags, or a callable returning one) naming what the vendor endpoint
    supports. A required capability then only counts when both the model
    and its provider have it.
    """

    async def list_models(self) -> Sequence[CatalogEntry | Mapping[str, Any]]: ...


@runtime_checkable
class ModelSource(Protocol):
    """An enrichment feed keyed by model id."""

    name: str

    async def fetch_models(self) -> Sequence[ModelFragment | Mapping[str, Any]]: ...


# =============================================================================
# Report
# =============================================================================


@dataclass
class IdCollision:
    """Two producers advertised the same model id."""

    model_id: str
    kept_provider: str
    dropped_provider: str


@dataclass
class AggregationReport:
    """What happened during one aggregation run."""

    failures: list[ProducerFetchError] = field(default_factory=list)
    collisions: list[IdCollision] = field(default_factory=list)
    dropped_fragments: list[str] = field(default_factory=list)
    skipped_providers: list[str] = field(default_factory=list)
    entry_count: int = 0

    @property
    def degraded(self) -> bool:
        """True when at least one producer failed."""
        return bool(self.failures)

    def as_dict(self) -> dict[str, Any]:
        return {
            "entry_count": self.entry_count,
            "failures": [str(f) for f in self.failures],
            "collisions": [
                {"model_id": c.model_id, "kept": c.kept_provider, "dropped": c.dropped_provider}
                for c in self.collisions
            ],
            "dropped_fragments": list(self.dropped_fragments),
            "skipped_providers": list(self.skipped_providers),
        }


# =============================================================================
# Aggregator
# =============================================================================


class SourceAggregator:
    """
    Fetches from providers and model sources and merges the results.

    Args:
        providers: Ordered mapping of provider name to provider. Declaration
            order decides which provider wins an id collision.
        sources: Ordered model sources. Later sources win on conflicting fields.
        fetch_timeout: Seconds each producer may take before it is treated as failed.
        default_cost_per_million_tokens: If set, provider entries without any
            pricing get ``input = default`` and ``output = 2 * default``.
    """

    def __init__(
        self,
        providers: Mapping[str, Any] | None = None,
        sources: Sequence[Any] = (),
        *,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT_SECONDS,
        default_cost_per_million_tokens: float | None = None,
    ) -> None:
        self._providers: dict[str, Any] = dict(providers or {})
        self._sources: list[Any] = list(sources)
        self.fetch_timeout = fetch_timeout
        self.default_cost_per_million_tokens = default_cost_per_million_tokens

    @property
    def provider_names(self) -> tuple[str, ...]:
        return tuple(self._providers)

    @property
    def providers(self) -> dict[str, Any]:
        return dict(self._providers)

    @property
    def provider_capabilities(self) -> dict[str, frozenset[str]]:
        """Capability sets declared by providers, keyed by provider name."""
        declared: dict[str, frozenset[str]] = {}
        for name, provider in self._providers.items():
            value = getattr(provider, "capabilities", None)
            if callable(value):
                value = value()
            if value is not None:
                declared[name] = normalize_capabilities(value)
        return declared

    @property
    def sources(self) -> tuple[Any, ...]:
        return tuple(self._sources)

    async def aggregate(self) -> tuple[list[CatalogEntry], AggregationReport]:
        """
        Fetch every producer concurrently and merge deterministically.

        Returns:
            The merged entries in provider declaration order, and a report of
            failures, collisions and dropped fragments.
        """
        report = AggregationReport()

        listing_providers: list[tuple[str, Any]] = []
        for name, provider in self._providers.items():
            if not callable(getattr(provider, "list_models", None)):
                logger.debug(f"Provider '{name}' does not list models; skipping")
                report.skipped_providers.append(name)
                continue
            listing_providers.append((name, provider))

        provider_tasks = [self._fetch_provider(name, provider) for name, provider in listing_providers]
        source_tasks = [self._fetch_source(index, source) for index, source in enumerate(self._sources)]

        results = await asyncio.gather(*provider_tasks, *source_tasks)
        provider_results = results[: len(provider_tasks)]
        source_results = results[len(provider_tasks):]

        entries: dict[str, CatalogEntry] = {}
        origins: dict[str, str] = {}
        for (name, _), outcome in zip(listing_providers, provider_results):
            if isinstance(outcome, ProducerFetchError):
                report.failures.append(outcome)
                continue
            for entry in outcome:
                existing = entries.get(entry.id)
                if existing is None:
                    entries[entry.id] = entry
                    origins[entry.id] = name
                    continue
                kept = origins[entry.id]
                if kept != name:
                    logger.warning(
                        f"Model id '{entry.id}' reported by both '{kept}' and "
                        f"'{name}'; keeping the entry from '{kept}'"
                    )
                    report.collisions.append(
                        IdCollision(
                            model_id=entry.id,
                            kept_provider=kept,
                            dropped_provider=name,
                        )
                    )
                else:
                    logger.debug(f"Provider '{name}' listed '{entry.id}' more than once; keeping the first")

        for outcome in source_results:
            if isinstance(outcome, ProducerFetchError):
                report.failures.append(outcome)
                continue
            for fragment in outcome:
                base = entries.get(fragment.id)
                if base is None:
                    logger.debug(f"Dropping enrichment for unknown model '{fragment.id}'")
                    report.dropped_fragments.append(fragment.id)
                    continue
                try:
                    entries[fragment.id] = fragment.apply_to(base)
                except ValidationError as e:
                    logger.warning(f"Ignoring enrichment for '{fragment.id}': {e}")
                    report.dropped_fragments.append(fragment.id)

        merged = list(entries.values())
        report.entry_count = len(merged)

        for failure in report.failures:
            log_display(logger, logging.WARNING, str(failure))
        logger.info(
            f"Aggregated {len(merged)} models from {len(listing_providers)} providers and "
            f"{len(self._sources)} sources ({len(report.failures)} failed)"
        )
        return merged, report

    async def _fetch_provider(self, name: str, provider: Any) -> list[CatalogEntry] | ProducerFetchError:
        try:
            raw = await asyncio.wait_for(provider.list_models(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            return ProducerFetchError(name, f"timed out after {self.fetch_timeout}s")
        except Exception as e:
            logger.debug(f"Provider '{name}' raised during list_models", exc_info=True)
            return ProducerFetchError(name, f"{type(e).__name__}: {e}")

        if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
            return ProducerFetchError(name, f"expected a list of models, got {type(raw).__name__}")

        entries: list[CatalogEntry] = []
        for item in raw:
            try:
                entries.append(self._coerce_entry(name, item))
            except (ValidationError, TypeError) as e:
                return ProducerFetchError(name, f"malformed model descriptor: {e}")
        logger.debug(f"Provider '{name}' listed {len(entries)} models")
        return entries

    async def _fetch_source(self, index: int, source: Any) -> list[ModelFragment] | ProducerFetchError:
        name = getattr(source, "name", None) or f"source[{index}]"
        try:
            raw = await asyncio.wait_for(source.fetch_models(), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            return ProducerFetchError(name, f"timed out after {self.fetch_timeout}s", kind="source")
        except Exception as e:
            logger.debug(f"Model source '{name}' raised during fetch_models", exc_info=True)
            return ProducerFetchError(name, f"{type(e).__name__}: {e}", kind="source")

        if not isinstance(raw, Sequence) or isinstance(raw, (str, bytes)):
            return ProducerFetchError(
                name, f"expected a list of model fragments, got {type(raw).__name__}", kind="source"
            )

        fragments: list[ModelFragment] = []
        for item in raw:
            try:
                if isinstance(item, ModelFragment):
                    fragments.append(item)
                elif isinstance(item, Mapping):
                    fragments.append(ModelFragment.model_validate(dict(item)))
                else:
                    raise TypeError(f"unsupported fragment type {type(item).__name__}")
            except (ValidationError, TypeError) as e:
                return ProducerFetchError(name, f"malformed model fragment: {e}", kind="source")
        logger.debug(f"Model source '{name}' returned {len(fragments)} fragments")
        return fragments

    def _coerce_entry(self, provider_name: str, item: Any) -> CatalogEntry:
        if isinstance(item, CatalogEntry):
            entry = item
        elif isinstance(item, Mapping):
            data = dict(item)
            data.setdefault("provider", provider_name)
            modality = data.pop("modality", None)
            if modality and not data.get("capabilities"):
                data["capabilities"] = detect_capabilities_from_modality(str(modality))
            entry = CatalogEntry.model_validate(data)
        else:
            raise TypeError(f"unsupported model descriptor type {type(item).__name__}")

        if entry.pricing is None and self.default_cost_per_million_tokens is not None:
            default = self.default_cost_per_million_tokens
            entry = entry.model_copy(
                update={"pricing": Pricing(input_per_1m=default, output_per_1m=default * 2)}
            )
        return entry
