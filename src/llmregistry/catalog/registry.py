# src/llmregistry/catalog/registry.py
"""
Model Registry - owns the current catalog snapshot.

This module provides the ModelRegistry class which:
1. Aggregates models from the configured providers and model sources
2. Applies override rules to the aggregated catalog
3. Serves lookups from an immutable snapshot that is swapped atomically
4. Coalesces concurrent refreshes onto a single in-flight fetch

There is no module-level registry; whoever needs one constructs it with
its providers and owns it.

Example:
    >>> registry = await ModelRegistry.create(
    ...     providers={"openai": openai_provider, "anthropic": anthropic_provider},
    ...     sources=[pricing_feed],
    ... )
    >>> entry = registry.get("openai/gpt-4o")
    >>> await registry.refresh()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from ..config import RegistrySettings, load_registry_settings
from .aggregator import AggregationReport, SourceAggregator
from .overrides import OverrideMerger, OverrideRule, parse_override_rules
from .schema import CatalogEntry, CatalogSnapshot

logger = logging.getLogger(__name__)


@dataclass
class _InflightRefresh:
    task: asyncio.Task
    waiters: int = 0


class ModelRegistry:
    """
    Registry of models aggregated from providers and enrichment sources.

    Readers never block: ``list()``, ``get()`` and ``snapshot()`` read the
    current snapshot reference, which is only ever replaced as a whole once
    a refresh has fully succeeded.

    When constructed inside a running event loop the first refresh is
    scheduled immediately; ``list()`` returns an empty tuple until it has
    completed. Use ``await registry.ready()`` (or ``ModelRegistry.create``)
    to wait for it.

    Args:
        providers: Ordered mapping of provider name to provider
        sources: Ordered list of model sources
        overrides: Override rules, applied after the ones from settings
        settings: Registry settings (defaults if None)
        auto_refresh: Schedule the initial refresh at construction
    """

    def __init__(
        self,
        providers: Mapping[str, Any] | None = None,
        sources: Sequence[Any] = (),
        overrides: Sequence[OverrideRule | Mapping[str, Any]] = (),
        *,
        settings: RegistrySettings | None = None,
        auto_refresh: bool = True,
    ) -> None:
        self.settings = settings or RegistrySettings()

        rules = parse_override_rules([*self.settings.overrides, *overrides])
        self._aggregator = SourceAggregator(
            providers,
            sources,
            fetch_timeout=self.settings.fetch_timeout_seconds,
            default_cost_per_million_tokens=self.settings.default_cost_per_million_tokens,
        )
        self._merger = OverrideMerger(rules)

        self._snapshot = CatalogSnapshot.build(
            [], version=0, provider_order=self._aggregator.provider_names
        )
        self._inflight: _InflightRefresh | None = None
        self._initial_task: asyncio.Task | None = None
        self.last_report: AggregationReport | None = None

        logger.debug(
            f"ModelRegistry created with {len(self._aggregator.provider_names)} providers, "
            f"{len(self._aggregator.sources)} sources, {len(rules)} override rules"
        )

        if auto_refresh:
            self._schedule_initial_refresh()

    # -------------------------------------------------------------------------
    # Construction helpers
    # -------------------------------------------------------------------------

    @classmethod
    async def create(cls, *args: Any, **kwargs: Any) -> ModelRegistry:
        """Construct a registry and wait until its first snapshot is installed."""
        registry = cls(*args, **kwargs)
        await registry.ready()
        return registry

    @classmethod
    def from_settings(
        cls,
        settings: RegistrySettings,
        providers: Mapping[str, Any] | None = None,
        sources: Sequence[Any] = (),
        overrides: Sequence[OverrideRule | Mapping[str, Any]] = (),
        **kwargs: Any,
    ) -> ModelRegistry:
        return cls(providers, sources, overrides, settings=settings, **kwargs)

    @classmethod
    def from_config(
        cls,
        config_dict: dict[str, Any] | None,
        providers: Mapping[str, Any] | None = None,
        sources: Sequence[Any] = (),
        overrides: Sequence[OverrideRule | Mapping[str, Any]] = (),
        **kwargs: Any,
    ) -> ModelRegistry:
        """Construct a registry from a configuration dictionary (see load_registry_settings)."""
        settings = load_registry_settings(config_dict)
        return cls.from_settings(settings, providers, sources, overrides, **kwargs)

    def _schedule_initial_refresh(self) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; initial refresh deferred until ready()")
            return
        self._initial_task = loop.create_task(self.refresh(), name="llmregistry-initial-refresh")
        self._initial_task.add_done_callback(self._on_initial_done)

    @staticmethod
    def _on_initial_done(task: asyncio.Task) -> None:
        # The error is logged by _on_refresh_done; retrieve it so the
        # event loop does not report it as unhandled.
        if not task.cancelled():
            task.exception()

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    def list(self) -> tuple[CatalogEntry, ...]:
        """Return all entries of the current snapshot."""
        return self._snapshot.entries

    def get(self, model_id: str) -> CatalogEntry | None:
        """Look up one entry by id in the current snapshot."""
        return self._snapshot.get(model_id)

    def snapshot(self) -> CatalogSnapshot:
        """Return the current snapshot. Capture it once per operation."""
        return self._snapshot

    def providers(self) -> tuple[str, ...]:
        """Provider names in declaration order."""
        return self._aggregator.provider_names

    def list_by_provider(self, provider: str) -> list[CatalogEntry]:
        return [entry for entry in self._snapshot.entries if entry.provider == provider]

    def provider_capabilities(self, provider: str) -> frozenset[str] | None:
        """Capabilities declared by ``provider`` at the last refresh, or None if it declared none."""
        return self._snapshot.provider_capabilities.get(provider)

    @property
    def version(self) -> int:
        """Snapshot version; 0 until the first refresh succeeds."""
        return self._snapshot.version

    @property
    def is_ready(self) -> bool:
        return self._snapshot.version > 0

    @property
    def refreshing(self) -> bool:
        return self._inflight is not None and not self._inflight.task.done()

    def stats(self) -> dict[str, Any]:
        """
        Get registry statistics.

        Returns:
            Dict with statistics about the current snapshot
        """
        snapshot = self._snapshot
        by_provider: dict[str, int] = {}
        for entry in snapshot.entries:
            by_provider[entry.provider] = by_provider.get(entry.provider, 0) + 1
        return {
            "total_models": len(snapshot),
            "version": snapshot.version,
            "refreshed_at": snapshot.refreshed_at.isoformat() if snapshot.refreshed_at else None,
            "models_by_provider": by_provider,
            "override_rules": len(self._merger.rules),
            "last_report": self.last_report.as_dict() if self.last_report else None,
        }

    # -------------------------------------------------------------------------
    # Refresh
    # -------------------------------------------------------------------------

    async def ready(self) -> None:
        """Wait for the first snapshot, starting a refresh if none is running."""
        if self.is_ready:
            return
        await self.refresh()

    async def refresh(self) -> None:
        """
        Rebuild the catalog and swap it in.

        Concurrent callers share one in-flight refresh and resolve together.
        If the refresh fails with a configuration or programming error, the
        previous snapshot stays in place and the error is raised to every
        caller. Cancelling the last waiting caller cancels the fetch; the
        previous snapshot stays authoritative.

        Raises:
            AggregationConfigError: If the override rules are inconsistent.
        """
        inflight = self._inflight
        if inflight is None or inflight.task.done():
            task = asyncio.create_task(self._refresh_once(), name="llmregistry-refresh")
            inflight = _InflightRefresh(task=task)
            self._inflight = inflight
            task.add_done_callback(self._on_refresh_done)
        else:
            logger.debug("Refresh already in flight; joining it")

        inflight.waiters += 1
        try:
            await asyncio.shield(inflight.task)
        except asyncio.CancelledError:
            if not inflight.task.done() and inflight.waiters == 1:
                logger.info("Refresh cancelled by its last waiter; keeping the current snapshot")
                inflight.task.cancel()
            raise
        finally:
            inflight.waiters -= 1

    def cancel_refresh(self) -> bool:
        """
        Cancel the in-flight refresh, if any.

        Returns:
            True if a running refresh was cancelled.
        """
        if self._inflight is None or self._inflight.task.done():
            return False
        self._inflight.task.cancel()
        return True

    async def _refresh_once(self) -> None:
        started = time.monotonic()
        entries, report = await self._aggregator.aggregate()
        entries = self._merger.apply(entries)

        snapshot = CatalogSnapshot.build(
            entries,
            version=self._snapshot.version + 1,
            provider_order=self._aggregator.provider_names,
            provider_capabilities=self._aggregator.provider_capabilities,
        )
        # Single reference swap; readers see the old or the new snapshot.
        self._snapshot = snapshot
        self.last_report = report

        logger.info(
            f"Model catalog refreshed: {len(snapshot)} models (version {snapshot.version}) "
            f"in {time.monotonic() - started:.2f}s"
        )

    def _on_refresh_done(self, task: asyncio.Task) -> None:
        if self._inflight is not None and self._inflight.task is task:
            self._inflight = None
        if task.cancelled():
            logger.info(f"Refresh cancelled; snapshot version {self._snapshot.version} retained")
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Refresh failed; snapshot version {self._snapshot.version} retained: {error}",
                exc_info=error,
            )

    # -------------------------------------------------------------------------
    # Shutdown
    # -------------------------------------------------------------------------

    async def close(self) -> None:
        """Cancel pending refreshes and close providers that expose ``close()``."""
        self.cancel_refresh()
        if self._initial_task is not None and not self._initial_task.done():
            self._initial_task.cancel()

        close_tasks = []
        for name, provider in self._aggregator.providers.items():
            closer = getattr(provider, "close", None)
            if callable(closer):
                close_tasks.append(self._close_single_provider(name, closer))
        if close_tasks:
            await asyncio.gather(*close_tasks)

    async def _close_single_provider(self, name: str, closer: Any) -> None:
        try:
            result = closer()
            if asyncio.iscoroutine(result):
                await result
            logger.debug(f"Provider '{name}' closed")
        except Exception as e:
            logger.error(f"Error closing provider '{name}': {e}", exc_info=True)

    async def __aenter__(self) -> ModelRegistry:
        await self.ready()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()
