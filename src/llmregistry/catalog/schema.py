# src/llmregistry/catalog/schema.py
"""
Pydantic models for the model catalog.

This module defines the data carried through the registry:

- CatalogEntry: one model as advertised by a provider (immutable)
- Pricing: per-million-token prices, any component may be unknown
- EntryPatch / ModelFragment: partial updates used by overrides and
  enrichment sources, with explicit "delete" semantics
- CatalogSnapshot: the immutable, indexed set of entries the registry
  serves at a point in time

Patch semantics are three-state per field and rely on pydantic's
``model_fields_set``:

    * field not given        -> leave the entry untouched
    * field given a value    -> set it (``pricing`` merges per component)
    * field given ``None``   -> delete it (reset to its "unknown" value)
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# =============================================================================
# ENUMS
# =============================================================================


class ModelTier(str, Enum):
    """Coarse quality/cost class of a model."""

    FLAGSHIP = "flagship"
    EFFICIENT = "efficient"
    EXPERIMENTAL = "experimental"


# Higher is better; used for tie-breaking.
TIER_RANK: dict[ModelTier, int] = {
    ModelTier.FLAGSHIP: 3,
    ModelTier.EFFICIENT: 2,
    ModelTier.EXPERIMENTAL: 1,
}


class Capability(str, Enum):
    """Well-known capability tags. Entries may carry tags outside this list."""

    CHAT = "chat"
    VISION = "vision"
    STREAMING = "streaming"
    TOOLS = "tools"
    EMBEDDING = "embedding"
    IMAGE = "image"
    HEARING = "hearing"
    AUDIO = "audio"
    JSON = "json"
    STRUCTURED = "structured"
    REASONING = "reasoning"
    ZDR = "zdr"


def normalize_capabilities(value: Any) -> frozenset[str]:
    """Coerce an iterable of tags (strings or Capability members) to a lower-case frozenset."""
    if value is None:
        return frozenset()
    if isinstance(value, (str, Capability)):
        value = [value]
    tags = set()
    for item in value:
        tag = item.value if isinstance(item, Enum) else str(item)
        tag = tag.strip().lower()
        if tag:
            tags.add(tag)
    return frozenset(tags)


# =============================================================================
# CATALOG ENTRY
# =============================================================================


class Pricing(BaseModel):
    """Token pricing per one million tokens. ``None`` means unknown."""

    input_per_1m: float | None = Field(None, ge=0, description="Input token price per 1M tokens")
    output_per_1m: float | None = Field(None, ge=0, description="Output token price per 1M tokens")

    model_config = ConfigDict(frozen=True, extra="forbid")

    @property
    def is_known(self) -> bool:
        return self.input_per_1m is not None or self.output_per_1m is not None

    @property
    def average_per_1m(self) -> float | None:
        """Average of the known components, or None when nothing is known."""
        known = [p for p in (self.input_per_1m, self.output_per_1m) if p is not None]
        if not known:
            return None
        return sum(known) / len(known)


class CatalogEntry(BaseModel):
    """
    One model in the catalog.

    Entries are frozen once constructed. ``metadata`` is opaque to the
    engine apart from the optional speed hints read by the scorer
    (``speed`` and ``tokens_per_second``).

    Attributes:
        id: Unique id within a snapshot (``provider/model`` or vendor-native)
        provider: Name of the provider that advertised the model
        name: Display name, defaults to ``id``
        capabilities: Capability tags
        tier: Quality/cost class; detected from the name when not given
        pricing: Per-million-token prices, None when unknown
        context_window: Context window in tokens, 0 when unknown
        max_output_tokens: Output token limit, None when unknown
        metadata: Provider-specific extras
    """

    id: str = Field(..., min_length=1)
    provider: str = Field(..., min_length=1)
    name: str = ""
    capabilities: frozenset[str] = Field(default_factory=frozenset)
    tier: ModelTier = ModelTier.FLAGSHIP
    pricing: Pricing | None = None
    context_window: int = Field(0, ge=0)
    max_output_tokens: int | None = Field(None, ge=0)
    metadata: dict[str, Any] = Field(default_factory=dict)

    model_config = ConfigDict(frozen=True, extra="forbid")

    @model_validator(mode="before")
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        if not isinstance(data, Mapping):
            return data
        data = dict(data)
        if not data.get("name"):
            data["name"] = data.get("id")
        if data.get("tier") is None:
            from .detection import detect_tier

            data["tier"] = detect_tier(str(data.get("name") or data.get("id") or ""))
        if data.get("capabilities") is None:
            data["capabilities"] = frozenset()
        if data.get("context_window") is None:
            data["context_window"] = 0
        if data.get("metadata") is None:
            data["metadata"] = {}
        return data

    @field_validator("capabilities", mode="before")
    @classmethod
    def _normalize_capabilities(cls, value: Any) -> frozenset[str]:
        return normalize_capabilities(value)

    @property
    def tier_rank(self) -> int:
        return TIER_RANK[self.tier]

    @property
    def average_price_per_1m(self) -> float | None:
        if self.pricing is None:
            return None
        return self.pricing.average_per_1m

    def has_capabilities(self, capabilities: Iterable[str]) -> bool:
        """True when every given capability is present on this entry."""
        return normalize_capabilities(capabilities) <= self.capabilities


# =============================================================================
# PATCHES
# =============================================================================


class PricingPatch(BaseModel):
    """Partial pricing update; ``None`` deletes a component."""

    input_per_1m: float | None = Field(None, ge=0)
    output_per_1m: float | None = Field(None, ge=0)

    model_config = ConfigDict(extra="forbid")


PATCH_FIELDS: tuple[str, ...] = (
    "name",
    "capabilities",
    "tier",
    "pricing",
    "context_window",
    "max_output_tokens",
    "metadata",
)

# Value a field takes when a patch deletes it. ``name`` and ``tier`` are
# re-derived by CatalogEntry's validator when reset to None.
_DELETED_VALUES: dict[str, Any] = {
    "name": None,
    "capabilities": frozenset(),
    "tier": None,
    "pricing": None,
    "context_window": 0,
    "max_output_tokens": None,
    "metadata": {},
}


class EntryPatch(BaseModel):
    """
    Partial CatalogEntry used by override rules and enrichment sources.

    Only fields explicitly given take part in the update. ``capabilities``
    and ``metadata`` replace the entry's values wholesale; ``pricing`` is
    merged per component. ``id`` and ``provider`` can never be patched.

    Example:
        >>> patch = EntryPatch(context_window=200000, pricing={"input_per_1m": 3.0})
        >>> updated = patch.apply_to(entry)
        >>> EntryPatch(max_output_tokens=None).apply_to(updated).max_output_tokens is None
        True
    """

    name: str | None = None
    capabilities: frozenset[str] | None = None
    tier: ModelTier | None = None
    pricing: PricingPatch | None = None
    context_window: int | None = Field(None, ge=0)
    max_output_tokens: int | None = Field(None, ge=0)
    metadata: dict[str, Any] | None = None

    model_config = ConfigDict(extra="forbid")

    @field_validator("capabilities", mode="before")
    @classmethod
    def _normalize_capabilities(cls, value: Any) -> frozenset[str] | None:
        if value is None:
            return None
        return normalize_capabilities(value)

    def changed_fields(self) -> list[str]:
        """Patchable fields explicitly present in this patch, in canonical order."""
        return [name for name in PATCH_FIELDS if name in self.model_fields_set]

    def is_empty(self) -> bool:
        return not self.changed_fields()

    def apply_to(self, entry: CatalogEntry) -> CatalogEntry:
        """
        Return ``entry`` with this patch applied.

        The original entry is returned unchanged (same object) when the patch
        has no effect, which keeps repeated application idempotent.

        Raises:
            pydantic.ValidationError: If the patched data is not a valid entry.
        """
        fields = self.changed_fields()
        if not fields:
            return entry

        data: dict[str, Any] = {
            "id": entry.id,
            "provider": entry.provider,
            "name": entry.name,
            "capabilities": entry.capabilities,
            "tier": entry.tier,
            "pricing": entry.pricing.model_dump() if entry.pricing is not None else None,
            "context_window": entry.context_window,
            "max_output_tokens": entry.max_output_tokens,
            "metadata": dict(entry.metadata),
        }

        for name in fields:
            value = getattr(self, name)
            if value is None:
                data[name] = _DELETED_VALUES[name]
            elif name == "pricing":
                data["pricing"] = _merge_pricing(data["pricing"], value)
            elif name == "metadata":
                data["metadata"] = dict(value)
            else:
                data[name] = value

        updated = CatalogEntry.model_validate(data)
        if updated == entry:
            return entry
        return updated


def _merge_pricing(base: dict[str, Any] | None, patch: PricingPatch) -> dict[str, Any] | None:
    merged = dict(base or {})
    for name in patch.model_fields_set:
        merged[name] = getattr(patch, name)
    if all(merged.get(name) is None for name in ("input_per_1m", "output_per_1m")):
        return None
    return merged


class ModelFragment(EntryPatch):
    """An enrichment record from an external model source, keyed by model id."""

    id: str = Field(..., min_length=1)


# =============================================================================
# SNAPSHOT
# =============================================================================


@dataclass(frozen=True)
class CatalogSnapshot:
    """
    Immutable view of the catalog at one point in time.

    Built once per successful refresh and never mutated afterwards; the
    registry swaps the whole object when a newer catalog is ready.

    ``provider_capabilities`` holds the capability sets declared by
    providers; a provider missing from it declared none.
    """

    entries: tuple[CatalogEntry, ...] = ()
    version: int = 0
    refreshed_at: datetime | None = None
    provider_order: tuple[str, ...] = ()
    provider_capabilities: dict[str, frozenset[str]] = field(default_factory=dict)
    _index: dict[str, CatalogEntry] = field(default_factory=dict, repr=False, compare=False)

    @classmethod
    def build(
        cls,
        entries: Sequence[CatalogEntry],
        *,
        version: int,
        provider_order: Sequence[str] = (),
        provider_capabilities: Mapping[str, Iterable[str]] | None = None,
        refreshed_at: datetime | None = None,
    ) -> CatalogSnapshot:
        index: dict[str, CatalogEntry] = {}
        for entry in entries:
            index.setdefault(entry.id, entry)
        return cls(
            entries=tuple(entries),
            version=version,
            refreshed_at=refreshed_at or datetime.now(),
            provider_order=tuple(provider_order),
            provider_capabilities={
                name: normalize_capabilities(caps) for name, caps in (provider_capabilities or {}).items()
            },
            _index=index,
        )

    def __len__(self) -> int:
        return len(self.entries)

    def __contains__(self, model_id: object) -> bool:
        return isinstance(model_id, str) and self.get(model_id) is not None

    def get(self, model_id: str) -> CatalogEntry | None:
        """
        Look up an entry by id.

        Exact ids win. A bare vendor id (``gpt-4o``) that is not itself a
        catalog id is resolved against ``<provider>/<id>`` in provider
        declaration order.
        """
        entry = self._index.get(model_id)
        if entry is not None:
            return entry
        for provider in self.provider_order:
            entry = self._index.get(f"{provider}/{model_id}")
            if entry is not None:
                return entry
        return None
