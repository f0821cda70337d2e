# src/llmregistry/catalog/detection.py
"""
Name- and modality-based detection helpers.

Providers do not always report a tier or capability set. These helpers
derive reasonable defaults from the model name or from an
OpenRouter-style modality string (``"text+image->text"``). They are a
fallback only; anything a provider reports explicitly wins.
"""

from __future__ import annotations

from .schema import Capability, ModelTier

_EXPERIMENTAL_MARKERS = ("preview", "experimental", "alpha", "beta")
_EFFICIENT_MARKERS = ("mini", "small", "haiku", "efficient", "flash", "lite")


def detect_tier(name: str) -> ModelTier:
    """
    Guess a model tier from its name.

    Example:
        >>> detect_tier("gpt-4o-mini")
        <ModelTier.EFFICIENT: 'efficient'>
        >>> detect_tier("gemini-2.0-pro-preview")
        <ModelTier.EXPERIMENTAL: 'experimental'>
    """
    n = name.lower()

    if "flagship" in n:
        return ModelTier.FLAGSHIP
    if any(marker in n for marker in _EXPERIMENTAL_MARKERS):
        return ModelTier.EXPERIMENTAL
    if any(marker in n for marker in _EFFICIENT_MARKERS):
        return ModelTier.EFFICIENT

    # No indicator: assume a current full-size model.
    return ModelTier.FLAGSHIP


def detect_capabilities_from_modality(modality: str) -> frozenset[str]:
    """
    Derive capability tags from a ``input->output`` modality string.

    Example:
        >>> sorted(detect_capabilities_from_modality("text+image->text"))
        ['chat', 'json', 'tools', 'vision']
    """
    lowered = modality.lower()
    parts = [part.strip() for part in lowered.split("->")]
    source = parts[0]
    target = parts[1] if len(parts) > 1 else source

    caps: set[str] = set()
    if "text" in target:
        caps.update((Capability.CHAT.value, Capability.JSON.value, Capability.TOOLS.value))
    if "image" in source:
        caps.add(Capability.VISION.value)
    if "image" in target:
        caps.add(Capability.IMAGE.value)
    if "audio" in source:
        caps.add(Capability.HEARING.value)
    if "audio" in target:
        caps.add(Capability.AUDIO.value)
    if "embedding" in target or "vector" in target:
        caps.add(Capability.EMBEDDING.value)
    return frozenset(caps)
