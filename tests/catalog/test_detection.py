# tests/catalog/test_detection.py
"""Tests for name- and modality-based detection."""

import pytest

from llmregistry.catalog.detection import detect_capabilities_from_modality, detect_tier
from llmregistry.catalog.schema import ModelTier


class TestDetectTier:
    @pytest.mark.parametrize(
        "name, expected",
        [
            ("gpt-4o-mini", ModelTier.EFFICIENT),
            ("claude-3-5-haiku", ModelTier.EFFICIENT),
            ("gemini-2.0-flash-lite", ModelTier.EFFICIENT),
            ("gemini-2.5-pro-preview", ModelTier.EXPERIMENTAL),
            ("some-model-beta", ModelTier.EXPERIMENTAL),
            ("claude-opus-4", ModelTier.FLAGSHIP),
            ("Vendor Flagship Mini", ModelTier.FLAGSHIP),
        ],
    )
    def test_detect_tier(self, name, expected):
        assert detect_tier(name) == expected

    def test_experimental_marker_beats_efficient_marker(self):
        assert detect_tier("gpt-mini-preview") == ModelTier.EXPERIMENTAL


class TestDetectCapabilities:
    def test_text_model(self):
        assert detect_capabilities_from_modality("text->text") == frozenset({"chat", "json", "tools"})

    def test_vision_model(self):
        caps = detect_capabilities_from_modality("text+image->text")
        assert "vision" in caps
        assert "chat" in caps
        assert "image" not in caps

    def test_image_generation(self):
        caps = detect_capabilities_from_modality("text->image")
        assert caps == frozenset({"image"})

    def test_audio_in_and_out(self):
        caps = detect_capabilities_from_modality("audio->audio")
        assert caps == frozenset({"hearing", "audio"})

    def test_embedding_output(self):
        assert "embedding" in detect_capabilities_from_modality("text->embedding")

    def test_single_sided_modality_treated_as_both(self):
        assert detect_capabilities_from_modality("TEXT") == frozenset({"chat", "json", "tools"})
