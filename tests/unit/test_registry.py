"""
Tests for ProviderRegistry
==========================
"""

import pytest

from ocr_processing import OcrSettings, ProviderNotFoundError, ProviderRegistry, ProviderType, build_registry
from ocr_processing.providers import GeminiProvider, TesseractProvider


@pytest.mark.unit
class TestProviderRegistry:
    """Test provider lookup and availability."""

    def test_get_available_provider(self, registry, gemini_provider):
        assert registry.get(ProviderType.GEMINI) is gemini_provider

    def test_get_unavailable_provider_raises(self, make_provider, tesseract_provider):
        registry = ProviderRegistry({
            ProviderType.GEMINI: make_provider(ProviderType.GEMINI, available=False),
            ProviderType.TESSERACT: tesseract_provider,
        })
        with pytest.raises(ProviderNotFoundError, match="not available: gemini"):
            registry.get(ProviderType.GEMINI)
        assert registry.get_optional(ProviderType.GEMINI) is None
        assert registry.available_types() == [ProviderType.TESSERACT]

    def test_get_unregistered_provider_raises(self, tesseract_provider):
        registry = ProviderRegistry({ProviderType.TESSERACT: tesseract_provider})
        with pytest.raises(ProviderNotFoundError, match="not registered: gemini"):
            registry.get(ProviderType.GEMINI)
        assert registry.is_available(ProviderType.GEMINI) is False

    def test_get_default(self, registry, tesseract_provider):
        assert registry.get_default() is tesseract_provider

    def test_status(self, make_provider, tesseract_provider):
        registry = ProviderRegistry({
            ProviderType.GEMINI: make_provider(ProviderType.GEMINI, available=False),
            ProviderType.TESSERACT: tesseract_provider,
        })
        assert registry.status() == {"gemini": False, "tesseract": True}


@pytest.mark.unit
class TestBuildRegistry:
    """Test construction from settings."""

    def test_builds_both_providers(self):
        settings = OcrSettings(
            tesseract_data_path="/usr/share/tessdata",
            tesseract_language="deu",
            gemini_api_key="key",
            gemini_model="gemini-2.5-pro",
            pdf_render_dpi=150,
            max_file_size_bytes=1024,
        )
        registry = build_registry(settings)

        tesseract = registry.get(ProviderType.TESSERACT)
        gemini = registry.get(ProviderType.GEMINI)
        assert isinstance(tesseract, TesseractProvider)
        assert isinstance(gemini, GeminiProvider)
        assert tesseract.lang == "deu"
        assert gemini.model == "gemini-2.5-pro"
        assert gemini.pdf_extractor.dpi == 150
        assert tesseract.max_file_size_bytes == 1024

    def test_unconfigured_providers_are_unavailable(self):
        registry = build_registry(OcrSettings())
        assert registry.status() == {"tesseract": False, "gemini": False}
        assert registry.default_type == ProviderType.TESSERACT
