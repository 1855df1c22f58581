"""
Provider Registry
=================

Holds the configured OCR providers. Built once at startup by
build_registry() and read-only afterwards.
"""

import logging
from collections.abc import Mapping

from ocr_processing.config import OcrSettings
from ocr_processing.exceptions import ProviderNotFoundError
from ocr_processing.models import ProviderType
from ocr_processing.providers import BaseOcrProvider, GeminiProvider, TesseractProvider

logger = logging.getLogger(__name__)


class ProviderRegistry:
    """Map from ProviderType to a concrete provider instance."""

    def __init__(
        self,
        providers: Mapping[ProviderType, BaseOcrProvider],
        default_type: ProviderType = ProviderType.TESSERACT,
    ):
        self._providers = dict(providers)
        self.default_type = default_type

    def is_available(self, provider_type: ProviderType) -> bool:
        provider = self._providers.get(provider_type)
        return provider is not None and provider.is_available()

    def get(self, provider_type: ProviderType) -> BaseOcrProvider:
        """
        Return an available provider.

        Raises:
            ProviderNotFoundError: if the type is not registered or not available
        """
        provider = self._providers.get(provider_type)
        if provider is None:
            raise ProviderNotFoundError(f"OCR provider not registered: {provider_type.value}")
        if not provider.is_available():
            raise ProviderNotFoundError(f"OCR provider not available: {provider_type.value}")
        return provider

    def get_optional(self, provider_type: ProviderType) -> BaseOcrProvider | None:
        if not self.is_available(provider_type):
            return None
        return self._providers[provider_type]

    def get_default(self) -> BaseOcrProvider:
        """Return the configured default provider."""
        return self.get(self.default_type)

    def available_types(self) -> list[ProviderType]:
        return [t for t, p in self._providers.items() if p.is_available()]

    def status(self) -> dict[str, bool]:
        """Availability of every registered provider, keyed by provider code."""
        return {t.value: p.is_available() for t, p in self._providers.items()}


def build_registry(settings: OcrSettings) -> ProviderRegistry:
    """Construct every provider from configuration."""
    common = {
        "dpi": settings.pdf_render_dpi,
        "max_file_size_bytes": settings.max_file_size_bytes,
        "fetch_timeout": settings.fetch_timeout_seconds,
    }
    providers: dict[ProviderType, BaseOcrProvider] = {
        ProviderType.TESSERACT: TesseractProvider(
            data_path=settings.tesseract_data_path,
            tesseract_path=settings.tesseract_path,
            lang=settings.tesseract_language,
            psm=settings.tesseract_psm,
            oem=settings.tesseract_oem,
            **common,
        ),
        ProviderType.GEMINI: GeminiProvider(
            api_key=settings.gemini_api_key,
            model=settings.gemini_model,
            timeout=settings.gemini_timeout,
            **common,
        ),
    }
    registry = ProviderRegistry(providers, default_type=settings.default_provider)
    logger.info("OCR providers registered: %s", registry.status())
    return registry
