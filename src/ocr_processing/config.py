"""
OCR Processing Configuration
============================

Settings are read from environment variables. The service entry point loads
a `.env` file first (python-dotenv), so the same names work there.

Environment variables:
    OCR_DEFAULT_PROVIDER: Provider used when the preferred one is unavailable (default: tesseract)
    OCR_FALLBACK_PROVIDER: Provider tried once after a failure (default: tesseract)
    OCR_FALLBACK_ENABLED: Global fallback switch (default: true)
    OCR_MAX_FILE_SIZE_BYTES: Largest accepted source file (default: 10 MiB)
    OCR_FETCH_TIMEOUT_SECONDS: HTTP timeout for source downloads (default: 30)
    OCR_PDF_RENDER_DPI: DPI for rendering scanned PDF pages (default: 300)
    OCR_PROCESSING_STALE_SECONDS: Age after which PROCESSING is re-run (default: 900)
    TESSERACT_DATA_PATH: tessdata directory; Tesseract is unavailable without it
    TESSERACT_PATH: Path to tesseract binary (default: tesseract on PATH)
    TESSERACT_LANG: Default OCR language (default: eng)
    TESSERACT_PSM / TESSERACT_OEM: Page segmentation and engine modes (default: 3 / 1)
    GEMINI_API_KEY: API key for Google Gemini; Gemini is unavailable without it
    GEMINI_OCR_MODEL: Model to use (default: gemini-2.5-flash)
    GEMINI_TIMEOUT: Request timeout in seconds (default: 120)
"""

import os
from dataclasses import dataclass

from ocr_processing.models import ProviderType

_TRUE_VALUES = {"1", "true", "yes", "on"}


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUE_VALUES


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class OcrSettings:
    """Configuration for the OCR processing engine."""

    default_provider: ProviderType = ProviderType.TESSERACT
    fallback_provider: ProviderType = ProviderType.TESSERACT
    fallback_enabled: bool = True
    max_file_size_bytes: int = 10 * 1024 * 1024
    fetch_timeout_seconds: int = 30
    pdf_render_dpi: int = 300
    processing_stale_seconds: int = 900

    tesseract_data_path: str | None = None
    tesseract_path: str | None = None
    tesseract_language: str = "eng"
    tesseract_psm: int = 3
    tesseract_oem: int = 1

    gemini_api_key: str | None = None
    gemini_model: str = "gemini-2.5-flash"
    gemini_timeout: int = 120

    @classmethod
    def from_env(cls) -> "OcrSettings":
        """Build settings from environment variables."""
        return cls(
            default_provider=ProviderType(os.getenv("OCR_DEFAULT_PROVIDER", "tesseract")),
            fallback_provider=ProviderType(os.getenv("OCR_FALLBACK_PROVIDER", "tesseract")),
            fallback_enabled=_env_bool("OCR_FALLBACK_ENABLED", True),
            max_file_size_bytes=_env_int("OCR_MAX_FILE_SIZE_BYTES", 10 * 1024 * 1024),
            fetch_timeout_seconds=_env_int("OCR_FETCH_TIMEOUT_SECONDS", 30),
            pdf_render_dpi=_env_int("OCR_PDF_RENDER_DPI", 300),
            processing_stale_seconds=_env_int("OCR_PROCESSING_STALE_SECONDS", 900),
            tesseract_data_path=os.getenv("TESSERACT_DATA_PATH"),
            tesseract_path=os.getenv("TESSERACT_PATH"),
            tesseract_language=os.getenv("TESSERACT_LANG", "eng"),
            tesseract_psm=_env_int("TESSERACT_PSM", 3),
            tesseract_oem=_env_int("TESSERACT_OEM", 1),
            gemini_api_key=os.getenv("GEMINI_API_KEY"),
            gemini_model=os.getenv("GEMINI_OCR_MODEL", "gemini-2.5-flash"),
            gemini_timeout=_env_int("GEMINI_TIMEOUT", 120),
        )
