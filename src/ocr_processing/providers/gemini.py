"""
Gemini OCR Provider
===================

Cloud OCR using the Google Gemini API with native multimodal support.
Uses PIL Images directly - no base64 encoding needed.

This is the cloud-quality provider that paid accounts and accounts with
credits are routed to.
"""

import logging
from typing import Any

from PIL import Image
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ocr_processing.exceptions import EngineError
from ocr_processing.models import ProviderType
from ocr_processing.pdf import PDF_RENDER_DPI
from ocr_processing.providers.base import (
    DEFAULT_MAX_FILE_SIZE_BYTES,
    PDF_MIME_TYPE,
    BaseOcrProvider,
)

logger = logging.getLogger(__name__)


class GeminiRetryableError(RuntimeError):
    """Raised for Gemini API errors that are worth retrying (429, RESOURCE_EXHAUSTED, 5xx)."""


class GeminiProvider(BaseOcrProvider):
    """
    OCR provider using Google Gemini vision-capable models.

    Uses the google-genai SDK for native multimodal content generation.
    Accepts PIL Images directly without base64 encoding. PDFs go through the
    shared HybridPdfExtractor, so text-layer PDFs never reach the API.
    """

    provider_type = ProviderType.GEMINI

    DEFAULT_MODEL = "gemini-2.5-flash"

    SUPPORTED_MIME_TYPES = frozenset({
        "image/png",
        "image/jpeg",
        "image/jpg",
        "image/gif",
        "image/webp",
        "image/bmp",
        "image/tiff",
        PDF_MIME_TYPE,
    })

    SUPPORTED_LANGUAGES = (
        "en", "de", "fr", "es", "it", "pt", "nl", "pl", "ru",
        "ja", "ko", "zh", "ar", "hi", "tr", "uk", "sv",
    )

    OCR_PROMPT = """Extract all text from this document image.

Rules:
- Return ONLY the extracted text, no explanations
- Keep the original layout (paragraphs, lists, tables)
- For tables: separate columns with | and rows with line breaks
- Ignore watermarks and backgrounds
- Write [illegible] for unreadable passages"""

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.0,
        timeout: int = 120,
        dpi: int = PDF_RENDER_DPI,
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        fetch_timeout: int = 30,
    ):
        """
        Initialize Gemini provider.

        Args:
            api_key: Gemini API key
            model: Model to use
            temperature: Model temperature (0.0 for deterministic)
            timeout: Request timeout in seconds
        """
        super().__init__(
            name="Gemini",
            max_file_size_bytes=max_file_size_bytes,
            fetch_timeout=fetch_timeout,
            dpi=dpi,
        )

        self.api_key = api_key
        self.model = model or self.DEFAULT_MODEL
        self.temperature = temperature
        self.timeout = timeout
        self._client: Any = None

    def _get_client(self) -> Any:
        """Lazy-initialize the genai client."""
        if self._client is None:
            from google import genai

            self._client = genai.Client(api_key=self.api_key)
        return self._client

    def is_available(self) -> bool:
        """Check if Gemini API is configured."""
        return bool(self.api_key)

    def build_prompt(self, language: str | None) -> str:
        if language:
            return f"{self.OCR_PROMPT}\n- The document language is most likely: {language}\n\nText:"
        return f"{self.OCR_PROMPT}\n\nText:"

    def ocr_image(self, image: Image.Image, language: str | None = None) -> str:
        """Send one image to Gemini and return the recognised text."""
        if not self.is_available():
            raise EngineError(
                "Gemini API key not configured", provider_type=self.provider_type
            )

        from google.genai import errors as genai_errors
        from google.genai import types

        try:
            response = self._call_api(self.model, image, self.build_prompt(language), types)
        except GeminiRetryableError as e:
            raise EngineError(
                f"Gemini API unavailable after retries: {e}",
                provider_type=self.provider_type,
            ) from e
        except genai_errors.APIError as e:
            raise EngineError(
                f"Gemini API error: {e}", provider_type=self.provider_type
            ) from e

        return (response.text or "").strip()

    @retry(
        retry=retry_if_exception_type(GeminiRetryableError),
        stop=stop_after_attempt(5),
        wait=wait_exponential(multiplier=2, min=5, max=60),
        before_sleep=lambda retry_state: logger.warning(
            "Gemini API rate limited, retrying in %.0fs (attempt %d/5)",
            retry_state.next_action.sleep,  # type: ignore[union-attr]
            retry_state.attempt_number,
        ),
        reraise=True,
    )
    def _call_api(self, model: str, image: Any, prompt: str, types: Any) -> Any:
        """Call Gemini API with retry logic for rate limits."""
        from google.genai import errors as genai_errors

        client = self._get_client()
        try:
            return client.models.generate_content(
                model=model,
                contents=[image, prompt],
                config=types.GenerateContentConfig(
                    temperature=self.temperature,
                    http_options=types.HttpOptions(timeout=self.timeout * 1000),
                ),
            )
        except genai_errors.ServerError as exc:
            raise GeminiRetryableError(str(exc)) from exc
        except genai_errors.ClientError as exc:
            if "429" in str(exc) or "RESOURCE_EXHAUSTED" in str(exc):
                raise GeminiRetryableError(str(exc)) from exc
            raise  # Non-retryable client error
