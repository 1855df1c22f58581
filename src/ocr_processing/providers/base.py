"""
Base OCR Provider
=================

Abstract base class for OCR provider implementations.
"""

import io
import logging
import time
from abc import ABC, abstractmethod
from typing import Any
from urllib.parse import urlsplit

import requests
from PIL import Image, UnidentifiedImageError

from ocr_processing.exceptions import (
    InvalidRequestError,
    OcrProcessingError,
    SourceError,
)
from ocr_processing.models import ExtractionRequest, ExtractionResult, ProviderType
from ocr_processing.pdf import PDF_RENDER_DPI, HybridPdfExtractor

logger = logging.getLogger(__name__)

PDF_MIME_TYPE = "application/pdf"

DEFAULT_MAX_FILE_SIZE_BYTES = 10 * 1024 * 1024


class BaseOcrProvider(ABC):
    """
    Abstract base class for OCR providers.

    All providers must implement:
    - provider_type: the ProviderType this adapter serves
    - ocr_image(): run OCR on a single decoded image
    - is_available(): check if the provider is configured

    extract_text() handles everything else: request validation, source
    loading, PDF routing through the HybridPdfExtractor, and converting
    source/engine failures into failed results. Only invalid requests
    raise.
    """

    provider_type: ProviderType

    SUPPORTED_MIME_TYPES: frozenset[str] = frozenset({PDF_MIME_TYPE})
    SUPPORTED_LANGUAGES: tuple[str, ...] = ()

    def __init__(
        self,
        name: str = "BaseOCR",
        max_file_size_bytes: int = DEFAULT_MAX_FILE_SIZE_BYTES,
        fetch_timeout: int = 30,
        dpi: int = PDF_RENDER_DPI,
    ):
        """
        Initialize provider.

        Args:
            name: Human-readable name for the provider
            max_file_size_bytes: Largest source file accepted
            fetch_timeout: HTTP timeout in seconds for URL sources
            dpi: Render resolution for scanned PDF pages
        """
        self.name = name
        self.max_file_size_bytes = max_file_size_bytes
        self.fetch_timeout = fetch_timeout
        self.pdf_extractor = HybridPdfExtractor(ocr_page=self.ocr_image, dpi=dpi)

    @abstractmethod
    def ocr_image(self, image: Image.Image, language: str | None = None) -> str:
        """
        Run OCR on one image.

        Raises:
            EngineError: if the engine fails
        """

    @abstractmethod
    def is_available(self) -> bool:
        """Check if this provider is configured and can be used."""

    def extract_text(self, request: ExtractionRequest) -> ExtractionResult:
        """
        Extract text from the image or PDF described by the request.

        Returns:
            ExtractionResult; source and engine failures come back as a
            failed result rather than an exception

        Raises:
            InvalidRequestError: if the request has no usable data source
                or an invalid page selection
        """
        start_time = time.time()

        if not request.is_valid():
            raise InvalidRequestError(
                "Invalid OCR request: exactly one of image_url or image_bytes is required",
                provider_type=self.provider_type,
                document_id=request.document_id,
            )

        try:
            if self.is_pdf_request(request):
                text, metadata = self._extract_pdf(request)
            else:
                text, metadata = self._extract_image(request)
        except InvalidRequestError:
            raise
        except OcrProcessingError as e:
            processing_time = (time.time() - start_time) * 1000
            logger.error(
                "%s OCR failed for document %s: %s",
                self.name,
                request.document_id,
                e.message,
            )
            return ExtractionResult.failure(
                error=e.message,
                provider=self.provider_type,
                processing_time_ms=processing_time,
                document_id=request.document_id,
                retryable=e.retryable,
            ).with_metadata("document_id", request.document_id)

        processing_time = (time.time() - start_time) * 1000
        logger.info(
            "%s OCR completed: document=%s, words=%d, time=%.0fms",
            self.name,
            request.document_id,
            len(text.split()),
            processing_time,
        )

        return ExtractionResult(
            text=text,
            success=True,
            provider=self.provider_type,
            processing_time_ms=processing_time,
            document_id=request.document_id,
            metadata=metadata,
        )

    def _extract_pdf(self, request: ExtractionRequest) -> tuple[str, dict[str, Any]]:
        language = self.resolve_language(request)
        pdf_bytes = self.load_source(request)
        extraction = self.pdf_extractor.extract(pdf_bytes, request.page_selection, language)
        return extraction.text, {
            "method": extraction.method,
            "total_pages": extraction.total_pages,
            "pages": extraction.pages,
            "language": language,
        }

    def _extract_image(self, request: ExtractionRequest) -> tuple[str, dict[str, Any]]:
        if request.mime_type and not self.supports(request.mime_type):
            raise SourceError(
                f"Unsupported MIME type for {self.name}: {request.mime_type}",
                provider_type=self.provider_type,
                document_id=request.document_id,
            )
        language = self.resolve_language(request)
        image = self.open_image(self.load_source(request))
        text = self.ocr_image(image, language)
        return text.strip(), {"method": "image", "language": language}

    def resolve_language(self, request: ExtractionRequest) -> str | None:
        """Request language hint, or the provider default."""
        if request.language and request.language.strip():
            return request.language
        return None

    @staticmethod
    def is_pdf_request(request: ExtractionRequest) -> bool:
        """PDF by MIME type, or by a URL path ending in .pdf (query ignored)."""
        if request.mime_type and request.mime_type.lower() == PDF_MIME_TYPE:
            return True
        if request.has_url():
            path = urlsplit(request.image_url).path
            return path.lower().endswith(".pdf")
        return False

    def load_source(self, request: ExtractionRequest) -> bytes:
        """
        Return the request's file bytes, downloading URL sources.

        Raises:
            SourceError: if the download fails or the file is too large
        """
        if request.has_bytes():
            data = request.image_bytes
        else:
            try:
                response = requests.get(request.image_url, timeout=self.fetch_timeout)
                response.raise_for_status()
            except requests.RequestException as e:
                raise SourceError(
                    f"Failed to fetch source {request.image_url}: {e}",
                    provider_type=self.provider_type,
                    document_id=request.document_id,
                ) from e
            data = response.content

        if len(data) > self.max_file_size_bytes:
            raise SourceError(
                f"Source file is {len(data)} bytes, limit is {self.max_file_size_bytes}",
                provider_type=self.provider_type,
                document_id=request.document_id,
            )
        return data

    def open_image(self, data: bytes) -> Image.Image:
        """Decode raster image bytes."""
        try:
            image = Image.open(io.BytesIO(data))
            image.load()
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
            raise SourceError(
                f"Failed to load image from source: {e}",
                provider_type=self.provider_type,
            ) from e
        return image

    def supports(self, mime_type: str | None) -> bool:
        if not mime_type:
            return False
        return mime_type.lower() in self.SUPPORTED_MIME_TYPES

    def get_supported_languages(self) -> list[str]:
        return list(self.SUPPORTED_LANGUAGES)

    def __repr__(self) -> str:
        available = "available" if self.is_available() else "unavailable"
        return f"{self.__class__.__name__}(name='{self.name}', {available})"

