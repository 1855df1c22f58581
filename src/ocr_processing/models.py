"""
Data Models for OCR Processing
==============================

Shared data models for the OCR processing engine.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ocr_processing.pages import PageSelection


class ProviderType(str, Enum):
    """OCR backend identifiers."""

    TESSERACT = "tesseract"  # Local engine, free
    GEMINI = "gemini"  # Cloud engine, billable

    def other(self) -> "ProviderType":
        """Return the other known provider type."""
        if self is ProviderType.GEMINI:
            return ProviderType.TESSERACT
        return ProviderType.GEMINI


class OcrStatus(str, Enum):
    """Lifecycle of a document's OCR state."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (OcrStatus.COMPLETED, OcrStatus.FAILED)


class CollectionStatus(str, Enum):
    """Derived status of a document collection."""

    PROCESSING = "processing"
    PROCESSED = "processed"
    FAILED_OCR = "failed_ocr"


class ContentFormat(str, Enum):
    """Format of user-edited OCR content."""

    PLAIN_TEXT = "plain_text"
    MARKDOWN = "markdown"
    HTML = "html"


@dataclass
class ExtractionRequest:
    """A single extraction request. Exactly one of image_url/image_bytes is set."""

    image_url: str | None = None
    image_bytes: bytes | None = None
    mime_type: str | None = None
    language: str | None = None  # e.g. "eng", "deu"
    document_id: str | None = None
    collection_id: str | None = None
    account_id: str | None = None
    page_selection: PageSelection | None = None
    preferred_provider: ProviderType | None = None
    fallback_enabled: bool = True
    priority: int = 0
    metadata: dict[str, Any] = field(default_factory=dict)

    def has_url(self) -> bool:
        return bool(self.image_url and self.image_url.strip())

    def has_bytes(self) -> bool:
        return bool(self.image_bytes)

    def is_valid(self) -> bool:
        """True when exactly one non-empty data source is present."""
        return self.has_url() != self.has_bytes()


@dataclass
class ExtractionResult:
    """Result of one provider call."""

    text: str
    success: bool
    provider: ProviderType | None = None
    processing_time_ms: float = 0.0
    document_id: str | None = None
    error: str | None = None
    retryable: bool = False
    metadata: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def failure(
        cls,
        error: str,
        provider: ProviderType | None,
        processing_time_ms: float,
        document_id: str | None = None,
        retryable: bool = True,
    ) -> "ExtractionResult":
        return cls(
            text="",
            success=False,
            provider=provider,
            processing_time_ms=processing_time_ms,
            document_id=document_id,
            error=error,
            retryable=retryable,
        )

    def with_metadata(self, key: str, value: Any) -> "ExtractionResult":
        self.metadata[key] = value
        return self

    @property
    def word_count(self) -> int:
        return len(self.text.split()) if self.text else 0
