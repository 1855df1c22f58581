"""
OCR Processing Errors
=====================

Error taxonomy shared by providers, the orchestrator and the document service.

- InvalidRequestError: missing data source or bad page selection, never retried
- SourceError: the image/PDF could not be fetched or decoded, retryable
- EngineError: the OCR/PDF engine itself failed, retryable
- OcrCancelledError: the caller gave up on the request, never retried
"""

from typing import Any


class OcrProcessingError(RuntimeError):
    """Base class for OCR processing errors."""

    def __init__(
        self,
        message: str,
        provider_type: Any = None,
        document_id: str | None = None,
        retryable: bool = False,
    ):
        super().__init__(message)
        self.message = message
        self.provider_type = provider_type
        self.document_id = document_id
        self.retryable = retryable


class InvalidRequestError(OcrProcessingError):
    """Raised for misuse: no data source, or an invalid page selection."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)


class PageSelectionError(InvalidRequestError, ValueError):
    """Raised when a page selection does not fit the document."""


class SourceError(OcrProcessingError):
    """Raised when the source file cannot be fetched or decoded."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class EngineError(OcrProcessingError):
    """Raised when the OCR engine fails on otherwise valid input."""

    def __init__(self, message: str, **kwargs: Any):
        kwargs.setdefault("retryable", True)
        super().__init__(message, **kwargs)


class OcrCancelledError(OcrProcessingError):
    """Raised when an external cancellation signal stops a request."""

    def __init__(self, message: str = "OCR request cancelled", **kwargs: Any):
        kwargs["retryable"] = False
        super().__init__(message, **kwargs)


class ProviderNotFoundError(LookupError):
    """Raised when a provider type is not registered or not available."""


class DocumentNotFoundError(LookupError):
    """Raised when a collection or document does not exist."""


class InsufficientCreditsError(RuntimeError):
    """Raised when an account cannot cover a credit deduction."""
