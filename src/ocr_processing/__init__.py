"""
OCR Processing Service
======================

OCR orchestration for images and PDFs with billing-aware provider routing.

Features:
- Hybrid PDF extraction (text layer first, rendered OCR for scanned pages)
- Page selection by range or explicit page list
- Multi-provider support (Gemini cloud OCR, local Tesseract)
- Subscription/credit based routing with a single fallback attempt
- Idempotent per-document OCR state with collection status aggregation

Basic Usage:
    from ocr_processing import (
        BillingAwareRouter, InMemoryBillingService, OcrOrchestrator,
        OcrSettings, build_registry, ExtractionRequest,
    )

    settings = OcrSettings.from_env()
    billing = InMemoryBillingService(credits={"acct-1": 5})
    orchestrator = OcrOrchestrator(
        registry=build_registry(settings),
        router=BillingAwareRouter(billing),
        billing=billing,
        settings=settings,
    )
    result = orchestrator.process(
        ExtractionRequest(image_url="https://example.com/scan.pdf"),
        account_id="acct-1",
    )
    print(result.text)
"""

__version__ = "0.1.0"

from .billing import BillingAwareRouter, BillingService, InMemoryBillingService
from .config import OcrSettings
from .documents import (
    CollectionResult,
    DocumentOcrService,
    DocumentRecord,
    DocumentStore,
    InMemoryDocumentStore,
    OcrRecord,
    aggregate_collection_status,
)
from .exceptions import (
    DocumentNotFoundError,
    EngineError,
    InvalidRequestError,
    OcrCancelledError,
    OcrProcessingError,
    PageSelectionError,
    ProviderNotFoundError,
    SourceError,
)
from .metrics import OcrMetrics
from .models import (
    CollectionStatus,
    ContentFormat,
    ExtractionRequest,
    ExtractionResult,
    OcrStatus,
    ProviderType,
)
from .orchestrator import OcrOrchestrator
from .pages import PageSelection, resolve_pages, validate_selection
from .pdf import HybridPdfExtractor, PdfExtraction
from .registry import ProviderRegistry, build_registry

__all__ = [
    # Version
    "__version__",
    # Models
    "CollectionStatus",
    "ContentFormat",
    "ExtractionRequest",
    "ExtractionResult",
    "OcrStatus",
    "ProviderType",
    "PageSelection",
    "resolve_pages",
    "validate_selection",
    # PDF
    "HybridPdfExtractor",
    "PdfExtraction",
    # Providers and routing
    "ProviderRegistry",
    "build_registry",
    "BillingService",
    "InMemoryBillingService",
    "BillingAwareRouter",
    # Orchestration
    "OcrOrchestrator",
    "OcrMetrics",
    "OcrSettings",
    # Documents
    "CollectionResult",
    "DocumentOcrService",
    "DocumentRecord",
    "DocumentStore",
    "InMemoryDocumentStore",
    "OcrRecord",
    "aggregate_collection_status",
    # Errors
    "DocumentNotFoundError",
    "EngineError",
    "InvalidRequestError",
    "OcrCancelledError",
    "OcrProcessingError",
    "PageSelectionError",
    "ProviderNotFoundError",
    "SourceError",
]
