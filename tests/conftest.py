"""
Test Configuration and Fixtures for ocr-processing-service

This module provides shared fixtures, markers, and configuration for all tests.
"""

import io
from unittest.mock import MagicMock

import fitz
import pytest
from PIL import Image

from ocr_processing import (
    BillingAwareRouter,
    DocumentOcrService,
    DocumentRecord,
    ExtractionResult,
    InMemoryBillingService,
    InMemoryDocumentStore,
    OcrMetrics,
    OcrOrchestrator,
    OcrSettings,
    ProviderRegistry,
    ProviderType,
)
from ocr_processing.providers import BaseOcrProvider


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, no external deps)")
    config.addinivalue_line("markers", "integration: Integration tests (no network, real PDFs)")
    config.addinivalue_line("markers", "api: API/service tests")


# =============================================================================
# Sample File Fixtures
# =============================================================================

@pytest.fixture
def create_text_pdf():
    """Factory fixture to create PDF bytes with a text layer on every page."""
    def _create(page_texts: list[str] | None = None) -> bytes:
        doc = fitz.open()
        for text in page_texts or ["Sample text content"]:
            page = doc.new_page()
            if text:
                page.insert_text((72, 72), text, fontsize=12)
        data = doc.tobytes()
        doc.close()
        return data
    return _create


@pytest.fixture
def create_scanned_pdf():
    """Factory fixture to create image-only PDF bytes (simulates a scan)."""
    def _create(pages: int = 1) -> bytes:
        img = Image.new("RGB", (200, 100), color="white")
        img_bytes = io.BytesIO()
        img.save(img_bytes, format="PNG")

        doc = fitz.open()
        for _ in range(pages):
            page = doc.new_page()
            page.insert_image(fitz.Rect(72, 72, 300, 200), stream=img_bytes.getvalue())
        data = doc.tobytes()
        doc.close()
        return data
    return _create


@pytest.fixture
def png_bytes() -> bytes:
    """A small white PNG image."""
    img = Image.new("RGB", (120, 40), color="white")
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


# =============================================================================
# Engine Fixtures
# =============================================================================

@pytest.fixture
def make_provider():
    """Factory fixture for mock providers of a given type."""
    def _create(
        provider_type: ProviderType,
        text: str = "extracted text",
        available: bool = True,
        result: ExtractionResult | None = None,
        side_effect=None,
    ) -> MagicMock:
        provider = MagicMock(spec=BaseOcrProvider)
        provider.provider_type = provider_type
        provider.name = provider_type.value
        provider.is_available.return_value = available
        if side_effect is not None:
            provider.extract_text.side_effect = side_effect
        else:
            provider.extract_text.return_value = result or ExtractionResult(
                text=text,
                success=True,
                provider=provider_type,
                processing_time_ms=5.0,
            )
        return provider
    return _create


@pytest.fixture
def gemini_provider(make_provider):
    return make_provider(ProviderType.GEMINI, text="cloud text")


@pytest.fixture
def tesseract_provider(make_provider):
    return make_provider(ProviderType.TESSERACT, text="local text")


@pytest.fixture
def billing() -> InMemoryBillingService:
    """Ledger with one paid, one credited and one exhausted free account."""
    return InMemoryBillingService(
        paid_accounts={"paid"},
        credits={"free-credits": 3, "free-empty": 0},
    )


@pytest.fixture
def settings() -> OcrSettings:
    return OcrSettings()


@pytest.fixture
def metrics() -> OcrMetrics:
    return OcrMetrics()


@pytest.fixture
def registry(gemini_provider, tesseract_provider) -> ProviderRegistry:
    return ProviderRegistry(
        {
            ProviderType.GEMINI: gemini_provider,
            ProviderType.TESSERACT: tesseract_provider,
        },
        default_type=ProviderType.TESSERACT,
    )


@pytest.fixture
def orchestrator(registry, billing, metrics, settings) -> OcrOrchestrator:
    return OcrOrchestrator(
        registry=registry,
        router=BillingAwareRouter(billing),
        billing=billing,
        metrics=metrics,
        settings=settings,
    )


@pytest.fixture
def document_store() -> InMemoryDocumentStore:
    store = InMemoryDocumentStore()
    store.add_document(DocumentRecord(
        document_id="doc-1",
        collection_id="col-1",
        file_url="https://files.example.com/doc-1.pdf",
        mime_type="application/pdf",
        original_file_name="invoice.pdf",
        account_id="paid",
    ))
    store.add_document(DocumentRecord(
        document_id="doc-2",
        collection_id="col-1",
        file_url="https://files.example.com/doc-2.png",
        mime_type="image/png",
        original_file_name="receipt.png",
        account_id="free-empty",
    ))
    return store


@pytest.fixture
def document_service(document_store, orchestrator, settings) -> DocumentOcrService:
    return DocumentOcrService(document_store, orchestrator, settings)


# =============================================================================
# Helper Fixtures
# =============================================================================

@pytest.fixture
def sample_value(metrics):
    """Read a sample from the metrics registry, 0.0 if never recorded."""
    def _read(name: str, **labels) -> float:
        return metrics.registry.get_sample_value(name, labels) or 0.0
    return _read
