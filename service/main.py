"""
OCR Processing Service - FastAPI Application

REST API for per-document OCR with billing-aware provider routing.
"""

import logging
import queue
import time
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from dotenv import load_dotenv
from fastapi import FastAPI, HTTPException
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST
from pydantic import BaseModel

load_dotenv()
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

from ocr_processing import (
    BillingAwareRouter,
    ContentFormat,
    DocumentNotFoundError,
    DocumentOcrService,
    DocumentRecord,
    InMemoryBillingService,
    InMemoryDocumentStore,
    InvalidRequestError,
    OcrMetrics,
    OcrOrchestrator,
    OcrProcessingError,
    OcrRecord,
    OcrSettings,
    PageSelection,
    ProviderNotFoundError,
    __version__,
    build_registry,
)

from service.consumer import OcrQueueConsumer, create_router

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "healthy"
    version: str = __version__
    uptime_seconds: float
    providers: dict[str, bool] = {}


class RegisterDocumentRequest(BaseModel):
    """Register an uploaded file for OCR."""

    file_url: str
    mime_type: str | None = None
    original_file_name: str | None = None
    account_id: str | None = None


class ExtractRequest(BaseModel):
    """Synchronous extraction trigger."""

    account_id: str
    start_page: int | None = None
    end_page: int | None = None
    pages: list[int] | None = None
    language: str | None = None


class UpdateContentRequest(BaseModel):
    """User edit of extracted text."""

    edited_content: str
    content_format: ContentFormat = ContentFormat.PLAIN_TEXT


class OcrDataResponse(BaseModel):
    """Stored OCR state of one document."""

    document_id: str
    status: str
    extracted_text: str | None = None
    edited_content: str | None = None
    content_format: str | None = None
    error_message: str | None = None
    provider: str | None = None
    metadata: dict[str, Any] = {}
    created_at: datetime | None = None
    updated_at: datetime | None = None


class CollectionFileResponse(BaseModel):
    document_id: str
    original_file_name: str | None = None
    status: str
    error_message: str | None = None
    extracted_text: str | None = None
    created_at: str | None = None


class CollectionResultResponse(BaseModel):
    """OCR results for every document of a collection."""

    collection_id: str
    overall_status: str
    files: list[CollectionFileResponse] = []


class ErrorResponse(BaseModel):
    """Error response."""

    success: bool = False
    error: str
    detail: str | None = None


def _to_response(record: OcrRecord) -> OcrDataResponse:
    return OcrDataResponse(
        document_id=record.document_id,
        status=record.status.value,
        extracted_text=record.extracted_text,
        edited_content=record.edited_content,
        content_format=record.content_format.value if record.content_format else None,
        error_message=record.error_message,
        provider=record.provider,
        metadata=record.metadata,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def build_document_service(
    settings: OcrSettings | None = None,
) -> tuple[DocumentOcrService, OcrMetrics]:
    """Wire the engine from configuration with in-memory ledger and storage."""
    settings = settings or OcrSettings.from_env()
    billing = InMemoryBillingService()
    metrics = OcrMetrics()
    orchestrator = OcrOrchestrator(
        registry=build_registry(settings),
        router=BillingAwareRouter(billing),
        billing=billing,
        metrics=metrics,
        settings=settings,
    )
    return DocumentOcrService(InMemoryDocumentStore(), orchestrator, settings), metrics


def create_app(
    service: DocumentOcrService | None = None,
    metrics: OcrMetrics | None = None,
    channel: "queue.Queue[Any] | None" = None,
    start_consumer: bool = True,
) -> FastAPI:
    """Create the FastAPI application around a document OCR service."""
    if service is None:
        service, metrics = build_document_service()
    metrics = metrics or service.orchestrator.metrics
    channel = channel if channel is not None else queue.Queue()
    consumer = OcrQueueConsumer(channel, service)
    start_time = time.time()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if start_consumer:
            consumer.start()
            logger.info("OCR queue consumer started")
        try:
            yield
        finally:
            if start_consumer:
                consumer.stop()
                logger.info("OCR queue consumer stopped")

    app = FastAPI(
        title="OCR Processing Service",
        description="Document OCR with billing-aware provider routing",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.state.service = service
    app.state.consumer = consumer

    app.include_router(create_router(channel))

    # ========================================================================
    # Endpoints
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check():
        """Health check endpoint for container orchestration."""
        return HealthResponse(
            status="healthy",
            uptime_seconds=time.time() - start_time,
            providers=service.orchestrator.registry.status(),
        )

    @app.get("/", tags=["System"])
    async def root():
        """Root endpoint with API info."""
        return {
            "service": "ocr-processing",
            "version": __version__,
            "docs": "/docs",
            "health": "/health",
        }

    @app.get("/metrics", tags=["System"])
    async def prometheus_metrics():
        """Prometheus scrape endpoint."""
        return Response(content=metrics.export(), media_type=CONTENT_TYPE_LATEST)

    @app.post(
        "/api/v1/collections/{collection_id}/documents/{document_id}",
        status_code=201,
        tags=["Documents"],
    )
    async def register_document(
        collection_id: str, document_id: str, body: RegisterDocumentRequest
    ):
        """Register an uploaded file with the in-memory store."""
        store = service.store
        if not isinstance(store, InMemoryDocumentStore):
            raise HTTPException(status_code=405, detail="Documents are managed by the storage layer")
        store.add_document(
            DocumentRecord(
                document_id=document_id,
                collection_id=collection_id,
                file_url=body.file_url,
                mime_type=body.mime_type,
                original_file_name=body.original_file_name,
                account_id=body.account_id,
            )
        )
        return {"collection_id": collection_id, "document_id": document_id}

    @app.post(
        "/api/v1/collections/{collection_id}/documents/{document_id}/extract",
        response_model=OcrDataResponse,
        responses={
            400: {"model": ErrorResponse},
            404: {"model": ErrorResponse},
            500: {"model": ErrorResponse},
        },
        tags=["Extraction"],
    )
    def extract_document(collection_id: str, document_id: str, body: ExtractRequest):
        """
        Extract text from a document, or return the stored result.

        **Page selection** (PDF only, 1-indexed):
        - `pages`: explicit list, e.g. `[3, 8, 16]`; wins over the range
        - `start_page` / `end_page`: inclusive range, either bound optional
        """
        selection = PageSelection.from_fields(body.start_page, body.end_page, body.pages)
        record = service.extract_document(
            collection_id,
            document_id,
            account_id=body.account_id,
            page_selection=selection,
            language=body.language,
        )
        return _to_response(record)

    @app.get(
        "/api/v1/collections/{collection_id}/documents/{document_id}",
        response_model=OcrDataResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Extraction"],
    )
    async def get_ocr_data(collection_id: str, document_id: str):
        """Stored OCR state of a document."""
        return _to_response(service.get_ocr_data(collection_id, document_id))

    @app.put(
        "/api/v1/collections/{collection_id}/documents/{document_id}/content",
        response_model=OcrDataResponse,
        responses={400: {"model": ErrorResponse}, 404: {"model": ErrorResponse}},
        tags=["Extraction"],
    )
    async def update_content(collection_id: str, document_id: str, body: UpdateContentRequest):
        """Save a user edit of the extracted text."""
        record = service.update_ocr_content(
            collection_id, document_id, body.edited_content, body.content_format
        )
        return _to_response(record)

    @app.get(
        "/api/v1/collections/{collection_id}/results",
        response_model=CollectionResultResponse,
        responses={404: {"model": ErrorResponse}},
        tags=["Extraction"],
    )
    async def get_collection_result(collection_id: str):
        """OCR results for every document in a collection."""
        result = service.get_collection_result(collection_id)
        return CollectionResultResponse(
            collection_id=result.collection_id,
            overall_status=result.overall_status.value,
            files=[CollectionFileResponse(**f) for f in result.files],
        )

    # ========================================================================
    # Error handlers
    # ========================================================================

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request, exc):
        """Custom HTTP exception handler."""
        return JSONResponse(
            status_code=exc.status_code,
            content={"success": False, "error": exc.detail},
        )

    @app.exception_handler(InvalidRequestError)
    async def invalid_request_handler(request, exc):
        return JSONResponse(
            status_code=400,
            content={"success": False, "error": exc.message},
        )

    @app.exception_handler(DocumentNotFoundError)
    async def not_found_handler(request, exc):
        return JSONResponse(
            status_code=404,
            content={"success": False, "error": str(exc)},
        )

    @app.exception_handler(ProviderNotFoundError)
    async def provider_unavailable_handler(request, exc):
        return JSONResponse(
            status_code=503,
            content={"success": False, "error": str(exc)},
        )

    @app.exception_handler(OcrProcessingError)
    async def ocr_error_handler(request, exc):
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "OCR processing failed", "detail": exc.message},
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request, exc):
        """General exception handler."""
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": "Internal server error", "detail": str(exc)},
        )

    return app


app = create_app()
