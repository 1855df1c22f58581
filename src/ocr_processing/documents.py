"""
Document OCR State
==================

Per-document OCR lifecycle and collection-level status.

    PENDING -> PROCESSING -> COMPLETED | FAILED

COMPLETED documents are never re-extracted: a repeated request returns the
stored record without touching a provider or the ledger. A PROCESSING record
younger than `processing_stale_seconds` is also returned as-is; an older one
is assumed to belong to a crashed worker and is processed again. FAILED
documents are re-processed when explicitly triggered again.

Collection status is derived from its documents after every terminal
transition:

    | Documents                        | Collection  |
    |----------------------------------|-------------|
    | all COMPLETED (or none)          | PROCESSED   |
    | all COMPLETED or FAILED          | FAILED_OCR  |
    | anything else                    | PROCESSING  |
"""

import logging
import threading
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from ocr_processing.config import OcrSettings
from ocr_processing.exceptions import (
    DocumentNotFoundError,
    InvalidRequestError,
    OcrProcessingError,
)
from ocr_processing.models import (
    CollectionStatus,
    ContentFormat,
    ExtractionRequest,
    ExtractionResult,
    OcrStatus,
)
from ocr_processing.orchestrator import OcrOrchestrator
from ocr_processing.pages import PageSelection

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class DocumentRecord:
    """An uploaded file, owned by the storage layer."""

    document_id: str
    collection_id: str
    file_url: str
    mime_type: str | None = None
    original_file_name: str | None = None
    account_id: str | None = None


@dataclass
class OcrRecord:
    """Persisted OCR state of one document."""

    document_id: str
    status: OcrStatus = OcrStatus.PENDING
    extracted_text: str | None = None
    edited_content: str | None = None
    content_format: ContentFormat | None = None
    error_message: str | None = None
    provider: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=_utcnow)
    updated_at: datetime = field(default_factory=_utcnow)


@dataclass
class CollectionResult:
    """OCR results for every document of a collection."""

    collection_id: str
    overall_status: CollectionStatus
    files: list[dict[str, Any]] = field(default_factory=list)


def aggregate_collection_status(statuses: Iterable[OcrStatus]) -> CollectionStatus:
    """Derive a collection's status from its documents' OCR states."""
    statuses = list(statuses)
    completed = sum(1 for s in statuses if s == OcrStatus.COMPLETED)
    failed = sum(1 for s in statuses if s == OcrStatus.FAILED)

    if completed == len(statuses):
        return CollectionStatus.PROCESSED
    if completed + failed == len(statuses):
        return CollectionStatus.FAILED_OCR
    return CollectionStatus.PROCESSING


class DocumentStore(ABC):
    """Abstract storage for documents and their OCR state."""

    @abstractmethod
    def get_document(self, collection_id: str, document_id: str) -> DocumentRecord | None: ...

    @abstractmethod
    def get_collection_documents(self, collection_id: str) -> list[DocumentRecord] | None: ...

    @abstractmethod
    def get_ocr(self, document_id: str) -> OcrRecord | None: ...

    @abstractmethod
    def get_ocr_many(self, document_ids: list[str]) -> dict[str, OcrRecord]: ...

    @abstractmethod
    def save_ocr(self, record: OcrRecord) -> OcrRecord: ...

    @abstractmethod
    def set_collection_status(self, collection_id: str, status: CollectionStatus) -> None: ...

    @abstractmethod
    def get_collection_status(self, collection_id: str) -> CollectionStatus | None: ...


class InMemoryDocumentStore(DocumentStore):
    """Simple in-memory storage for development and tests."""

    def __init__(self) -> None:
        self._collections: dict[str, list[str]] = {}
        self._documents: dict[str, DocumentRecord] = {}
        self._ocr: dict[str, OcrRecord] = {}
        self._collection_status: dict[str, CollectionStatus] = {}
        self._lock = threading.Lock()

    def add_document(self, document: DocumentRecord) -> DocumentRecord:
        with self._lock:
            self._documents[document.document_id] = document
            ids = self._collections.setdefault(document.collection_id, [])
            if document.document_id not in ids:
                ids.append(document.document_id)
        return document

    def get_document(self, collection_id: str, document_id: str) -> DocumentRecord | None:
        document = self._documents.get(document_id)
        if document is None or document.collection_id != collection_id:
            return None
        return document

    def get_collection_documents(self, collection_id: str) -> list[DocumentRecord] | None:
        ids = self._collections.get(collection_id)
        if ids is None:
            return None
        return [self._documents[i] for i in ids]

    def get_ocr(self, document_id: str) -> OcrRecord | None:
        return self._ocr.get(document_id)

    def get_ocr_many(self, document_ids: list[str]) -> dict[str, OcrRecord]:
        return {i: self._ocr[i] for i in document_ids if i in self._ocr}

    def save_ocr(self, record: OcrRecord) -> OcrRecord:
        with self._lock:
            record.updated_at = _utcnow()
            self._ocr[record.document_id] = record
        return record

    def set_collection_status(self, collection_id: str, status: CollectionStatus) -> None:
        with self._lock:
            self._collection_status[collection_id] = status

    def get_collection_status(self, collection_id: str) -> CollectionStatus | None:
        return self._collection_status.get(collection_id)


class DocumentOcrService:
    """Idempotent per-document OCR on top of the orchestrator."""

    def __init__(
        self,
        store: DocumentStore,
        orchestrator: OcrOrchestrator,
        settings: OcrSettings | None = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.settings = settings or orchestrator.settings

    def extract_document(
        self,
        collection_id: str,
        document_id: str,
        account_id: str,
        page_selection: PageSelection | None = None,
        language: str | None = None,
    ) -> OcrRecord:
        """
        Return the stored OCR result for a document, extracting it if needed.

        Raises:
            DocumentNotFoundError: if the document is not in the collection
            InvalidRequestError: if the page selection does not fit the document
            OcrProcessingError: if extraction failed with no fallback left
        """
        document = self._find_document(collection_id, document_id)

        existing = self.store.get_ocr(document_id)
        if existing is not None and self._should_skip(existing):
            return existing

        record = existing or OcrRecord(document_id=document_id)
        record.status = OcrStatus.PROCESSING
        record.error_message = None
        self.store.save_ocr(record)

        request = ExtractionRequest(
            image_url=document.file_url,
            mime_type=document.mime_type,
            language=language,
            document_id=document_id,
            collection_id=collection_id,
            account_id=account_id,
            page_selection=page_selection,
        )

        try:
            logger.info("Starting OCR text extraction for document: %s", document_id)
            result = self.orchestrator.process(request, account_id)
            self._apply_result(record, result)
        except OcrProcessingError as e:
            logger.error("OCR processing failed for document %s: %s", document_id, e.message)
            self._mark_failed(record, e.message)
            raise
        except Exception as e:
            logger.exception("An unexpected error occurred while processing document %s", document_id)
            self._mark_failed(record, f"An unexpected error occurred: {e}")
            raise
        finally:
            self.store.save_ocr(record)
            self.refresh_collection_status(collection_id)

        return record

    def process_message(self, collection_id: str, document_id: str) -> OcrRecord:
        """Queue entry point; bills the account that owns the document."""
        document = self._find_document(collection_id, document_id)
        return self.extract_document(
            collection_id,
            document_id,
            account_id=document.account_id or "",
        )

    def get_ocr_data(self, collection_id: str, document_id: str) -> OcrRecord:
        """Stored OCR state of one document; PENDING if never requested."""
        self._find_document(collection_id, document_id)
        return self.store.get_ocr(document_id) or OcrRecord(document_id=document_id)

    def get_collection_result(self, collection_id: str) -> CollectionResult:
        documents = self.store.get_collection_documents(collection_id)
        if documents is None:
            raise DocumentNotFoundError(f"Collection not found: {collection_id}")

        records = self.store.get_ocr_many([d.document_id for d in documents])
        files = []
        for document in documents:
            record = records.get(document.document_id)
            files.append({
                "document_id": document.document_id,
                "original_file_name": document.original_file_name,
                "status": record.status.value if record else OcrStatus.PENDING.value,
                "error_message": record.error_message if record else None,
                "extracted_text": record.extracted_text if record else None,
                "created_at": record.created_at.isoformat() if record else None,
            })

        overall = aggregate_collection_status(
            records[d.document_id].status if d.document_id in records else OcrStatus.PENDING
            for d in documents
        )
        return CollectionResult(collection_id=collection_id, overall_status=overall, files=files)

    def update_ocr_content(
        self,
        collection_id: str,
        document_id: str,
        edited_content: str,
        content_format: ContentFormat = ContentFormat.PLAIN_TEXT,
    ) -> OcrRecord:
        """Store a user edit of a completed extraction. The original text is kept."""
        self._find_document(collection_id, document_id)
        record = self.store.get_ocr(document_id)
        if record is None or record.status != OcrStatus.COMPLETED:
            raise InvalidRequestError(
                f"OCR content for document {document_id} is not available for editing",
                document_id=document_id,
            )
        record.edited_content = edited_content
        record.content_format = content_format
        return self.store.save_ocr(record)

    def refresh_collection_status(self, collection_id: str) -> CollectionStatus:
        documents = self.store.get_collection_documents(collection_id) or []
        ids = [d.document_id for d in documents]
        records = self.store.get_ocr_many(ids)
        status = aggregate_collection_status(
            records[i].status if i in records else OcrStatus.PENDING for i in ids
        )
        self.store.set_collection_status(collection_id, status)
        logger.info("Collection %s status updated to: %s", collection_id, status.value)
        return status

    def _should_skip(self, record: OcrRecord) -> bool:
        if record.status == OcrStatus.COMPLETED:
            logger.info("Document %s already processed. Skipping.", record.document_id)
            return True
        if record.status == OcrStatus.PROCESSING:
            age = _utcnow() - record.updated_at
            if age < timedelta(seconds=self.settings.processing_stale_seconds):
                logger.info("Document %s is already being processed. Skipping.", record.document_id)
                return True
            logger.warning(
                "Document %s stuck in PROCESSING for %.0fs, processing again",
                record.document_id,
                age.total_seconds(),
            )
        return False

    def _find_document(self, collection_id: str, document_id: str) -> DocumentRecord:
        document = self.store.get_document(collection_id, document_id)
        if document is None:
            raise DocumentNotFoundError(
                f"Document {document_id} not found in collection {collection_id}"
            )
        return document

    @staticmethod
    def _apply_result(record: OcrRecord, result: ExtractionResult) -> None:
        record.provider = result.provider.value if result.provider else None
        record.metadata = dict(result.metadata)
        if result.success:
            record.status = OcrStatus.COMPLETED
            record.extracted_text = result.text
            record.error_message = None
            logger.info("OCR text extraction completed for document: %s", record.document_id)
        else:
            record.status = OcrStatus.FAILED
            record.error_message = result.error or "OCR extraction failed"
            logger.error("OCR processing failed for document %s: %s", record.document_id, record.error_message)

    @staticmethod
    def _mark_failed(record: OcrRecord, message: str) -> None:
        record.status = OcrStatus.FAILED
        record.error_message = message
