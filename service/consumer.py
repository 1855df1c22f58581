"""
OCR Request Queue Consumer
==========================

Consumes `{collection_id, document_id}` messages and runs OCR for each one
synchronously on a worker thread.

Acknowledgement policy: every message is acknowledged after exactly one
attempt. Processing errors are logged and the message is dropped; nothing is
requeued here. Redelivery is the queue's concern.
"""

import json
import logging
import queue
import threading
from typing import Any

from fastapi import APIRouter
from pydantic import BaseModel, ValidationError

from ocr_processing import DocumentOcrService, OcrRecord

logger = logging.getLogger(__name__)


class OcrRequestMessage(BaseModel):
    """Queue message requesting OCR for one document."""

    collection_id: str
    document_id: str


class QueuedResponse(BaseModel):
    """Response from enqueueing an OCR request."""

    status: str = "queued"
    collection_id: str
    document_id: str
    status_url: str


def parse_message(raw: Any) -> OcrRequestMessage:
    """Deserialize a message given as a model, dict, JSON string or bytes."""
    if isinstance(raw, OcrRequestMessage):
        return raw
    if isinstance(raw, (bytes, bytearray)):
        raw = raw.decode("utf-8")
    if isinstance(raw, str):
        raw = json.loads(raw)
    return OcrRequestMessage.model_validate(raw)


class OcrQueueConsumer:
    """Reads OCR requests from a channel and processes them one at a time."""

    def __init__(
        self,
        channel: "queue.Queue[Any]",
        service: DocumentOcrService,
        poll_interval: float = 1.0,
    ) -> None:
        self.channel = channel
        self.service = service
        self.poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def process_one(self, raw: Any) -> OcrRecord | None:
        """Handle one message. Errors are logged, never raised to the queue."""
        try:
            message = parse_message(raw)
        except (ValidationError, ValueError) as e:
            logger.error("Dropping malformed OCR request message %r: %s", raw, e)
            return None

        logger.info(
            "Received OCR request for collection ID: %s, document ID: %s",
            message.collection_id,
            message.document_id,
        )
        try:
            return self.service.process_message(message.collection_id, message.document_id)
        except Exception as e:
            logger.error(
                "Error processing OCR request for collection ID: %s, document ID: %s. Error: %s",
                message.collection_id,
                message.document_id,
                e,
                exc_info=True,
            )
            return None

    def run_forever(self) -> None:
        """Consume until stop() is called."""
        while not self._stop.is_set():
            try:
                raw = self.channel.get(timeout=self.poll_interval)
            except queue.Empty:
                continue
            try:
                self.process_one(raw)
            finally:
                self.channel.task_done()

    def start(self) -> threading.Thread:
        if self._thread is None or not self._thread.is_alive():
            self._stop.clear()
            self._thread = threading.Thread(
                target=self.run_forever, name="ocr-queue-consumer", daemon=True
            )
            self._thread.start()
        return self._thread

    def stop(self, timeout: float | None = 5.0) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None


def create_router(channel: "queue.Queue[Any]") -> APIRouter:
    """Create the queue APIRouter."""
    router = APIRouter(tags=["Queue"])

    @router.post(
        "/api/v1/ocr/requests",
        response_model=QueuedResponse,
        status_code=202,
    )
    async def enqueue_ocr_request(message: OcrRequestMessage) -> QueuedResponse:
        """
        Queue OCR for a document.

        Returns immediately. Poll the status URL for the result.
        """
        channel.put(message.model_dump())
        logger.info("OCR request queued for document %s", message.document_id)

        return QueuedResponse(
            collection_id=message.collection_id,
            document_id=message.document_id,
            status_url=(
                f"/api/v1/collections/{message.collection_id}"
                f"/documents/{message.document_id}"
            ),
        )

    return router
