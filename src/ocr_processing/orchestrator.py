"""
OCR Orchestrator
================

Runs one extraction request end to end:

1. BillingAwareRouter picks a provider type for the account
2. ProviderRegistry resolves it (registry default if unavailable)
3. The provider runs under its own timer
4. Success: usage is recorded against the account
5. Failure: at most one fallback attempt with a different provider

Usage:
    orchestrator = OcrOrchestrator(
        registry=build_registry(settings),
        router=BillingAwareRouter(billing),
        billing=billing,
        metrics=OcrMetrics(),
        settings=settings,
    )
    result = orchestrator.process(request, account_id="acct-1")
"""

import logging
import threading

from ocr_processing.billing import BillingAwareRouter, BillingService
from ocr_processing.config import OcrSettings
from ocr_processing.exceptions import (
    InvalidRequestError,
    OcrCancelledError,
    OcrProcessingError,
)
from ocr_processing.metrics import OcrMetrics
from ocr_processing.models import ExtractionRequest, ExtractionResult, ProviderType
from ocr_processing.providers import BaseOcrProvider
from ocr_processing.registry import ProviderRegistry

logger = logging.getLogger(__name__)


class OcrOrchestrator:
    """Provider selection, fallback and usage accounting for OCR requests."""

    def __init__(
        self,
        registry: ProviderRegistry,
        router: BillingAwareRouter,
        billing: BillingService,
        metrics: OcrMetrics | None = None,
        settings: OcrSettings | None = None,
    ):
        self.registry = registry
        self.router = router
        self.billing = billing
        self.metrics = metrics or OcrMetrics()
        self.settings = settings or OcrSettings()

    def process(
        self,
        request: ExtractionRequest,
        account_id: str,
        cancel_event: threading.Event | None = None,
    ) -> ExtractionResult:
        """
        Process a request with billing-based provider selection and fallback.

        Args:
            request: The extraction request
            account_id: Account used for routing and usage accounting
            cancel_event: Optional external cancellation signal

        Returns:
            ExtractionResult, possibly a failed one when no fallback applies

        Raises:
            OcrProcessingError: non-retryable errors, or a retryable error with
                no eligible fallback, or an error raised by the fallback itself
        """
        if not request.is_valid():
            raise InvalidRequestError(
                "Invalid OCR request: exactly one of image_url or image_bytes is required",
                document_id=request.document_id,
            )

        provider_type = self._resolve_provider_type(request, account_id)
        primary = self._get_provider_with_fallback_to_default(provider_type)
        primary_type = primary.provider_type
        # Credits are decided once, by routing; a fallback never charges them.
        charge_credits = primary_type == provider_type and self.router.should_deduct_credits(
            account_id, provider_type
        )

        logger.info(
            "Processing OCR for document %s using provider %s",
            request.document_id,
            primary_type.value,
        )

        try:
            result = self._attempt(primary, request, account_id, cancel_event, charge_credits)
        except OcrProcessingError as e:
            if not e.retryable or not self._should_try_fallback(request):
                raise
            fallback = self._get_fallback_provider(primary_type)
            if fallback is None:
                logger.warning("No fallback provider available, re-raising: %s", e.message)
                raise
            return self._execute_fallback(request, primary_type, fallback, account_id, cancel_event)

        if result.success or not self._should_try_fallback(request):
            return result

        fallback = self._get_fallback_provider(primary_type)
        if fallback is None:
            logger.warning("No fallback provider available for %s", primary_type.value)
            return result

        return self._execute_fallback(request, primary_type, fallback, account_id, cancel_event)

    def process_with_provider(
        self,
        request: ExtractionRequest,
        provider_type: ProviderType,
        account_id: str,
    ) -> ExtractionResult:
        """Process a request with one specific provider and no fallback."""
        provider = self.registry.get(provider_type)
        charge_credits = self.router.should_deduct_credits(account_id, provider_type)
        return self._attempt(provider, request, account_id, charge_credits=charge_credits)

    def _resolve_provider_type(self, request: ExtractionRequest, account_id: str) -> ProviderType:
        """Billing decides; a request may only downgrade to the local provider."""
        provider_type = self.router.resolve_provider_type(account_id)
        if request.preferred_provider == self.router.local_type:
            return self.router.local_type
        return provider_type

    def _attempt(
        self,
        provider: BaseOcrProvider,
        request: ExtractionRequest,
        account_id: str,
        cancel_event: threading.Event | None = None,
        charge_credits: bool = False,
    ) -> ExtractionResult:
        """Run one provider call under its own timer and record the outcome."""
        provider_type = provider.provider_type
        if cancel_event is not None and cancel_event.is_set():
            raise OcrCancelledError(provider_type=provider_type, document_id=request.document_id)

        self.metrics.record_request_start(provider_type)
        try:
            with self.metrics.timer(provider_type) as handle:
                result = provider.extract_text(request)
        except Exception as e:
            message = e.message if isinstance(e, OcrProcessingError) else str(e)
            self.metrics.record_error(provider_type, handle.elapsed_ms, message)
            raise

        if result.success:
            self._record_usage(account_id, result, charge_credits)
            self.metrics.record_success(result)
        else:
            self.metrics.record_error(provider_type, result.processing_time_ms, result.error)
        return result

    def _execute_fallback(
        self,
        request: ExtractionRequest,
        primary_type: ProviderType,
        fallback: BaseOcrProvider,
        account_id: str,
        cancel_event: threading.Event | None,
    ) -> ExtractionResult:
        fallback_type = fallback.provider_type
        logger.info(
            "Falling back from %s to %s for document %s",
            primary_type.value,
            fallback_type.value,
            request.document_id,
        )
        self.metrics.record_fallback(primary_type, fallback_type)

        result = self._attempt(fallback, request, account_id, cancel_event)
        if result.success:
            result.with_metadata("fallback_from", primary_type.value)
        return result

    def _record_usage(self, account_id: str, result: ExtractionResult, charge_credits: bool) -> None:
        """Charge one unit; ledger errors never fail a finished extraction."""
        try:
            self.billing.record_subscription_usage(account_id)
            if charge_credits:
                self.billing.consume_credits(account_id, 1)
                result.with_metadata("credits_charged", 1)
        except Exception:
            logger.exception("Failed to record OCR usage for account %s", account_id)

    def _should_try_fallback(self, request: ExtractionRequest) -> bool:
        return request.fallback_enabled and self.settings.fallback_enabled

    def _get_provider_with_fallback_to_default(self, preferred: ProviderType) -> BaseOcrProvider:
        if self.registry.is_available(preferred):
            return self.registry.get(preferred)

        logger.warning(
            "Preferred OCR provider %s is not available, falling back to default: %s",
            preferred.value,
            self.registry.default_type.value,
        )
        return self.registry.get_default()

    def _get_fallback_provider(self, failed_type: ProviderType) -> BaseOcrProvider | None:
        """Configured fallback, or the other known type if that is the one that failed."""
        fallback_type = self.settings.fallback_provider
        if fallback_type == failed_type:
            fallback_type = failed_type.other()
        return self.registry.get_optional(fallback_type)
