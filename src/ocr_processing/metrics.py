"""
OCR Metrics
===========

Prometheus instrumentation for provider attempts, successes, errors and
fallbacks. Each OcrMetrics owns its CollectorRegistry, so several engines
(or tests) can live in one process.

Timers are explicit handles. timer() wraps one provider attempt and stops
its handle exactly once, on every exit path.
"""

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from ocr_processing.models import ExtractionResult, ProviderType

logger = logging.getLogger(__name__)


@dataclass
class TimerHandle:
    """A running timer for one provider attempt."""

    provider_type: ProviderType
    started_at: float
    stopped: bool = False
    elapsed_ms: float = 0.0


class OcrMetrics:
    """Counters and timers for the OCR orchestrator."""

    def __init__(self, registry: CollectorRegistry | None = None) -> None:
        self.registry = registry or CollectorRegistry()

        self.requests = Counter(
            "ocr_requests",
            "OCR provider attempts started",
            ["provider"],
            registry=self.registry,
        )
        self.successes = Counter(
            "ocr_success",
            "Successful OCR extractions",
            ["provider"],
            registry=self.registry,
        )
        self.errors = Counter(
            "ocr_errors",
            "Failed OCR provider attempts",
            ["provider"],
            registry=self.registry,
        )
        self.fallbacks = Counter(
            "ocr_fallbacks",
            "Fallbacks from one provider to another",
            ["from_provider", "to_provider"],
            registry=self.registry,
        )
        self.duration = Histogram(
            "ocr_processing_duration_seconds",
            "Wall time of one OCR provider attempt",
            ["provider"],
            registry=self.registry,
        )

    def start_timer(self, provider_type: ProviderType) -> TimerHandle:
        return TimerHandle(provider_type=provider_type, started_at=time.perf_counter())

    def stop_timer(self, handle: TimerHandle, provider_type: ProviderType) -> float:
        """
        Stop a timer and record its duration against provider_type.

        Raises:
            RuntimeError: if the handle was already stopped
        """
        if handle.stopped:
            raise RuntimeError(f"Timer for {handle.provider_type.value} already stopped")
        handle.stopped = True
        handle.elapsed_ms = (time.perf_counter() - handle.started_at) * 1000
        self.duration.labels(provider=provider_type.value).observe(handle.elapsed_ms / 1000)
        return handle.elapsed_ms

    @contextmanager
    def timer(self, provider_type: ProviderType) -> Iterator[TimerHandle]:
        """Time one provider attempt."""
        handle = self.start_timer(provider_type)
        try:
            yield handle
        finally:
            if not handle.stopped:
                self.stop_timer(handle, provider_type)

    def record_request_start(self, provider_type: ProviderType) -> None:
        self.requests.labels(provider=provider_type.value).inc()

    def record_success(self, result: ExtractionResult) -> None:
        provider = result.provider.value if result.provider else "unknown"
        self.successes.labels(provider=provider).inc()

    def record_error(self, provider_type: ProviderType, elapsed_ms: float, message: str | None) -> None:
        self.errors.labels(provider=provider_type.value).inc()
        logger.warning(
            "OCR provider %s failed after %.0fms: %s",
            provider_type.value,
            elapsed_ms,
            message,
        )

    def record_fallback(self, from_type: ProviderType, to_type: ProviderType) -> None:
        self.fallbacks.labels(from_provider=from_type.value, to_provider=to_type.value).inc()

    def export(self) -> bytes:
        """Prometheus text exposition of this registry."""
        return generate_latest(self.registry)
