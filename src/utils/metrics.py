"""
Prometheus metrics for production monitoring.

Provides instrumentation for the upload and slug stages with standardized
Prometheus metrics. Tracks success/failure rates, latencies and degraded
(warning) paths.

Metrics Provided:
    - upload_requests_total: Counter for uploads by status and category
    - upload_bytes_total: Counter for bytes written to storage
    - upload_duration_seconds: Histogram for storage write latency
    - transform_fallbacks_total: Counter for resizes that kept the original
    - provision_warnings_total: Counter for unconfirmed bucket checks
    - storage_errors_total: Counter for storage backend errors
    - slug_resolutions_total: Counter for uniqueness resolutions by outcome
    - slug_probe_retries_total: Counter for retried slug probes

Usage:
    from src.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_upload():
        key = await storage.put_object(path, data, content_type)
    metrics.record_upload_success(bytes_uploaded=len(data), category="pets")
"""

import os
from contextlib import nullcontext
from typing import Optional

from prometheus_client import REGISTRY, CollectorRegistry, Counter, Histogram, Info

from src.utils.logging import get_logger

logger = get_logger(__name__)


class PrometheusMetrics:
    """
    Centralized Prometheus metrics for the pipeline.

    Example:
        >>> metrics = PrometheusMetrics(registry=CollectorRegistry())
        >>> metrics.record_upload_success(bytes_uploaded=1024, category="pets")
    """

    def __init__(self, enabled: bool = True, registry: Optional[CollectorRegistry] = None) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Custom Prometheus registry (uses default if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else REGISTRY

        if not self.enabled:
            logger.info("Metrics collection disabled")
            return

        # ====================================================================
        # Upload Operations
        # ====================================================================

        self.upload_requests = Counter(
            name="upload_requests_total",
            documentation="Total number of upload requests",
            labelnames=["status", "category"],  # status: success/invalid/failed/timeout/cancelled
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="upload_bytes_total",
            documentation="Total bytes written to storage",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="upload_duration_seconds",
            documentation="Time spent writing objects to storage",
            buckets=[0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry,
        )

        self.transform_fallbacks = Counter(
            name="transform_fallbacks_total",
            documentation="Resizes that failed and kept the original bytes",
            labelnames=["reason"],
            registry=self.registry,
        )

        self.provision_warnings = Counter(
            name="provision_warnings_total",
            documentation="Bucket checks that could not confirm the bucket exists",
            registry=self.registry,
        )

        self.storage_errors = Counter(
            name="storage_errors_total",
            documentation="Total storage backend errors",
            labelnames=["operation", "error_type"],
            registry=self.registry,
        )

        # ====================================================================
        # Slug Operations
        # ====================================================================

        self.slug_resolutions = Counter(
            name="slug_resolutions_total",
            documentation="Slug uniqueness resolutions by outcome",
            labelnames=["table", "outcome"],  # outcome: unique/suffixed/exhausted/probe_error
            registry=self.registry,
        )

        self.slug_probe_retries = Counter(
            name="slug_probe_retries_total",
            documentation="Slug existence probes retried after an error",
            labelnames=["table"],
            registry=self.registry,
        )

        self.app_info = Info(
            name="application",
            documentation="Application metadata",
            registry=self.registry,
        )
        self.app_info.info({"version": "0.1.0", "name": "pet-asset-ingest"})

        logger.debug("PrometheusMetrics initialized with all collectors")

    def track_upload(self):
        """Context manager timing a storage write."""
        if not self.enabled:
            return nullcontext()
        return self.upload_duration.time()

    def record_upload_success(self, bytes_uploaded: int, category: str = "unknown") -> None:
        if not self.enabled:
            return
        self.upload_requests.labels(status="success", category=category).inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self, category: str = "unknown", status: str = "failed") -> None:
        """
        Record an upload that did not complete.

        Args:
            category: Upload category
            status: invalid, failed, timeout or cancelled
        """
        if not self.enabled:
            return
        self.upload_requests.labels(status=status, category=category).inc()

    def record_transform_fallback(self, reason: str) -> None:
        if not self.enabled:
            return
        self.transform_fallbacks.labels(reason=reason).inc()

    def record_provision_warning(self) -> None:
        if not self.enabled:
            return
        self.provision_warnings.inc()

    def record_storage_error(self, operation: str, error_type: str) -> None:
        """
        Record a storage backend error.

        Args:
            operation: upload, delete, list, exists or create_bucket
            error_type: Exception class name
        """
        if not self.enabled:
            return
        self.storage_errors.labels(operation=operation, error_type=error_type).inc()

    def record_slug_resolution(self, table: str, outcome: str) -> None:
        if not self.enabled:
            return
        self.slug_resolutions.labels(table=table, outcome=outcome).inc()

    def record_slug_probe_retry(self, table: str) -> None:
        if not self.enabled:
            return
        self.slug_probe_retries.labels(table=table).inc()


# ============================================================================
# Global Metrics Instance
# ============================================================================

_metrics_instance: Optional[PrometheusMetrics] = None


def get_metrics() -> PrometheusMetrics:
    """
    Get global metrics instance (singleton).

    Collection can be switched off with METRICS_ENABLED=false.
    """
    global _metrics_instance

    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = PrometheusMetrics(enabled=enabled)

    return _metrics_instance
