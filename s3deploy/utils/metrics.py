"""
Prometheus metrics for deploy runs.

Tracks upload attempts, bytes, retries and S3 API errors on a private
registry, so repeated construction (tests, multiple deploys in one process)
never collides with the global default registry.

Metrics Provided:
    - s3deploy_upload_attempts_total: Counter of put attempts by status
    - s3deploy_upload_bytes_total: Counter of bytes successfully uploaded
    - s3deploy_upload_retries_total: Counter of files requeued after a failure
    - s3deploy_upload_duration_seconds: Histogram of single put latency
    - s3deploy_s3_errors_total: Counter of S3 API errors by operation and code

Usage:
    from s3deploy.utils.metrics import get_metrics

    metrics = get_metrics()
    with metrics.track_upload():
        store.put_object(...)
    metrics.record_upload_success(bytes_uploaded=1024)

    # Expose while a deploy runs:
    python scripts/deploy.py --metrics-port 9090
"""

import os
from contextlib import nullcontext
from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, start_http_server

from s3deploy.utils.logging import get_logger

logger = get_logger(__name__)


class DeployMetrics:
    """
    Prometheus collectors for one deploy process.

    Example:
        >>> metrics = DeployMetrics()
        >>> metrics.record_upload_success(bytes_uploaded=2048)
        >>> metrics.registry.get_sample_value("s3deploy_upload_bytes_total")
        2048.0
    """

    def __init__(self, enabled: bool = True, registry: Optional[CollectorRegistry] = None) -> None:
        """
        Initialize metrics collectors.

        Args:
            enabled: Whether metrics collection is enabled
            registry: Registry to register on (a fresh one if None)
        """
        self.enabled = enabled
        self.registry = registry if registry is not None else CollectorRegistry()

        if not self.enabled:
            logger.debug("Metrics collection disabled")
            return

        self.upload_attempts = Counter(
            name="s3deploy_upload_attempts_total",
            documentation="Total number of single-file put attempts",
            labelnames=["status"],  # success, failure
            registry=self.registry,
        )

        self.upload_bytes = Counter(
            name="s3deploy_upload_bytes_total",
            documentation="Total bytes uploaded to S3",
            registry=self.registry,
        )

        self.upload_retries = Counter(
            name="s3deploy_upload_retries_total",
            documentation="Total files requeued after a failed attempt",
            registry=self.registry,
        )

        self.upload_duration = Histogram(
            name="s3deploy_upload_duration_seconds",
            documentation="Time spent in a single put_object call",
            buckets=[0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0],
            registry=self.registry,
        )

        self.s3_errors = Counter(
            name="s3deploy_s3_errors_total",
            documentation="Total S3 API errors",
            labelnames=["operation", "error_code"],
            registry=self.registry,
        )

    def track_upload(self):
        """Context manager timing one put_object call."""
        if not self.enabled:
            return nullcontext()
        return self.upload_duration.time()

    def record_upload_success(self, bytes_uploaded: int) -> None:
        if not self.enabled:
            return
        self.upload_attempts.labels(status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self, error_code: str) -> None:
        if not self.enabled:
            return
        self.upload_attempts.labels(status="failure").inc()
        self.s3_errors.labels(operation="put_object", error_code=error_code).inc()

    def record_retry(self) -> None:
        if not self.enabled:
            return
        self.upload_retries.inc()

    def record_s3_error(self, operation: str, error_code: str) -> None:
        """
        Record an S3 API error outside the upload path.

        Args:
            operation: S3 operation (get_bucket_location, ...)
            error_code: S3 error code (NoSuchBucket, AccessDenied, ...)
        """
        if not self.enabled:
            return
        self.s3_errors.labels(operation=operation, error_code=error_code).inc()


# ============================================================================
# Global Metrics Instance
# ============================================================================

_metrics_instance: Optional[DeployMetrics] = None


def get_metrics() -> DeployMetrics:
    """
    Get the process-wide metrics instance.

    Collection can be switched off with ``METRICS_ENABLED=false``.
    """
    global _metrics_instance

    if _metrics_instance is None:
        enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        _metrics_instance = DeployMetrics(enabled=enabled)

    return _metrics_instance


def start_metrics_server(port: int = 9090, addr: str = "0.0.0.0") -> None:
    """
    Expose the process metrics over HTTP for the duration of the deploy.

    The server runs on a daemon thread and stops with the process.

    Args:
        port: Port to listen on (default: 9090)
        addr: Address to bind to (default: 0.0.0.0 - all interfaces)
    """
    metrics = get_metrics()
    start_http_server(port=port, addr=addr, registry=metrics.registry)
    logger.info(f"Metrics server running at http://{addr}:{port}/metrics")
