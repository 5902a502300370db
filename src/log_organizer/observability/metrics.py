"""
Prometheus metrics collection for the audit-log organizer

This module provides metrics instrumentation for monitoring batch
throughput, storage writes, queue acknowledgements and retries.
"""
import os
import time
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Histogram,
    generate_latest,
)

# Global registry for metrics
REGISTRY = CollectorRegistry()


# =======================
# PIPELINE METRICS
# =======================

# Records processed counter
records_processed_total = Counter(
    name="organizer_records_processed_total",
    documentation="Total number of queue records processed",
    labelnames=["status"],  # status: success, failed
    registry=REGISTRY,
)

# Record failures by stage
record_failures_total = Counter(
    name="organizer_record_failures_total",
    documentation="Total number of record failures by pipeline stage",
    labelnames=["stage"],  # stage: decode, validate, partition, write, acknowledge
    registry=REGISTRY,
)

# Batch size
batch_size = Histogram(
    name="organizer_batch_size_records",
    documentation="Number of messages in each delivered batch",
    buckets=[1, 2, 5, 10, 25, 50, 100, 500, 1000, 10000],
    registry=REGISTRY,
)

# Batch duration
batch_duration_seconds = Histogram(
    name="organizer_batch_duration_seconds",
    documentation="Time spent processing one delivered batch",
    buckets=[0.05, 0.1, 0.5, 1.0, 2.0, 5.0, 10.0, 30.0, 60.0],
    registry=REGISTRY,
)

# =======================
# STORAGE METRICS
# =======================

# Groups written counter
groups_written_total = Counter(
    name="organizer_groups_written_total",
    documentation="Total number of partition groups written to storage",
    labelnames=["status"],  # status: success, failure
    registry=REGISTRY,
)

# Records per group
group_size_records = Histogram(
    name="organizer_group_size_records",
    documentation="Number of records in each partition group",
    buckets=[1, 2, 5, 10, 25, 50, 100, 500],
    registry=REGISTRY,
)

# Storage write duration
storage_write_duration_seconds = Histogram(
    name="organizer_storage_write_duration_seconds",
    documentation="Time spent writing one partition group, retries included",
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 5.0, 10.0],
    registry=REGISTRY,
)

# =======================
# QUEUE METRICS
# =======================

# Acknowledgements counter
acknowledgements_total = Counter(
    name="organizer_acknowledgements_total",
    documentation="Total number of queue message deletions",
    labelnames=["status"],  # status: success, failure
    registry=REGISTRY,
)

# =======================
# ERROR METRICS
# =======================

# Retries counter
retries_total = Counter(
    name="organizer_retries_total",
    documentation="Total number of retried external calls",
    labelnames=["call_site", "status"],  # status: retrying, exhausted
    registry=REGISTRY,
)


# =======================
# HELPER FUNCTIONS
# =======================

def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics in text format

    Returns:
        Metrics in Prometheus text format
    """
    return generate_latest(REGISTRY)


def start_metrics_server(port: Optional[int] = None) -> None:
    """
    Start HTTP server for Prometheus metrics

    Args:
        port: Port to listen on (defaults to env var METRICS_PORT or 8000)
    """
    # Lazy import: only the CLI exposes an HTTP endpoint
    from prometheus_client import start_http_server

    metrics_port = port or int(os.getenv("METRICS_PORT", "8000"))
    start_http_server(metrics_port, registry=REGISTRY)


def increment_counter(counter: Counter, value: float = 1.0, **labels) -> None:
    """
    Increment a counter metric

    Args:
        counter: Prometheus Counter metric
        value: Amount to increment (default: 1.0)
        **labels: Label values for the metric
    """
    if labels:
        counter.labels(**labels).inc(value)
    else:
        counter.inc(value)


def observe_histogram(histogram: Histogram, value: float, **labels) -> None:
    if labels:
        histogram.labels(**labels).observe(value)
    else:
        histogram.observe(value)


def record_retry(call_site: str, exhausted: bool = False) -> None:
    """
    Record a retried external call.

    Args:
        call_site: Retry policy identifier of the call (e.g. S3_PUT)
        exhausted: True when the final attempt failed
    """
    status = "exhausted" if exhausted else "retrying"
    increment_counter(retries_total, 1, call_site=call_site, status=status)


# =======================
# METRICS COLLECTOR CLASS
# =======================

class MetricsCollector:
    """
    Metrics collector for pipeline components.

    This class provides a unified interface for collecting metrics
    from the orchestrator, storage writer and acknowledger.
    """

    def record_batch(self, total_records: int, successful: int, failed: int, duration_seconds: float) -> None:
        """
        Record the outcome of one delivered batch.

        Args:
            total_records: Messages in the batch
            successful: Records written and acknowledged
            failed: Records that failed at any stage
            duration_seconds: Time taken to process the batch
        """
        observe_histogram(batch_size, total_records)
        observe_histogram(batch_duration_seconds, duration_seconds)
        if successful:
            increment_counter(records_processed_total, successful, status="success")
        if failed:
            increment_counter(records_processed_total, failed, status="failed")

    def record_failure(self, stage: str, count: int = 1) -> None:
        if count:
            increment_counter(record_failures_total, count, stage=stage)

    def record_group_write(self, record_count: int, success: bool, started_at: float) -> None:
        """
        Record one partition group write attempt.

        Args:
            record_count: Records in the group
            success: Whether the write succeeded
            started_at: ``time.monotonic()`` value taken before the write
        """
        status = "success" if success else "failure"
        increment_counter(groups_written_total, 1, status=status)
        observe_histogram(group_size_records, record_count)
        observe_histogram(storage_write_duration_seconds, time.monotonic() - started_at)

    def record_acknowledgement(self, success: bool) -> None:
        increment_counter(acknowledgements_total, 1, status="success" if success else "failure")
