"""
Prometheus metrics for the Digest Agent.

This module defines and exports Prometheus metrics for monitoring:
- Source collection volume, errors and latency
- Inference service calls
- Topic annotation fallbacks and pending backlog
- Summary cache effectiveness and job queue outcomes
- Database query performance
"""

import time
from functools import wraps
from typing import Callable

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    Info,
    generate_latest,
    start_http_server,
)


# Create a custom registry for this application
metrics_registry = CollectorRegistry()


# ============================================================================
# Collection Metrics
# ============================================================================

articles_collected_counter = Counter(
    "articles_collected_total",
    "Total number of new articles persisted from sources",
    ["source_type"],
    registry=metrics_registry,
)

collection_errors_counter = Counter(
    "collection_errors_total",
    "Total number of errors recorded during source collection",
    ["source_type"],
    registry=metrics_registry,
)

collection_duration = Histogram(
    "collection_duration_seconds",
    "Duration of a single source collection run in seconds",
    ["source_type"],
    buckets=[0.5, 1, 2.5, 5, 10, 30, 60, 120],
    registry=metrics_registry,
)

# ============================================================================
# Inference Metrics
# ============================================================================

inference_request_counter = Counter(
    "inference_requests_total",
    "Total number of inference service requests",
    ["operation", "status"],  # status: success, failure
    registry=metrics_registry,
)

inference_request_duration = Histogram(
    "inference_request_duration_seconds",
    "Inference service request duration in seconds",
    ["operation"],
    buckets=[0.5, 1, 2.5, 5, 10, 30, 60, 120, 300],
    registry=metrics_registry,
)

# ============================================================================
# Annotation Metrics
# ============================================================================

annotation_fallback_counter = Counter(
    "topic_annotation_fallbacks_total",
    "Items that received the title-truncation fallback topic",
    ["mode"],  # single, batch, chunk
    registry=metrics_registry,
)

pending_articles_gauge = Gauge(
    "pending_topic_articles",
    "Articles still carrying the pending topic sentinel",
    registry=metrics_registry,
)

# ============================================================================
# Summary Metrics
# ============================================================================

summary_cache_counter = Counter(
    "summary_cache_lookups_total",
    "Summary cache lookups",
    ["result"],  # hit, miss
    registry=metrics_registry,
)

summaries_generated_counter = Counter(
    "summaries_generated_total",
    "Total number of summaries generated",
    registry=metrics_registry,
)

summary_jobs_counter = Counter(
    "summary_jobs_total",
    "Summary jobs reaching a terminal state",
    ["status"],  # completed, failed
    registry=metrics_registry,
)

summary_job_duration = Histogram(
    "summary_job_duration_seconds",
    "Summary job execution duration in seconds",
    buckets=[1, 5, 10, 30, 60, 120, 300, 600, 1800],
    registry=metrics_registry,
)

# ============================================================================
# Database Metrics
# ============================================================================

db_query_duration = Histogram(
    "db_query_duration_seconds",
    "Database query duration in seconds",
    ["operation", "table"],
    buckets=[0.001, 0.005, 0.01, 0.05, 0.1, 0.5, 1.0, 5.0],
    registry=metrics_registry,
)

# ============================================================================
# Application Info
# ============================================================================

app_info = Info(
    "app",
    "Application information",
    registry=metrics_registry,
)

app_info.info({
    "name": "Digest Agent",
    "version": "1.0.0",
})


# ============================================================================
# Decorators
# ============================================================================

def track_db_query(operation: str, table: str):
    """
    Decorator to track database query duration.

    Args:
        operation: Query operation (select, insert, update, delete)
        table: Database table name

    Example:
        @track_db_query("select", "articles")
        async def search(self, ...):
            pass
    """
    def decorator(func: Callable):
        @wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            try:
                return await func(*args, **kwargs)
            finally:
                duration = time.time() - start_time
                db_query_duration.labels(operation=operation, table=table).observe(duration)

        return wrapper
    return decorator


# ============================================================================
# Helper Functions
# ============================================================================

def record_collection(source_type: str, new_articles: int, errors: int, duration: float):
    """Record the outcome of one source collection run."""
    if new_articles:
        articles_collected_counter.labels(source_type=source_type).inc(new_articles)
    if errors:
        collection_errors_counter.labels(source_type=source_type).inc(errors)
    collection_duration.labels(source_type=source_type).observe(duration)


def record_inference(operation: str, success: bool, duration: float):
    """Record one inference service call."""
    status = "success" if success else "failure"
    inference_request_counter.labels(operation=operation, status=status).inc()
    inference_request_duration.labels(operation=operation).observe(duration)


def record_annotation_fallback(mode: str, count: int = 1):
    """Record items that fell back to the default topic."""
    if count:
        annotation_fallback_counter.labels(mode=mode).inc(count)


def record_cache_lookup(hit: bool):
    """Record a summary cache hit or miss."""
    summary_cache_counter.labels(result="hit" if hit else "miss").inc()


def record_job(status: str, duration: float):
    """Record a summary job reaching a terminal state."""
    summary_jobs_counter.labels(status=status).inc()
    summary_job_duration.observe(duration)


def get_metrics() -> bytes:
    """Return metrics in Prometheus exposition format."""
    return generate_latest(metrics_registry)


def get_metrics_content_type() -> str:
    """Content type of the exposition format."""
    return CONTENT_TYPE_LATEST


def start_metrics_server(port: int) -> bool:
    """
    Expose the metrics registry over HTTP.

    Args:
        port: TCP port to listen on, 0 disables the exporter

    Returns:
        True if the exporter was started
    """
    if port <= 0:
        return False
    start_http_server(port, registry=metrics_registry)
    return True
