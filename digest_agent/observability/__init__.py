"""
Observability module for metrics and logging.

This module provides:
- Prometheus metrics exporters
- Structured logging with per-job and per-source context
"""

from digest_agent.observability.metrics import (
    metrics_registry,
    articles_collected_counter,
    collection_errors_counter,
    inference_request_counter,
    summary_cache_counter,
    summary_jobs_counter,
    db_query_duration,
    get_metrics,
    start_metrics_server,
)

from digest_agent.observability.logging import (
    setup_logging,
    log_error,
    log_collection,
    log_job_finished,
    log_context,
)

__all__ = [
    # Metrics
    "metrics_registry",
    "articles_collected_counter",
    "collection_errors_counter",
    "inference_request_counter",
    "summary_cache_counter",
    "summary_jobs_counter",
    "db_query_duration",
    "get_metrics",
    "start_metrics_server",
    # Logging
    "setup_logging",
    "log_error",
    "log_collection",
    "log_job_finished",
    "log_context",
]
