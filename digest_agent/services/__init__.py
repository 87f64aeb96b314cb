"""
Service layer: collection, reconciliation, summary generation and the job
queue worker.
"""

from digest_agent.services.collector import CollectionMode, SourceCollector
from digest_agent.services.jobs import JobService
from digest_agent.services.maintenance import cleanup_jobs, migrate_completed_jobs
from digest_agent.services.reconciler import PendingTopicReconciler
from digest_agent.services.summary_cache import SummaryCacheManager
from digest_agent.services.summary_generator import SummaryGenerator
from digest_agent.services.worker import SummaryWorker

__all__ = [
    "CollectionMode",
    "SourceCollector",
    "PendingTopicReconciler",
    "SummaryCacheManager",
    "SummaryGenerator",
    "JobService",
    "SummaryWorker",
    "cleanup_jobs",
    "migrate_completed_jobs",
]
