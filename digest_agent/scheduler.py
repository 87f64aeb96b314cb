"""
Periodic collection and topic reconciliation using APScheduler.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from digest_agent.observability.logging import log_error
from digest_agent.services.collector import SourceCollector
from digest_agent.services.reconciler import PendingTopicReconciler
from digest_agent.types import CollectionSummary

logger = logging.getLogger(__name__)

COLLECTION_JOB_ID = "collect_all_sources"
RECONCILE_JOB_ID = "process_pending_topics"


class DigestScheduler:
    """
    Runs source collection and pending-topic reconciliation on intervals.

    Each scheduled run catches and logs its own failure so the next run is
    unaffected.
    """

    def __init__(
        self,
        collector: SourceCollector,
        reconciler: PendingTopicReconciler,
        check_interval_minutes: int = 30,
        reconcile_interval_minutes: int = 5,
        scheduler: Optional[AsyncIOScheduler] = None,
    ):
        self.collector = collector
        self.reconciler = reconciler
        self.check_interval_minutes = check_interval_minutes
        self.reconcile_interval_minutes = reconcile_interval_minutes
        self.scheduler = scheduler or AsyncIOScheduler(timezone=timezone.utc)

        logger.info("Scheduler initialized")

    def schedule_jobs(self, run_immediately: bool = True) -> None:
        """Register the periodic jobs."""
        first_run = datetime.now(timezone.utc) if run_immediately else None

        self.scheduler.add_job(
            self.run_collection,
            trigger=IntervalTrigger(minutes=self.check_interval_minutes),
            id=COLLECTION_JOB_ID,
            name="Collect all active sources",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=first_run,
        )
        self.scheduler.add_job(
            self.run_reconciliation,
            trigger=IntervalTrigger(minutes=self.reconcile_interval_minutes),
            id=RECONCILE_JOB_ID,
            name="Resolve pending topics",
            replace_existing=True,
            max_instances=1,
            coalesce=True,
        )
        logger.info(
            f"Scheduled collection every {self.check_interval_minutes} min and "
            f"reconciliation every {self.reconcile_interval_minutes} min"
        )

    async def start(self, run_immediately: bool = True) -> None:
        """Register jobs and start the scheduler."""
        if not self.scheduler.running:
            self.schedule_jobs(run_immediately=run_immediately)
            self.scheduler.start()
            logger.info("Scheduler started")

    async def shutdown(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler shutdown complete")

    async def run_collection(self) -> Optional[CollectionSummary]:
        """Collect every active source and log the totals."""
        logger.info("Starting scheduled source check")
        try:
            summary = await self.collector.collect_from_all_sources()
        except Exception as e:
            log_error(logger, "Scheduled source check failed", e)
            return None

        logger.info(
            f"Source check done: {summary.checked_sources} sources, "
            f"{summary.new_articles} new articles, {len(summary.errors)} errors"
        )
        for error in summary.errors:
            logger.warning(f"Collection error: {error}")
        return summary

    async def run_reconciliation(self) -> int:
        """Resolve one batch of pending topics."""
        try:
            return await self.reconciler.process_pending_topics()
        except Exception as e:
            log_error(logger, "Pending topic reconciliation failed", e)
            return 0
