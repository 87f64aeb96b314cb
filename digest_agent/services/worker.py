"""
Summary job worker.

Polls the job queue, claims the oldest QUEUED job atomically, drives the
summary generator with a progress callback, and finalizes the job:

    QUEUED -> PROCESSING -> COMPLETED (copied to a Summary, then deleted)
                         -> FAILED    (error kept for inspection)

The claimed job's id is carried through execution, so failure handling
never has to guess which job it was running. A tick never raises.
"""

import asyncio
import logging
import time
from typing import Optional
from uuid import UUID

from digest_agent.observability.logging import log_context, log_error, log_job_finished
from digest_agent.observability.metrics import record_job
from digest_agent.services.summary_generator import SummaryGenerator
from digest_agent.storage.interfaces import JobRepository, SummaryRepository
from digest_agent.types import JobStatus, Summary, SummaryJob

logger = logging.getLogger(__name__)


class SummaryWorker:
    """Single-queue polling worker."""

    def __init__(
        self,
        job_repo: JobRepository,
        summary_repo: SummaryRepository,
        generator: SummaryGenerator,
        poll_interval: float = 5.0,
    ):
        """
        Initialize worker.

        Args:
            job_repo: Job queue repository
            summary_repo: Destination for completed results
            generator: Summary generator
            poll_interval: Seconds between polls
        """
        self._job_repo = job_repo
        self._summary_repo = summary_repo
        self._generator = generator
        self.poll_interval = poll_interval

    async def run_once(self) -> Optional[UUID]:
        """
        Run one poll cycle.

        Returns:
            ID of the job processed this tick, or None if the queue was empty
            or the claim failed
        """
        try:
            job = await self._job_repo.claim_next()
        except Exception as e:
            log_error(logger, "Failed to claim next summary job", e)
            return None

        if job is None:
            return None

        await self.process_job(job)
        return job.id

    async def process_job(self, job: SummaryJob) -> bool:
        """
        Execute a claimed job and move it to a terminal state.

        Returns:
            True on success, False if the job was marked FAILED
        """
        started = time.monotonic()

        with log_context(job_id=str(job.id)):
            logger.info(
                f"Processing summary job {job.id} "
                f"({job.start_date.isoformat()} - {job.end_date.isoformat()}, topics={job.topics})"
            )

            async def on_progress(current_topic: int, total_topics: int) -> None:
                await self._job_repo.update_progress(job.id, current_topic, total_topics)
                logger.debug(f"Job {job.id} progress {current_topic}/{total_topics}")

            try:
                summary = await self._generator.generate(
                    job.start_date,
                    job.end_date,
                    job.topics,
                    on_progress=on_progress,
                )
                await self._complete(job, summary)
            except Exception as e:
                await self._fail(job.id, e)
                duration = time.monotonic() - started
                record_job("failed", duration)
                log_job_finished(logger, job.id, JobStatus.FAILED.value, duration)
                return False

            duration = time.monotonic() - started
            record_job("completed", duration)
            log_job_finished(
                logger, job.id, JobStatus.COMPLETED.value, duration,
                summary_id=str(summary.id), total_articles=summary.total_articles,
            )
            return True

    async def _complete(self, job: SummaryJob, summary: Summary) -> None:
        await self._job_repo.mark_completed(job.id, summary)
        if summary.id is None:
            summary.query_topics = list(job.topics)
            await self._summary_repo.save(summary)
        await self._job_repo.delete(job.id)

    async def _fail(self, job_id: UUID, error: Exception) -> None:
        message = str(error) or type(error).__name__
        log_error(logger, f"Summary job {job_id} failed", error)
        try:
            if not await self._job_repo.mark_failed(job_id, message):
                logger.error(f"Summary job {job_id} disappeared before it could be marked failed")
        except Exception as e:
            log_error(logger, f"Could not mark summary job {job_id} as failed", e)

    async def run_forever(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Poll until `stop_event` is set.

        The current job always finishes before the loop exits.
        """
        stop_event = stop_event or asyncio.Event()
        logger.info(f"Summary worker started (poll interval {self.poll_interval}s)")

        while not stop_event.is_set():
            await self.run_once()
            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass

        logger.info("Summary worker stopped")
