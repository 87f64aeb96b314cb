"""
Summary job submission and status reads.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from digest_agent.storage.interfaces import JobRepository
from digest_agent.types import JobStatusView, SummaryJob

logger = logging.getLogger(__name__)


class JobService:
    """Queue front-end used by request surfaces and the CLI."""

    def __init__(self, job_repo: JobRepository):
        self._job_repo = job_repo

    async def create_summary_job(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
    ) -> UUID:
        """
        Enqueue an asynchronous summary request.

        Args:
            start: Range start
            end: Range end
            topics: Optional topic filter

        Returns:
            ID of the QUEUED job

        Raises:
            ValueError: If the range is inverted
        """
        if start > end:
            raise ValueError("start date must not be after end date")

        job = SummaryJob(start_date=start, end_date=end, topics=list(topics or []))
        job_id = await self._job_repo.create(job)
        logger.info(f"Queued summary job {job_id}")
        return job_id

    async def get_job_status(self, job_id: UUID) -> Optional[JobStatusView]:
        """
        Current status of a job.

        Returns:
            Status view, or None if the job does not exist (including
            completed jobs whose result has been moved to the summary store)
        """
        job = await self._job_repo.get(job_id)
        if job is None:
            return None

        return JobStatusView(
            job_id=job.id,
            status=job.status,
            current_topic=job.current_topic,
            total_topics=job.total_topics,
            progress=job.progress,
            result=job.result,
            error=job.error,
            created_at=job.created_at,
            started_at=job.started_at,
            completed_at=job.completed_at,
        )
