"""
One-shot queue maintenance: terminal job cleanup and migration of leftover
COMPLETED job results into the summary store.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import Awaitable, Callable, List, Optional, Sequence
from uuid import UUID

from digest_agent.storage.interfaces import JobRepository, StorageError, SummaryRepository
from digest_agent.types import JobStatus, utcnow

logger = logging.getLogger(__name__)

TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)


@dataclass
class CleanupReport:
    matched: int = 0
    deleted: int = 0
    dry_run: bool = False


@dataclass
class MigrationReport:
    migrated: int = 0
    failed: int = 0
    failed_job_ids: List[UUID] = field(default_factory=list)


async def cleanup_jobs(
    job_repo: JobRepository,
    statuses: Sequence[JobStatus] = (JobStatus.COMPLETED,),
    older_than_days: Optional[int] = None,
    grace_seconds: float = 5,
    dry_run: bool = False,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> CleanupReport:
    """
    Delete terminal jobs after a grace delay.

    Args:
        job_repo: Job repository
        statuses: Terminal statuses to delete
        older_than_days: Only jobs completed more than this many days ago
        grace_seconds: Delay between the warning and the deletion
        dry_run: Count only
        sleep: Sleep function used for the grace delay

    Returns:
        CleanupReport with matched and deleted counts

    Raises:
        ValueError: If a non-terminal status is requested
    """
    invalid = [s for s in statuses if s not in TERMINAL_STATUSES]
    if invalid:
        raise ValueError(f"Only terminal jobs can be cleaned up, got {[s.value for s in invalid]}")

    cutoff = utcnow() - timedelta(days=older_than_days) if older_than_days else None
    report = CleanupReport(dry_run=dry_run)
    report.matched = await job_repo.count_terminal(statuses, cutoff)

    labels = ", ".join(s.value for s in statuses)
    if report.matched == 0:
        logger.info(f"No {labels} jobs to clean up")
        return report

    if dry_run:
        logger.info(f"Dry run: would delete {report.matched} {labels} jobs")
        return report

    logger.warning(
        f"Deleting {report.matched} {labels} jobs in {grace_seconds:g}s (interrupt to abort)"
    )
    await sleep(grace_seconds)

    report.deleted = await job_repo.delete_terminal(statuses, cutoff)
    logger.info(f"Deleted {report.deleted} jobs")
    return report


async def migrate_completed_jobs(
    job_repo: JobRepository, summary_repo: SummaryRepository
) -> MigrationReport:
    """
    Copy COMPLETED job results into summaries and delete the job rows.

    Each migrated summary takes the job's topic filter as its query topics
    and the job completion time (or now) as its generation time. Jobs that
    cannot be migrated are left in place and counted as failed.
    """
    report = MigrationReport()
    jobs = await job_repo.list_by_status(JobStatus.COMPLETED)
    logger.info(f"Found {len(jobs)} completed jobs to migrate")

    for job in jobs:
        if job.result is None:
            logger.warning(f"Job {job.id} has no result, skipping")
            report.failed += 1
            report.failed_job_ids.append(job.id)
            continue

        summary = job.result.model_copy(
            update={
                "id": None,
                "query_topics": list(job.topics),
                "generated_at": job.completed_at or utcnow(),
            }
        )
        try:
            await summary_repo.save(summary)
            await job_repo.delete(job.id)
        except StorageError as e:
            logger.error(f"Failed to migrate job {job.id}: {e}")
            report.failed += 1
            report.failed_job_ids.append(job.id)
            continue

        report.migrated += 1
        logger.info(f"Migrated job {job.id} to summary {summary.id}")

    logger.info(f"Migration finished: {report.migrated} migrated, {report.failed} failed")
    return report
