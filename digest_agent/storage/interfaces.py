"""
Storage layer interface contracts.

This module defines Protocol classes that specify the contract for storage
implementations, plus abstract base classes the concrete repositories derive
from. Components receive repositories explicitly; nothing in the package holds
a global store handle.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Optional, Protocol, Sequence
from uuid import UUID

from digest_agent.types import (
    Article,
    JobStatus,
    Source,
    Summary,
    SummaryJob,
    TopicAnnotation,
)


# ============================================================================
# Repository Interfaces (Protocol-based for type checking)
# ============================================================================


class SourceRepository(Protocol):
    """Interface for source persistence operations."""

    async def save(self, source: Source) -> UUID:
        """
        Create or replace a source.

        Args:
            source: The source to save

        Returns:
            UUID of the saved source

        Raises:
            StorageError: If save operation fails
        """
        ...

    async def get(self, source_id: UUID) -> Optional[Source]:
        """Retrieve a source by ID, None if missing."""
        ...

    async def list(self, active_only: bool = False) -> List[Source]:
        """List sources ordered by name."""
        ...

    async def update(self, source_id: UUID, updates: Dict[str, Any]) -> bool:
        """
        Update selected source fields (name, active, config).

        Returns:
            True if updated, False if not found
        """
        ...

    async def delete(self, source_id: UUID) -> bool:
        """Delete a source, True if it existed."""
        ...

    async def touch_last_checked(self, source_id: UUID, checked_at: datetime) -> None:
        """Record the time of the latest collection run."""
        ...


class ArticleRepository(Protocol):
    """Interface for article persistence operations."""

    async def exists(self, source_id: UUID, title: str, published_at: datetime) -> bool:
        """
        Check whether an article with this identity is already stored.

        Args:
            source_id: Owning source
            title: Exact article title
            published_at: Exact publication timestamp

        Returns:
            True if a matching article exists
        """
        ...

    async def save(self, article: Article) -> UUID:
        """
        Persist a new article.

        Raises:
            StorageError: If the insert fails
        """
        ...

    async def get(self, article_id: UUID) -> Optional[Article]:
        """Retrieve an article by ID."""
        ...

    async def search(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        limit: int = 100,
    ) -> List[Article]:
        """
        Articles published within [start, end], newest first.

        Args:
            start: Inclusive lower bound on published_at
            end: Inclusive upper bound on published_at
            topics: Optional topic filter (empty or None means all)
            limit: Maximum number of articles to return

        Returns:
            Matching articles with source name and type populated
        """
        ...

    async def count_extracted_after(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]],
        after: datetime,
    ) -> int:
        """Count articles in range/filter whose extracted_at is later than `after`."""
        ...

    async def get_pending(self, limit: int) -> List[Article]:
        """Articles whose topic or macro-topic is still the pending sentinel, oldest first."""
        ...

    async def update_topics(self, article_id: UUID, annotation: TopicAnnotation) -> bool:
        """
        Replace the sentinel topics of an article.

        Only articles still pending are updated; already annotated articles
        are left untouched.

        Returns:
            True if the article was updated
        """
        ...

    async def count_pending(self) -> int:
        """Number of articles still pending annotation."""
        ...


class SummaryRepository(Protocol):
    """Interface for summary persistence operations."""

    async def save(self, summary: Summary) -> UUID:
        """Persist a summary and return its ID."""
        ...

    async def get(self, summary_id: UUID) -> Optional[Summary]:
        """Retrieve a summary by ID."""
        ...

    async def find_latest(
        self, start: datetime, end: datetime, query_topics: Sequence[str]
    ) -> Optional[Summary]:
        """
        Most recently generated summary for an exact (start, end, query_topics) key.

        `query_topics` is compared as an ordered list.
        """
        ...

    async def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Summary]:
        """Saved summaries with start_date >= start and end_date <= end, newest first."""
        ...

    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete summaries generated before `cutoff`, returning the count."""
        ...


class JobRepository(Protocol):
    """Interface for the summary job queue."""

    async def create(self, job: SummaryJob) -> UUID:
        """Enqueue a job and return its ID."""
        ...

    async def get(self, job_id: UUID) -> Optional[SummaryJob]:
        """Retrieve a job by ID."""
        ...

    async def claim_next(self) -> Optional[SummaryJob]:
        """
        Atomically move the oldest QUEUED job to PROCESSING.

        The transition only happens if the job is still QUEUED at update
        time, so concurrent claimers never receive the same job.

        Returns:
            The claimed job (status PROCESSING, started_at set), or None
        """
        ...

    async def update_progress(
        self, job_id: UUID, current_topic: int, total_topics: int
    ) -> None:
        """Persist topic progress for a running job."""
        ...

    async def mark_completed(self, job_id: UUID, result: Summary) -> bool:
        """Set COMPLETED with result and completion time."""
        ...

    async def mark_failed(self, job_id: UUID, error: str) -> bool:
        """Set FAILED with error text and completion time."""
        ...

    async def delete(self, job_id: UUID) -> bool:
        """Delete a job record."""
        ...

    async def list_by_status(self, status: JobStatus) -> List[SummaryJob]:
        """Jobs in a given status, oldest first."""
        ...

    async def count_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        """Count jobs in the given statuses, optionally completed before `older_than`."""
        ...

    async def delete_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        """Delete jobs in the given statuses, returning the count."""
        ...


# ============================================================================
# Abstract Base Classes (for implementations)
# ============================================================================


class BaseSourceRepository(ABC):
    """Abstract base class for source repository implementations."""

    @abstractmethod
    async def save(self, source: Source) -> UUID:
        pass

    @abstractmethod
    async def get(self, source_id: UUID) -> Optional[Source]:
        pass

    @abstractmethod
    async def list(self, active_only: bool = False) -> List[Source]:
        pass

    @abstractmethod
    async def update(self, source_id: UUID, updates: Dict[str, Any]) -> bool:
        pass

    @abstractmethod
    async def delete(self, source_id: UUID) -> bool:
        pass

    @abstractmethod
    async def touch_last_checked(self, source_id: UUID, checked_at: datetime) -> None:
        pass


class BaseArticleRepository(ABC):
    """Abstract base class for article repository implementations."""

    @abstractmethod
    async def exists(self, source_id: UUID, title: str, published_at: datetime) -> bool:
        pass

    @abstractmethod
    async def save(self, article: Article) -> UUID:
        pass

    @abstractmethod
    async def get(self, article_id: UUID) -> Optional[Article]:
        pass

    @abstractmethod
    async def search(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        limit: int = 100,
    ) -> List[Article]:
        pass

    @abstractmethod
    async def count_extracted_after(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]],
        after: datetime,
    ) -> int:
        pass

    @abstractmethod
    async def get_pending(self, limit: int) -> List[Article]:
        pass

    @abstractmethod
    async def update_topics(self, article_id: UUID, annotation: TopicAnnotation) -> bool:
        pass

    @abstractmethod
    async def count_pending(self) -> int:
        pass


class BaseSummaryRepository(ABC):
    """Abstract base class for summary repository implementations."""

    @abstractmethod
    async def save(self, summary: Summary) -> UUID:
        pass

    @abstractmethod
    async def get(self, summary_id: UUID) -> Optional[Summary]:
        pass

    @abstractmethod
    async def find_latest(
        self, start: datetime, end: datetime, query_topics: Sequence[str]
    ) -> Optional[Summary]:
        pass

    @abstractmethod
    async def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Summary]:
        pass

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        pass


class BaseJobRepository(ABC):
    """Abstract base class for job queue implementations."""

    @abstractmethod
    async def create(self, job: SummaryJob) -> UUID:
        pass

    @abstractmethod
    async def get(self, job_id: UUID) -> Optional[SummaryJob]:
        pass

    @abstractmethod
    async def claim_next(self) -> Optional[SummaryJob]:
        pass

    @abstractmethod
    async def update_progress(
        self, job_id: UUID, current_topic: int, total_topics: int
    ) -> None:
        pass

    @abstractmethod
    async def mark_completed(self, job_id: UUID, result: Summary) -> bool:
        pass

    @abstractmethod
    async def mark_failed(self, job_id: UUID, error: str) -> bool:
        pass

    @abstractmethod
    async def delete(self, job_id: UUID) -> bool:
        pass

    @abstractmethod
    async def list_by_status(self, status: JobStatus) -> List[SummaryJob]:
        pass

    @abstractmethod
    async def count_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        pass

    @abstractmethod
    async def delete_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        pass


# ============================================================================
# Exceptions
# ============================================================================


class StorageError(Exception):
    """Base exception for storage operations."""

    pass


class ConnectionError(StorageError):
    """Exception for connection failures."""

    pass


class IntegrityError(StorageError):
    """Exception for data integrity violations."""

    pass
