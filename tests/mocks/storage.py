"""
Mock storage implementations for testing.

These mocks provide in-memory implementations of the repository interfaces.
Records are copied on the way in and out so tests observe the same
isolation a database gives. Failure flags let tests inject StorageError at
specific operations.
"""

import asyncio
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple
from uuid import UUID, uuid4

from digest_agent.storage.interfaces import (
    BaseArticleRepository,
    BaseJobRepository,
    BaseSourceRepository,
    BaseSummaryRepository,
    StorageError,
)
from digest_agent.types import (
    PENDING_TOPIC,
    Article,
    JobStatus,
    Source,
    Summary,
    SummaryJob,
    TopicAnnotation,
    utcnow,
)


class MockSourceRepository(BaseSourceRepository):
    """In-memory mock implementation of SourceRepository."""

    def __init__(self):
        self._sources: Dict[UUID, Source] = {}
        self.fail_get = False
        self.last_checked_updates: List[UUID] = []

    async def save(self, source: Source) -> UUID:
        if source.id is None:
            source.id = uuid4()
        self._sources[source.id] = source.model_copy(deep=True)
        return source.id

    async def get(self, source_id: UUID) -> Optional[Source]:
        if self.fail_get:
            raise StorageError("mock source lookup failure")
        source = self._sources.get(source_id)
        return source.model_copy(deep=True) if source else None

    async def list(self, active_only: bool = False) -> List[Source]:
        sources = sorted(self._sources.values(), key=lambda s: s.name)
        if active_only:
            sources = [s for s in sources if s.active]
        return [s.model_copy(deep=True) for s in sources]

    async def update(self, source_id: UUID, updates: Dict[str, Any]) -> bool:
        source = self._sources.get(source_id)
        if source is None:
            return False
        self._sources[source_id] = source.model_copy(update=updates)
        return True

    async def delete(self, source_id: UUID) -> bool:
        return self._sources.pop(source_id, None) is not None

    async def touch_last_checked(self, source_id: UUID, checked_at: datetime) -> None:
        source = self._sources.get(source_id)
        if source is not None:
            source.last_checked = checked_at
            self.last_checked_updates.append(source_id)


class MockArticleRepository(BaseArticleRepository):
    """In-memory mock implementation of ArticleRepository."""

    def __init__(self, source_repo: Optional[MockSourceRepository] = None):
        self._articles: Dict[UUID, Article] = {}
        self._source_repo = source_repo
        self.fail_titles: Set[str] = set()
        self.fail_search = False
        self.pending_requests: List[int] = []

    def all(self) -> List[Article]:
        return [a.model_copy() for a in self._articles.values()]

    async def exists(self, source_id: UUID, title: str, published_at: datetime) -> bool:
        return any(
            a.source_id == source_id and a.title == title and a.published_at == published_at
            for a in self._articles.values()
        )

    async def save(self, article: Article) -> UUID:
        if article.title in self.fail_titles:
            raise StorageError(f"mock insert failure for {article.title}")
        if article.id is None:
            article.id = uuid4()
        self._articles[article.id] = article.model_copy()
        return article.id

    async def get(self, article_id: UUID) -> Optional[Article]:
        article = self._articles.get(article_id)
        return article.model_copy() if article else None

    def _in_range(
        self, article: Article, start: datetime, end: datetime, topics: Optional[Sequence[str]]
    ) -> bool:
        if not start <= article.published_at <= end:
            return False
        return not topics or article.topic in topics

    def _with_source(self, article: Article) -> Article:
        copy = article.model_copy()
        if self._source_repo is not None:
            source = self._source_repo._sources.get(article.source_id)
            if source is not None:
                copy.source_name = source.name
                copy.source_type = source.type
        return copy

    async def search(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        limit: int = 100,
    ) -> List[Article]:
        if self.fail_search:
            raise StorageError("mock search failure")
        matches = [a for a in self._articles.values() if self._in_range(a, start, end, topics)]
        matches.sort(key=lambda a: a.published_at, reverse=True)
        return [self._with_source(a) for a in matches[:limit]]

    async def count_extracted_after(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]],
        after: datetime,
    ) -> int:
        return sum(
            1
            for a in self._articles.values()
            if self._in_range(a, start, end, topics) and a.extracted_at > after
        )

    async def get_pending(self, limit: int) -> List[Article]:
        self.pending_requests.append(limit)
        pending = [a for a in self._articles.values() if a.is_pending]
        pending.sort(key=lambda a: a.extracted_at)
        return [a.model_copy() for a in pending[:limit]]

    async def update_topics(self, article_id: UUID, annotation: TopicAnnotation) -> bool:
        article = self._articles.get(article_id)
        if article is None or not article.is_pending:
            return False
        article.topic = annotation.topic
        article.macro_topic = annotation.macro_topic
        return True

    async def count_pending(self) -> int:
        return sum(1 for a in self._articles.values() if a.is_pending)


class MockSummaryRepository(BaseSummaryRepository):
    """In-memory mock implementation of SummaryRepository."""

    def __init__(self):
        self._summaries: Dict[UUID, Summary] = {}
        self.fail_save = False
        self.fail_find = False

    def all(self) -> List[Summary]:
        return [s.model_copy(deep=True) for s in self._summaries.values()]

    async def save(self, summary: Summary) -> UUID:
        if self.fail_save:
            raise StorageError("mock summary insert failure")
        if summary.id is None:
            summary.id = uuid4()
        self._summaries[summary.id] = summary.model_copy(deep=True)
        return summary.id

    async def get(self, summary_id: UUID) -> Optional[Summary]:
        summary = self._summaries.get(summary_id)
        return summary.model_copy(deep=True) if summary else None

    async def find_latest(
        self, start: datetime, end: datetime, query_topics: Sequence[str]
    ) -> Optional[Summary]:
        if self.fail_find:
            raise StorageError("mock cache lookup failure")
        matches = [
            s
            for s in self._summaries.values()
            if s.start_date == start and s.end_date == end and s.query_topics == list(query_topics)
        ]
        if not matches:
            return None
        latest = max(matches, key=lambda s: s.generated_at)
        return latest.model_copy(deep=True)

    async def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Summary]:
        results = list(self._summaries.values())
        if start is not None:
            results = [s for s in results if s.start_date >= start]
        if end is not None:
            results = [s for s in results if s.end_date <= end]
        results.sort(key=lambda s: s.generated_at, reverse=True)
        return [s.model_copy(deep=True) for s in results[:limit]]

    async def delete_older_than(self, cutoff: datetime) -> int:
        old = [sid for sid, s in self._summaries.items() if s.generated_at < cutoff]
        for sid in old:
            del self._summaries[sid]
        return len(old)


class MockJobRepository(BaseJobRepository):
    """
    In-memory mock job queue.

    claim_next performs a compare-and-set under a lock, mirroring the
    conditional UPDATE of the PostgreSQL implementation.
    """

    def __init__(self):
        self._jobs: Dict[UUID, SummaryJob] = {}
        self._lock = asyncio.Lock()
        self.progress_updates: List[Tuple[UUID, int, int]] = []
        self.fail_claim = False
        self.fail_mark_failed = False

    async def create(self, job: SummaryJob) -> UUID:
        if job.id is None:
            job.id = uuid4()
        self._jobs[job.id] = job.model_copy(deep=True)
        return job.id

    async def get(self, job_id: UUID) -> Optional[SummaryJob]:
        job = self._jobs.get(job_id)
        return job.model_copy(deep=True) if job else None

    async def claim_next(self) -> Optional[SummaryJob]:
        if self.fail_claim:
            raise StorageError("mock claim failure")
        async with self._lock:
            queued = [j for j in self._jobs.values() if j.status == JobStatus.QUEUED]
            if not queued:
                return None
            job = min(queued, key=lambda j: j.created_at)
            if job.status != JobStatus.QUEUED:
                return None
            job.status = JobStatus.PROCESSING
            job.started_at = utcnow()
            return job.model_copy(deep=True)

    async def update_progress(
        self, job_id: UUID, current_topic: int, total_topics: int
    ) -> None:
        job = self._jobs.get(job_id)
        if job is not None:
            job.current_topic = current_topic
            job.total_topics = total_topics
            self.progress_updates.append((job_id, current_topic, total_topics))

    async def mark_completed(self, job_id: UUID, result: Summary) -> bool:
        job = self._jobs.get(job_id)
        if job is None:
            return False
        job.status = JobStatus.COMPLETED
        job.result = result.model_copy(deep=True)
        job.completed_at = utcnow()
        return True

    async def mark_failed(self, job_id: UUID, error: str) -> bool:
        if self.fail_mark_failed:
            raise StorageError("mock mark_failed failure")
        job = self._jobs.get(job_id)
        if job is None:
            return False
        job.status = JobStatus.FAILED
        job.error = error
        job.completed_at = utcnow()
        return True

    async def delete(self, job_id: UUID) -> bool:
        return self._jobs.pop(job_id, None) is not None

    async def list_by_status(self, status: JobStatus) -> List[SummaryJob]:
        jobs = sorted(
            (j for j in self._jobs.values() if j.status == status), key=lambda j: j.created_at
        )
        return [j.model_copy(deep=True) for j in jobs]

    def _terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime]
    ) -> List[SummaryJob]:
        return [
            j
            for j in self._jobs.values()
            if j.status in statuses
            and (older_than is None or (j.completed_at is not None and j.completed_at < older_than))
        ]

    async def count_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        return len(self._terminal(statuses, older_than))

    async def delete_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        doomed = self._terminal(statuses, older_than)
        for job in doomed:
            del self._jobs[job.id]
        return len(doomed)


def pending_count(repo: MockArticleRepository) -> int:
    """Number of stored articles still carrying the sentinel topic."""
    return sum(1 for a in repo.all() if a.topic == PENDING_TOPIC)
