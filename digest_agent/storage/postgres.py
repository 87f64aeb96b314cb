"""
PostgreSQL repository implementations.

This module provides asyncpg-based implementations of the storage interfaces
for sources, articles, summaries and the summary job queue.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID

import asyncpg
from asyncpg import Pool
from pydantic import TypeAdapter

from digest_agent.observability.metrics import track_db_query
from digest_agent.storage.interfaces import (
    BaseArticleRepository,
    BaseJobRepository,
    BaseSourceRepository,
    BaseSummaryRepository,
    ConnectionError,
    IntegrityError,
    StorageError,
)
from digest_agent.types import (
    PENDING_TOPIC,
    Article,
    JobStatus,
    Source,
    SourceConfig,
    SourceType,
    Summary,
    SummaryJob,
    TopicAnnotation,
    TopicSummary,
)

logger = logging.getLogger(__name__)

_source_config_adapter = TypeAdapter(SourceConfig)


SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS sources (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    name TEXT NOT NULL,
    type TEXT NOT NULL,
    config JSONB NOT NULL,
    active BOOLEAN NOT NULL DEFAULT TRUE,
    last_checked TIMESTAMPTZ,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE TABLE IF NOT EXISTS articles (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    source_id UUID NOT NULL REFERENCES sources(id) ON DELETE CASCADE,
    title TEXT NOT NULL,
    content TEXT NOT NULL DEFAULT '',
    author TEXT,
    published_at TIMESTAMPTZ NOT NULL,
    topic TEXT NOT NULL DEFAULT 'pending',
    macro_topic TEXT NOT NULL DEFAULT 'pending',
    url TEXT,
    extracted_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_articles_identity ON articles (source_id, title, published_at);
CREATE INDEX IF NOT EXISTS idx_articles_published_at ON articles (published_at);
CREATE INDEX IF NOT EXISTS idx_articles_topic ON articles (topic);
CREATE INDEX IF NOT EXISTS idx_articles_macro_topic ON articles (macro_topic);

CREATE TABLE IF NOT EXISTS summaries (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    start_date TIMESTAMPTZ NOT NULL,
    end_date TIMESTAMPTZ NOT NULL,
    query_topics TEXT[] NOT NULL DEFAULT '{}',
    topics JSONB NOT NULL DEFAULT '[]',
    total_articles INTEGER NOT NULL DEFAULT 0,
    article_ids UUID[] NOT NULL DEFAULT '{}',
    generated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS idx_summaries_range ON summaries (start_date, end_date, generated_at DESC);

CREATE TABLE IF NOT EXISTS summary_jobs (
    id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
    start_date TIMESTAMPTZ NOT NULL,
    end_date TIMESTAMPTZ NOT NULL,
    topics TEXT[] NOT NULL DEFAULT '{}',
    status TEXT NOT NULL DEFAULT 'QUEUED',
    current_topic INTEGER NOT NULL DEFAULT 0,
    total_topics INTEGER NOT NULL DEFAULT 0,
    result JSONB,
    error TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    started_at TIMESTAMPTZ,
    completed_at TIMESTAMPTZ
);

CREATE INDEX IF NOT EXISTS idx_summary_jobs_status ON summary_jobs (status, created_at);
"""


# ============================================================================
# Connection Pool Management
# ============================================================================


class PostgreSQLConnectionPool:
    """
    Manages PostgreSQL connection pool lifecycle.

    Owned by the process entry point: opened on startup, closed on shutdown,
    and handed to every repository explicitly.
    """

    def __init__(
        self,
        host: str = "localhost",
        port: int = 5432,
        database: str = "digest",
        user: str = "digest_user",
        password: str = "digest_password",
        min_size: int = 2,
        max_size: int = 10,
    ):
        """
        Initialize connection pool configuration.

        Args:
            host: Database host
            port: Database port
            database: Database name
            user: Database user
            password: Database password
            min_size: Minimum pool size
            max_size: Maximum pool size
        """
        self.host = host
        self.port = port
        self.database = database
        self.user = user
        self.password = password
        self.min_size = min_size
        self.max_size = max_size
        self._pool: Optional[Pool] = None

    async def connect(self) -> Pool:
        """
        Create and return a connection pool.

        Returns:
            asyncpg connection pool

        Raises:
            ConnectionError: If connection fails
        """
        if self._pool is not None:
            return self._pool

        try:
            self._pool = await asyncpg.create_pool(
                host=self.host,
                port=self.port,
                database=self.database,
                user=self.user,
                password=self.password,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60,
            )
            logger.info(
                f"PostgreSQL connection pool created: {self.host}:{self.port}/{self.database}"
            )
            return self._pool
        except Exception as e:
            logger.error(f"Failed to create connection pool: {e}")
            raise ConnectionError(f"Database connection failed: {e}")

    async def initialize_schema(self) -> None:
        """Create tables and indexes if they do not exist."""
        if self._pool is None:
            raise ConnectionError("Connection pool is not open")
        try:
            await self._pool.execute(SCHEMA_SQL)
            logger.info("Database schema initialized")
        except Exception as e:
            logger.error(f"Failed to initialize schema: {e}")
            raise StorageError(f"Failed to initialize schema: {e}")

    async def close(self):
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")

    @property
    def pool(self) -> Optional[Pool]:
        """Get the current pool instance."""
        return self._pool


# ============================================================================
# Helper Functions
# ============================================================================


def _load_json(value: Any) -> Any:
    """Decode a JSONB column that asyncpg may return as text."""
    if isinstance(value, str):
        return json.loads(value)
    return value


def _row_to_source(row: asyncpg.Record) -> Source:
    """Convert database row to Source object."""
    return Source(
        id=row["id"],
        name=row["name"],
        type=SourceType(row["type"]),
        config=_source_config_adapter.validate_python(_load_json(row["config"])),
        active=row["active"],
        last_checked=row["last_checked"],
        created_at=row["created_at"],
    )


def _row_to_article(row: asyncpg.Record) -> Article:
    """Convert database row to Article object."""
    source_type = row.get("source_type")
    return Article(
        id=row["id"],
        source_id=row["source_id"],
        title=row["title"],
        content=row["content"] or "",
        author=row["author"],
        published_at=row["published_at"],
        topic=row["topic"],
        macro_topic=row["macro_topic"],
        url=row["url"],
        extracted_at=row["extracted_at"],
        source_name=row.get("source_name"),
        source_type=SourceType(source_type) if source_type else None,
    )


def _row_to_summary(row: asyncpg.Record) -> Summary:
    """Convert database row to Summary object."""
    topics = _load_json(row["topics"]) or []
    return Summary(
        id=row["id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        query_topics=list(row["query_topics"] or []),
        topics=[TopicSummary.model_validate(t) for t in topics],
        total_articles=row["total_articles"],
        article_ids=list(row["article_ids"] or []),
        generated_at=row["generated_at"],
    )


def _row_to_job(row: asyncpg.Record) -> SummaryJob:
    """Convert database row to SummaryJob object."""
    result = _load_json(row["result"])
    return SummaryJob(
        id=row["id"],
        start_date=row["start_date"],
        end_date=row["end_date"],
        topics=list(row["topics"] or []),
        status=JobStatus(row["status"]),
        current_topic=row["current_topic"],
        total_topics=row["total_topics"],
        result=Summary.model_validate(result) if result else None,
        error=row["error"],
        created_at=row["created_at"],
        started_at=row["started_at"],
        completed_at=row["completed_at"],
    )


def _range_conditions(
    start: datetime, end: datetime, topics: Optional[Sequence[str]]
) -> tuple[List[str], List[Any]]:
    """Build WHERE conditions for published range plus optional topic filter."""
    conditions = ["a.published_at >= $1", "a.published_at <= $2"]
    params: List[Any] = [start, end]
    if topics:
        params.append(list(topics))
        conditions.append(f"a.topic = ANY(${len(params)}::text[])")
    return conditions, params


# ============================================================================
# Repository Implementations
# ============================================================================


class PostgreSQLSourceRepository(BaseSourceRepository):
    """PostgreSQL implementation of SourceRepository."""

    _UPDATABLE = ("name", "active", "config")

    def __init__(self, pool: Pool):
        self.pool = pool

    async def save(self, source: Source) -> UUID:
        try:
            query = """
                INSERT INTO sources (id, name, type, config, active, last_checked, created_at)
                VALUES (COALESCE($1, gen_random_uuid()), $2, $3, $4, $5, $6, $7)
                ON CONFLICT (id) DO UPDATE SET
                    name = EXCLUDED.name,
                    type = EXCLUDED.type,
                    config = EXCLUDED.config,
                    active = EXCLUDED.active
                RETURNING id
            """
            source_id = await self.pool.fetchval(
                query,
                source.id,
                source.name,
                source.type.value,
                source.config.model_dump_json(),
                source.active,
                source.last_checked,
                source.created_at,
            )
            source.id = source_id
            logger.debug(f"Saved source {source_id}: {source.name}")
            return source_id

        except Exception as e:
            logger.error(f"Failed to save source: {e}")
            raise StorageError(f"Failed to save source: {e}")

    async def get(self, source_id: UUID) -> Optional[Source]:
        try:
            row = await self.pool.fetchrow("SELECT * FROM sources WHERE id = $1", source_id)
            return _row_to_source(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get source {source_id}: {e}")
            raise StorageError(f"Failed to get source: {e}")

    async def list(self, active_only: bool = False) -> List[Source]:
        try:
            query = "SELECT * FROM sources"
            if active_only:
                query += " WHERE active"
            query += " ORDER BY name"
            rows = await self.pool.fetch(query)
            return [_row_to_source(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list sources: {e}")
            raise StorageError(f"Failed to list sources: {e}")

    async def update(self, source_id: UUID, updates: Dict[str, Any]) -> bool:
        """
        Update selected source fields.

        Args:
            source_id: UUID of the source to update
            updates: Mapping restricted to name, active and config

        Returns:
            True if updated, False if not found
        """
        unknown = set(updates) - set(self._UPDATABLE)
        if unknown:
            raise ValueError(f"Cannot update source fields: {sorted(unknown)}")
        if not updates:
            return await self.get(source_id) is not None

        try:
            set_clauses = []
            params: List[Any] = []
            for key, value in updates.items():
                if key == "config":
                    config = _source_config_adapter.validate_python(value)
                    value = config.model_dump_json()
                params.append(value)
                set_clauses.append(f"{key} = ${len(params)}")

            params.append(source_id)
            query = f"UPDATE sources SET {', '.join(set_clauses)} WHERE id = ${len(params)}"
            result = await self.pool.execute(query, *params)
            return result.split()[-1] != "0"

        except ValueError:
            raise
        except Exception as e:
            logger.error(f"Failed to update source {source_id}: {e}")
            raise StorageError(f"Failed to update source: {e}")

    async def delete(self, source_id: UUID) -> bool:
        try:
            result = await self.pool.execute("DELETE FROM sources WHERE id = $1", source_id)
            return result.split()[-1] != "0"
        except Exception as e:
            logger.error(f"Failed to delete source {source_id}: {e}")
            raise StorageError(f"Failed to delete source: {e}")

    async def touch_last_checked(self, source_id: UUID, checked_at: datetime) -> None:
        try:
            await self.pool.execute(
                "UPDATE sources SET last_checked = $2 WHERE id = $1", source_id, checked_at
            )
        except Exception as e:
            logger.error(f"Failed to update last_checked for {source_id}: {e}")
            raise StorageError(f"Failed to update source: {e}")


class PostgreSQLArticleRepository(BaseArticleRepository):
    """PostgreSQL implementation of ArticleRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    @track_db_query("select", "articles")
    async def exists(self, source_id: UUID, title: str, published_at: datetime) -> bool:
        try:
            query = """
                SELECT EXISTS (
                    SELECT 1 FROM articles
                    WHERE source_id = $1 AND title = $2 AND published_at = $3
                )
            """
            return await self.pool.fetchval(query, source_id, title, published_at)
        except Exception as e:
            logger.error(f"Failed to check article existence: {e}")
            raise StorageError(f"Failed to check article existence: {e}")

    @track_db_query("insert", "articles")
    async def save(self, article: Article) -> UUID:
        try:
            query = """
                INSERT INTO articles (
                    id, source_id, title, content, author, published_at,
                    topic, macro_topic, url, extracted_at
                ) VALUES (
                    COALESCE($1, gen_random_uuid()), $2, $3, $4, $5, $6, $7, $8, $9, $10
                )
                RETURNING id
            """
            article_id = await self.pool.fetchval(
                query,
                article.id,
                article.source_id,
                article.title,
                article.content,
                article.author,
                article.published_at,
                article.topic,
                article.macro_topic,
                article.url,
                article.extracted_at,
            )
            article.id = article_id
            return article_id

        except asyncpg.ForeignKeyViolationError as e:
            logger.error(f"Article '{article.title[:60]}' references unknown source {article.source_id}")
            raise IntegrityError(f"Failed to save article: {e}")
        except Exception as e:
            logger.error(f"Failed to save article '{article.title[:60]}': {e}")
            raise StorageError(f"Failed to save article: {e}")

    async def get(self, article_id: UUID) -> Optional[Article]:
        try:
            row = await self.pool.fetchrow("SELECT * FROM articles WHERE id = $1", article_id)
            return _row_to_article(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get article {article_id}: {e}")
            raise StorageError(f"Failed to get article: {e}")

    @track_db_query("select", "articles")
    async def search(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        limit: int = 100,
    ) -> List[Article]:
        try:
            conditions, params = _range_conditions(start, end, topics)
            params.append(limit)
            query = f"""
                SELECT a.*, s.name AS source_name, s.type AS source_type
                FROM articles a
                JOIN sources s ON s.id = a.source_id
                WHERE {" AND ".join(conditions)}
                ORDER BY a.published_at DESC
                LIMIT ${len(params)}
            """
            rows = await self.pool.fetch(query, *params)
            return [_row_to_article(row) for row in rows]

        except Exception as e:
            logger.error(f"Failed to search articles: {e}")
            raise StorageError(f"Failed to search articles: {e}")

    async def count_extracted_after(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]],
        after: datetime,
    ) -> int:
        try:
            conditions, params = _range_conditions(start, end, topics)
            params.append(after)
            conditions.append(f"a.extracted_at > ${len(params)}")
            query = f"SELECT COUNT(*) FROM articles a WHERE {' AND '.join(conditions)}"
            return await self.pool.fetchval(query, *params)
        except Exception as e:
            logger.error(f"Failed to count new articles: {e}")
            raise StorageError(f"Failed to count new articles: {e}")

    async def get_pending(self, limit: int) -> List[Article]:
        try:
            query = """
                SELECT * FROM articles
                WHERE topic = $1 OR macro_topic = $1
                ORDER BY extracted_at
                LIMIT $2
            """
            rows = await self.pool.fetch(query, PENDING_TOPIC, limit)
            return [_row_to_article(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to fetch pending articles: {e}")
            raise StorageError(f"Failed to fetch pending articles: {e}")

    async def update_topics(self, article_id: UUID, annotation: TopicAnnotation) -> bool:
        try:
            query = """
                UPDATE articles SET topic = $2, macro_topic = $3
                WHERE id = $1 AND (topic = $4 OR macro_topic = $4)
            """
            result = await self.pool.execute(
                query, article_id, annotation.topic, annotation.macro_topic, PENDING_TOPIC
            )
            return result.split()[-1] != "0"
        except Exception as e:
            logger.error(f"Failed to update topics for {article_id}: {e}")
            raise StorageError(f"Failed to update article topics: {e}")

    async def count_pending(self) -> int:
        try:
            return await self.pool.fetchval(
                "SELECT COUNT(*) FROM articles WHERE topic = $1 OR macro_topic = $1",
                PENDING_TOPIC,
            )
        except Exception as e:
            logger.error(f"Failed to count pending articles: {e}")
            raise StorageError(f"Failed to count pending articles: {e}")


class PostgreSQLSummaryRepository(BaseSummaryRepository):
    """PostgreSQL implementation of SummaryRepository."""

    def __init__(self, pool: Pool):
        self.pool = pool

    @track_db_query("insert", "summaries")
    async def save(self, summary: Summary) -> UUID:
        try:
            query = """
                INSERT INTO summaries (
                    id, start_date, end_date, query_topics, topics,
                    total_articles, article_ids, generated_at
                ) VALUES (
                    COALESCE($1, gen_random_uuid()), $2, $3, $4, $5, $6, $7, $8
                )
                RETURNING id
            """
            topics_json = json.dumps([t.model_dump(mode="json") for t in summary.topics])
            summary_id = await self.pool.fetchval(
                query,
                summary.id,
                summary.start_date,
                summary.end_date,
                list(summary.query_topics),
                topics_json,
                summary.total_articles,
                list(summary.article_ids),
                summary.generated_at,
            )
            summary.id = summary_id
            logger.debug(f"Saved summary {summary_id} ({len(summary.topics)} topics)")
            return summary_id

        except Exception as e:
            logger.error(f"Failed to save summary: {e}")
            raise StorageError(f"Failed to save summary: {e}")

    async def get(self, summary_id: UUID) -> Optional[Summary]:
        try:
            row = await self.pool.fetchrow("SELECT * FROM summaries WHERE id = $1", summary_id)
            return _row_to_summary(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get summary {summary_id}: {e}")
            raise StorageError(f"Failed to get summary: {e}")

    @track_db_query("select", "summaries")
    async def find_latest(
        self, start: datetime, end: datetime, query_topics: Sequence[str]
    ) -> Optional[Summary]:
        try:
            # Array equality in PostgreSQL is ordered, matching the cache key
            query = """
                SELECT * FROM summaries
                WHERE start_date = $1 AND end_date = $2 AND query_topics = $3::text[]
                ORDER BY generated_at DESC
                LIMIT 1
            """
            row = await self.pool.fetchrow(query, start, end, list(query_topics))
            return _row_to_summary(row) if row else None
        except Exception as e:
            logger.error(f"Failed to look up cached summary: {e}")
            raise StorageError(f"Failed to look up cached summary: {e}")

    async def list(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Summary]:
        try:
            conditions = []
            params: List[Any] = []
            if start is not None:
                params.append(start)
                conditions.append(f"start_date >= ${len(params)}")
            if end is not None:
                params.append(end)
                conditions.append(f"end_date <= ${len(params)}")
            where_clause = " AND ".join(conditions) if conditions else "TRUE"
            params.append(limit)
            query = f"""
                SELECT * FROM summaries
                WHERE {where_clause}
                ORDER BY generated_at DESC
                LIMIT ${len(params)}
            """
            rows = await self.pool.fetch(query, *params)
            return [_row_to_summary(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list summaries: {e}")
            raise StorageError(f"Failed to list summaries: {e}")

    async def delete_older_than(self, cutoff: datetime) -> int:
        try:
            result = await self.pool.execute(
                "DELETE FROM summaries WHERE generated_at < $1", cutoff
            )
            return int(result.split()[-1])
        except Exception as e:
            logger.error(f"Failed to delete old summaries: {e}")
            raise StorageError(f"Failed to delete old summaries: {e}")


class PostgreSQLJobRepository(BaseJobRepository):
    """PostgreSQL implementation of the summary job queue."""

    CLAIM_QUERY = """
        UPDATE summary_jobs
        SET status = 'PROCESSING', started_at = now()
        WHERE id = (
            SELECT id FROM summary_jobs
            WHERE status = 'QUEUED'
            ORDER BY created_at
            LIMIT 1
            FOR UPDATE SKIP LOCKED
        )
        AND status = 'QUEUED'
        RETURNING *
    """

    def __init__(self, pool: Pool):
        self.pool = pool

    async def create(self, job: SummaryJob) -> UUID:
        try:
            query = """
                INSERT INTO summary_jobs (id, start_date, end_date, topics, status, created_at)
                VALUES (COALESCE($1, gen_random_uuid()), $2, $3, $4, $5, $6)
                RETURNING id
            """
            job_id = await self.pool.fetchval(
                query,
                job.id,
                job.start_date,
                job.end_date,
                list(job.topics),
                job.status.value,
                job.created_at,
            )
            job.id = job_id
            return job_id
        except Exception as e:
            logger.error(f"Failed to create summary job: {e}")
            raise StorageError(f"Failed to create summary job: {e}")

    async def get(self, job_id: UUID) -> Optional[SummaryJob]:
        try:
            row = await self.pool.fetchrow("SELECT * FROM summary_jobs WHERE id = $1", job_id)
            return _row_to_job(row) if row else None
        except Exception as e:
            logger.error(f"Failed to get job {job_id}: {e}")
            raise StorageError(f"Failed to get job: {e}")

    @track_db_query("update", "summary_jobs")
    async def claim_next(self) -> Optional[SummaryJob]:
        try:
            row = await self.pool.fetchrow(self.CLAIM_QUERY)
            return _row_to_job(row) if row else None
        except Exception as e:
            logger.error(f"Failed to claim next job: {e}")
            raise StorageError(f"Failed to claim next job: {e}")

    async def update_progress(
        self, job_id: UUID, current_topic: int, total_topics: int
    ) -> None:
        try:
            await self.pool.execute(
                "UPDATE summary_jobs SET current_topic = $2, total_topics = $3 WHERE id = $1",
                job_id,
                current_topic,
                total_topics,
            )
        except Exception as e:
            logger.error(f"Failed to update progress for job {job_id}: {e}")
            raise StorageError(f"Failed to update job progress: {e}")

    async def mark_completed(self, job_id: UUID, result: Summary) -> bool:
        try:
            query = """
                UPDATE summary_jobs
                SET status = 'COMPLETED', result = $2, completed_at = now()
                WHERE id = $1
            """
            status = await self.pool.execute(query, job_id, result.model_dump_json())
            return status.split()[-1] != "0"
        except Exception as e:
            logger.error(f"Failed to mark job {job_id} completed: {e}")
            raise StorageError(f"Failed to mark job completed: {e}")

    async def mark_failed(self, job_id: UUID, error: str) -> bool:
        try:
            query = """
                UPDATE summary_jobs
                SET status = 'FAILED', error = $2, completed_at = now()
                WHERE id = $1
            """
            status = await self.pool.execute(query, job_id, error)
            return status.split()[-1] != "0"
        except Exception as e:
            logger.error(f"Failed to mark job {job_id} failed: {e}")
            raise StorageError(f"Failed to mark job failed: {e}")

    async def delete(self, job_id: UUID) -> bool:
        try:
            status = await self.pool.execute("DELETE FROM summary_jobs WHERE id = $1", job_id)
            return status.split()[-1] != "0"
        except Exception as e:
            logger.error(f"Failed to delete job {job_id}: {e}")
            raise StorageError(f"Failed to delete job: {e}")

    async def list_by_status(self, status: JobStatus) -> List[SummaryJob]:
        try:
            rows = await self.pool.fetch(
                "SELECT * FROM summary_jobs WHERE status = $1 ORDER BY created_at",
                status.value,
            )
            return [_row_to_job(row) for row in rows]
        except Exception as e:
            logger.error(f"Failed to list {status.value} jobs: {e}")
            raise StorageError(f"Failed to list jobs: {e}")

    def _terminal_filter(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime]
    ) -> tuple[str, List[Any]]:
        params: List[Any] = [[s.value for s in statuses]]
        where = "status = ANY($1::text[])"
        if older_than is not None:
            params.append(older_than)
            where += " AND completed_at < $2"
        return where, params

    async def count_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        try:
            where, params = self._terminal_filter(statuses, older_than)
            return await self.pool.fetchval(
                f"SELECT COUNT(*) FROM summary_jobs WHERE {where}", *params
            )
        except Exception as e:
            logger.error(f"Failed to count jobs: {e}")
            raise StorageError(f"Failed to count jobs: {e}")

    async def delete_terminal(
        self, statuses: Sequence[JobStatus], older_than: Optional[datetime] = None
    ) -> int:
        try:
            where, params = self._terminal_filter(statuses, older_than)
            status = await self.pool.execute(f"DELETE FROM summary_jobs WHERE {where}", *params)
            return int(status.split()[-1])
        except Exception as e:
            logger.error(f"Failed to delete jobs: {e}")
            raise StorageError(f"Failed to delete jobs: {e}")
