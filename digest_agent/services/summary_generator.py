"""
Summary generation.

End-to-end orchestration of a digest: cache check, article retrieval,
topic clustering and per-topic narration. A failing topic yields a
placeholder rather than aborting the request, and an optional progress
callback fires after every topic.
"""

import logging
from datetime import datetime, timedelta
from typing import Awaitable, Callable, Dict, List, Optional, Sequence
from uuid import UUID

from digest_agent.observability.metrics import summaries_generated_counter
from digest_agent.processing.cluster import cluster_by_topic
from digest_agent.processing.summarize import ArticleSummarizer, SummarizationError
from digest_agent.services.summary_cache import SummaryCacheManager
from digest_agent.storage.interfaces import ArticleRepository, SummaryRepository
from digest_agent.types import (
    Article,
    ArticleRef,
    SourceRef,
    Summary,
    TopicSummary,
    utcnow,
)

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int], Awaitable[None]]


def build_topic_summary(topic: str, summary_text: str, articles: Sequence[Article]) -> TopicSummary:
    """Snapshot a cluster into a TopicSummary with one ref per distinct source."""
    sources: Dict[UUID, SourceRef] = {}
    for article in articles:
        if article.source_id not in sources:
            sources[article.source_id] = SourceRef(
                id=article.source_id, name=article.source_name, type=article.source_type
            )

    return TopicSummary(
        topic=topic,
        summary_text=summary_text,
        article_refs=[
            ArticleRef(
                id=a.id,
                title=a.title,
                url=a.url,
                author=a.author,
                published_at=a.published_at,
                source_id=a.source_id,
            )
            for a in articles
        ],
        source_refs=list(sources.values()),
        count=len(articles),
    )


class SummaryGenerator:
    """Produces topic-clustered summaries over a date range."""

    def __init__(
        self,
        article_repo: ArticleRepository,
        summary_repo: SummaryRepository,
        summarizer: ArticleSummarizer,
        max_articles: int = 100,
    ):
        """
        Initialize generator.

        Args:
            article_repo: Article repository
            summary_repo: Summary repository
            summarizer: Per-topic summarizer
            max_articles: Hard cap of articles per summary, newest kept
        """
        self._article_repo = article_repo
        self._summary_repo = summary_repo
        self._summarizer = summarizer
        self._cache = SummaryCacheManager(summary_repo, article_repo)
        self.max_articles = max_articles

    async def generate(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        force_refresh: bool = False,
        on_progress: Optional[ProgressCallback] = None,
    ) -> Summary:
        """
        Build a summary for a date range and optional topic filter.

        Args:
            start: Range start (inclusive)
            end: Range end (inclusive)
            topics: Optional topic filter
            force_refresh: Skip the cache lookup
            on_progress: Awaited with (processed_topics, total_topics) after
                every topic

        Returns:
            A cached summary (with id) on a cache hit, otherwise a new,
            unsaved summary (id None)
        """
        query_topics = list(topics or [])

        if not force_refresh:
            cached = await self._cache.get_cached_summary(start, end, query_topics)
            if cached is not None:
                return cached

        articles = await self._article_repo.search(
            start, end, query_topics or None, limit=self.max_articles
        )
        if not articles:
            logger.info(f"No articles between {start.isoformat()} and {end.isoformat()}")
            return Summary(start_date=start, end_date=end, query_topics=query_topics)

        clusters = cluster_by_topic(articles)
        by_id = {article.id: article for article in articles}
        total_topics = len(clusters)
        logger.info(f"Summarizing {len(articles)} articles in {total_topics} topics")

        topic_summaries: List[TopicSummary] = []
        for processed, (topic, article_ids) in enumerate(clusters.items(), start=1):
            cluster = [by_id[article_id] for article_id in article_ids]
            try:
                text = await self._summarizer.summarize_articles(topic, cluster)
            except SummarizationError as e:
                logger.warning(f"Summary failed for topic '{topic}': {e}")
                text = f"[Error: {e}]"

            topic_summaries.append(build_topic_summary(topic, text, cluster))

            if on_progress is not None:
                await on_progress(processed, total_topics)

        summaries_generated_counter.inc()
        return Summary(
            start_date=start,
            end_date=end,
            query_topics=query_topics,
            topics=topic_summaries,
            total_articles=len(articles),
            article_ids=[article.id for article in articles],
            generated_at=utcnow(),
        )

    async def generate_and_save(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
        force_refresh: bool = False,
    ) -> Summary:
        """Synchronous path: generate, then persist anything newly generated."""
        summary = await self.generate(start, end, topics, force_refresh=force_refresh)
        if summary.id is None:
            await self._summary_repo.save(summary)
            logger.info(f"Saved summary {summary.id}")
        return summary

    async def list_saved_summaries(
        self,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None,
        limit: int = 10,
    ) -> List[Summary]:
        """Saved summaries contained in the optional bounds, newest first."""
        return await self._summary_repo.list(start, end, limit)

    async def get_saved_summary(self, summary_id: UUID) -> Optional[Summary]:
        return await self._summary_repo.get(summary_id)

    async def clean_old_summaries(self, older_than_days: int = 30) -> int:
        """Delete summaries generated more than `older_than_days` ago."""
        cutoff = utcnow() - timedelta(days=older_than_days)
        deleted = await self._summary_repo.delete_older_than(cutoff)
        logger.info(f"Deleted {deleted} summaries older than {older_than_days} days")
        return deleted
