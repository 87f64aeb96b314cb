"""
Source collection service.

Runs fetch -> dedup -> (annotate) -> persist for one source, and fans that
out over many sources through a bounded pool. Collection is best-effort:
failures become entries in the result's ``errors`` list instead of
exceptions, so one bad source or item never aborts its siblings.
"""

import asyncio
import logging
import time
from enum import Enum
from typing import List, Optional, Protocol, Sequence
from uuid import UUID

from digest_agent.ingestion.base import FetchError
from digest_agent.observability.logging import log_collection, log_context, log_error
from digest_agent.observability.metrics import record_collection
from digest_agent.processing.annotate import AnnotationError, TopicAnnotator
from digest_agent.processing.deduplicate import Deduplicator
from digest_agent.storage.interfaces import (
    ArticleRepository,
    SourceRepository,
    StorageError,
)
from digest_agent.types import (
    PENDING_TOPIC,
    Article,
    CollectionResult,
    CollectionSummary,
    FetchedItem,
    Source,
    SourceConfig,
    TopicAnnotation,
    utcnow,
)

logger = logging.getLogger(__name__)

SOURCE_UNAVAILABLE = "Source not found or inactive"


class CollectionMode(str, Enum):
    """Collection strategy."""

    FAST = "fast"  # persist now with pending topics
    FULL = "full"  # annotate before persisting


class ItemFetcher(Protocol):
    """Dispatches a source configuration to its fetcher."""

    async def fetch(self, config: SourceConfig) -> List[FetchedItem]:
        ...


class SourceCollector:
    """Collects new articles from configured sources."""

    def __init__(
        self,
        source_repo: SourceRepository,
        article_repo: ArticleRepository,
        fetcher: ItemFetcher,
        annotator: TopicAnnotator,
        fetch_timeout: float = 30,
        annotation_timeout: float = 60,
        concurrency: int = 5,
    ):
        """
        Initialize collector.

        Args:
            source_repo: Source repository
            article_repo: Article repository
            fetcher: Fetcher dispatch (normally a FetcherRegistry)
            annotator: Topic annotator used in full mode
            fetch_timeout: Default per-source fetch deadline in seconds
            annotation_timeout: Deadline for full-mode batch annotation
            concurrency: Maximum sources collected at the same time
        """
        if concurrency < 1:
            raise ValueError("concurrency must be positive")

        self._source_repo = source_repo
        self._article_repo = article_repo
        self._fetcher = fetcher
        self._annotator = annotator
        self._deduplicator = Deduplicator(article_repo)
        self.fetch_timeout = fetch_timeout
        self.annotation_timeout = annotation_timeout
        self.concurrency = concurrency

    async def collect_from_source(
        self,
        source_id: UUID,
        mode: CollectionMode = CollectionMode.FAST,
        fetch_timeout: Optional[float] = None,
    ) -> CollectionResult:
        """
        Collect new items from one source.

        Args:
            source_id: Source to collect
            mode: FAST persists with pending topics, FULL annotates first
            fetch_timeout: Override of the default fetch deadline

        Returns:
            CollectionResult with counts, errors and duration
        """
        started = time.monotonic()
        result = CollectionResult(source_id=source_id)

        with log_context(source_id=str(source_id)):
            try:
                source = await self._source_repo.get(source_id)
            except StorageError as e:
                result.errors.append(f"Failed to load source: {e}")
                result.duration = time.monotonic() - started
                return result

            if source is None or not source.active:
                logger.warning(f"Skipping source {source_id}: {SOURCE_UNAVAILABLE}")
                result.errors.append(SOURCE_UNAVAILABLE)
                result.duration = time.monotonic() - started
                return result

            result.source_name = source.name
            await self._run(source, mode, fetch_timeout or self.fetch_timeout, result)

            try:
                await self._source_repo.touch_last_checked(source.id, utcnow())
            except StorageError as e:
                result.errors.append(f"Failed to update last checked time: {e}")

            result.duration = time.monotonic() - started
            record_collection(
                source.type.value, result.new_articles, len(result.errors), result.duration
            )
            log_collection(logger, result)
        return result

    async def _run(
        self,
        source: Source,
        mode: CollectionMode,
        timeout: float,
        result: CollectionResult,
    ) -> None:
        try:
            items = await asyncio.wait_for(self._fetcher.fetch(source.config), timeout=timeout)
        except asyncio.TimeoutError:
            result.errors.append(f"Fetch timed out after {timeout}s")
            return
        except FetchError as e:
            result.errors.append(f"Fetch failed: {e}")
            return
        except Exception as e:
            log_error(logger, f"Unexpected fetch error for '{source.name}'", e)
            result.errors.append(f"Fetch failed: {e}")
            return

        try:
            new_items = await self._deduplicator.filter_new(source.id, items)
        except StorageError as e:
            result.errors.append(f"Duplicate check failed: {e}")
            return

        if not new_items:
            return

        if mode == CollectionMode.FULL:
            try:
                annotations = await asyncio.wait_for(
                    self._annotator.extract_topics_in_batch(new_items, strict=True),
                    timeout=self.annotation_timeout,
                )
            except asyncio.TimeoutError:
                result.errors.append(
                    f"Topic annotation timed out after {self.annotation_timeout}s"
                )
                return
            except AnnotationError as e:
                result.errors.append(str(e))
                return
            await self._persist(source, new_items, annotations, result)
        else:
            pending = TopicAnnotation(topic=PENDING_TOPIC, macro_topic=PENDING_TOPIC)
            persisted = await self._persist(
                source, new_items, [pending] * len(new_items), result
            )
            result.pending_topic_extraction = persisted

    async def _persist(
        self,
        source: Source,
        items: Sequence[FetchedItem],
        annotations: Sequence[TopicAnnotation],
        result: CollectionResult,
    ) -> int:
        persisted = 0
        for item, annotation in zip(items, annotations):
            article = Article(
                source_id=source.id,
                title=item.title,
                content=item.content,
                author=item.author,
                published_at=item.published_at,
                url=item.url,
                topic=annotation.topic,
                macro_topic=annotation.macro_topic,
            )
            try:
                await self._article_repo.save(article)
                persisted += 1
            except StorageError as e:
                result.errors.append(f"Failed to process item '{item.title}': {e}")

        result.new_articles += persisted
        return persisted

    async def check_sources(
        self,
        source_ids: Optional[Sequence[UUID]] = None,
        mode: CollectionMode = CollectionMode.FAST,
    ) -> CollectionSummary:
        """
        Collect several sources concurrently.

        Args:
            source_ids: Sources to check; all active sources when None
            mode: Collection mode applied to every source

        Returns:
            Aggregated counts and errors; each error is prefixed with the
            source it belongs to

        Raises:
            StorageError: If the active source list cannot be loaded
        """
        if source_ids is None:
            sources = await self._source_repo.list(active_only=True)
            source_ids = [s.id for s in sources]

        semaphore = asyncio.Semaphore(self.concurrency)

        async def bounded(source_id: UUID) -> CollectionResult:
            async with semaphore:
                return await self.collect_from_source(source_id, mode)

        outcomes = await asyncio.gather(
            *(bounded(source_id) for source_id in source_ids), return_exceptions=True
        )

        summary = CollectionSummary()
        for source_id, outcome in zip(source_ids, outcomes):
            if isinstance(outcome, BaseException):
                if not isinstance(outcome, Exception):
                    raise outcome
                log_error(logger, f"Collection crashed for source {source_id}", outcome)
                outcome = CollectionResult(source_id=source_id, errors=[str(outcome)])

            summary.results.append(outcome)
            summary.checked_sources += 1
            summary.new_articles += outcome.new_articles
            summary.pending_topic_extraction += outcome.pending_topic_extraction
            label = outcome.source_name or str(outcome.source_id)
            summary.errors.extend(f"{label}: {error}" for error in outcome.errors)

        logger.info(
            f"Checked {summary.checked_sources} sources: {summary.new_articles} new articles, "
            f"{summary.pending_topic_extraction} pending annotation, {len(summary.errors)} errors"
        )
        return summary

    async def collect_from_all_sources(
        self, mode: CollectionMode = CollectionMode.FAST
    ) -> CollectionSummary:
        """Collect every active source."""
        return await self.check_sources(None, mode)
