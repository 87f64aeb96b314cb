"""
Pending-topic reconciliation.

Articles persisted in fast mode carry the pending sentinel; this sweep
resolves their topics in batches on its own schedule.
"""

import logging
from typing import Optional

from digest_agent.observability.metrics import pending_articles_gauge
from digest_agent.processing.annotate import TopicAnnotator
from digest_agent.storage.interfaces import ArticleRepository

logger = logging.getLogger(__name__)


class PendingTopicReconciler:
    """Replaces sentinel topics with real annotations."""

    def __init__(
        self,
        article_repo: ArticleRepository,
        annotator: TopicAnnotator,
        batch_size: int = 50,
    ):
        self._article_repo = article_repo
        self._annotator = annotator
        self.batch_size = batch_size

    async def process_pending_topics(self, batch_size: Optional[int] = None) -> int:
        """
        Annotate up to `batch_size` pending articles.

        Args:
            batch_size: Maximum articles to resolve this run

        Returns:
            Number of articles updated

        Raises:
            AnnotationError: If the batch annotation fails as a whole
            StorageError: If pending articles cannot be read
        """
        limit = batch_size or self.batch_size
        articles = await self._article_repo.get_pending(limit)
        if not articles:
            pending_articles_gauge.set(0)
            return 0

        logger.info(f"Resolving topics for {len(articles)} pending articles")
        annotations = await self._annotator.extract_topics_in_batch(articles, strict=True)

        updated = 0
        for article, annotation in zip(articles, annotations):
            if await self._article_repo.update_topics(article.id, annotation):
                updated += 1

        pending_articles_gauge.set(await self._article_repo.count_pending())
        logger.info(f"Updated topics for {updated} articles")
        return updated
