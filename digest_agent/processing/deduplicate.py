"""
Deduplication module for the collection pipeline.

Identity is the exact (source, title, publication timestamp) triple checked
against the article store. No fuzzy matching: upstream title or timestamp
drift produces a new article.
"""

import logging
from datetime import datetime
from typing import List, Sequence, Set, Tuple
from uuid import UUID

from digest_agent.storage.interfaces import ArticleRepository
from digest_agent.types import FetchedItem

logger = logging.getLogger(__name__)


class Deduplicator:
    """Existence check of fetched items against persisted articles."""

    def __init__(self, article_repo: ArticleRepository):
        """
        Initialize deduplicator.

        Args:
            article_repo: Repository used for the existence lookup
        """
        self._article_repo = article_repo

    async def is_duplicate(self, source_id: UUID, title: str, published_at: datetime) -> bool:
        """
        Check whether an item is already persisted for a source.

        Args:
            source_id: Owning source
            title: Item title
            published_at: Item publication timestamp

        Returns:
            True if an article with the same triple exists

        Raises:
            StorageError: If the lookup fails
        """
        return await self._article_repo.exists(source_id, title, published_at)

    async def filter_new(
        self, source_id: UUID, items: Sequence[FetchedItem]
    ) -> List[FetchedItem]:
        """
        Keep only items not yet persisted, in input order.

        Repeats of the same triple inside one fetch are also dropped, so a
        batch never persists the same item twice.
        """
        seen: Set[Tuple[str, datetime]] = set()
        new_items = []

        for item in items:
            key = (item.title, item.published_at)
            if key in seen:
                continue
            seen.add(key)

            if await self.is_duplicate(source_id, item.title, item.published_at):
                continue
            new_items.append(item)

        skipped = len(items) - len(new_items)
        if skipped:
            logger.debug(f"Skipped {skipped} duplicate items for source {source_id}")
        return new_items
