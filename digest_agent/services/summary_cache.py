"""
Summary cache validation.

A saved summary is reused for an exact (start, end, query topics) request
unless an article in the same range and filter was extracted after the
summary was generated. Lookup failures count as misses.
"""

import logging
from datetime import datetime
from typing import Optional, Sequence

from digest_agent.observability.metrics import record_cache_lookup
from digest_agent.storage.interfaces import (
    ArticleRepository,
    StorageError,
    SummaryRepository,
)
from digest_agent.types import Summary

logger = logging.getLogger(__name__)


class SummaryCacheManager:
    """Decides whether a previously generated summary is still valid."""

    def __init__(self, summary_repo: SummaryRepository, article_repo: ArticleRepository):
        self._summary_repo = summary_repo
        self._article_repo = article_repo

    async def get_cached_summary(
        self,
        start: datetime,
        end: datetime,
        topics: Optional[Sequence[str]] = None,
    ) -> Optional[Summary]:
        """
        Return the latest valid summary for a request, or None.

        Args:
            start: Range start
            end: Range end
            topics: Topic filter; compared as an ordered list

        Returns:
            The cached summary on a hit, None on a miss
        """
        query_topics = list(topics or [])
        try:
            cached = await self._summary_repo.find_latest(start, end, query_topics)
            if cached is None:
                record_cache_lookup(False)
                return None

            newer = await self._article_repo.count_extracted_after(
                start, end, query_topics or None, cached.generated_at
            )
        except StorageError as e:
            logger.warning(f"Summary cache lookup failed, regenerating: {e}")
            record_cache_lookup(False)
            return None

        if newer:
            logger.info(
                f"Cached summary {cached.id} invalidated by {newer} newer articles"
            )
            record_cache_lookup(False)
            return None

        logger.info(f"Using cached summary {cached.id}")
        record_cache_lookup(True)
        return cached
