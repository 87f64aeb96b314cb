"""
RSS/Atom feed fetcher.
"""

import logging
from typing import List

import feedparser

from digest_agent.ingestion.base import (
    FetchError,
    FetcherAdapter,
    clean_html,
    download_text,
    parse_entry_timestamp,
)
from digest_agent.types import FeedConfig, FetchedItem, SourceType

logger = logging.getLogger(__name__)


def _entry_content(entry: feedparser.FeedParserDict) -> str:
    """Pick the richest text field feedparser exposes for an entry."""
    if entry.get("summary"):
        return clean_html(entry["summary"])
    contents = entry.get("content") or []
    if contents and contents[0].get("value"):
        return clean_html(contents[0]["value"])
    return clean_html(entry.get("description", ""))


def parse_feed(text: str, max_items: int = 50) -> List[FetchedItem]:
    """
    Parse feed XML into normalized items.

    Args:
        text: Raw feed document
        max_items: Maximum entries to keep

    Returns:
        Normalized items in feed order

    Raises:
        FetchError: If the document is not a readable feed
    """
    feed = feedparser.parse(text)

    if feed.get("bozo", False):
        if not feed.entries:
            raise FetchError(f"Malformed feed: {feed.get('bozo_exception', 'unknown error')}")
        logger.warning(f"Feed may have issues: {feed.get('bozo_exception', '')}")

    items = []
    for entry in feed.entries[:max_items]:
        items.append(
            FetchedItem(
                title=(entry.get("title") or "").strip() or "Untitled",
                content=_entry_content(entry),
                author=entry.get("author") or None,
                published_at=parse_entry_timestamp(entry),
                url=entry.get("link") or None,
            )
        )
    return items


class FeedFetcher(FetcherAdapter):
    """Fetches and parses RSS/Atom feeds over HTTP."""

    source_type = SourceType.FEED

    def __init__(self, max_items: int = 50, request_timeout: float = 30):
        self.max_items = max_items
        self.request_timeout = request_timeout

    async def fetch(self, config: FeedConfig) -> List[FetchedItem]:
        logger.info(f"Fetching feed: {config.feed_url}")
        text = await download_text(config.feed_url, timeout=self.request_timeout)
        items = parse_feed(text, max_items=self.max_items)
        logger.info(f"Fetched {len(items)} items from {config.feed_url}")
        return items
