"""
Video channel fetcher.

Follows a channel through its public Atom feed, which needs no API key.
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
from digest_agent.types import FetchedItem, SourceType, VideoChannelConfig

logger = logging.getLogger(__name__)

CHANNEL_FEED_URL = "https://www.youtube.com/feeds/videos.xml?channel_id={channel_id}"
WATCH_URL = "https://www.youtube.com/watch?v={video_id}"


def channel_feed_url(channel_id: str) -> str:
    """Public feed URL for a channel."""
    return CHANNEL_FEED_URL.format(channel_id=channel_id)


def parse_channel_feed(text: str, max_items: int = 15) -> List[FetchedItem]:
    """
    Parse a channel feed into normalized items.

    Videos without a title become "Untitled Video"; the channel name stands in
    for a missing author and the watch URL for a missing link.
    """
    feed = feedparser.parse(text)
    if feed.get("bozo", False) and not feed.entries:
        raise FetchError(f"Malformed channel feed: {feed.get('bozo_exception', 'unknown error')}")

    channel_title = feed.feed.get("title")
    items = []
    for entry in feed.entries[:max_items]:
        url = entry.get("link")
        if not url and entry.get("yt_videoid"):
            url = WATCH_URL.format(video_id=entry["yt_videoid"])

        items.append(
            FetchedItem(
                title=(entry.get("title") or "").strip() or "Untitled Video",
                content=clean_html(entry.get("summary") or entry.get("media_description", "")),
                author=entry.get("author") or channel_title,
                published_at=parse_entry_timestamp(entry),
                url=url,
            )
        )
    return items


class VideoChannelFetcher(FetcherAdapter):
    """Fetches recent uploads of a video channel."""

    source_type = SourceType.VIDEO_CHANNEL

    def __init__(self, max_items: int = 15, request_timeout: float = 30):
        self.max_items = max_items
        self.request_timeout = request_timeout

    async def fetch(self, config: VideoChannelConfig) -> List[FetchedItem]:
        url = channel_feed_url(config.channel_id)
        logger.info(f"Fetching channel feed: {config.channel_id}")
        text = await download_text(url, timeout=self.request_timeout)
        return parse_channel_feed(text, max_items=self.max_items)
