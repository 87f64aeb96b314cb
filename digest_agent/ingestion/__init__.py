"""
Ingestion layer: fetcher adapters that normalize feeds, video channels and
mailboxes into FetchedItem lists.
"""

from digest_agent.ingestion.base import (
    FetchError,
    FetcherAdapter,
)
from digest_agent.ingestion.feed import FeedFetcher
from digest_agent.ingestion.mailbox import MailboxFetcher
from digest_agent.ingestion.registry import FetcherRegistry
from digest_agent.ingestion.video import VideoChannelFetcher

__all__ = [
    "FetcherAdapter",
    "FetcherRegistry",
    "FeedFetcher",
    "VideoChannelFetcher",
    "MailboxFetcher",
    "FetchError",
]
