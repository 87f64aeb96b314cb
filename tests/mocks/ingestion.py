"""
Mock fetcher for collection tests.

Items are keyed by the feed URL (or channel id / mailbox host) of the
source configuration. A value may be an exception to raise instead.
"""

import asyncio
from typing import Dict, List, Union

from digest_agent.ingestion.base import FetchError
from digest_agent.types import (
    FeedConfig,
    FetchedItem,
    MailboxConfig,
    SourceConfig,
    VideoChannelConfig,
)


def config_key(config: SourceConfig) -> str:
    if isinstance(config, FeedConfig):
        return config.feed_url
    if isinstance(config, VideoChannelConfig):
        return config.channel_id
    if isinstance(config, MailboxConfig):
        return config.host
    raise TypeError(f"Unknown config {config!r}")


class MockFetcher:
    """In-process fetcher returning scripted items."""

    def __init__(
        self,
        items: Dict[str, Union[List[FetchedItem], Exception]] = None,
        delay: float = 0.0,
    ):
        self.items = items or {}
        self.delay = delay
        self.calls: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def fetch(self, config: SourceConfig) -> List[FetchedItem]:
        key = config_key(config)
        self.calls.append(key)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            outcome = self.items.get(key)
            if outcome is None:
                raise FetchError(f"No scripted items for {key}")
            if isinstance(outcome, Exception):
                raise outcome
            return [item.model_copy() for item in outcome]
        finally:
            self.in_flight -= 1
