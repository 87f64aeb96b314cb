"""
Fetcher dispatch.

Routes a source configuration to the fetcher for its kind. The dispatch is
exhaustive over the configuration union.
"""

import logging
from typing import List, Optional, assert_never

from digest_agent.ingestion.base import FetcherAdapter
from digest_agent.ingestion.feed import FeedFetcher
from digest_agent.ingestion.mailbox import MailboxFetcher
from digest_agent.ingestion.video import VideoChannelFetcher
from digest_agent.types import (
    FeedConfig,
    FetchedItem,
    MailboxConfig,
    SourceConfig,
    VideoChannelConfig,
)

logger = logging.getLogger(__name__)


class FetcherRegistry:
    """Holds one fetcher per source kind and dispatches fetch calls."""

    def __init__(
        self,
        feed: Optional[FetcherAdapter] = None,
        video_channel: Optional[FetcherAdapter] = None,
        mailbox: Optional[FetcherAdapter] = None,
    ):
        self.feed = feed or FeedFetcher()
        self.video_channel = video_channel or VideoChannelFetcher()
        self.mailbox = mailbox or MailboxFetcher()

    def get_fetcher(self, config: SourceConfig) -> FetcherAdapter:
        """Select the fetcher for a configuration."""
        if isinstance(config, FeedConfig):
            return self.feed
        elif isinstance(config, VideoChannelConfig):
            return self.video_channel
        elif isinstance(config, MailboxConfig):
            return self.mailbox
        else:
            assert_never(config)

    async def fetch(self, config: SourceConfig) -> List[FetchedItem]:
        """
        Fetch items for a configuration.

        Raises:
            FetchError: Propagated from the selected fetcher
        """
        return await self.get_fetcher(config).fetch(config)
