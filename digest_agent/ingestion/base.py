"""
Base classes for fetcher adapters.

A fetcher turns one source configuration into a normalized list of
FetchedItem records. Fetchers raise FetchError on transport or parsing
failure; the caller applies its own timeout.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from typing import Any, List, Optional

import aiohttp
from bs4 import BeautifulSoup

from digest_agent.types import FetchedItem, SourceType, utcnow

logger = logging.getLogger(__name__)


class FetcherAdapter(ABC):
    """
    Abstract base class for per-source-type fetchers.

    Subclasses set ``source_type`` and implement ``fetch``.
    """

    source_type: SourceType

    @abstractmethod
    async def fetch(self, config: Any) -> List[FetchedItem]:
        """
        Fetch items for a source configuration.

        Args:
            config: The type-specific source configuration

        Returns:
            Normalized items, newest first when the upstream orders them so

        Raises:
            FetchError: If the source cannot be read or parsed
        """
        pass

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} ({self.source_type.value})>"


# ============================================================================
# Shared helpers
# ============================================================================


def clean_html(html_content: Optional[str]) -> str:
    """
    Remove HTML tags and collapse whitespace.

    Args:
        html_content: HTML string

    Returns:
        Plain text with HTML removed
    """
    if not html_content:
        return ""

    soup = BeautifulSoup(html_content, "html.parser")
    return soup.get_text(separator=" ", strip=True)


def parse_entry_timestamp(entry: Any) -> datetime:
    """
    Extract the publication time of a feedparser entry.

    feedparser normalizes dates to UTC struct_time values; entries with no
    parseable date are stamped with the current time.
    """
    for key in ("published_parsed", "updated_parsed"):
        parsed = entry.get(key)
        if parsed:
            try:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
            except (TypeError, ValueError):
                continue

    logger.debug(f"Could not parse timestamp for: {entry.get('title', 'Unknown')}")
    return utcnow()


async def download_text(url: str, timeout: float = 30) -> str:
    """
    GET a URL and return the body as text.

    Raises:
        FetchError: On connection failure or a non-2xx status
    """
    try:
        async with aiohttp.ClientSession() as session:
            async with session.get(url, timeout=aiohttp.ClientTimeout(total=timeout)) as response:
                response.raise_for_status()
                return await response.text()
    except aiohttp.ClientResponseError as e:
        raise FetchError(f"HTTP {e.status} fetching {url}") from e
    except aiohttp.ClientError as e:
        raise FetchError(f"Failed to fetch {url}: {e}") from e


# ============================================================================
# Exceptions
# ============================================================================


class FetchError(Exception):
    """Raised when a fetcher cannot read or parse its source."""

    pass
