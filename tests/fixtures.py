"""
Test fixtures and sample data for development and testing.

This module provides factories for sources, fetched items, articles, jobs
and summaries.
"""

from datetime import datetime, timedelta, timezone
from typing import List, Optional, Sequence
from uuid import UUID, uuid4

from digest_agent.types import (
    PENDING_TOPIC,
    Article,
    FeedConfig,
    FetchedItem,
    MailboxConfig,
    Source,
    SourceType,
    Summary,
    SummaryJob,
    TopicSummary,
    VideoChannelConfig,
    utcnow,
)

BASE_TIME = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


# ============================================================================
# Sample Sources
# ============================================================================


def create_feed_source(
    name: str = "Example Feed",
    feed_url: str = "https://example.com/rss",
    active: bool = True,
) -> Source:
    """Create a feed source."""
    return Source(name=name, type=SourceType.FEED, config=FeedConfig(feed_url=feed_url), active=active)


def create_video_source(name: str = "Example Channel", channel_id: str = "UC123") -> Source:
    """Create a video channel source."""
    return Source(
        name=name,
        type=SourceType.VIDEO_CHANNEL,
        config=VideoChannelConfig(channel_id=channel_id),
    )


def create_mailbox_source(name: str = "Newsletters", host: str = "imap.example.com") -> Source:
    """Create a mailbox source."""
    return Source(
        name=name,
        type=SourceType.MAILBOX,
        config=MailboxConfig(host=host, username="reader", password="s3cret"),
    )


# ============================================================================
# Sample Items and Articles
# ============================================================================


def create_fetched_item(
    title: str = "Test Item",
    content: str = "Test content",
    published_at: Optional[datetime] = None,
    author: Optional[str] = None,
) -> FetchedItem:
    """Create a fetched item."""
    return FetchedItem(
        title=title,
        content=content,
        author=author,
        published_at=published_at or BASE_TIME,
        url=f"https://example.com/{title.replace(' ', '-').lower()}",
    )


def create_fetched_items(titles: Sequence[str], start: datetime = BASE_TIME) -> List[FetchedItem]:
    """Create items published one minute apart."""
    return [
        create_fetched_item(title=title, published_at=start + timedelta(minutes=i))
        for i, title in enumerate(titles)
    ]


def create_article(
    source_id: Optional[UUID] = None,
    title: str = "Test Article",
    topic: str = "Technology",
    macro_topic: str = "Science",
    published_at: Optional[datetime] = None,
    extracted_at: Optional[datetime] = None,
    content: str = "Article body",
) -> Article:
    """Create an annotated article."""
    return Article(
        id=uuid4(),
        source_id=source_id or uuid4(),
        title=title,
        content=content,
        published_at=published_at or BASE_TIME,
        topic=topic,
        macro_topic=macro_topic,
        extracted_at=extracted_at or utcnow(),
    )


def create_pending_article(
    source_id: Optional[UUID] = None,
    title: str = "Pending Article",
    published_at: Optional[datetime] = None,
) -> Article:
    """Create an article awaiting topic annotation."""
    return create_article(
        source_id=source_id,
        title=title,
        topic=PENDING_TOPIC,
        macro_topic=PENDING_TOPIC,
        published_at=published_at,
    )


# ============================================================================
# Sample Jobs and Summaries
# ============================================================================


def create_job(
    topics: Optional[List[str]] = None,
    created_at: Optional[datetime] = None,
    start: datetime = BASE_TIME - timedelta(days=1),
    end: datetime = BASE_TIME + timedelta(days=1),
) -> SummaryJob:
    """Create a queued summary job."""
    return SummaryJob(
        start_date=start,
        end_date=end,
        topics=topics or [],
        created_at=created_at or utcnow(),
    )


def create_summary(
    start: datetime = BASE_TIME - timedelta(days=1),
    end: datetime = BASE_TIME + timedelta(days=1),
    query_topics: Optional[List[str]] = None,
    generated_at: Optional[datetime] = None,
) -> Summary:
    """Create a one-topic summary."""
    return Summary(
        start_date=start,
        end_date=end,
        query_topics=query_topics or [],
        topics=[TopicSummary(topic="Technology", summary_text="Things happened.", count=1)],
        total_articles=1,
        article_ids=[uuid4()],
        generated_at=generated_at or utcnow(),
    )
