"""
Shared type definitions for the Digest Agent.

This module contains the records exchanged between the ingestion, processing,
storage and job layers. These types serve as the contract between components.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

PENDING_TOPIC = "pending"
DEFAULT_MACRO_TOPIC = "General"
REDACTED_SECRET = "***HIDDEN***"


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


# ============================================================================
# Enums
# ============================================================================


class SourceType(str, Enum):
    """Type of content source."""

    FEED = "FEED"
    VIDEO_CHANNEL = "VIDEO_CHANNEL"
    MAILBOX = "MAILBOX"


class JobStatus(str, Enum):
    """Lifecycle state of a summary job."""

    QUEUED = "QUEUED"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"  # Transient: copied into a Summary then deleted
    FAILED = "FAILED"  # Retained for inspection


# ============================================================================
# Source Configuration (tagged union keyed by ``kind``)
# ============================================================================


class FeedConfig(BaseModel):
    """Configuration for an RSS/Atom feed."""

    kind: Literal["feed"] = "feed"
    feed_url: str


class VideoChannelConfig(BaseModel):
    """Configuration for a video channel followed through its public feed."""

    kind: Literal["video_channel"] = "video_channel"
    channel_id: str


class MailboxConfig(BaseModel):
    """Configuration for an IMAP mailbox."""

    kind: Literal["mailbox"] = "mailbox"
    host: str
    port: int = 993
    username: str
    password: str
    folders: List[str] = Field(default_factory=lambda: ["INBOX"])
    tls: bool = True
    lookback_days: int = 7


SourceConfig = Annotated[
    Union[FeedConfig, VideoChannelConfig, MailboxConfig],
    Field(discriminator="kind"),
]

CONFIG_KIND_BY_TYPE = {
    SourceType.FEED: "feed",
    SourceType.VIDEO_CHANNEL: "video_channel",
    SourceType.MAILBOX: "mailbox",
}


# ============================================================================
# Core Data Models
# ============================================================================


class Source(BaseModel):
    """A configured origin of content items."""

    id: Optional[UUID] = None
    name: str
    type: SourceType
    config: SourceConfig
    active: bool = True
    last_checked: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utcnow)

    @model_validator(mode="after")
    def _check_config_kind(self) -> "Source":
        expected = CONFIG_KIND_BY_TYPE[self.type]
        if self.config.kind != expected:
            raise ValueError(
                f"Source type {self.type.value} requires a '{expected}' config, "
                f"got '{self.config.kind}'"
            )
        return self

    def redacted(self) -> "Source":
        """Return a copy safe for display, with credentials hidden."""
        if isinstance(self.config, MailboxConfig):
            config = self.config.model_copy(update={"password": REDACTED_SECRET})
            return self.model_copy(update={"config": config})
        return self.model_copy()


class FetchedItem(BaseModel):
    """Normalized item returned by a fetcher adapter."""

    title: str
    content: str = ""
    author: Optional[str] = None
    published_at: datetime
    url: Optional[str] = None


class TopicAnnotation(BaseModel):
    """Topic and macro-topic assigned to one item."""

    topic: str
    macro_topic: str

    @classmethod
    def fallback(cls, title: str) -> "TopicAnnotation":
        """Default annotation used when inference fails for an item."""
        return cls(topic=title[:50], macro_topic=DEFAULT_MACRO_TOPIC)


class Article(BaseModel):
    """A persisted, deduplicated content item."""

    id: Optional[UUID] = None
    source_id: UUID
    title: str
    content: str = ""
    author: Optional[str] = None
    published_at: datetime
    topic: str = PENDING_TOPIC
    macro_topic: str = PENDING_TOPIC
    url: Optional[str] = None
    extracted_at: datetime = Field(default_factory=utcnow)

    # Populated by queries that join the owning source
    source_name: Optional[str] = None
    source_type: Optional[SourceType] = None

    @property
    def is_pending(self) -> bool:
        """Whether topic annotation has not run yet."""
        return self.topic == PENDING_TOPIC or self.macro_topic == PENDING_TOPIC


class ArticleRef(BaseModel):
    """Snapshot of an article embedded in a summary."""

    id: UUID
    title: str
    url: Optional[str] = None
    author: Optional[str] = None
    published_at: datetime
    source_id: UUID


class SourceRef(BaseModel):
    """Snapshot of a source embedded in a summary."""

    id: UUID
    name: Optional[str] = None
    type: Optional[SourceType] = None


class TopicSummary(BaseModel):
    """Narrative summary of one topic cluster."""

    topic: str
    summary_text: str
    article_refs: List[ArticleRef] = Field(default_factory=list)
    source_refs: List[SourceRef] = Field(default_factory=list)
    count: int = 0


class Summary(BaseModel):
    """A clustered and narrated digest over a date range and topic filter."""

    id: Optional[UUID] = None
    start_date: datetime
    end_date: datetime
    query_topics: List[str] = Field(default_factory=list)
    topics: List[TopicSummary] = Field(default_factory=list)
    total_articles: int = 0
    article_ids: List[UUID] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utcnow)


class SummaryJob(BaseModel):
    """A durable queue entry for an asynchronous summary request."""

    id: Optional[UUID] = None
    start_date: datetime
    end_date: datetime
    topics: List[str] = Field(default_factory=list)
    status: JobStatus = JobStatus.QUEUED
    current_topic: int = 0
    total_topics: int = 0
    result: Optional[Summary] = None
    error: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None

    @property
    def progress(self) -> float:
        """Completion percentage, 0 when the topic count is unknown."""
        if self.total_topics == 0:
            return 0.0
        return self.current_topic / self.total_topics * 100


class JobStatusView(BaseModel):
    """Read model for job status polling."""

    job_id: UUID
    status: JobStatus
    current_topic: int
    total_topics: int
    progress: float
    result: Optional[Summary] = None
    error: Optional[str] = None
    created_at: datetime
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None


# ============================================================================
# Collection Results
# ============================================================================


class CollectionResult(BaseModel):
    """Outcome of collecting one source."""

    source_id: UUID
    source_name: Optional[str] = None
    new_articles: int = 0
    pending_topic_extraction: int = 0
    errors: List[str] = Field(default_factory=list)
    duration: float = 0.0


class CollectionSummary(BaseModel):
    """Aggregate outcome of collecting several sources."""

    checked_sources: int = 0
    new_articles: int = 0
    pending_topic_extraction: int = 0
    errors: List[str] = Field(default_factory=list)
    results: List[CollectionResult] = Field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(exclude={"results"})
