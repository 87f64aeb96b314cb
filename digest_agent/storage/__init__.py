"""
Storage layer for the Digest Agent.

This package provides repository interfaces and their PostgreSQL
implementations for sources, articles, summaries and summary jobs.
"""

# Interface exports
from digest_agent.storage.interfaces import (
    ArticleRepository,
    JobRepository,
    SourceRepository,
    SummaryRepository,
    StorageError,
    ConnectionError,
    IntegrityError,
)

# Concrete implementations
from digest_agent.storage.postgres import (
    PostgreSQLArticleRepository,
    PostgreSQLConnectionPool,
    PostgreSQLJobRepository,
    PostgreSQLSourceRepository,
    PostgreSQLSummaryRepository,
)

__all__ = [
    # Interfaces
    "SourceRepository",
    "ArticleRepository",
    "SummaryRepository",
    "JobRepository",
    # Exceptions
    "StorageError",
    "ConnectionError",
    "IntegrityError",
    # PostgreSQL implementations
    "PostgreSQLConnectionPool",
    "PostgreSQLSourceRepository",
    "PostgreSQLArticleRepository",
    "PostgreSQLSummaryRepository",
    "PostgreSQLJobRepository",
]
