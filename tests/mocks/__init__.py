"""
Mock implementations for testing.

In-memory repositories, a scripted inference service and a scripted
fetcher, so that tests run without a database or network.
"""

from tests.mocks.storage import (
    MockArticleRepository,
    MockJobRepository,
    MockSourceRepository,
    MockSummaryRepository,
)
from tests.mocks.intelligence import MockInferenceService
from tests.mocks.ingestion import MockFetcher

__all__ = [
    "MockSourceRepository",
    "MockArticleRepository",
    "MockSummaryRepository",
    "MockJobRepository",
    "MockInferenceService",
    "MockFetcher",
]
