"""
Tests for source collection and pending-topic reconciliation.
"""

import asyncio
from uuid import uuid4

import pytest

from digest_agent.ingestion.base import FetchError
from digest_agent.intelligence.interfaces import InferenceError
from digest_agent.processing.annotate import AnnotationError, TopicAnnotator
from digest_agent.services.collector import SOURCE_UNAVAILABLE, CollectionMode, SourceCollector
from digest_agent.services.reconciler import PendingTopicReconciler
from digest_agent.types import PENDING_TOPIC
from tests.fixtures import (
    create_article,
    create_feed_source,
    create_fetched_items,
    create_pending_article,
)
from tests.mocks import (
    MockArticleRepository,
    MockFetcher,
    MockInferenceService,
    MockSourceRepository,
)
from tests.mocks.storage import pending_count


@pytest.fixture
def source_repo():
    return MockSourceRepository()


@pytest.fixture
def article_repo(source_repo):
    return MockArticleRepository(source_repo)


@pytest.fixture
def inference():
    return MockInferenceService()


def make_collector(source_repo, article_repo, fetcher, inference, **kwargs):
    return SourceCollector(
        source_repo, article_repo, fetcher, TopicAnnotator(inference), **kwargs
    )


# ============================================================================
# Single source
# ============================================================================


@pytest.mark.asyncio
async def test_fast_mode_persists_pending_without_inference(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One", "Two"])})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id, CollectionMode.FAST)

    assert result.new_articles == 2
    assert result.pending_topic_extraction == 2
    assert result.errors == []
    assert result.source_name == "Example Feed"
    assert pending_count(article_repo) == 2
    assert inference.calls == []
    assert source_id in source_repo.last_checked_updates


@pytest.mark.asyncio
async def test_repeat_collection_adds_nothing(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One", "Two"])})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    await collector.collect_from_source(source_id)
    second = await collector.collect_from_source(source_id)

    assert second.new_articles == 0
    assert len(article_repo.all()) == 2


@pytest.mark.asyncio
async def test_full_mode_annotates_before_persisting(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["Rust release", "Python news"])})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id, CollectionMode.FULL)

    assert result.new_articles == 2
    assert result.pending_topic_extraction == 0
    assert sorted(a.topic for a in article_repo.all()) == ["Python", "Rust"]
    assert len(inference.calls_for("annotate")) == 1


@pytest.mark.asyncio
async def test_full_mode_annotation_failure_persists_nothing(source_repo, article_repo):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One"])})
    inference = MockInferenceService(responses=[InferenceError("model unavailable")])
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id, CollectionMode.FULL)

    assert result.new_articles == 0
    assert len(result.errors) == 1
    assert article_repo.all() == []


@pytest.mark.asyncio
async def test_full_mode_annotation_timeout(source_repo, article_repo):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One"])})
    inference = MockInferenceService(delay=0.5)
    collector = make_collector(
        source_repo, article_repo, fetcher, inference, annotation_timeout=0.01
    )

    result = await collector.collect_from_source(source_id, CollectionMode.FULL)

    assert result.new_articles == 0
    assert result.errors == ["Topic annotation timed out after 0.01s"]


@pytest.mark.asyncio
async def test_unknown_source_is_unavailable(source_repo, article_repo, inference):
    collector = make_collector(source_repo, article_repo, MockFetcher(), inference)

    result = await collector.collect_from_source(uuid4())

    assert result.errors == [SOURCE_UNAVAILABLE]
    assert result.new_articles == 0


@pytest.mark.asyncio
async def test_inactive_source_is_not_fetched(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source(active=False))
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One"])})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id)

    assert result.errors == [SOURCE_UNAVAILABLE]
    assert fetcher.calls == []
    assert source_repo.last_checked_updates == []


@pytest.mark.asyncio
async def test_fetch_timeout_recorded(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["One"])}, delay=0.5)
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id, fetch_timeout=0.01)

    assert result.errors == ["Fetch timed out after 0.01s"]
    assert article_repo.all() == []


@pytest.mark.asyncio
async def test_fetch_error_recorded(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": FetchError("HTTP 503")})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id)

    assert result.errors == ["Fetch failed: HTTP 503"]
    assert source_id in source_repo.last_checked_updates


@pytest.mark.asyncio
async def test_item_failure_does_not_abort_siblings(source_repo, article_repo, inference):
    source_id = await source_repo.save(create_feed_source())
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["Good", "Bad", "Fine"])})
    article_repo.fail_titles.add("Bad")
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    result = await collector.collect_from_source(source_id)

    assert result.new_articles == 2
    assert len(result.errors) == 1
    assert result.errors[0].startswith("Failed to process item 'Bad'")


# ============================================================================
# Fan-out
# ============================================================================


@pytest.mark.asyncio
async def test_check_sources_end_to_end(source_repo, article_repo, inference):
    first = await source_repo.save(create_feed_source("First", "https://one.example/rss"))
    second = await source_repo.save(create_feed_source("Second", "https://two.example/rss"))
    inactive = await source_repo.save(create_feed_source("Dormant", "https://three.example/rss", active=False))

    second_items = create_fetched_items(["S1", "S2", "S3", "Old"])
    await article_repo.save(
        create_article(source_id=second, title="Old", published_at=second_items[3].published_at)
    )
    fetcher = MockFetcher({
        "https://one.example/rss": create_fetched_items(["F1", "F2", "F3", "F4", "F5"]),
        "https://two.example/rss": second_items,
        "https://three.example/rss": create_fetched_items(["Never"]),
    })
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    summary = await collector.check_sources([first, second, inactive])

    assert summary.checked_sources == 3
    assert summary.new_articles == 8
    assert summary.pending_topic_extraction == 8
    assert summary.errors == [f"{inactive}: {SOURCE_UNAVAILABLE}"]
    assert inference.calls == []


@pytest.mark.asyncio
async def test_collect_from_all_sources_skips_inactive(source_repo, article_repo, inference):
    await source_repo.save(create_feed_source("First", "https://one.example/rss"))
    await source_repo.save(create_feed_source("Dormant", "https://three.example/rss", active=False))
    fetcher = MockFetcher({"https://one.example/rss": create_fetched_items(["F1"])})
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    summary = await collector.collect_from_all_sources()

    assert summary.checked_sources == 1
    assert summary.errors == []
    assert fetcher.calls == ["https://one.example/rss"]


@pytest.mark.asyncio
async def test_failing_source_errors_are_prefixed(source_repo, article_repo, inference):
    good = await source_repo.save(create_feed_source("Good", "https://good.example/rss"))
    bad = await source_repo.save(create_feed_source("Broken", "https://bad.example/rss"))
    fetcher = MockFetcher({
        "https://good.example/rss": create_fetched_items(["G1"]),
        "https://bad.example/rss": FetchError("connection refused"),
    })
    collector = make_collector(source_repo, article_repo, fetcher, inference)

    summary = await collector.check_sources([good, bad])

    assert summary.new_articles == 1
    assert summary.errors == ["Broken: Fetch failed: connection refused"]


@pytest.mark.asyncio
async def test_fan_out_is_bounded(source_repo, article_repo, inference):
    ids = []
    items = {}
    for i in range(6):
        url = f"https://feed{i}.example/rss"
        ids.append(await source_repo.save(create_feed_source(f"Feed {i}", url)))
        items[url] = create_fetched_items([f"Item {i}"])
    fetcher = MockFetcher(items, delay=0.05)
    collector = make_collector(source_repo, article_repo, fetcher, inference, concurrency=2)

    summary = await collector.check_sources(ids)

    assert summary.new_articles == 6
    assert fetcher.max_in_flight == 2


def test_collector_rejects_non_positive_concurrency(source_repo, article_repo, inference):
    with pytest.raises(ValueError):
        make_collector(source_repo, article_repo, MockFetcher(), inference, concurrency=0)


# ============================================================================
# Reconciliation
# ============================================================================


@pytest.mark.asyncio
async def test_reconciler_resolves_pending(article_repo, inference):
    source_id = uuid4()
    for title in ("Energy prices", "Energy grid", "Football scores"):
        await article_repo.save(create_pending_article(source_id=source_id, title=title))
    await article_repo.save(create_article(source_id=source_id, title="Done", topic="Done"))
    reconciler = PendingTopicReconciler(article_repo, TopicAnnotator(inference))

    updated = await reconciler.process_pending_topics()

    assert updated == 3
    assert pending_count(article_repo) == 0
    assert sorted(a.topic for a in article_repo.all()) == ["Done", "Energy", "Energy", "Football"]
    assert len(inference.calls) == 1


@pytest.mark.asyncio
async def test_reconciler_respects_batch_size(article_repo, inference):
    for i in range(5):
        await article_repo.save(create_pending_article(title=f"Item {i}"))
    reconciler = PendingTopicReconciler(article_repo, TopicAnnotator(inference), batch_size=50)

    assert await reconciler.process_pending_topics(batch_size=2) == 2
    assert article_repo.pending_requests == [2]
    assert pending_count(article_repo) == 3


@pytest.mark.asyncio
async def test_reconciler_nothing_pending(article_repo, inference):
    reconciler = PendingTopicReconciler(article_repo, TopicAnnotator(inference))

    assert await reconciler.process_pending_topics() == 0
    assert inference.calls == []


@pytest.mark.asyncio
async def test_reconciler_failure_keeps_sentinel(article_repo):
    await article_repo.save(create_pending_article())
    inference = MockInferenceService(responses=[InferenceError("down")])
    reconciler = PendingTopicReconciler(article_repo, TopicAnnotator(inference))

    with pytest.raises(AnnotationError):
        await reconciler.process_pending_topics()

    assert all(a.topic == PENDING_TOPIC for a in article_repo.all())


@pytest.mark.asyncio
async def test_reconciler_resolves_lone_article_from_bare_object(article_repo):
    await article_repo.save(create_pending_article(title="Only item here"))
    response = '{"topic": "Chip Export Rules", "macroTopic": "Technology"}'
    reconciler = PendingTopicReconciler(
        article_repo, TopicAnnotator(MockInferenceService(responses=[response]))
    )

    assert await reconciler.process_pending_topics() == 1

    article = article_repo.all()[0]
    assert article.topic == "Chip Export Rules"
    assert article.macro_topic == "Technology"
    assert pending_count(article_repo) == 0


@pytest.mark.asyncio
async def test_reconciler_does_not_overwrite_concurrent_update(article_repo):
    article = create_pending_article(title="Race")
    await article_repo.save(article)

    class SlowThenResolved(MockInferenceService):
        async def infer(self, prompt, expect_json=False, operation="generate"):
            # Another sweep resolves the article while this one waits
            stored = article_repo._articles[article.id]
            stored.topic, stored.macro_topic = "Resolved", "News"
            await asyncio.sleep(0)
            return await super().infer(prompt, expect_json, operation)

    reconciler = PendingTopicReconciler(article_repo, TopicAnnotator(SlowThenResolved()))

    assert await reconciler.process_pending_topics() == 0
    assert (await article_repo.get(article.id)).topic == "Resolved"
