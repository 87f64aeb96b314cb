"""
Tests for the command-line interface.

Commands run against an in-memory orchestrator substituted for the
PostgreSQL-backed one.
"""

import argparse
import json
from datetime import datetime, time, timezone

import pytest

from digest_agent import cli
from digest_agent.processing.annotate import TopicAnnotator
from digest_agent.processing.summarize import ArticleSummarizer
from digest_agent.services.collector import SourceCollector
from digest_agent.services.jobs import JobService
from digest_agent.services.reconciler import PendingTopicReconciler
from digest_agent.services.summary_generator import SummaryGenerator
from digest_agent.types import JobStatus, MailboxConfig, SourceType
from tests.fixtures import create_feed_source, create_fetched_items, create_mailbox_source
from tests.mocks import (
    MockArticleRepository,
    MockFetcher,
    MockInferenceService,
    MockJobRepository,
    MockSourceRepository,
    MockSummaryRepository,
)


class InMemoryOrchestrator:
    """Orchestrator double wired to the in-memory repositories."""

    def __init__(self, fetcher=None):
        self.source_repo = MockSourceRepository()
        self.article_repo = MockArticleRepository(self.source_repo)
        self.summary_repo = MockSummaryRepository()
        self.job_repo = MockJobRepository()
        self.inference = MockInferenceService()
        annotator = TopicAnnotator(self.inference)
        self.collector = SourceCollector(
            self.source_repo, self.article_repo, fetcher or MockFetcher(), annotator
        )
        self.reconciler = PendingTopicReconciler(self.article_repo, annotator)
        self.generator = SummaryGenerator(
            self.article_repo, self.summary_repo, ArticleSummarizer(self.inference)
        )
        self.jobs = JobService(self.job_repo)

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        pass


@pytest.fixture
def app(monkeypatch):
    fetcher = MockFetcher({"https://example.com/rss": create_fetched_items(["Alpha", "Beta"])})
    app = InMemoryOrchestrator(fetcher)
    monkeypatch.setattr(cli, "DigestOrchestrator", lambda: app)
    return app


async def run(argv):
    return await cli.run_command(cli.build_parser().parse_args(argv))


# ============================================================================
# Argument parsing
# ============================================================================


def test_parse_datetime_naive_is_utc():
    assert cli.parse_datetime("2024-05-01T08:00") == datetime(2024, 5, 1, 8, 0, tzinfo=timezone.utc)


def test_parse_end_datetime_bare_date_is_end_of_day():
    value = cli.parse_end_datetime("2024-05-07")

    assert value.date().isoformat() == "2024-05-07"
    assert value.time() == time.max
    assert value.tzinfo is not None


def test_parse_datetime_rejects_garbage():
    with pytest.raises(argparse.ArgumentTypeError):
        cli.parse_datetime("last week")


def test_add_source_requires_one_kind():
    with pytest.raises(SystemExit):
        cli.build_parser().parse_args(["add-source", "--name", "X"])


def test_build_mailbox_source():
    args = cli.build_parser().parse_args([
        "add-source", "--name", "Letters", "--imap-host", "imap.example.com",
        "--imap-user", "me", "--imap-password", "pw", "--folder", "News", "--no-tls",
    ])

    source = cli.build_source(args)

    assert source.type == SourceType.MAILBOX
    assert isinstance(source.config, MailboxConfig)
    assert source.config.folders == ["News"]
    assert source.config.tls is False


# ============================================================================
# Commands
# ============================================================================


@pytest.mark.asyncio
async def test_add_and_list_sources_hides_password(app, capsys):
    await app.source_repo.save(create_mailbox_source())

    assert await run(["add-source", "--name", "Feed", "--feed-url", "https://example.com/rss"]) == 0
    assert await run(["list-sources"]) == 0

    output = capsys.readouterr().out
    listed = json.loads(output[output.index("["):])
    assert {s["name"] for s in listed} == {"Feed", "Newsletters"}
    mailbox = next(s for s in listed if s["type"] == "MAILBOX")
    assert mailbox["config"]["password"] == "***HIDDEN***"


@pytest.mark.asyncio
async def test_add_mailbox_without_credentials_fails(app):
    assert await run(["add-source", "--name", "Letters", "--imap-host", "imap.example.com"]) == 2


@pytest.mark.asyncio
async def test_set_source_inactive_and_remove(app):
    source_id = await app.source_repo.save(create_feed_source())

    assert await run(["set-source-active", str(source_id), "--inactive"]) == 0
    assert (await app.source_repo.get(source_id)).active is False

    assert await run(["remove-source", str(source_id)]) == 0
    assert await run(["remove-source", str(source_id)]) == 1


@pytest.mark.asyncio
async def test_collect_then_reconcile(app, capsys):
    await app.source_repo.save(create_feed_source())

    assert await run(["collect"]) == 0
    collected = json.loads(capsys.readouterr().out)
    assert collected["new_articles"] == 2
    assert collected["pending_topic_extraction"] == 2

    assert await run(["reconcile"]) == 0
    assert "Updated 2 articles" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_summarize_saves_summary(app, capsys):
    assert await run(["summarize", "--start", "2024-05-01", "--end", "2024-05-07"]) == 0

    output = json.loads(capsys.readouterr().out)
    assert output["total_articles"] == 0
    assert len(app.summary_repo.all()) == 1


@pytest.mark.asyncio
async def test_submit_and_status(app, capsys):
    assert await run(["submit", "--start", "2024-05-01", "--end", "2024-05-07", "--topic", "AI"]) == 0
    job_id = capsys.readouterr().out.strip()

    assert await run(["status", job_id]) == 0
    status = json.loads(capsys.readouterr().out)
    assert status["status"] == JobStatus.QUEUED.value
    assert "result" not in status


@pytest.mark.asyncio
async def test_status_of_missing_job(app):
    assert await run(["status", "00000000-0000-0000-0000-000000000000"]) == 1


@pytest.mark.asyncio
async def test_cleanup_jobs_dry_run(app, capsys):
    assert await run(["cleanup-jobs", "--status", "FAILED", "--dry-run"]) == 0
    assert "Matched 0 jobs, deleted 0" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_migrate_jobs_with_empty_queue(app, capsys):
    assert await run(["migrate-jobs"]) == 0
    assert "Migrated 0 jobs" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_clean_summaries(app, capsys):
    assert await run(["clean-summaries", "--days", "7"]) == 0
    assert "Deleted 0 summaries" in capsys.readouterr().out
