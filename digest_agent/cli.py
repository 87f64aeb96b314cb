"""
Command-line entry point.

Usage:
    python -m digest_agent init-db
    python -m digest_agent add-source --name "Example" --feed-url https://example.com/rss
    python -m digest_agent collect [--source-id ID ...] [--full]
    python -m digest_agent reconcile [--batch-size 50]
    python -m digest_agent summarize --start 2024-05-01 --end 2024-05-07 [--topic AI ...]
    python -m digest_agent submit --start 2024-05-01 --end 2024-05-07
    python -m digest_agent status JOB_ID
    python -m digest_agent worker | run
    python -m digest_agent cleanup-jobs [--status FAILED] [--older-than-days 7] [--dry-run]
    python -m digest_agent migrate-jobs
    python -m digest_agent clean-summaries --days 30
"""

import argparse
import asyncio
import json
import logging
import signal
import sys
from datetime import datetime, time, timezone
from typing import Any, List, Optional
from uuid import UUID

from digest_agent import config
from digest_agent.observability.logging import setup_logging
from digest_agent.observability.metrics import start_metrics_server
from digest_agent.orchestrator import DigestOrchestrator
from digest_agent.scheduler import DigestScheduler
from digest_agent.services.collector import CollectionMode
from digest_agent.services.maintenance import cleanup_jobs, migrate_completed_jobs
from digest_agent.types import (
    FeedConfig,
    JobStatus,
    MailboxConfig,
    Source,
    SourceType,
    VideoChannelConfig,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Argument helpers
# ============================================================================


def parse_datetime(value: str, end_of_day: bool = False) -> datetime:
    """
    Parse an ISO date or datetime; naive values are taken as UTC.

    A bare date means the start of that day, or its last instant when
    `end_of_day` is set.
    """
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"invalid date: {value!r}") from e

    if len(value) == 10 and end_of_day:
        parsed = datetime.combine(parsed.date(), time.max)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_end_datetime(value: str) -> datetime:
    return parse_datetime(value, end_of_day=True)


def build_source(args: argparse.Namespace) -> Source:
    """Build a Source from add-source arguments."""
    if args.feed_url:
        return Source(name=args.name, type=SourceType.FEED, config=FeedConfig(feed_url=args.feed_url))
    if args.channel_id:
        return Source(
            name=args.name,
            type=SourceType.VIDEO_CHANNEL,
            config=VideoChannelConfig(channel_id=args.channel_id),
        )
    return Source(
        name=args.name,
        type=SourceType.MAILBOX,
        config=MailboxConfig(
            host=args.imap_host,
            port=args.imap_port,
            username=args.imap_user,
            password=args.imap_password,
            folders=args.folder or ["INBOX"],
            tls=not args.no_tls,
        ),
    )


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="digest_agent", description="News ingestion and topic summarization"
    )
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level (default: env LOG_LEVEL)")
    parser.add_argument("--plain-logs", action="store_true", help="Plain text instead of JSON logs")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create database tables")

    add = sub.add_parser("add-source", help="Register a source")
    add.add_argument("--name", required=True)
    kind = add.add_mutually_exclusive_group(required=True)
    kind.add_argument("--feed-url")
    kind.add_argument("--channel-id")
    kind.add_argument("--imap-host")
    add.add_argument("--imap-port", type=int, default=993)
    add.add_argument("--imap-user")
    add.add_argument("--imap-password")
    add.add_argument("--folder", action="append", help="Mailbox folder (repeatable)")
    add.add_argument("--no-tls", action="store_true")

    sub.add_parser("list-sources", help="List sources with credentials hidden")

    active = sub.add_parser("set-source-active", help="Enable or disable a source")
    active.add_argument("source_id", type=UUID)
    active.add_argument("--inactive", action="store_true", help="Disable instead of enable")

    remove = sub.add_parser("remove-source", help="Delete a source and its articles")
    remove.add_argument("source_id", type=UUID)

    collect = sub.add_parser("collect", help="Check sources for new articles")
    collect.add_argument("--source-id", type=UUID, action="append", help="Source to check (repeatable)")
    collect.add_argument("--full", action="store_true", help="Annotate topics before persisting")

    reconcile = sub.add_parser("reconcile", help="Resolve pending topics")
    reconcile.add_argument("--batch-size", type=int, default=config.PENDING_BATCH_SIZE)

    for name, help_text in (("summarize", "Generate a summary now"), ("submit", "Queue a summary job")):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--start", type=parse_datetime, required=True)
        cmd.add_argument("--end", type=parse_end_datetime, required=True)
        cmd.add_argument("--topic", action="append", help="Topic filter (repeatable)")
        if name == "summarize":
            cmd.add_argument("--force", action="store_true", help="Ignore cached summaries")

    status = sub.add_parser("status", help="Show summary job status")
    status.add_argument("job_id", type=UUID)

    sub.add_parser("worker", help="Run the summary job worker")
    sub.add_parser("run", help="Run the scheduler and the summary job worker")

    cleanup = sub.add_parser("cleanup-jobs", help="Delete finished jobs")
    cleanup.add_argument(
        "--status",
        action="append",
        choices=[JobStatus.COMPLETED.value, JobStatus.FAILED.value],
        help="Status to delete (repeatable, default COMPLETED)",
    )
    cleanup.add_argument("--older-than-days", type=int)
    cleanup.add_argument("--grace-seconds", type=float, default=5)
    cleanup.add_argument("--dry-run", action="store_true")

    sub.add_parser("migrate-jobs", help="Move completed job results into summaries")

    clean = sub.add_parser("clean-summaries", help="Delete old summaries")
    clean.add_argument("--days", type=int, default=30)

    return parser


# ============================================================================
# Commands
# ============================================================================


async def _run_until_signal(app: DigestOrchestrator, with_scheduler: bool) -> int:
    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, stop_event.set)

    if start_metrics_server(config.METRICS_PORT):
        logger.info(f"Metrics exporter listening on port {config.METRICS_PORT}")

    scheduler = None
    if with_scheduler:
        scheduler = DigestScheduler(
            app.collector,
            app.reconciler,
            check_interval_minutes=config.CHECK_INTERVAL_MINUTES,
            reconcile_interval_minutes=config.RECONCILE_INTERVAL_MINUTES,
        )
        await scheduler.start()

    try:
        await app.worker.run_forever(stop_event)
    finally:
        if scheduler is not None:
            await scheduler.shutdown()
    return 0


async def run_command(args: argparse.Namespace) -> int:
    """Execute a parsed command against a connected orchestrator."""
    async with DigestOrchestrator() as app:
        command = args.command

        if command == "init-db":
            await app.db_pool.initialize_schema()
            print("Schema initialized")

        elif command == "add-source":
            if args.imap_host and not (args.imap_user and args.imap_password):
                print("--imap-user and --imap-password are required for mailboxes", file=sys.stderr)
                return 2
            source = build_source(args)
            source_id = await app.source_repo.save(source)
            print(f"Created source {source_id}")

        elif command == "list-sources":
            sources = await app.source_repo.list()
            _print_json([s.redacted().model_dump(mode="json") for s in sources])

        elif command == "set-source-active":
            if not await app.source_repo.update(args.source_id, {"active": not args.inactive}):
                print(f"Source {args.source_id} not found", file=sys.stderr)
                return 1

        elif command == "remove-source":
            if not await app.source_repo.delete(args.source_id):
                print(f"Source {args.source_id} not found", file=sys.stderr)
                return 1

        elif command == "collect":
            mode = CollectionMode.FULL if args.full else CollectionMode.FAST
            summary = await app.collector.check_sources(args.source_id, mode)
            _print_json(summary.to_dict())

        elif command == "reconcile":
            updated = await app.reconciler.process_pending_topics(args.batch_size)
            print(f"Updated {updated} articles")

        elif command == "summarize":
            summary = await app.generator.generate_and_save(
                args.start, args.end, args.topic, force_refresh=args.force
            )
            _print_json(summary.model_dump(mode="json"))

        elif command == "submit":
            job_id = await app.jobs.create_summary_job(args.start, args.end, args.topic)
            print(job_id)

        elif command == "status":
            view = await app.jobs.get_job_status(args.job_id)
            if view is None:
                print(f"Job {args.job_id} not found", file=sys.stderr)
                return 1
            _print_json(view.model_dump(mode="json", exclude={"result"}))

        elif command == "worker":
            return await _run_until_signal(app, with_scheduler=False)

        elif command == "run":
            return await _run_until_signal(app, with_scheduler=True)

        elif command == "cleanup-jobs":
            statuses = [JobStatus(s) for s in (args.status or [JobStatus.COMPLETED.value])]
            report = await cleanup_jobs(
                app.job_repo,
                statuses,
                older_than_days=args.older_than_days,
                grace_seconds=args.grace_seconds,
                dry_run=args.dry_run,
            )
            print(f"Matched {report.matched} jobs, deleted {report.deleted}")

        elif command == "migrate-jobs":
            report = await migrate_completed_jobs(app.job_repo, app.summary_repo)
            print(f"Migrated {report.migrated} jobs, {report.failed} failed")
            return 1 if report.failed else 0

        elif command == "clean-summaries":
            deleted = await app.generator.clean_old_summaries(args.days)
            print(f"Deleted {deleted} summaries")

    return 0


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=args.log_level, log_file=config.LOG_FILE, json_format=not args.plain_logs and config.LOG_JSON)

    try:
        return asyncio.run(run_command(args))
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return 130
