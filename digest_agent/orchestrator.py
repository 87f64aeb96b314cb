"""
Process-level wiring of the digest pipeline.

The orchestrator owns the lifecycle of shared resources: it opens the
database pool and the inference client on connect, builds every service on
top of them with explicit injection, and closes everything on shutdown.
"""

import logging
from typing import Any, Dict, Optional

from digest_agent import config
from digest_agent.ingestion.registry import FetcherRegistry
from digest_agent.intelligence.interfaces import InferenceService
from digest_agent.intelligence.ollama import OllamaInferenceService
from digest_agent.processing.annotate import TopicAnnotator
from digest_agent.processing.summarize import ArticleSummarizer
from digest_agent.services.collector import SourceCollector
from digest_agent.services.jobs import JobService
from digest_agent.services.reconciler import PendingTopicReconciler
from digest_agent.services.summary_generator import SummaryGenerator
from digest_agent.services.worker import SummaryWorker
from digest_agent.storage.postgres import (
    PostgreSQLArticleRepository,
    PostgreSQLConnectionPool,
    PostgreSQLJobRepository,
    PostgreSQLSourceRepository,
    PostgreSQLSummaryRepository,
)

logger = logging.getLogger(__name__)


class DigestOrchestrator:
    """
    Main orchestrator for the digest agent.

    Usage:
        async with DigestOrchestrator() as app:
            await app.collector.collect_from_all_sources()
    """

    def __init__(
        self,
        postgres_config: Optional[Dict[str, Any]] = None,
        inference: Optional[InferenceService] = None,
    ):
        """
        Initialize the orchestrator.

        Args:
            postgres_config: Connection pool keyword arguments (defaults from env)
            inference: Inference service override (defaults to Ollama from env)
        """
        self.postgres_config = postgres_config or config.get_postgres_config()
        self._inference_override = inference

        self.db_pool: Optional[PostgreSQLConnectionPool] = None
        self.inference: Optional[InferenceService] = None

        self.source_repo: Optional[PostgreSQLSourceRepository] = None
        self.article_repo: Optional[PostgreSQLArticleRepository] = None
        self.summary_repo: Optional[PostgreSQLSummaryRepository] = None
        self.job_repo: Optional[PostgreSQLJobRepository] = None

        self.collector: Optional[SourceCollector] = None
        self.reconciler: Optional[PendingTopicReconciler] = None
        self.generator: Optional[SummaryGenerator] = None
        self.jobs: Optional[JobService] = None
        self.worker: Optional[SummaryWorker] = None

    async def connect(self):
        """Open the database pool and build the service graph."""
        logger.info("Connecting digest agent resources...")

        self.db_pool = PostgreSQLConnectionPool(**self.postgres_config)
        pool = await self.db_pool.connect()
        self.source_repo = PostgreSQLSourceRepository(pool)
        self.article_repo = PostgreSQLArticleRepository(pool)
        self.summary_repo = PostgreSQLSummaryRepository(pool)
        self.job_repo = PostgreSQLJobRepository(pool)

        self.inference = self._inference_override or OllamaInferenceService(
            host=config.OLLAMA_HOST,
            model=config.OLLAMA_MODEL,
            max_retries=config.INFERENCE_MAX_RETRIES,
            timeout=config.INFERENCE_TIMEOUT_SECONDS,
        )

        annotator = TopicAnnotator(self.inference, chunk_size=config.TOPIC_CHUNK_SIZE)
        summarizer = ArticleSummarizer(
            self.inference,
            max_length=config.SUMMARY_MAX_LENGTH,
            language=config.SUMMARY_LANGUAGE,
            timeout=config.SUMMARIZE_TIMEOUT_SECONDS,
        )

        self.collector = SourceCollector(
            self.source_repo,
            self.article_repo,
            FetcherRegistry(),
            annotator,
            fetch_timeout=config.FETCH_TIMEOUT_SECONDS,
            annotation_timeout=config.ANNOTATION_TIMEOUT_SECONDS,
            concurrency=config.COLLECTION_CONCURRENCY,
        )
        self.reconciler = PendingTopicReconciler(
            self.article_repo, annotator, batch_size=config.PENDING_BATCH_SIZE
        )
        self.generator = SummaryGenerator(
            self.article_repo,
            self.summary_repo,
            summarizer,
            max_articles=config.SUMMARY_MAX_ARTICLES,
        )
        self.jobs = JobService(self.job_repo)
        self.worker = SummaryWorker(
            self.job_repo,
            self.summary_repo,
            self.generator,
            poll_interval=config.WORKER_POLL_INTERVAL_SECONDS,
        )
        logger.info("Digest agent connected")

    async def close(self):
        """Close the inference client and the database pool."""
        if self.inference is not None:
            await self.inference.close()
            self.inference = None
        if self.db_pool is not None:
            await self.db_pool.close()
            self.db_pool = None
        logger.info("Digest agent closed")

    async def __aenter__(self) -> "DigestOrchestrator":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
