"""
Narrative summarization of a topic cluster.
"""

import asyncio
import logging
from typing import Optional, Sequence

from digest_agent.intelligence.interfaces import InferenceError, InferenceService
from digest_agent.types import Article

logger = logging.getLogger(__name__)

ARTICLE_CONTENT_CHARS = 1000

SUMMARY_PROMPT = """You are a news editor. Write a single narrative paragraph in {language} that summarizes
the following articles about "{topic}". Connect related facts, avoid lists, and keep it under
{max_length} characters.

{articles}

Summary:"""


class SummarizationError(Exception):
    """Raised when a cluster cannot be summarized."""

    pass


class ArticleSummarizer:
    """Turns a cluster of articles into one paragraph via the inference service."""

    def __init__(
        self,
        inference: InferenceService,
        max_length: int = 500,
        language: str = "English",
        timeout: Optional[float] = 120,
    ):
        """
        Initialize summarizer.

        Args:
            inference: Inference service used for generation
            max_length: Advisory summary length in characters
            language: Output language
            timeout: Seconds allowed per cluster, None for unbounded
        """
        self._inference = inference
        self.max_length = max_length
        self.language = language
        self.timeout = timeout

    def build_prompt(self, topic: str, articles: Sequence[Article]) -> str:
        blocks = []
        for i, article in enumerate(articles, start=1):
            blocks.append(
                f"Article {i}:\n"
                f"Title: {article.title}\n"
                f"Author: {article.author or 'Unknown'}\n"
                f"Content: {(article.content or '')[:ARTICLE_CONTENT_CHARS]}"
            )
        return SUMMARY_PROMPT.format(
            language=self.language,
            topic=topic,
            max_length=self.max_length,
            articles="\n\n".join(blocks),
        )

    async def summarize_articles(self, topic: str, articles: Sequence[Article]) -> str:
        """
        Summarize one topic cluster.

        Args:
            topic: Cluster label
            articles: Articles in the cluster

        Returns:
            Summary paragraph

        Raises:
            SummarizationError: On inference failure, timeout or empty output
        """
        prompt = self.build_prompt(topic, articles)
        try:
            text = await asyncio.wait_for(
                self._inference.infer(prompt, operation="summarize"),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise SummarizationError(f"Summarization timed out after {self.timeout}s") from e
        except InferenceError as e:
            raise SummarizationError(str(e)) from e

        text = text.strip()
        if not text:
            raise SummarizationError("Inference service returned an empty summary")
        return text
