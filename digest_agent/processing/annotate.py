"""
Topic annotation module.

Assigns a short topic and a broader macro-topic to items through the
inference service. Three strategies share one output contract, one
TopicAnnotation per input item in input order:

- single: one inference call per item
- batch: one call for a list of items, partial responses tolerated
- chunked: batch calls over fixed-size chunks, a failed chunk degrades alone

Any failure degrades to the title-truncation fallback rather than raising,
unless a caller asks for strict batch behaviour.
"""

import json
import logging
import re
from typing import Any, List, Optional, Protocol, Sequence

from digest_agent.intelligence.interfaces import InferenceError, InferenceService
from digest_agent.observability.metrics import record_annotation_fallback
from digest_agent.types import TopicAnnotation

logger = logging.getLogger(__name__)

SINGLE_CONTENT_CHARS = 500
BATCH_CONTENT_CHARS = 300
DEFAULT_CHUNK_SIZE = 20

# Defaults for fields missing from an otherwise valid response
MISSING_TOPIC = "General"
MISSING_MACRO_TOPIC = "News"

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", re.MULTILINE)


class Annotatable(Protocol):
    """Anything with a title and content: fetched items and articles."""

    title: str
    content: str


class AnnotationError(Exception):
    """Raised when a strict batch annotation fails as a whole."""

    pass


SINGLE_PROMPT = """Analyze the following article and identify its topic.

Title: {title}
Content: {content}

Respond with JSON only, in this exact shape:
{{"topic": "<specific topic, 2-4 words>", "macroTopic": "<broad category, 1-2 words>"}}"""

BATCH_PROMPT = """Analyze the following {count} articles and identify the topic of each one.

{articles}

Respond with JSON only: an array of exactly {count} objects, in the same order as the articles,
each in this shape:
{{"topic": "<specific topic, 2-4 words>", "macroTopic": "<broad category, 1-2 words>"}}"""


def _strip_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip()).strip()


def _entry_to_annotation(entry: Any) -> TopicAnnotation:
    """Build an annotation from one decoded JSON object."""
    topic = entry.get("topic") or MISSING_TOPIC
    macro_topic = entry.get("macroTopic") or entry.get("macro_topic") or MISSING_MACRO_TOPIC
    return TopicAnnotation(topic=str(topic).strip(), macro_topic=str(macro_topic).strip())


def parse_single_response(text: str) -> TopicAnnotation:
    """
    Decode a single-item annotation response.

    Raises:
        AnnotationError: If the response is not a JSON object
    """
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        raise AnnotationError(f"Malformed annotation response: {e}") from e
    if not isinstance(data, dict):
        raise AnnotationError("Annotation response is not a JSON object")
    return _entry_to_annotation(data)


def parse_batch_response(text: str) -> List[Any]:
    """
    Decode a batch annotation response into a list of entries.

    JSON-constrained models often wrap the array in an object, so an object
    holding a list value is accepted as well, and a bare annotation object
    (the usual reply for a one-item batch) counts as a one-entry list. Any
    other decodable value yields no entries, leaving every item to its own
    fallback.

    Raises:
        AnnotationError: If the response is not valid JSON
    """
    try:
        data = json.loads(_strip_fences(text))
    except json.JSONDecodeError as e:
        raise AnnotationError(f"Malformed batch annotation response: {e}") from e

    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        if "topic" in data or "macroTopic" in data or "macro_topic" in data:
            return [data]
        for value in data.values():
            if isinstance(value, list):
                return value

    logger.warning(f"Batch annotation response holds no entries: {text[:100]}")
    return []


class TopicAnnotator:
    """Topic extraction over the inference service."""

    def __init__(self, inference: InferenceService, chunk_size: int = DEFAULT_CHUNK_SIZE):
        """
        Initialize annotator.

        Args:
            inference: Inference service used for classification
            chunk_size: Default chunk size for chunked batch annotation
        """
        if chunk_size < 1:
            raise ValueError("chunk_size must be positive")
        self._inference = inference
        self.chunk_size = chunk_size

    async def extract_topics(self, title: str, content: str) -> TopicAnnotation:
        """
        Annotate a single item.

        Never raises: inference errors and malformed output fall back to the
        title-truncation default.
        """
        prompt = SINGLE_PROMPT.format(title=title, content=(content or "")[:SINGLE_CONTENT_CHARS])
        try:
            response = await self._inference.infer(prompt, expect_json=True, operation="annotate")
            return parse_single_response(response)
        except (InferenceError, AnnotationError) as e:
            logger.warning(f"Topic extraction failed for '{title[:60]}': {e}")
            record_annotation_fallback("single")
            return TopicAnnotation.fallback(title)

    async def extract_topics_in_batch(
        self, items: Sequence[Annotatable], strict: bool = False
    ) -> List[TopicAnnotation]:
        """
        Annotate several items with one inference call.

        Args:
            items: Items to annotate
            strict: Raise AnnotationError on total failure instead of
                degrading every item to the fallback

        Returns:
            One annotation per item, order-aligned with `items`. Entries
            missing from a short response get the fallback individually.

        Raises:
            AnnotationError: Only when `strict` and the call fails as a whole
        """
        return await self._annotate_batch(items, strict=strict, mode="batch")

    async def extract_topics_in_batch_chunked(
        self, items: Sequence[Annotatable], chunk_size: Optional[int] = None
    ) -> List[TopicAnnotation]:
        """
        Annotate an arbitrarily long list in sequential fixed-size chunks.

        Args:
            items: Items to annotate
            chunk_size: Items per inference call (default: annotator setting)

        Returns:
            Exactly len(items) annotations in input order
        """
        size = chunk_size or self.chunk_size
        if size < 1:
            raise ValueError("chunk_size must be positive")

        results: List[TopicAnnotation] = []
        for start in range(0, len(items), size):
            chunk = items[start:start + size]
            results.extend(await self._annotate_batch(chunk, strict=False, mode="chunk"))
        return results

    async def _annotate_batch(
        self, items: Sequence[Annotatable], strict: bool, mode: str
    ) -> List[TopicAnnotation]:
        if not items:
            return []

        articles = "\n\n".join(
            f"Article {i + 1}:\nTitle: {item.title}\nContent: {(item.content or '')[:BATCH_CONTENT_CHARS]}"
            for i, item in enumerate(items)
        )
        prompt = BATCH_PROMPT.format(count=len(items), articles=articles)

        try:
            response = await self._inference.infer(prompt, expect_json=True, operation="annotate")
            entries = parse_batch_response(response)
        except (InferenceError, AnnotationError) as e:
            if strict:
                raise AnnotationError(f"Batch topic extraction failed: {e}") from e
            logger.warning(f"Batch topic extraction failed for {len(items)} items: {e}")
            record_annotation_fallback(mode, len(items))
            return [TopicAnnotation.fallback(item.title) for item in items]

        if len(entries) != len(items):
            logger.warning(
                f"Batch annotation returned {len(entries)} entries for {len(items)} items"
            )

        results = []
        fallbacks = 0
        for i, item in enumerate(items):
            entry = entries[i] if i < len(entries) else None
            if isinstance(entry, dict):
                results.append(_entry_to_annotation(entry))
            else:
                results.append(TopicAnnotation.fallback(item.title))
                fallbacks += 1

        record_annotation_fallback(mode, fallbacks)
        return results
