"""
Processing layer: deduplication, topic annotation, clustering and
summarization.
"""

from digest_agent.processing.annotate import AnnotationError, TopicAnnotator
from digest_agent.processing.cluster import cluster_by_topic
from digest_agent.processing.deduplicate import Deduplicator
from digest_agent.processing.summarize import ArticleSummarizer, SummarizationError

__all__ = [
    "Deduplicator",
    "TopicAnnotator",
    "AnnotationError",
    "cluster_by_topic",
    "ArticleSummarizer",
    "SummarizationError",
]
