"""
Topic clustering.

Groups articles by their exact topic label. Topics keep first-seen order and
near-identical labels are not merged.
"""

from typing import Dict, List, Sequence
from uuid import UUID

from digest_agent.types import Article


def cluster_by_topic(articles: Sequence[Article]) -> Dict[str, List[UUID]]:
    """
    Group article IDs by topic.

    Args:
        articles: Annotated articles

    Returns:
        Mapping topic -> article IDs, topics in first-seen order
    """
    clusters: Dict[str, List[UUID]] = {}
    for article in articles:
        clusters.setdefault(article.topic, []).append(article.id)
    return clusters
