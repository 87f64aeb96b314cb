"""
Digest Agent - news ingestion and topic-clustered summarization.

Collects articles from feeds, video channels and mailboxes, annotates them
with topics through a local inference service, and produces narrative
summaries either synchronously or through a database-resident job queue.
"""

__version__ = "1.0.0"
