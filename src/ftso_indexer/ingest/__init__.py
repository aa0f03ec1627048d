"""Ingestion scheduling."""

from ftso_indexer.ingest.scheduler import IngestionScheduler

__all__ = ["IngestionScheduler"]
