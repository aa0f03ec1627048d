"""Persistence components."""

from ftso_indexer.storage.checkpoint import FileCheckpointStore
from ftso_indexer.storage.sqlite import SQLiteCheckpointStore, SQLiteEventStore

__all__ = ["FileCheckpointStore", "SQLiteCheckpointStore", "SQLiteEventStore"]
