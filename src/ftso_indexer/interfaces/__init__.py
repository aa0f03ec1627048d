"""Protocol interfaces for all ftso_indexer components."""

from ftso_indexer.interfaces.node import ChainNode
from ftso_indexer.interfaces.store import CheckpointStore, EventQueries, EventSink

__all__ = [
    "ChainNode",
    "CheckpointStore", "EventQueries", "EventSink",
]
