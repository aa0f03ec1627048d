"""Data models for the ftso_indexer service."""

from ftso_indexer.models.events import (
    EventKind,
    FinalizationType,
    PriceEvent,
    PriceFinalizedEvent,
    PriceRevealedEvent,
    RawLogEntry,
)
from ftso_indexer.models.records import CheckpointState, CycleReport, MonitoredContract
from ftso_indexer.models.config import CheckpointBackend, IndexerConfig

__all__ = [
    "EventKind", "FinalizationType", "PriceEvent",
    "PriceFinalizedEvent", "PriceRevealedEvent", "RawLogEntry",
    "CheckpointState", "CycleReport", "MonitoredContract",
    "CheckpointBackend", "IndexerConfig",
]
