"""Error taxonomy for the ingestion pipeline."""

from __future__ import annotations


class IndexerError(Exception):
    """Base class for all ftso_indexer errors."""


class NodeError(IndexerError):
    """Transport or JSON-RPC failure talking to the chain node."""


class DirectoryUnavailable(IndexerError):
    """The registry, manager or feed list could not be fully resolved."""


class FetchFailed(IndexerError):
    """A log query for one contract failed."""

    def __init__(self, address: str, message: str) -> None:
        super().__init__(f"{address}: {message}")
        self.address = address


class DecodeError(IndexerError):
    """A raw log could not be turned into a typed event."""


class DecodeOverflow(DecodeError):
    """A decoded value does not fit the declared field width."""


class MalformedLog(DecodeError):
    """Topics or data do not match the expected event layout."""


class PersistenceFailure(IndexerError):
    """Inserting a decoded event into the store failed."""


class CheckpointCorrupt(IndexerError):
    """The persisted checkpoint exists but cannot be parsed."""
