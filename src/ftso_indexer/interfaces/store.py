"""Storage protocols - checkpoint persistence, event sink and read queries."""

from __future__ import annotations

from typing import Protocol

from ftso_indexer.models.events import PriceEvent, PriceFinalizedEvent, PriceRevealedEvent


class CheckpointStore(Protocol):
    """Persists the last fully processed block across restarts."""

    async def load(self) -> int:
        """Return the saved block, or the configured default when none exists."""
        ...

    async def save(self, block_number: int) -> None:
        """Durably replace the saved block."""
        ...


class EventSink(Protocol):
    """Append-only destination for decoded events."""

    async def insert(self, event: PriceEvent) -> None:
        """Insert one event row. Raises PersistenceFailure."""
        ...


class EventQueries(Protocol):
    """Read side used by the HTTP API."""

    async def get_finalized_prices(
        self,
        symbol: str,
        start_epoch: int,
        end_epoch: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PriceFinalizedEvent]:
        ...

    async def get_revealed_votes(
        self,
        voter: str,
        symbol: str,
        start_epoch: int,
        end_epoch: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PriceRevealedEvent]:
        ...
