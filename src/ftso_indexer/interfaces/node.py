"""ChainNode protocol - the node endpoint the pipeline reads from."""

from __future__ import annotations

from typing import Protocol

from ftso_indexer.models.events import RawLogEntry


class ChainNode(Protocol):
    """Abstract EVM node. All methods raise NodeError on transport failure."""

    async def get_block_number(self) -> int:
        """Return the current chain head height."""
        ...

    async def get_logs(
        self,
        address: str,
        topic0: str,
        from_block: int,
        to_block: int,
    ) -> list[RawLogEntry]:
        """Return logs of one contract matching topic0 over the inclusive range."""
        ...

    async def call(self, to: str, data: bytes) -> bytes:
        """Run a read-only eth_call against the latest block."""
        ...

    async def close(self) -> None:
        ...
