"""Log fetcher - one contract, one event kind, one inclusive block range."""

from __future__ import annotations

import logging

from ftso_indexer.chain.abi import EVENT_LAYOUTS
from ftso_indexer.errors import FetchFailed, NodeError
from ftso_indexer.interfaces.node import ChainNode
from ftso_indexer.models.events import EventKind, RawLogEntry
from ftso_indexer.models.records import MonitoredContract

log = logging.getLogger(__name__)


class LogFetcher:
    """Returns raw logs in node delivery order (block, then log index)."""

    def __init__(self, node: ChainNode) -> None:
        self._node = node

    async def fetch(
        self,
        contract: MonitoredContract,
        kind: EventKind,
        from_block: int,
        to_block: int,
    ) -> list[RawLogEntry]:
        if from_block > to_block:
            return []

        topic0 = EVENT_LAYOUTS[kind].topic0
        try:
            logs = await self._node.get_logs(contract.address, topic0, from_block, to_block)
        except NodeError as exc:
            raise FetchFailed(contract.address, f"{kind.value} logs: {exc}") from exc

        if logs:
            log.info(
                "%s: %d %s logs in [%d, %d]",
                contract.symbol, len(logs), kind.value, from_block, to_block,
            )
        return logs
