"""Contract directory resolver - PriceSubmitter -> FtsoManager -> Ftso feeds."""

from __future__ import annotations

import logging

from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from ftso_indexer.chain.abi import GET_FTSO_MANAGER, GET_FTSOS, SYMBOL, decode_result, encode_call
from ftso_indexer.errors import DirectoryUnavailable, NodeError
from ftso_indexer.interfaces.node import ChainNode
from ftso_indexer.models.records import MonitoredContract

log = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"


class ContractDirectoryResolver:
    """Discovers the feed contracts to monitor, fresh on every call.

    Resolution is all-or-nothing: any failed query raises
    DirectoryUnavailable and no partial list is returned. Nothing is cached
    between cycles.
    """

    def __init__(self, node: ChainNode, registry_address: str) -> None:
        self._node = node
        self._registry = to_checksum_address(registry_address)

    async def resolve(self) -> list[MonitoredContract]:
        try:
            manager = await self.get_manager_address()
            feeds = await self.get_feed_addresses(manager)
            contracts = [
                MonitoredContract(address=feed, symbol=await self.get_feed_symbol(feed))
                for feed in feeds
            ]
        except DirectoryUnavailable:
            raise
        except (NodeError, DecodingError, UnicodeDecodeError, ValueError) as exc:
            raise DirectoryUnavailable(str(exc)) from exc

        log.debug(
            "Resolved %d feed contracts via manager %s: %s",
            len(contracts), manager, ", ".join(c.symbol for c in contracts),
        )
        return contracts

    async def get_manager_address(self) -> str:
        raw = await self._node.call(self._registry, encode_call(GET_FTSO_MANAGER))
        (manager,) = decode_result(["address"], raw)
        if int(manager, 16) == 0:
            raise DirectoryUnavailable(f"registry {self._registry} reports no manager")
        return to_checksum_address(manager)

    async def get_feed_addresses(self, manager: str) -> list[str]:
        raw = await self._node.call(manager, encode_call(GET_FTSOS))
        (feeds,) = decode_result(["address[]"], raw)
        return [to_checksum_address(a) for a in feeds]

    async def get_feed_symbol(self, feed: str) -> str:
        raw = await self._node.call(feed, encode_call(SYMBOL))
        (symbol,) = decode_result(["string"], raw)
        return symbol
