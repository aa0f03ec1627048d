"""FTSO contract ABI fragments: event layouts, topic hashes and call helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from eth_abi import decode, encode
from eth_utils import event_signature_to_log_topic, function_signature_to_4byte_selector

from ftso_indexer.models.events import EventKind


@dataclass(frozen=True)
class EventLayout:
    """Where each argument of an event lives: indexed topics or the data blob."""

    kind: EventKind
    signature: str
    indexed: tuple[tuple[str, str], ...]  # (name, abi type), topics[1:]
    data: tuple[tuple[str, str], ...]  # (name, abi type), abi-encoded data

    @property
    def topic0(self) -> str:
        return "0x" + event_signature_to_log_topic(self.signature).hex()

    @property
    def data_types(self) -> list[str]:
        return [t for _, t in self.data]


PRICE_REVEALED = EventLayout(
    kind=EventKind.PRICE_REVEALED,
    signature="PriceRevealed(address,uint256,uint256,uint256,uint256,uint256)",
    indexed=(("voter", "address"), ("epochId", "uint256")),
    data=(
        ("price", "uint256"),
        ("timestamp", "uint256"),
        ("votePowerNat", "uint256"),
        ("votePowerAsset", "uint256"),
    ),
)

PRICE_FINALIZED = EventLayout(
    kind=EventKind.PRICE_FINALIZED,
    signature=(
        "PriceFinalized(uint256,uint256,bool,uint256,uint256,uint256,uint256,uint8,uint256)"
    ),
    indexed=(("epochId", "uint256"),),
    data=(
        ("price", "uint256"),
        ("rewardedFtso", "bool"),
        ("lowIQRRewardPrice", "uint256"),
        ("highIQRRewardPrice", "uint256"),
        ("lowElasticBandRewardPrice", "uint256"),
        ("highElasticBandRewardPrice", "uint256"),
        ("finalizationType", "uint8"),
        ("timestamp", "uint256"),
    ),
)

EVENT_LAYOUTS: dict[EventKind, EventLayout] = {
    EventKind.PRICE_REVEALED: PRICE_REVEALED,
    EventKind.PRICE_FINALIZED: PRICE_FINALIZED,
}

# Read-only functions used to walk PriceSubmitter -> FtsoManager -> Ftso[]
GET_FTSO_MANAGER = "getFtsoManager()"
GET_FTSOS = "getFtsos()"
SYMBOL = "symbol()"


def encode_call(
    signature: str,
    arg_types: Sequence[str] = (),
    args: Sequence[Any] = (),
) -> bytes:
    """Build eth_call input: 4-byte selector followed by abi-encoded args."""
    selector = function_signature_to_4byte_selector(signature)
    if not arg_types:
        return selector
    return selector + encode(list(arg_types), list(args))


def decode_result(types: Sequence[str], data: bytes) -> tuple[Any, ...]:
    """Decode eth_call return data."""
    return decode(list(types), data)
