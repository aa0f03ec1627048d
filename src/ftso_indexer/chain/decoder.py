"""Event decoder - raw FTSO logs to typed price events.

Decoding is pure: the same RawLogEntry and contract always give an equal
event, and nothing outside the arguments is read or written. All numeric
fields are u64; anything wider fails closed with DecodeOverflow rather than
being truncated.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Callable

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from eth_utils import to_checksum_address

from ftso_indexer.chain.abi import EVENT_LAYOUTS, EventLayout
from ftso_indexer.errors import DecodeOverflow, MalformedLog
from ftso_indexer.models.events import (
    EventKind,
    FinalizationType,
    PriceEvent,
    PriceFinalizedEvent,
    PriceRevealedEvent,
    RawLogEntry,
)
from ftso_indexer.models.records import MonitoredContract

U64_MAX = 2**64 - 1


def _u64(name: str, value: int) -> int:
    if not 0 <= value <= U64_MAX:
        raise DecodeOverflow(f"{name}={value} does not fit in u64")
    return value


def _utc(name: str, seconds: int) -> datetime:
    _u64(name, seconds)
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError, ValueError) as exc:
        raise DecodeOverflow(f"{name}={seconds} is outside the calendar range") from exc


def _topic_bytes(topic: str) -> bytes:
    raw = bytes.fromhex(topic[2:] if topic.startswith("0x") else topic)
    if len(raw) != 32:
        raise ValueError(f"topic is {len(raw)} bytes, expected 32")
    return raw


def _extract_args(raw: RawLogEntry, layout: EventLayout) -> dict[str, Any]:
    """Pull every named argument out of topics and data."""
    if not raw.topics or raw.topics[0].lower() != layout.topic0:
        raise MalformedLog(f"log is not a {layout.kind.value} event")
    if len(raw.topics) != 1 + len(layout.indexed):
        raise MalformedLog(
            f"{layout.kind.value} expects {1 + len(layout.indexed)} topics, "
            f"got {len(raw.topics)}"
        )

    args: dict[str, Any] = {}
    try:
        for (name, typ), topic in zip(layout.indexed, raw.topics[1:]):
            (args[name],) = decode([typ], _topic_bytes(topic))
        values = decode(layout.data_types, raw.data)
    except (DecodingError, ValueError) as exc:
        raise MalformedLog(f"{layout.kind.value} at block {raw.block_number}: {exc}") from exc

    args.update(zip((name for name, _ in layout.data), values))
    return args


def _decode_price_revealed(
    raw: RawLogEntry, contract: MonitoredContract
) -> PriceRevealedEvent:
    args = _extract_args(raw, EVENT_LAYOUTS[EventKind.PRICE_REVEALED])
    return PriceRevealedEvent(
        voter=to_checksum_address(args["voter"]),
        epoch_id=_u64("epochId", args["epochId"]),
        price=_u64("price", args["price"]),
        timestamp=_utc("timestamp", args["timestamp"]),
        vote_power_nat=_u64("votePowerNat", args["votePowerNat"]),
        vote_power_asset=_u64("votePowerAsset", args["votePowerAsset"]),
        symbol=contract.symbol,
        contract=contract.address,
        block_number=raw.block_number,
        log_index=raw.log_index,
        tx_hash=raw.tx_hash,
    )


def _decode_price_finalized(
    raw: RawLogEntry, contract: MonitoredContract
) -> PriceFinalizedEvent:
    args = _extract_args(raw, EVENT_LAYOUTS[EventKind.PRICE_FINALIZED])
    try:
        finalization = FinalizationType(args["finalizationType"])
    except ValueError as exc:
        raise MalformedLog(f"unknown finalizationType {args['finalizationType']}") from exc

    return PriceFinalizedEvent(
        epoch_id=_u64("epochId", args["epochId"]),
        price=_u64("price", args["price"]),
        rewarded_ftso=bool(args["rewardedFtso"]),
        low_iqr_reward_price=_u64("lowIQRRewardPrice", args["lowIQRRewardPrice"]),
        high_iqr_reward_price=_u64("highIQRRewardPrice", args["highIQRRewardPrice"]),
        low_elastic_band_reward_price=_u64(
            "lowElasticBandRewardPrice", args["lowElasticBandRewardPrice"]
        ),
        high_elastic_band_reward_price=_u64(
            "highElasticBandRewardPrice", args["highElasticBandRewardPrice"]
        ),
        finalization_type=finalization.name,
        timestamp=_utc("timestamp", args["timestamp"]),
        symbol=contract.symbol,
        contract=contract.address,
        block_number=raw.block_number,
        log_index=raw.log_index,
        tx_hash=raw.tx_hash,
    )


_DECODERS: dict[EventKind, Callable[[RawLogEntry, MonitoredContract], PriceEvent]] = {
    EventKind.PRICE_REVEALED: _decode_price_revealed,
    EventKind.PRICE_FINALIZED: _decode_price_finalized,
}


def decode_log(raw: RawLogEntry, kind: EventKind, contract: MonitoredContract) -> PriceEvent:
    """Decode one raw log of the given kind emitted by ``contract``.

    Raises MalformedLog when the layout does not match and DecodeOverflow
    when a value exceeds its declared width.
    """
    if raw.address.lower() != contract.address.lower():
        raise MalformedLog(f"log from {raw.address} attributed to {contract.address}")
    return _DECODERS[kind](raw, contract)
