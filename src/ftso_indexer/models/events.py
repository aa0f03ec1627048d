"""Chain log and price event models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class EventKind(str, Enum):
    """The two FTSO events the indexer ingests."""

    PRICE_REVEALED = "PriceRevealed"
    PRICE_FINALIZED = "PriceFinalized"


class FinalizationType(Enum):
    """On-chain PriceFinalizationType ordinals (uint8)."""

    NOT_FINALIZED = 0
    WEIGHTED_MEDIAN = 1
    TRUSTED_ADDRESSES = 2
    PREVIOUS_PRICE_COPIED = 3
    TRUSTED_ADDRESSES_EXCEPTION = 4
    PREVIOUS_PRICE_COPIED_EXCEPTION = 5


@dataclass(frozen=True)
class RawLogEntry:
    """A log record as delivered by the node, before decoding."""

    address: str  # emitting contract, lowercase hex
    block_number: int
    log_index: int
    topics: tuple[str, ...]  # 0x-prefixed 32-byte hex
    data: bytes
    tx_hash: str = ""


@dataclass(frozen=True)
class PriceRevealedEvent:
    """A voter revealed its price for an epoch (PriceRevealed)."""

    voter: str  # checksum address
    epoch_id: int
    price: int  # fixed-point, unscaled
    timestamp: datetime  # UTC
    vote_power_nat: int
    vote_power_asset: int
    symbol: str
    contract: str
    block_number: int
    log_index: int
    tx_hash: str = ""


@dataclass(frozen=True)
class PriceFinalizedEvent:
    """An epoch price was finalized (PriceFinalized)."""

    epoch_id: int
    price: int
    rewarded_ftso: bool
    low_iqr_reward_price: int
    high_iqr_reward_price: int
    low_elastic_band_reward_price: int
    high_elastic_band_reward_price: int
    finalization_type: str  # FinalizationType name
    timestamp: datetime  # UTC
    symbol: str
    contract: str
    block_number: int
    log_index: int
    tx_hash: str = ""


PriceEvent = PriceRevealedEvent | PriceFinalizedEvent
