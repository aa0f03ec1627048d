"""Configuration models for the indexer."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

DEFAULT_START_BLOCK = 10_999_000
PRICE_SUBMITTER_ADDRESS = "0x1000000000000000000000000000000000000003"


class CheckpointBackend(str, Enum):
    """Where the last processed block is kept."""

    FILE = "file"  # single human-readable integer
    SQLITE = "sqlite"  # row in the event database


@dataclass
class IndexerConfig:
    """Complete indexer configuration."""

    # Indexer
    poll_interval_ms: int = 5000
    rate_limit_delay_ms: int = 2000
    start_block: int = DEFAULT_START_BLOCK
    log_level: str = "info"

    # Node
    rpc_url: str = "https://flare-api.flare.network/ext/C/rpc"
    registry_address: str = PRICE_SUBMITTER_ADDRESS

    # Storage
    db_path: str = "~/.ftso_indexer/events.db"
    checkpoint_backend: CheckpointBackend = CheckpointBackend.FILE
    checkpoint_path: str = "~/.ftso_indexer/last_block.txt"

    # Read API
    serve_api: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = 3000

    @property
    def poll_interval(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def rate_limit_delay(self) -> float:
        return self.rate_limit_delay_ms / 1000
