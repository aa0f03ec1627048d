"""Internal record types for scheduler state and cycle results."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class CheckpointState:
    """Highest block height already fully processed."""

    last_processed_block: int

    def __post_init__(self) -> None:
        if self.last_processed_block < 0:
            raise ValueError(f"checkpoint must be >= 0, got {self.last_processed_block}")

    def advance_to(self, block: int) -> CheckpointState:
        """Return the next state; the checkpoint never moves backward."""
        return CheckpointState(max(self.last_processed_block, block))


@dataclass(frozen=True)
class MonitoredContract:
    """A feed (FTSO) contract resolved for the current cycle. Never persisted."""

    address: str
    symbol: str


@dataclass
class CycleReport:
    """Outcome of one ingestion cycle."""

    started_at: str  # ISO 8601
    from_block: int
    to_block: int | None = None
    checkpoint: CheckpointState | None = None  # state after the cycle
    advanced: bool = False
    skipped_reason: str | None = None
    contracts: int = 0
    logs_fetched: int = 0
    events_decoded: int = 0
    events_persisted: int = 0
    events_dropped: int = 0
    persist_failures: int = 0
    fetch_failures: list[str] = field(default_factory=list)  # contract addresses
    duration_ms: int = 0
