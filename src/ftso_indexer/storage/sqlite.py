"""SQLite implementation of the EventSink, EventQueries and CheckpointStore protocols."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import aiosqlite

from ftso_indexer.errors import PersistenceFailure
from ftso_indexer.models.events import PriceEvent, PriceFinalizedEvent, PriceRevealedEvent

SCHEMA = """
-- Last fully processed block (optional checkpoint backend)
CREATE TABLE IF NOT EXISTS checkpoint (
    id INTEGER PRIMARY KEY CHECK (id = 1),
    last_block INTEGER NOT NULL,
    updated_at TEXT NOT NULL DEFAULT (datetime('now'))
);

-- PriceRevealed events, one row per voter reveal
CREATE TABLE IF NOT EXISTS price_revealed (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    voter TEXT NOT NULL,
    epoch_id INTEGER NOT NULL,
    price INTEGER NOT NULL,
    timestamp TEXT NOT NULL,
    vote_power_nat INTEGER NOT NULL,
    vote_power_asset INTEGER NOT NULL,
    symbol TEXT NOT NULL,
    contract TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    log_index INTEGER NOT NULL,
    tx_hash TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_revealed_voter
    ON price_revealed(voter, symbol, epoch_id);

-- PriceFinalized events, one row per finalized epoch per feed
CREATE TABLE IF NOT EXISTS price_finalized (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    epoch_id INTEGER NOT NULL,
    price INTEGER NOT NULL,
    rewarded_ftso INTEGER NOT NULL,
    low_iqr_reward_price INTEGER NOT NULL,
    high_iqr_reward_price INTEGER NOT NULL,
    low_elastic_band_reward_price INTEGER NOT NULL,
    high_elastic_band_reward_price INTEGER NOT NULL,
    finalization_type TEXT NOT NULL,
    timestamp TEXT NOT NULL,
    symbol TEXT NOT NULL,
    contract TEXT NOT NULL,
    block_number INTEGER NOT NULL,
    log_index INTEGER NOT NULL,
    tx_hash TEXT NOT NULL,
    created_at TEXT NOT NULL DEFAULT (datetime('now'))
);
CREATE INDEX IF NOT EXISTS idx_finalized_symbol
    ON price_finalized(symbol, epoch_id);
"""


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _row_to_revealed(row: aiosqlite.Row) -> PriceRevealedEvent:
    return PriceRevealedEvent(
        voter=row["voter"],
        epoch_id=row["epoch_id"],
        price=row["price"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        vote_power_nat=row["vote_power_nat"],
        vote_power_asset=row["vote_power_asset"],
        symbol=row["symbol"],
        contract=row["contract"],
        block_number=row["block_number"],
        log_index=row["log_index"],
        tx_hash=row["tx_hash"],
    )


def _row_to_finalized(row: aiosqlite.Row) -> PriceFinalizedEvent:
    return PriceFinalizedEvent(
        epoch_id=row["epoch_id"],
        price=row["price"],
        rewarded_ftso=bool(row["rewarded_ftso"]),
        low_iqr_reward_price=row["low_iqr_reward_price"],
        high_iqr_reward_price=row["high_iqr_reward_price"],
        low_elastic_band_reward_price=row["low_elastic_band_reward_price"],
        high_elastic_band_reward_price=row["high_elastic_band_reward_price"],
        finalization_type=row["finalization_type"],
        timestamp=datetime.fromisoformat(row["timestamp"]),
        symbol=row["symbol"],
        contract=row["contract"],
        block_number=row["block_number"],
        log_index=row["log_index"],
        tx_hash=row["tx_hash"],
    )


class SQLiteEventStore:
    """SQLite-backed event store. Rows are append-only."""

    def __init__(self, db_path: str) -> None:
        self._db_path = db_path
        self._db: aiosqlite.Connection | None = None

    async def initialize(self) -> None:
        if self._db_path != ":memory:":
            Path(self._db_path).parent.mkdir(parents=True, exist_ok=True)
        self._db = await aiosqlite.connect(self._db_path)
        self._db.row_factory = aiosqlite.Row
        await self._db.executescript(SCHEMA)
        await self._db.commit()

    async def close(self) -> None:
        if self._db:
            await self._db.close()
            self._db = None

    @property
    def db(self) -> aiosqlite.Connection:
        assert self._db is not None, "Store not initialized. Call initialize() first."
        return self._db

    # ── Checkpoint ─────────────────────────────────────────

    async def get_checkpoint(self) -> int | None:
        async with self.db.execute("SELECT last_block FROM checkpoint WHERE id=1") as cur:
            row = await cur.fetchone()
            return row["last_block"] if row else None

    async def set_checkpoint(self, block_number: int) -> None:
        await self.db.execute(
            "INSERT INTO checkpoint (id, last_block, updated_at) VALUES (1, ?, ?)"
            " ON CONFLICT(id) DO UPDATE SET last_block=excluded.last_block,"
            " updated_at=excluded.updated_at",
            (block_number, _now()),
        )
        await self.db.commit()

    # ── Inserts ────────────────────────────────────────────

    async def insert(self, event: PriceEvent) -> None:
        try:
            if isinstance(event, PriceRevealedEvent):
                await self._insert_revealed(event)
            else:
                await self._insert_finalized(event)
            await self.db.commit()
        except (aiosqlite.Error, OverflowError) as exc:
            raise PersistenceFailure(
                f"{type(event).__name__} epoch={event.epoch_id} {event.symbol}: {exc}"
            ) from exc

    async def _insert_revealed(self, e: PriceRevealedEvent) -> None:
        await self.db.execute(
            "INSERT INTO price_revealed"
            " (voter, epoch_id, price, timestamp, vote_power_nat, vote_power_asset,"
            "  symbol, contract, block_number, log_index, tx_hash, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                e.voter, e.epoch_id, e.price, e.timestamp.isoformat(),
                e.vote_power_nat, e.vote_power_asset, e.symbol, e.contract,
                e.block_number, e.log_index, e.tx_hash, _now(),
            ),
        )

    async def _insert_finalized(self, e: PriceFinalizedEvent) -> None:
        await self.db.execute(
            "INSERT INTO price_finalized"
            " (epoch_id, price, rewarded_ftso, low_iqr_reward_price,"
            "  high_iqr_reward_price, low_elastic_band_reward_price,"
            "  high_elastic_band_reward_price, finalization_type, timestamp,"
            "  symbol, contract, block_number, log_index, tx_hash, created_at)"
            " VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                e.epoch_id, e.price, int(e.rewarded_ftso), e.low_iqr_reward_price,
                e.high_iqr_reward_price, e.low_elastic_band_reward_price,
                e.high_elastic_band_reward_price, e.finalization_type,
                e.timestamp.isoformat(), e.symbol, e.contract, e.block_number,
                e.log_index, e.tx_hash, _now(),
            ),
        )

    # ── Queries ────────────────────────────────────────────

    async def get_finalized_prices(
        self,
        symbol: str,
        start_epoch: int,
        end_epoch: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PriceFinalizedEvent]:
        async with self.db.execute(
            "SELECT * FROM price_finalized"
            " WHERE symbol=? AND epoch_id BETWEEN ? AND ?"
            " ORDER BY epoch_id ASC, id ASC LIMIT ? OFFSET ?",
            (symbol, start_epoch, end_epoch, limit, offset),
        ) as cur:
            return [_row_to_finalized(row) async for row in cur]

    async def get_revealed_votes(
        self,
        voter: str,
        symbol: str,
        start_epoch: int,
        end_epoch: int,
        limit: int = 100,
        offset: int = 0,
    ) -> list[PriceRevealedEvent]:
        async with self.db.execute(
            "SELECT * FROM price_revealed"
            " WHERE voter=? COLLATE NOCASE AND symbol=? AND epoch_id BETWEEN ? AND ?"
            " ORDER BY epoch_id ASC, id ASC LIMIT ? OFFSET ?",
            (voter, symbol, start_epoch, end_epoch, limit, offset),
        ) as cur:
            return [_row_to_revealed(row) async for row in cur]

    async def count_events(self) -> dict[str, int]:
        counts: dict[str, int] = {}
        for table in ("price_revealed", "price_finalized"):
            async with self.db.execute(f"SELECT COUNT(*) AS c FROM {table}") as cur:
                row = await cur.fetchone()
                counts[table] = row["c"] if row else 0
        return counts


class SQLiteCheckpointStore:
    """CheckpointStore over the event database's single-row checkpoint table."""

    def __init__(self, store: SQLiteEventStore, default_block: int) -> None:
        self._store = store
        self._default = default_block

    async def load(self) -> int:
        saved = await self._store.get_checkpoint()
        return self._default if saved is None else saved

    async def save(self, block_number: int) -> None:
        if block_number < 0:
            raise ValueError(f"block number must be >= 0, got {block_number}")
        await self._store.set_checkpoint(block_number)
