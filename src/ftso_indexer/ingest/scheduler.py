"""Ingestion scheduler - periodic resolve/fetch/decode/persist cycles."""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable

from ftso_indexer.chain.decoder import decode_log
from ftso_indexer.chain.directory import ContractDirectoryResolver
from ftso_indexer.chain.fetcher import LogFetcher
from ftso_indexer.errors import (
    DecodeError,
    DirectoryUnavailable,
    FetchFailed,
    NodeError,
    PersistenceFailure,
)
from ftso_indexer.interfaces.node import ChainNode
from ftso_indexer.interfaces.store import CheckpointStore, EventSink
from ftso_indexer.models.events import EventKind
from ftso_indexer.models.records import CheckpointState, CycleReport, MonitoredContract

log = logging.getLogger(__name__)


class _RateGate:
    """Waits until ``delay`` seconds have passed since the previous contract finished."""

    def __init__(
        self,
        delay: float,
        clock: Callable[[], float],
        sleep: Callable[[float], Awaitable[None]],
    ) -> None:
        self._delay = delay
        self._clock = clock
        self._sleep = sleep
        self._last: float | None = None

    async def wait(self) -> None:
        if self._last is None or self._delay <= 0:
            return
        remaining = self._delay - (self._clock() - self._last)
        if remaining > 0:
            await self._sleep(remaining)

    def mark(self) -> None:
        self._last = self._clock()


class IngestionScheduler:
    """Runs ingestion cycles on a fixed interval, one at a time.

    Each cycle:
    1. Reads the chain head from the node
    2. Resolves the current feed contracts (all or nothing)
    3. For each contract, sequentially and rate limited, fetches both event
       kinds over [checkpoint, head], decodes and persists them
    4. Saves the new checkpoint once every contract has been attempted

    Decode and insert failures drop single events. A failed node height or
    directory lookup skips the cycle without touching the checkpoint. A
    failed log fetch does not stop sibling contracts, but holds the
    checkpoint so the range is read again next cycle.
    """

    def __init__(
        self,
        node: ChainNode,
        resolver: ContractDirectoryResolver,
        fetcher: LogFetcher,
        sink: EventSink,
        checkpoints: CheckpointStore,
        poll_interval: float = 5.0,
        rate_limit_delay: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._node = node
        self._resolver = resolver
        self._fetcher = fetcher
        self._sink = sink
        self._checkpoints = checkpoints
        self._poll_interval = poll_interval
        self._rate_limit_delay = rate_limit_delay
        self._clock = clock
        self._sleep = sleep

        self._state: CheckpointState | None = None
        self._lock = asyncio.Lock()
        self._stop = asyncio.Event()
        self._inflight: set[asyncio.Task] = set()

    @property
    def state(self) -> CheckpointState | None:
        return self._state

    @property
    def busy(self) -> bool:
        return self._lock.locked()

    async def load_state(self) -> CheckpointState:
        """Read the persisted checkpoint once; CheckpointCorrupt propagates."""
        if self._state is None:
            self._state = CheckpointState(await self._checkpoints.load())
            log.info("Loaded checkpoint: block %d", self._state.last_processed_block)
        return self._state

    # ── Triggering ─────────────────────────────────────────

    async def trigger(self) -> CycleReport | None:
        """Run one cycle unless one is already in progress (then no-op)."""
        if self._lock.locked():
            log.warning("Previous cycle still running, skipping this trigger")
            return None

        async with self._lock:
            report = await self.run_cycle(await self.load_state())
            self._state = report.checkpoint
            return report

    async def run_forever(self) -> None:
        """Fire a trigger every poll interval until stop() is called.

        The checkpoint is loaded before the first tick, so an unreadable
        one stops the loop instead of failing every cycle. A tick that
        lands while the previous cycle is still running is a no-op. On
        stop, the running cycle is allowed to finish.
        """
        await self.load_state()
        self._stop.clear()
        loop = asyncio.get_running_loop()
        next_tick = loop.time()

        while not self._stop.is_set():
            task = asyncio.create_task(self._tick())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

            next_tick += self._poll_interval
            try:
                await asyncio.wait_for(
                    self._stop.wait(), timeout=max(0.0, next_tick - loop.time()),
                )
            except asyncio.TimeoutError:
                pass

        if self._inflight:
            log.info("Waiting for the running cycle to finish")
            await asyncio.gather(*self._inflight, return_exceptions=True)

    def stop(self) -> None:
        self._stop.set()

    async def _tick(self) -> None:
        try:
            await self.trigger()
        except Exception as exc:
            log.error("Ingestion cycle failed: %s", exc, exc_info=True)

    # ── One cycle ──────────────────────────────────────────

    async def run_cycle(self, state: CheckpointState) -> CycleReport:
        """Run one cycle from ``state``; the returned report carries the next state."""
        start = time.monotonic()
        from_block = state.last_processed_block
        report = CycleReport(
            started_at=datetime.now(timezone.utc).isoformat(),
            from_block=from_block,
            checkpoint=state,
        )

        try:
            current = await self._node.get_block_number()
        except NodeError as exc:
            log.warning("Cannot read chain head, skipping cycle: %s", exc)
            report.skipped_reason = "node_unavailable"
            return self._finish(report, start)
        report.to_block = current

        try:
            contracts = await self._resolver.resolve()
        except DirectoryUnavailable as exc:
            log.warning("Contract directory unavailable, skipping cycle: %s", exc)
            report.skipped_reason = "directory_unavailable"
            return self._finish(report, start)
        report.contracts = len(contracts)

        gate = _RateGate(self._rate_limit_delay, self._clock, self._sleep)
        for contract in contracts:
            await gate.wait()
            try:
                await self._ingest_contract(contract, from_block, current, report)
            except FetchFailed as exc:
                log.error("Fetch failed for %s (%s): %s", contract.symbol, contract.address, exc)
                report.fetch_failures.append(contract.address)
            finally:
                gate.mark()

        if report.fetch_failures:
            log.warning(
                "Holding checkpoint at %d: %d contract(s) failed to fetch",
                from_block, len(report.fetch_failures),
            )
            return self._finish(report, start)

        next_state = state.advance_to(current)
        await self._checkpoints.save(next_state.last_processed_block)
        report.checkpoint = next_state
        report.advanced = True
        return self._finish(report, start)

    async def _ingest_contract(
        self,
        contract: MonitoredContract,
        from_block: int,
        to_block: int,
        report: CycleReport,
    ) -> None:
        for kind in EventKind:
            logs = await self._fetcher.fetch(contract, kind, from_block, to_block)
            report.logs_fetched += len(logs)

            for raw in logs:
                try:
                    event = decode_log(raw, kind, contract)
                except DecodeError as exc:
                    log.warning(
                        "Dropping %s log %s#%d from %s: %s",
                        kind.value, raw.tx_hash or raw.block_number, raw.log_index,
                        contract.symbol, exc,
                    )
                    report.events_dropped += 1
                    continue
                report.events_decoded += 1

                try:
                    await self._sink.insert(event)
                except PersistenceFailure as exc:
                    log.error("Error saving %s event: %s", kind.value, exc)
                    report.persist_failures += 1
                else:
                    report.events_persisted += 1

    def _finish(self, report: CycleReport, start: float) -> CycleReport:
        report.duration_ms = int((time.monotonic() - start) * 1000)
        if report.skipped_reason:
            log.info("Cycle skipped (%s) after %dms", report.skipped_reason, report.duration_ms)
            return report
        log.info(
            "Cycle [%d, %s]: %d contracts, %d logs, %d persisted, %d dropped, "
            "%d persist failures, %d fetch failures, checkpoint %d in %dms",
            report.from_block, report.to_block, report.contracts, report.logs_fetched,
            report.events_persisted, report.events_dropped, report.persist_failures,
            len(report.fetch_failures), report.checkpoint.last_processed_block,
            report.duration_ms,
        )
        return report
