"""Main daemon - wires all components together."""

from __future__ import annotations

import asyncio
import logging
import signal

from aiohttp import web

from ftso_indexer.api.data_api import create_app, start_api
from ftso_indexer.chain.directory import ContractDirectoryResolver
from ftso_indexer.chain.fetcher import LogFetcher
from ftso_indexer.chain.rpc import JsonRpcNode
from ftso_indexer.ingest.scheduler import IngestionScheduler
from ftso_indexer.interfaces.store import CheckpointStore
from ftso_indexer.models.config import CheckpointBackend, IndexerConfig
from ftso_indexer.models.records import CycleReport
from ftso_indexer.storage.checkpoint import FileCheckpointStore
from ftso_indexer.storage.sqlite import SQLiteCheckpointStore, SQLiteEventStore

log = logging.getLogger(__name__)


def build_checkpoint_store(cfg: IndexerConfig, store: SQLiteEventStore) -> CheckpointStore:
    if cfg.checkpoint_backend == CheckpointBackend.SQLITE:
        return SQLiteCheckpointStore(store, cfg.start_block)
    return FileCheckpointStore(cfg.checkpoint_path, cfg.start_block)


class IndexerDaemon:
    """FTSO price event indexer.

    Polls the node for PriceRevealed / PriceFinalized logs of every feed
    contract, persists them, and optionally serves the read API.
    """

    def __init__(self, cfg: IndexerConfig) -> None:
        self._cfg = cfg
        self._api_runner: web.AppRunner | None = None

        self.node = JsonRpcNode(cfg.rpc_url)
        self.store = SQLiteEventStore(cfg.db_path)
        self.checkpoints = build_checkpoint_store(cfg, self.store)
        self.scheduler = IngestionScheduler(
            node=self.node,
            resolver=ContractDirectoryResolver(self.node, cfg.registry_address),
            fetcher=LogFetcher(self.node),
            sink=self.store,
            checkpoints=self.checkpoints,
            poll_interval=cfg.poll_interval,
            rate_limit_delay=cfg.rate_limit_delay,
        )

    async def start(self) -> None:
        """Initialize components and run until stopped."""
        log.info("Starting ftso_indexer daemon")
        log.info("  RPC: %s", self._cfg.rpc_url)
        log.info("  Registry: %s", self._cfg.registry_address)
        log.info("  Poll interval: %dms", self._cfg.poll_interval_ms)
        log.info("  Rate limit delay: %dms", self._cfg.rate_limit_delay_ms)
        log.info("  Checkpoint: %s", self._cfg.checkpoint_backend.value)

        await self.store.initialize()
        try:
            await self.scheduler.load_state()
            if self._cfg.serve_api:
                app = create_app(self.store, self.checkpoints)
                self._api_runner = await start_api(
                    app, self._cfg.api_host, self._cfg.api_port,
                )
            await self.scheduler.run_forever()
        finally:
            if self._api_runner:
                await self._api_runner.cleanup()
            await self.node.close()
            await self.store.close()
            log.info("Daemon shut down cleanly")

    async def stop(self) -> None:
        """Signal the daemon to stop after the current cycle."""
        log.info("Stop requested")
        self.scheduler.stop()

    async def run_once(self) -> CycleReport:
        """Run a single ingestion cycle and release resources."""
        await self.store.initialize()
        try:
            report = await self.scheduler.trigger()
            assert report is not None
            return report
        finally:
            await self.node.close()
            await self.store.close()


async def run_daemon(cfg: IndexerConfig) -> None:
    """Entry point for running the daemon."""
    daemon = IndexerDaemon(cfg)

    loop = asyncio.get_running_loop()

    def _signal_handler():
        asyncio.ensure_future(daemon.stop())

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    await daemon.start()


async def serve_api(cfg: IndexerConfig) -> None:
    """Serve the read API alone, without ingesting."""
    store = SQLiteEventStore(cfg.db_path)
    await store.initialize()
    runner = await start_api(
        create_app(store, build_checkpoint_store(cfg, store)), cfg.api_host, cfg.api_port,
    )
    stop = asyncio.Event()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, stop.set)
        except NotImplementedError:
            pass

    try:
        await stop.wait()
    finally:
        await runner.cleanup()
        await store.close()
