"""Shared fixtures for ftso_indexer tests."""

from __future__ import annotations

import pytest
from eth_utils import to_checksum_address
from pytest_metadata.plugin import metadata_key

from ftso_indexer.chain.directory import ContractDirectoryResolver
from ftso_indexer.chain.fetcher import LogFetcher
from ftso_indexer.daemon import IndexerDaemon
from ftso_indexer.ingest.scheduler import IngestionScheduler
from ftso_indexer.models.config import PRICE_SUBMITTER_ADDRESS, IndexerConfig
from ftso_indexer.storage.sqlite import SQLiteEventStore

from tests.factories import FEED_FLR, directory_responses
from tests.mocks import MockCheckpointStore, MockNode, MockSink, RecordingSleep

REGISTRY = to_checksum_address(PRICE_SUBMITTER_ADDRESS)
MANAGER = to_checksum_address("0x" + "aa" * 20)


# ── Report metadata ──────────────────────────────────────────────


def pytest_configure(config):
    """Add chain info to the report Environment table."""
    meta = config.stash.setdefault(metadata_key, {})
    meta["Network"] = "Flare (mocked JSON-RPC)"
    meta["Registry"] = REGISTRY


def make_test_config(**overrides) -> IndexerConfig:
    """Build an IndexerConfig suitable for testing."""
    defaults = dict(
        poll_interval_ms=10,
        rate_limit_delay_ms=0,
        start_block=0,
        rpc_url="http://127.0.0.1:9650/ext/C/rpc",
        registry_address=REGISTRY,
        db_path=":memory:",
        checkpoint_path="/nonexistent/last_block.txt",
        serve_api=False,
    )
    defaults.update(overrides)
    return IndexerConfig(**defaults)


def make_scheduler(node, sink=None, checkpoints=None, **kwargs) -> IngestionScheduler:
    """IngestionScheduler over mocks, with no real sleeping between contracts."""
    kwargs.setdefault("rate_limit_delay", 0.0)
    kwargs.setdefault("poll_interval", 0.01)
    kwargs.setdefault("sleep", RecordingSleep())
    return IngestionScheduler(
        node=node,
        resolver=ContractDirectoryResolver(node, REGISTRY),
        fetcher=LogFetcher(node),
        sink=sink if sink is not None else MockSink(),
        checkpoints=checkpoints if checkpoints is not None else MockCheckpointStore(),
        **kwargs,
    )


@pytest.fixture
def test_config(tmp_path):
    """Default IndexerConfig for tests, with a temp checkpoint file."""
    return make_test_config(checkpoint_path=str(tmp_path / "last_block.txt"))


@pytest.fixture
async def store():
    """Initialized in-memory SQLiteEventStore."""
    s = SQLiteEventStore(":memory:")
    await s.initialize()
    yield s
    await s.close()


@pytest.fixture
def mock_node():
    """Node at head 150 with a one-feed directory (FLR)."""
    node = MockNode(head=150)
    node.calls.update(directory_responses(REGISTRY, MANAGER, {FEED_FLR: "FLR"}))
    return node


@pytest.fixture
def mock_sink():
    return MockSink()


@pytest.fixture
def mock_checkpoints():
    return MockCheckpointStore(saved=100)


@pytest.fixture
async def daemon(test_config, mock_node):
    """IndexerDaemon with the real stores and a mocked chain node."""
    d = IndexerDaemon(test_config)
    await d.node.close()
    d.node = mock_node
    d.scheduler = IngestionScheduler(
        node=mock_node,
        resolver=ContractDirectoryResolver(mock_node, test_config.registry_address),
        fetcher=LogFetcher(mock_node),
        sink=d.store,
        checkpoints=d.checkpoints,
        poll_interval=test_config.poll_interval,
        rate_limit_delay=test_config.rate_limit_delay,
    )
    return d
