"""Tests 10-17: contract directory resolution and log fetching."""

from __future__ import annotations

import pytest
from eth_abi import encode

from ftso_indexer.chain.abi import GET_FTSOS, PRICE_FINALIZED, PRICE_REVEALED, encode_call
from ftso_indexer.chain.directory import ContractDirectoryResolver
from ftso_indexer.chain.fetcher import LogFetcher
from ftso_indexer.errors import DirectoryUnavailable, FetchFailed, NodeError
from ftso_indexer.models.events import EventKind

from tests.conftest import MANAGER, REGISTRY
from tests.factories import (
    FEED_BTC,
    FEED_FLR,
    FEED_XRP,
    directory_responses,
    make_contract,
    make_price_revealed_log,
)
from tests.mocks import MockNode


def _node_with_feeds(feeds: dict[str, str]) -> MockNode:
    node = MockNode()
    node.calls.update(directory_responses(REGISTRY, MANAGER, feeds))
    return node


# ── Test 10: resolve every feed with its symbol ────────────────────


async def test_resolve_returns_feeds_in_manager_order():
    """Registry → manager → feeds, each paired with its symbol()."""
    node = _node_with_feeds({FEED_FLR: "FLR", FEED_XRP: "XRP", FEED_BTC: "BTC"})
    contracts = await ContractDirectoryResolver(node, REGISTRY).resolve()

    assert [(c.address, c.symbol) for c in contracts] == [
        (FEED_FLR, "FLR"), (FEED_XRP, "XRP"), (FEED_BTC, "BTC"),
    ]


# ── Test 11: empty feed list ───────────────────────────────────────


async def test_resolve_empty_feed_list():
    """A manager with no feeds resolves to an empty list, not an error."""
    node = _node_with_feeds({})
    assert await ContractDirectoryResolver(node, REGISTRY).resolve() == []


# ── Test 12: resolution is all or nothing ──────────────────────────


async def test_registry_failure_raises_directory_unavailable():
    node = _node_with_feeds({FEED_FLR: "FLR"})
    del node.calls[(REGISTRY.lower(), encode_call("getFtsoManager()"))]

    with pytest.raises(DirectoryUnavailable):
        await ContractDirectoryResolver(node, REGISTRY).resolve()


async def test_one_symbol_failure_fails_whole_resolution():
    """A single failing symbol() call yields no partial list."""
    node = _node_with_feeds({FEED_FLR: "FLR", FEED_XRP: "XRP"})
    node.calls[(FEED_XRP.lower(), encode_call("symbol()"))] = NodeError("timeout")

    with pytest.raises(DirectoryUnavailable):
        await ContractDirectoryResolver(node, REGISTRY).resolve()


async def test_garbled_feed_list_raises_directory_unavailable():
    node = _node_with_feeds({FEED_FLR: "FLR"})
    node.calls[(MANAGER.lower(), encode_call(GET_FTSOS))] = b"\x00" * 5

    with pytest.raises(DirectoryUnavailable):
        await ContractDirectoryResolver(node, REGISTRY).resolve()


# ── Test 13: zero manager address ──────────────────────────────────


async def test_zero_manager_raises_directory_unavailable():
    node = _node_with_feeds({})
    node.calls[(REGISTRY.lower(), encode_call("getFtsoManager()"))] = encode(
        ["address"], ["0x" + "00" * 20]
    )

    with pytest.raises(DirectoryUnavailable):
        await ContractDirectoryResolver(node, REGISTRY).resolve()


# ── Test 14: nothing is cached between resolutions ─────────────────


async def test_resolve_reflects_directory_changes():
    """A feed added on chain shows up on the next resolve()."""
    node = _node_with_feeds({FEED_FLR: "FLR"})
    resolver = ContractDirectoryResolver(node, REGISTRY)
    assert len(await resolver.resolve()) == 1

    node.calls.update(directory_responses(REGISTRY, MANAGER, {FEED_FLR: "FLR", FEED_XRP: "XRP"}))
    assert [c.symbol for c in await resolver.resolve()] == ["FLR", "XRP"]


# ── Test 15: fetch uses the event kind's topic and inclusive range ──


async def test_fetch_queries_kind_topic_over_range():
    node = MockNode()
    node.add_logs(
        make_price_revealed_log(block_number=99),
        make_price_revealed_log(block_number=100),
        make_price_revealed_log(block_number=150, log_index=1),
        make_price_revealed_log(block_number=151),
    )
    contract = make_contract()

    logs = await LogFetcher(node).fetch(contract, EventKind.PRICE_REVEALED, 100, 150)

    assert [rl.block_number for rl in logs] == [100, 150]
    assert node.get_logs_calls == [(contract.address, PRICE_REVEALED.topic0, 100, 150)]

    await LogFetcher(node).fetch(contract, EventKind.PRICE_FINALIZED, 100, 150)
    assert node.get_logs_calls[-1][1] == PRICE_FINALIZED.topic0


# ── Test 16: empty range short-circuits ────────────────────────────


async def test_fetch_empty_range_skips_node():
    """from_block > to_block returns [] without querying the node."""
    node = MockNode()
    logs = await LogFetcher(node).fetch(make_contract(), EventKind.PRICE_REVEALED, 151, 150)

    assert logs == []
    assert node.get_logs_calls == []


# ── Test 17: node errors become FetchFailed ────────────────────────


async def test_fetch_node_error_raises_fetch_failed():
    node = MockNode()
    contract = make_contract(FEED_XRP, "XRP")
    node.fail_logs_for(FEED_XRP)

    with pytest.raises(FetchFailed) as exc_info:
        await LogFetcher(node).fetch(contract, EventKind.PRICE_FINALIZED, 0, 10)
    assert exc_info.value.address == FEED_XRP
