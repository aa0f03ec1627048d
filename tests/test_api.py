"""Tests 40-46: read API endpoints."""

from __future__ import annotations

import pytest
from aiohttp.test_utils import TestClient, TestServer

from ftso_indexer.api.data_api import MAX_LIMIT, create_app
from ftso_indexer.chain.decoder import decode_log
from ftso_indexer.models.events import EventKind
from ftso_indexer.storage.checkpoint import FileCheckpointStore
from ftso_indexer.storage.sqlite import SQLiteCheckpointStore

from tests.factories import VOTER, make_contract, make_price_finalized_log, make_price_revealed_log


@pytest.fixture
async def api_client(store):
    """Test client over the in-memory store with checkpoint 150."""
    checkpoints = SQLiteCheckpointStore(store, default_block=0)
    await checkpoints.save(150)

    client = TestClient(TestServer(create_app(store, checkpoints)))
    await client.start_server()
    yield client
    await client.close()


async def _seed(store) -> None:
    contract = make_contract()
    for epoch in (1, 2, 3):
        await store.insert(decode_log(
            make_price_finalized_log(epoch_id=epoch, price=epoch * 100),
            EventKind.PRICE_FINALIZED, contract,
        ))
        await store.insert(decode_log(
            make_price_revealed_log(epoch_id=epoch, price=epoch * 100 + 1),
            EventKind.PRICE_REVEALED, contract,
        ))


# ── Test 40: status ────────────────────────────────────────────────


async def test_status_reports_checkpoint(api_client):
    resp = await api_client.get("/status")
    assert resp.status == 200
    assert await resp.json() == {"lastProcessedBlock": 150}


# ── Test 41: finalized prices ──────────────────────────────────────


async def test_prices_for_symbol(api_client, store):
    """Rows in range come back as camelCase JSON ordered by epoch."""
    await _seed(store)

    resp = await api_client.get(
        "/prices-for-symbol", params={"symbol": "FLR", "startEpochId": 2, "endEpochId": 3},
    )

    assert resp.status == 200
    body = await resp.json()
    assert [r["epochId"] for r in body] == [2, 3]
    first = body[0]
    assert first["price"] == 200
    assert first["finalizationType"] == "WEIGHTED_MEDIAN"
    assert first["rewardedFtso"] is True
    assert first["lowIQRRewardPrice"] == 990_000
    assert first["timestamp"] == "2023-11-14T22:16:20+00:00"
    assert first["blockNumber"] == 130


# ── Test 42: votes of one voter ────────────────────────────────────


async def test_votes_of_voter(api_client, store):
    await _seed(store)

    resp = await api_client.get(
        f"/votes-of/{VOTER}", params={"symbol": "FLR", "startEpochId": 0, "endEpochId": 10},
    )

    assert resp.status == 200
    body = await resp.json()
    assert [r["price"] for r in body] == [101, 201, 301]
    assert body[0]["voter"].lower() == VOTER
    assert body[0]["votePowerNat"] == 500


# ── Test 43: pagination ────────────────────────────────────────────


async def test_limit_and_offset(api_client, store):
    await _seed(store)

    resp = await api_client.get(
        "/prices-for-symbol",
        params={"symbol": "FLR", "startEpochId": 0, "endEpochId": 10, "limit": 1, "offset": 1},
    )
    assert [r["epochId"] for r in await resp.json()] == [2]


async def test_limit_is_capped(api_client, store, monkeypatch):
    """A limit above the maximum is clamped, not rejected."""
    seen = {}
    original = store.get_finalized_prices

    async def spy(*args, **kwargs):
        seen.update(kwargs)
        return await original(*args, **kwargs)

    monkeypatch.setattr(store, "get_finalized_prices", spy)
    resp = await api_client.get(
        "/prices-for-symbol",
        params={"symbol": "FLR", "startEpochId": 0, "endEpochId": 1, "limit": 50_000},
    )

    assert resp.status == 200
    assert seen["limit"] == MAX_LIMIT


# ── Test 44: missing parameters ────────────────────────────────────


@pytest.mark.parametrize("params", [
    {"startEpochId": 1, "endEpochId": 2},
    {"symbol": "FLR", "endEpochId": 2},
    {"symbol": "FLR", "startEpochId": 1},
])
async def test_missing_parameter_is_400(api_client, params):
    resp = await api_client.get("/prices-for-symbol", params=params)
    assert resp.status == 400
    assert "error" in await resp.json()


# ── Test 45: bad parameter values ──────────────────────────────────


@pytest.mark.parametrize("value", ["abc", "-1", "1.5"])
async def test_bad_epoch_is_400(api_client, value):
    resp = await api_client.get(
        f"/votes-of/{VOTER}", params={"symbol": "FLR", "startEpochId": value, "endEpochId": 2},
    )
    assert resp.status == 400


# ── Test 46: empty result is an empty list ─────────────────────────


async def test_unknown_symbol_returns_empty_list(api_client):
    resp = await api_client.get(
        "/prices-for-symbol", params={"symbol": "NOPE", "startEpochId": 0, "endEpochId": 10},
    )
    assert resp.status == 200
    assert await resp.json() == []


# ── Status with an unreadable checkpoint ─────────────────────────


async def test_status_corrupt_checkpoint_is_json_error(store, tmp_path):
    """An unreadable checkpoint file yields a JSON error body, not a bare 500."""
    path = tmp_path / "last_block.txt"
    path.write_text("garbage")

    client = TestClient(TestServer(create_app(store, FileCheckpointStore(path, default_block=0))))
    await client.start_server()
    try:
        resp = await client.get("/status")
        assert resp.status == 500
        assert "error" in await resp.json()
    finally:
        await client.close()
