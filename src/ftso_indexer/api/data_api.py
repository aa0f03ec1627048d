"""Read-only HTTP API over persisted price events."""

from __future__ import annotations

import logging
from typing import Any

from aiohttp import web

from ftso_indexer.errors import CheckpointCorrupt
from ftso_indexer.interfaces.store import CheckpointStore, EventQueries
from ftso_indexer.models.events import PriceFinalizedEvent, PriceRevealedEvent

log = logging.getLogger(__name__)

DEFAULT_LIMIT = 100
MAX_LIMIT = 1000

QUERIES_KEY = web.AppKey("queries", EventQueries)
CHECKPOINTS_KEY = web.AppKey("checkpoints", CheckpointStore)


def _revealed_json(e: PriceRevealedEvent) -> dict[str, Any]:
    return {
        "voter": e.voter,
        "epochId": e.epoch_id,
        "price": e.price,
        "timestamp": e.timestamp.isoformat(),
        "votePowerNat": e.vote_power_nat,
        "votePowerAsset": e.vote_power_asset,
        "symbol": e.symbol,
        "blockNumber": e.block_number,
        "transactionHash": e.tx_hash,
    }


def _finalized_json(e: PriceFinalizedEvent) -> dict[str, Any]:
    return {
        "epochId": e.epoch_id,
        "price": e.price,
        "rewardedFtso": e.rewarded_ftso,
        "lowIQRRewardPrice": e.low_iqr_reward_price,
        "highIQRRewardPrice": e.high_iqr_reward_price,
        "lowElasticBandRewardPrice": e.low_elastic_band_reward_price,
        "highElasticBandRewardPrice": e.high_elastic_band_reward_price,
        "finalizationType": e.finalization_type,
        "timestamp": e.timestamp.isoformat(),
        "symbol": e.symbol,
        "blockNumber": e.block_number,
        "transactionHash": e.tx_hash,
    }


class QueryParamError(ValueError):
    """A request parameter is missing or not valid."""


def _int_param(request: web.Request, name: str, default: int | None = None) -> int:
    raw = request.query.get(name)
    if raw is None or raw == "":
        if default is None:
            raise QueryParamError(f"missing required parameter '{name}'")
        return default
    try:
        value = int(raw)
    except ValueError:
        raise QueryParamError(f"parameter '{name}' must be an integer") from None
    if value < 0:
        raise QueryParamError(f"parameter '{name}' must be >= 0")
    return value


def _range_params(request: web.Request) -> tuple[str, int, int, int, int]:
    symbol = request.query.get("symbol")
    if not symbol:
        raise QueryParamError("missing required parameter 'symbol'")
    start = _int_param(request, "startEpochId")
    end = _int_param(request, "endEpochId")
    limit = min(_int_param(request, "limit", DEFAULT_LIMIT), MAX_LIMIT)
    offset = _int_param(request, "offset", 0)
    return symbol, start, end, limit, offset


def _bad_request(exc: Exception) -> web.Response:
    return web.json_response({"error": str(exc)}, status=400)


async def prices_for_symbol(request: web.Request) -> web.Response:
    """GET /prices-for-symbol - finalized prices for a symbol over an epoch range."""
    try:
        symbol, start, end, limit, offset = _range_params(request)
    except QueryParamError as exc:
        return _bad_request(exc)

    rows = await request.app[QUERIES_KEY].get_finalized_prices(
        symbol, start, end, limit=limit, offset=offset,
    )
    return web.json_response([_finalized_json(r) for r in rows])


async def votes_of(request: web.Request) -> web.Response:
    """GET /votes-of/{voterAddress} - one voter's revealed prices."""
    voter = request.match_info["voterAddress"]
    try:
        symbol, start, end, limit, offset = _range_params(request)
    except QueryParamError as exc:
        return _bad_request(exc)

    rows = await request.app[QUERIES_KEY].get_revealed_votes(
        voter, symbol, start, end, limit=limit, offset=offset,
    )
    return web.json_response([_revealed_json(r) for r in rows])


async def status(request: web.Request) -> web.Response:
    """GET /status - the last fully processed block."""
    try:
        last_block = await request.app[CHECKPOINTS_KEY].load()
    except CheckpointCorrupt as exc:
        log.error("Cannot read checkpoint for /status: %s", exc)
        return web.json_response({"error": str(exc)}, status=500)
    return web.json_response({"lastProcessedBlock": last_block})


def create_app(queries: EventQueries, checkpoints: CheckpointStore) -> web.Application:
    """Build the aiohttp application."""
    app = web.Application()
    app[QUERIES_KEY] = queries
    app[CHECKPOINTS_KEY] = checkpoints
    app.router.add_get("/prices-for-symbol", prices_for_symbol)
    app.router.add_get("/votes-of/{voterAddress}", votes_of)
    app.router.add_get("/status", status)
    return app


async def start_api(app: web.Application, host: str, port: int) -> web.AppRunner:
    """Start serving ``app``; the caller owns the runner and must clean it up."""
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, host, port)
    await site.start()
    log.info("Read API listening on http://%s:%d", host, port)
    return runner
