"""Configuration loading: TOML file + environment variables."""

from __future__ import annotations

import os
import tomllib
from pathlib import Path

from ftso_indexer.models.config import CheckpointBackend, IndexerConfig


def load_config(
    config_path: str | Path | None = None,
    env_prefix: str = "FTSO_INDEXER_",
) -> IndexerConfig:
    """Load indexer configuration from a TOML file and env vars.

    Priority (highest wins):
        1. Environment variables (FTSO_INDEXER_RPC_URL, etc.)
        2. Legacy environment variables (FLARE_RPC_URL, PRICE_SUBMITTER_ADDRESS, PORT)
        3. TOML config file
        4. Defaults from IndexerConfig
    """
    raw: dict = {}
    if config_path is not None:
        p = Path(config_path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    cfg = IndexerConfig()

    # ── Indexer section ────────────────────────────────────
    indexer = raw.get("indexer", {})
    if v := indexer.get("poll_interval_ms"):
        cfg.poll_interval_ms = int(v)
    if (v := indexer.get("rate_limit_delay_ms")) is not None:
        cfg.rate_limit_delay_ms = int(v)
    if (v := indexer.get("start_block")) is not None:
        cfg.start_block = int(v)
    if v := indexer.get("log_level"):
        cfg.log_level = str(v)

    # ── Node section ───────────────────────────────────────
    node = raw.get("node", {})
    if v := node.get("rpc_url"):
        cfg.rpc_url = str(v)
    if v := node.get("registry_address"):
        cfg.registry_address = str(v)

    # ── Storage section ────────────────────────────────────
    storage = raw.get("storage", {})
    if v := storage.get("db_path"):
        cfg.db_path = str(v)
    if v := storage.get("checkpoint_backend"):
        cfg.checkpoint_backend = CheckpointBackend(v)
    if v := storage.get("checkpoint_path"):
        cfg.checkpoint_path = str(v)

    # ── API section ────────────────────────────────────────
    api = raw.get("api", {})
    if (v := api.get("enabled")) is not None:
        cfg.serve_api = bool(v)
    if v := api.get("host"):
        cfg.api_host = str(v)
    if v := api.get("port"):
        cfg.api_port = int(v)

    # ── Legacy environment names ───────────────────────────
    if rpc := os.environ.get("FLARE_RPC_URL"):
        cfg.rpc_url = rpc
    if addr := os.environ.get("PRICE_SUBMITTER_ADDRESS"):
        cfg.registry_address = addr
    if port := os.environ.get("PORT"):
        cfg.api_port = int(port)

    # ── Environment variable overrides (highest priority) ──
    if rpc := os.environ.get(f"{env_prefix}RPC_URL"):
        cfg.rpc_url = rpc
    if addr := os.environ.get(f"{env_prefix}REGISTRY_ADDRESS"):
        cfg.registry_address = addr
    if v := os.environ.get(f"{env_prefix}POLL_INTERVAL_MS"):
        cfg.poll_interval_ms = int(v)
    if v := os.environ.get(f"{env_prefix}RATE_LIMIT_DELAY_MS"):
        cfg.rate_limit_delay_ms = int(v)
    if v := os.environ.get(f"{env_prefix}START_BLOCK"):
        cfg.start_block = int(v)
    if v := os.environ.get(f"{env_prefix}DB_PATH"):
        cfg.db_path = v
    if v := os.environ.get(f"{env_prefix}CHECKPOINT_PATH"):
        cfg.checkpoint_path = v
    if port := os.environ.get(f"{env_prefix}API_PORT"):
        cfg.api_port = int(port)

    if cfg.poll_interval_ms <= 0:
        raise ValueError(f"poll_interval_ms must be > 0, got {cfg.poll_interval_ms}")
    if cfg.rate_limit_delay_ms < 0:
        raise ValueError(f"rate_limit_delay_ms must be >= 0, got {cfg.rate_limit_delay_ms}")
    if cfg.start_block < 0:
        raise ValueError(f"start_block must be >= 0, got {cfg.start_block}")

    # Expand ~ in paths
    if cfg.db_path != ":memory:":
        cfg.db_path = str(Path(cfg.db_path).expanduser())
    cfg.checkpoint_path = str(Path(cfg.checkpoint_path).expanduser())

    return cfg
