"""CLI entry point for the ftso_indexer daemon."""

from __future__ import annotations

import asyncio
import logging
import sys

import click

from ftso_indexer.config import load_config
from ftso_indexer.daemon import IndexerDaemon, build_checkpoint_store, run_daemon, serve_api
from ftso_indexer.errors import CheckpointCorrupt
from ftso_indexer.models.config import CheckpointBackend
from ftso_indexer.storage.sqlite import SQLiteEventStore


def _load(ctx: click.Context):
    try:
        return load_config(ctx.obj["config_path"])
    except ValueError as exc:
        click.echo(f"Error: invalid configuration: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.option("-c", "--config", "config_path", default=None, help="Path to config TOML file")
@click.option("-v", "--verbose", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, verbose: bool) -> None:
    """ftso_indexer - FTSO price event indexer and read API."""
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["verbose"] = verbose

    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


# ── Daemon ─────────────────────────────────────────────


@cli.command()
@click.option("--no-api", is_flag=True, help="Do not serve the read API")
@click.pass_context
def run(ctx: click.Context, no_api: bool) -> None:
    """Start the ingestion daemon (and the read API)."""
    cfg = _load(ctx)
    if no_api:
        cfg.serve_api = False

    click.echo(f"Starting ftso_indexer (registry: {cfg.registry_address})")
    try:
        asyncio.run(run_daemon(cfg))
    except CheckpointCorrupt as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)


@cli.command()
@click.pass_context
def serve(ctx: click.Context) -> None:
    """Serve the read API only."""
    cfg = _load(ctx)
    click.echo(f"Serving read API on http://{cfg.api_host}:{cfg.api_port}")
    asyncio.run(serve_api(cfg))


@cli.command()
@click.pass_context
def cycle(ctx: click.Context) -> None:
    """Run exactly one ingestion cycle and print the report."""
    cfg = _load(ctx)
    try:
        report = asyncio.run(IndexerDaemon(cfg).run_once())
    except CheckpointCorrupt as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)

    if report.skipped_reason:
        click.echo(f"Cycle skipped: {report.skipped_reason}", err=True)
        sys.exit(1)
    click.echo(f"Range:       [{report.from_block}, {report.to_block}]")
    click.echo(f"Contracts:   {report.contracts}")
    click.echo(f"Logs:        {report.logs_fetched}")
    click.echo(f"Persisted:   {report.events_persisted}")
    click.echo(f"Dropped:     {report.events_dropped}")
    click.echo(f"Failures:    {report.persist_failures} persist, "
               f"{len(report.fetch_failures)} fetch")
    click.echo(f"Checkpoint:  {report.checkpoint.last_processed_block}"
               f"{'' if report.advanced else ' (held)'}")


# ── Info ───────────────────────────────────────────────


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show indexer configuration."""
    cfg = _load(ctx)
    click.echo(f"RPC URL:       {cfg.rpc_url}")
    click.echo(f"Registry:      {cfg.registry_address}")
    click.echo(f"Poll interval: {cfg.poll_interval_ms} ms")
    click.echo(f"Rate limit:    {cfg.rate_limit_delay_ms} ms")
    click.echo(f"Start block:   {cfg.start_block}")
    click.echo(f"DB path:       {cfg.db_path}")
    where = cfg.checkpoint_path if cfg.checkpoint_backend == CheckpointBackend.FILE else cfg.db_path
    click.echo(f"Checkpoint:    {cfg.checkpoint_backend.value} ({where})")
    api = f"http://{cfg.api_host}:{cfg.api_port}" if cfg.serve_api else "(disabled)"
    click.echo(f"Read API:      {api}")


# ── Checkpoint ─────────────────────────────────────────


@cli.group()
def checkpoint() -> None:
    """Inspect or override the last processed block."""


async def _with_checkpoints(cfg, fn):
    store = SQLiteEventStore(cfg.db_path)
    await store.initialize()
    try:
        return await fn(build_checkpoint_store(cfg, store))
    finally:
        await store.close()


@checkpoint.command("show")
@click.pass_context
def checkpoint_show(ctx: click.Context) -> None:
    """Print the last processed block."""
    cfg = _load(ctx)
    try:
        block = asyncio.run(_with_checkpoints(cfg, lambda cp: cp.load()))
    except CheckpointCorrupt as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(1)
    click.echo(str(block))


@checkpoint.command("set")
@click.argument("block", type=click.IntRange(min=0))
@click.option("--yes", "-y", is_flag=True, help="Skip confirmation prompt")
@click.pass_context
def checkpoint_set(ctx: click.Context, block: int, yes: bool) -> None:
    """Overwrite the last processed block (do not run while the daemon is up)."""
    cfg = _load(ctx)
    if not yes:
        click.confirm(f"Set checkpoint to block {block}?", abort=True)
    asyncio.run(_with_checkpoints(cfg, lambda cp: cp.save(block)))
    click.echo(f"Checkpoint set to {block}")


def main() -> None:
    cli(obj={})


if __name__ == "__main__":
    main()
