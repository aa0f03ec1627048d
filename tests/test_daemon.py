"""Tests 57-61: daemon wiring end to end and the command-line interface."""

from __future__ import annotations

import pytest
from click.testing import CliRunner

from ftso_indexer.cli import cli
from ftso_indexer.errors import CheckpointCorrupt
from ftso_indexer.storage.sqlite import SQLiteEventStore

from tests.conftest import make_test_config
from tests.factories import make_price_finalized_log, make_price_revealed_log


@pytest.fixture
def test_config(tmp_path):
    """File-backed database and checkpoint so state outlives the daemon."""
    return make_test_config(
        start_block=100,
        db_path=str(tmp_path / "events.db"),
        checkpoint_path=str(tmp_path / "last_block.txt"),
    )


# ── Test 57: one cycle through the real stores ─────────────────────


async def test_run_once_persists_and_checkpoints(daemon, mock_node, test_config, tmp_path):
    """Logs from the node end up in SQLite and the checkpoint file."""
    mock_node.add_logs(
        make_price_revealed_log(block_number=120),
        make_price_finalized_log(block_number=130),
    )

    report = await daemon.run_once()

    assert report.events_persisted == 2
    assert (tmp_path / "last_block.txt").read_text() == "150"

    store = SQLiteEventStore(test_config.db_path)
    await store.initialize()
    try:
        assert await store.count_events() == {"price_revealed": 1, "price_finalized": 1}
        (row,) = await store.get_finalized_prices("FLR", 42, 42)
        assert row.block_number == 130
    finally:
        await store.close()


# ── Test 58: restart resumes from the saved checkpoint ─────────────


async def test_restart_resumes_from_checkpoint(daemon, mock_node, tmp_path):
    (tmp_path / "last_block.txt").write_text("140")

    report = await daemon.run_once()

    assert report.from_block == 140
    assert mock_node.get_logs_calls[0][2:] == (140, 150)



async def test_start_fails_on_corrupt_checkpoint(daemon, mock_node, tmp_path):
    """The daemon refuses to start rather than re-indexing from the start block."""
    (tmp_path / "last_block.txt").write_text("garbage")

    with pytest.raises(CheckpointCorrupt):
        await daemon.start()
    assert mock_node.block_number_calls == 0
    assert (tmp_path / "last_block.txt").read_text() == "garbage"


# ── Test 59: checkpoint CLI ────────────────────────────────────────


def _config_file(tmp_path) -> str:
    path = tmp_path / "config.toml"
    path.write_text(
        "[indexer]\nstart_block = 777\n"
        f'[storage]\ndb_path = "{tmp_path / "events.db"}"\n'
        f'checkpoint_path = "{tmp_path / "last_block.txt"}"\n'
    )
    return str(path)


def test_checkpoint_show_and_set(tmp_path):
    runner = CliRunner()
    config = _config_file(tmp_path)

    result = runner.invoke(cli, ["-c", config, "checkpoint", "show"], obj={})
    assert result.exit_code == 0, result.output
    assert result.output.strip().splitlines()[-1] == "777"

    result = runner.invoke(cli, ["-c", config, "checkpoint", "set", "900", "--yes"], obj={})
    assert result.exit_code == 0, result.output
    assert (tmp_path / "last_block.txt").read_text() == "900"


# ── Test 60: corrupt checkpoint is reported, not reset ─────────────


def test_checkpoint_show_corrupt(tmp_path):
    config = _config_file(tmp_path)
    (tmp_path / "last_block.txt").write_text("garbage")

    result = CliRunner().invoke(cli, ["-c", config, "checkpoint", "show"], obj={})

    assert result.exit_code == 1
    assert (tmp_path / "last_block.txt").read_text() == "garbage"


# ── Test 61: status ────────────────────────────────────────────────


def test_status_prints_config(tmp_path):
    result = CliRunner().invoke(cli, ["-c", _config_file(tmp_path), "status"], obj={})

    assert result.exit_code == 0, result.output
    assert "Start block:   777" in result.output
    assert "last_block.txt" in result.output
