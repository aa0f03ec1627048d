"""File-backed checkpoint store - one human-readable integer."""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from pathlib import Path

from ftso_indexer.errors import CheckpointCorrupt

log = logging.getLogger(__name__)


class FileCheckpointStore:
    """Keeps the last processed block in a small text file.

    Saves go to a temp file in the same directory which is fsynced and then
    renamed over the target, so a crash mid-save leaves the previous value.
    """

    def __init__(self, path: str | Path, default_block: int) -> None:
        self._path = Path(path)
        self._default = default_block

    @property
    def path(self) -> Path:
        return self._path

    async def load(self) -> int:
        return await asyncio.to_thread(self._read)

    async def save(self, block_number: int) -> None:
        if block_number < 0:
            raise ValueError(f"block number must be >= 0, got {block_number}")
        await asyncio.to_thread(self._write, block_number)

    def _read(self) -> int:
        try:
            text = self._path.read_text(encoding="utf-8").strip()
        except FileNotFoundError:
            log.info("No checkpoint at %s, starting from block %d", self._path, self._default)
            return self._default
        try:
            value = int(text)
        except ValueError as exc:
            raise CheckpointCorrupt(f"{self._path}: {text[:32]!r} is not a block number") from exc
        if value < 0:
            raise CheckpointCorrupt(f"{self._path}: negative block number {value}")
        return value

    def _write(self, block_number: int) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".checkpoint-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(str(block_number))
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp, self._path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise
