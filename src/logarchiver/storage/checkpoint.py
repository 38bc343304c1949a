from __future__ import annotations

import asyncio
import json
import os
import time
from pathlib import Path

from logarchiver.core.models import CheckpointRecord


class LiveCheckpoint:
    """Append-only JSONL journal of completed steps for one execution.

    Appends are serialised through an asyncio lock and fsync'd so a run that is
    killed mid-way can be resumed from the last durable line.
    """

    def __init__(self, path: str | Path) -> None:
        """Open (or create) the journal at `path`.

        Args:
            path: File path for the journal, usually `<dir>/<execution_id>.jsonl`
        """
        self.path = str(path)
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        open(self.path, "a").close()
        self._lock = asyncio.Lock()

    def load(self) -> dict[str, CheckpointRecord]:
        return load_checkpoint(Path(self.path))

    async def append(self, rec: CheckpointRecord) -> None:
        """Append a record to the journal atomically."""
        line = rec.to_json_line()
        async with self._lock:
            await asyncio.to_thread(self._write_line, self.path, line)

    @staticmethod
    def _write_line(path: str, line: str) -> None:
        """Write a line to file with immediate flush and sync."""
        with open(path, "a", buffering=1) as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())


class InMemoryCheckpoint:
    """Journal kept in memory; nothing survives the process."""

    def __init__(self, records: list[CheckpointRecord] | None = None) -> None:
        self.records: list[CheckpointRecord] = list(records or [])

    def load(self) -> dict[str, CheckpointRecord]:
        return {r.name: r for r in self.records}

    async def append(self, rec: CheckpointRecord) -> None:
        self.records.append(rec)


def load_checkpoint(path: Path) -> dict[str, CheckpointRecord]:
    """Load journal entries keyed by step name.

    Parameters
    ----------
    path : Path
        JSONL journal written by `LiveCheckpoint`.

    Returns
    -------
    dict[str, CheckpointRecord]
        Latest record per name. A missing file yields an empty mapping.
    """
    records: dict[str, CheckpointRecord] = {}
    if not path.is_file():
        return records
    with open(path) as f:
        for line in f:
            if not line.strip():
                continue
            try:
                rec = CheckpointRecord.from_json(json.loads(line))
            except (ValueError, KeyError, TypeError):
                # A torn final line from an interrupted write; the step reruns.
                continue
            records[rec.name] = rec
    return records


def journal_path(checkpoint_dir: Path, execution_id: str) -> Path:
    """Journal file for `execution_id` inside `checkpoint_dir`."""
    safe = execution_id.replace("/", "_").replace(":", "_")
    return checkpoint_dir / f"{safe}.jsonl"


def purge_expired(
    checkpoint_dir: Path,
    retention_s: float,
    *,
    now: float | None = None,
    keep: Path | None = None,
) -> list[Path]:
    """Delete journals whose last write is older than `retention_s` seconds.

    `keep` (the journal about to be resumed) is never deleted.
    Returns the deleted paths.
    """
    if not checkpoint_dir.is_dir():
        return []
    cutoff = (time.time() if now is None else now) - retention_s
    removed: list[Path] = []
    for p in sorted(checkpoint_dir.glob("*.jsonl")):
        if keep is not None and p == keep:
            continue
        if p.stat().st_mtime < cutoff:
            p.unlink()
            removed.append(p)
    return removed
