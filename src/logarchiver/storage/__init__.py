"""Storage components for checkpoint journals.

This package provides:
- LiveCheckpoint: JSONL journal writer used to resume interrupted runs
- InMemoryCheckpoint: ephemeral journal for tests and one-shot runs
"""

from logarchiver.storage.checkpoint import (
    InMemoryCheckpoint,
    LiveCheckpoint,
    journal_path,
    load_checkpoint,
    purge_expired,
)

__all__ = [
    "InMemoryCheckpoint",
    "LiveCheckpoint",
    "journal_path",
    "load_checkpoint",
    "purge_expired",
]
