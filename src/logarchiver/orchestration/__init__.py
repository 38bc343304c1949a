"""Orchestration of the daily archive with checkpointed, resumable steps.

This package provides:
- Main orchestrator (archive_logs / run_archive)
- Local durable-execution substrate (CheckpointedSteps, SystemClock)
- Window and path utilities
"""

from logarchiver.orchestration.orchestrator import ArchiveOutput, archive_logs, run_archive
from logarchiver.orchestration.steps import CheckpointedSteps, SystemClock
from logarchiver.orchestration.utils import (
    compute_window,
    destination_prefix,
    sanitize_name,
    source_name_from_arn,
)

__all__ = [
    "ArchiveOutput",
    "archive_logs",
    "run_archive",
    "CheckpointedSteps",
    "SystemClock",
    "compute_window",
    "destination_prefix",
    "sanitize_name",
    "source_name_from_arn",
]
