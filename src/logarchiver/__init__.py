from __future__ import annotations

from .core.config import ArchiverConfig
from .core.errors import (
    ArchiverError,
    ConfigurationError,
    ExportCreationError,
    ExportFailureError,
    InputError,
)
from .core.models import BatchResult, ExportWindow, ItemOutcome
from .orchestration.orchestrator import archive_logs, run_archive
from .orchestration.utils import compute_window, destination_prefix, sanitize_name, source_name_from_arn

__all__ = [
    "archive_logs",
    "run_archive",
    "compute_window",
    "sanitize_name",
    "destination_prefix",
    "source_name_from_arn",
    "ArchiverConfig",
    "ArchiverError",
    "ConfigurationError",
    "InputError",
    "ExportCreationError",
    "ExportFailureError",
    "BatchResult",
    "ExportWindow",
    "ItemOutcome",
]
