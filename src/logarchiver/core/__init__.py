"""Core data models, configuration, interfaces and errors.

This package provides:
- Data models (TagSelector, LegacySingleSource, ExportWindow, ExportTask, BatchResult)
- Configuration (ArchiverConfig)
- Error taxonomy (ArchiverError and subclasses)
"""

from logarchiver.core.config import ArchiverConfig
from logarchiver.core.errors import (
    ArchiverError,
    ConfigurationError,
    ExecutionTimeoutError,
    ExportCreationError,
    ExportFailureError,
    InputError,
)
from logarchiver.core.models import (
    BatchResult,
    CheckpointRecord,
    ExportTask,
    ExportWindow,
    ItemOutcome,
    LegacySingleSource,
    TagSelector,
)

__all__ = [
    "ArchiverConfig",
    "ArchiverError",
    "ConfigurationError",
    "ExecutionTimeoutError",
    "ExportCreationError",
    "ExportFailureError",
    "InputError",
    "BatchResult",
    "CheckpointRecord",
    "ExportTask",
    "ExportWindow",
    "ItemOutcome",
    "LegacySingleSource",
    "TagSelector",
]
