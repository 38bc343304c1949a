"""Error taxonomy for the log archiver.

Every fatal condition the archiver reports is an `ArchiverError`. Callers that
need a wire-friendly failure use `to_dict()`, which mirrors the Lambda failure
payload shape (`ErrorType` / `ErrorMessage`).

- ConfigurationError: required configuration (the export destination) missing.
- InputError: trigger payload is malformed or missing selector fields.
- ExportCreationError: the export service returned no task identifier.
- ExportFailureError: an export task reached FAILED after its single retry.
- ExecutionTimeoutError: the run exceeded its execution-time ceiling.
"""

from __future__ import annotations


class ArchiverError(Exception):
    """Base class for all archiver failures."""

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, str]:
        return {"ErrorType": self.error_type, "ErrorMessage": str(self)}


class ConfigurationError(ArchiverError):
    """Raised when the archiver is not configured with an export destination."""


class InputError(ArchiverError):
    """Raised when the trigger payload cannot be resolved to a source list."""


class ExportCreationError(ArchiverError):
    """Raised when creating an export task does not yield a task id."""

    def __init__(self, source_name: str) -> None:
        super().__init__(f"CreateExportTask did not return taskId for log group: {source_name}")
        self.source_name = source_name


class ExportFailureError(ArchiverError):
    """Raised when an export task fails again after being retried."""

    def __init__(self, task_id: str, source_name: str) -> None:
        super().__init__(f"Export task {task_id} failed for log group: {source_name}")
        self.task_id = task_id
        self.source_name = source_name


class ExecutionTimeoutError(ArchiverError):
    """Raised by the step runner once the execution deadline has passed."""
