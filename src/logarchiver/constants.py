from __future__ import annotations

SERVICE_NAME = "daily-log-archiver"

# resourcegroupstaggingapi resource type for CloudWatch Logs log groups
LOG_GROUP_RESOURCE_TYPE = "logs:log-group"

# export task status codes (CloudWatch Logs ExportTaskStatusCode)
STATUS_PENDING        = "PENDING"
STATUS_RUNNING        = "RUNNING"
STATUS_COMPLETED      = "COMPLETED"
STATUS_FAILED         = "FAILED"
STATUS_CANCELLED      = "CANCELLED"
STATUS_PENDING_CANCEL = "PENDING_CANCEL"

TERMINAL_SUCCESS = frozenset({STATUS_COMPLETED, STATUS_CANCELLED, STATUS_PENDING_CANCEL})

RUNNING_WAIT_SECONDS = 10
PENDING_WAIT_SECONDS = 3

MAX_EXPORT_RETRIES = 1

DAY_MS = 24 * 60 * 60 * 1000
