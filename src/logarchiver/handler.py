"""
Daily Log Archive Lambda

Exports the previous UTC day of every tagged CloudWatch Logs log group to S3.

Event parameters (one of):
    tagKey / tagValues: tag selector used to discover log groups
    TargetLogGroupName: single log group (legacy input)
Optional:
    ExecutionId: journal id to resume; defaults to the Lambda request id
"""

from __future__ import annotations

import asyncio
from typing import Any

from aws_lambda_powertools import Logger
from aws_lambda_powertools.utilities.typing import LambdaContext

from logarchiver.constants import SERVICE_NAME
from logarchiver.core.config import ArchiverConfig
from logarchiver.orchestration.orchestrator import run_archive

logger = Logger(service=SERVICE_NAME)


@logger.inject_lambda_context
def lambda_handler(event: dict[str, Any], context: LambdaContext) -> dict[str, int]:
    """
    Lambda handler for the daily archive.

    Args:
        event: Scheduler payload (tag selector) or legacy single log group payload
        context: Lambda context

    Returns:
        {"ExportedCount": n}

    Raises:
        ArchiverError subclasses; the runtime reports them as the failure payload.
    """
    config = ArchiverConfig.from_env()
    execution_id = ""
    if isinstance(event, dict):
        execution_id = str(event.get("ExecutionId") or "")
    execution_id = execution_id or context.aws_request_id

    output = asyncio.run(run_archive(config=config, payload=event, execution_id=execution_id))
    return output.to_payload()
