from __future__ import annotations

from dataclasses import dataclass

from aws_lambda_powertools import Logger

from logarchiver.constants import (
    MAX_EXPORT_RETRIES,
    PENDING_WAIT_SECONDS,
    RUNNING_WAIT_SECONDS,
    SERVICE_NAME,
    STATUS_FAILED,
    STATUS_PENDING,
    STATUS_RUNNING,
    TERMINAL_SUCCESS,
)
from logarchiver.core.errors import ExportCreationError, ExportFailureError
from logarchiver.core.interfaces import IExportTaskService, ISteps
from logarchiver.core.models import ExportTask, ExportWindow
from logarchiver.orchestration.utils import destination_prefix

logger = Logger(service=SERVICE_NAME)


# ---------------------------------------------------------------------------
# Domain configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExportTaskConfig:
    """Per-run settings shared by every controller in a batch."""

    destination: str
    running_wait_s: int = RUNNING_WAIT_SECONDS
    pending_wait_s: int = PENDING_WAIT_SECONDS
    max_retries: int = MAX_EXPORT_RETRIES


# ---------------------------------------------------------------------------
# Controller
# ---------------------------------------------------------------------------


class ExportTaskController:
    """
    Drives one log group's export task to a terminal status.

    State machine, per attempt:
      create -> describe (poll) until terminal
        COMPLETED / CANCELLED / PENDING_CANCEL -> success
        FAILED                                 -> wait, new attempt (once)
        RUNNING                                -> wait running_wait_s, poll
        PENDING / anything else                -> wait pending_wait_s, poll

    Every create, describe and wait goes through `ISteps` under a
    deterministic name derived from `step_name`, so a resumed run replays
    completed steps from the journal and continues at the first new one.
    """

    def __init__(
        self,
        exports: IExportTaskService,
        steps: ISteps,
        config: ExportTaskConfig,
    ) -> None:
        self._exports = exports
        self._steps = steps
        self._config = config

    async def run(self, *, step_name: str, source_name: str, window: ExportWindow) -> ExportTask:
        """Export `window` of `source_name`; return the task that reached terminal success.

        Raises
        ------
        ExportCreationError
            The service returned no task id (not retried).
        ExportFailureError
            The task reported FAILED on the original attempt and on the retry.
        """
        retries = 0
        base = step_name
        while True:
            task = await self._create(base, source_name, window, retried=retries > 0)
            task.status = await self._poll(base, task)
            if task.status in TERMINAL_SUCCESS:
                logger.info(
                    "Export task finished",
                    extra={"log_group": source_name, "task_id": task.task_id, "status": task.status},
                )
                return task

            if retries >= self._config.max_retries:
                raise ExportFailureError(task.task_id, source_name)

            logger.warning(
                "Export task failed, retrying",
                extra={"log_group": source_name, "task_id": task.task_id},
            )
            await self._steps.wait(f"{base}-retry-wait", self._config.pending_wait_s)
            retries += 1
            base = f"{step_name}-retry" if retries == 1 else f"{step_name}-retry{retries}"

    async def _create(self, base: str, source_name: str, window: ExportWindow, *, retried: bool) -> ExportTask:
        prefix = destination_prefix(source_name, window)

        async def create() -> dict[str, str | None]:
            task_id = await self._exports.create(
                destination=self._config.destination,
                source_name=source_name,
                from_millis=window.from_millis,
                to_millis=window.to_millis,
                destination_prefix=prefix,
            )
            return {"taskId": task_id}

        created = await self._steps.step(f"{base}-create", create)
        task_id = created.get("taskId")
        if not task_id:
            raise ExportCreationError(source_name)
        logger.debug(
            "Export task created",
            extra={"log_group": source_name, "task_id": task_id, "prefix": prefix, "retried": retried},
        )
        return ExportTask(task_id=task_id, source_name=source_name, retried=retried)

    async def _poll(self, base: str, task: ExportTask) -> str:
        """Poll until the task is terminal; return the terminal status (success or FAILED)."""
        polls = 0

        async def describe() -> dict[str, str]:
            return {"status": (await self._exports.describe(task.task_id)) or STATUS_PENDING}

        while True:
            polls += 1
            status = (await self._steps.step(f"{base}-describe-{polls}", describe))["status"]
            if status in TERMINAL_SUCCESS or status == STATUS_FAILED:
                return status
            task.status = status
            if status == STATUS_RUNNING:
                await self._steps.wait(f"{base}-running-wait-{polls}", self._config.running_wait_s)
            else:
                await self._steps.wait(f"{base}-pending-wait-{polls}", self._config.pending_wait_s)
