from __future__ import annotations

import asyncio
from dataclasses import dataclass

from aws_lambda_powertools import Logger

from logarchiver.constants import SERVICE_NAME
from logarchiver.core.errors import ArchiverError, ExecutionTimeoutError
from logarchiver.core.interfaces import IExportTaskService, ISteps
from logarchiver.core.models import BatchResult, ExportWindow, ItemOutcome
from logarchiver.core.use_cases.export_task import ExportTaskConfig, ExportTaskController

logger = Logger(service=SERVICE_NAME)


# ---------------------------------------------------------------------------
# Batch context
# ---------------------------------------------------------------------------


@dataclass(slots=True)
class BatchContext:
    """
    Shared state for one batch (keeps worker signatures small).

    `sem` caps how many controllers are live at once; `abort` is set on the
    first failure when running fail-fast, or on `fatal_error` (execution
    deadline) in either mode, so items not yet started are skipped.
    `outcomes` is indexed by input position and each slot is written once.
    """

    controller: ExportTaskController
    window: ExportWindow
    sem: asyncio.Semaphore
    abort: asyncio.Event
    fail_fast: bool
    outcomes: list[ItemOutcome | None]
    first_error: BaseException | None = None
    fatal_error: ExecutionTimeoutError | None = None


async def _export_one(ctx: BatchContext, index: int, source_name: str) -> None:
    async with ctx.sem:
        if ctx.abort.is_set():
            ctx.outcomes[index] = ItemOutcome(source_name=source_name, status="skipped")
            return
        try:
            task = await ctx.controller.run(
                step_name=f"export-{index}",
                source_name=source_name,
                window=ctx.window,
            )
        except ExecutionTimeoutError as e:
            # the deadline is execution-wide: abort the batch regardless of failure policy
            logger.error("Execution deadline passed", extra={"log_group": source_name, "error": str(e)})
            ctx.outcomes[index] = ItemOutcome(
                source_name=source_name,
                status="failed",
                error_type=e.error_type,
                error_message=str(e),
            )
            if ctx.fatal_error is None:
                ctx.fatal_error = e
            ctx.abort.set()
            return
        except Exception as e:
            logger.error(
                "Export failed for log group",
                extra={"log_group": source_name, "error_type": type(e).__name__, "error": str(e)},
            )
            ctx.outcomes[index] = ItemOutcome(
                source_name=source_name,
                status="failed",
                error_type=e.error_type if isinstance(e, ArchiverError) else type(e).__name__,
                error_message=str(e),
            )
            if ctx.fail_fast:
                if ctx.first_error is None:
                    ctx.first_error = e
                ctx.abort.set()
            return

        ctx.outcomes[index] = ItemOutcome(
            source_name=source_name,
            status="succeeded",
            task_id=task.task_id,
            retried=task.retried,
        )


# ---------------------------------------------------------------------------
# Domain service - BatchExportService
# ---------------------------------------------------------------------------


class BatchExportService:
    """
    Runs one ExportTaskController per source with a concurrency cap.

    Failure policy:
    - isolation (default): a failed source is logged and recorded, the rest of
      the batch still runs.
    - fail-fast: after the first failure, sources not yet started are recorded
      as skipped and the first error is raised once in-flight work drains.

    An ExecutionTimeoutError always aborts the batch the way fail-fast does.
    """

    def __init__(
        self,
        exports: IExportTaskService,
        steps: ISteps,
        *,
        config: ExportTaskConfig,
        max_concurrency: int = 1,
        fail_fast: bool = False,
    ) -> None:
        self._controller = ExportTaskController(exports, steps, config)
        self._max_concurrency = max(1, max_concurrency)
        self._fail_fast = fail_fast

    async def run(self, source_names: list[str], window: ExportWindow) -> BatchResult:
        """
        Export `window` for every source, in input order.

        Returns
        -------
        BatchResult
            `success_count` counts sources whose task reached terminal success;
            `items` lines up with `source_names`.
        """
        if not source_names:
            return BatchResult()

        ctx = BatchContext(
            controller=self._controller,
            window=window,
            sem=asyncio.Semaphore(self._max_concurrency),
            abort=asyncio.Event(),
            fail_fast=self._fail_fast,
            outcomes=[None] * len(source_names),
        )

        tasks = [
            asyncio.create_task(_export_one(ctx, i, name))
            for i, name in enumerate(source_names)
        ]
        await asyncio.gather(*tasks)

        items = [o for o in ctx.outcomes if o is not None]
        result = BatchResult(success_count=sum(1 for o in items if o.ok), items=items)

        if ctx.fatal_error is not None:
            raise ctx.fatal_error
        if ctx.first_error is not None:
            raise ctx.first_error
        return result
