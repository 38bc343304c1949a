"""Archive orchestrator: trigger -> log groups -> per-group exports -> count.

This module provides two layers:

1) `archive_logs(...)`:
   - Pure application-layer use case.
   - Depends ONLY on interfaces (IResourceDiscovery, IExportTaskService,
     ISteps, IClock).
   - Does NOT instantiate boto3 clients, journals or step runners.

2) `run_archive(...)` (convenience wrapper):
   - Wires concrete implementations (boto3 adapters, LiveCheckpoint,
     CheckpointedSteps) for the Lambda handler and the CLI.
   - Calls `archive_logs(...)` under the hood.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from aws_lambda_powertools import Logger

from logarchiver.clients.aws import CloudWatchExportService, TaggingDiscovery
from logarchiver.constants import SERVICE_NAME
from logarchiver.core.config import ArchiverConfig
from logarchiver.core.errors import ConfigurationError
from logarchiver.core.interfaces import IClock, IExportTaskService, IResourceDiscovery, ISteps
from logarchiver.core.models import BatchResult, ExportWindow
from logarchiver.core.use_cases.batch import BatchExportService
from logarchiver.core.use_cases.export_task import ExportTaskConfig
from logarchiver.core.use_cases.resolve import parse_trigger, resolve_sources, validate_trigger
from logarchiver.orchestration.steps import CheckpointedSteps, SystemClock
from logarchiver.orchestration.utils import compute_window
from logarchiver.storage.checkpoint import LiveCheckpoint, journal_path, purge_expired

logger = Logger(service=SERVICE_NAME)


# ---------------------------------------------------------------------------
# Output DTO
# ---------------------------------------------------------------------------


@dataclass(kw_only=True)
class ArchiveOutput:
    """High-level output of one archive run."""
    window: ExportWindow
    sources: list[str]
    batch: BatchResult = field(default_factory=BatchResult)

    @property
    def exported_count(self) -> int:
        return self.batch.success_count

    def to_payload(self) -> dict[str, int]:
        return {"ExportedCount": self.exported_count}


def _require_destination(config: ArchiverConfig) -> str:
    if not config.destination:
        raise ConfigurationError("BUCKET_NAME environment variable not set.")
    return config.destination


# ---------------------------------------------------------------------------
# 1) Pure application use case (no concrete instantiation)
# ---------------------------------------------------------------------------


async def archive_logs(
    *,
    config: ArchiverConfig,
    payload: Any,
    discovery: IResourceDiscovery,
    exports: IExportTaskService,
    steps: ISteps,
    clock: IClock,
) -> ArchiveOutput:
    """Pure application-layer orchestrator.

    This function:
    - Fails with ConfigurationError / InputError before any external call.
    - Resolves the ordered log group list from the trigger.
    - Fixes the export window once per run (checkpointed as `export-window`).
    - Runs the batch exporter and summarises the outcome.
    """
    # 1) Eager validation
    destination = _require_destination(config)
    trigger = parse_trigger(payload)
    validate_trigger(trigger)
    logger.info("Log archiver started", extra={"has_tag_key": trigger.kind == "tag"})

    # 2) Worklist
    sources = await resolve_sources(trigger, discovery=discovery, steps=steps)

    # 3) Export window, stable across resumptions
    async def window_now() -> dict[str, Any]:
        return compute_window(clock.now()).to_dict()

    window = ExportWindow.from_dict(await steps.step("export-window", window_now))
    logger.info(
        "Exporting log groups",
        extra={
            "count": len(sources),
            "from_millis": window.from_millis,
            "to_millis": window.to_millis,
            "day": f"{window.year}-{window.month}-{window.day}",
        },
    )

    # 4) Batch
    service = BatchExportService(
        exports,
        steps,
        config=ExportTaskConfig(
            destination=destination,
            running_wait_s=config.running_wait_s,
            pending_wait_s=config.pending_wait_s,
        ),
        max_concurrency=config.max_concurrency,
        fail_fast=config.fail_fast,
    )
    batch = await service.run(sources, window)

    logger.info(
        "Log archiver completed",
        extra={
            "exported_count": batch.success_count,
            "failed_count": batch.failure_count,
            "failed": [it.source_name for it in batch.items if it.status == "failed"],
        },
    )
    return ArchiveOutput(window=window, sources=sources, batch=batch)


# ---------------------------------------------------------------------------
# 2) Concrete wiring
# ---------------------------------------------------------------------------


async def run_archive(
    *,
    config: ArchiverConfig,
    payload: Any,
    execution_id: str,
    discovery: IResourceDiscovery | None = None,
    exports: IExportTaskService | None = None,
    clock: IClock | None = None,
) -> ArchiveOutput:
    """Run (or resume) the archive identified by `execution_id`.

    The journal lives at `<config.checkpoint_dir>/<execution_id>.jsonl`;
    invoking again with the same id replays completed steps and continues.
    """
    _require_destination(config)
    validate_trigger(parse_trigger(payload))

    clock = clock or SystemClock()
    journal = journal_path(config.checkpoint_dir, execution_id)
    expired = purge_expired(
        config.checkpoint_dir,
        config.checkpoint_retention_s,
        now=clock.now().timestamp(),
        keep=journal,
    )
    if expired:
        logger.info("Purged expired checkpoints", extra={"count": len(expired)})

    checkpoint = LiveCheckpoint(journal)
    steps = CheckpointedSteps(checkpoint, clock, attempts=config.step_attempts)
    if steps.resumed:
        logger.info("Resuming execution from checkpoint", extra={"execution_id": execution_id})
    await steps.begin(config.execution_timeout_s)

    return await archive_logs(
        config=config,
        payload=payload,
        discovery=discovery or TaggingDiscovery(region=config.region),
        exports=exports or CloudWatchExportService(region=config.region),
        steps=steps,
        clock=clock,
    )
