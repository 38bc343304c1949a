from __future__ import annotations

import asyncio
import json
import uuid
from datetime import datetime, timezone
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from logarchiver.core.config import DEFAULT_CHECKPOINT_DIR, ArchiverConfig
from logarchiver.core.errors import ArchiverError

console = Console()


@click.group()
def cli() -> None:
    """Daily log archiver: export yesterday's CloudWatch Logs to S3."""


def _payload(tag_key: str | None, tag_values: tuple[str, ...], log_group: str | None) -> dict[str, object]:
    if tag_key is not None or tag_values:
        if log_group:
            raise click.UsageError("Pass either --tag-key/--tag-value or --log-group, not both")
        return {"tagKey": tag_key or "", "tagValues": list(tag_values)}
    return {"TargetLogGroupName": log_group} if log_group else {}


@cli.command("run")
@click.option("--bucket", envvar="BUCKET_NAME", default=None, help="Destination S3 bucket [env: BUCKET_NAME]")
@click.option("--tag-key", default=None, help="Tag key selecting log groups")
@click.option("--tag-value", "tag_values", multiple=True, help="Tag value; repeat to OR")
@click.option("--log-group", default=None, help="Single log group (instead of a tag selector)")
@click.option("--execution-id", default=None, help="Journal id; reuse to resume an interrupted run")
@click.option(
    "--checkpoint-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CHECKPOINT_DIR,
    show_default=True,
)
@click.option("--concurrency", type=int, default=1, show_default=True, help="Max exports in flight")
@click.option("--fail-fast/--isolate", default=False, show_default=True, help="Stop the batch at the first failed log group")
@click.option("--region", envvar="AWS_REGION", default=None)
def run_cmd(
    bucket: str | None,
    tag_key: str | None,
    tag_values: tuple[str, ...],
    log_group: str | None,
    execution_id: str | None,
    checkpoint_dir: Path,
    concurrency: int,
    fail_fast: bool,
    region: str | None,
) -> None:
    """Export yesterday's records of the selected log groups and wait for completion."""
    from logarchiver.orchestration.orchestrator import run_archive

    if concurrency < 1:
        raise click.BadParameter("must be >= 1", param_hint="--concurrency")

    config = ArchiverConfig(
        destination=bucket,
        max_concurrency=concurrency,
        fail_fast=fail_fast,
        checkpoint_dir=checkpoint_dir,
        region=region,
    )
    payload = _payload(tag_key, tag_values, log_group)
    execution_id = execution_id or f"cli-{datetime.now(timezone.utc):%Y%m%dT%H%M%SZ}-{uuid.uuid4().hex[:8]}"
    console.print(f"[bold]execution[/]: {execution_id}")

    try:
        output = asyncio.run(run_archive(config=config, payload=payload, execution_id=execution_id))
    except ArchiverError as e:
        console.print(f"[red]{e.error_type}[/]: {e}")
        raise click.ClickException(json.dumps(e.to_dict())) from e

    w = output.window
    table = Table(title=f"{w.year}-{w.month}-{w.day}")
    table.add_column("log group")
    table.add_column("status")
    table.add_column("task")
    table.add_column("retried")
    table.add_column("error")
    colours = {"succeeded": "green", "failed": "red", "skipped": "yellow"}
    for it in output.batch.items:
        table.add_row(
            it.source_name,
            f"[{colours[it.status]}]{it.status}[/]",
            it.task_id or "",
            "yes" if it.retried else "",
            f"{it.error_type}: {it.error_message}" if it.error_type else "",
        )
    console.print(table)
    console.print(
        f"[bold]summary[/]: "
        f"[green]exported[/]={output.exported_count}  "
        f"[red]failed[/]={output.batch.failure_count}  "
        f"(log groups={len(output.sources)})"
    )
    click.echo(json.dumps(output.to_payload()))


@cli.command("discover")
@click.option("--tag-key", required=True)
@click.option("--tag-value", "tag_values", multiple=True, required=True)
@click.option("--region", envvar="AWS_REGION", default=None)
def discover_cmd(tag_key: str, tag_values: tuple[str, ...], region: str | None) -> None:
    """List log groups matching a tag selector (no journal, no exports)."""
    from logarchiver.clients.aws import TaggingDiscovery
    from logarchiver.core.use_cases.resolve import resolve_by_tag
    from logarchiver.orchestration.steps import CheckpointedSteps, SystemClock
    from logarchiver.storage.checkpoint import InMemoryCheckpoint

    async def run() -> list[str]:
        steps = CheckpointedSteps(InMemoryCheckpoint(), SystemClock())
        return await resolve_by_tag(
            tag_key=tag_key,
            tag_values=list(tag_values),
            discovery=TaggingDiscovery(region=region),
            steps=steps,
        )

    try:
        names = asyncio.run(run())
    except ArchiverError as e:
        raise click.ClickException(str(e)) from e
    for name in names:
        click.echo(name)


@cli.command("window")
@click.option("--at", "at", default=None, help="ISO-8601 instant (default: now, UTC)")
@click.option("--log-group", default=None, help="Also print this log group's destination prefix")
def window_cmd(at: str | None, log_group: str | None) -> None:
    """Print the export window (previous UTC day) for an instant."""
    from logarchiver.orchestration.utils import compute_window, destination_prefix

    try:
        now = datetime.fromisoformat(at) if at else datetime.now(timezone.utc)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--at") from e

    w = compute_window(now)
    click.echo(f"from={w.from_millis} to={w.to_millis} day={w.year}-{w.month}-{w.day}")
    if log_group:
        click.echo(destination_prefix(log_group, w))


@cli.command("purge")
@click.option(
    "--checkpoint-dir",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_CHECKPOINT_DIR,
    show_default=True,
)
@click.option("--retention-seconds", type=int, default=24 * 60 * 60, show_default=True)
def purge_cmd(checkpoint_dir: Path, retention_seconds: int) -> None:
    """Delete checkpoint journals older than the retention period."""
    from logarchiver.storage.checkpoint import purge_expired

    removed = purge_expired(checkpoint_dir, retention_seconds)
    for p in removed:
        console.print(f"removed {p}")
    console.print(f"[bold]purged[/]: {len(removed)}")


if __name__ == "__main__":
    cli()
