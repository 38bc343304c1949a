import os
from pathlib import Path
from typing import Any
from unittest.mock import patch

import pytest
from conftest import FakeClock, FakeDiscovery, FakeExports, RecordingSteps, arn

from logarchiver.core.config import ArchiverConfig
from logarchiver.core.errors import ConfigurationError, ExecutionTimeoutError, ExportFailureError, InputError
from logarchiver.orchestration.orchestrator import archive_logs, run_archive
from logarchiver.storage.checkpoint import journal_path, load_checkpoint


class HostKilled(BaseException):
    """Process death: not an Exception, so nothing in the batch records it."""


def _config(tmp_path: Path | None = None, **overrides: Any) -> ArchiverConfig:
    base: dict[str, Any] = {"destination": "archive-bucket"}
    if tmp_path is not None:
        base["checkpoint_dir"] = tmp_path / "checkpoints"
    base.update(overrides)
    return ArchiverConfig(**base)


@pytest.mark.asyncio
async def test_archive_by_tag(clock: FakeClock, steps: RecordingSteps) -> None:
    discovery = FakeDiscovery([[arn("/aws/lambda/a"), arn("b")], [arn("c.d")]])
    exports = FakeExports()

    output = await archive_logs(
        config=_config(),
        payload={"tagKey": "Environment", "tagValues": ["prod"]},
        discovery=discovery,
        exports=exports,
        steps=steps,
        clock=clock,
    )

    assert output.to_payload() == {"ExportedCount": 3}
    assert output.sources == ["/aws/lambda/a", "b", "c.d"]
    assert [it.source_name for it in output.batch.items] == output.sources
    assert [c["destination_prefix"] for c in exports.creates] == [
        "aws-lambda-a/2024/02/29/",
        "b/2024/02/29/",
        "c--d/2024/02/29/",
    ]
    assert {c["destination"] for c in exports.creates} == {"archive-bucket"}
    assert steps.names[:3] == ["get-resources-1", "get-resources-2", "export-window"]


@pytest.mark.asyncio
async def test_archive_legacy_single_group(clock: FakeClock, steps: RecordingSteps) -> None:
    discovery = FakeDiscovery([[]])
    exports = FakeExports()

    output = await archive_logs(
        config=_config(),
        payload={"TargetLogGroupName": "example/log-group"},
        discovery=discovery,
        exports=exports,
        steps=steps,
        clock=clock,
    )

    assert output.to_payload() == {"ExportedCount": 1}
    assert discovery.calls == []
    assert exports.creates[0]["destination_prefix"] == "example-log-group/2024/02/29/"


@pytest.mark.asyncio
async def test_missing_destination_makes_no_calls(clock: FakeClock, steps: RecordingSteps) -> None:
    discovery = FakeDiscovery([[arn("a")]])
    exports = FakeExports()

    with pytest.raises(ConfigurationError, match="BUCKET_NAME"):
        await archive_logs(
            config=_config(destination=None),
            payload={"tagKey": "Environment", "tagValues": ["prod"]},
            discovery=discovery,
            exports=exports,
            steps=steps,
            clock=clock,
        )

    assert discovery.calls == []
    assert exports.creates == []
    assert steps.calls == []


@pytest.mark.parametrize(
    "payload",
    [
        {"tagKey": "", "tagValues": ["prod"]},
        {"tagKey": "Environment", "tagValues": []},
        {},
        {"TargetLogGroupName": None},
    ],
)
@pytest.mark.asyncio
async def test_invalid_input_makes_no_calls(clock: FakeClock, steps: RecordingSteps, payload: dict) -> None:
    discovery = FakeDiscovery([[arn("a")]])
    exports = FakeExports()

    with pytest.raises(InputError):
        await archive_logs(
            config=_config(),
            payload=payload,
            discovery=discovery,
            exports=exports,
            steps=steps,
            clock=clock,
        )

    assert discovery.calls == []
    assert exports.creates == []
    assert steps.calls == []


@pytest.mark.asyncio
async def test_isolated_failure_lowers_count(clock: FakeClock, steps: RecordingSteps) -> None:
    exports = FakeExports({"b": [["FAILED"], ["FAILED"]]})

    output = await archive_logs(
        config=_config(),
        payload={"tagKey": "Environment", "tagValues": ["prod"]},
        discovery=FakeDiscovery([[arn("a"), arn("b"), arn("c")]]),
        exports=exports,
        steps=steps,
        clock=clock,
    )

    assert output.to_payload() == {"ExportedCount": 2}
    assert output.batch.items[1].error_type == "ExportFailureError"


@pytest.mark.asyncio
async def test_fail_fast_propagates(clock: FakeClock, steps: RecordingSteps) -> None:
    exports = FakeExports({"a": [["FAILED"], ["FAILED"]]})

    with pytest.raises(ExportFailureError):
        await archive_logs(
            config=_config(fail_fast=True),
            payload={"tagKey": "Environment", "tagValues": ["prod"]},
            discovery=FakeDiscovery([[arn("a"), arn("b")]]),
            exports=exports,
            steps=steps,
            clock=clock,
        )

    assert exports.created_sources == ["a", "a"]


@pytest.mark.asyncio
async def test_run_archive_rejects_missing_destination_before_io(tmp_path: Path) -> None:
    config = _config(tmp_path, destination=None)

    with pytest.raises(ConfigurationError):
        await run_archive(
            config=config,
            payload={"TargetLogGroupName": "g"},
            execution_id="exec-1",
            discovery=FakeDiscovery([[]]),
            exports=FakeExports(),
            clock=FakeClock(),
        )

    assert not config.checkpoint_dir.exists()


@pytest.mark.asyncio
async def test_run_archive_resumes_from_journal(tmp_path: Path) -> None:
    config = _config(tmp_path)
    clock = FakeClock()
    payload = {"tagKey": "Environment", "tagValues": ["prod"]}

    class DiesOnSecondGroup(FakeExports):
        async def describe(self, task_id: str) -> str:
            if task_id == "task-2":
                raise HostKilled()
            return await super().describe(task_id)

    first_discovery = FakeDiscovery([[arn("a"), arn("b")]])
    first_exports = DiesOnSecondGroup({"a": [["RUNNING", "COMPLETED"]]})
    with pytest.raises(HostKilled):
        await run_archive(
            config=config,
            payload=payload,
            execution_id="daily-2024-03-01",
            discovery=first_discovery,
            exports=first_exports,
            clock=clock,
        )
    assert first_exports.created_sources == ["a", "b"]

    journal = load_checkpoint(journal_path(config.checkpoint_dir, "daily-2024-03-01"))
    assert "export-1-create" in journal
    assert "export-1-describe-1" not in journal

    second_discovery = FakeDiscovery([[arn("a"), arn("b")]])
    second_exports = FakeExports()
    output = await run_archive(
        config=config,
        payload=payload,
        execution_id="daily-2024-03-01",
        discovery=second_discovery,
        exports=second_exports,
        clock=clock,
    )

    assert output.to_payload() == {"ExportedCount": 2}
    assert second_discovery.calls == []
    assert second_exports.creates == []
    assert second_exports.describes == ["task-2"]


@pytest.mark.asyncio
async def test_run_archive_window_is_fixed_for_the_execution(tmp_path: Path) -> None:
    config = _config(tmp_path)
    clock = FakeClock()
    payload = {"TargetLogGroupName": "g"}

    first = await run_archive(
        config=config, payload=payload, execution_id="e", discovery=FakeDiscovery([[]]), exports=FakeExports(), clock=clock
    )
    clock.advance(3 * 60 * 60)
    second = await run_archive(
        config=config, payload=payload, execution_id="e", discovery=FakeDiscovery([[]]), exports=FakeExports(), clock=clock
    )

    assert first.window == second.window


@pytest.mark.asyncio
async def test_run_archive_wires_default_clients(tmp_path: Path) -> None:
    with (
        patch("logarchiver.orchestration.orchestrator.TaggingDiscovery") as MockDiscovery,
        patch("logarchiver.orchestration.orchestrator.CloudWatchExportService") as MockExports,
    ):
        MockExports.return_value = FakeExports()
        output = await run_archive(
            config=_config(tmp_path, region="eu-west-1"),
            payload={"TargetLogGroupName": "g"},
            execution_id="exec-2",
            clock=FakeClock(),
        )

    MockDiscovery.assert_called_once_with(region="eu-west-1")
    MockExports.assert_called_once_with(region="eu-west-1")
    assert output.to_payload() == {"ExportedCount": 1}


@pytest.mark.asyncio
async def test_run_archive_aborts_when_deadline_passes(tmp_path: Path) -> None:
    exports = FakeExports({"a": [["RUNNING"] * 100]})

    with pytest.raises(ExecutionTimeoutError):
        await run_archive(
            config=_config(tmp_path, execution_timeout_s=60),
            payload={"tagKey": "Environment", "tagValues": ["prod"]},
            execution_id="slow",
            discovery=FakeDiscovery([[arn("a"), arn("b"), arn("c")]]),
            exports=exports,
            clock=FakeClock(),
        )

    assert exports.created_sources == ["a"]
    assert len(exports.describes) < 100


@pytest.mark.asyncio
async def test_run_archive_keeps_stale_journal_of_resumed_execution(tmp_path: Path) -> None:
    config = _config(tmp_path, checkpoint_retention_s=60)
    clock = FakeClock()
    payload = {"TargetLogGroupName": "g"}

    first = await run_archive(
        config=config, payload=payload, execution_id="e", discovery=FakeDiscovery([[]]), exports=FakeExports(), clock=clock
    )
    stale = config.checkpoint_dir / "other.jsonl"
    stale.write_text("")
    for p in (journal_path(config.checkpoint_dir, "e"), stale):
        os.utime(p, (1_000, 1_000))

    clock.advance(3 * 60 * 60)
    second_exports = FakeExports()
    second = await run_archive(
        config=config, payload=payload, execution_id="e", discovery=FakeDiscovery([[]]), exports=second_exports, clock=clock
    )

    assert second.window == first.window
    assert second_exports.creates == []
    assert not stale.exists()
