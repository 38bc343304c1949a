"""Core data models for the archiver.

This module defines:
- `TagSelector` / `LegacySingleSource`: the two trigger payload variants,
   discriminated by `kind` (pydantic).
- `ExportWindow`: the previous UTC day as epoch-millisecond bounds plus the
   zero-padded date parts used in destination prefixes.
- `ExportTask`: controller-side view of one export task.
- `ItemOutcome` / `BatchResult`: per-source outcomes and the batch aggregate.
- `CheckpointRecord`: journal entry used for resumability.
"""

from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field

ExportStatus = Literal["PENDING", "RUNNING", "COMPLETED", "FAILED", "CANCELLED", "PENDING_CANCEL"]
OutcomeStatus = Literal["succeeded", "failed", "skipped"]
RecordKind = Literal["step", "wait"]


# === Trigger payload ===


class TagSelector(BaseModel):
    """Scheduler input: archive every log group tagged `tagKey` with any of `tagValues`."""

    kind: Literal["tag"] = "tag"
    tagKey: str
    tagValues: list[str]


class LegacySingleSource(BaseModel):
    """Legacy input naming a single log group."""

    kind: Literal["single"] = "single"
    TargetLogGroupName: str | None = None


TriggerInput = Annotated[Union[TagSelector, LegacySingleSource], Field(discriminator="kind")]


# === Export window ===


@dataclass(slots=True, frozen=True)
class ExportWindow:
    """Inclusive epoch-millisecond bounds of one UTC calendar day."""

    from_millis: int
    to_millis: int
    year: str  # "2024"
    month: str  # "02"
    day: str  # "29"

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportWindow:
        return cls(
            from_millis=int(data["from_millis"]),
            to_millis=int(data["to_millis"]),
            year=str(data["year"]),
            month=str(data["month"]),
            day=str(data["day"]),
        )


# === Export task / batch results ===


@dataclass(slots=True)
class ExportTask:
    """State of one source's export as tracked by the controller."""

    task_id: str
    source_name: str
    status: str = "PENDING"
    retried: bool = False


@dataclass(slots=True)
class ItemOutcome:
    """Final outcome of one source in a batch."""

    source_name: str
    status: OutcomeStatus
    task_id: str | None = None
    retried: bool = False
    error_type: str | None = None
    error_message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"


@dataclass(kw_only=True)
class BatchResult:
    """Aggregate of a batch run; `items` follows the resolved source order."""

    success_count: int = 0
    items: list[ItemOutcome] = field(default_factory=list)

    @property
    def failure_count(self) -> int:
        return sum(1 for it in self.items if it.status == "failed")


# === Checkpoint record ===


@dataclass(slots=True)
class CheckpointRecord:
    """A single completed step or scheduled wait, persisted to the journal."""

    name: str
    kind: RecordKind
    status: Literal["done"]
    updated_at: float
    result: Any = None
    resume_at: float | None = None  # waits only, epoch seconds

    def to_json_line(self) -> str:
        """Serialize as a compact JSON line."""
        return json.dumps(asdict(self), separators=(",", ":")) + "\n"

    @classmethod
    def from_json(cls, data: dict[str, Any]) -> CheckpointRecord:
        return cls(
            name=str(data["name"]),
            kind=data["kind"],
            status=data.get("status", "done"),
            updated_at=float(data["updated_at"]),
            result=data.get("result"),
            resume_at=data.get("resume_at"),
        )
