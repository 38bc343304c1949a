from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

# 30 seconds after the 2024 leap day ended
T0 = datetime(2024, 3, 1, 0, 0, 30, tzinfo=timezone.utc)


class FakeClock:
    """Virtual clock: sleeping advances time instantly."""

    def __init__(self, start: datetime = T0) -> None:
        self.current = start
        self.sleeps: list[float] = []

    def now(self) -> datetime:
        return self.current

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.current += timedelta(seconds=seconds)

    def advance(self, seconds: float) -> None:
        self.current += timedelta(seconds=seconds)


class RecordingSteps:
    """ISteps fake: runs every step, records names, waits on the virtual clock."""

    def __init__(self, clock: FakeClock) -> None:
        self.clock = clock
        self.calls: list[tuple[str, str]] = []
        self.waits: list[float] = []

    async def step(self, name: str, fn: Any) -> Any:
        self.calls.append(("step", name))
        return await fn()

    async def wait(self, name: str, seconds: float) -> None:
        self.calls.append(("wait", name))
        self.waits.append(seconds)
        await self.clock.sleep(seconds)

    @property
    def names(self) -> list[str]:
        return [n for _, n in self.calls]


class FakeExports:
    """IExportTaskService fake driven by scripted status sequences.

    `attempts[source]` holds one status list per create call for that source;
    the last status of a list repeats once exhausted.
    """

    def __init__(
        self,
        attempts: dict[str, list[list[str]]] | None = None,
        *,
        default: tuple[str, ...] = ("COMPLETED",),
        missing_task_id: tuple[str, ...] = (),
    ) -> None:
        self.attempts = {k: [list(a) for a in v] for k, v in (attempts or {}).items()}
        self.default = list(default)
        self.missing_task_id = set(missing_task_id)
        self.creates: list[dict[str, Any]] = []
        self.describes: list[str] = []
        self._statuses: dict[str, list[str]] = {}

    async def create(self, **kwargs: Any) -> str | None:
        self.creates.append(kwargs)
        source = kwargs["source_name"]
        if source in self.missing_task_id:
            return None
        task_id = f"task-{len(self.creates)}"
        queue = self.attempts.get(source)
        self._statuses[task_id] = queue.pop(0) if queue else list(self.default)
        return task_id

    async def describe(self, task_id: str) -> str:
        self.describes.append(task_id)
        statuses = self._statuses.setdefault(task_id, list(self.default))
        return statuses.pop(0) if len(statuses) > 1 else statuses[0]

    @property
    def created_sources(self) -> list[str]:
        return [c["source_name"] for c in self.creates]


class FakeDiscovery:
    """IResourceDiscovery fake serving fixed pages with tokens "t1", "t2", ..."""

    def __init__(self, pages: list[list[str]]) -> None:
        self.pages = pages
        self.calls: list[dict[str, Any]] = []

    async def get_resources_page(self, **kwargs: Any) -> tuple[list[str], str | None]:
        self.calls.append(kwargs)
        token = kwargs.get("page_token")
        idx = int(token[1:]) if token else 0
        next_token = f"t{idx + 1}" if idx + 1 < len(self.pages) else None
        return list(self.pages[idx]), next_token


def arn(name: str) -> str:
    return f"arn:aws:logs:us-east-1:123456789012:log-group:{name}"


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def steps(clock: FakeClock) -> RecordingSteps:
    return RecordingSteps(clock)
