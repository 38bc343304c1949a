"""Local durable-execution substrate: checkpointed steps and resumable waits.

`CheckpointedSteps` implements `ISteps` on top of an `ICheckpointRepository`:

- `step(name, fn)` returns the journalled result when `name` already completed,
  otherwise runs `fn` (retrying non-archiver exceptions with linear backoff),
  journals the JSON-normalised result and returns it.
- `wait(name, seconds)` journals an absolute `resume_at` before sleeping, so a
  resumed run only sleeps whatever is left.
- `begin(timeout_s)` journals the execution start once; every later step or
  wait that starts past `start + timeout_s` raises ExecutionTimeoutError.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import Awaitable, Callable
from datetime import datetime, timezone
from typing import Any, TypeVar

from aws_lambda_powertools import Logger

from logarchiver.constants import SERVICE_NAME
from logarchiver.core.errors import ArchiverError, ExecutionTimeoutError
from logarchiver.core.interfaces import ICheckpointRepository, IClock
from logarchiver.core.models import CheckpointRecord

T = TypeVar("T")

logger = Logger(service=SERVICE_NAME)

EXECUTION_START = "execution-start"


class SystemClock:
    """Real UTC clock backed by asyncio.sleep."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    async def sleep(self, seconds: float) -> None:
        await asyncio.sleep(seconds)


class CheckpointedSteps:
    """Journal-backed step runner.

    Parameters
    ----------
    checkpoint : ICheckpointRepository
        Journal for this execution; loaded once at construction.
    clock : IClock
        Time source for waits, backoff and the execution deadline.
    attempts : int
        Maximum tries per step for unexpected (non-archiver) exceptions.
    backoff_s : float
        Linear backoff unit between step attempts.
    """

    def __init__(
        self,
        checkpoint: ICheckpointRepository,
        clock: IClock,
        *,
        attempts: int = 3,
        backoff_s: float = 0.8,
    ) -> None:
        self._checkpoint = checkpoint
        self._clock = clock
        self._attempts = max(1, attempts)
        self._backoff_s = backoff_s
        self._records: dict[str, CheckpointRecord] = checkpoint.load()
        self._deadline: float | None = None
        self.executed: list[str] = []
        self.replayed: list[str] = []

    @property
    def resumed(self) -> bool:
        return bool(self._records)

    async def begin(self, timeout_s: float | None) -> None:
        """Record (or recover) the execution start and arm the deadline."""
        started = await self.step(EXECUTION_START, self._started_at)
        if timeout_s is not None:
            self._deadline = float(started["started_at"]) + timeout_s

    async def _started_at(self) -> dict[str, float]:
        return {"started_at": self._clock.now().timestamp()}

    def _check_deadline(self, name: str) -> None:
        if self._deadline is not None and self._clock.now().timestamp() > self._deadline:
            raise ExecutionTimeoutError(f"execution deadline passed before step {name!r}")

    async def step(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        rec = self._records.get(name)
        if rec is not None and rec.kind == "step":
            self.replayed.append(name)
            return rec.result

        self._check_deadline(name)
        tries = 0
        while True:
            tries += 1
            try:
                result = await fn()
                break
            except ArchiverError:
                raise
            except Exception as e:
                if tries >= self._attempts:
                    raise
                logger.warning(
                    "Step attempt failed, retrying",
                    extra={"step": name, "attempt": tries, "error": f"{type(e).__name__}: {e}"},
                )
                await self._clock.sleep(self._backoff_s * tries)

        # Normalise so a live run sees exactly what a replay would.
        normalised: Any = json.loads(json.dumps(result))
        rec = CheckpointRecord(
            name=name,
            kind="step",
            status="done",
            updated_at=self._clock.now().timestamp(),
            result=normalised,
        )
        await self._checkpoint.append(rec)
        self._records[name] = rec
        self.executed.append(name)
        return normalised

    async def wait(self, name: str, seconds: float) -> None:
        now_ts = self._clock.now().timestamp()
        rec = self._records.get(name)
        if rec is None or rec.kind != "wait" or rec.resume_at is None:
            self._check_deadline(name)
            rec = CheckpointRecord(
                name=name,
                kind="wait",
                status="done",
                updated_at=now_ts,
                resume_at=now_ts + seconds,
            )
            await self._checkpoint.append(rec)
            self._records[name] = rec
            self.executed.append(name)
        else:
            self.replayed.append(name)

        remaining = rec.resume_at - now_ts
        if remaining > 0:
            await self._clock.sleep(remaining)
