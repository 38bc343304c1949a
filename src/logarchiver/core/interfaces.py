from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import Protocol, TypeVar, runtime_checkable

from logarchiver.core.models import CheckpointRecord

T = TypeVar("T")


# ---------------------------------------------------------------------------
# IResourceDiscovery
# ---------------------------------------------------------------------------

@runtime_checkable
class IResourceDiscovery(Protocol):
    """
    Tag-based resource discovery (one page per call).

    Domain expectations:
    - Returns resource identifiers (ARNs) in service order.
    - A falsy `next_token` means there are no more pages.
    """

    async def get_resources_page(
        self,
        *,
        resource_type: str,
        tag_key: str,
        tag_values: list[str],
        page_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        """
        Return `(resource_arns, next_token)` for one page.

        Implementations:
        - Resource Groups Tagging API (`TaggingDiscovery`)
        - In-memory provider for testing
        """
        ...


# ---------------------------------------------------------------------------
# IExportTaskService
# ---------------------------------------------------------------------------

@runtime_checkable
class IExportTaskService(Protocol):
    """
    Asynchronous export jobs copying a time range of one log source to the
    destination store.
    """

    async def create(
        self,
        *,
        destination: str,
        source_name: str,
        from_millis: int,
        to_millis: int,
        destination_prefix: str,
    ) -> str | None:
        """Start an export; return the task id, or None if the service gave none."""
        ...

    async def describe(self, task_id: str) -> str:
        """Return the task's status code (PENDING when the service reports none)."""
        ...


# ---------------------------------------------------------------------------
# ISteps
# ---------------------------------------------------------------------------

@runtime_checkable
class ISteps(Protocol):
    """
    Host execution substrate: checkpointed steps and resumable waits.

    Domain expectations:
    - `step` runs `fn` at most once per `name` across resumptions; a resumed
      run receives the recorded result instead of re-running `fn`.
    - `wait` suspends for `seconds`; a resumed run only waits the remainder.
    - Step results must be JSON-serialisable.
    """

    async def step(self, name: str, fn: Callable[[], Awaitable[T]]) -> T:
        ...

    async def wait(self, name: str, seconds: float) -> None:
        ...


# ---------------------------------------------------------------------------
# IClock
# ---------------------------------------------------------------------------

@runtime_checkable
class IClock(Protocol):
    """Wall clock and sleeping, injectable so tests can use virtual time."""

    def now(self) -> datetime:
        """Current time, timezone-aware UTC."""
        ...

    async def sleep(self, seconds: float) -> None:
        ...


# ---------------------------------------------------------------------------
# ICheckpointRepository
# ---------------------------------------------------------------------------

@runtime_checkable
class ICheckpointRepository(Protocol):
    """
    Append-only journal of completed steps for one execution.

    Implementations:
    - LiveCheckpoint (JSONL file writer)
    - InMemoryCheckpoint (tests, ephemeral runs)
    """

    def load(self) -> dict[str, CheckpointRecord]:
        """Return recorded entries keyed by step name."""
        ...

    async def append(self, record: CheckpointRecord) -> None:
        ...
