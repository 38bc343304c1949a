from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from logarchiver.constants import PENDING_WAIT_SECONDS, RUNNING_WAIT_SECONDS
from logarchiver.core.errors import ConfigurationError

DEFAULT_CHECKPOINT_DIR = Path("/tmp/log-archiver/checkpoints")

_TRUE = {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class ArchiverConfig:
    """Configuration for one archive run.

    `destination` is the S3 bucket receiving exports. It may be None here so
    that a missing bucket surfaces as a ConfigurationError from the handler,
    before any AWS call is made.
    """

    destination: str | None
    max_concurrency: int = 1
    running_wait_s: int = RUNNING_WAIT_SECONDS
    pending_wait_s: int = PENDING_WAIT_SECONDS
    fail_fast: bool = False
    checkpoint_dir: Path = DEFAULT_CHECKPOINT_DIR
    step_attempts: int = 3
    execution_timeout_s: int = 2 * 60 * 60
    checkpoint_retention_s: int = 24 * 60 * 60
    region: str | None = None

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> ArchiverConfig:
        """Build a config from environment variables (BUCKET_NAME, MAX_CONCURRENCY, ...)."""
        env = os.environ if environ is None else environ
        return cls(
            destination=env.get("BUCKET_NAME") or None,
            max_concurrency=_int_env(env, "MAX_CONCURRENCY", 1),
            fail_fast=env.get("FAIL_FAST", "").strip().lower() in _TRUE,
            checkpoint_dir=Path(env.get("CHECKPOINT_DIR") or DEFAULT_CHECKPOINT_DIR),
            step_attempts=_int_env(env, "STEP_ATTEMPTS", 3),
            execution_timeout_s=_int_env(env, "EXECUTION_TIMEOUT_SECONDS", 2 * 60 * 60),
            checkpoint_retention_s=_int_env(env, "CHECKPOINT_RETENTION_SECONDS", 24 * 60 * 60),
            region=env.get("AWS_REGION") or None,
        )


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name)
    if raw is None or raw == "":
        return default
    try:
        value = int(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}") from e
    if value < 1:
        raise ConfigurationError(f"{name} must be >= 1, got {value}")
    return value
