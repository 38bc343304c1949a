"""Pure helpers for export windows and destination paths.

Functions
---------
- compute_window: previous UTC calendar day as inclusive millisecond bounds.
- sanitize_name: map a log group name to a path-safe token.
- destination_prefix: `{sanitized}/{yyyy}/{mm}/{dd}/` object key prefix.
- source_name_from_arn: log group name from a resource ARN.
- find_duplicates: names appearing more than once, in first-seen order.

All functions are deterministic and free of I/O.
"""

from __future__ import annotations

import re
from collections import Counter
from datetime import datetime, timedelta, timezone

from logarchiver.constants import DAY_MS
from logarchiver.core.models import ExportWindow

_LEADING_DASH = re.compile(r"^-")


def compute_window(now: datetime) -> ExportWindow:
    """Return the UTC calendar day before `now` (naive datetimes are taken as UTC).

    `from_millis` is 00:00:00.000 and `to_millis` 23:59:59.999 of that day.
    """
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    today = now.astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
    start = today - timedelta(days=1)
    from_millis = int(start.timestamp()) * 1000
    return ExportWindow(
        from_millis=from_millis,
        to_millis=from_millis + DAY_MS - 1,
        year=f"{start.year:04d}",
        month=f"{start.month:02d}",
        day=f"{start.day:02d}",
    )


def sanitize_name(name: str) -> str:
    """`/aws/lambda/app.v2` -> `aws-lambda-app--v2`.

    Slashes become dashes, one leading dash is dropped, then dots become `--`.
    """
    out = name.replace("/", "-")
    out = _LEADING_DASH.sub("", out, count=1)
    return out.replace(".", "--")


def destination_prefix(name: str, window: ExportWindow) -> str:
    """Object key prefix for one source's export of `window`."""
    return f"{sanitize_name(name)}/{window.year}/{window.month}/{window.day}/"


def source_name_from_arn(arn: str) -> str:
    """Log group name from `arn:aws:logs:<region>:<account>:log-group:<name>[:*]`.

    Takes the 7th colon-separated field; identifiers with fewer fields are
    returned unchanged.
    """
    parts = arn.split(":")
    return parts[6] if len(parts) > 6 else arn


def find_duplicates(names: list[str]) -> list[str]:
    """Return names that occur more than once, in order of first appearance."""
    counts = Counter(names)
    seen: set[str] = set()
    dups: list[str] = []
    for n in names:
        if counts[n] > 1 and n not in seen:
            seen.add(n)
            dups.append(n)
    return dups
