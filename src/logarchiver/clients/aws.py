"""boto3 adapters for discovery and export tasks.

This module provides:
- `TaggingDiscovery`: Resource Groups Tagging API `GetResources`, one page per call
- `CloudWatchExportService`: CloudWatch Logs `CreateExportTask` / `DescribeExportTasks`

boto3 is synchronous, so every call runs in a worker thread via
`asyncio.to_thread` to keep the event loop free.
"""

from __future__ import annotations

import asyncio
from typing import Any

import boto3

from logarchiver.constants import STATUS_PENDING


class TaggingDiscovery:
    """Tag-filtered resource discovery.

    Parameters
    ----------
    client : Any
        A `resourcegroupstaggingapi` client; created from the default session when omitted.
    region : str | None
        Region for the default client.
    """

    def __init__(self, client: Any | None = None, *, region: str | None = None) -> None:
        self.client = client or boto3.client("resourcegroupstaggingapi", region_name=region)

    async def get_resources_page(
        self,
        *,
        resource_type: str,
        tag_key: str,
        tag_values: list[str],
        page_token: str | None = None,
    ) -> tuple[list[str], str | None]:
        """Return ARNs on one page and the next pagination token (None at the end)."""
        params: dict[str, Any] = {
            "ResourceTypeFilters": [resource_type],
            "TagFilters": [{"Key": tag_key, "Values": list(tag_values)}],
        }
        if page_token:
            params["PaginationToken"] = page_token
        resp = await asyncio.to_thread(self.client.get_resources, **params)
        arns = [m["ResourceARN"] for m in resp.get("ResourceTagMappingList", []) if m.get("ResourceARN")]
        return arns, resp.get("PaginationToken") or None


class CloudWatchExportService:
    """CloudWatch Logs export tasks to S3."""

    def __init__(self, client: Any | None = None, *, region: str | None = None) -> None:
        self.client = client or boto3.client("logs", region_name=region)

    async def create(
        self,
        *,
        destination: str,
        source_name: str,
        from_millis: int,
        to_millis: int,
        destination_prefix: str,
    ) -> str | None:
        resp = await asyncio.to_thread(
            self.client.create_export_task,
            logGroupName=source_name,
            fromTime=from_millis,
            to=to_millis,
            destination=destination,
            destinationPrefix=destination_prefix,
        )
        return resp.get("taskId") or None

    async def describe(self, task_id: str) -> str:
        resp = await asyncio.to_thread(self.client.describe_export_tasks, taskId=task_id)
        tasks = resp.get("exportTasks") or []
        if not tasks:
            return STATUS_PENDING
        return (tasks[0].get("status") or {}).get("code") or STATUS_PENDING
