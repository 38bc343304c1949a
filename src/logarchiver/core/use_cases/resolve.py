from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from aws_lambda_powertools import Logger
from pydantic import TypeAdapter, ValidationError

from logarchiver.constants import LOG_GROUP_RESOURCE_TYPE, SERVICE_NAME
from logarchiver.core.errors import InputError
from logarchiver.core.interfaces import IResourceDiscovery, ISteps
from logarchiver.core.models import LegacySingleSource, TagSelector, TriggerInput
from logarchiver.orchestration.utils import find_duplicates, source_name_from_arn

logger = Logger(service=SERVICE_NAME)

_TRIGGER_ADAPTER: TypeAdapter[TagSelector | LegacySingleSource] = TypeAdapter(TriggerInput)


def parse_trigger(payload: Any) -> TagSelector | LegacySingleSource:
    """Validate a raw trigger payload into one of the two input variants.

    Payloads without an explicit `kind` are classified by their fields: any
    `tagKey` / `tagValues` makes it a tag selector, otherwise it is the legacy
    single log group form.
    """
    if not isinstance(payload, Mapping):
        raise InputError(f"event must be a JSON object, got {type(payload).__name__}")
    data = dict(payload)
    if "kind" not in data:
        data["kind"] = "tag" if ("tagKey" in data or "tagValues" in data) else "single"
    try:
        return _TRIGGER_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise InputError(f"invalid event input: {e.errors(include_url=False)}") from e


async def resolve_by_tag(
    *,
    tag_key: str,
    tag_values: list[str],
    discovery: IResourceDiscovery,
    steps: ISteps,
) -> list[str]:
    """List log group names carrying `tag_key` with any of `tag_values`.

    Each discovery page is its own checkpointed step (`get-resources-<n>`).
    Names keep service order; duplicates are reported but not removed.
    """
    if not tag_key or not tag_values:
        raise InputError("event must have tagKey and non-empty tagValues when using scheduler input.")

    arns: list[str] = []
    token: str | None = None
    page = 0
    while True:
        page += 1

        async def fetch(token: str | None = token) -> dict[str, Any]:
            page_arns, next_token = await discovery.get_resources_page(
                resource_type=LOG_GROUP_RESOURCE_TYPE,
                tag_key=tag_key,
                tag_values=list(tag_values),
                page_token=token,
            )
            return {"arns": list(page_arns), "next": next_token or None}

        result = await steps.step(f"get-resources-{page}", fetch)
        arns.extend(result["arns"])
        token = result["next"]
        if not token:
            break

    names = [source_name_from_arn(a) for a in arns]
    dups = find_duplicates(names)
    if dups:
        logger.warning("Discovery returned duplicate log groups", extra={"duplicates": dups})
    return names


def resolve_legacy(name: str | None) -> list[str]:
    """Single log group from the legacy `TargetLogGroupName` input."""
    if not name:
        raise InputError("event input TargetLogGroupName (or tagKey/tagValues) not set.")
    return [name]


async def resolve_sources(
    trigger: TagSelector | LegacySingleSource,
    *,
    discovery: IResourceDiscovery,
    steps: ISteps,
) -> list[str]:
    """Dispatch on the trigger variant and return the ordered source list."""
    if isinstance(trigger, TagSelector):
        names = await resolve_by_tag(
            tag_key=trigger.tagKey,
            tag_values=trigger.tagValues,
            discovery=discovery,
            steps=steps,
        )
        logger.info("Resolved log groups", extra={"count": len(names), "tag_key": trigger.tagKey})
        return names
    if isinstance(trigger, LegacySingleSource):
        return resolve_legacy(trigger.TargetLogGroupName)
    raise InputError(f"unsupported event input: {type(trigger).__name__}")


def validate_trigger(trigger: TagSelector | LegacySingleSource) -> None:
    """Raise InputError for a trigger that cannot resolve to any source, without I/O."""
    if isinstance(trigger, TagSelector):
        if not trigger.tagKey or not trigger.tagValues:
            raise InputError("event must have tagKey and non-empty tagValues when using scheduler input.")
    else:
        resolve_legacy(trigger.TargetLogGroupName)
