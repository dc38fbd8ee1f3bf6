"""Listing app usage events."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable, Mapping
from urllib.parse import urlencode

from .api import ApiClient, CFError, Meta, _populate


@dataclass
class AppUsageEvent:
    """One app usage event, with its guid and creation time from the metadata."""

    guid: str = ""
    created_at: str = ""
    state: str = ""
    previous_state: str = ""
    memory_in_mb_per_instance: int = 0
    previous_memory_in_mb_per_instance: int = 0
    instance_count: int = 0
    previous_instance_count: int = 0
    app_guid: str = ""
    space_guid: str = ""
    space_name: str = ""
    org_guid: str = ""
    buildpack_guid: str = ""
    buildpack_name: str = ""
    package_state: str = ""
    previous_package_state: str = ""
    parent_app_guid: str = ""
    parent_app_name: str = ""
    process_type: str = ""
    task_name: str = ""
    task_guid: str = ""

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any]) -> "AppUsageEvent":
        meta = Meta.from_dict(resource.get("metadata"))
        values = _populate(cls, resource.get("entity"))
        values["guid"] = meta.guid
        values["created_at"] = meta.created_at
        return cls(**values)


def list_app_usage_events_by_query(
    client: ApiClient, query: Mapping[str, str | Iterable[str]] | None = None
) -> list[AppUsageEvent]:
    """List every app usage event matching ``query``, across all pages."""
    encoded = urlencode(sorted((query or {}).items()), doseq=True)
    try:
        return [
            AppUsageEvent.from_resource(resource)
            for resource in client.paginate(f"/v2/app_usage_events?{encoded}")
        ]
    except CFError as exc:
        raise CFError(f"error requesting events: {exc}", status_code=exc.status_code) from exc


def list_app_usage_events(client: ApiClient) -> list[AppUsageEvent]:
    """List every app usage event."""
    return list_app_usage_events_by_query(client, None)