"""Listing audit events of applications."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Iterable, Mapping

from .api import ApiClient, CFError, _populate

APP_CRASH = "app.crash"
APP_START = "audit.app.start"
APP_STOP = "audit.app.stop"
APP_UPDATE = "audit.app.update"
APP_CREATE = "audit.app.create"
APP_DELETE = "audit.app.delete-request"
APP_SSH_AUTH = "audit.app.ssh-authorized"
APP_SSH_UNAUTH = "audit.app.ssh-unauthorized"
APP_RESTAGE = "audit.app.restage"
APP_MAP_ROUTE = "audit.app.map-route"
APP_UNMAP_ROUTE = "audit.app.unmap-route"

FILTER_TIMESTAMP = "timestamp"
FILTER_ACTEE = "actee"

EVENT_TYPES = frozenset(
    {
        APP_CRASH,
        APP_START,
        APP_STOP,
        APP_UPDATE,
        APP_CREATE,
        APP_DELETE,
        APP_SSH_AUTH,
        APP_SSH_UNAUTH,
        APP_RESTAGE,
        APP_MAP_ROUTE,
        APP_UNMAP_ROUTE,
    }
)
VALID_FILTERS = (FILTER_TIMESTAMP, FILTER_ACTEE)
VALID_OPERATORS = (":", ">=", "<=", "<", ">", "IN")

_RFC3339 = re.compile(
    r"^(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)


def _parse_rfc3339(value: str) -> datetime:
    match = _RFC3339.match(value)
    if not match:
        raise ValueError(f"{value!r} is not an RFC 3339 timestamp")
    date, clock, fraction, zone = match.groups()
    micro = f".{(fraction or '')[:6].ljust(6, '0')}" if fraction else ""
    zone = "+00:00" if zone in ("Z", "z") else zone
    return datetime.fromisoformat(f"{date}T{clock}{micro}{zone}")


@dataclass(frozen=True)
class AppEventQuery:
    """A filter such as ``timestamp>2016-01-01T00:00:00Z`` or ``actee IN a,b``."""

    filter: str
    operator: str
    value: str


@dataclass
class AppEventRequest:
    """The request recorded in an event's metadata."""

    name: str = ""
    instances: float = 0.0
    state: str = ""
    memory: float = 0.0
    environment_vars: str = ""
    docker_credentials: str = ""
    console: bool = False
    buildpack: str = ""
    space: str = ""
    health_check_type: str = ""
    health_check_timeout: float = 0.0
    production: bool = False
    index: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppEventRequest":
        return cls(
            **_populate(
                cls,
                data,
                {
                    "environment_vars": "environment_json",
                    "docker_credentials": "docker_credentials_json",
                    "space": "space_guid",
                },
            )
        )


@dataclass
class AppEventMetadata:
    """The ``metadata`` of an event: crash details and the recorded request."""

    exit_description: str = ""
    exit_reason: str = ""
    exit_status: str = ""
    request: AppEventRequest = field(default_factory=AppEventRequest)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppEventMetadata":
        values = _populate(cls, data, {"exit_reason": "reason"})
        values["request"] = AppEventRequest.from_dict((data or {}).get("request"))
        return cls(**values)


@dataclass
class AppEventEntity:
    """The body of one app event."""

    event_type: str = ""
    actor: str = ""
    actor_type: str = ""
    actor_name: str = ""
    actee: str = ""
    actee_type: str = ""
    actee_name: str = ""
    timestamp: datetime | None = None
    metadata: AppEventMetadata = field(default_factory=AppEventMetadata)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppEventEntity":
        data = data or {}
        values = _populate(cls, data, {"event_type": "type"})
        if values.get("timestamp") is not None:
            values["timestamp"] = _parse_rfc3339(values["timestamp"])
        values["metadata"] = AppEventMetadata.from_dict(data.get("metadata"))
        return cls(**values)


def list_app_events(client: ApiClient, event_type: str) -> list[AppEventEntity]:
    """List every event of ``event_type``."""
    return list_app_events_by_query(client, event_type, None)


def list_app_events_by_query(
    client: ApiClient, event_type: str, queries: Iterable[AppEventQuery] | None = None
) -> list[AppEventEntity]:
    """List every event of ``event_type`` that matches all ``queries``."""
    if event_type not in EVENT_TYPES:
        raise ValueError(f"Unsupported app event type {event_type}")
    path = f"/v2/events?q=type:{event_type}"
    for query in queries or ():
        if query.filter not in VALID_FILTERS:
            raise ValueError(f"Unsupported query filter type {query.filter}")
        if query.operator not in VALID_OPERATORS:
            raise ValueError(f"Unsupported query operator type {query.operator}")
        path += f"&q={query.filter}{query.operator}{query.value}"
    try:
        return [AppEventEntity.from_dict(resource.get("entity")) for resource in client.paginate(path)]
    except CFError as exc:
        raise CFError(f"Error requesting appevents: {exc}", status_code=exc.status_code) from exc
    except ValueError as exc:
        raise CFError(f"Error unmarshalling appevent: {exc}") from exc