"""Data types describing applications, their instances, stats and environment."""

from __future__ import annotations

import re
from dataclasses import dataclass, field, fields
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Mapping

from .api import Meta, _populate
from .appevents import _parse_rfc3339

_STAT_TIME_FORMATS = (
    "2006-01-02T15:04:05Z07:00",
    "2006-01-02T15:04:05.999999999Z07:00",
    "2006-01-02 15:04:05 -0700",
    "2006-01-02 15:04:05 MST",
)
_ABBREVIATED_ZONE = re.compile(r"^(\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}) ([A-Z]{3,4})$")
_UTC_NAMES = frozenset({"UTC", "GMT"})


class AppState(str, Enum):
    """The desired state of an application."""

    STOPPED = "STOPPED"
    STARTED = "STARTED"


class HealthCheckType(str, Enum):
    """How the platform decides whether an application is healthy."""

    HTTP = "http"
    PORT = "port"
    PROCESS = "process"


def parse_since_time(value: Any) -> datetime:
    """Turn a Unix timestamp in seconds into a UTC datetime, dropping the fraction."""
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{value!r} is not a Unix timestamp")
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


def _parse_abbreviated(value: str) -> datetime:
    match = _ABBREVIATED_ZONE.match(value)
    if not match:
        raise ValueError(value)
    clock, zone = match.groups()
    naive = datetime.strptime(clock, "%Y-%m-%d %H:%M:%S")
    tz = timezone.utc if zone in _UTC_NAMES else timezone(timedelta(0), zone)
    return naive.replace(tzinfo=tz)


def _parse_numeric_zone(value: str) -> datetime:
    if not re.fullmatch(r"\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2} [+-]\d{4}", value):
        raise ValueError(value)
    return datetime.strptime(value, "%Y-%m-%d %H:%M:%S %z")


def parse_stat_time(value: Any) -> datetime:
    """Parse the usage time of app stats, which comes in one of several layouts."""
    if isinstance(value, str):
        for parser in (_parse_rfc3339, _parse_numeric_zone, _parse_abbreviated):
            try:
                return parser(value)
            except ValueError:
                continue
    layouts = " ".join(_STAT_TIME_FORMATS)
    raise ValueError(f"{value} was not in any of the expected Date Formats [{layouts}]")


def _plain(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


@dataclass
class DockerCredentials:
    """Credentials for pulling a private Docker image."""

    username: str = ""
    password: str = ""

    def to_dict(self) -> dict[str, str]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name)}


_CREATE_JSON_NAMES = {"environment": "environment_json"}


@dataclass
class AppCreateRequest:
    """The attributes of a new application; unset optional fields are omitted."""

    name: str
    space_guid: str
    memory: int = 0
    instances: int = 0
    disk_quota: int = 0
    stack_guid: str = ""
    state: AppState | str = ""
    command: str = ""
    buildpack: str = ""
    health_check_http_endpoint: str = ""
    health_check_type: HealthCheckType | str = ""
    diego: bool = False
    enable_ssh: bool = False
    docker_image: str = ""
    docker_credentials: DockerCredentials = field(default_factory=DockerCredentials)
    environment: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"name": self.name, "space_guid": self.space_guid}
        for f in fields(self):
            if f.name in ("name", "space_guid"):
                continue
            value = getattr(self, f.name)
            if f.name == "docker_credentials":
                # A nested object is always sent, even when all its fields are empty.
                body[f.name] = value.to_dict()
                continue
            if not value:
                continue
            body[_CREATE_JSON_NAMES.get(f.name, f.name)] = _plain(value)
        return body


def _merge_space(space: Any) -> dict[str, Any]:
    """Copy the metadata guids of an inlined space and its org into their entities."""
    if not isinstance(space, Mapping):
        return {}
    space = dict(space)
    entity = dict(space.get("entity") or {})
    entity["guid"] = Meta.from_dict(space.get("metadata")).guid
    org = entity.get("organization")
    if isinstance(org, Mapping):
        org = dict(org)
        org_entity = dict(org.get("entity") or {})
        org_entity["guid"] = Meta.from_dict(org.get("metadata")).guid
        org["entity"] = org_entity
        entity["organization"] = org
    space["entity"] = entity
    return space


@dataclass
class App:
    """An application, with guid and timestamps taken from its metadata."""

    guid: str = ""
    created_at: str = ""
    updated_at: str = ""
    name: str = ""
    memory: int = 0
    instances: int = 0
    disk_quota: int = 0
    space_guid: str = ""
    stack_guid: str = ""
    state: str = ""
    package_state: str = ""
    command: str = ""
    buildpack: str = ""
    detected_buildpack: str = ""
    detected_buildpack_guid: str = ""
    health_check_http_endpoint: str = ""
    health_check_type: str = ""
    health_check_timeout: int = 0
    diego: bool = False
    enable_ssh: bool = False
    detected_start_command: str = ""
    docker_image: str = ""
    docker_credentials: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, Any] = field(default_factory=dict)
    staging_failed_reason: str = ""
    staging_failed_description: str = ""
    ports: list[int] = field(default_factory=list)
    space_url: str = ""
    space_data: dict[str, Any] = field(default_factory=dict)
    package_updated_at: str = ""

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any]) -> "App":
        entity = resource.get("entity") or {}
        values = _populate(
            cls,
            entity,
            {
                "docker_credentials": "docker_credentials_json",
                "environment": "environment_json",
                "space_data": "space",
            },
        )
        meta = Meta.from_dict(resource.get("metadata"))
        values["guid"] = meta.guid
        values["created_at"] = meta.created_at
        values["updated_at"] = meta.updated_at
        values["space_data"] = _merge_space(entity.get("space"))
        return cls(**values)


@dataclass
class AppInstance:
    """The state of one running instance and when it entered that state."""

    state: str = ""
    since: datetime | None = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppInstance":
        values = _populate(cls, data)
        if "since" in values:
            values["since"] = parse_since_time(values["since"])
        return cls(**values)


@dataclass
class AppUsage:
    """Resource usage of an instance at a point in time."""

    time: datetime | None = None
    cpu: float = 0.0
    mem: int = 0
    disk: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppUsage":
        values = _populate(cls, data)
        if "time" in values:
            values["time"] = parse_stat_time(values["time"])
        return cls(**values)


@dataclass
class AppStatsDetail:
    """Where an instance runs, its quotas and its usage."""

    name: str = ""
    uris: list[str] = field(default_factory=list)
    host: str = ""
    port: int = 0
    uptime: int = 0
    mem_quota: int = 0
    disk_quota: int = 0
    fds_quota: int = 0
    usage: AppUsage = field(default_factory=AppUsage)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppStatsDetail":
        values = _populate(cls, data)
        values["usage"] = AppUsage.from_dict((data or {}).get("usage"))
        return cls(**values)


@dataclass
class AppStats:
    """The state and statistics of one instance."""

    state: str = ""
    stats: AppStatsDetail = field(default_factory=AppStatsDetail)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppStats":
        data = data or {}
        return cls(
            state=data.get("state") or "",
            stats=AppStatsDetail.from_dict(data.get("stats")),
        )


@dataclass
class AppSummary:
    """The summary view of an application."""

    guid: str = ""
    name: str = ""
    service_count: int = 0
    running_instances: int = 0
    space_guid: str = ""
    stack_guid: str = ""
    buildpack: str = ""
    detected_buildpack: str = ""
    environment: dict[str, Any] = field(default_factory=dict)
    memory: int = 0
    instances: int = 0
    disk_quota: int = 0
    state: str = ""
    command: str = ""
    package_state: str = ""
    health_check_type: str = ""
    health_check_timeout: int = 0
    staging_failed_reason: str = ""
    staging_failed_description: str = ""
    diego: bool = False
    docker_image: str = ""
    detected_start_command: str = ""
    enable_ssh: bool = False
    docker_credentials: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppSummary":
        return cls(
            **_populate(
                cls,
                data,
                {
                    "environment": "environment_json",
                    "docker_credentials": "docker_credentials_json",
                },
            )
        )


@dataclass
class AppEnv:
    """The environment groups of an application; values are arbitrary JSON."""

    environment: dict[str, Any] = field(default_factory=dict)
    staging_env: dict[str, Any] = field(default_factory=dict)
    running_env: dict[str, Any] = field(default_factory=dict)
    system_env: dict[str, Any] = field(default_factory=dict)
    application_env: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "AppEnv":
        return cls(
            **_populate(
                cls,
                data,
                {
                    "environment": "environment_json",
                    "staging_env": "staging_env_json",
                    "running_env": "running_env_json",
                    "system_env": "system_env_json",
                    "application_env": "application_env_json",
                },
            )
        )