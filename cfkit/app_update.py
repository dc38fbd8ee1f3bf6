"""Updating an application in place."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any, Mapping

from .api import ApiClient, CFError, Meta, _populate

_JSON_NAMES = {
    "docker_credentials": "docker_credentials_json",
    "environment": "environment_json",
}


@dataclass
class AppUpdateResource:
    """The fields of an app to change; empty fields are left out of the request."""

    name: str = ""
    memory: int = 0
    instances: int = 0
    disk_quota: int = 0
    space_guid: str = ""
    stack_guid: str = ""
    state: str = ""
    command: str = ""
    buildpack: str = ""
    health_check_http_endpoint: str = ""
    health_check_type: str = ""
    health_check_timeout: int = 0
    diego: bool = False
    enable_ssh: bool = False
    docker_image: str = ""
    docker_credentials: dict[str, Any] = field(default_factory=dict)
    environment: dict[str, Any] = field(default_factory=dict)
    staging_failed_reason: str = ""
    staging_failed_description: str = ""
    ports: list[int] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        body = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if not value:
                continue
            body[_JSON_NAMES.get(f.name, f.name)] = getattr(value, "value", value)
        return body


def _docker_credentials(data: Any) -> dict[str, str]:
    data = data or {}
    return {"username": data.get("username") or "", "password": data.get("password") or ""}


@dataclass
class UpdateResponseEntity:
    """The app as the API reports it after an update."""

    name: str = ""
    production: bool = False
    space_guid: str = ""
    stack_guid: str = ""
    buildpack: str = ""
    detected_buildpack: str = ""
    detected_buildpack_guid: str = ""
    environment: dict[str, Any] = field(default_factory=dict)
    memory: int = 0
    instances: int = 0
    disk_quota: int = 0
    state: str = ""
    version: str = ""
    command: str = ""
    console: bool = False
    debug: str = ""
    staging_task_id: str = ""
    package_state: str = ""
    health_check_http_endpoint: str = ""
    health_check_type: str = ""
    health_check_timeout: int = 0
    staging_failed_reason: str = ""
    staging_failed_description: str = ""
    diego: bool = False
    docker_image: str = ""
    docker_credentials: dict[str, str] = field(default_factory=lambda: _docker_credentials(None))
    package_updated_at: str = ""
    detected_start_command: str = ""
    enable_ssh: bool = False
    ports: list[int] = field(default_factory=list)
    space_url: str = ""
    stack_url: str = ""
    routes_url: str = ""
    events_url: str = ""
    service_bindings_url: str = ""
    route_mappings_url: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "UpdateResponseEntity":
        values = _populate(cls, data, {"environment": "environment_json"})
        values["docker_credentials"] = _docker_credentials((data or {}).get("docker_credentials"))
        return cls(**values)


@dataclass
class UpdateResponse:
    """The metadata and entity returned by an app update."""

    metadata: Meta = field(default_factory=Meta)
    entity: UpdateResponseEntity = field(default_factory=UpdateResponseEntity)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "UpdateResponse":
        data = data or {}
        return cls(
            metadata=Meta.from_dict(data.get("metadata")),
            entity=UpdateResponseEntity.from_dict(data.get("entity")),
        )


def update_app(client: ApiClient, guid: str, resource: AppUpdateResource) -> UpdateResponse:
    """Apply ``resource`` to the app ``guid``; the API must answer 201 Created."""
    response = client.request("PUT", f"/v2/apps/{guid}", body=resource.to_dict())
    if response.status_code != 201:
        raise CFError(
            f"CF API returned with status code {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )
    try:
        return UpdateResponse.from_dict(response.json())
    except ValueError as exc:
        raise CFError(f"Error unmarshalling app update response: {exc}") from exc