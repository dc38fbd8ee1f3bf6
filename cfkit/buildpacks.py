"""Creating, listing, updating, uploading and deleting buildpacks."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, fields
from typing import Any, BinaryIO, Mapping

import requests

from .api import ApiClient, CFError, Meta, _populate


@dataclass
class Buildpack:
    """A buildpack, with guid and timestamps taken from its metadata."""

    guid: str = ""
    created_at: str = ""
    updated_at: str = ""
    name: str = ""
    enabled: bool = False
    locked: bool = False
    position: int = 0
    filename: str = ""
    stack: str = ""

    @classmethod
    def from_resource(cls, resource: Mapping[str, Any]) -> "Buildpack":
        values = _populate(cls, resource.get("entity"))
        meta = Meta.from_dict(resource.get("metadata"))
        values["guid"] = meta.guid
        values["created_at"] = meta.created_at
        values["updated_at"] = meta.updated_at
        return cls(**values)


@dataclass
class BuildpackRequest:
    """Attributes to create or change a buildpack with.

    Fields left at ``None`` are not sent, so they keep their current or
    default value; ``False``, ``0`` and ``""`` are sent as given.
    """

    name: str | None = None
    enabled: bool | None = None
    locked: bool | None = None
    position: int | None = None
    stack: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def lock(self) -> None:
        self.locked = True

    def unlock(self) -> None:
        self.locked = False

    def enable(self) -> None:
        self.enabled = True

    def disable(self) -> None:
        self.enabled = False


def _buildpack_from_response(response: requests.Response) -> Buildpack:
    try:
        return Buildpack.from_resource(response.json() or {})
    except (ValueError, TypeError, AttributeError) as exc:
        raise CFError(f"Error unmarshalling buildpack: {exc}") from exc


def create_buildpack(client: ApiClient, request: BuildpackRequest) -> Buildpack:
    """Create a buildpack; the request must carry a non-empty name."""
    if not request.name:
        raise ValueError("Unable to create a buildpack with no name")
    try:
        response = client.request("POST", "/v2/buildpacks", body=request.to_dict())
        return _buildpack_from_response(response)
    except CFError as exc:
        raise CFError(f"Error creating buildpack: {exc}", exc.status_code, exc.body) from exc


def list_buildpacks(client: ApiClient) -> list[Buildpack]:
    """List every buildpack, across all pages."""
    try:
        return [Buildpack.from_resource(resource) for resource in client.paginate("/v2/buildpacks")]
    except CFError as exc:
        raise CFError(f"Error requesting buildpacks: {exc}", exc.status_code, exc.body) from exc
    except (ValueError, TypeError, AttributeError) as exc:
        raise CFError(f"Error unmarshalling buildpack: {exc}") from exc


def delete_buildpack(client: ApiClient, guid: str, async_: bool) -> None:
    """Delete a buildpack; expects 202 Accepted when async, 204 No Content otherwise."""
    flag = "true" if async_ else "false"
    response = client.request("DELETE", f"/v2/buildpacks/{guid}?async={flag}")
    expected = 202 if async_ else 204
    if response.status_code != expected:
        raise CFError(
            f"Error deleting buildpack {guid}, response code: {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )


def get_buildpack_by_guid(client: ApiClient, guid: str) -> Buildpack:
    """Fetch one buildpack."""
    try:
        response = client.request("GET", f"/v2/buildpacks/{guid}")
    except CFError as exc:
        raise CFError(
            f"Error requesting buildpack info: {exc}", exc.status_code, exc.body
        ) from exc
    return _buildpack_from_response(response)


def _multipart_body(boundary: str, file_name: str, payload: bytes) -> bytes:
    head = (
        f"--{boundary}\r\n"
        f'Content-Disposition: form-data; name="buildpack"; filename="{file_name}"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n"
    ).encode("utf-8")
    tail = f"\r\n--{boundary}--\r\n".encode("utf-8")
    return head + payload + tail


def upload_buildpack(
    client: ApiClient, guid: str, file: BinaryIO | bytes, file_name: str
) -> None:
    """Upload the archive of a buildpack under ``file_name``."""
    try:
        payload = file if isinstance(file, (bytes, bytearray)) else file.read()
    except OSError as exc:
        raise CFError(f"Error uploading buildpack: Error creating upload: {exc}") from exc
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    boundary = uuid.uuid4().hex
    body = _multipart_body(boundary, file_name, bytes(payload))
    headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
    try:
        client.request("PUT", f"/v2/buildpacks/{guid}/bits", body=body, headers=headers)
    except CFError as exc:
        raise CFError(f"Error uploading buildpack: {exc}", exc.status_code, exc.body) from exc


def update_buildpack(client: ApiClient, buildpack: Buildpack, request: BuildpackRequest) -> None:
    """Apply ``request`` to ``buildpack`` and refresh its name, lock and enabled flags."""
    try:
        response = client.request(
            "PUT", f"/v2/buildpacks/{buildpack.guid}", body=request.to_dict()
        )
        updated = _buildpack_from_response(response)
    except CFError as exc:
        raise CFError(f"Error updating buildpack: {exc}", exc.status_code, exc.body) from exc
    buildpack.name = updated.name
    buildpack.locked = updated.locked
    buildpack.enabled = updated.enabled