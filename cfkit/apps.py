"""Listing, inspecting and managing applications."""

from __future__ import annotations

import io
import uuid
from typing import Any, BinaryIO, Iterable, Mapping
from urllib.parse import urlencode

import requests

from .api import ApiClient, CFError
from .app_models import App, AppCreateRequest, AppEnv, AppInstance, AppStats, AppSummary

_REDIRECT_CODES = frozenset({301, 302, 303, 307, 308})

Query = Mapping[str, "str | Iterable[str]"]


def is_response_redirect(response: requests.Response) -> bool:
    """Tell whether a response points elsewhere with a redirect status."""
    return response.status_code in _REDIRECT_CODES


def _encode_query(query: Query | None) -> str:
    """Encode a query with its keys sorted, keeping the order of repeated values."""
    items = []
    for key in sorted(query or {}):
        value = query[key]
        values = [value] if isinstance(value, str) else list(value)
        items.extend((key, item) for item in values)
    return urlencode(items)


def _get_json(client: ApiClient, path: str, what: str) -> Any:
    try:
        return client.get_json(path)
    except CFError as exc:
        raise CFError(f"Error requesting {what}: {exc}", exc.status_code, exc.body) from exc


def _decode(what: str, build, data: Any):
    try:
        return build(data)
    except (ValueError, TypeError, AttributeError) as exc:
        raise CFError(f"Error unmarshalling {what}: {exc}") from exc


def _require_success(response: requests.Response, message: str) -> None:
    if not 200 <= response.status_code < 300:
        raise CFError(
            f"{message}, response code: {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )


def _list_apps(client: ApiClient, path: str, total_pages: int) -> list[App]:
    try:
        return [
            App.from_resource(resource)
            for resource in client.paginate(path, max_pages=total_pages)
        ]
    except CFError as exc:
        raise CFError(f"Error requesting apps: {exc}", exc.status_code, exc.body) from exc
    except (ValueError, TypeError, AttributeError) as exc:
        raise CFError(f"Error unmarshalling app: {exc}") from exc


def list_apps_by_query_with_limits(
    client: ApiClient, query: Query | None, total_pages: int
) -> list[App]:
    """List apps matching ``query`` from at most ``total_pages`` pages; zero or less means all."""
    return _list_apps(client, "/v2/apps?" + _encode_query(query), total_pages)


def list_apps_by_query(client: ApiClient, query: Query | None) -> list[App]:
    """List every app matching ``query``."""
    return _list_apps(client, "/v2/apps?" + _encode_query(query), -1)


def list_apps(client: ApiClient) -> list[App]:
    """List every app, with its space and organisation inlined."""
    return list_apps_by_query(client, {"inline-relations-depth": "2"})


def list_apps_by_route(client: ApiClient, route_guid: str) -> list[App]:
    """List the apps bound to a route."""
    return _list_apps(client, f"/v2/routes/{route_guid}/apps", -1)


def get_app_by_guid(client: ApiClient, guid: str) -> App:
    """Fetch one app, with its space and organisation inlined."""
    data = _get_json(client, f"/v2/apps/{guid}?inline-relations-depth=2", "apps")
    return _decode("app", App.from_resource, data or {})


def app_by_guid(client: ApiClient, guid: str) -> App:
    """Fetch one app; the same as :func:`get_app_by_guid`."""
    return get_app_by_guid(client, guid)


def app_by_name(client: ApiClient, app_name: str, space_guid: str, org_guid: str) -> App:
    """Find the app called ``app_name`` in the given space and organisation."""
    query = {
        "q": [
            f"organization_guid:{org_guid}",
            f"space_guid:{space_guid}",
            f"name:{app_name}",
        ]
    }
    apps = list_apps_by_query(client, query)
    if not apps:
        raise CFError(
            f"No app found with name: `{app_name}` in space with GUID `{space_guid}` "
            f"and org with GUID `{org_guid}`"
        )
    return apps[0]


def get_app_summary(client: ApiClient, guid: str) -> AppSummary:
    """Fetch the summary view of an app."""
    data = _get_json(client, f"/v2/apps/{guid}/summary", "app summary")
    return _decode("app summary", AppSummary.from_dict, data)


def get_app_instances(client: ApiClient, guid: str) -> dict[str, AppInstance]:
    """Fetch the state of each instance of an app, keyed by instance index."""
    data = _get_json(client, f"/v2/apps/{guid}/instances", "app instances")
    return _decode(
        "app instances",
        lambda d: {index: AppInstance.from_dict(item) for index, item in (d or {}).items()},
        data,
    )


def get_app_env(client: ApiClient, guid: str) -> AppEnv:
    """Fetch the environment groups of an app."""
    data = _get_json(client, f"/v2/apps/{guid}/env", "app env")
    return _decode("app env", AppEnv.from_dict, data)


def get_app_stats(client: ApiClient, guid: str) -> dict[str, AppStats]:
    """Fetch the statistics of each instance of an app, keyed by instance index."""
    data = _get_json(client, f"/v2/apps/{guid}/stats", "app stats")
    return _decode(
        "app stats",
        lambda d: {index: AppStats.from_dict(item) for index, item in (d or {}).items()},
        data,
    )


def kill_app_instance(client: ApiClient, guid: str, index: str | int) -> None:
    """Stop the instance ``index`` of an app."""
    message = f"Error stopping app {guid} at index {index}"
    try:
        response = client.request("DELETE", f"/v2/apps/{guid}/instances/{index}")
    except CFError as exc:
        raise CFError(f"{message}: {exc}", exc.status_code, exc.body) from exc
    _require_success(response, message)


def _multipart_body(boundary: str, payload: bytes) -> bytes:
    parts = [
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="resources"\r\n\r\n'
        "[]\r\n".encode("utf-8"),
        f"--{boundary}\r\n"
        'Content-Disposition: form-data; name="application"; filename="application.zip"\r\n'
        "Content-Type: application/octet-stream\r\n\r\n".encode("utf-8"),
        payload,
        f"\r\n--{boundary}--\r\n".encode("utf-8"),
    ]
    return b"".join(parts)


def upload_app_bits(client: ApiClient, file: BinaryIO | bytes, app_guid: str) -> None:
    """Upload the zipped contents of an app; the API must answer 201 Created."""
    message = f"Error uploading app {app_guid} bits"
    try:
        payload = file if isinstance(file, (bytes, bytearray)) else file.read()
    except OSError as exc:
        raise CFError(f"{message}, failed to copy all bytes: {exc}") from exc
    if isinstance(payload, str):
        payload = payload.encode("utf-8")
    boundary = uuid.uuid4().hex
    body = _multipart_body(boundary, bytes(payload))
    headers = {"Content-Type": f"multipart/form-data; boundary={boundary}"}
    try:
        response = client.request("PUT", f"/v2/apps/{app_guid}/bits", body=body, headers=headers)
    except CFError as exc:
        raise CFError(f"{message}: {exc}", exc.status_code, exc.body) from exc
    if response.status_code != 201:
        raise CFError(
            f"{message}, response code: {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )


def get_app_bits(client: ApiClient, guid: str) -> BinaryIO:
    """Download the bits of an app from the blobstore the API redirects to."""
    try:
        response = client.request("GET", f"/v2/apps/{guid}/download", allow_redirects=False)
    except CFError as exc:
        raise CFError(
            f"Error downloading app {guid} bits, API request failed: {exc}",
            exc.status_code,
            exc.body,
        ) from exc
    if not is_response_redirect(response):
        raise CFError(
            f"Error downloading app {guid} bits, expected redirect to blobstore",
            status_code=response.status_code,
        )
    location = response.headers.get("Location", "")
    # The blobstore is asked without the API's credentials; some reject them.
    try:
        with requests.Session() as session:
            session.verify = not client.skip_ssl_validation
            blob = session.get(location)
            blob.raise_for_status()
    except requests.RequestException as exc:
        raise CFError(f"Error downloading app {guid} bits from blobstore: {exc}") from exc
    return io.BytesIO(blob.content)


def create_app(client: ApiClient, request: AppCreateRequest) -> App:
    """Create an empty app that still needs its bits uploaded and to be started."""
    try:
        response = client.request("POST", "/v2/apps", body=request.to_dict())
    except CFError as exc:
        raise CFError(f"Error creating app {request.name}: {exc}", exc.status_code, exc.body) from exc
    if response.status_code != 201:
        raise CFError(
            f"Error creating app {request.name}, response code: {response.status_code}",
            status_code=response.status_code,
            body=response.text,
        )
    try:
        data = response.json()
    except ValueError as exc:
        raise CFError(f"Error deserializing app {request.name} response: {exc}") from exc
    return _decode(f"app {request.name}", App.from_resource, data or {})


def _set_state(client: ApiClient, guid: str, state: str, verb: str) -> None:
    body = f'{{ "state": "{state}" }}'.encode("utf-8")
    response = client.request(
        "PUT", f"/v2/apps/{guid}", body=body, headers={"Content-Type": "application/json"}
    )
    _require_success(response, f"Error {verb} app {guid}")


def start_app(client: ApiClient, guid: str) -> None:
    """Ask the platform to start an app."""
    _set_state(client, guid, "STARTED", "starting")


def stop_app(client: ApiClient, guid: str) -> None:
    """Ask the platform to stop an app."""
    _set_state(client, guid, "STOPPED", "stopping")


def delete_app(client: ApiClient, guid: str) -> None:
    """Delete an app."""
    response = client.request("DELETE", f"/v2/apps/{guid}")
    _require_success(response, f"Error deleting app {guid}")