"""HTTP access to the Cloud Controller v2 API."""

from __future__ import annotations

import json
from dataclasses import MISSING, dataclass, fields
from typing import Any, Iterator, Mapping

import requests

DEFAULT_USER_AGENT = "cfkit/1.1"


class CFError(Exception):
    """Raised when the API cannot be reached, answers with an error or sends bad data."""

    def __init__(self, message: str, status_code: int | None = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def _populate(cls: type, data: Mapping[str, Any] | None, renames: Mapping[str, str] | None = None) -> dict:
    """Pick the dataclass fields of ``cls`` out of a JSON object.

    Absent keys and JSON nulls leave the field at its default, as a decoder
    that fills zero values would.
    """
    data = data or {}
    renames = renames or {}
    values = {}
    for field in fields(cls):
        if field.default is MISSING and field.default_factory is MISSING:
            continue
        value = data.get(renames.get(field.name, field.name))
        if value is not None:
            values[field.name] = value
    return values


@dataclass
class Meta:
    """The ``metadata`` block that accompanies every v2 resource."""

    guid: str = ""
    url: str = ""
    created_at: str = ""
    updated_at: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, Any] | None) -> "Meta":
        return cls(**_populate(cls, data))


class ApiClient:
    """A session bound to one Cloud Controller endpoint and access token."""

    def __init__(
        self,
        api_address: str,
        token: str,
        user_agent: str = DEFAULT_USER_AGENT,
        skip_ssl_validation: bool = False,
    ):
        self.api_address = api_address.rstrip("/")
        self.token = token
        self.user_agent = user_agent
        self.skip_ssl_validation = skip_ssl_validation
        self._session = requests.Session()
        self._session.verify = not skip_ssl_validation
        self._session.headers.update(
            {"Authorization": f"Bearer {token}", "User-Agent": user_agent}
        )

    def __enter__(self) -> "ApiClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self._session.close()

    def url(self, path: str) -> str:
        """Return the absolute URL for an API path; absolute URLs pass through."""
        if path.startswith(("http://", "https://")):
            return path
        if not path.startswith("/"):
            path = "/" + path
        return self.api_address + path

    def request(
        self,
        method: str,
        path: str,
        body: Any = None,
        headers: Mapping[str, str] | None = None,
        allow_redirects: bool = True,
    ) -> requests.Response:
        """Send a request and return the response, raising CFError on failure.

        A dict or list body is sent as JSON; anything else is sent as is.
        """
        send_headers = dict(headers or {})
        if isinstance(body, (dict, list)):
            data = json.dumps(body).encode("utf-8")
            send_headers.setdefault("Content-Type", "application/json")
        else:
            data = body
        try:
            response = self._session.request(
                method,
                self.url(path),
                data=data,
                headers=send_headers,
                allow_redirects=allow_redirects,
            )
        except requests.RequestException as exc:
            raise CFError(f"Error requesting {method} {path}: {exc}") from exc
        if response.status_code >= 400:
            raise CFError(
                f"CF API returned with status code {response.status_code}",
                status_code=response.status_code,
                body=response.text,
            )
        return response

    def get_json(self, path: str) -> Any:
        """GET a path and decode its JSON body."""
        response = self.request("GET", path)
        try:
            return response.json()
        except ValueError as exc:
            raise CFError(f"Error unmarshalling response from {path}: {exc}") from exc

    def paginate(self, path: str, max_pages: int | None = None) -> Iterator[dict]:
        """Yield the resources of a paged listing, following ``next_url``.

        With ``max_pages`` above zero, stop after that many pages.
        """
        pages = 0
        next_path = path
        while next_path:
            page = self.get_json(next_path) or {}
            yield from page.get("resources") or []
            next_path = page.get("next_url") or ""
            pages += 1
            if max_pages is not None and max_pages > 0 and pages >= max_pages:
                break