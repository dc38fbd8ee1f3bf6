# cfkit

A small client library for the Cloud Foundry v2 Cloud Controller API. It
covers applications, app audit events, app usage events and buildpacks.

## Installation

```
pip install cfkit
```

## Modules

- `cfkit.api`: `ApiClient`, the HTTP session bound to one API address and
  bearer token; `CFError`, the error raised for failed requests; `Meta`, the
  metadata block of a v2 resource. `ApiClient.paginate` follows `next_url`
  links through a paged listing. The client can be used as a context manager,
  which closes its session on exit.
- `cfkit.apps`: `list_apps`, `list_apps_by_query`,
  `list_apps_by_query_with_limits`, `list_apps_by_route`, `get_app_by_guid`,
  `app_by_guid`, `app_by_name`, `get_app_summary`, `get_app_instances`,
  `get_app_env`, `get_app_stats`, `kill_app_instance`, `upload_app_bits`,
  `get_app_bits`, `create_app`, `start_app`, `stop_app`, `delete_app` and
  `is_response_redirect`.
- `cfkit.app_models`: the data types `App`, `AppCreateRequest`,
  `DockerCredentials`, `AppInstance`, `AppStats`, `AppStatsDetail`,
  `AppUsage`, `AppSummary`, `AppEnv`, the enums `AppState` and
  `HealthCheckType`, and the time parsers `parse_since_time` and
  `parse_stat_time`.
- `cfkit.app_update`: `update_app` with `AppUpdateResource`, returning an
  `UpdateResponse`.
- `cfkit.appevents`: `list_app_events` and `list_app_events_by_query`, with
  `AppEventQuery` filters on `timestamp` or `actee`.
- `cfkit.app_usage_events`: `list_app_usage_events` and
  `list_app_usage_events_by_query`.
- `cfkit.buildpacks`: `Buildpack`, `BuildpackRequest`, `create_buildpack`,
  `list_buildpacks`, `get_buildpack_by_guid`, `update_buildpack`,
  `upload_buildpack` and `delete_buildpack`.

## Usage

```python
from cfkit.api import ApiClient, CFError
from cfkit.apps import list_apps, get_app_stats, start_app
from cfkit.appevents import APP_CRASH, list_app_events
from cfkit.buildpacks import BuildpackRequest, create_buildpack

with ApiClient("https://api.example.com", "token") as client:
    for app in list_apps(client):
        print(app.guid, app.name, app.state)

    stats = get_app_stats(client, "9902530c-c634-4864-a189-71d763cb12e2")
    print(stats["0"].stats.usage.cpu)

    start_app(client, "9902530c-c634-4864-a189-71d763cb12e2")

    crashes = list_app_events(client, APP_CRASH)

    request = BuildpackRequest(name="my-buildpack")
    request.enable()
    request.lock()
    buildpack = create_buildpack(client, request)
```

Paged listings follow the API's `next_url` links to the last page.
`list_apps_by_query_with_limits` stops after the given number of pages when
that number is above zero.

`upload_app_bits` and `upload_buildpack` accept bytes or a binary file
object. `get_app_bits` follows the API's redirect to the blobstore without
sending the API token, and returns the downloaded bits as a binary stream.

Buildpack request fields left as `None` are not sent. An update then changes
only the fields you set, and explicit `False`, `0` or `""` values are still
sent.

## Errors

Transport failures, error status codes, unexpected status codes and bodies
that cannot be decoded raise `CFError`, which carries `status_code` and
`body` when a response was received. Bad arguments raise `ValueError`: an
unknown event type, query filter or query operator in the event listings,
and a buildpack request without a name in `create_buildpack`.

## What it does not do

The package does not log in or fetch and refresh tokens: `ApiClient` is given
a bearer token obtained elsewhere. It provides no command-line tool.

## Running the tests

```
pip install -e ".[test]"
pytest
```