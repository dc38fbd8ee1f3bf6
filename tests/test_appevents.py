from datetime import datetime, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
import responses

from cfkit.api import ApiClient, CFError
from cfkit.appevents import (
    APP_CRASH,
    APP_CREATE,
    FILTER_ACTEE,
    FILTER_TIMESTAMP,
    AppEventEntity,
    AppEventQuery,
    list_app_events,
    list_app_events_by_query,
)

BASE = "http://api.example.com"
ACTEE = "3ca436ff-67a8-468a-8c7d-27ec68a6cfe5"


def _event(event_type, timestamp, metadata):
    return {
        "metadata": {"guid": "ev-" + timestamp, "created_at": timestamp},
        "entity": {
            "type": event_type,
            "actor": "uaa-id-1",
            "actor_type": "user",
            "actor_name": "admin",
            "actee": ACTEE,
            "actee_type": "app",
            "actee_name": "test-app",
            "timestamp": timestamp,
            "metadata": metadata,
        },
    }


PAGE1 = {
    "total_results": 3,
    "total_pages": 2,
    "next_url": "/v2/events2",
    "resources": [
        _event(
            APP_CREATE,
            "2016-02-26T13:29:44Z",
            {"request": {"name": "test-app", "instances": 1, "state": "STOPPED", "memory": 256}},
        ),
        _event(
            APP_CRASH,
            "2016-02-26T13:30:44Z",
            {"exit_description": "app instance exited", "reason": "CRASHED", "index": 0},
        ),
    ],
}
PAGE2 = {
    "total_results": 3,
    "total_pages": 2,
    "next_url": None,
    "resources": [
        _event(APP_CREATE, "2016-02-26T13:31:44Z", {"request": {"state": "STARTED"}}),
    ],
}


@pytest.fixture
def mocked():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as rsps:
        rsps.add(responses.GET, BASE + "/v2/events", json=PAGE1)
        rsps.add(responses.GET, BASE + "/v2/events2", json=PAGE2)
        yield rsps


@pytest.fixture
def client():
    return ApiClient(BASE, "token")


def _assert_events(app_events):
    assert len(app_events) == 3
    assert app_events[0].metadata.request.state == "STOPPED"
    assert app_events[1].event_type == APP_CRASH
    assert app_events[1].metadata.request.state == ""
    assert app_events[1].metadata.exit_reason == "CRASHED"
    assert app_events[2].metadata.request.state == "STARTED"


def test_list_app_events(client, mocked):
    with pytest.raises(ValueError, match="^Unsupported app event type blub$"):
        list_app_events(client, "blub")
    assert len(mocked.calls) == 0
    app_events = list_app_events(client, APP_CREATE)
    _assert_events(app_events)
    query = parse_qs(urlsplit(mocked.calls[0].request.url).query)
    assert query == {"q": ["type:audit.app.create"]}


def test_list_app_events_by_query(client, mocked):
    with pytest.raises(ValueError, match="^Unsupported app event type blub$"):
        list_app_events_by_query(client, "blub", [])

    query = AppEventQuery(filter="nofilter", operator=":", value="retlifon")
    with pytest.raises(ValueError, match="^Unsupported query filter type nofilter$"):
        list_app_events_by_query(client, APP_CREATE, [query])

    query = AppEventQuery(filter=FILTER_TIMESTAMP, operator="not", value="retlifon")
    with pytest.raises(ValueError, match="^Unsupported query operator type not$"):
        list_app_events_by_query(client, APP_CREATE, [query])
    assert len(mocked.calls) == 0

    query = AppEventQuery(filter=FILTER_ACTEE, operator=":", value=ACTEE)
    app_events = list_app_events_by_query(client, APP_CREATE, [query])
    _assert_events(app_events)
    sent = parse_qs(urlsplit(mocked.calls[0].request.url).query)
    assert sent == {"q": ["type:audit.app.create", f"actee:{ACTEE}"]}


def test_entity_from_dict_parses_timestamp():
    entity = AppEventEntity.from_dict(PAGE1["resources"][0]["entity"])
    assert entity.timestamp == datetime(2016, 2, 26, 13, 29, 44, tzinfo=timezone.utc)
    assert entity.metadata.request.memory == 256
    assert entity.actee == ACTEE


def test_entity_from_dict_rejects_bad_timestamp():
    with pytest.raises(ValueError):
        AppEventEntity.from_dict({"timestamp": "yesterday"})


def test_list_app_events_bad_payload_raises_cferror(client):
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            BASE + "/v2/events",
            json={"resources": [{"entity": {"timestamp": "yesterday"}}]},
        )
        with pytest.raises(CFError, match="^Error unmarshalling appevent"):
            list_app_events(client, APP_CREATE)