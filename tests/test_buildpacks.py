import io
import json

import pytest
import responses
from responses import matchers

from cfkit.api import ApiClient, CFError
from cfkit.buildpacks import (
    Buildpack,
    BuildpackRequest,
    create_buildpack,
    delete_buildpack,
    get_buildpack_by_guid,
    list_buildpacks,
    update_buildpack,
    upload_buildpack,
)

API = "http://api.example.com"
GUID = "c92b6f5f-d2a4-413a-b515-647d059723aa"
DELETE_GUID = "b2a35f0c-d5ad-4a59-bea7-461711d96b0d"


@pytest.fixture
def rsps():
    with responses.RequestsMock(assert_all_requests_are_fired=False) as mock:
        yield mock


def _client():
    return ApiClient(API, "token")


def _resource(guid, name, stack="cflinuxfs2", **extra):
    entity = {
        "name": name,
        "enabled": True,
        "locked": False,
        "position": 1,
        "filename": f"{name}.zip",
        "stack": stack,
    }
    entity.update(extra)
    return {
        "metadata": {
            "guid": guid,
            "url": f"/v2/buildpacks/{guid}",
            "created_at": "2016-06-08T16:41:31Z",
            "updated_at": "2016-06-08T16:41:26Z",
        },
        "entity": entity,
    }


def _sent_json(mock, call_index=0):
    return json.loads(mock.calls[call_index].request.body)


def test_list_buildpacks_follows_pages(rsps):
    page1 = {
        "total_results": 6,
        "total_pages": 2,
        "next_url": "/v2/buildpacksPage2",
        "resources": [_resource(GUID, "name_1")]
        + [_resource(f"guid-{i}", f"name_{i}") for i in range(2, 4)],
    }
    page2 = {
        "total_results": 6,
        "total_pages": 2,
        "next_url": None,
        "resources": [_resource(f"guid-{i}", f"name_{i}") for i in range(4, 7)],
    }
    rsps.add(responses.GET, f"{API}/v2/buildpacks", json=page1)
    rsps.add(responses.GET, f"{API}/v2/buildpacksPage2", json=page2)

    buildpacks = list_buildpacks(_client())

    assert len(buildpacks) == 6
    assert buildpacks[0].guid == GUID
    assert buildpacks[0].created_at == "2016-06-08T16:41:31Z"
    assert buildpacks[0].updated_at == "2016-06-08T16:41:26Z"
    assert buildpacks[0].name == "name_1"
    assert buildpacks[0].stack == "cflinuxfs2"
    assert buildpacks[5].name == "name_6"


def test_list_buildpacks_error_raises(rsps):
    rsps.add(responses.GET, f"{API}/v2/buildpacks", status=500, body="boom")
    with pytest.raises(CFError) as info:
        list_buildpacks(_client())
    assert info.value.status_code == 500


def test_get_buildpack_by_guid(rsps):
    rsps.add(responses.GET, f"{API}/v2/buildpacks/{GUID}", json=_resource(GUID, "name_1"))
    buildpack = get_buildpack_by_guid(_client(), GUID)
    assert buildpack.guid == GUID
    assert buildpack.created_at == "2016-06-08T16:41:31Z"
    assert buildpack.updated_at == "2016-06-08T16:41:26Z"
    assert buildpack.name == "name_1"
    assert buildpack.stack == "cflinuxfs2"


def test_get_buildpack_with_no_stack(rsps):
    rsps.add(
        responses.GET, f"{API}/v2/buildpacks/{GUID}", json=_resource(GUID, "name_1", stack=None)
    )
    buildpack = get_buildpack_by_guid(_client(), GUID)
    assert buildpack.guid == GUID
    assert buildpack.name == "name_1"
    assert buildpack.stack == ""


def test_upload_buildpack_succeeds(rsps):
    expected = b"this should really be zipped binary data"
    rsps.add(responses.PUT, f"{API}/v2/buildpacks/{GUID}/bits", json=_resource(GUID, "name_1"))
    upload_buildpack(_client(), GUID, io.BytesIO(expected), "test.zip")
    request = rsps.calls[0].request
    assert expected in request.body
    assert b'filename="test.zip"' in request.body
    assert b'name="buildpack"' in request.body
    assert request.headers["Content-Type"].startswith("multipart/form-data; boundary=")


def test_upload_buildpack_failure_raises(rsps):
    rsps.add(responses.PUT, f"{API}/v2/buildpacks/{GUID}/bits", status=400, body="{}")
    with pytest.raises(CFError) as info:
        upload_buildpack(_client(), GUID, b"this should really be zipped binary data", "test.zip")
    assert info.value.status_code == 400


def test_update_buildpack_sends_all_fields_and_refreshes(rsps):
    rsps.add(
        responses.PUT,
        f"{API}/v2/buildpacks/{GUID}",
        json=_resource(GUID, "renamed-buildpack", enabled=True, locked=True, position=100),
    )
    buildpack = Buildpack(guid=GUID)
    request = BuildpackRequest(name="renamed-buildpack", position=100)
    request.lock()
    request.enable()

    update_buildpack(_client(), buildpack, request)

    assert _sent_json(rsps) == {
        "name": "renamed-buildpack",
        "enabled": True,
        "locked": True,
        "position": 100,
    }
    assert buildpack.name == "renamed-buildpack"
    assert buildpack.locked is True
    assert buildpack.enabled is True


def test_update_buildpack_empty_request_sends_empty_object(rsps):
    rsps.add(
        responses.PUT,
        f"{API}/v2/buildpacks/{GUID}",
        json=_resource(GUID, "name_1", enabled=True, locked=False),
    )
    buildpack = Buildpack(guid=GUID, name="old", enabled=False, locked=True)
    update_buildpack(_client(), buildpack, BuildpackRequest())
    assert _sent_json(rsps) == {}
    assert buildpack.name == "name_1"
    assert buildpack.enabled is True
    assert buildpack.locked is False


def test_update_buildpack_can_send_false_and_zero_values(rsps):
    rsps.add(
        responses.PUT,
        f"{API}/v2/buildpacks/{GUID}",
        json=_resource(GUID, "", enabled=False, locked=False, position=0),
    )
    buildpack = Buildpack(guid=GUID, name="old", enabled=True, locked=True)
    request = BuildpackRequest(name="", position=0)
    request.unlock()
    request.disable()
    update_buildpack(_client(), buildpack, request)
    assert _sent_json(rsps) == {"name": "", "enabled": False, "locked": False, "position": 0}
    assert buildpack.name == ""
    assert buildpack.enabled is False
    assert buildpack.locked is False


def test_update_buildpack_failure_raises(rsps):
    rsps.add(responses.PUT, f"{API}/v2/buildpacks/{GUID}", status=400, body="{}")
    buildpack = Buildpack(guid=GUID, name="original")
    with pytest.raises(CFError):
        update_buildpack(_client(), buildpack, BuildpackRequest())
    assert buildpack.name == "original"


def test_update_buildpack_stack_is_sent(rsps):
    rsps.add(responses.PUT, f"{API}/v2/buildpacks/{GUID}", status=400, body="{}")
    with pytest.raises(CFError):
        update_buildpack(_client(), Buildpack(guid=GUID), BuildpackRequest(stack="cflinuxfs2"))
    assert _sent_json(rsps) == {"stack": "cflinuxfs2"}


def test_update_without_stack_leaves_it_out(rsps):
    rsps.add(responses.PUT, f"{API}/v2/buildpacks/{GUID}", status=400, body="{}")
    with pytest.raises(CFError):
        update_buildpack(_client(), Buildpack(guid=GUID), BuildpackRequest(name="new-name"))
    assert _sent_json(rsps) == {"name": "new-name"}


def _create_payload():
    return _resource(GUID, "test-buildpack", enabled=True, locked=False, position=10)


def test_create_buildpack_succeeds(rsps):
    rsps.add(responses.POST, f"{API}/v2/buildpacks", json=_create_payload())
    request = BuildpackRequest(name="test-buildpack", position=10, stack="cflinuxfs2")
    request.lock()
    request.enable()

    bp = create_buildpack(_client(), request)

    assert _sent_json(rsps) == {
        "name": "test-buildpack",
        "enabled": True,
        "locked": True,
        "position": 10,
        "stack": "cflinuxfs2",
    }
    assert bp.guid == GUID
    assert bp.name == "test-buildpack"
    assert bp.enabled is True
    assert bp.locked is False
    assert bp.position == 10
    assert bp.stack == "cflinuxfs2"


def test_create_buildpack_sends_only_name(rsps):
    rsps.add(responses.POST, f"{API}/v2/buildpacks", json=_create_payload())
    bp = create_buildpack(_client(), BuildpackRequest(name="test-buildpack"))
    assert _sent_json(rsps) == {"name": "test-buildpack"}
    assert bp.name == "test-buildpack"


def test_create_buildpack_unlocked_disabled_position_zero(rsps):
    rsps.add(responses.POST, f"{API}/v2/buildpacks", json=_create_payload())
    request = BuildpackRequest(name="test-buildpack", position=0)
    request.unlock()
    request.disable()
    bp = create_buildpack(_client(), request)
    assert _sent_json(rsps) == {
        "name": "test-buildpack",
        "enabled": False,
        "locked": False,
        "position": 0,
    }
    assert bp.guid == GUID


def test_create_buildpack_failure_raises(rsps):
    rsps.add(responses.POST, f"{API}/v2/buildpacks", status=400, body="{}")
    with pytest.raises(CFError) as info:
        create_buildpack(_client(), BuildpackRequest(name="test-buildpack"))
    assert info.value.status_code == 400


def test_create_buildpack_without_name_fails_before_request(rsps):
    rsps.add(responses.POST, f"{API}/v2/buildpacks", json=_create_payload())
    with pytest.raises(ValueError, match="no name"):
        create_buildpack(_client(), BuildpackRequest())
    with pytest.raises(ValueError):
        create_buildpack(_client(), BuildpackRequest(name=""))
    assert len(rsps.calls) == 0


def test_delete_buildpack_synchronously(rsps):
    rsps.add(
        responses.DELETE,
        f"{API}/v2/buildpacks/{DELETE_GUID}",
        status=204,
        match=[matchers.query_param_matcher({"async": "false"})],
    )
    result = delete_buildpack(_client(), DELETE_GUID, False)
    assert result is None
    assert len(rsps.calls) == 1
    assert rsps.calls[0].request.url == f"{API}/v2/buildpacks/{DELETE_GUID}?async=false"


def test_delete_buildpack_asynchronously(rsps):
    rsps.add(
        responses.DELETE,
        f"{API}/v2/buildpacks/{DELETE_GUID}",
        status=202,
        match=[matchers.query_param_matcher({"async": "true"})],
    )
    result = delete_buildpack(_client(), DELETE_GUID, True)
    assert result is None
    assert len(rsps.calls) == 1
    assert rsps.calls[0].request.url == f"{API}/v2/buildpacks/{DELETE_GUID}?async=true"


def test_delete_buildpack_unexpected_status_raises(rsps):
    rsps.add(responses.DELETE, f"{API}/v2/buildpacks/{DELETE_GUID}", status=204)
    with pytest.raises(CFError) as info:
        delete_buildpack(_client(), DELETE_GUID, True)
    assert info.value.status_code == 204


def test_buildpack_request_flags():
    request = BuildpackRequest()
    assert request.to_dict() == {}
    request.lock()
    request.enable()
    assert request.to_dict() == {"enabled": True, "locked": True}
    request.unlock()
    request.disable()
    assert request.to_dict() == {"enabled": False, "locked": False}


def test_buildpack_from_resource_merges_metadata():
    bp = Buildpack.from_resource(_resource("abc", "go", position=3))
    assert bp.guid == "abc"
    assert bp.position == 3
    assert bp.filename == "go.zip"
    assert bp.created_at == "2016-06-08T16:41:31Z"