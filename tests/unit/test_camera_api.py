import httpx
import pytest
from conftest import camera_payload

from nestwatch.core.contracts import STREAMING_ENABLED, CameraInfo
from nestwatch.modules.input.camera_api import NestCameraApi, NestStructureApi
from nestwatch.modules.input.endpoints import (
    CAMERA_API_HOSTNAME,
    CAMERA_API_HOSTNAME_FIELD_TEST,
    NestEndpoints,
    ResponseShapeError,
    TransportError,
    camera_host,
)


def _endpoints(handler, **kwargs) -> NestEndpoints:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return NestEndpoints(access_token="token-123", client=client, **kwargs)


@pytest.fixture
def camera() -> CameraInfo:
    return CameraInfo.model_validate(camera_payload())


@pytest.mark.asyncio
async def test_fetch_events_requests_cuepoints_since(camera) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json=[
                {
                    "id": "evt-1",
                    "types": ["motion", "person"],
                    "zone_ids": [1],
                    "is_important": True,
                    "start_time": 1699999990.5,
                }
            ],
        )

    api = NestCameraApi(_endpoints(handler))
    events = await api.fetch_events(camera, 1_699_999_940)

    assert events[0].id == "evt-1"
    assert events[0].zone_ids == [1]
    request = requests[0]
    assert request.url.host == "nexus.example.com"
    assert request.url.path == "/cuepoint/cam-1/2"
    assert request.url.params["start_time"] == "1699999940"
    assert request.headers["Authorization"] == "Basic token-123"


@pytest.mark.asyncio
async def test_http_error_status_raises_transport_error(camera) -> None:
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(503)))

    with pytest.raises(TransportError):
        await api.fetch_events(camera, 0)


@pytest.mark.asyncio
async def test_network_failure_raises_transport_error(camera) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("unreachable", request=request)

    api = NestCameraApi(_endpoints(handler))

    with pytest.raises(TransportError):
        await api.fetch_zones(camera)


@pytest.mark.asyncio
async def test_unexpected_payload_raises_shape_error(camera) -> None:
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(200, json={"oops": 1})))

    with pytest.raises(ResponseShapeError):
        await api.fetch_events(camera, 0)


@pytest.mark.asyncio
async def test_invalid_json_raises_shape_error(camera) -> None:
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(200, content=b"<html>")))

    with pytest.raises(ResponseShapeError):
        await api.fetch_zones(camera)


@pytest.mark.asyncio
async def test_fetch_zones_accepts_items_envelope(camera) -> None:
    payload = {"items": [{"id": 7, "label": "Yard", "type": "region", "hidden": False}]}
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(200, json=payload)))

    zones = await api.fetch_zones(camera)

    assert [(zone.id, zone.label) for zone in zones] == [(7, "Yard")]


@pytest.mark.asyncio
async def test_fetch_properties_uses_camera_api_host(camera) -> None:
    requests: list[httpx.Request] = []
    fresh = camera_payload(**{STREAMING_ENABLED: False})

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"items": [fresh]})

    api = NestCameraApi(_endpoints(handler))
    info = await api.fetch_properties(camera)

    assert not info.property_enabled(STREAMING_ENABLED)
    assert str(requests[0].url).startswith(CAMERA_API_HOSTNAME)
    assert requests[0].url.params["uuid"] == "cam-1"


@pytest.mark.asyncio
async def test_fetch_properties_without_items_raises(camera) -> None:
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(200, json={"items": []})))

    with pytest.raises(ResponseShapeError):
        await api.fetch_properties(camera)


@pytest.mark.asyncio
async def test_field_test_switches_camera_api_host(camera) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"items": [camera_payload()]})

    api = NestCameraApi(_endpoints(handler, field_test=True))
    await api.fetch_properties(camera)

    assert str(requests[0].url).startswith(CAMERA_API_HOSTNAME_FIELD_TEST)


@pytest.mark.asyncio
@pytest.mark.parametrize(("status", "expected"), [(0, True), (1, False)])
async def test_set_property_posts_form(camera, status, expected) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"status": status})

    api = NestCameraApi(_endpoints(handler))
    result = await api.set_property(camera, STREAMING_ENABLED, False)

    assert result is expected
    assert requests[0].method == "POST"
    assert requests[0].url.path == "/api/dropcams.set_properties"
    assert requests[0].content == b"streaming.enabled=false&uuid=cam-1"


@pytest.mark.asyncio
async def test_set_property_without_status_raises(camera) -> None:
    api = NestCameraApi(_endpoints(lambda request: httpx.Response(200, json={})))

    with pytest.raises(ResponseShapeError):
        await api.set_property(camera, STREAMING_ENABLED, True)


@pytest.mark.asyncio
async def test_snapshot_prefers_event_clip(camera) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, content=b"\xff\xd8frame")

    api = NestCameraApi(_endpoints(handler))
    clip = await api.fetch_snapshot(camera, 360, "evt-9")
    live = await api.fetch_snapshot(camera, 720)

    assert clip == live == b"\xff\xd8frame"
    assert requests[0].url.path == "/get_event_clip"
    assert requests[0].url.params["cuepoint_id"] == "evt-9"
    assert requests[0].url.params["format"] == "sprite"
    assert requests[1].url.path == "/get_image"
    assert requests[1].url.params["uuid"] == "cam-1"
    assert "height" not in requests[1].url.params


@pytest.mark.asyncio
async def test_list_faces_queries_structure(camera) -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json=[{"id": "f1", "name": "Alice"}, {"id": "f2"}])

    faces = await NestStructureApi(_endpoints(handler), camera).list_faces("structure.abc")

    assert [face.name for face in faces] == ["Alice", None]
    assert requests[0].url.path == "/faces/structure.abc"
    assert requests[0].url.host == "nexus.example.com"


@pytest.mark.asyncio
async def test_injected_client_is_not_closed() -> None:
    client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    endpoints = NestEndpoints(access_token="t", client=client)

    await endpoints.aclose()

    assert not client.is_closed
    await client.aclose()


def test_camera_host_adds_scheme() -> None:
    assert camera_host("nexus.example.com") == "https://nexus.example.com"
    assert camera_host("http://localhost:8080") == "http://localhost:8080"
