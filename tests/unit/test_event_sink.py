import asyncio

import pytest
from pydantic import TypeAdapter

from nestwatch.core.bus import EventBus
from nestwatch.core.contracts import (
    CameraNotification,
    ChimeStateChanged,
    MotionDetected,
    notification_topic,
)
from nestwatch.modules.output.event_sink import BusEventSink, RecordingEventSink, _PayloadSink


@pytest.mark.asyncio
async def test_bus_sink_publishes_on_camera_topic() -> None:
    bus = EventBus()
    await bus.start()
    received: list[MotionDetected] = []
    signal = asyncio.Event()

    async def handler(topic: str, payload: MotionDetected) -> None:
        received.append(payload)
        signal.set()

    bus.subscribe(notification_topic("cam-9"), handler)
    sink = BusEventSink(bus, "cam-9")

    await sink.motion_detected(True, ("motion", "Zone - Yard"))
    await asyncio.wait_for(signal.wait(), timeout=0.2)
    await bus.stop()

    assert sink.topic == "camera.cam-9.notification"
    assert received[0].active is True
    assert received[0].tags == ["motion", "Zone - Yard"]


@pytest.mark.asyncio
async def test_recording_sink_keeps_emission_order() -> None:
    sink = RecordingEventSink("cam-1")

    await sink.chime_state_changed(True)
    await sink.doorbell_rang()
    await sink.motion_detected(False, [])

    assert [n.kind for n in sink.notifications] == [
        "chime_state",
        "doorbell_rang",
        "motion_detected",
    ]
    assert sink.motion() == [(False, [])]


def test_notifications_round_trip_by_kind() -> None:
    adapter = TypeAdapter(CameraNotification)
    payload = ChimeStateChanged(camera_id="cam-1", enabled=False).model_dump(mode="json")

    parsed = adapter.validate_python(payload)

    assert isinstance(parsed, ChimeStateChanged)
    assert parsed.enabled is False


def test_payload_sink_requires_emit() -> None:
    class _Incomplete(_PayloadSink):
        pass

    with pytest.raises(TypeError):
        _Incomplete("cam-1")
