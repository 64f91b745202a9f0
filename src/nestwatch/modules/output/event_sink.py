"""
Notification surface of the alert engine.

`CameraEventSink` has one coroutine per notification kind. `BusEventSink`
turns each call into the matching payload on `camera.<id>.notification`;
`RecordingEventSink` keeps them in memory.
"""

from __future__ import annotations

import abc
import logging
from collections.abc import Sequence
from typing import Protocol

from ...core.bus import EventBus
from ...core.contracts import (
    AudioStateChanged,
    CameraNotification,
    CameraStateChanged,
    ChimeAssistStateChanged,
    ChimeStateChanged,
    DoorbellRang,
    MotionDetected,
    notification_topic,
)

logger = logging.getLogger(__name__)


class CameraEventSink(Protocol):
    async def camera_state_changed(self, enabled: bool) -> None: ...

    async def chime_state_changed(self, enabled: bool) -> None: ...

    async def chime_assist_state_changed(self, enabled: bool) -> None: ...

    async def audio_state_changed(self, enabled: bool) -> None: ...

    async def doorbell_rang(self) -> None: ...

    async def motion_detected(self, active: bool, tags: Sequence[str]) -> None: ...


class _PayloadSink(abc.ABC):
    """Build notification payloads and hand them to `_emit`."""

    def __init__(self, camera_id: str) -> None:
        self.camera_id = camera_id

    @abc.abstractmethod
    async def _emit(self, payload: CameraNotification) -> None:
        """Deliver one notification."""

    async def camera_state_changed(self, enabled: bool) -> None:
        await self._emit(CameraStateChanged(camera_id=self.camera_id, enabled=enabled))

    async def chime_state_changed(self, enabled: bool) -> None:
        await self._emit(ChimeStateChanged(camera_id=self.camera_id, enabled=enabled))

    async def chime_assist_state_changed(self, enabled: bool) -> None:
        await self._emit(ChimeAssistStateChanged(camera_id=self.camera_id, enabled=enabled))

    async def audio_state_changed(self, enabled: bool) -> None:
        await self._emit(AudioStateChanged(camera_id=self.camera_id, enabled=enabled))

    async def doorbell_rang(self) -> None:
        await self._emit(DoorbellRang(camera_id=self.camera_id))

    async def motion_detected(self, active: bool, tags: Sequence[str]) -> None:
        await self._emit(MotionDetected(camera_id=self.camera_id, active=active, tags=list(tags)))


class BusEventSink(_PayloadSink):
    """Publish every notification on the camera's bus topic."""

    def __init__(self, bus: EventBus, camera_id: str) -> None:
        super().__init__(camera_id)
        self._bus = bus
        self.topic = notification_topic(camera_id)

    async def _emit(self, payload: CameraNotification) -> None:
        logger.debug("Publishing %s on %s", payload.kind, self.topic)
        await self._bus.publish(self.topic, payload)


class RecordingEventSink(_PayloadSink):
    """Keep emitted notifications in order of emission."""

    def __init__(self, camera_id: str = "camera") -> None:
        super().__init__(camera_id)
        self.notifications: list[CameraNotification] = []

    async def _emit(self, payload: CameraNotification) -> None:
        self.notifications.append(payload)

    def of_kind(self, kind: str) -> list[CameraNotification]:
        return [n for n in self.notifications if n.kind == kind]

    def motion(self) -> list[tuple[bool, list[str]]]:
        return [(n.active, n.tags) for n in self.notifications if isinstance(n, MotionDetected)]

    def clear(self) -> None:
        self.notifications.clear()


__all__ = ["BusEventSink", "CameraEventSink", "RecordingEventSink"]
