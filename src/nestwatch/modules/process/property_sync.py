"""
Camera property refresh and change notification.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from ...core.contracts import (
    AUDIO_ENABLED,
    CHIME_ASSIST_ENABLED,
    INDOOR_CHIME_ENABLED,
    STREAMING_ENABLED,
    CameraInfo,
)
from ..input.camera_api import CameraApi
from ..input.endpoints import NestApiError
from ..output.event_sink import CameraEventSink

logger = logging.getLogger(__name__)

REFRESH_DEBOUNCE_SECONDS = 1.0


class PropertySync:
    """
    Own the cached `CameraInfo` of one camera.

    The cache is only ever swapped for a complete new object, either after a
    successful fetch, on pushed info, or after a successful property write.
    """

    def __init__(
        self,
        api: CameraApi,
        info: CameraInfo,
        sink: CameraEventSink,
        *,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._api = api
        self._info = info
        self._sink = sink
        self._clock = clock or time.monotonic
        self._last_updated: float | None = None
        self._watched: tuple[tuple[str, Callable[[bool], Awaitable[None]]], ...] = (
            (STREAMING_ENABLED, sink.camera_state_changed),
            (INDOOR_CHIME_ENABLED, sink.chime_state_changed),
            (CHIME_ASSIST_ENABLED, sink.chime_assist_state_changed),
            (AUDIO_ENABLED, sink.audio_state_changed),
        )

    @property
    def info(self) -> CameraInfo:
        return self._info

    async def refresh(self, pushed_info: CameraInfo | None = None) -> CameraInfo:
        info = pushed_info
        if info is None:
            if (
                self._last_updated is not None
                and self._clock() - self._last_updated < REFRESH_DEBOUNCE_SECONDS
            ):
                return self._info
            try:
                info = await self._api.fetch_properties(self._info)
            except NestApiError as exc:
                logger.error("Error updating %s camera: %s", self._info.name, exc)
                return self._info

        previous = self._info
        self._info = info
        self._last_updated = self._clock()
        for key, notify in self._watched:
            new_value = info.properties.get(key)
            if previous.properties.get(key) != new_value:
                logger.debug("%s changed %s to %s", info.name, key, new_value)
                await notify(bool(new_value))
        return self._info

    async def set_property(self, key: str, value: Any) -> bool:
        try:
            ok = await self._api.set_property(self._info, key, value)
        except NestApiError as exc:
            logger.error("Error setting property for %s: %s", self._info.name, exc)
            return False
        if not ok:
            logger.error("Unable to set property '%s' for %s to %s", key, self._info.name, value)
            return False
        self._info = self._info.with_property(key, value)
        return True


__all__ = ["REFRESH_DEBOUNCE_SECONDS", "PropertySync"]
