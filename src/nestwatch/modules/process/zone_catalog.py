"""
Cached list of named detection regions for a camera.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from ...core.contracts import CameraInfo, Zone
from ..input.camera_api import CameraApi
from ..input.endpoints import NestApiError

logger = logging.getLogger(__name__)


class ZoneCatalog:
    """Resolve and cache the region zones configured on one camera."""

    def __init__(self, api: CameraApi, camera: Callable[[], CameraInfo]) -> None:
        self._api = api
        self._camera = camera
        self._zones: list[Zone] = []

    @property
    def zones(self) -> list[Zone]:
        return list(self._zones)

    async def refresh(self) -> list[Zone]:
        """Fetch zones, keeping only visible, labelled regions; `[]` on failure."""
        camera = self._camera()
        try:
            fetched = await self._api.fetch_zones(camera)
        except NestApiError as exc:
            logger.error("Error getting zones for %s camera: %s", camera.name or camera.uuid, exc)
            return []
        valid = [zone for zone in fetched if self._is_region(zone)]
        self._zones = valid
        logger.debug(
            "Zone catalog for %s holds %d of %d zones",
            camera.name or camera.uuid,
            len(valid),
            len(fetched),
        )
        return list(valid)

    def lookup(self, zone_id: int) -> Zone | None:
        for zone in self._zones:
            if zone.id == zone_id:
                return zone
        return None

    @staticmethod
    def _is_region(zone: Zone) -> bool:
        return bool(zone.label) and not zone.hidden and zone.type == "region"


__all__ = ["ZoneCatalog"]
