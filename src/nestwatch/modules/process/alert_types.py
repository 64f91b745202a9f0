"""
Resolve the alert categories a camera should report on.

The configured category list may contain the placeholders ``"Zone"`` and
``"Face"``; they expand into one ``"Zone - <label>"`` entry per region zone and
one ``"Face - <name>"`` entry per known person. Every call builds a fresh list
from the configured categories, so the result only changes when the remote
zones or faces do.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from ...core.contracts import STRANGER_DETECTION, CameraInfo
from ..input.camera_api import FaceCatalog
from ..input.endpoints import NestApiError
from .zone_catalog import ZoneCatalog

logger = logging.getLogger(__name__)

ZONE_TOKEN = "Zone"
FACE_TOKEN = "Face"
UNKNOWN_FACE = "Face - Unknown"
STRANGER_ONLY_TYPES = frozenset({"Package Delivered", "Package Retrieved", FACE_TOKEN})


def zone_alert_type(label: str) -> str:
    return f"Zone - {label}"


def face_alert_type(name: str) -> str:
    return f"Face - {name}"


class AlertTypeResolver:
    """Merge configured categories with discovered zones, faces and capabilities."""

    def __init__(
        self,
        configured: Sequence[str],
        camera: Callable[[], CameraInfo],
        zones: ZoneCatalog,
        faces: FaceCatalog | None = None,
    ) -> None:
        self._configured = tuple(configured)
        self._camera = camera
        self._zones = zones
        self._faces = faces

    @property
    def configured(self) -> tuple[str, ...]:
        return self._configured

    async def resolve(self) -> list[str]:
        camera = self._camera()
        types = [t for t in self._configured if t != ZONE_TOKEN]
        if ZONE_TOKEN in self._configured:
            for zone in await self._zones.refresh():
                logger.debug("Found zone %s for %s", zone.label, camera.name)
                types.append(zone_alert_type(zone.label))

        if not camera.supports(STRANGER_DETECTION):
            return _unique([t for t in types if t not in STRANGER_ONLY_TYPES])

        logger.debug("%s has %s", camera.name, STRANGER_DETECTION)
        types = [t for t in types if t != FACE_TOKEN]
        if FACE_TOKEN in self._configured:
            types.extend(await self._face_types(camera))
        return _unique(types)

    async def _face_types(self, camera: CameraInfo) -> list[str]:
        if self._faces is None:
            return []
        structure_id = camera.structure_id
        try:
            faces = await self._faces.list_faces(structure_id)
        except NestApiError as exc:
            logger.warning("Unable to list faces for structure %s: %s", structure_id, exc)
            return []
        entries: list[str] = []
        for face in faces:
            if face.name:
                logger.debug("Found face %s for %s", face.name, structure_id)
                entries.append(face_alert_type(face.name))
        entries.append(UNKNOWN_FACE)
        return entries


def _unique(types: Sequence[str]) -> list[str]:
    return list(dict.fromkeys(types))


__all__ = [
    "AlertTypeResolver",
    "UNKNOWN_FACE",
    "face_alert_type",
    "zone_alert_type",
]
