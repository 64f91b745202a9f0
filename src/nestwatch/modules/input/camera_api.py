"""
Request/response interface to the camera cloud API.

The engine only depends on the `CameraApi` and `FaceCatalog` protocols; the
`NestCameraApi` and `NestStructureApi` classes implement them on top of
`NestEndpoints` and validate every payload into the contract models.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Protocol, TypeVar

from pydantic import BaseModel, ValidationError

from ...core.contracts import CameraInfo, Face, MotionEvent, Zone
from .endpoints import NestEndpoints, ResponseShapeError, camera_host

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class CameraApi(Protocol):
    """Operations the alert engine needs from the remote camera service."""

    async def fetch_events(self, camera: CameraInfo, since_epoch: int) -> list[MotionEvent]: ...

    async def fetch_zones(self, camera: CameraInfo) -> list[Zone]: ...

    async def fetch_properties(self, camera: CameraInfo) -> CameraInfo: ...

    async def set_property(self, camera: CameraInfo, key: str, value: Any) -> bool: ...

    async def fetch_snapshot(
        self, camera: CameraInfo, height: int, cuepoint_id: str | None = None
    ) -> bytes: ...


class FaceCatalog(Protocol):
    """Read-only lookup of named people known to a structure."""

    async def list_faces(self, structure_id: str) -> list[Face]: ...


def _parse_list(model: type[ModelT], payload: Any, what: str) -> list[ModelT]:
    if isinstance(payload, dict) and "items" in payload:
        payload = payload["items"]
    if not isinstance(payload, Sequence) or isinstance(payload, str | bytes):
        raise ResponseShapeError(f"Expected a list of {what}, got {type(payload).__name__}")
    try:
        return [model.model_validate(item) for item in payload]
    except ValidationError as exc:
        raise ResponseShapeError(f"Malformed {what} payload: {exc}") from exc


class NestCameraApi:
    """`CameraApi` implementation backed by the Nest camera endpoints."""

    def __init__(self, endpoints: NestEndpoints) -> None:
        self._endpoints = endpoints

    async def fetch_events(self, camera: CameraInfo, since_epoch: int) -> list[MotionEvent]:
        payload = await self._endpoints.send_request(
            camera_host(camera.nexus_api_nest_domain_host),
            f"/cuepoint/{camera.uuid}/2",
            params={"start_time": since_epoch},
        )
        return _parse_list(MotionEvent, payload, "cuepoints")

    async def fetch_zones(self, camera: CameraInfo) -> list[Zone]:
        payload = await self._endpoints.send_request(
            camera_host(camera.nexus_api_nest_domain_host),
            f"/cuepoint_category/{camera.uuid}",
        )
        return _parse_list(Zone, payload, "zones")

    async def fetch_properties(self, camera: CameraInfo) -> CameraInfo:
        payload = await self._endpoints.send_request(
            self._endpoints.camera_api_hostname,
            "/api/cameras.get_with_properties",
            params={"uuid": camera.uuid},
        )
        items = payload.get("items") if isinstance(payload, dict) else None
        if not items:
            raise ResponseShapeError(f"No camera properties returned for {camera.uuid}")
        try:
            return CameraInfo.model_validate(items[0])
        except ValidationError as exc:
            raise ResponseShapeError(f"Malformed camera payload: {exc}") from exc

    async def set_property(self, camera: CameraInfo, key: str, value: Any) -> bool:
        if isinstance(value, bool):
            value = "true" if value else "false"
        payload = await self._endpoints.send_request(
            self._endpoints.camera_api_hostname,
            "/api/dropcams.set_properties",
            "POST",
            data={key: value, "uuid": camera.uuid},
        )
        if not isinstance(payload, dict) or "status" not in payload:
            raise ResponseShapeError("set_properties response is missing a status")
        if payload["status"] != 0:
            logger.warning(
                "set_properties rejected %s for %s with status %s",
                key,
                camera.name or camera.uuid,
                payload["status"],
            )
            return False
        return True

    async def fetch_snapshot(
        self, camera: CameraInfo, height: int, cuepoint_id: str | None = None
    ) -> bytes:
        host = camera_host(camera.nexus_api_nest_domain_host)
        if cuepoint_id:
            return await self._endpoints.send_request(
                host,
                "/get_event_clip",
                params={
                    "uuid": camera.uuid,
                    "cuepoint_id": cuepoint_id,
                    "num_frames": 1,
                    "height": height,
                    "format": "sprite",
                },
                response_type="bytes",
            )
        return await self._endpoints.send_request(
            host,
            "/get_image",
            params={"uuid": camera.uuid},
            response_type="bytes",
        )


class NestStructureApi:
    """`FaceCatalog` implementation scoped to one camera's API host."""

    def __init__(self, endpoints: NestEndpoints, camera: CameraInfo) -> None:
        self._endpoints = endpoints
        self._host = camera_host(camera.nexus_api_nest_domain_host)

    async def list_faces(self, structure_id: str) -> list[Face]:
        payload = await self._endpoints.send_request(self._host, f"/faces/{structure_id}")
        faces = _parse_list(Face, payload, "faces")
        logger.debug("Structure %s has %d known faces", structure_id, len(faces))
        return faces


__all__ = ["CameraApi", "FaceCatalog", "NestCameraApi", "NestStructureApi"]
