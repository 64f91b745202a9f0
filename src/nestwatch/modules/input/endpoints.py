"""
HTTP transport for the camera cloud API.

`NestEndpoints` owns a single `httpx.AsyncClient`, attaches the access token
to every request and translates failures into the `NestApiError` hierarchy so
callers only ever handle one family of exceptions.
"""

from __future__ import annotations

import logging
from typing import Any, Literal

import httpx

logger = logging.getLogger(__name__)

CAMERA_API_HOSTNAME = "https://webapi.camera.home.nest.com"
CAMERA_API_HOSTNAME_FIELD_TEST = "https://webapi.camera.home.ft.nest.com"
NEST_REFERER = "https://home.nest.com"
USER_AGENT = "nestwatch/0.1 (+https://home.nest.com)"

ResponseType = Literal["json", "bytes"]


class NestApiError(RuntimeError):
    """Base class for failures talking to the camera API."""


class TransportError(NestApiError):
    """Network failure, HTTP error status or a non-zero API status."""


class ResponseShapeError(NestApiError):
    """The API answered but the payload did not have the expected shape."""


class NestEndpoints:
    """Authenticated request helper shared by the camera and structure APIs."""

    def __init__(
        self,
        *,
        access_token: str,
        field_test: bool = False,
        timeout: float = 15.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._access_token = access_token
        self.camera_api_hostname = (
            CAMERA_API_HOSTNAME_FIELD_TEST if field_test else CAMERA_API_HOSTNAME
        )
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send_request(
        self,
        hostname: str,
        endpoint: str,
        method: str = "GET",
        *,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
        response_type: ResponseType = "json",
    ) -> Any:
        """Perform a request and return decoded JSON or raw bytes."""
        url = f"{hostname.rstrip('/')}{endpoint}"
        headers = {
            "User-Agent": USER_AGENT,
            "Authorization": f"Basic {self._access_token}",
            "Referer": NEST_REFERER,
        }
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = await self._client.request(
                method, url, params=params, data=data, headers=headers
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise TransportError(
                f"{method} {endpoint} failed with HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {endpoint} failed: {exc}") from exc

        if response_type == "bytes":
            return response.content
        try:
            return response.json()
        except ValueError as exc:
            raise ResponseShapeError(f"{method} {endpoint} returned invalid JSON") from exc

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()


def camera_host(host: str) -> str:
    """Normalise a bare API host into an https base URL."""
    if host.startswith(("http://", "https://")):
        return host
    return f"https://{host}"


__all__ = [
    "CAMERA_API_HOSTNAME",
    "CAMERA_API_HOSTNAME_FIELD_TEST",
    "NestApiError",
    "NestEndpoints",
    "ResponseShapeError",
    "TransportError",
    "camera_host",
]
