"""Remote camera API access."""

from .camera_api import CameraApi, FaceCatalog, NestCameraApi, NestStructureApi
from .endpoints import NestApiError, NestEndpoints, ResponseShapeError, TransportError

__all__ = [
    "CameraApi",
    "FaceCatalog",
    "NestApiError",
    "NestCameraApi",
    "NestEndpoints",
    "NestStructureApi",
    "ResponseShapeError",
    "TransportError",
]
