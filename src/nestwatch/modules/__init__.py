"""
nestwatch components grouped by responsibility.
"""

from .input.camera_api import CameraApi, FaceCatalog, NestCameraApi, NestStructureApi
from .input.endpoints import NestApiError, NestEndpoints, ResponseShapeError, TransportError
from .output.event_sink import BusEventSink, CameraEventSink, RecordingEventSink
from .process.alert_monitor import CameraAlertMonitor
from .process.alert_types import AlertTypeResolver
from .process.cooldown import CooldownLatch
from .process.property_sync import PropertySync
from .process.zone_catalog import ZoneCatalog

__all__ = [
    "AlertTypeResolver",
    "BusEventSink",
    "CameraAlertMonitor",
    "CameraApi",
    "CameraEventSink",
    "CooldownLatch",
    "FaceCatalog",
    "NestApiError",
    "NestCameraApi",
    "NestEndpoints",
    "NestStructureApi",
    "PropertySync",
    "RecordingEventSink",
    "ResponseShapeError",
    "TransportError",
    "ZoneCatalog",
]
