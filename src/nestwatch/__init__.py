"""
nestwatch - alert monitoring for cloud-connected cameras

Polls a camera's event history, enriches cuepoints with zone and face
context and publishes debounced motion, doorbell and property notifications.
"""

__version__ = "0.1.0"

from nestwatch.core import CameraInfo, EventBus, Orchestrator
from nestwatch.modules import CameraAlertMonitor

__all__ = [
    "CameraAlertMonitor",
    "CameraInfo",
    "EventBus",
    "Orchestrator",
]
