"""Alert processing modules."""

from .alert_monitor import CameraAlertMonitor
from .alert_types import AlertTypeResolver
from .cooldown import CooldownLatch
from .property_sync import PropertySync
from .zone_catalog import ZoneCatalog

__all__ = [
    "AlertTypeResolver",
    "CameraAlertMonitor",
    "CooldownLatch",
    "PropertySync",
    "ZoneCatalog",
]
