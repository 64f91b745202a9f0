"""
Core infrastructure for nestwatch.

Exposes the asynchronous event bus, contracts, timer scheduling, configuration
and the orchestrator that wires per-camera alert monitors together.
"""

from .bus import EventBus, Subscription
from .config import ConfigService, ConfigSnapshot
from .contracts import (
    BaseModule,
    BasePayload,
    CameraInfo,
    CameraNotification,
    HealthStatus,
    ModuleConfig,
    MotionDetected,
)
from .orchestrator import Orchestrator
from .scheduler import AsyncioScheduler, Scheduler

__all__ = [
    "AsyncioScheduler",
    "BaseModule",
    "BasePayload",
    "CameraInfo",
    "CameraNotification",
    "ConfigService",
    "ConfigSnapshot",
    "EventBus",
    "HealthStatus",
    "ModuleConfig",
    "MotionDetected",
    "Orchestrator",
    "Scheduler",
    "Subscription",
]
