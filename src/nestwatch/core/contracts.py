"""
Contracts and payload schemas for the nestwatch alert engine.

Wire models mirror the JSON returned by the camera cloud API; notification
payloads form a tagged union published on the event bus so consumers can
match every kind exhaustively.
"""

from __future__ import annotations

import abc
import datetime as dt
from typing import TYPE_CHECKING, Annotated, Any, Literal, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field

STREAMING_ENABLED = "streaming.enabled"
INDOOR_CHIME_ENABLED = "doorbell.indoor_chime.enabled"
CHIME_ASSIST_ENABLED = "doorbell.chime_assist.enabled"
AUDIO_ENABLED = "audio.enabled"

STRANGER_DETECTION = "stranger_detection"

DEFAULT_ALERT_TYPES: tuple[str, ...] = (
    "Motion",
    "Sound",
    "Person",
    "Package Delivered",
    "Package Retrieved",
    "Face",
    "Zone",
)


class BasePayload(BaseModel):
    """Base class for all bus payloads."""

    model_config = ConfigDict(extra="allow", frozen=True)

    schema_version: str = Field(
        default="1.0.0", description="Semantic version of the payload schema."
    )


class CameraInfo(BaseModel):
    """Camera identity, capabilities and property map as reported by the API."""

    model_config = ConfigDict(extra="ignore")

    uuid: str
    name: str = Field(default="")
    nexus_api_nest_domain_host: str = Field(
        default="", description="Host serving cuepoints, zones and images."
    )
    nest_structure_id: str = Field(default="")
    capabilities: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)

    @property
    def structure_id(self) -> str:
        return self.nest_structure_id.replace("structure.", "")

    def supports(self, capability: str) -> bool:
        return capability in self.capabilities

    def property_enabled(self, key: str) -> bool:
        return bool(self.properties.get(key))

    def with_property(self, key: str, value: Any) -> CameraInfo:
        """Return a copy with a single property replaced."""
        properties = dict(self.properties)
        properties[key] = value
        return self.model_copy(update={"properties": properties})


class Zone(BaseModel):
    """Named detection region configured on the camera."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: int
    label: str = Field(default="")
    type: str = Field(default="region")
    hidden: bool = Field(default=False)


class Face(BaseModel):
    """Known person identity for stranger-detection cameras."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    name: str | None = Field(default=None)


class MotionEvent(BaseModel):
    """A single cuepoint returned by the event history endpoint."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    id: str
    types: list[str] = Field(default_factory=list)
    zone_ids: list[int] = Field(default_factory=list)
    face_name: str | None = Field(default=None)
    is_important: bool = Field(default=False)
    start_time: float | None = Field(default=None)
    end_time: float | None = Field(default=None)


class _Notification(BasePayload):
    camera_id: str
    timestamp_utc: dt.datetime = Field(
        default_factory=lambda: dt.datetime.now(tz=dt.UTC),
        description="Emission timestamp in UTC.",
    )


class CameraStateChanged(_Notification):
    kind: Literal["camera_state"] = "camera_state"
    enabled: bool


class ChimeStateChanged(_Notification):
    kind: Literal["chime_state"] = "chime_state"
    enabled: bool


class ChimeAssistStateChanged(_Notification):
    kind: Literal["chime_assist_state"] = "chime_assist_state"
    enabled: bool


class AudioStateChanged(_Notification):
    kind: Literal["audio_state"] = "audio_state"
    enabled: bool


class DoorbellRang(_Notification):
    kind: Literal["doorbell_rang"] = "doorbell_rang"


class MotionDetected(_Notification):
    kind: Literal["motion_detected"] = "motion_detected"
    active: bool
    tags: list[str] = Field(default_factory=list)


CameraNotification = Annotated[
    CameraStateChanged
    | ChimeStateChanged
    | ChimeAssistStateChanged
    | AudioStateChanged
    | DoorbellRang
    | MotionDetected,
    Field(discriminator="kind"),
]


def notification_topic(camera_id: str) -> str:
    return f"camera.{camera_id}.notification"


class HealthStatus(BaseModel):
    """Structured health report for modules."""

    model_config = ConfigDict(extra="allow", frozen=True)

    status: str = Field(description="Health classification such as healthy/degraded/error.")
    details: dict[str, Any] = Field(default_factory=dict)


class HealthSummary(BasePayload):
    """Aggregated health report emitted on `status.health.summary`."""

    status: str = Field(description="Overall classification.")
    modules: dict[str, HealthStatus] = Field(default_factory=dict)


class ModuleConfig(BaseModel):
    """Baseline configuration contract applied to all modules."""

    model_config = ConfigDict(extra="allow")

    enabled: bool = Field(default=True)
    options: dict[str, Any] = Field(
        default_factory=dict, description="Arbitrary module configuration."
    )


@runtime_checkable
class EventHandler(Protocol):
    """Callable type for bus subscribers."""

    async def __call__(self, topic: str, payload: BasePayload) -> None: ...


if TYPE_CHECKING:
    from .bus import EventBus


class BaseModule(abc.ABC):
    """
    Abstract base class for engine components.

    Modules receive an event bus instance and are responsible for
    scheduling their own work during `start`.
    """

    name: str

    def __init__(self) -> None:
        self._configured = False
        self._config = ModuleConfig()
        self._bus: EventBus | None = None

    @property
    def bus(self) -> EventBus:
        if self._bus is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been attached to an EventBus.")
        return self._bus

    def set_bus(self, bus: EventBus) -> None:
        """Attach the shared event bus instance to the module."""
        self._bus = bus

    async def configure(self, config: ModuleConfig) -> None:
        """Apply the provided configuration prior to module start."""
        self._config = config
        self._configured = True

    @abc.abstractmethod
    async def start(self) -> None:
        """Begin processing by scheduling tasks."""

    async def stop(self) -> None:
        """Optional hook to release resources."""
        return None

    async def health(self) -> HealthStatus:
        """Return a basic health status; modules can override for richer diagnostics."""
        status = "healthy" if self._configured else "degraded"
        return HealthStatus(status=status, details={"configured": self._configured})


__all__ = [
    "AUDIO_ENABLED",
    "CHIME_ASSIST_ENABLED",
    "DEFAULT_ALERT_TYPES",
    "INDOOR_CHIME_ENABLED",
    "STRANGER_DETECTION",
    "STREAMING_ENABLED",
    "AudioStateChanged",
    "BaseModule",
    "BasePayload",
    "CameraInfo",
    "CameraNotification",
    "CameraStateChanged",
    "ChimeAssistStateChanged",
    "ChimeStateChanged",
    "DoorbellRang",
    "EventHandler",
    "Face",
    "HealthStatus",
    "HealthSummary",
    "ModuleConfig",
    "MotionDetected",
    "MotionEvent",
    "Zone",
    "notification_topic",
]
