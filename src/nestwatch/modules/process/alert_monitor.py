"""
Alert monitoring engine for a single cloud camera.

A recurring poll fetches the cuepoints of the last minute, enriches them with
face and zone tags, filters on importance and drives the motion and doorbell
cooldown latches. Fetch failures disable polling for `interval * failures**2`
seconds, with the failure count capped at ten.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from ...core.config import (
    DEFAULT_ALERT_CHECK_RATE,
    DEFAULT_ALERT_COOLDOWN_RATE,
    DEFAULT_PROPERTY_REFRESH_SECONDS,
    clamp_alert_check_rate,
    clamp_alert_cooldown_rate,
)
from ...core.contracts import (
    DEFAULT_ALERT_TYPES,
    STREAMING_ENABLED,
    BaseModule,
    CameraInfo,
    HealthStatus,
    ModuleConfig,
    MotionEvent,
)
from ...core.scheduler import AsyncioScheduler, Scheduler
from ..input.camera_api import CameraApi, FaceCatalog, NestCameraApi, NestStructureApi
from ..input.endpoints import NestApiError, NestEndpoints
from ..output.event_sink import BusEventSink, CameraEventSink
from .alert_types import AlertTypeResolver, face_alert_type, zone_alert_type
from .cooldown import CooldownLatch
from .property_sync import PropertySync
from .zone_catalog import ZoneCatalog

logger = logging.getLogger(__name__)

EVENT_WINDOW_SECONDS = 60
CUEPOINT_RESET_SECONDS = 5.0
MAX_ALERT_FAILURES = 10


class CameraAlertMonitor(BaseModule):
    """Poll one camera for cuepoints and emit debounced notifications."""

    name = "modules.process.alert_monitor"

    def __init__(
        self,
        *,
        api: CameraApi | None = None,
        faces: FaceCatalog | None = None,
        sink: CameraEventSink | None = None,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        super().__init__()
        self._api = api
        self._faces = faces
        self._injected_sink = sink
        self._sink: CameraEventSink | None = sink
        self._scheduler: Scheduler = scheduler or AsyncioScheduler(name=self.name)
        self._clock = clock or time.time
        self._endpoints: NestEndpoints | None = None

        self._info: CameraInfo | None = None
        self._properties: PropertySync | None = None
        self._zones: ZoneCatalog | None = None
        self._resolver: AlertTypeResolver | None = None
        self._important_only = True
        self._alert_interval = float(DEFAULT_ALERT_CHECK_RATE)
        self._alert_cooldown = float(DEFAULT_ALERT_COOLDOWN_RATE)
        self._property_refresh_seconds = float(DEFAULT_PROPERTY_REFRESH_SECONDS)
        self._motion = CooldownLatch("motion", self._alert_cooldown, self._scheduler)
        self._doorbell = CooldownLatch("doorbell", self._alert_cooldown, self._scheduler)

        self._alert_types: list[str] = list(DEFAULT_ALERT_TYPES)
        self._last_alert_types: list[str] = []
        self._last_cuepoint: str | None = None
        self._alerts_enabled = True
        self._alert_failures = 0

        self._cycle_lock = asyncio.Lock()
        self._poll_task: asyncio.Task[None] | None = None
        self._property_task: asyncio.Task[None] | None = None

    async def configure(self, config: ModuleConfig) -> None:
        await super().configure(config)
        options = config.options
        camera = options.get("camera")
        if camera is None:
            raise ValueError("CameraAlertMonitor requires a 'camera' option.")
        info = camera if isinstance(camera, CameraInfo) else CameraInfo.model_validate(camera)

        self._important_only = bool(options.get("important_only", self._important_only))
        self._alert_interval = clamp_alert_check_rate(options.get("alert_check_rate"))
        self._alert_cooldown = clamp_alert_cooldown_rate(options.get("alert_cooldown_rate"))
        self._property_refresh_seconds = float(
            options.get("property_refresh_seconds", self._property_refresh_seconds)
        )
        configured_types = options.get("alert_types")
        alert_types = (
            list(configured_types) if configured_types is not None else list(DEFAULT_ALERT_TYPES)
        )
        if configured_types is not None:
            logger.debug("Using alert_types from config: %s", alert_types)

        if self._api is None:
            self._endpoints = NestEndpoints(
                access_token=str(options.get("access_token", "")),
                field_test=bool(options.get("field_test", False)),
                timeout=float(options.get("request_timeout", 15.0)),
            )
            self._api = NestCameraApi(self._endpoints)
            if self._faces is None:
                self._faces = NestStructureApi(self._endpoints, info)
        if self._injected_sink is None:
            self._sink = BusEventSink(self.bus, info.uuid)

        self._info = info
        self._properties = PropertySync(self._api, info, self.sink)
        self._zones = ZoneCatalog(self._api, lambda: self.info)
        self._resolver = AlertTypeResolver(alert_types, lambda: self.info, self._zones, self._faces)
        self._alert_types = list(alert_types)
        self._motion = CooldownLatch("motion", self._alert_cooldown, self._scheduler)
        self._doorbell = CooldownLatch("doorbell", self._alert_cooldown, self._scheduler)

    @property
    def info(self) -> CameraInfo:
        if self._properties is not None:
            return self._properties.info
        if self._info is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been configured.")
        return self._info

    @property
    def sink(self) -> CameraEventSink:
        if self._sink is None:
            raise RuntimeError(f"{self.__class__.__name__} has no event sink.")
        return self._sink

    @property
    def zones(self) -> ZoneCatalog:
        if self._zones is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been configured.")
        return self._zones

    @property
    def alert_types(self) -> list[str]:
        return list(self._alert_types)

    @property
    def alert_interval(self) -> float:
        return self._alert_interval

    @property
    def alert_cooldown(self) -> float:
        return self._alert_cooldown

    @property
    def alerts_enabled(self) -> bool:
        return self._alerts_enabled

    @property
    def alert_failures(self) -> int:
        return self._alert_failures

    @property
    def motion_active(self) -> bool:
        return self._motion.active

    @property
    def doorbell_active(self) -> bool:
        return self._doorbell.active

    @property
    def last_cuepoint(self) -> str | None:
        return self._last_cuepoint

    @property
    def alert_checks_running(self) -> bool:
        return self._poll_task is not None

    async def start(self) -> None:
        await self.update_data()
        await self.refresh_alert_types()
        self.start_alert_checks()
        if self._property_refresh_seconds > 0 and self._property_task is None:
            self._property_task = asyncio.create_task(
                self._property_loop(), name=f"{self.name}-{self.info.uuid}-properties"
            )
        logger.info(
            "CameraAlertMonitor for %s polling every %.1fs (cooldown %.1fs) for %s",
            self.info.name or self.info.uuid,
            self._alert_interval,
            self._alert_cooldown,
            self._alert_types,
        )

    async def stop(self) -> None:
        await self.stop_alert_checks()
        if self._property_task:
            self._property_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._property_task
            self._property_task = None
        if isinstance(self._scheduler, AsyncioScheduler):
            self._scheduler.cancel_all()
        if self._endpoints is not None:
            await self._endpoints.aclose()
        logger.info("CameraAlertMonitor for %s stopped", self.info.name or self.info.uuid)

    async def health(self) -> HealthStatus:
        if not self._configured:
            status = "degraded"
        elif not self._alerts_enabled:
            status = "degraded"
        else:
            status = "healthy"
        return HealthStatus(
            status=status,
            details={
                "camera": self.info.uuid if self._info else None,
                "alert_checks_running": self.alert_checks_running,
                "alerts_enabled": self._alerts_enabled,
                "alert_failures": self._alert_failures,
                "motion_active": self._motion.active,
                "doorbell_active": self._doorbell.active,
            },
        )

    async def refresh_alert_types(self) -> list[str]:
        """Rebuild the alert type list from configuration, zones and faces."""
        if self._resolver is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been configured.")
        self._alert_types = await self._resolver.resolve()
        return list(self._alert_types)

    def start_alert_checks(self) -> None:
        if self._poll_task is not None:
            return
        self._poll_task = asyncio.create_task(
            self._poll_loop(), name=f"{self.name}-{self.info.uuid}-poll"
        )

    async def stop_alert_checks(self) -> None:
        """Disarm polling and report motion as cleared for every alert type."""
        task = self._poll_task
        if task is None:
            return
        self._poll_task = None
        async with self._cycle_lock:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        await self.sink.motion_detected(False, self._alert_types)

    async def _poll_loop(self) -> None:
        while True:
            await asyncio.sleep(self._alert_interval)
            await self._tick()

    async def _tick(self) -> None:
        if self._cycle_lock.locked():
            logger.debug("Previous alert check for %s still running; skipping", self.info.name)
            return
        async with self._cycle_lock:
            try:
                await self.run_alert_check()
            except Exception:
                logger.exception("Alert check for %s failed unexpectedly", self.info.name)

    async def run_alert_check(self) -> None:
        info = self.info
        if not self._alerts_enabled or not info.property_enabled(STREAMING_ENABLED):
            await self.sink.motion_detected(False, self._alert_types)
            return

        logger.debug("Checking for alerts on %s", info.name)
        since = round(self._clock()) - EVENT_WINDOW_SECONDS
        try:
            events = await self._require_api().fetch_events(info, since)
        except NestApiError as exc:
            self._record_failure(exc)
            return

        self._alert_failures = 0
        if not events:
            await self.sink.motion_detected(False, self._alert_types)
            self._last_alert_types = []
            return
        try:
            for event in events:
                await self._process_event(event)
        finally:
            self._scheduler.call_later(CUEPOINT_RESET_SECONDS, self._clear_cuepoint)

    async def _process_event(self, event: MotionEvent) -> None:
        self._last_cuepoint = event.id
        tags = self._enrich(event)
        important = event.is_important if self._important_only else True
        if not important:
            logger.debug("Ignoring unimportant cuepoint %s on %s", event.id, self.info.name)
            return

        if "doorbell" in tags and self._doorbell.trigger():
            await self.sink.doorbell_rang()

        if not self._motion.active and tags:
            cleared = [t for t in self._last_alert_types if t not in tags]
            await self.sink.motion_detected(False, cleared)
            self._motion.trigger()
            started = [t for t in tags if t not in self._last_alert_types]
            await self.sink.motion_detected(True, started)
            self._last_alert_types = tags

    def _enrich(self, event: MotionEvent) -> list[str]:
        tags = list(event.types)
        if event.face_name:
            logger.debug("Found face for %s in event", event.face_name)
            tags.append(face_alert_type(event.face_name))
            if "person" not in tags:
                tags.append("person")
        for zone_id in event.zone_ids:
            zone = self.zones.lookup(zone_id)
            if zone is not None:
                logger.debug("Found zone for %s in event", zone.label)
                tags.append(zone_alert_type(zone.label))
        return tags

    def _record_failure(self, exc: NestApiError) -> None:
        self._alert_failures = min(MAX_ALERT_FAILURES, self._alert_failures + 1)
        self._alerts_enabled = False
        delay = self._alert_interval * self._alert_failures**2
        logger.error(
            "Error checking alerts for %s (%d consecutive failures); retrying in %.0fs: %s",
            self.info.name,
            self._alert_failures,
            delay,
            exc,
        )
        self._scheduler.call_later(delay, self._enable_alerts)

    def _enable_alerts(self) -> None:
        self._alerts_enabled = True
        logger.debug("Alert checks re-enabled for %s", self.info.name)

    def _clear_cuepoint(self) -> None:
        self._last_cuepoint = None

    async def update_data(self, info: CameraInfo | None = None) -> CameraInfo:
        """Refresh camera properties, or apply pushed info, and report changes."""
        return await self._require_properties().refresh(info)

    async def set_property(self, key: str, value: Any) -> bool:
        return await self._require_properties().set_property(key, value)

    async def get_snapshot(self, height: int) -> bytes:
        """Return the frame of the latest cuepoint if one is pending, else a live image."""
        cuepoint = self._last_cuepoint
        if cuepoint:
            self._last_cuepoint = None
        return await self._require_api().fetch_snapshot(self.info, height, cuepoint)

    async def _property_loop(self) -> None:
        try:
            while True:
                await asyncio.sleep(self._property_refresh_seconds)
                try:
                    await self._require_properties().refresh()
                except Exception:
                    logger.exception("Property refresh for %s failed unexpectedly", self.info.name)
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            return

    def _require_api(self) -> CameraApi:
        if self._api is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been configured.")
        return self._api

    def _require_properties(self) -> PropertySync:
        if self._properties is None:
            raise RuntimeError(f"{self.__class__.__name__} has not been configured.")
        return self._properties


__all__ = [
    "CUEPOINT_RESET_SECONDS",
    "EVENT_WINDOW_SECONDS",
    "MAX_ALERT_FAILURES",
    "CameraAlertMonitor",
]
