from __future__ import annotations

import asyncio
import textwrap
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest

from nestwatch.core.config import ConfigService
from nestwatch.core.contracts import (
    STREAMING_ENABLED,
    CameraInfo,
    Face,
    ModuleConfig,
    MotionEvent,
    Zone,
)
from nestwatch.modules.output.event_sink import RecordingEventSink
from nestwatch.modules.process.alert_monitor import CameraAlertMonitor


def _write_yaml(path: Path, content: str) -> None:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")


def camera_payload(**properties: Any) -> dict[str, Any]:
    props: dict[str, Any] = {STREAMING_ENABLED: True}
    props.update(properties)
    return {
        "uuid": "cam-1",
        "name": "Front Door",
        "nexus_api_nest_domain_host": "nexus.example.com",
        "nest_structure_id": "structure.abc",
        "capabilities": [],
        "properties": props,
    }


class ManualTimer:
    def __init__(self, delay: float, callback: Callable[[], Any]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self) -> None:
        if self.cancelled or self.fired:
            return
        self.fired = True
        self.callback()


class ManualScheduler:
    """Records scheduled callbacks; tests decide when they run."""

    def __init__(self) -> None:
        self.timers: list[ManualTimer] = []

    def call_later(self, delay: float, callback: Callable[[], Any]) -> ManualTimer:
        timer = ManualTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def pending(self) -> list[ManualTimer]:
        return [t for t in self.timers if not t.fired and not t.cancelled]

    def delays(self) -> list[float]:
        return [t.delay for t in self.timers]

    def fire(self, delay: float) -> int:
        matched = [t for t in self.pending if t.delay == delay]
        for timer in matched:
            timer.fire()
        return len(matched)

    def fire_all(self) -> None:
        for timer in self.pending:
            timer.fire()


class StubCameraApi:
    """In-memory `CameraApi`; queued results are consumed in order."""

    def __init__(self) -> None:
        self.event_results: list[list[MotionEvent] | Exception] = []
        self.zone_result: list[Zone] | Exception = []
        self.property_results: list[CameraInfo | Exception] = []
        self.set_property_result: bool | Exception = True
        self.snapshot_bytes = b"jpeg"
        self.event_calls: list[int] = []
        self.zone_calls = 0
        self.property_calls = 0
        self.set_property_calls: list[tuple[str, Any]] = []
        self.snapshot_calls: list[tuple[int, str | None]] = []
        self.fetched = asyncio.Event()

    async def fetch_events(self, camera: CameraInfo, since_epoch: int) -> list[MotionEvent]:
        self.event_calls.append(since_epoch)
        self.fetched.set()
        if not self.event_results:
            return []
        result = self.event_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def fetch_zones(self, camera: CameraInfo) -> list[Zone]:
        self.zone_calls += 1
        if isinstance(self.zone_result, Exception):
            raise self.zone_result
        return list(self.zone_result)

    async def fetch_properties(self, camera: CameraInfo) -> CameraInfo:
        self.property_calls += 1
        if not self.property_results:
            return camera
        result = self.property_results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    async def set_property(self, camera: CameraInfo, key: str, value: Any) -> bool:
        self.set_property_calls.append((key, value))
        if isinstance(self.set_property_result, Exception):
            raise self.set_property_result
        return self.set_property_result

    async def fetch_snapshot(
        self, camera: CameraInfo, height: int, cuepoint_id: str | None = None
    ) -> bytes:
        self.snapshot_calls.append((height, cuepoint_id))
        return self.snapshot_bytes


class StubFaceCatalog:
    def __init__(self, faces: list[Face] | Exception | None = None) -> None:
        self.faces = faces if faces is not None else []
        self.calls: list[str] = []

    async def list_faces(self, structure_id: str) -> list[Face]:
        self.calls.append(structure_id)
        if isinstance(self.faces, Exception):
            raise self.faces
        return list(self.faces)


@pytest.fixture
def camera_info() -> CameraInfo:
    return CameraInfo.model_validate(camera_payload())


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def sink() -> RecordingEventSink:
    return RecordingEventSink("cam-1")


@pytest.fixture
def api() -> StubCameraApi:
    return StubCameraApi()


@pytest.fixture
def make_monitor(
    api: StubCameraApi, sink: RecordingEventSink, scheduler: ManualScheduler
) -> Callable[..., Awaitable[CameraAlertMonitor]]:
    """Return a factory building a configured monitor wired to the stubs."""

    async def _factory(
        *,
        camera: dict[str, Any] | None = None,
        faces: StubFaceCatalog | None = None,
        clock: Callable[[], float] | None = None,
        **options: Any,
    ) -> CameraAlertMonitor:
        monitor = CameraAlertMonitor(
            api=api,
            faces=faces,
            sink=sink,
            scheduler=scheduler,
            clock=clock or (lambda: 1_700_000_000.0),
        )
        options.setdefault("property_refresh_seconds", 0)
        await monitor.configure(
            ModuleConfig(options={"camera": camera or camera_payload(), **options})
        )
        return monitor

    return _factory


@pytest.fixture
def sample_config_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary configuration directory for tests.
    """

    config_dir = tmp_path / "config"
    config_dir.mkdir()
    config_yaml = """
    nest:
      field_test: true
      request_timeout: 5

    alerts:
      alert_types: ["Motion", "Person", "Zone"]
      important_only: false
      alert_cooldown_rate: 900
      alert_check_rate: 20

    cameras:
      - camera_id: "cam-1"
        name: "Front Door"
        api_host: "nexus.example.com"
        structure_id: "structure.abc"
        capabilities: ["stranger_detection"]
      - camera_id: "cam-2"
        name: "Garage"
        api_host: "nexus.example.com"
        alerts:
          alert_check_rate: 120
          alert_types: ["Motion"]
      - camera_id: "cam-3"
        name: "Attic"
        enabled: false
    """
    secrets_yaml = """
    nest:
      access_token: "secret-token"
    """
    _write_yaml(config_dir / "config.yaml", config_yaml)
    _write_yaml(config_dir / "secrets.yaml", secrets_yaml)
    return config_dir


@pytest.fixture
def sample_config_service(sample_config_dir: Path) -> ConfigService:
    """Return a ConfigService wired to the temporary configuration."""

    return ConfigService(config_dir=sample_config_dir)
