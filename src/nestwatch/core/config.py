"""
Dynaconf-powered configuration loader with Pydantic validation.

`config.yaml` and `secrets.yaml` are merged (environment variables prefixed
with ``NESTWATCH_`` win), validated into a `ConfigSnapshot` and turned into one
`ModuleConfig` per monitored camera.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from dynaconf import Dynaconf
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .contracts import DEFAULT_ALERT_TYPES, BaseModule, ModuleConfig

DEFAULT_ALERT_COOLDOWN_RATE = 180.0
MAX_ALERT_COOLDOWN_RATE = 300.0
DEFAULT_ALERT_CHECK_RATE = 10.0
MAX_ALERT_CHECK_RATE = 60.0
DEFAULT_PROPERTY_REFRESH_SECONDS = 30.0

CONFIG_FILENAMES = ("config.yaml", "secrets.yaml")
_REPO_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = _REPO_ROOT / "config"
ALERT_MONITOR_MODULE = "modules.process.alert_monitor"


def clamp_alert_cooldown_rate(value: Any) -> float:
    """Seconds a motion/doorbell latch stays active; unset or zero means the default."""
    seconds = float(value or DEFAULT_ALERT_COOLDOWN_RATE)
    return min(seconds, MAX_ALERT_COOLDOWN_RATE)


def clamp_alert_check_rate(value: Any) -> float:
    """Seconds between alert checks; unset or zero means the default."""
    seconds = float(value or DEFAULT_ALERT_CHECK_RATE)
    return min(seconds, MAX_ALERT_CHECK_RATE)


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    """Case-insensitive dictionary lookup helper."""
    value = raw.get(key) or raw.get(key.upper()) or raw.get(key.lower())
    if isinstance(value, dict):
        return value
    return {}


def _section_list(raw: dict[str, Any], key: str) -> list[dict[str, Any]]:
    """List-aware helper for case-insensitive lookups."""
    value = raw.get(key) or raw.get(key.upper()) or raw.get(key.lower())
    if isinstance(value, list):
        return [item for item in value if isinstance(item, dict)]
    if isinstance(value, dict):
        return [value]
    return []


class ConfigError(RuntimeError):
    """Raised when configuration files are missing or invalid."""


class NestSettings(BaseModel):
    """Access to the camera cloud API."""

    model_config = ConfigDict(extra="ignore")

    access_token: str = Field(default="")
    field_test: bool = Field(default=False)
    request_timeout: float = Field(default=15.0, gt=0.0)


class AlertSettings(BaseModel):
    """Alert engine behaviour shared by every camera unless overridden."""

    model_config = ConfigDict(extra="ignore")

    alert_types: list[str] = Field(default_factory=lambda: list(DEFAULT_ALERT_TYPES))
    important_only: bool = Field(default=True)
    alert_cooldown_rate: float = Field(default=DEFAULT_ALERT_COOLDOWN_RATE, ge=0.0)
    alert_check_rate: float = Field(default=DEFAULT_ALERT_CHECK_RATE, ge=0.0)
    property_refresh_seconds: float = Field(default=DEFAULT_PROPERTY_REFRESH_SECONDS, ge=0.0)

    @field_validator("alert_cooldown_rate")
    @classmethod
    def _clamp_cooldown(cls, value: float) -> float:
        return clamp_alert_cooldown_rate(value)

    @field_validator("alert_check_rate")
    @classmethod
    def _clamp_interval(cls, value: float) -> float:
        return clamp_alert_check_rate(value)


class CameraSettings(BaseModel):
    """Seed information for one monitored camera."""

    model_config = ConfigDict(extra="ignore")

    camera_id: str = Field(description="Camera uuid as known to the cloud API.")
    name: str = Field(default="")
    api_host: str = Field(default="", description="nexus API host serving cuepoints.")
    structure_id: str = Field(default="")
    capabilities: list[str] = Field(default_factory=list)
    properties: dict[str, Any] = Field(default_factory=dict)
    enabled: bool = Field(default=True)
    alerts: dict[str, Any] = Field(
        default_factory=dict, description="Per-camera overrides of the alerts section."
    )

    def camera_info(self) -> dict[str, Any]:
        return {
            "uuid": self.camera_id,
            "name": self.name or self.camera_id,
            "nexus_api_nest_domain_host": self.api_host,
            "nest_structure_id": self.structure_id,
            "capabilities": list(self.capabilities),
            "properties": dict(self.properties),
        }


class ConfigSnapshot(BaseModel):
    """
    Validated, strongly typed view of the merged configuration.

    Provides helpers to derive per-module configuration dictionaries.
    """

    model_config = ConfigDict(extra="ignore")

    nest: NestSettings = Field(default_factory=NestSettings)
    alerts: AlertSettings = Field(default_factory=AlertSettings)
    cameras: list[CameraSettings] = Field(default_factory=list)

    def camera_by_id(self, camera_id: str) -> CameraSettings:
        for camera in self.cameras:
            if camera.camera_id == camera_id:
                return camera
        raise KeyError(f"No camera configured with id '{camera_id}'")

    def alerts_for(self, camera: CameraSettings) -> AlertSettings:
        if not camera.alerts:
            return self.alerts
        merged = {**self.alerts.model_dump(), **camera.alerts}
        return AlertSettings.model_validate(merged)

    def module_config(self, module_name: str, *, camera_id: str | None = None) -> ModuleConfig:
        configs = self.module_configs(module_name, camera_id=camera_id)
        if not configs:
            raise KeyError(f"No module configuration defined for {module_name}")
        return configs[0]

    def module_configs(
        self, module_name: str, *, camera_id: str | None = None
    ) -> list[ModuleConfig]:
        """Produce one ModuleConfig per selected camera for the requested module."""
        if module_name != ALERT_MONITOR_MODULE:
            raise KeyError(f"Unknown module {module_name}")
        cameras = (
            [self.camera_by_id(camera_id)] if camera_id is not None else list(self.cameras)
        )
        configs: list[ModuleConfig] = []
        for camera in cameras:
            alerts = self.alerts_for(camera)
            options: dict[str, Any] = {
                "camera": camera.camera_info(),
                "access_token": self.nest.access_token,
                "field_test": self.nest.field_test,
                "request_timeout": self.nest.request_timeout,
                **alerts.model_dump(),
            }
            configs.append(ModuleConfig(enabled=camera.enabled, options=options))
        return configs


class ConfigService:
    """
    Runtime facade for loading, validating, and distributing configuration.
    """

    def __init__(
        self,
        *,
        config_dir: str | Path | None = None,
        settings: Dynaconf | None = None,
    ) -> None:
        self._config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        settings_files = [self._config_dir / name for name in CONFIG_FILENAMES]
        existing_files = [str(path) for path in settings_files if path.exists()]
        if settings is None and not existing_files:
            raise ConfigError(
                f"No configuration files found in {self._config_dir}. "
                "Expected at least config.yaml."
            )

        self._settings = settings or Dynaconf(
            envvar_prefix="NESTWATCH",
            settings_files=existing_files,
            load_dotenv=True,
            environments=False,
            merge_enabled=True,
        )
        self._snapshot = self._build_snapshot()

    @property
    def snapshot(self) -> ConfigSnapshot:
        """Latest validated configuration snapshot."""
        return self._snapshot

    def refresh(self) -> ConfigSnapshot:
        """Reload configuration files and rebuild the snapshot."""
        self._settings.reload()
        self._snapshot = self._build_snapshot()
        return self._snapshot

    def module_configs_for(
        self, module: str | type[BaseModule] | BaseModule, *, camera_id: str | None = None
    ) -> list[ModuleConfig]:
        """Return all applicable ModuleConfig objects for the requested module."""
        module_name = module if isinstance(module, str) else module.name
        return self._snapshot.module_configs(module_name, camera_id=camera_id)

    def _build_snapshot(self) -> ConfigSnapshot:
        raw = self._settings.as_dict()
        data = {
            "nest": _section(raw, "nest"),
            "alerts": _section(raw, "alerts"),
            "cameras": _section_list(raw, "cameras"),
        }
        try:
            return ConfigSnapshot.model_validate(data)
        except ValidationError as exc:
            raise ConfigError("Configuration validation failed") from exc


__all__ = [
    "ALERT_MONITOR_MODULE",
    "DEFAULT_ALERT_CHECK_RATE",
    "DEFAULT_ALERT_COOLDOWN_RATE",
    "DEFAULT_PROPERTY_REFRESH_SECONDS",
    "MAX_ALERT_CHECK_RATE",
    "MAX_ALERT_COOLDOWN_RATE",
    "AlertSettings",
    "CameraSettings",
    "ConfigError",
    "ConfigService",
    "ConfigSnapshot",
    "NestSettings",
    "clamp_alert_check_rate",
    "clamp_alert_cooldown_rate",
]
