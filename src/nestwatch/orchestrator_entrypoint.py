"""
CLI entrypoint that runs one alert monitor per configured camera.

Loads the Dynaconf configuration, registers a `CameraAlertMonitor` per camera
with the orchestrator and logs every notification published on the bus until
SIGINT/SIGTERM.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import logging.handlers
import signal
from collections.abc import Sequence
from pathlib import Path

from .core.config import ALERT_MONITOR_MODULE, ConfigError, ConfigService
from .core.contracts import BasePayload, notification_topic
from .core.orchestrator import Orchestrator
from .modules import CameraAlertMonitor

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
DEFAULT_LOG_FILE = Path("logs") / "nestwatch.log"


def _ensure_rotating_file_handler(
    log_file: Path,
    *,
    max_mb: int = 10,
    backup_count: int = 3,
) -> None:
    """Attach a rotating file handler pointed at ``log_file`` if missing."""

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create log directory %s: %s", log_file.parent, exc)
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            existing = getattr(handler, "baseFilename", None)
            if existing and Path(existing) == log_file.resolve():
                return

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


async def _log_notification(topic: str, payload: BasePayload) -> None:
    LOGGER.info("%s: %s", topic, payload.model_dump(exclude={"schema_version"}))


async def run_monitors(
    *,
    config_dir: Path | None,
    camera_ids: Sequence[str] = (),
) -> None:
    """Register a monitor per camera and run until interrupted."""

    config_service = ConfigService(config_dir=config_dir)
    orchestrator = Orchestrator()

    added = 0
    for camera_id in camera_ids or [None]:
        try:
            module_configs = config_service.module_configs_for(
                ALERT_MONITOR_MODULE, camera_id=camera_id
            )
        except KeyError as exc:
            LOGGER.warning("Skipping camera %s: %s", camera_id, exc)
            continue
        for module_config in module_configs:
            camera = module_config.options["camera"]
            if not module_config.enabled:
                LOGGER.info("Camera %s disabled; skipping", camera["uuid"])
                continue
            await orchestrator.add_module(CameraAlertMonitor(), module_config)
            orchestrator.bus.subscribe(notification_topic(camera["uuid"]), _log_notification)
            added += 1
            LOGGER.info("Monitoring camera %s (%s)", camera["name"], camera["uuid"])

    if added == 0:
        raise RuntimeError("No cameras were registered; nothing to monitor.")

    stop_event = asyncio.Event()
    _install_signal_handlers(stop_event)

    await orchestrator.start()
    LOGGER.info("nestwatch running with %d cameras. Press Ctrl+C to stop.", added)

    try:
        await stop_event.wait()
    finally:
        await orchestrator.stop()


def _install_signal_handlers(stop_event: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def _request_shutdown(sig_name: str) -> None:
        if not stop_event.is_set():
            LOGGER.info("Received %s - beginning graceful shutdown.", sig_name)
            stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, _request_shutdown, sig.name)
        except NotImplementedError:  # Windows Proactor loop
            signal.signal(  # type: ignore[arg-type]
                sig,
                lambda signum, _frame, sig_name=sig.name: loop.call_soon_threadsafe(
                    _request_shutdown, sig_name or str(signum)
                ),
            )


def configure_logging(level: str, log_file: Path | None = DEFAULT_LOG_FILE) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=numeric_level,
        format=LOG_FORMAT,
    )
    if log_file is not None:
        _ensure_rotating_file_handler(log_file)


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="nestwatch camera alert monitor.")
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory that contains config.yaml/secrets.yaml (default: repo config/).",
    )
    parser.add_argument(
        "--camera",
        dest="cameras",
        action="append",
        default=[],
        metavar="UUID",
        help="Only monitor this camera (repeatable; default: every configured camera).",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Python logging level (default: INFO).",
    )
    parser.add_argument(
        "--log-file",
        type=Path,
        default=DEFAULT_LOG_FILE,
        help=f"Rotating log file (default: {DEFAULT_LOG_FILE}).",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.log_level, args.log_file)
    try:
        asyncio.run(run_monitors(config_dir=args.config_dir, camera_ids=args.cameras))
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")
        return 0
    except ConfigError as exc:
        LOGGER.error("Configuration failed: %s", exc)
        return 2
    except Exception:  # pragma: no cover - surfaced to operator
        LOGGER.exception("nestwatch crashed.")
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())


__all__ = ["main", "run_monitors"]
