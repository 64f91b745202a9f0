"""
Lifecycle coordinator for nestwatch modules.

The orchestrator owns the shared event bus, configures modules, starts them in
registration order and stops them in reverse, and periodically publishes an
aggregated health summary.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

from .bus import EventBus
from .contracts import BaseModule, HealthStatus, HealthSummary, ModuleConfig

logger = logging.getLogger(__name__)


class Orchestrator:
    """Manage module lifecycle and shared infrastructure."""

    def __init__(
        self,
        *,
        bus: EventBus | None = None,
        health_interval: float = 60.0,
        publish_health: bool = True,
        health_topic: str = "status.health.summary",
    ) -> None:
        self.bus = bus or EventBus()
        self._modules: list[BaseModule] = []
        self._running = False
        self._health_interval = health_interval
        self._publish_health = publish_health
        self._health_topic = health_topic
        self._health_task: asyncio.Task[None] | None = None

    @property
    def modules(self) -> list[BaseModule]:
        return list(self._modules)

    @property
    def running(self) -> bool:
        return self._running

    async def add_module(self, module: BaseModule, config: ModuleConfig | None = None) -> None:
        """
        Register a module with an optional configuration.

        Modules receive the shared bus before configuration.
        """
        module.set_bus(self.bus)
        await module.configure(config or ModuleConfig())
        self._modules.append(module)
        logger.info("Registered module %s", module.name)

    async def start(self) -> None:
        """Start the bus and all registered modules."""
        if self._running:
            logger.warning("Orchestrator already running.")
            return
        await self.bus.start()
        for module in self._modules:
            logger.info("Starting module %s", module.name)
            await module.start()
        self._running = True
        if self._publish_health:
            self._health_task = asyncio.create_task(self._health_loop(), name="nestwatch-health")
        logger.info("Orchestrator started %d modules.", len(self._modules))

    async def stop(self) -> None:
        """Stop all modules in reverse order and shut down the bus."""
        if not self._running:
            logger.warning("Orchestrator stop requested while not running.")
            return
        if self._health_task:
            self._health_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._health_task
            self._health_task = None
        for module in reversed(self._modules):
            try:
                await module.stop()
            except Exception:  # pragma: no cover - logged for troubleshooting
                logger.exception("Module %s failed to stop cleanly.", module.name)
        await self.bus.stop()
        self._running = False
        logger.info("Orchestrator stopped.")

    async def health(self) -> dict[str, HealthStatus]:
        """Aggregate health information from all modules."""
        reports: dict[str, HealthStatus] = {}
        for index, module in enumerate(self._modules):
            key = module.name if module.name not in reports else f"{module.name}#{index}"
            reports[key] = await module.health()
        return reports

    async def _health_loop(self) -> None:
        try:
            while self._running:
                await asyncio.sleep(self._health_interval)
                reports = await self.health()
                payload = HealthSummary(
                    status=self._determine_overall_status(reports), modules=reports
                )
                await self.bus.publish(self._health_topic, payload)
        except asyncio.CancelledError:  # pragma: no cover - cooperative cancellation
            return

    @staticmethod
    def _determine_overall_status(reports: dict[str, HealthStatus]) -> str:
        statuses = {report.status for report in reports.values()}
        if "error" in statuses:
            return "error"
        if "degraded" in statuses:
            return "degraded"
        return "healthy"


__all__ = ["Orchestrator"]
