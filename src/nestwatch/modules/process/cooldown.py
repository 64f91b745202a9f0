"""
Two-state latch used to debounce motion and doorbell notifications.
"""

from __future__ import annotations

import logging

from ...core.scheduler import Scheduler

logger = logging.getLogger(__name__)


class CooldownLatch:
    """
    Idle/active latch that stays active for a fixed cooldown.

    `trigger()` only succeeds from the idle state; the scheduled expiry is the
    only way back to idle, and it is silent.
    """

    def __init__(self, name: str, cooldown_seconds: float, scheduler: Scheduler) -> None:
        self.name = name
        self.cooldown_seconds = cooldown_seconds
        self._scheduler = scheduler
        self._active = False

    @property
    def active(self) -> bool:
        return self._active

    def trigger(self) -> bool:
        if self._active:
            return False
        self._active = True
        self._scheduler.call_later(self.cooldown_seconds, self._expire)
        return True

    def _expire(self) -> None:
        self._active = False
        logger.debug("%s cooldown has ended", self.name)


__all__ = ["CooldownLatch"]
