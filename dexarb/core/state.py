"""Bot lifecycle state."""

import threading
import time
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from ..errors import BotStateError
from .types import BotStatus


@dataclass(frozen=True)
class BotStateSnapshot:
    """Consistent copy of the bot state."""
    status: BotStatus
    simulation_mode: bool
    consecutive_failures: int
    started_at: Optional[float]
    halt_reason: Optional[str]

    @property
    def uptime_seconds(self) -> int:
        if self.started_at is None:
            return 0
        return int(time.time() - self.started_at)


class BotState:
    """Single bot state instance guarded by its own lock."""

    def __init__(self, simulation_mode: bool):
        self._lock = threading.Lock()
        self._status = BotStatus.STOPPED
        self._simulation_mode = simulation_mode
        self._consecutive_failures = 0
        self._started_at: Optional[float] = None
        self._halt_reason: Optional[str] = None

    @property
    def status(self) -> BotStatus:
        with self._lock:
            return self._status

    @property
    def simulation_mode(self) -> bool:
        return self._simulation_mode

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    def snapshot(self) -> BotStateSnapshot:
        with self._lock:
            return BotStateSnapshot(
                status=self._status,
                simulation_mode=self._simulation_mode,
                consecutive_failures=self._consecutive_failures,
                started_at=self._started_at,
                halt_reason=self._halt_reason,
            )

    def start(self):
        """Explicit start. Clears a previous halt and its failure count."""
        with self._lock:
            if self._status == BotStatus.RUNNING:
                raise BotStateError("Bot is already running")
            previous = self._status
            self._status = BotStatus.RUNNING
            self._consecutive_failures = 0
            self._halt_reason = None
            self._started_at = time.time()
        logger.info(f"Bot status: {previous.value} -> running")

    def stop(self):
        with self._lock:
            if self._status == BotStatus.STOPPED:
                raise BotStateError("Bot is already stopped")
            previous = self._status
            self._status = BotStatus.STOPPED
        logger.info(f"Bot status: {previous.value} -> stopped")

    def halt(self, reason: str):
        """Move to error status. Only an explicit start leaves it."""
        with self._lock:
            if self._status == BotStatus.ERROR:
                return
            self._status = BotStatus.ERROR
            self._halt_reason = reason
        logger.critical(f"Bot halted: {reason}")

    def record_success(self):
        with self._lock:
            self._consecutive_failures = 0

    def record_failure(self) -> int:
        """Increment the failure counter and return the new value."""
        with self._lock:
            self._consecutive_failures += 1
            return self._consecutive_failures
