"""
Participant Sweeper
===================

Background task that runs the lifecycle manager's eviction sweep on a fixed
period. Fire-and-forget: it never blocks request handling, and a failing
sweep is logged while the timer keeps its schedule.
"""

import asyncio
from typing import Optional

from ...core.logger import StructuredLogger, get_logger
from ..models.chat import SweepReport
from .participant_lifecycle import ParticipantLifecycleManager

DEFAULT_SWEEP_INTERVAL_MS = 15_000


class ParticipantSweeper:
    """Fixed-rate eviction timer around ParticipantLifecycleManager.sweep()."""

    def __init__(
        self,
        lifecycle: ParticipantLifecycleManager,
        interval_ms: int = DEFAULT_SWEEP_INTERVAL_MS,
        stop_timeout_seconds: float = 5.0,
        logger: Optional[StructuredLogger] = None,
    ):
        if interval_ms <= 0:
            raise ValueError("interval_ms must be positive")
        self.lifecycle = lifecycle
        self.interval_seconds = interval_ms / 1000
        self.stop_timeout_seconds = stop_timeout_seconds
        self.logger = logger or get_logger(__name__)

        self._task: Optional[asyncio.Task] = None
        self._stop_event: Optional[asyncio.Event] = None

        self.runs = 0
        self.failures = 0
        self.last_report: Optional[SweepReport] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Schedule the sweep loop on the running event loop (no-op if already running)."""
        if self.is_running:
            return
        self._stop_event = asyncio.Event()
        self._task = asyncio.create_task(self._run(), name="participant-sweeper")
        self.logger.info("sweeper.started", {"interval_seconds": self.interval_seconds})

    async def stop(self) -> None:
        """Signal the loop to exit, then cancel it if it does not finish within the grace period."""
        if self._task is None:
            return

        self._stop_event.set()
        try:
            await asyncio.wait_for(self._task, timeout=self.stop_timeout_seconds)
        except asyncio.TimeoutError:
            self.logger.warning("sweeper.stop_timeout", {"timeout_seconds": self.stop_timeout_seconds})
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        finally:
            self._task = None

        self.logger.info("sweeper.stopped", {"runs": self.runs, "failures": self.failures})

    async def run_once(self) -> Optional[SweepReport]:
        """One guarded sweep; returns None if the sweep raised."""
        self.runs += 1
        try:
            report = await self.lifecycle.sweep()
        except Exception as e:
            self.failures += 1
            self.logger.error("sweeper.sweep_failed", {
                "error": str(e),
                "error_type": type(e).__name__,
            }, exc_info=True)
            return None

        self.last_report = report
        return report

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_run = loop.time() + self.interval_seconds

        while not self._stop_event.is_set():
            try:
                await asyncio.wait_for(
                    self._stop_event.wait(),
                    timeout=max(0.0, next_run - loop.time())
                )
                # Stop event set
                break
            except asyncio.TimeoutError:
                pass

            await self.run_once()

            # Fixed rate: keep the original schedule, skipping ticks already missed
            next_run += self.interval_seconds
            now = loop.time()
            if next_run <= now:
                missed = int((now - next_run) // self.interval_seconds) + 1
                next_run += missed * self.interval_seconds
