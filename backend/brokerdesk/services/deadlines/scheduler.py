"""Recurring deadline scan loop bound to one notification center."""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Awaitable, Callable

from brokerdesk.services.deadlines.center import NotificationCenter, ScanReport

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL_SECONDS = 5 * 60


class SchedulerState(str, enum.Enum):
    idle = "idle"
    scanning = "scanning"
    stopped = "stopped"


class DeadlineScanScheduler:
    """Runs a pass on start, then one per ``interval_seconds`` until stopped.

    ``sleep`` is injectable so tests drive the loop without real timers.
    ``expired`` is checked before every pass; once it returns True the loop
    ends on its own and ``on_expired`` is told.
    Stopping never cancels a pass that is already running; it only prevents
    the next one.
    """

    def __init__(
        self,
        center: NotificationCenter,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        expired: Callable[[], bool] | None = None,
        on_expired: Callable[["DeadlineScanScheduler"], None] | None = None,
    ) -> None:
        self.center = center
        self.interval_seconds = interval_seconds
        self._sleep = sleep
        self._expired = expired
        self._on_expired = on_expired
        self._task: asyncio.Task | None = None
        self._stopping = False
        self._state = SchedulerState.idle
        self.passes = 0

    @property
    def state(self) -> SchedulerState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_pass(self) -> ScanReport:
        if self._state is SchedulerState.scanning:
            return ScanReport(skipped=True)
        self._state = SchedulerState.scanning
        try:
            report = await self.center.check_and_create_deadline_notifications()
        except Exception as exc:  # noqa: BLE001
            logger.warning("Deadline scan pass failed: %s", exc)
            report = ScanReport(skipped=True)
        finally:
            self._state = SchedulerState.stopped if self._stopping else SchedulerState.idle
        if not report.skipped:
            self.passes += 1
        return report

    async def _loop(self) -> None:
        while not self._stopping:
            if self._expired is not None and self._expired():
                self._stopping = True
                self._state = SchedulerState.stopped
                logger.info("Deadline scan loop ended for idle session after %s passes", self.passes)
                if self._on_expired is not None:
                    self._on_expired(self)
                break
            await self.run_pass()
            if self._stopping:
                break
            await self._sleep(self.interval_seconds)

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._state = SchedulerState.idle
        actor = self.center.actor
        self._task = asyncio.create_task(
            self._loop(),
            name=f"deadline-scan-{actor.user_id if actor else 'anonymous'}",
        )
        logger.info("Deadline scan loop started (every %s seconds)", self.interval_seconds)

    async def stop(self) -> None:
        self._stopping = True
        task = self._task
        self._task = None
        if task is None or task.done():
            self._state = SchedulerState.stopped
            return
        if self._state is SchedulerState.scanning:
            # Let the in-flight pass finish its writes; the loop exits right after.
            await task
        else:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._state = SchedulerState.stopped
        logger.info("Deadline scan loop stopped after %s passes", self.passes)
