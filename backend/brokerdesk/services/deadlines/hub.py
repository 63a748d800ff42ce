"""Registry of active user sessions, each with its own center and scan loop."""

from __future__ import annotations

import asyncio
import datetime as dt
import logging
from typing import Awaitable, Callable
from uuid import UUID

from brokerdesk.core.config import settings
from brokerdesk.core.rbac import Actor
from brokerdesk.services.deadlines.center import NotificationCenter
from brokerdesk.services.deadlines.scheduler import DeadlineScanScheduler
from brokerdesk.services.deadlines.sources import DeadlineSources, SqlDeadlineSources
from brokerdesk.services.notifications_service import SqlNotificationStore

logger = logging.getLogger(__name__)

DEFAULT_IDLE_SECONDS = 30 * 60

_Session = tuple[NotificationCenter, DeadlineScanScheduler]


class NotificationHub:
    """One center and scan loop per signed-in user.

    A session counts as alive while requests keep arriving for it. Once
    ``idle_seconds`` pass without one, its loop ends at the next tick and the
    session is dropped; activity from any other user also sweeps idle
    sessions, so the registry stays bounded when scanning is disabled.
    """

    def __init__(
        self,
        store: SqlNotificationStore,
        sources: DeadlineSources,
        *,
        scan_enabled: bool = True,
        interval_seconds: float = 5 * 60,
        idle_seconds: float = DEFAULT_IDLE_SECONDS,
        list_limit: int | None = None,
        clock: Callable[[], dt.datetime] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.store = store
        self.sources = sources
        self.scan_enabled = scan_enabled
        self.interval_seconds = interval_seconds
        self.idle_timeout = dt.timedelta(seconds=idle_seconds)
        self.list_limit = list_limit
        self._clock = clock
        self._sleep = sleep
        self._sessions: dict[UUID, _Session] = {}
        self._last_seen: dict[UUID, dt.datetime] = {}
        self._lock = asyncio.Lock()

    @property
    def active_users(self) -> list[UUID]:
        return list(self._sessions)

    def scheduler_for(self, user_id: UUID) -> DeadlineScanScheduler | None:
        session = self._sessions.get(user_id)
        return session[1] if session else None

    def _now(self) -> dt.datetime:
        return self._clock() if self._clock is not None else self.store.now()

    def is_idle(self, user_id: UUID) -> bool:
        last_seen = self._last_seen.get(user_id)
        return last_seen is None or self._now() - last_seen >= self.idle_timeout

    def _pop_idle(self, keep: UUID) -> list[tuple[UUID, _Session]]:
        idle = [user_id for user_id in self._sessions if user_id != keep and self.is_idle(user_id)]
        popped = []
        for user_id in idle:
            self._last_seen.pop(user_id, None)
            popped.append((user_id, self._sessions.pop(user_id)))
        return popped

    def _expire(self, user_id: UUID, scheduler: DeadlineScanScheduler) -> None:
        session = self._sessions.get(user_id)
        if session is None or session[1] is not scheduler:
            return
        del self._sessions[user_id]
        self._last_seen.pop(user_id, None)
        session[0].deactivate()
        logger.info("Notification session expired for user %s", user_id)

    async def center_for(self, actor: Actor) -> NotificationCenter:
        """Return the actor's center, activating the session (first pass included) if needed."""
        async with self._lock:
            idle = self._pop_idle(keep=actor.user_id)
            self._last_seen[actor.user_id] = self._now()
            session = self._sessions.get(actor.user_id)
            if session is not None:
                center = session[0]
            else:
                center = await self._open(actor)

        for user_id, (idle_center, scheduler) in idle:
            await scheduler.stop()
            idle_center.deactivate()
            logger.info("Notification session expired for user %s", user_id)
        return center

    async def _open(self, actor: Actor) -> NotificationCenter:
        user_id = actor.user_id
        center = NotificationCenter(
            self.store,
            self.sources,
            clock=self._clock,
            list_limit=self.list_limit,
        )
        await center.activate(actor)
        scheduler = DeadlineScanScheduler(
            center,
            interval_seconds=self.interval_seconds,
            sleep=self._sleep,
            expired=lambda: self.is_idle(user_id),
            on_expired=lambda stopped: self._expire(user_id, stopped),
        )
        self._sessions[user_id] = (center, scheduler)
        if self.scan_enabled:
            scheduler.start()
        logger.info("Notification session activated for user %s", user_id)
        return center

    async def deactivate(self, user_id: UUID) -> bool:
        async with self._lock:
            session = self._sessions.pop(user_id, None)
            self._last_seen.pop(user_id, None)
        if session is None:
            return False
        center, scheduler = session
        await scheduler.stop()
        center.deactivate()
        logger.info("Notification session closed for user %s", user_id)
        return True

    async def shutdown(self) -> None:
        for user_id in list(self._sessions):
            await self.deactivate(user_id)


_hub: NotificationHub | None = None


def get_notification_hub() -> NotificationHub:
    global _hub
    if _hub is None:
        from brokerdesk.db.session import SessionLocal

        _hub = NotificationHub(
            SqlNotificationStore(SessionLocal, window=dt.timedelta(hours=settings.dedup_window_hours)),
            SqlDeadlineSources(SessionLocal),
            scan_enabled=settings.NOTIFICATION_SCAN_ENABLED,
            interval_seconds=settings.scan_interval_seconds,
            idle_seconds=settings.session_idle_seconds,
            list_limit=settings.NOTIFICATION_LIST_LIMIT,
        )
    return _hub


async def stop_notification_hub() -> None:
    global _hub
    hub = _hub
    _hub = None
    if hub is None:
        return
    await hub.shutdown()
