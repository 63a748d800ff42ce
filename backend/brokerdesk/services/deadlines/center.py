"""Per-session notification state: emitter, user actions and the deadline scan pass."""

from __future__ import annotations

import asyncio
import datetime as dt
import enum
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import asdict, dataclass, field
from typing import Any
from uuid import UUID

from brokerdesk.core.exceptions import NotAuthenticatedError, NotificationStoreError
from brokerdesk.core.rbac import Actor
from brokerdesk.models.enums import NotificationPriority, NotificationType
from brokerdesk.schemas.notification import NotificationCreate, NotificationOut
from brokerdesk.services.deadlines.guard import has_recent_notification
from brokerdesk.services.deadlines.sources import DeadlineSources
from brokerdesk.services.deadlines.thresholds import (
    COMPLETION_TITLE_MARKER,
    SEVEN_DAYS,
    THREE_DAYS,
    Alert,
    classify_challenge,
    classify_challenge_progress,
    classify_event,
    classify_goal,
    classify_meeting,
    classify_task,
)
from brokerdesk.services.notifications_service import InsertStatus, SqlNotificationStore

logger = logging.getLogger(__name__)

SCAN_ORDER = ("tasks", "goals", "events", "meetings", "challenges")


class Outcome(str, enum.Enum):
    quiet = "quiet"
    emitted = "emitted"
    suppressed = "suppressed"


@dataclass
class SourceStats:
    source: str
    evaluated: int = 0
    emitted: int = 0
    suppressed: int = 0
    failed: int = 0

    def record(self, outcome: Outcome) -> None:
        if outcome is Outcome.emitted:
            self.emitted += 1
        elif outcome is Outcome.suppressed:
            self.suppressed += 1


@dataclass
class ScanReport:
    skipped: bool = False
    sources: list[SourceStats] = field(default_factory=list)

    @property
    def emitted(self) -> int:
        return sum(stats.emitted for stats in self.sources)

    @property
    def suppressed(self) -> int:
        return sum(stats.suppressed for stats in self.sources)

    @property
    def failed(self) -> int:
        return sum(stats.failed for stats in self.sources)

    def to_dict(self) -> dict[str, Any]:
        return {
            "skipped": self.skipped,
            "emitted": self.emitted,
            "sources": [asdict(stats) for stats in self.sources],
        }


class NotificationCenter:
    """Notification list of one signed-in user plus the operations the UI calls.

    ``_notifications`` keeps every record, dismissed ones included, newest
    first; the dismissed rows are hidden from ``notifications`` but still feed
    the duplicate guard. The list is only mutated between awaits, so one pass
    always sees its own emissions.
    """

    def __init__(
        self,
        store: SqlNotificationStore,
        sources: DeadlineSources,
        *,
        clock: Callable[[], dt.datetime] | None = None,
        window: dt.timedelta | None = None,
        list_limit: int | None = None,
    ) -> None:
        self._store = store
        self._sources = sources
        self._clock = clock or store.now
        self._window = window or store.window
        self._list_limit = list_limit
        self._actor: Actor | None = None
        self._notifications: list[NotificationOut] = []
        self._scanning = False
        self.is_loading = True

    @property
    def actor(self) -> Actor | None:
        return self._actor

    @property
    def is_scanning(self) -> bool:
        return self._scanning

    @property
    def notifications(self) -> list[NotificationOut]:
        return [notification for notification in self._notifications if notification.is_visible]

    @property
    def unread_count(self) -> int:
        return sum(1 for notification in self._notifications if notification.is_visible and not notification.is_read)

    def urgent(self, limit: int = 5) -> list[NotificationOut]:
        """Unread high-priority alerts for the dashboard attention card."""
        urgent = [
            notification
            for notification in self.notifications
            if not notification.is_read and notification.priority == NotificationPriority.high
        ]
        return urgent[:limit]

    def get(self, notification_id: UUID) -> NotificationOut | None:
        for notification in self.notifications:
            if notification.id == notification_id:
                return notification
        return None

    async def activate(self, actor: Actor) -> None:
        self._actor = actor
        await self.refresh_notifications()

    def deactivate(self) -> None:
        self._actor = None
        self._notifications = []
        self.is_loading = False

    async def refresh_notifications(self) -> None:
        actor = self._actor
        if actor is None:
            self._notifications = []
            self.is_loading = False
            return
        try:
            # Dismissed rows are loaded too; the guard needs them.
            records = await asyncio.to_thread(self._store.list_for_user, actor.user_id, limit=self._list_limit)
        except NotificationStoreError as exc:
            logger.warning("Error fetching notifications for user %s: %s", actor.user_id, exc)
        else:
            if self._actor is actor:
                self._notifications = records
        finally:
            self.is_loading = False

    async def create_notification(self, payload: NotificationCreate) -> NotificationOut | None:
        actor = self._actor
        if actor is None:
            raise NotAuthenticatedError("user_not_authenticated")
        return await self._create_for(actor, payload)

    async def _create_for(self, actor: Actor, payload: NotificationCreate) -> NotificationOut | None:
        # A pass keeps writing for the actor it started with, even if the session closes meanwhile.
        result = await asyncio.to_thread(self._store.insert, actor.user_id, payload)
        if result.status is InsertStatus.already_exists:
            logger.info(
                "Duplicate notification prevented by store: type=%s related_id=%s",
                payload.type.value,
                payload.related_id,
            )
            return None
        if result.status is InsertStatus.failed or result.record is None:
            raise NotificationStoreError("notification_insert_failed", reason=result.reason)

        if self._actor is actor:
            self._notifications.insert(0, result.record)
        return result.record

    def _patch(self, predicate: Callable[[NotificationOut], bool], **changes: Any) -> None:
        self._notifications = [
            notification.model_copy(update=changes) if predicate(notification) else notification
            for notification in self._notifications
        ]

    async def _apply(self, description: str, operation: Callable[..., Any], *args: Any) -> Any:
        """Run a store update; on failure the in-memory list is left as it was and the error propagates."""
        try:
            return await asyncio.to_thread(operation, *args)
        except NotificationStoreError as exc:
            logger.warning("Error %s: %s", description, exc)
            raise

    async def mark_as_read(self, notification_id: UUID) -> bool:
        actor = self._actor
        if actor is None:
            return False
        found = await self._apply("marking notification as read", self._store.mark_read, actor.user_id, notification_id)
        if not found:
            return False
        self._patch(lambda notification: notification.id == notification_id, is_read=True)
        return True

    async def mark_all_as_read(self) -> int:
        actor = self._actor
        if actor is None:
            return 0
        updated = await self._apply("marking all notifications as read", self._store.mark_all_read, actor.user_id)
        self._patch(lambda notification: not notification.is_read, is_read=True)
        return updated

    async def delete_notification(self, notification_id: UUID) -> bool:
        """Dismiss one notification; the row stays for deduplication."""
        actor = self._actor
        if actor is None:
            return False
        found = await self._apply("dismissing notification", self._store.dismiss, actor.user_id, notification_id)
        if not found:
            return False
        now = self._clock()
        self._patch(
            lambda notification: notification.id == notification_id and notification.dismissed_at is None,
            dismissed_at=now,
        )
        return True

    async def delete_all_read(self) -> int:
        actor = self._actor
        if actor is None:
            return 0
        updated = await self._apply("dismissing read notifications", self._store.dismiss_all_read, actor.user_id)
        now = self._clock()
        self._patch(
            lambda notification: notification.is_read and notification.dismissed_at is None,
            dismissed_at=now,
        )
        return updated

    async def _emit_if_new(
        self,
        actor: Actor,
        alert: Alert,
        now: dt.datetime,
        *,
        title_contains: str | None = None,
    ) -> Outcome:
        if has_recent_notification(
            self._notifications,
            type=alert.type,
            related_id=alert.related_id,
            now=now,
            window=self._window,
            title_contains=title_contains,
        ):
            return Outcome.suppressed
        record = await self._create_for(actor, alert.to_create())
        return Outcome.emitted if record is not None else Outcome.suppressed

    async def _scan_source(
        self,
        stats: SourceStats,
        loader: Callable[[], Sequence[Any]],
        evaluate: Callable[[Any], Awaitable[Outcome]],
    ) -> None:
        try:
            items = await asyncio.to_thread(loader)
        except Exception as exc:  # noqa: BLE001
            stats.failed += 1
            logger.warning("Deadline scan could not load %s: %s", stats.source, exc)
            return

        for item in items:
            stats.evaluated += 1
            try:
                outcome = await evaluate(item)
            except Exception as exc:  # noqa: BLE001
                stats.failed += 1
                logger.warning("Deadline scan failed for %s %s: %s", stats.source, getattr(item, "id", "?"), exc)
                continue
            stats.record(outcome)

    async def check_and_create_deadline_notifications(self) -> ScanReport:
        """Run one scan pass over all five sources in fixed order."""
        actor = self._actor
        if actor is None:
            return ScanReport(skipped=True)
        if self._scanning:
            logger.debug("Deadline scan already running for user %s; skipping", actor.user_id)
            return ScanReport(skipped=True)

        self._scanning = True
        try:
            return await self._run_pass(actor)
        finally:
            self._scanning = False

    async def _run_pass(self, actor: Actor) -> ScanReport:
        now = self._clock()
        sources = self._sources
        try:
            names = dict(await asyncio.to_thread(sources.broker_names, actor))
        except Exception as exc:  # noqa: BLE001
            logger.warning("Deadline scan could not load broker names: %s", exc)
            names = {}

        def broker_name(broker_id: str | None) -> str | None:
            return names.get(broker_id) if broker_id else None

        async def on_task(task) -> Outcome:
            alert = classify_task(task, now, broker_name=broker_name(task.broker_id))
            return await self._emit_if_new(actor, alert, now) if alert else Outcome.quiet

        async def on_goal(goal) -> Outcome:
            alert = classify_goal(goal, now, broker_name=broker_name(goal.broker_id))
            return await self._emit_if_new(actor, alert, now) if alert else Outcome.quiet

        async def on_event(event) -> Outcome:
            alert = classify_event(event, now)
            return await self._emit_if_new(actor, alert, now) if alert else Outcome.quiet

        async def on_meeting(meeting) -> Outcome:
            alert = classify_meeting(meeting, now)
            return await self._emit_if_new(actor, alert, now) if alert else Outcome.quiet

        async def on_challenge(challenge) -> Outcome:
            name = broker_name(challenge.broker_id)
            outcome = Outcome.quiet
            alert = classify_challenge(challenge, now, broker_name=name)
            if alert is not None:
                outcome = await self._emit_if_new(actor, alert, now)
                if outcome is Outcome.emitted:
                    return outcome
            extra = classify_challenge_progress(challenge, broker_name=name)
            if extra is None:
                return outcome
            marker = COMPLETION_TITLE_MARKER if extra.type is NotificationType.performance else None
            return await self._emit_if_new(actor, extra, now, title_contains=marker)

        steps = {
            "tasks": (lambda: sources.list_tasks(actor, due_before=now + SEVEN_DAYS), on_task),
            "goals": (lambda: sources.list_goals(actor, due_before=now + SEVEN_DAYS), on_goal),
            "events": (lambda: sources.list_events(actor, due_before=now + THREE_DAYS), on_event),
            "meetings": (lambda: sources.list_meetings(actor, due_before=now + THREE_DAYS), on_meeting),
            "challenges": (lambda: sources.list_challenges(actor), on_challenge),
        }

        report = ScanReport()
        for name in SCAN_ORDER:
            stats = SourceStats(source=name)
            report.sources.append(stats)
            loader, evaluate = steps[name]
            await self._scan_source(stats, loader, evaluate)

        logger.info(
            "Deadline scan completed: user=%s emitted=%s suppressed=%s failed=%s",
            actor.user_id,
            report.emitted,
            report.suppressed,
            report.failed,
        )
        return report
