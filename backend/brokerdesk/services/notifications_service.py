"""Notification store: queries, inserts with dedup, and read/dismiss updates."""

from __future__ import annotations

import datetime as dt
import enum
import logging
from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from brokerdesk.core.exceptions import NotificationStoreError
from brokerdesk.models.notification import Notification
from brokerdesk.schemas.notification import NotificationCreate, NotificationOut

logger = logging.getLogger(__name__)

DEDUP_CONSTRAINT = "uq_notifications_dedup"
UNIQUE_VIOLATION = "23505"


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def is_dedup_violation(exc: IntegrityError) -> bool:
    """True only when ``exc`` comes from the dedup unique index, not from any other constraint."""
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code is not None:
        if code != UNIQUE_VIOLATION:
            return False
        constraint = getattr(getattr(orig, "diag", None), "constraint_name", None)
        return constraint in (None, DEDUP_CONSTRAINT)
    # SQLite reports no code; its message lists the columns of the failing index.
    message = str(orig)
    if DEDUP_CONSTRAINT in message:
        return True
    return message.startswith("UNIQUE constraint failed") and "notifications.related_id" in message


def list_notifications(
    db: Session,
    *,
    user_id: UUID,
    include_dismissed: bool = True,
    limit: int | None = None,
) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if not include_dismissed:
        query = query.filter(Notification.dismissed_at.is_(None))
    query = query.order_by(Notification.created_at.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def find_recent_notification(
    db: Session,
    *,
    user_id: UUID,
    type: str,
    related_id: str,
    since: dt.datetime,
) -> Notification | None:
    return (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.type == type,
            Notification.related_id == related_id,
            Notification.created_at > since,
        )
        .first()
    )


def insert_notification(
    db: Session,
    *,
    user_id: UUID,
    payload: NotificationCreate,
    now: dt.datetime,
    window: dt.timedelta,
) -> Notification | None:
    """Insert unless a row for the same (type, related_id) exists inside ``window``.

    Returns ``None`` for a window hit. A concurrent writer that slips past the
    window query surfaces as ``IntegrityError`` from the unique index.
    """
    if payload.related_id is not None:
        existing = find_recent_notification(
            db,
            user_id=user_id,
            type=payload.type.value,
            related_id=payload.related_id,
            since=now - window,
        )
        if existing is not None:
            return None

    record = Notification(
        user_id=user_id,
        title=payload.title,
        message=payload.message,
        type=payload.type.value,
        related_id=payload.related_id,
        priority=payload.priority.value,
        is_read=False,
        created_on=now.date(),
        created_at=now,
        updated_at=now,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


def mark_notification_as_read(db: Session, *, user_id: UUID, notification_id: UUID, now: dt.datetime) -> bool:
    record = db.get(Notification, notification_id)
    if not record or record.user_id != user_id:
        return False
    if not record.is_read:
        record.is_read = True
        record.updated_at = now
        db.commit()
    return True


def mark_all_notifications_as_read(db: Session, *, user_id: UUID, now: dt.datetime) -> int:
    updated = (
        db.query(Notification)
        .filter(Notification.user_id == user_id, Notification.is_read.is_(False))
        .update({"is_read": True, "updated_at": now}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


def dismiss_notification(db: Session, *, user_id: UUID, notification_id: UUID, now: dt.datetime) -> bool:
    record = db.get(Notification, notification_id)
    if not record or record.user_id != user_id:
        return False
    if record.dismissed_at is None:
        record.dismissed_at = now
        record.updated_at = now
        db.commit()
    return True


def dismiss_read_notifications(db: Session, *, user_id: UUID, now: dt.datetime) -> int:
    updated = (
        db.query(Notification)
        .filter(
            Notification.user_id == user_id,
            Notification.is_read.is_(True),
            Notification.dismissed_at.is_(None),
        )
        .update({"dismissed_at": now, "updated_at": now}, synchronize_session=False)
    )
    db.commit()
    return int(updated or 0)


class InsertStatus(str, enum.Enum):
    inserted = "inserted"
    already_exists = "already_exists"
    failed = "failed"


@dataclass(frozen=True)
class InsertResult:
    status: InsertStatus
    record: NotificationOut | None = None
    reason: str | None = None

    @classmethod
    def inserted(cls, record: NotificationOut) -> "InsertResult":
        return cls(InsertStatus.inserted, record=record)

    @classmethod
    def already_exists(cls) -> "InsertResult":
        return cls(InsertStatus.already_exists)

    @classmethod
    def failed(cls, reason: str) -> "InsertResult":
        return cls(InsertStatus.failed, reason=reason)


class SqlNotificationStore:
    """Blocking store adapter; callers on the event loop run it through ``asyncio.to_thread``."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        *,
        clock: Callable[[], dt.datetime] = utcnow,
        window: dt.timedelta = dt.timedelta(hours=24),
    ) -> None:
        self._session_factory = session_factory
        self._clock = clock
        self.window = window

    def now(self) -> dt.datetime:
        return self._clock()

    def list_for_user(self, user_id: UUID, *, limit: int | None = None) -> list[NotificationOut]:
        db = self._session_factory()
        try:
            records = list_notifications(db, user_id=user_id, include_dismissed=True, limit=limit)
            return [NotificationOut.model_validate(record) for record in records]
        except SQLAlchemyError as exc:
            raise NotificationStoreError("notification_list_failed", reason=str(exc)) from exc
        finally:
            db.close()

    def insert(self, user_id: UUID, payload: NotificationCreate) -> InsertResult:
        db = self._session_factory()
        try:
            record = insert_notification(db, user_id=user_id, payload=payload, now=self._clock(), window=self.window)
            if record is None:
                return InsertResult.already_exists()
            return InsertResult.inserted(NotificationOut.model_validate(record))
        except IntegrityError as exc:
            db.rollback()
            if is_dedup_violation(exc):
                return InsertResult.already_exists()
            logger.warning("Notification insert rejected: user=%s type=%s related_id=%s: %s", user_id, payload.type.value, payload.related_id, exc)
            return InsertResult.failed(str(exc.orig))
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Notification insert failed: user=%s type=%s related_id=%s: %s", user_id, payload.type.value, payload.related_id, exc)
            return InsertResult.failed(str(exc))
        finally:
            db.close()

    def _update(self, operation: str, fn, **kwargs):
        db = self._session_factory()
        try:
            return fn(db, now=self._clock(), **kwargs)
        except SQLAlchemyError as exc:
            db.rollback()
            raise NotificationStoreError(f"notification_{operation}_failed", reason=str(exc)) from exc
        finally:
            db.close()

    def mark_read(self, user_id: UUID, notification_id: UUID) -> bool:
        return self._update("mark_read", mark_notification_as_read, user_id=user_id, notification_id=notification_id)

    def mark_all_read(self, user_id: UUID) -> int:
        return self._update("mark_all_read", mark_all_notifications_as_read, user_id=user_id)

    def dismiss(self, user_id: UUID, notification_id: UUID) -> bool:
        return self._update("dismiss", dismiss_notification, user_id=user_id, notification_id=notification_id)

    def dismiss_all_read(self, user_id: UUID) -> int:
        return self._update("dismiss_all_read", dismiss_read_notifications, user_id=user_id)
