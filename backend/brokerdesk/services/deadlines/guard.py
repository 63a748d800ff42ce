"""In-memory duplicate check run before each emission."""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable

from brokerdesk.models.enums import NotificationType
from brokerdesk.schemas.notification import NotificationOut

DEDUP_WINDOW = dt.timedelta(hours=24)


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def has_recent_notification(
    notifications: Iterable[NotificationOut],
    *,
    type: NotificationType,
    related_id: str,
    now: dt.datetime,
    window: dt.timedelta = DEDUP_WINDOW,
    title_contains: str | None = None,
) -> bool:
    """True when a matching alert was created inside ``window``.

    Read and dismissed records count. The store runs the authoritative check;
    this one only saves round-trips.
    """
    since = _as_utc(now) - window
    marker = title_contains.casefold() if title_contains else None
    for notification in notifications:
        if notification.type != type or notification.related_id != related_id:
            continue
        if _as_utc(notification.created_at) <= since:
            continue
        if marker and marker not in notification.title.casefold():
            continue
        return True
    return False
