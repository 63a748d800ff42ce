"""Notifications API endpoints."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Body, Depends, Path, Query

from brokerdesk.core.deps import get_current_actor, get_notification_center
from brokerdesk.core.exceptions import NotFoundError
from brokerdesk.core.rate_limit import rate_limit
from brokerdesk.core.rbac import Actor
from brokerdesk.schemas.notification import (
    NotificationCreate,
    NotificationOut,
    NotificationUnreadCountOut,
    ScanReportOut,
)
from brokerdesk.services.deadlines.center import NotificationCenter
from brokerdesk.services.deadlines.hub import NotificationHub, get_notification_hub

router = APIRouter(dependencies=[Depends(rate_limit())])


@router.get("/", response_model=list[NotificationOut])
def get_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    center: NotificationCenter = Depends(get_notification_center),
) -> list[NotificationOut]:
    records = center.notifications
    if unread_only:
        records = [record for record in records if not record.is_read]
    return records[:limit]


@router.get("/unread-count", response_model=NotificationUnreadCountOut)
def get_unread_count(center: NotificationCenter = Depends(get_notification_center)) -> NotificationUnreadCountOut:
    return NotificationUnreadCountOut(count=center.unread_count)


@router.get("/urgent", response_model=list[NotificationOut])
def get_urgent_notifications(
    limit: int = Query(default=5, ge=1, le=20),
    center: NotificationCenter = Depends(get_notification_center),
) -> list[NotificationOut]:
    return center.urgent(limit)


@router.post("/", response_model=NotificationOut | None)
async def post_notification(
    payload: NotificationCreate = Body(...),
    center: NotificationCenter = Depends(get_notification_center),
) -> NotificationOut | None:
    # None means an equivalent alert already exists inside the dedup window.
    return await center.create_notification(payload)


@router.post("/refresh", response_model=list[NotificationOut])
async def refresh_notifications(center: NotificationCenter = Depends(get_notification_center)) -> list[NotificationOut]:
    await center.refresh_notifications()
    return center.notifications


@router.post("/scan", response_model=ScanReportOut)
async def scan_deadlines(center: NotificationCenter = Depends(get_notification_center)) -> ScanReportOut:
    report = await center.check_and_create_deadline_notifications()
    return ScanReportOut.model_validate(report.to_dict())


@router.post("/read-all")
async def read_all_notifications(center: NotificationCenter = Depends(get_notification_center)) -> dict[str, int]:
    updated = await center.mark_all_as_read()
    return {"updated": updated}


@router.post("/{notification_id}/read", response_model=NotificationOut)
async def read_notification(
    notification_id: UUID = Path(...),
    center: NotificationCenter = Depends(get_notification_center),
) -> NotificationOut:
    if center.get(notification_id) is None or not await center.mark_as_read(notification_id):
        raise NotFoundError("notification_not_found", details={"notification_id": str(notification_id)})
    return center.get(notification_id)


@router.delete("/read")
async def dismiss_read_notifications(center: NotificationCenter = Depends(get_notification_center)) -> dict[str, int]:
    dismissed = await center.delete_all_read()
    return {"dismissed": dismissed}


@router.delete("/session")
async def close_notification_session(
    actor: Actor = Depends(get_current_actor),
    hub: NotificationHub = Depends(get_notification_hub),
) -> dict[str, bool]:
    return {"closed": await hub.deactivate(actor.user_id)}


@router.delete("/{notification_id}")
async def dismiss_notification(
    notification_id: UUID = Path(...),
    center: NotificationCenter = Depends(get_notification_center),
) -> dict[str, bool]:
    if center.get(notification_id) is None or not await center.delete_notification(notification_id):
        raise NotFoundError("notification_not_found", details={"notification_id": str(notification_id)})
    return {"dismissed": True}
