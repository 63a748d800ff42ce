"""Deadline notification engine public API."""

from __future__ import annotations

from brokerdesk.services.deadlines.center import NotificationCenter, ScanReport
from brokerdesk.services.deadlines.hub import NotificationHub, get_notification_hub, stop_notification_hub
from brokerdesk.services.deadlines.scheduler import DeadlineScanScheduler, SchedulerState

__all__ = [
    "DeadlineScanScheduler",
    "NotificationCenter",
    "NotificationHub",
    "ScanReport",
    "SchedulerState",
    "get_notification_hub",
    "stop_notification_hub",
]
