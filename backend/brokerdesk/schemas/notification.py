"""Pydantic schemas for notifications."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from brokerdesk.core.sanitize import clean_multiline, clean_single_line
from brokerdesk.models.enums import NotificationPriority, NotificationType


def _as_utc(value: dt.datetime | None) -> dt.datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


class NotificationOut(BaseModel):
    id: UUID
    user_id: UUID
    title: str
    message: str
    type: NotificationType
    related_id: str | None = None
    priority: NotificationPriority
    is_read: bool = False
    dismissed_at: dt.datetime | None = None
    created_at: dt.datetime
    updated_at: dt.datetime

    class Config:
        from_attributes = True

    @field_validator("created_at", "updated_at", "dismissed_at")
    @classmethod
    def normalize_timestamps(cls, value: dt.datetime | None) -> dt.datetime | None:
        # SQLite hands back naive values; everything is stored in UTC.
        return _as_utc(value)

    @property
    def is_visible(self) -> bool:
        return self.dismissed_at is None


class NotificationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1, max_length=2000)
    type: NotificationType
    related_id: str | None = Field(default=None, max_length=64)
    priority: NotificationPriority = NotificationPriority.medium

    @field_validator("title", "related_id", mode="before")
    @classmethod
    def normalize_single_line(cls, value: str | None) -> str | None:
        if value is None:
            return None
        cleaned = clean_single_line(value)
        return cleaned or None

    @field_validator("message", mode="before")
    @classmethod
    def normalize_message(cls, value: str) -> str:
        return clean_multiline(value)


class NotificationUnreadCountOut(BaseModel):
    count: int


class SourceScanOut(BaseModel):
    source: str
    evaluated: int = 0
    emitted: int = 0
    suppressed: int = 0
    failed: int = 0


class ScanReportOut(BaseModel):
    skipped: bool = False
    emitted: int = 0
    sources: list[SourceScanOut] = Field(default_factory=list)
