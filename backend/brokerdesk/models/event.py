"""Calendar event rows owned by the agenda module."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from brokerdesk.db.base import Base
from brokerdesk.models.enums import EventPriority


class Event(Base):
    __tablename__ = "events"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    datetime: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    priority: Mapped[str] = mapped_column(String(16), default=EventPriority.medium.value, nullable=False)
