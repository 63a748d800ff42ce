"""Goal rows owned by the goals module."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import DateTime, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from brokerdesk.db.base import Base
from brokerdesk.models.enums import GoalStatus


def utcnow() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


class Goal(Base):
    __tablename__ = "goals"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(index=True, nullable=False)
    broker_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=GoalStatus.active.value, nullable=False)
    target_value: Mapped[float] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    current_value: Mapped[float] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    end_date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), default=utcnow, nullable=False)

    @property
    def progress(self) -> float:
        target = float(self.target_value or 0)
        if target <= 0:
            return 0.0
        return min(float(self.current_value or 0) / target * 100, 100.0)
