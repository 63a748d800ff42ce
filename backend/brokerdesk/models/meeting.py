"""Client meeting rows owned by the meetings module."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from brokerdesk.db.base import Base


class Meeting(Base):
    __tablename__ = "meetings"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(index=True, nullable=False)
    client_name: Mapped[str] = mapped_column(String(255), nullable=False)
    meeting_date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)
