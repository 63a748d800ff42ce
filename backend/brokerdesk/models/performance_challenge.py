"""Performance challenge and target rows owned by the performance module."""

from __future__ import annotations

import datetime as dt
from uuid import UUID

from sqlalchemy import DateTime, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from brokerdesk.db.base import Base
from brokerdesk.models.enums import ChallengeStatus


class PerformanceChallenge(Base):
    __tablename__ = "performance_challenges"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    user_id: Mapped[UUID] = mapped_column(index=True, nullable=False)
    broker_id: Mapped[str] = mapped_column(String(64), index=True, nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(String(16), default=ChallengeStatus.active.value, nullable=False)
    end_date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    targets: Mapped[list["PerformanceTarget"]] = relationship(
        back_populates="challenge",
        cascade="all, delete-orphan",
        lazy="selectin",
    )

    @property
    def total_progress(self) -> float:
        """Mean progress of the targets with a positive goal, each capped to 0..100."""
        relevant = [target for target in self.targets if float(target.target_value or 0) > 0]
        if not relevant:
            return 0.0
        return sum(target.progress for target in relevant) / len(relevant)


class PerformanceTarget(Base):
    __tablename__ = "performance_targets"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    challenge_id: Mapped[str] = mapped_column(
        ForeignKey("performance_challenges.id", ondelete="CASCADE"),
        index=True,
        nullable=False,
    )
    metric_type: Mapped[str] = mapped_column(String(32), nullable=False)
    target_value: Mapped[float] = mapped_column(Numeric(14, 2), default=0, nullable=False)
    current_value: Mapped[float] = mapped_column(Numeric(14, 2), default=0, nullable=False)

    challenge: Mapped[PerformanceChallenge] = relationship(back_populates="targets")

    @property
    def progress(self) -> float:
        target = float(self.target_value or 0)
        if target <= 0:
            return 0.0
        return min(max(float(self.current_value or 0) / target, 0.0), 1.0) * 100
