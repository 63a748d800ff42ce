"""Read-only source snapshots the deadline scan consumes.

Each collection is owned by another module; the scan only reads it through
``DeadlineSources``. ``due_before`` lets an implementation drop items whose
deadline is beyond the largest alert horizon before they reach the scan.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Callable, Protocol

from sqlalchemy.orm import Session

from brokerdesk.core.rbac import Actor, challenge_scope
from brokerdesk.models.broker import Broker
from brokerdesk.models.event import Event
from brokerdesk.models.goal import Goal
from brokerdesk.models.meeting import Meeting
from brokerdesk.models.performance_challenge import PerformanceChallenge
from brokerdesk.models.task import Task


@dataclass(frozen=True)
class TaskSnapshot:
    id: str
    title: str
    due_date: dt.datetime
    status: str
    broker_id: str | None = None


@dataclass(frozen=True)
class GoalSnapshot:
    id: str
    title: str
    end_date: dt.datetime
    status: str
    progress: float | None = None
    broker_id: str | None = None


@dataclass(frozen=True)
class EventSnapshot:
    id: str
    title: str
    datetime: dt.datetime
    priority: str | None = None


@dataclass(frozen=True)
class MeetingSnapshot:
    id: str
    client_name: str
    meeting_date: dt.datetime


@dataclass(frozen=True)
class BrokerSnapshot:
    id: str
    name: str


@dataclass(frozen=True)
class ChallengeSnapshot:
    id: str
    title: str
    end_date: dt.datetime
    status: str
    total_progress: float = 0.0
    broker_id: str | None = None


class DeadlineSources(Protocol):
    def list_tasks(self, actor: Actor, *, due_before: dt.datetime | None = None) -> Sequence[TaskSnapshot]: ...

    def list_goals(self, actor: Actor, *, due_before: dt.datetime | None = None) -> Sequence[GoalSnapshot]: ...

    def list_events(self, actor: Actor, *, due_before: dt.datetime | None = None) -> Sequence[EventSnapshot]: ...

    def list_meetings(self, actor: Actor, *, due_before: dt.datetime | None = None) -> Sequence[MeetingSnapshot]: ...

    def list_challenges(self, actor: Actor) -> Sequence[ChallengeSnapshot]: ...

    def broker_names(self, actor: Actor) -> Mapping[str, str]: ...


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def _before(items: Iterable, attr: str, due_before: dt.datetime | None) -> list:
    if due_before is None:
        return list(items)
    limit = _as_utc(due_before)
    return [item for item in items if _as_utc(getattr(item, attr)) <= limit]


class InMemoryDeadlineSources:
    """Snapshot holder refreshed by the owning modules through ``replace_*``.

    Every reader gets a copy of the current list, so a refresh during a scan
    pass never changes what that pass iterates.
    """

    def __init__(
        self,
        *,
        tasks: Iterable[TaskSnapshot] = (),
        goals: Iterable[GoalSnapshot] = (),
        events: Iterable[EventSnapshot] = (),
        meetings: Iterable[MeetingSnapshot] = (),
        challenges: Iterable[ChallengeSnapshot] = (),
        brokers: Iterable[BrokerSnapshot] = (),
    ) -> None:
        self._tasks = tuple(tasks)
        self._goals = tuple(goals)
        self._events = tuple(events)
        self._meetings = tuple(meetings)
        self._challenges = tuple(challenges)
        self._brokers = tuple(brokers)

    def replace_tasks(self, tasks: Iterable[TaskSnapshot]) -> None:
        self._tasks = tuple(tasks)

    def replace_goals(self, goals: Iterable[GoalSnapshot]) -> None:
        self._goals = tuple(goals)

    def replace_events(self, events: Iterable[EventSnapshot]) -> None:
        self._events = tuple(events)

    def replace_meetings(self, meetings: Iterable[MeetingSnapshot]) -> None:
        self._meetings = tuple(meetings)

    def replace_challenges(self, challenges: Iterable[ChallengeSnapshot]) -> None:
        self._challenges = tuple(challenges)

    def replace_brokers(self, brokers: Iterable[BrokerSnapshot]) -> None:
        self._brokers = tuple(brokers)

    def list_tasks(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[TaskSnapshot]:
        return _before(self._tasks, "due_date", due_before)

    def list_goals(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[GoalSnapshot]:
        return _before(self._goals, "end_date", due_before)

    def list_events(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[EventSnapshot]:
        return _before(self._events, "datetime", due_before)

    def list_meetings(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[MeetingSnapshot]:
        return _before(self._meetings, "meeting_date", due_before)

    def list_challenges(self, actor: Actor) -> list[ChallengeSnapshot]:
        scope = challenge_scope(actor)
        if scope is None:
            return list(self._challenges)
        return [challenge for challenge in self._challenges if challenge.broker_id == scope]

    def broker_names(self, actor: Actor) -> dict[str, str]:
        return {broker.id: broker.name for broker in self._brokers}


class SqlDeadlineSources:
    """Reads the owning modules' tables, scoped to the actor like their own list screens."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def list_tasks(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[TaskSnapshot]:
        db = self._session_factory()
        try:
            query = db.query(Task).filter(Task.user_id == actor.user_id)
            if due_before is not None:
                query = query.filter(Task.due_date <= due_before)
            rows = query.order_by(Task.created_at.desc()).all()
            return [
                TaskSnapshot(id=row.id, title=row.title, due_date=row.due_date, status=row.status, broker_id=row.broker_id)
                for row in rows
            ]
        finally:
            db.close()

    def list_goals(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[GoalSnapshot]:
        db = self._session_factory()
        try:
            query = db.query(Goal).filter(Goal.user_id == actor.user_id)
            if due_before is not None:
                query = query.filter(Goal.end_date <= due_before)
            rows = query.order_by(Goal.end_date.asc()).all()
            return [
                GoalSnapshot(
                    id=row.id,
                    title=row.title,
                    end_date=row.end_date,
                    status=row.status,
                    progress=row.progress,
                    broker_id=row.broker_id,
                )
                for row in rows
            ]
        finally:
            db.close()

    def list_events(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[EventSnapshot]:
        db = self._session_factory()
        try:
            query = db.query(Event).filter(Event.user_id == actor.user_id)
            if due_before is not None:
                query = query.filter(Event.datetime <= due_before)
            rows = query.order_by(Event.datetime.asc()).all()
            return [EventSnapshot(id=row.id, title=row.title, datetime=row.datetime, priority=row.priority) for row in rows]
        finally:
            db.close()

    def list_meetings(self, actor: Actor, *, due_before: dt.datetime | None = None) -> list[MeetingSnapshot]:
        db = self._session_factory()
        try:
            query = db.query(Meeting).filter(Meeting.user_id == actor.user_id)
            if due_before is not None:
                query = query.filter(Meeting.meeting_date <= due_before)
            rows = query.order_by(Meeting.meeting_date.desc()).all()
            return [MeetingSnapshot(id=row.id, client_name=row.client_name, meeting_date=row.meeting_date) for row in rows]
        finally:
            db.close()

    def list_challenges(self, actor: Actor) -> list[ChallengeSnapshot]:
        db = self._session_factory()
        try:
            query = db.query(PerformanceChallenge)
            scope = challenge_scope(actor)
            if scope is None:
                query = query.filter(PerformanceChallenge.user_id == actor.user_id)
            else:
                query = query.filter(PerformanceChallenge.broker_id == scope)
            rows = query.order_by(PerformanceChallenge.end_date.asc()).all()
            return [
                ChallengeSnapshot(
                    id=row.id,
                    title=row.title,
                    end_date=row.end_date,
                    status=row.status,
                    total_progress=row.total_progress,
                    broker_id=row.broker_id,
                )
                for row in rows
            ]
        finally:
            db.close()

    def broker_names(self, actor: Actor) -> dict[str, str]:
        db = self._session_factory()
        try:
            rows = db.query(Broker.id, Broker.name).filter(Broker.user_id == actor.user_id).all()
            return {broker_id: name for broker_id, name in rows}
        finally:
            db.close()
