"""Deadline threshold classification for the notification scan.

Every function here is pure: given a source snapshot and ``now`` it returns
the alert the item deserves, or ``None``. Distances are ``deadline - now``
in wall-clock time; a day is 24 hours, never a calendar boundary.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass

from brokerdesk.core.sanitize import shorten
from brokerdesk.models.enums import (
    ChallengeStatus,
    EventPriority,
    GoalStatus,
    NotificationPriority,
    NotificationType,
    TaskStatus,
)
from brokerdesk.schemas.notification import NotificationCreate
from brokerdesk.services.deadlines.sources import (
    ChallengeSnapshot,
    EventSnapshot,
    GoalSnapshot,
    MeetingSnapshot,
    TaskSnapshot,
)

ONE_DAY = dt.timedelta(hours=24)
THREE_DAYS = dt.timedelta(days=3)
SEVEN_DAYS = dt.timedelta(days=7)

NEAR_COMPLETION_PROGRESS = 80.0
COMPLETED_PROGRESS = 100.0

PLACEHOLDER_ID_PREFIX = "temp-"
COMPLETION_TITLE_MARKER = "concluído"

TASK_TITLE = "Prazo de Tarefa"
GOAL_TITLE = "Prazo de Meta"
EVENT_TITLE = "Evento Próximo"
MEETING_TITLE = "Reunião Próxima"
CHALLENGE_TITLE = "Prazo de Desafio"
CHALLENGE_NEAR_TITLE = "Desafio em Reta Final"
CHALLENGE_DONE_TITLE = "Desafio Concluído"

_MAX_SUBJECT_LENGTH = 120

_TASK_DONE = {TaskStatus.done.value}
_GOAL_CLOSED = {GoalStatus.completed.value, GoalStatus.cancelled.value}
_CHALLENGE_DONE = {ChallengeStatus.completed.value}


@dataclass(frozen=True)
class Alert:
    """Positive classifier outcome, ready to hand to the emitter."""

    type: NotificationType
    priority: NotificationPriority
    title: str
    message: str
    related_id: str

    def to_create(self) -> NotificationCreate:
        return NotificationCreate(
            title=self.title,
            message=self.message,
            type=self.type,
            related_id=self.related_id,
            priority=self.priority,
        )


def _as_utc(value: dt.datetime) -> dt.datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=dt.timezone.utc)
    return value.astimezone(dt.timezone.utc)


def time_left(deadline: dt.datetime, now: dt.datetime) -> dt.timedelta:
    return _as_utc(deadline) - _as_utc(now)


def _quoted(title: str) -> str:
    return f'"{shorten(title, _MAX_SUBJECT_LENGTH)}"'


def _broker_clause(broker_name: str | None) -> str:
    name = shorten(broker_name, _MAX_SUBJECT_LENGTH) if broker_name else ""
    return f" do corretor {name}" if name else ""


def _progress_suffix(progress: float | None) -> str:
    return f" Progresso: {float(progress or 0):.0f}%"


def classify_task(task: TaskSnapshot, now: dt.datetime, *, broker_name: str | None = None) -> Alert | None:
    if task.status in _TASK_DONE:
        return None
    # Optimistic rows get a real id once persisted; an alert must not point at the placeholder.
    if task.id.startswith(PLACEHOLDER_ID_PREFIX):
        return None

    subject = f"A tarefa {_quoted(task.title)}{_broker_clause(broker_name)}"
    left = time_left(task.due_date, now)
    if left < dt.timedelta(0):
        message, priority = f"{subject} está atrasada!", NotificationPriority.high
    elif left <= ONE_DAY:
        message, priority = f"{subject} vence em menos de 24 horas!", NotificationPriority.high
    elif left <= THREE_DAYS:
        message, priority = f"{subject} vence em 3 dias.", NotificationPriority.medium
    elif left <= SEVEN_DAYS:
        message, priority = f"{subject} vence em 7 dias.", NotificationPriority.low
    else:
        return None
    return Alert(NotificationType.task, priority, TASK_TITLE, message, task.id)


def classify_goal(goal: GoalSnapshot, now: dt.datetime, *, broker_name: str | None = None) -> Alert | None:
    if goal.status in _GOAL_CLOSED:
        return None

    subject = f"A meta {_quoted(goal.title)}{_broker_clause(broker_name)}"
    progress = _progress_suffix(goal.progress)
    left = time_left(goal.end_date, now)
    if left < dt.timedelta(0):
        message, priority = f"{subject} está atrasada!{progress}", NotificationPriority.high
    elif left <= THREE_DAYS:
        message, priority = f"{subject} termina em 3 dias.{progress}", NotificationPriority.high
    elif left <= SEVEN_DAYS:
        message, priority = f"{subject} termina em 7 dias.{progress}", NotificationPriority.medium
    else:
        return None
    return Alert(NotificationType.goal, priority, GOAL_TITLE, message, goal.id)


def classify_event(event: EventSnapshot, now: dt.datetime) -> Alert | None:
    left = time_left(event.datetime, now)
    if left < dt.timedelta(0):
        return None

    urgent = event.priority == EventPriority.high.value
    subject = f"Evento {_quoted(event.title)}"
    if left <= ONE_DAY:
        message = f"{subject} acontece em menos de 24 horas!"
        priority = NotificationPriority.high if urgent else NotificationPriority.medium
    elif left <= THREE_DAYS:
        message = f"{subject} acontece em 3 dias."
        priority = NotificationPriority.medium if urgent else NotificationPriority.low
    else:
        return None
    return Alert(NotificationType.event, priority, EVENT_TITLE, message, event.id)


def classify_meeting(meeting: MeetingSnapshot, now: dt.datetime) -> Alert | None:
    left = time_left(meeting.meeting_date, now)
    if left < dt.timedelta(0):
        return None

    subject = f"Reunião com {_quoted(meeting.client_name)}"
    if left <= ONE_DAY:
        message, priority = f"{subject} acontece em menos de 24 horas!", NotificationPriority.high
    elif left <= THREE_DAYS:
        message, priority = f"{subject} acontece em 3 dias.", NotificationPriority.medium
    else:
        return None
    return Alert(NotificationType.meeting, priority, MEETING_TITLE, message, meeting.id)


def challenge_is_open(challenge: ChallengeSnapshot) -> bool:
    return challenge.status not in _CHALLENGE_DONE


def classify_challenge(
    challenge: ChallengeSnapshot,
    now: dt.datetime,
    *,
    broker_name: str | None = None,
) -> Alert | None:
    """Deadline ladder for a challenge; progress-based alerts live in ``classify_challenge_progress``."""
    if not challenge_is_open(challenge):
        return None

    subject = f"O desafio {_quoted(challenge.title)}{_broker_clause(broker_name)}"
    progress = _progress_suffix(challenge.total_progress)
    left = time_left(challenge.end_date, now)
    if left < dt.timedelta(0):
        message, priority = f"{subject} expirou!{progress}", NotificationPriority.high
    elif left <= ONE_DAY:
        message, priority = f"{subject} expira em menos de 24 horas!{progress}", NotificationPriority.high
    elif left <= THREE_DAYS:
        message, priority = f"{subject} expira em 3 dias.{progress}", NotificationPriority.medium
    else:
        return None
    return Alert(NotificationType.challenge, priority, CHALLENGE_TITLE, message, challenge.id)


def classify_challenge_progress(
    challenge: ChallengeSnapshot,
    *,
    broker_name: str | None = None,
) -> Alert | None:
    """Completion or near-completion alert, consulted only when the deadline ladder stayed silent.

    A completed target gets the one-time ``performance`` alert; the
    ``challenge`` near-completion alert covers 80% up to (not including) 100%.
    """
    if not challenge_is_open(challenge):
        return None

    value = float(challenge.total_progress or 0)
    subject = f"O desafio {_quoted(challenge.title)}{_broker_clause(broker_name)}"
    if value >= COMPLETED_PROGRESS:
        return Alert(
            NotificationType.performance,
            NotificationPriority.high,
            CHALLENGE_DONE_TITLE,
            f"{subject} foi concluído!{_progress_suffix(value)}",
            challenge.id,
        )
    if value >= NEAR_COMPLETION_PROGRESS:
        return Alert(
            NotificationType.challenge,
            NotificationPriority.medium,
            CHALLENGE_NEAR_TITLE,
            f"{subject} está quase concluído!{_progress_suffix(value)}",
            challenge.id,
        )
    return None
