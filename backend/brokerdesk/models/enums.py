"""Shared enum values used by the database models and schemas."""

from __future__ import annotations

import enum


class UserRole(str, enum.Enum):
    admin = "admin"
    manager = "manager"
    broker = "broker"
    viewer = "viewer"


class NotificationType(str, enum.Enum):
    task = "task"
    goal = "goal"
    event = "event"
    meeting = "meeting"
    # One-time challenge completion alerts.
    performance = "performance"
    challenge = "challenge"


class NotificationPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


class TaskStatus(str, enum.Enum):
    backlog = "Backlog"
    in_progress = "Em Progresso"
    in_review = "Em Revisão"
    done = "Concluída"


class GoalStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"
    overdue = "overdue"


class EventPriority(str, enum.Enum):
    low = "Baixa"
    medium = "Média"
    high = "Alta"


class ChallengeStatus(str, enum.Enum):
    active = "active"
    completed = "completed"
    cancelled = "cancelled"
    overdue = "overdue"
