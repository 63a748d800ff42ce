"""Convenience imports for Alembic metadata discovery."""

from brokerdesk.models.notification import Notification
from brokerdesk.models.broker import Broker
from brokerdesk.models.task import Task
from brokerdesk.models.goal import Goal
from brokerdesk.models.event import Event
from brokerdesk.models.meeting import Meeting
from brokerdesk.models.performance_challenge import PerformanceChallenge, PerformanceTarget  # noqa: F401
