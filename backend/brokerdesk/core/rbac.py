"""Role helpers for the authenticated actor."""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from brokerdesk.models.enums import UserRole

# Roles that supervise the whole brokerage instead of a single broker.
SUPERVISOR_ROLES: frozenset[UserRole] = frozenset({UserRole.admin, UserRole.manager})


@dataclass(frozen=True)
class Actor:
    user_id: UUID
    role: UserRole | None = None
    broker_id: str | None = None


def can_view_all_challenges(actor: Actor) -> bool:
    return actor.role in SUPERVISOR_ROLES


def challenge_scope(actor: Actor) -> str | None:
    """Return the broker id challenges must be limited to, or ``None`` for no limit."""
    if can_view_all_challenges(actor):
        return None
    # A non-supervisor without a broker profile owns no challenges.
    return actor.broker_id or ""
