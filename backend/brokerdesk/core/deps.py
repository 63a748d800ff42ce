"""Common FastAPI dependencies for the authenticated actor and their notification center."""

from __future__ import annotations

from uuid import UUID

from fastapi import Depends, Request

from brokerdesk.core.config import settings
from brokerdesk.core.exceptions import AuthenticationException, ExpiredTokenError, NotAuthenticatedError
from brokerdesk.core.rbac import Actor
from brokerdesk.core.security import ACCESS_TOKEN_TYPE, decode_token
from brokerdesk.models.enums import UserRole
from brokerdesk.services.deadlines.center import NotificationCenter
from brokerdesk.services.deadlines.hub import NotificationHub, get_notification_hub


def _extract_bearer_token(request: Request) -> str | None:
    authorization = request.headers.get("Authorization", "")
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    cleaned = token.strip()
    return cleaned or None


def _invalid_token() -> AuthenticationException:
    return AuthenticationException(
        "invalid_token",
        error_code="INVALID_TOKEN",
        status_code=401,
    )


def get_current_actor(request: Request) -> Actor:
    token = _extract_bearer_token(request) or request.cookies.get(settings.COOKIE_NAME)
    if not token:
        raise NotAuthenticatedError()

    try:
        payload = decode_token(token)
    except ValueError as exc:
        if str(exc) == "expired_token":
            raise ExpiredTokenError("access_token_expired")
        raise _invalid_token()
    token_type = payload.get("type")
    if token_type and token_type != ACCESS_TOKEN_TYPE:
        raise _invalid_token()

    try:
        user_id = UUID(str(payload.get("sub") or ""))
    except ValueError:
        raise _invalid_token()

    raw_role = payload.get("role")
    try:
        role = UserRole(raw_role) if raw_role else None
    except ValueError:
        role = None
    broker_id = payload.get("broker_id")
    return Actor(user_id=user_id, role=role, broker_id=str(broker_id) if broker_id else None)


async def get_notification_center(
    actor: Actor = Depends(get_current_actor),
    hub: NotificationHub = Depends(get_notification_hub),
) -> NotificationCenter:
    return await hub.center_for(actor)
