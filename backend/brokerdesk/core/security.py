"""Session token decoding for requests issued by the auth service."""

from __future__ import annotations

from typing import Any

from jose import ExpiredSignatureError, JWTError, jwt

from brokerdesk.core.config import settings

ACCESS_TOKEN_TYPE = "access"


def decode_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError as exc:
        raise ValueError("expired_token") from exc
    except JWTError as exc:
        raise ValueError("invalid_token") from exc
