"""
Shared dependencies for the REST API and the cable websocket.
"""

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from checkplease.core.config import settings

__all__ = (
    "is_valid_authorization",
    "verify_token",
)

_bearer_scheme = HTTPBearer(auto_error=False)


def is_valid_authorization(header: str | None) -> bool:
    """Check an ``Authorization: <scheme> <key>`` header against APP_AUTH_KEY."""
    parts = (header or "").split(" ")
    if len(parts) != 2:
        return False
    return secrets.compare_digest(parts[1], settings.APP_AUTH_KEY)


async def verify_token(
    credentials: HTTPAuthorizationCredentials | None = Depends(_bearer_scheme),  # noqa: B008
) -> None:
    """Validate Bearer token against APP_AUTH_KEY."""
    if credentials is None or not secrets.compare_digest(credentials.credentials, settings.APP_AUTH_KEY):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication token",
        )
