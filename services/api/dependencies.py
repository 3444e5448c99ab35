"""Shared service instances and request dependencies for the API routes."""

from fastapi import HTTPException, Request, status

from services.backend.client import BackendClient
from services.shared.config import get_settings

settings = get_settings()
backend = BackendClient(settings)


def get_token(request: Request) -> str | None:
    """Read the backend auth token from the session cookie, if any."""
    return request.cookies.get(settings.auth_cookie_name) or None


def require_token(request: Request) -> str:
    """Dependency for routes that need a signed-in user.

    Raises:
        HTTPException: 401 if the auth cookie is missing
    """
    token = get_token(request)
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
    return token
