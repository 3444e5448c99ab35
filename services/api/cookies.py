"""Auth cookie handling.

The backend's token never reaches browser scripts: it lives in an HTTP-only
cookie that this service reads back on every request.
"""

from fastapi import Response

from services.shared.config import Settings


def set_auth_cookie(response: Response, token: str, max_age: int, settings: Settings) -> None:
    """Store the backend token in the session cookie.

    Args:
        response: Outgoing response
        token: Token issued by the backend
        max_age: Cookie lifetime in seconds
        settings: Application settings (cookie name, secure flag)
    """
    response.set_cookie(
        key=settings.auth_cookie_name,
        value=token,
        max_age=max_age,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )


def clear_auth_cookie(response: Response, settings: Settings) -> None:
    """Remove the session cookie."""
    response.delete_cookie(
        key=settings.auth_cookie_name,
        path="/",
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
