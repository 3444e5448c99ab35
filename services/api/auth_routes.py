"""Authentication endpoints.

Login and signup are forwarded to the backend, which issues the token. The
token is then kept in an HTTP-only cookie for later proxied calls.
"""

import logging
import re
from typing import Any

from fastapi import APIRouter, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.datastructures import UploadFile

from services.api.cookies import clear_auth_cookie, set_auth_cookie
from services.api.dependencies import backend, get_token, settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

# Signup form field -> backend field
SIGNUP_FIELD_MAP = {
    "FirstName": "firstName",
    "LastName": "lastName",
    "Email": "email",
    "Password": "password",
    "CompanyName": "companyName",
    "Address": "address",
    "City": "city",
    "ZipCode": "zip",
    "Industry": "industry",
    "CurrencySymbol": "currencySymbol",
}


class LoginRequest(BaseModel):
    """Login form."""

    email: str = ""
    password: str = ""
    remember_me: bool = Field(False, alias="rememberMe")


class CheckEmailRequest(BaseModel):
    """Email availability check."""

    email: Any = None


class SessionResponse(BaseModel):
    """Whether the browser holds an auth cookie."""

    authenticated: bool


def _token_from(data: Any, error: str) -> str:
    token = data.get("token") if isinstance(data, dict) else None
    if not token:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=error)
    return str(token)


@router.post("/login")
def login(body: LoginRequest) -> JSONResponse:
    """Sign in against the backend and store the issued token.

    The cookie lasts 7 days with "remember me" and 8 hours otherwise.

    Raises:
        HTTPException: 400 if email or password is missing, 500 if the backend
            reply carries no token
    """
    email = body.email.strip()
    password = body.password.strip()
    if not email or not password:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Email and password are required."
        )

    data = backend.fetch(
        "POST",
        "/account/login/post",
        json_body={"email": email, "password": password, "rememberMe": body.remember_me},
    )
    token = _token_from(data, "Invalid auth response.")

    max_age = (
        settings.auth_cookie_remember_seconds
        if body.remember_me
        else settings.auth_cookie_session_seconds
    )
    response = JSONResponse(data)
    set_auth_cookie(response, token, max_age, settings)
    logger.info("User signed in")
    return response


@router.post("/signup")
async def signup(request: Request) -> JSONResponse:
    """Register a new account and company, then sign the user in.

    Form field names are mapped to the backend's names, string values are
    trimmed and the optional ``logo`` file is forwarded as is.

    Raises:
        HTTPException: 400 if the body is not multipart, 500 if the backend
            reply carries no token
    """
    content_type = request.headers.get("content-type", "")
    if "multipart/form-data" not in content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Content-Type must be multipart/form-data",
        )

    form = await request.form()
    fields: dict[str, str] = {}
    logo: tuple[str, tuple[str | None, bytes, str | None]] | None = None
    for key, value in form.multi_items():
        if isinstance(value, UploadFile):
            if key == "logo":
                logo = ("logo", (value.filename, await value.read(), value.content_type))
            continue
        fields[SIGNUP_FIELD_MAP.get(key, key)] = value.strip()

    # Plain fields go as filename-less parts so the body is multipart even without a logo
    parts: list[tuple[str, Any]] = [
        (name, (None, value.encode())) for name, value in fields.items()
    ]
    if logo is not None:
        parts.append(logo)

    data = await run_in_threadpool(backend.fetch, "POST", "/api/auth/signup", files=parts)
    token = _token_from(data, "Invalid signup response.")

    response = JSONResponse(data)
    set_auth_cookie(response, token, settings.auth_cookie_session_seconds, settings)
    logger.info("New account signed up")
    return response


@router.post("/check-email")
def check_email(body: CheckEmailRequest) -> Any:
    """Ask the backend whether an email is already registered.

    Raises:
        HTTPException: 400 if the email is malformed
    """
    if not isinstance(body.email, str) or not EMAIL_PATTERN.match(body.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid email format.")

    return backend.fetch(
        "POST", "/account/signup/checkEmailExists", json_body={"email": body.email}
    )


@router.post("/logout")
def logout() -> JSONResponse:
    """Drop the session cookie."""
    response = JSONResponse({"success": True})
    clear_auth_cookie(response, settings)
    return response


@router.get("/session", response_model=SessionResponse)
def session(request: Request) -> SessionResponse:
    """Report whether the browser is signed in.

    Pages use this to route: sign-in pages send authenticated users to the
    invoice list, every other page sends anonymous users to sign-in.
    """
    return SessionResponse(authenticated=get_token(request) is not None)
