"""Opaque session cookie dependency for per-caller credential state."""

from __future__ import annotations

import re
import secrets

from fastapi import Request, Response

from otpgate.api.state import resolve_app_settings

_SESSION_ID_PATTERN = re.compile(r"[A-Za-z0-9_-]{16,128}")


async def resolve_session_id(request: Request, response: Response) -> str:
    """Return the caller's session id, issuing a new cookie when absent."""
    settings = resolve_app_settings(request.app)
    cookie_name = settings.session_cookie_name
    session_id = request.cookies.get(cookie_name)
    if session_id is not None and _SESSION_ID_PATTERN.fullmatch(session_id):
        return session_id

    session_id = generate_session_id()
    response.set_cookie(
        key=cookie_name,
        value=session_id,
        httponly=True,
        secure=settings.session_cookie_secure,
        samesite="lax",
        path="/",
    )
    return session_id


def generate_session_id() -> str:
    """Generate a random opaque session id."""
    return secrets.token_urlsafe(32)
