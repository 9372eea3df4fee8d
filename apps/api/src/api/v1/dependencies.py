from __future__ import annotations

from typing import Optional
from urllib.parse import unquote

from fastapi import Depends, Request

from config import settings
from services.sessions import Session, SessionStore, session_store


def get_session_store() -> SessionStore:
    return session_store


def session_id_from_request(request: Request, cookie_name: str | None = None) -> Optional[str]:
    """Resolve the session id from a bearer token first, then the session cookie."""
    auth = request.headers.get("authorization")
    if auth and auth.lower().startswith("bearer "):
        token = auth[7:].strip()
        if token:
            return token
    raw = request.cookies.get(cookie_name or settings.session_cookie_name)
    if not raw:
        return None
    return unquote(raw)


def get_current_session(
    request: Request,
    store: SessionStore = Depends(get_session_store),
) -> Optional[Session]:
    return store.get(session_id_from_request(request))
