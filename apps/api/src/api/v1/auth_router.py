from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse

from api.responses import invalid_json, json_response
from auth import GoogleIdentityError, is_email_allowed, normalize_email, verify_google_id_token
from config import settings
from services.json_body import InvalidJSONError, decode_json
from services.sessions import Session, SessionStore

from .dependencies import get_current_session, get_session_store, session_id_from_request

logger = logging.getLogger("weatherstation.api.auth")

router = APIRouter(prefix="/auth", tags=["auth"])


def _cookie_policy(request: Request) -> tuple[bool, str]:
    secure = request.url.scheme == "https"
    return secure, "none" if secure else "lax"


def _signed_in_response(request: Request, session: Session) -> JSONResponse:
    response = json_response(
        {
            "status": "ok",
            "user": session.user(),
            "session_id": session.id,
            "csrf_token": session.csrf_token,
        }
    )
    secure, same_site = _cookie_policy(request)
    response.set_cookie(
        settings.session_cookie_name,
        session.id,
        httponly=True,
        path="/",
        samesite=same_site,
        secure=secure,
        domain=settings.cookie_domain,
    )
    return response


async def _read_body(request: Request) -> Any:
    return decode_json(await request.body())


def _forbidden() -> JSONResponse:
    return json_response(
        {"error": "forbidden", "message": "User not allowed"},
        status_code=status.HTTP_403_FORBIDDEN,
    )


@router.post("/login")
async def login(request: Request, store: SessionStore = Depends(get_session_store)) -> JSONResponse:
    try:
        body = await _read_body(request)
    except InvalidJSONError:
        return invalid_json()

    email = normalize_email(body.get("email") if isinstance(body, dict) else None)
    if not email:
        return json_response(
            {"error": "invalid_payload", "message": "email is required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    if not is_email_allowed(email, settings.allowlist_emails):
        logger.info("Rejected login for %s (not on allowlist)", email)
        return _forbidden()

    session = store.create(email)
    return _signed_in_response(request, session)


@router.post("/google")
async def login_with_google(request: Request, store: SessionStore = Depends(get_session_store)) -> JSONResponse:
    if not settings.google_oauth_enabled or not settings.google_oauth_client_ids:
        return json_response(
            {"error": "google_signin_unavailable", "message": "Google sign-in is not configured"},
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )
    try:
        body = await _read_body(request)
    except InvalidJSONError:
        return invalid_json()

    raw_token = body.get("id_token") if isinstance(body, dict) else None
    if not isinstance(raw_token, str) or not raw_token.strip():
        return json_response(
            {"error": "invalid_payload", "message": "id_token is required"},
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    try:
        identity = verify_google_id_token(
            raw_token,
            allowed_client_ids=settings.google_oauth_client_ids,
            hosted_domain=settings.google_oauth_hosted_domain,
        )
    except GoogleIdentityError as exc:
        logger.warning("Google sign-in failed: %s", exc)
        return json_response(
            {"error": "unauthorized", "message": str(exc)},
            status_code=status.HTTP_401_UNAUTHORIZED,
        )

    if not is_email_allowed(identity.email, settings.allowlist_emails):
        return _forbidden()

    session = store.create(identity.email)
    return _signed_in_response(request, session)


@router.get("/me")
async def me(session: Optional[Session] = Depends(get_current_session)) -> JSONResponse:
    if session is None:
        return json_response({"status": "unauthenticated"}, status_code=status.HTTP_401_UNAUTHORIZED)
    return json_response({"status": "ok", "user": session.user(), "csrf_token": session.csrf_token})


@router.post("/logout")
async def logout(request: Request, store: SessionStore = Depends(get_session_store)) -> JSONResponse:
    store.delete(session_id_from_request(request))
    response = json_response({"status": "ok"})
    secure, same_site = _cookie_policy(request)
    response.delete_cookie(
        settings.session_cookie_name,
        path="/",
        samesite=same_site,
        secure=secure,
        domain=settings.cookie_domain,
    )
    return response


__all__ = ["router"]
