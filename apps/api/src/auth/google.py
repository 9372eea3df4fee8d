"""Google ID token verification for dashboard sign-in."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

_GOOGLE_ISSUERS = {"accounts.google.com", "https://accounts.google.com"}


@dataclass(slots=True)
class GoogleIdentity:
    subject: str
    email: str
    hosted_domain: str | None


class GoogleIdentityError(RuntimeError):
    """Raised when a Google ID token cannot be trusted."""


def verify_google_id_token(
    raw_token: str,
    *,
    allowed_client_ids: Sequence[str],
    hosted_domain: str | None = None,
) -> GoogleIdentity:
    from google.auth.transport import requests as google_requests
    from google.oauth2 import id_token

    token = raw_token.strip()
    if not token:
        raise GoogleIdentityError("Missing Google ID token")

    client_ids = [client_id.strip() for client_id in allowed_client_ids if client_id.strip()]
    if not client_ids:
        raise GoogleIdentityError("Google sign-in is not configured")

    request = google_requests.Request()
    claims: dict[str, Any] | None = None
    for client_id in client_ids:
        try:
            claims = dict(id_token.verify_oauth2_token(token, request, client_id))
        except ValueError:
            continue
        break

    if claims is None:
        raise GoogleIdentityError("Invalid Google ID token")
    return identity_from_claims(claims, hosted_domain=hosted_domain)


def identity_from_claims(claims: dict[str, Any], *, hosted_domain: str | None = None) -> GoogleIdentity:
    """Apply the sign-in policy to already signature-checked token claims."""
    if str(claims.get("iss", "")).strip() not in _GOOGLE_ISSUERS:
        raise GoogleIdentityError("Invalid Google token issuer")

    subject = str(claims.get("sub", "")).strip()
    email = str(claims.get("email", "")).strip().lower()
    token_domain = str(claims.get("hd", "")).strip().lower() or None
    if not subject:
        raise GoogleIdentityError("Google token subject is missing")
    if not email:
        raise GoogleIdentityError("Google token email is missing")
    if not claims.get("email_verified"):
        raise GoogleIdentityError("Google account email is not verified")

    required_domain = (hosted_domain or "").strip().lower()
    if required_domain and token_domain != required_domain:
        raise GoogleIdentityError("Google account is not in the allowed hosted domain")

    return GoogleIdentity(subject=subject, email=email, hosted_domain=token_domain)


__all__ = ["GoogleIdentity", "GoogleIdentityError", "identity_from_claims", "verify_google_id_token"]
