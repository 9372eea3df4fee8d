"""Sign-in helpers for the dashboard API."""

from .allowlist import is_email_allowed, normalize_email
from .google import GoogleIdentity, GoogleIdentityError, identity_from_claims, verify_google_id_token

__all__ = [
    "GoogleIdentity",
    "GoogleIdentityError",
    "identity_from_claims",
    "is_email_allowed",
    "normalize_email",
    "verify_google_id_token",
]
