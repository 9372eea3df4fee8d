from __future__ import annotations

from typing import Any, Sequence


def normalize_email(value: Any) -> str:
    if not isinstance(value, str):
        return ""
    return value.strip().lower()


def is_email_allowed(email: str, allowlist: Sequence[str]) -> bool:
    """An empty allowlist admits everyone."""
    if not allowlist:
        return True
    return email in allowlist


__all__ = ["is_email_allowed", "normalize_email"]
