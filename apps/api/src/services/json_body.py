from __future__ import annotations

import json
from typing import Any


class InvalidJSONError(ValueError):
    """Raised when a request body is not a strict JSON document."""


def _reject_constant(name: str) -> Any:
    raise InvalidJSONError(f"Non-standard JSON constant: {name}")


def decode_json(raw: bytes | str) -> Any:
    """Decode a request body, rejecting NaN/Infinity like browser JSON parsers do."""
    try:
        text = raw.decode("utf-8") if isinstance(raw, bytes) else raw
        return json.loads(text, parse_constant=_reject_constant)
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise InvalidJSONError(str(exc)) from exc


__all__ = ["InvalidJSONError", "decode_json"]
