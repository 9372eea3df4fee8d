from __future__ import annotations

from typing import Any, Mapping

from fastapi import status
from fastapi.responses import JSONResponse


def json_response(
    payload: Any,
    *,
    status_code: int = status.HTTP_200_OK,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(payload, status_code=status_code, headers=dict(headers) if headers else None)


def invalid_json(**extra: Any) -> JSONResponse:
    return json_response(
        {**extra, "error": "invalid_payload", "message": "Invalid JSON"},
        status_code=status.HTTP_400_BAD_REQUEST,
    )


def method_not_allowed(headers: Mapping[str, str] | None = None) -> JSONResponse:
    return json_response(
        {"error": "Method not allowed"},
        status_code=status.HTTP_405_METHOD_NOT_ALLOWED,
        headers=headers,
    )


def not_found() -> JSONResponse:
    return json_response({"error": "Not Found"}, status_code=status.HTTP_404_NOT_FOUND)


__all__ = ["invalid_json", "json_response", "method_not_allowed", "not_found"]
