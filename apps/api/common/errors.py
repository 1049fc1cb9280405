"""
Shared API error handlers with deterministic 422 payloads.

The identity routers raise `HTTPException(detail={"error": ..., "message": ...})`;
request validation failures are normalized to the same shape plus sorted `errors`.
"""

from __future__ import annotations

from typing import Any, Sequence, cast

from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from starlette.requests import Request
from starlette.responses import JSONResponse


def register_api_error_handlers(*, app: FastAPI) -> None:
    """
    Register global handler for deterministic FastAPI validation errors.

    Args:
        app: FastAPI application instance.
    Returns:
        None.
    Assumptions:
        Handlers are installed once during application startup.
    Raises:
        ValueError: If `app` dependency is missing.
    Side Effects:
        Mutates FastAPI exception-handler registry.
    """
    if app is None:  # type: ignore[truthy-bool]
        raise ValueError("register_api_error_handlers requires app")

    app.add_exception_handler(RequestValidationError, request_validation_error_handler)


def request_validation_error_handler(_request: Request, error: Exception) -> JSONResponse:
    """
    Convert FastAPI RequestValidationError to `{"detail": {"error": "validation_error", ...}}`.

    Args:
        _request: Starlette request object (unused).
        error: Raised validation exception from FastAPI/Pydantic.
    Returns:
        JSONResponse: HTTP 422 payload with deterministically sorted `errors` list.
    Assumptions:
        Validation errors include `loc`, `type`, and `msg` attributes.
    Raises:
        None.
    Side Effects:
        None.
    """
    validation_error = cast(RequestValidationError, error)
    payload = {
        "detail": {
            "error": "validation_error",
            "message": "Validation failed",
            "errors": _sorted_validation_errors(raw_errors=validation_error.errors()),
        }
    }
    return JSONResponse(status_code=422, content=payload)


def _sorted_validation_errors(*, raw_errors: Any) -> list[dict[str, str]]:
    if not isinstance(raw_errors, Sequence) or isinstance(raw_errors, (str, bytes, bytearray)):
        return []

    normalized_items: list[dict[str, str]] = []
    for raw_error in raw_errors:
        if not isinstance(raw_error, dict):
            normalized_items.append(
                {"path": "unknown", "code": "validation_error", "message": str(raw_error)}
            )
            continue
        location = raw_error.get("loc", ())
        normalized_items.append(
            {
                "path": ".".join(str(part) for part in location),
                "code": str(raw_error.get("type", "validation_error")),
                "message": str(raw_error.get("msg", "")),
            }
        )
    normalized_items.sort(key=lambda item: (item["path"], item["code"], item["message"]))
    return normalized_items
