"""Shared request dependencies and error handlers for the HTTP interface."""

import logging
from typing import Annotated

from fastapi import FastAPI, Header, Request
from fastapi.responses import JSONResponse

from src.core.db_client import DatabaseError
from src.core.errors import classify_error_with_response


logger = logging.getLogger(__name__)


# Caller identity; authentication happens upstream
UserId = Annotated[str, Header(alias="X-User-Id", min_length=1)]


async def _handle_service_error(request: Request, exc: Exception) -> JSONResponse:
    response = classify_error_with_response(exc)
    logger.warning(
        "request_failed",
        extra={"path": request.url.path, "code": response.code, "error": str(exc)},
    )
    return JSONResponse(
        status_code=response.http_status,
        content={
            "code": response.code,
            "message": response.message,
            "suggestion": response.suggestion,
            "severity": response.severity.value,
        },
    )


def register_error_handlers(app: FastAPI) -> None:
    """Turn service exceptions into JSON error responses."""
    for exc_class in (KeyError, PermissionError, ValueError, DatabaseError):
        app.add_exception_handler(exc_class, _handle_service_error)
