"""Error Handlers — map failures to the RoomShare JSON error envelope.

Invariants:
    - RoomShareError → its own envelope and http_status
    - RequestValidationError → 400 VALIDATION_ERROR with per-field details
    - Anything else → 500 INTERNAL_ERROR, message never includes exception text

Design Decisions:
    - Client mistakes (4xx) log at warning, server faults at error
    - The client_id path parameter is attached to every log record when present
"""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from roomshare.core.errors import ErrorCategory, ErrorSeverity, RoomShareError

logger = logging.getLogger(__name__)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RoomShareError, _handle_roomshare_error)
    app.add_exception_handler(RequestValidationError, _handle_validation_error)
    app.add_exception_handler(Exception, _handle_unexpected_error)


def _log_extra(request: Request, code: str) -> dict:
    return {
        "error_code": code,
        "path": request.url.path,
        "client_id": request.path_params.get("client_id"),
    }


def _envelope(code: str, message: str, category: ErrorCategory,
              severity: ErrorSeverity, **extra) -> dict:
    return {
        "error": {
            "code": code,
            "message": message,
            "category": category.value,
            "severity": severity.value,
            **extra,
        },
    }


async def _handle_roomshare_error(request: Request, exc: RoomShareError):
    level = logging.ERROR if exc.http_status >= 500 else logging.WARNING
    logger.log(level, "%s: %s", exc.code, exc.message, extra=_log_extra(request, exc.code))
    return JSONResponse(status_code=exc.http_status, content=exc.to_response())


async def _handle_validation_error(request: Request, exc: RequestValidationError):
    details = [
        {
            "field": ".".join(str(part) for part in err["loc"]),
            "message": err["msg"],
            "type": err["type"],
        }
        for err in exc.errors()
    ]
    logger.warning(
        "Rejected request body: %s", details,
        extra=_log_extra(request, "VALIDATION_ERROR"),
    )
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=_envelope(
            "VALIDATION_ERROR", "Invalid request data",
            ErrorCategory.VALIDATION, ErrorSeverity.ERROR, details=details,
        ),
    )


async def _handle_unexpected_error(request: Request, exc: Exception):
    logger.error(
        "Unhandled %s", type(exc).__name__,
        exc_info=exc, extra=_log_extra(request, "INTERNAL_ERROR"),
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=_envelope(
            "INTERNAL_ERROR", "An unexpected error occurred",
            ErrorCategory.INTERNAL, ErrorSeverity.CRITICAL,
        ),
    )
