"""Error taxonomy and normalized error handlers."""

import logging
from typing import Optional
from uuid import uuid4

from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.requests import Request

from dailyout.core.logging import get_request_id


class AppError(Exception):
    code = "app_error"
    status_code = 500

    def __init__(self, message: str, *, code: Optional[str] = None, status_code: Optional[int] = None, request_id: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        if status_code:
            self.status_code = status_code
        self.request_id = request_id


class ValidationError(AppError, ValueError):
    code = "validation_error"
    status_code = 400


class NotFoundError(AppError, ValueError):
    code = "not_found"
    status_code = 404


class UnauthorizedError(AppError):
    code = "unauthorized"
    status_code = 401


class ConflictError(AppError):
    code = "conflict"
    status_code = 409


class AlreadyRegisteredError(ConflictError):
    code = "already_registered"


class RateLimitError(AppError):
    code = "rate_limited"
    status_code = 429


# State-conflict errors of the daily challenge lifecycle. The front end
# switches on `code`, so these identifiers are part of the public contract.

class NoActiveChallengeError(AppError):
    code = "no_active_challenge"
    status_code = 400

    def __init__(self, message: str = "No active challenge assigned.", **kwargs):
        super().__init__(message, **kwargs)


class AlreadyCompletedError(ConflictError):
    code = "already_completed"

    def __init__(self, message: str = "Challenge already completed.", **kwargs):
        super().__init__(message, **kwargs)


class AlreadySkippedError(ConflictError):
    code = "already_skipped"

    def __init__(self, message: str = "Challenge already skipped.", **kwargs):
        super().__init__(message, **kwargs)


class NoteEditWindowExpiredError(AppError):
    code = "note_edit_window_expired"
    status_code = 400

    def __init__(self, message: str = "Note can only be edited within 24 hours of completion", **kwargs):
        super().__init__(message, **kwargs)


class NoChallengesAvailableError(AppError):
    """The catalog has no active challenges at all (a seeding problem)."""
    code = "no_challenges_available"
    status_code = 503

    def __init__(self, message: str = "No challenges available", **kwargs):
        super().__init__(message, **kwargs)


def _extract_request_id(request: Request, fallback: Optional[str] = None) -> str:
    return (
        getattr(request.state, "request_id", None)
        or get_request_id()
        or fallback
        or str(uuid4())
    )


def _error_payload(code: str, message: str, request_id: str) -> dict:
    return {
        "error": {"code": code, "message": message, "request_id": request_id},
        "detail": message,
    }


async def app_error_handler(request: Request, exc: AppError):
    rid = exc.request_id or _extract_request_id(request)
    payload = _error_payload(exc.code, exc.message, rid)
    logger = logging.getLogger("dailyout")
    log_level = logging.ERROR if exc.status_code >= 500 else logging.WARNING
    logger.log(
        log_level,
        "app.error",
        extra={"request_id": rid, "error_code": exc.code, "error_message": exc.message, "status": exc.status_code},
    )
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def http_error_handler(request: Request, exc: HTTPException):
    rid = _extract_request_id(request)
    code = "not_found" if exc.status_code == 404 else "http_error"
    message = exc.detail if exc.detail else "HTTP error"
    payload = _error_payload(code, message, rid)
    logger = logging.getLogger("dailyout")
    logger.warning("http.error", extra={"request_id": rid, "error_code": code, "status": exc.status_code})
    response = JSONResponse(status_code=exc.status_code, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError):
    rid = _extract_request_id(request)
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg')}" if location else str(first.get("msg", "Invalid request"))
    payload = _error_payload("validation_error", message, rid)
    logging.getLogger("dailyout").warning("validation.error", extra={"request_id": rid, "error_code": "validation_error"})
    response = JSONResponse(status_code=400, content=payload)
    response.headers["x-request-id"] = rid
    return response


async def unhandled_exception_handler(request: Request, exc: Exception):
    rid = _extract_request_id(request)
    logger = logging.getLogger("dailyout")
    logger.error("unhandled.exception", exc_info=True, extra={"request_id": rid, "error_code": "internal_error"})
    payload = _error_payload("internal_error", "Unexpected error", rid)
    response = JSONResponse(status_code=500, content=payload)
    response.headers["x-request-id"] = rid
    return response
