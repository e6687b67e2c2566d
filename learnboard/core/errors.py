"""
Error taxonomy and the FastAPI handlers that render it as JSON
Every error body has the shape {"error": <code>, "detail": <text>}
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    status_code = 500
    code = "internal_error"

    def __init__(self, detail: str = "Internal server error"):
        super().__init__(detail)
        self.detail = detail


class InvalidInput(AppError):
    status_code = 400
    code = "invalid_input"


class AuthenticationFailed(AppError):
    status_code = 401
    code = "authentication_failed"

    def __init__(self, detail: str = "Invalid email or password"):
        super().__init__(detail)


class Forbidden(AppError):
    status_code = 403
    code = "forbidden"


class NotFound(AppError):
    status_code = 404
    code = "not_found"


class Conflict(AppError):
    status_code = 409
    code = "conflict"


class StoreConnectionError(AppError):
    """Database could not be reached (refused, bad credentials or timeout)"""
    status_code = 500
    code = "connection_error"

    def __init__(self, detail: str, reason: str = "unknown"):
        super().__init__(detail)
        self.reason = reason


class QueryError(AppError):
    status_code = 500
    code = "query_error"


class ServiceUnavailable(AppError):
    status_code = 503
    code = "oauth_unavailable"


def error_body(code: str, detail: str) -> dict:
    return {"error": code, "detail": detail}


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=error_body(exc.code, exc.detail))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    problems = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        problems.append(f"{location or 'body'}: {err.get('msg')}")
    detail = "; ".join(problems) or "Invalid request body"
    logger.info("Rejected %s %s: %s", request.method, request.url.path, detail)
    return JSONResponse(status_code=400, content=error_body(InvalidInput.code, detail))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body("internal_error", "Internal server error"))


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
