"""Error boundary — turns exceptions into JSON responses.

Learn: Routes and services never build error responses themselves.
They raise AppError subclasses (oportal.errors) and the handlers here
map them to `{"status", "code", "message"}`:

- 4xx → status "fail", the error's own message
- 5xx → status "error"; in production the message is replaced with a
  generic one, in development the real message and exception type are
  echoed so they show up in the client
- anything that isn't an AppError is treated as an InternalError
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from oportal.config import settings
from oportal.errors import AppError, InternalError

logger = structlog.get_logger()

GENERIC_MESSAGE = "Something went wrong"


def _body(status_code: int, code: str, message: str, **extra) -> dict:
    return {
        "status": "fail" if status_code < 500 else "error",
        "code": code,
        "message": message,
        **extra,
    }


def _respond(status_code: int, content: dict) -> JSONResponse:
    headers = {"WWW-Authenticate": "Bearer"} if status_code == 401 else None
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def _internal(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(
        "api.internal_error",
        path=request.url.path,
        method=request.method,
        error_type=type(exc).__name__,
    )
    if settings.is_production:
        content = _body(500, InternalError.code, GENERIC_MESSAGE)
    else:
        message = str(exc) or GENERIC_MESSAGE
        content = _body(500, InternalError.code, message, error_type=type(exc).__name__)
    return _respond(500, content)


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if isinstance(exc, InternalError) or exc.status_code >= 500:
        return _internal(request, exc)

    logger.info(
        "api.request_failed",
        path=request.url.path,
        status_code=exc.status_code,
        code=exc.code,
    )
    return _respond(exc.status_code, _body(exc.status_code, exc.code, exc.message))


async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report the first failing field, e.g. `body.email: Please enter a valid email address`."""
    errors = exc.errors()
    message = "Invalid input data"
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        text = str(first.get("msg", "")).removeprefix("Value error, ")
        message = f"{field}: {text}" if field else text
    return _respond(400, _body(400, "validation_error", message))


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Framework-level errors (unknown route, wrong method) in the same envelope."""
    if exc.status_code == 404:
        code, message = "not_found", f"Can't find {request.url.path} on this server"
    elif exc.status_code == 405:
        code, message = "method_not_allowed", "Method not allowed"
    else:
        code, message = "http_error", str(exc.detail)
    return _respond(exc.status_code, _body(exc.status_code, code, message))


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    return _internal(request, exc)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
