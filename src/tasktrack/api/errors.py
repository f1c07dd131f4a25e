"""Exception handlers — every failure leaves as the JSON envelope.

Learn: Four handlers cover everything:
- AppError (our taxonomy)        → its status code and message
- RequestValidationError         → 400 with the field list, in request order
- Starlette HTTPException        → unmatched routes become "Route X not found"
- anything else                  → 500 "Internal server error"; the exception
                                   text and stack are only added in debug mode
"""

import traceback

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tasktrack.errors import AppError, AuthenticationError, ValidationError

logger = structlog.get_logger()

_LOC_ROOTS = {"body", "query", "path", "header", "cookie"}


def _error_body(message: str, **extra) -> dict:
    return {"success": False, "message": message, **extra}


def field_errors(exc: RequestValidationError) -> list[dict]:
    """Flatten pydantic errors into [{field, message}]."""
    out = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ())]
        if len(loc) > 1 and loc[0] in _LOC_ROOTS:
            loc = loc[1:]
        message = str(err.get("msg", "Invalid value"))
        if message.startswith("Value error, "):
            message = message[len("Value error, "):]
        out.append({"field": ".".join(loc) or "body", "message": message})
    return out


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    extra = {}
    headers = None
    if isinstance(exc, ValidationError):
        extra["errors"] = exc.errors
    if isinstance(exc, AuthenticationError):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("tasktrack.server_error", path=request.url.path, error=exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.message, **extra),
        headers=headers,
    )


async def validation_error_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content=_error_body("Validation failed", errors=field_errors(exc)),
    )


async def http_error_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404 and exc.detail == "Not Found":
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(message),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("tasktrack.unhandled_error", path=request.url.path)
    extra = {}
    if request.app.state.settings.debug:
        extra["error"] = str(exc)
        extra["stack"] = traceback.format_exception(type(exc), exc, exc.__traceback__)
    return JSONResponse(
        status_code=500,
        content=_error_body("Internal server error", **extra),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
