"""Exception handlers rendering every error as ``{"success": false, ...}``."""

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.features.auth.cookies import clear_refresh_token_cookie, request_settings

from .exceptions import APIException

logger = logging.getLogger(__name__)


def error_body(error: str, code: str, **extra) -> dict:
    return {"success": False, "error": error, "code": code, **extra}


def _field_name(location: tuple) -> str:
    # Drop the "body"/"query" prefix FastAPI puts in front of the field path
    parts = [str(part) for part in location[1:]] or [str(part) for part in location]
    return ".".join(parts)


async def api_exception_handler(request: Request, exc: APIException) -> JSONResponse:
    extra = {"details": exc.details} if exc.details else {}
    response = JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail, exc.code, **extra),
        headers=exc.headers,
    )
    if exc.clear_refresh_cookie:
        clear_refresh_token_cookie(response, request_settings(request))
    return response


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [{"field": _field_name(tuple(err.get("loc", ()))), "message": err.get("msg", "")} for err in exc.errors()]
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", "VALIDATION_ERROR", details=details),
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        if request.url.path.startswith(request_settings(request).api_prefix):
            body = error_body(f"API endpoint {request.method} {request.url.path} not found", "ENDPOINT_NOT_FOUND")
        else:
            body = error_body("The requested resource was not found", "RESOURCE_NOT_FOUND")
        return JSONResponse(status_code=exc.status_code, content=body)

    if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
        code = "METHOD_NOT_ALLOWED"
    else:
        code = "HTTP_ERROR"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(str(exc.detail), code),
        headers=getattr(exc, "headers", None),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}: {exc}")
    app_settings = request_settings(request)
    if app_settings.debug and not app_settings.is_production:
        message = str(exc) or exc.__class__.__name__
    else:
        message = "Internal server error"
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body(message, "INTERNAL_ERROR"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    # Starlette resolves handlers by the exception's MRO, so APIException wins over HTTPException
    app.add_exception_handler(APIException, api_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
