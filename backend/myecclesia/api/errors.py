"""
Exception handlers. Every error leaves the API as {"error": "<message>"}.
"""

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from myecclesia.api.cors import CORS_HEADERS
from myecclesia.core.logging import get_logger

logger = get_logger(__name__)


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    log = logger.error if exc.status_code >= 500 else logger.info
    log("request_rejected", status_code=exc.status_code, error=exc.detail)
    headers = {**CORS_HEADERS, **(getattr(exc, "headers", None) or {})}
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
        message = f"{field}: {first.get('msg')}" if field else first.get("msg", "Invalid request")
    else:
        message = "Invalid request"
    logger.info("request_invalid", error=message)
    return JSONResponse({"error": message}, status_code=400, headers=CORS_HEADERS)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error("request_unhandled_error", error=str(exc), exc_info=exc)
    return JSONResponse({"error": str(exc)}, status_code=500, headers=CORS_HEADERS)


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
