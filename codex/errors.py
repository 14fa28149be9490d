"""
Error types for external collaborators and the JSON error envelope.

Routers raise HTTPException; these handlers render every failure as
{"success": false, "error": ...} while keeping the status code.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class ServiceError(Exception):
    """A third-party service call failed."""


class JudgeUnavailableError(ServiceError):
    pass


class AIServiceError(ServiceError):
    pass


class PaymentGatewayError(ServiceError):
    pass


class StorageUploadError(ServiceError):
    pass


class MailDeliveryError(ServiceError):
    pass


def error_body(detail) -> dict:
    if isinstance(detail, dict):
        return {"success": False, **detail}
    return {"success": False, "error": str(detail)}


def _validation_message(exc: RequestValidationError) -> str:
    messages = []
    for err in exc.errors():
        loc = ".".join(str(part) for part in err.get("loc", ()) if part != "body")
        messages.append(f"{loc}: {err.get('msg')}" if loc else err.get("msg", "Invalid input"))
    return "; ".join(messages) or "Invalid input"


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.detail),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content=error_body(_validation_message(exc)))


async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content=error_body(str(exc)))


def install_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
