"""
Application errors and their JSON rendering.

Every failure surfaced to clients goes through AppError so responses share
one shape: {"status": "error", "message": ..., "details": ...}.
"""

import logging
from typing import Any, Optional

from fastapi import HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .config import IS_PRODUCTION

logger = logging.getLogger(__name__)


class AppError(HTTPException):
    """HTTP error carrying a user-facing message and optional diagnostic details"""

    def __init__(
        self,
        status_code: int,
        message: str,
        details: Any = None,
        headers: Optional[dict] = None,
    ):
        super().__init__(status_code=status_code, detail=message, headers=headers)
        self.message = message
        self.details = details


class NotFoundError(AppError):
    def __init__(self, message: str = "Ressource non trouvée", details: Any = None):
        super().__init__(404, message, details)


class UnauthorizedError(AppError):
    def __init__(self, message: str = "Non autorisé", details: Any = None):
        super().__init__(401, message, details)


class ForbiddenError(AppError):
    def __init__(self, message: str = "Accès non autorisé pour ce rôle", details: Any = None):
        super().__init__(403, message, details)


def provider_error_status(error: Exception) -> int:
    """Map identity provider/email failures to an HTTP status (throttling → 429)"""
    return 429 if "TOO_MANY_ATTEMPTS" in str(error) else 500


def error_body(message: str, details: Any = None) -> dict:
    body = {"status": "error", "message": message}
    if details is not None and not IS_PRODUCTION:
        body["details"] = details
    return body


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path} failed: {exc.message} ({exc.details})")
    else:
        logger.warning(f"⚠️ {request.method} {request.url.path} -> {exc.status_code}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(exc.message, exc.details),
        headers=exc.headers,
    )


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    message = exc.detail if isinstance(exc.detail, str) else "Erreur"
    details = None if isinstance(exc.detail, str) else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content=error_body(message, details),
        headers=getattr(exc, "headers", None),
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Convert validation errors on the Authorization header to 401,
    everything else to 400 with the field errors as details
    """
    for error in exc.errors():
        if error.get("loc") and "authorization" in str(error.get("loc")).lower():
            logger.warning(f"Authentication failed for {request.url.path}: missing Authorization header")
            return JSONResponse(status_code=401, content=error_body("Non authentifié"))

    errors = [
        {"field": ".".join(str(p) for p in err.get("loc", [])[1:]), "message": err.get("msg")}
        for err in exc.errors()
    ]
    logger.warning(f"Validation error for {request.url.path}: {errors}")
    return JSONResponse(status_code=400, content=error_body("Données invalides", errors))
