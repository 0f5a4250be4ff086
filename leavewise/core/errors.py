"""
Central error handling for LeaveWise Backend

Domain errors are HTTPException subclasses so services can raise them the same
way they raise plain HTTPExceptions; each carries a stable machine-readable code.
"""
import logging
import traceback
from typing import Any, Optional

from fastapi import HTTPException, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class DomainError(HTTPException):
    """Base for every error the core leave/claim operations can surface"""
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "DOMAIN_ERROR"
    retryable: bool = False

    def __init__(self, detail: Any = None, headers: Optional[dict] = None):
        super().__init__(status_code=self.status_code, detail=detail or self.code, headers=headers)


class ValidationError(DomainError):
    """Malformed or out-of-policy input"""
    status_code = status.HTTP_400_BAD_REQUEST
    code = "VALIDATION_ERROR"


class Forbidden(DomainError):
    """Actor lacks authority for the requested action"""
    status_code = status.HTTP_403_FORBIDDEN
    code = "FORBIDDEN"


class NotFound(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "NOT_FOUND"


class InvalidTransition(DomainError):
    """Requested status is not reachable from the current status"""
    status_code = status.HTTP_409_CONFLICT
    code = "INVALID_TRANSITION"


class InsufficientBalance(DomainError):
    """Ledger guard failure: requested days exceed remaining balance"""
    status_code = status.HTTP_409_CONFLICT
    code = "INSUFFICIENT_BALANCE"


class LedgerConflict(DomainError):
    """Compare-and-set on a ledger row kept losing; safe to retry with fresh input"""
    status_code = status.HTTP_409_CONFLICT
    code = "LEDGER_CONFLICT"
    retryable = True


_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "*",
    "Access-Control-Allow-Headers": "*",
}


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """
    Handle HTTPException (and DomainError) with consistent JSON response format

    Args:
        request: FastAPI request object
        exc: HTTPException instance

    Returns:
        JSONResponse with error details
    """
    content = {
        "error": True,
        "status_code": exc.status_code,
        "code": getattr(exc, "code", None),
        "detail": exc.detail,
        "path": str(request.url.path),
    }
    if getattr(exc, "retryable", False):
        content["retryable"] = True
    headers = dict(_CORS_HEADERS)
    if exc.headers:
        headers.update(exc.headers)
    return JSONResponse(status_code=exc.status_code, content=content, headers=headers)


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Handle RequestValidationError with consistent JSON response format

    Does not leak internal validation details in production.
    """
    from leavewise.core.config import settings

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "code": "REQUEST_INVALID",
                "detail": "Validation error: Invalid request data",
                "path": str(request.url.path)
            }
        )

    # Sanitize for JSON: e.g. ctx.error ValueError -> str
    errors = []
    for e in exc.errors():
        err = dict(e)
        if "ctx" in err and isinstance(err["ctx"], dict):
            err["ctx"] = {
                k: (str(v) if not isinstance(v, (str, int, float, bool, type(None))) else v)
                for k, v in err["ctx"].items()
            }
        errors.append(err)
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": True,
            "status_code": 422,
            "code": "REQUEST_INVALID",
            "detail": "Validation error",
            "errors": errors,
            "path": str(request.url.path)
        }
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle unexpected exceptions with consistent JSON response format

    Does not leak internal error details in production.
    """
    from leavewise.core.config import settings

    logger.error("Unhandled exception: %s", exc, exc_info=True)

    if settings.APP_ENV == "prod":
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "status_code": 500,
                "code": "INTERNAL_ERROR",
                "detail": "Internal server error",
                "path": str(request.url.path)
            },
            headers=_CORS_HEADERS,
        )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": True,
            "status_code": 500,
            "code": "INTERNAL_ERROR",
            "detail": str(exc),
            "path": str(request.url.path),
            "traceback": traceback.format_exc() if settings.APP_ENV == "local" else None
        },
        headers=_CORS_HEADERS,
    )
