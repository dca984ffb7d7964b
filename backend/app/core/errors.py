"""Domain errors and structured error responses.

Services raise the DomainError subclasses below and never pick status codes;
register_error_handlers maps each kind to an HTTP status and renders every
error in the same JSON shape.
"""

import logging
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("coursetrack")


class DomainError(Exception):
    """Base class for the closed set of failures the core reports."""

    kind: str = "domain_error"

    def __init__(self, message: str, **context: Any) -> None:
        super().__init__(message)
        self.message = message
        self.context = context


class NotFoundError(DomainError):
    kind = "not_found"

    def __init__(self, entity: str, entity_id: Any = None, **context: Any) -> None:
        super().__init__(f"{entity} not found", entity=entity, entity_id=entity_id, **context)
        self.entity = entity


class ConflictError(DomainError):
    kind = "conflict"

    def __init__(self, message: str, *, field: str, **context: Any) -> None:
        super().__init__(message, field=field, **context)
        self.field = field


class InvalidCredentialsError(DomainError):
    kind = "invalid_credentials"


class InvalidOrExpiredCodeError(DomainError):
    """Absent, wrong, used and expired codes are reported identically."""

    kind = "invalid_or_expired_code"

    def __init__(self, **context: Any) -> None:
        super().__init__("Invalid or expired code", **context)


class DomainValidationError(DomainError):
    kind = "validation_error"


class UpstreamDependencyError(DomainError):
    kind = "upstream_failure"


_STATUS_BY_KIND: dict[str, int] = {
    NotFoundError.kind: status.HTTP_404_NOT_FOUND,
    ConflictError.kind: status.HTTP_409_CONFLICT,
    InvalidCredentialsError.kind: status.HTTP_401_UNAUTHORIZED,
    InvalidOrExpiredCodeError.kind: status.HTTP_400_BAD_REQUEST,
    DomainValidationError.kind: status.HTTP_400_BAD_REQUEST,
    UpstreamDependencyError.kind: status.HTTP_502_BAD_GATEWAY,
}


def status_for(exc: DomainError) -> int:
    return _STATUS_BY_KIND.get(exc.kind, status.HTTP_400_BAD_REQUEST)


def _jsonable_context(context: dict[str, Any]) -> dict[str, Any]:
    return {
        k: v if v is None or isinstance(v, (str, int, float, bool)) else str(v)
        for k, v in context.items()
    }


def register_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers on the FastAPI app."""

    @app.exception_handler(DomainError)
    async def domain_exception_handler(request: Request, exc: DomainError):
        request_id = getattr(request.state, "request_id", None)
        status_code = status_for(exc)
        return JSONResponse(
            status_code=status_code,
            content={
                "error": True,
                "status_code": status_code,
                "kind": exc.kind,
                "detail": exc.message,
                "context": _jsonable_context(exc.context),
                "request_id": request_id,
            },
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": True,
                "status_code": exc.status_code,
                "detail": exc.detail,
                "request_id": request_id,
            },
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        request_id = getattr(request.state, "request_id", None)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "status_code": 422,
                "detail": "Validation error",
                "errors": exc.errors(),
                "request_id": request_id,
            },
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        request_id = getattr(request.state, "request_id", None)
        logger.exception("unhandled error request_id=%s path=%s", request_id, request.url.path)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "status_code": 500,
                "detail": "Internal server error",
                "request_id": request_id,
            },
        )
