"""
Exception taxonomy and global exception handling for Cadence.

Provides structured JSON error responses for all exception types,
preventing stack traces from leaking to clients.
"""

from typing import Optional

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
import structlog

from cadence.time_utils import utcnow

logger = structlog.get_logger(__name__)


class CadenceException(Exception):
    """Base exception for Cadence application errors."""
    def __init__(self, message: str, status_code: int = 500, details: dict = None):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(message)


class ServiceUnavailableError(CadenceException):
    """Raised when an external data source or collaborator is unavailable."""
    def __init__(self, service: str, message: str = None):
        super().__init__(
            message=message or f"Service '{service}' is unavailable",
            status_code=503,
            details={"service": service}
        )


class NotFoundError(CadenceException):
    """Raised when a task, review period or notification does not exist."""
    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} '{resource_id}' not found",
            status_code=404,
            details={"resource": resource, "id": resource_id}
        )


class InvalidReviewPeriodError(CadenceException):
    """Raised when a review period does not end after it starts."""
    def __init__(self, message: str):
        super().__init__(message=message, status_code=422)


class InvalidTaskTransitionError(CadenceException):
    """Raised for a status change the task state machine does not allow."""
    def __init__(self, task_id: str, current: str, requested: str):
        super().__init__(
            message=f"Task '{task_id}' cannot move from {current} to {requested}",
            status_code=409,
            details={"task_id": task_id, "current": current, "requested": requested}
        )


class ExecutorFailureError(CadenceException):
    """A task executor could not complete its task. The task stays active."""
    def __init__(self, task_id: str, message: str, details: Optional[dict] = None):
        super().__init__(
            message=message,
            status_code=500,
            details={"task_id": task_id, **(details or {})}
        )
        self.task_id = task_id


class TaskPayloadError(ExecutorFailureError):
    """The task's metadata payload is missing or of the wrong kind."""


class UnknownTaskTypeError(ExecutorFailureError):
    """No executor is registered for the task's type."""


class MaintenanceAnalysisError(ExecutorFailureError):
    """Every analysis call of a maintenance run failed."""


async def _cadence_exception_handler(request: Request, exc: CadenceException) -> JSONResponse:
    """Handle Cadence application exceptions."""
    error_id = utcnow().strftime("%Y%m%d_%H%M%S_%f")

    logger.warning(
        "cadence_exception",
        error_id=error_id,
        error_type=type(exc).__name__,
        message=exc.message,
        path=request.url.path,
        method=request.method,
        details=exc.details,
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.message,
                "type": type(exc).__name__,
                "error_id": error_id,
                "details": exc.details,
                "timestamp": utcnow().isoformat(),
            }
        },
    )


async def _global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler for unhandled exceptions."""
    error_id = utcnow().strftime("%Y%m%d_%H%M%S_%f")

    logger.error(
        "unhandled_exception",
        error_id=error_id,
        error_type=type(exc).__name__,
        error_message=str(exc),
        path=request.url.path,
        method=request.method,
        exc_info=exc,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "message": "Internal server error",
                "type": "InternalServerError",
                "error_id": error_id,
                "timestamp": utcnow().isoformat(),
            }
        },
    )


async def _validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle request validation errors with structured detail."""
    logger.warning(
        "validation_error",
        path=request.url.path,
        method=request.method,
        errors=exc.errors(),
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": {
                "message": "Validation error",
                "type": "ValidationError",
                "details": [
                    {"loc": list(err.get("loc", [])), "msg": err.get("msg"), "type": err.get("type")}
                    for err in exc.errors()
                ],
                "timestamp": utcnow().isoformat(),
            }
        },
    )


async def _http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle HTTP exceptions with consistent format."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": {
                "message": exc.detail,
                "type": "HTTPException",
                "status_code": exc.status_code,
                "timestamp": utcnow().isoformat(),
            }
        },
    )


def register_exception_handlers(app: FastAPI):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(CadenceException, _cadence_exception_handler)
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, _http_exception_handler)
    app.add_exception_handler(Exception, _global_exception_handler)
    logger.info("exception_handlers_registered")
