"""Centralized error handling with consistent response formatting.

Every error leaves the API as ``{"error": {"category", "code", "detail"}}``,
optionally with ``suggestions`` and ``metadata``. A closed gate is not an
error and never reaches these handlers.
"""

import logging
from typing import Any
from uuid import UUID

from asyncpg.exceptions import (
    CheckViolationError,
    ForeignKeyViolationError,
    NotNullViolationError,
    UniqueViolationError,
)
from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import IntegrityError, OperationalError

from quest_player.quest.exceptions import BlockResetError, ProgressNotLoadedError, ProgressPersistenceError


logger = logging.getLogger(__name__)


# === Error Categories ===


class ErrorCategory:
    """Error category constants."""

    VALIDATION = "VALIDATION_ERROR"
    AUTHENTICATION = "AUTHENTICATION_ERROR"
    DATABASE = "DATABASE_ERROR"
    RESOURCE_NOT_FOUND = "RESOURCE_NOT_FOUND"
    PERSISTENCE = "PERSISTENCE_ERROR"
    INTERNAL = "INTERNAL_ERROR"


class ErrorCode:
    """Specific error codes for better client handling."""

    # Validation errors
    INVALID_INPUT = "INVALID_INPUT"

    # Authentication errors
    MISSING_LEARNER = "MISSING_LEARNER"

    # Database errors
    DB_CONNECTION_FAILED = "DB_CONNECTION_FAILED"
    DB_CONSTRAINT_VIOLATION = "DB_CONSTRAINT_VIOLATION"
    DB_UNIQUE_VIOLATION = "DB_UNIQUE_VIOLATION"
    DB_FOREIGN_KEY_VIOLATION = "DB_FOREIGN_KEY_VIOLATION"

    # Resource errors
    NOT_FOUND = "NOT_FOUND"

    # Progress store errors
    SAVE_FAILED = "PROGRESS_SAVE_FAILED"
    RESET_FAILED = "BLOCK_RESET_FAILED"
    NOT_LOADED = "PROGRESS_NOT_LOADED"

    # Internal errors
    INTERNAL = "INTERNAL_ERROR"


# === Error Response Formatting ===


def format_error_response(
    category: str,
    code: str,
    detail: str,
    status_code: int,
    suggestions: list[str] | None = None,
    metadata: dict[str, Any] | None = None,
) -> JSONResponse:
    """Format a consistent error response."""
    content = {
        "error": {
            "category": category,
            "code": code,
            "detail": detail,
        }
    }

    if suggestions:
        content["error"]["suggestions"] = suggestions

    if metadata:
        content["error"]["metadata"] = metadata

    return JSONResponse(status_code=status_code, content=content)


async def handle_authentication_errors(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle a missing or malformed learner id (401)."""
    logger.warning(
        f"Authentication error on {request.method} {request.url.path}: {exc.detail}",
        extra={"client_host": request.client.host if request.client else "unknown"},
    )

    return format_error_response(
        category=ErrorCategory.AUTHENTICATION,
        code=ErrorCode.MISSING_LEARNER,
        detail=exc.detail,
        status_code=exc.status_code,
    )


async def handle_validation_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle validation errors from Pydantic and custom validators."""
    logger.info(f"Validation error on {request.method} {request.url.path}", extra={"error": str(exc)})

    if isinstance(exc, PydanticValidationError):
        errors = []
        for error in exc.errors():
            field = " -> ".join(str(loc) for loc in error["loc"])
            errors.append({"field": field, "message": error["msg"], "type": error["type"]})

        return format_error_response(
            category=ErrorCategory.VALIDATION,
            code=ErrorCode.INVALID_INPUT,
            detail="Invalid input data",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            metadata={"errors": errors},
        )
    # Custom validation error
    return format_error_response(
        category=ErrorCategory.VALIDATION,
        code=ErrorCode.INVALID_INPUT,
        detail=str(exc),
        status_code=status.HTTP_400_BAD_REQUEST,
    )


async def handle_progress_errors(request: Request, exc: ProgressPersistenceError) -> JSONResponse:
    """Handle unconfirmed progress writes and resets (503).

    The transition was not committed, so the client may simply retry.
    """
    logger.error(f"Progress store error on {request.method} {request.url.path}: {exc}")

    code = ErrorCode.RESET_FAILED if isinstance(exc, BlockResetError) else ErrorCode.SAVE_FAILED
    return format_error_response(
        category=ErrorCategory.PERSISTENCE,
        code=code,
        detail=str(exc),
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        suggestions=["Your progress was not changed", "Please try again"],
    )


async def handle_not_loaded_errors(request: Request, exc: ProgressNotLoadedError) -> JSONResponse:
    logger.error(f"Transition before load on {request.method} {request.url.path}")

    return format_error_response(
        category=ErrorCategory.INTERNAL,
        code=ErrorCode.NOT_LOADED,
        detail=str(exc),
        status_code=status.HTTP_409_CONFLICT,
    )


async def handle_database_errors(request: Request, exc: Exception) -> JSONResponse:
    """Handle database-related errors."""
    logger.exception(
        f"Database error on {request.method} {request.url.path}: {exc}",
        extra={"error_type": type(exc).__name__},
        exc_info=(type(exc), exc, exc.__traceback__),
    )

    # asyncpg errors arrive wrapped; look at the driver error underneath
    orig = getattr(exc, "orig", None)
    cause = getattr(orig, "__cause__", None) or orig

    if isinstance(cause, UniqueViolationError) or (isinstance(exc, IntegrityError) and "unique" in str(exc).lower()):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_UNIQUE_VIOLATION,
            detail="This resource already exists",
            status_code=status.HTTP_409_CONFLICT,
            suggestions=["Try using a different identifier"],
        )

    if isinstance(cause, ForeignKeyViolationError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_FOREIGN_KEY_VIOLATION,
            detail="Referenced resource does not exist",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(cause, (NotNullViolationError, CheckViolationError)):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONSTRAINT_VIOLATION,
            detail="Required data is missing or invalid",
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if isinstance(exc, OperationalError):
        return format_error_response(
            category=ErrorCategory.DATABASE,
            code=ErrorCode.DB_CONNECTION_FAILED,
            detail="Database connection error",
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            suggestions=["Please try again later"],
        )

    # Generic database error
    return format_error_response(
        category=ErrorCategory.DATABASE,
        code=ErrorCode.INTERNAL,
        detail="A database error occurred",
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


# === Utility Functions ===


def log_error_context(request: Request, exc: Exception, error_id: UUID | None = None) -> None:
    """Log comprehensive error context for debugging."""
    context = {
        "error_id": str(error_id) if error_id else None,
        "method": request.method,
        "path": request.url.path,
        "query_params": dict(request.query_params),
        "client_host": request.client.host if request.client else "unknown",
        "error_type": type(exc).__name__,
        "error_message": str(exc),
    }

    # Request headers, minus credentials
    safe_headers = {
        k: v for k, v in request.headers.items() if k.lower() not in ["authorization", "cookie", "x-api-key"]
    }
    context["headers"] = safe_headers

    logger.error("Request failed", extra=context, exc_info=exc)
