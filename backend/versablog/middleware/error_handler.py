"""Error Handling Middleware for VersaBlog.

This module provides custom exception classes and exception handlers
for standardized error responses across the API.
"""

import enum
import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional, Dict, List, Sequence

from fastapi import Request, status
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError


logger = logging.getLogger(__name__)


class ErrorResponse(BaseModel):
    """Standardized error response schema.

    Attributes:
        error: Error type identifier
        message: Human-readable error message
        details: Additional error details (optional)
        path: Request path that caused the error
        timestamp: ISO 8601 timestamp of the error
        request_id: Unique request identifier (optional)
    """
    error: str
    message: str
    details: Optional[Dict[str, Any]] = None
    path: Optional[str] = None
    timestamp: Optional[str] = None
    request_id: Optional[str] = None

    def __init__(self, **kwargs):
        if "timestamp" not in kwargs or kwargs["timestamp"] is None:
            kwargs["timestamp"] = datetime.now(timezone.utc).isoformat()
        super().__init__(**kwargs)


class HierarchyViolation(str, enum.Enum):
    """Reasons a proposed parent assignment is rejected."""

    SELF_REFERENCE = "self_reference"
    NOT_FOUND = "not_found"
    CYCLE = "cycle"
    DEPTH_EXCEEDED = "depth_exceeded"


class DependencyReason(str, enum.Enum):
    """References that block a category deletion."""

    HAS_POSTS = "has_posts"
    HAS_SUBCATEGORIES = "has_subcategories"


class VersaBlogException(Exception):
    """Base exception for all VersaBlog API errors.

    Attributes:
        status_code: HTTP status code
        error: Error type identifier
        message: Human-readable error message
        details: Additional error details
        headers: Optional response headers
    """

    def __init__(
        self,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error: str = "internal_error",
        message: str = "An internal error occurred",
        details: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.status_code = status_code
        self.error = error
        self.message = message
        self.details = details
        self.headers = headers
        super().__init__(message)


class NotFoundException(VersaBlogException):
    """Exception for resource not found errors (404)."""

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        resource_id: Optional[Any] = None,
    ):
        details = {}
        if resource_type:
            details["resource_type"] = resource_type
        if resource_id is not None:
            details["resource_id"] = str(resource_id)

        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            error="not_found",
            message=message,
            details=details if details else None,
        )


class BadRequestException(VersaBlogException):
    """Exception for invalid request errors (400)."""

    def __init__(
        self,
        message: str = "Bad request",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            error="bad_request",
            message=message,
            details=details,
        )


class ConflictException(VersaBlogException):
    """Exception for resource conflict errors (409)."""

    def __init__(
        self,
        message: str = "Resource already exists",
        conflicting_field: Optional[str] = None,
        value: Optional[Any] = None,
    ):
        details = {}
        if conflicting_field:
            details["conflicting_field"] = conflicting_field
        if value is not None:
            details["value"] = str(value)
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="conflict",
            message=message,
            details=details if details else None,
        )


class ValidationException(VersaBlogException):
    """Exception for semantic validation errors (422)."""

    def __init__(
        self,
        message: str = "Validation error",
        field: Optional[str] = None,
        value: Optional[Any] = None,
        errors: Optional[List[Dict[str, Any]]] = None,
        error: str = "validation_error",
        details: Optional[Dict[str, Any]] = None,
    ):
        details = dict(details or {})
        if field:
            details["field"] = field
        if value is not None:
            details["value"] = value
        if errors:
            details["validation_errors"] = errors
        super().__init__(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error=error,
            message=message,
            details=details if details else None,
        )


class DerivationError(ValidationException):
    """Raised when free text normalizes to an empty identifier."""

    def __init__(self, text: str, field: str = "slug"):
        super().__init__(
            message=f"Cannot derive a {field} from {text!r}",
            field=field,
            value=text,
        )


class HierarchyException(ValidationException):
    """Exception for rejected category parent assignments (422)."""

    _MESSAGES = {
        HierarchyViolation.SELF_REFERENCE: "A category cannot be its own parent",
        HierarchyViolation.NOT_FOUND: "Parent category not found",
        HierarchyViolation.CYCLE: "Parent assignment would create a cycle",
        HierarchyViolation.DEPTH_EXCEEDED: "Category tree exceeds the maximum depth",
    }

    def __init__(
        self,
        reason: HierarchyViolation,
        category_id: Optional[Any] = None,
        parent_id: Optional[Any] = None,
    ):
        self.reason = reason
        super().__init__(
            message=self._MESSAGES[reason],
            error="hierarchy_error",
            details={
                "reason": reason.value,
                "category_id": category_id,
                "parent_id": parent_id,
            },
        )


class DependencyException(VersaBlogException):
    """Exception for deletions blocked by existing references (409)."""

    def __init__(
        self,
        reason: DependencyReason,
        count: int,
        resource_type: str = "category",
        resource_id: Optional[Any] = None,
    ):
        self.reason = reason
        self.count = count
        if reason is DependencyReason.HAS_POSTS:
            message = f"Cannot delete {resource_type}: {count} posts are using it"
        else:
            message = f"Cannot delete {resource_type}: it has {count} subcategories"
        details = {
            "reason": reason.value,
            "count": count,
            "resource_type": resource_type,
        }
        if resource_id is not None:
            details["resource_id"] = str(resource_id)
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            error="dependency_error",
            message=message,
            details=details,
        )


class BatchFetchException(VersaBlogException):
    """Exception for a failed batched storage read (503)."""

    def __init__(
        self,
        loader: str,
        keys: Sequence[Any],
        cause: Optional[BaseException] = None,
    ):
        self.cause = cause
        message = f"Batch fetch failed for loader '{loader}'"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error="batch_fetch_error",
            message=message,
            details={"loader": loader, "keys": [str(key) for key in keys]},
        )


# Unique index name -> public field name
_UNIQUE_FIELDS = {
    "uq_categories_slug": "slug",
    "uq_categories_name_active": "name",
    "uq_tags_name": "name",
    "uq_tags_slug": "slug",
    "uq_posts_slug_active": "slug",
}

_COLUMN_PATTERN = re.compile(r"UNIQUE constraint failed: (\w+)\.(\w+)")


def unique_violation_field(exc: IntegrityError) -> Optional[str]:
    """Name the field behind a unique-index violation, if it is one.

    Understands PostgreSQL constraint names and SQLite's
    ``UNIQUE constraint failed: table.column`` messages.
    """
    text = str(exc.orig)
    for index_name, field_name in _UNIQUE_FIELDS.items():
        if index_name in text:
            return field_name
    match = _COLUMN_PATTERN.search(text)
    if match:
        return match.group(2)
    return None


def integrity_error_to_conflict(
    exc: IntegrityError,
    resource_type: str,
) -> VersaBlogException:
    """Translate a storage integrity error into an API exception."""
    field = unique_violation_field(exc)
    if field is None:
        logger.error(f"Integrity error on {resource_type}: {exc.orig}")
        return BadRequestException(
            message=f"Invalid {resource_type} data",
            details={"resource_type": resource_type},
        )
    return ConflictException(
        message=f"{resource_type.capitalize()} {field} already exists",
        conflicting_field=field,
    )


async def http_exception_handler(
    request: Request,
    exc: VersaBlogException,
) -> JSONResponse:
    """Handle VersaBlog custom exceptions.

    Args:
        request: The incoming request.
        exc: The VersaBlogException that was raised.

    Returns:
        Standardized JSON error response.
    """
    request_id = request.headers.get("X-Request-ID", None)

    error_response = ErrorResponse(
        error=exc.error,
        message=exc.message,
        details=exc.details,
        path=str(request.url.path),
        request_id=request_id,
    )

    logger.warning(
        f"HTTP {exc.status_code}: {exc.error} - {exc.message}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "request_id": request_id,
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_response.model_dump(exclude_none=True),
        headers=exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Handle Pydantic validation errors.

    Args:
        request: The incoming request.
        exc: The validation error.

    Returns:
        Standardized JSON error response with validation details.
    """
    request_id = request.headers.get("X-Request-ID", None)

    # Format validation errors for clearer output
    formatted_errors = []
    for error in exc.errors():
        formatted_errors.append({
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        })

    error_response = ErrorResponse(
        error="validation_error",
        message="Request validation failed",
        details={"validation_errors": formatted_errors},
        path=str(request.url.path),
        request_id=request_id,
    )

    logger.warning(
        f"Validation error on {request.url.path}: {len(formatted_errors)} errors",
        extra={"errors": formatted_errors, "request_id": request_id},
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=error_response.model_dump(exclude_none=True),
    )


async def general_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Handle unexpected exceptions.

    This is a catch-all handler for any exceptions not handled by
    other exception handlers. It logs the full stack trace and
    returns a generic error message.

    Args:
        request: The incoming request.
        exc: The unexpected exception.

    Returns:
        Generic 500 error response.
    """
    request_id = request.headers.get("X-Request-ID", None)

    logger.error(
        f"Unhandled exception on {request.url.path}: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
            "request_id": request_id,
            "exception_type": type(exc).__name__,
        },
    )

    # Don't expose internal error details in production
    error_response = ErrorResponse(
        error="internal_error",
        message="An internal server error occurred",
        path=str(request.url.path),
        request_id=request_id,
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_response.model_dump(exclude_none=True),
    )
