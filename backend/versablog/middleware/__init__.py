"""Middleware module for VersaBlog.

This module provides middleware components for:
- Error handling and standardized error responses
- Translation of storage integrity errors into API conflicts
"""

from versablog.middleware.error_handler import (
    VersaBlogException,
    NotFoundException,
    BadRequestException,
    ConflictException,
    ValidationException,
    DerivationError,
    HierarchyException,
    HierarchyViolation,
    DependencyException,
    DependencyReason,
    BatchFetchException,
    integrity_error_to_conflict,
    unique_violation_field,
    http_exception_handler,
    validation_exception_handler,
    general_exception_handler,
)

__all__ = [
    "VersaBlogException",
    "NotFoundException",
    "BadRequestException",
    "ConflictException",
    "ValidationException",
    "DerivationError",
    "HierarchyException",
    "HierarchyViolation",
    "DependencyException",
    "DependencyReason",
    "BatchFetchException",
    "integrity_error_to_conflict",
    "unique_violation_field",
    "http_exception_handler",
    "validation_exception_handler",
    "general_exception_handler",
]
