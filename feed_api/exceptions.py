"""
Feed API — Custom Exception Hierarchy
=======================================

What:  Application-specific exceptions, each carrying its HTTP status code.
Why:   Services raise typed errors; a single set of exception handlers in
       main.py turns them into JSON error responses.
How:   Each exception carries a message, a status code and an optional
       context dict (logged, and returned as `details` for client errors).

Exception Hierarchy:
    FeedApiError (base)          → status_code attribute, 500 by default
    ├── ValidationError          → 422 Unprocessable Entity
    ├── NotFoundError            → 404 Not Found
    ├── DatabaseError            → 500 unless the store reported a status
    └── FileStorageError         → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class FeedApiError(Exception):
    """
    Base exception for all Feed API errors.

    Attributes:
        message:     User-facing error description (safe to return in API response)
        status_code: HTTP status the error translates to
        context:     Additional debug info
    """

    status_code: int = 500
    error_code: str = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        self.message = message
        self.context = context or {}
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)


class ValidationError(FeedApiError):
    """
    Raised when client input fails validation.

    When:    Title/content rules fail, the image is missing, or the upload
             has an unsupported type or size.
    HTTP:    422 Unprocessable Entity

    Example response:
        {
            "error": "validation_error",
            "message": "Validation failed, entered data is incorrect",
            "details": {"errors": [{"field": "title", "message": "..."}]}
        }
    """

    status_code = 422
    error_code = "validation_error"

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class NotFoundError(FeedApiError):
    """
    Raised when a requested resource does not exist.

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception so the handler can answer 404.
    """

    status_code = 404
    error_code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        if message is None:
            message = f"Could not find the {resource}"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class DatabaseError(FeedApiError):
    """
    Raised when database operations fail unexpectedly.

    The status code defaults to 500; pass `status_code` when the underlying
    driver classified the failure. The client always receives a generic
    message; the original error is only logged.
    """

    error_code = "database_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
        status_code: Optional[int] = None,
    ):
        super().__init__(message=message, context=context, status_code=status_code)


class FileStorageError(FeedApiError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, image already gone on delete.
    HTTP:    500 Internal Server Error
    """

    error_code = "file_storage_error"

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
