"""
Bradspel Backend — Custom Exception Hierarchy
==============================================

What:  Application-specific exceptions for every error class the API reports.
How:   Each exception carries a client-safe message and an optional context
       dict. Global handlers (registered in main.py) turn them into JSON
       error responses with the right HTTP status code.
Who:   Raised by services, dependencies and middleware; caught by handlers.

Exception Hierarchy:
    BradspelError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── AuthError                → 401 Unauthorized / 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── PersistenceError         → 500 Internal Server Error (rolled back)
    └── FileStorageError         → 500 Internal Server Error

None of these are retried by the server. A PersistenceError means the whole
transaction that raised it was rolled back; the client may resubmit.
"""

from typing import Any, Dict, Optional


class BradspelError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned for 5xx errors)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(BradspelError):
    """
    Raised when client input fails validation.

    When:    Missing fields, non-numeric ids, unknown user, empty phone number,
             unsupported upload type.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "validation_error",
            "message": "userId must be a numeric user id",
            "details": {"field": "userId"}
        }
    """

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


class AuthError(BradspelError):
    """
    Raised when a request lacks a valid identity or the identity lacks a role.

    HTTP:    401 for missing/invalid/expired credentials, 403 for a valid
             identity without the required role. The status is carried on the
             instance so one handler covers both.
    """

    def __init__(
        self,
        message: str = "Authentication required",
        status_code: int = 401,
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.status_code = status_code


class NotFoundError(BradspelError):
    """
    Raised when a referenced entity does not exist.

    When:    Unknown game id, order id, or stored file.
    HTTP:    404 Not Found

    SQLAlchemy returns None for missing rows; services convert that None
    into this exception.
    """

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class PersistenceError(BradspelError):
    """
    Raised when a database statement or commit fails.

    When:    Constraint violation, lost connection, deadlock.
    HTTP:    500 Internal Server Error

    The message returned to the client is always generic. The triggering
    transaction has been rolled back in full before this is raised; the
    original exception type is kept in context for the server log.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class FileStorageError(BradspelError):
    """
    Raised when file system operations fail.

    When:    Disk full, permission denied, storage directory not writable.
    HTTP:    500 Internal Server Error
    """

    def __init__(
        self,
        message: str = "File storage operation failed",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class RateLimitExceededError(BradspelError):
    """
    Raised when a client exceeds the per-IP request rate limit.

    HTTP:    429 Too Many Requests, with a Retry-After header.
    """

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Rate limit exceeded. Please wait {retry_after} seconds before making more requests."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after
