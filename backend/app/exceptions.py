"""
Caisse Backend — Custom Exception Hierarchy
=============================================

What:  Application-specific exceptions for each error scenario.
How:   Each exception carries a message and an optional context dict.
       Global exception handlers (registered in main.py) catch these and
       return `{ok: false, error: ...}` envelopes with the right HTTP status.
Who:   Raised by services, the persistence layer and auth dependencies.

Exception Hierarchy:
    CaisseError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── AuthorizationError       → 403 Forbidden
    └── StorageError             → 500 Internal Server Error
        └── ConflictError        → 409 Conflict (unique constraint violated)
"""

from typing import Any, Dict, Optional


class CaisseError(Exception):
    """
    Base exception for all application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged but NOT returned to client)
    """

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(CaisseError):
    """
    Raised when client input fails validation.

    When:    Missing email/password, missing sale id, non-numeric amount.
    HTTP:    400 Bad Request
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


class AuthenticationError(CaisseError):
    """
    Raised when the caller cannot be identified.

    When:    Missing/malformed bearer token, expired or tampered token, bad
             login credentials.
    HTTP:    401 Unauthorized

    The message never says which part of a login failed: an unknown email
    and a wrong password produce the same error.
    """

    def __init__(
        self,
        message: str = "Unauthorized",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(CaisseError):
    """
    Raised when an identified caller lacks the required role.

    HTTP:    403 Forbidden
    """

    def __init__(
        self,
        message: str = "Forbidden",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class StorageError(CaisseError):
    """
    Raised when a database operation fails.

    What:    Malformed SQL, constraint violation, locked or unreadable file.
    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. The driver
        error is kept in `context` and logged server-side only.
    """

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class ConflictError(StorageError):
    """
    Raised when a write violates a UNIQUE constraint.

    What:    A StorageError that callers can single out, e.g. a duplicate email.
    HTTP:    409 Conflict
    """

    def __init__(
        self,
        message: str = "Resource already exists",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
