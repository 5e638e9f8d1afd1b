"""
MemeStudio Backend - Custom Exception Hierarchy
================================================

What:  Application-specific exceptions for each failure category.
How:   Each exception carries a user-safe message, a machine-readable code
       and an optional context dict. Global handlers registered in main.py
       turn them into `{success: false, message, code, ...}` responses.
Who:   Raised by services and dependencies; caught by global handlers.

Exception Hierarchy:
    MemeStudioError (base)
    ├── ValidationError          → 400 Bad Request
    ├── AuthenticationError      → 401 Unauthorized
    ├── AuthorizationError       → 403 Forbidden
    ├── NotFoundError            → 404 Not Found
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── SeedingError             → 500 Internal Server Error
    ├── AssetHostError           → 500 Internal Server Error
    └── DatabaseError            → 500 Internal Server Error
"""

from typing import Any, Dict, Optional


class MemeStudioError(Exception):
    """
    Base exception for all MemeStudio application errors.

    Attributes:
        message:  User-facing error description (safe to return in API response)
        context:  Additional debug info (logged; returned only in development)
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(MemeStudioError):
    """
    Raised when client input fails a business rule.

    When:    Malformed identifiers, missing fields, unsupported upload types,
             more than ten tags.
    Note:    Paging parameters are never rejected; they are clamped.
    """

    status_code = 400
    code = "validation_error"

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


class AuthenticationError(MemeStudioError):
    """Missing, malformed or expired bearer token."""

    status_code = 401
    code = "authentication_required"

    def __init__(
        self,
        message: str = "Authentication required",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AuthorizationError(MemeStudioError):
    """The acting user does not own the target entity."""

    status_code = 403
    code = "forbidden"

    def __init__(
        self,
        message: str = "You are not allowed to modify this resource",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class NotFoundError(MemeStudioError):
    """
    Raised when a requested resource does not exist.

    Templates that exist but are not `active` are reported the same way
    for public reads.
    """

    status_code = 404
    code = "not_found"

    def __init__(
        self,
        resource: str = "resource",
        resource_id: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = f"The requested {resource} was not found"
        if resource_id:
            message = f"{resource.capitalize()} with ID '{resource_id}' was not found"
        ctx = context or {}
        ctx["resource"] = resource
        if resource_id:
            ctx["resource_id"] = resource_id
        super().__init__(message=message, context=ctx)


class RateLimitExceededError(MemeStudioError):
    """Client exceeded the per-IP request rate limit."""

    status_code = 429
    code = "rate_limit_exceeded"

    def __init__(
        self,
        retry_after: int = 60,
        context: Optional[Dict[str, Any]] = None,
    ):
        message = (
            f"Too many requests, please try again after {retry_after} seconds."
        )
        ctx = context or {}
        ctx["retry_after"] = retry_after
        super().__init__(message=message, context=ctx)
        self.retry_after = retry_after


class SeedingError(MemeStudioError):
    """
    Raised when the template catalog could not be seeded.

    What:    The external template source failed, timed out or returned
             an unusable payload while the catalog was empty.
    Recovery:
        The transaction rolls back (including the seed marker) so the next
        listing request retries the seed.
    """

    status_code = 500
    code = "fetch_failed"

    def __init__(
        self,
        message: str = "Failed to fetch templates",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class AssetHostError(MemeStudioError):
    """Upload to or deletion from the asset host failed."""

    status_code = 500
    code = "asset_host_error"

    def __init__(
        self,
        message: str = "Failed to process image upload",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class DatabaseError(MemeStudioError):
    """
    Raised when database operations fail unexpectedly.

    Security Note:
        The message returned to the client is always generic. Driver errors
        are logged server-side and only echoed back in development.
    """

    status_code = 500
    code = "server_error"

    def __init__(
        self,
        message: str = "A database error occurred. Please try again later.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
