"""
Portfolio Site Backend — Custom Exception Hierarchy
====================================================

What:  Application-specific exceptions for the HTTP layer.
How:   Each exception carries a user-safe message and an optional context dict.
       Global exception handlers (registered in main.py) translate them into
       structured JSON error responses with the right status code.
Who:   Raised by route handlers and dependencies; caught by global handlers.

Exception Hierarchy:
    PortfolioSiteError (base)
    ├── ValidationError          → 400 Bad Request
    │   └── InvalidLinkError     → 400 HTML page (email link token)
    ├── AuthenticationError      → 401 Unauthorized
    ├── RateLimitExceededError   → 429 Too Many Requests
    ├── RemoteServiceError       → 500 Internal Server Error (Supabase failed)
    └── ConfigurationError       → 503 Service Unavailable

Services never raise these for expected outcomes (bad email, unknown token);
those come back as tagged results (see services/results.py). Routes decide
whether an outcome becomes an exception or a rendered page.
"""

from typing import Any, Dict, Optional


class PortfolioSiteError(Exception):
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


class ValidationError(PortfolioSiteError):
    """
    Raised when client input fails validation.

    When:    Malformed email, missing JSON field, invalid request body.
    HTTP:    400 Bad Request

    Example response:
        {
            "error": "INVALID_EMAIL",
            "message": "Please provide a valid email address",
            "details": {"field": "email"}
        }
    """

    def __init__(
        self,
        message: str = "Validation failed",
        code: str = "VALIDATION_ERROR",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.code = code
        self.field = field


class InvalidLinkError(ValidationError):
    """
    Raised when a confirm/unsubscribe link carries no usable token.

    HTTP:    400, rendered as an HTML page titled `title` (the visitor opened
             the link from an email client, not from the site).
    """

    def __init__(self, message: str, title: str = "Invalid Token"):
        super().__init__(message=message, code="INVALID_TOKEN", field="token")
        self.title = title


class AuthenticationError(PortfolioSiteError):
    """Raised when a request needs an authenticated user and has none. HTTP 401."""

    def __init__(
        self,
        message: str = "Not authenticated",
        code: str = "UNAUTHORIZED",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.code = code


class RemoteServiceError(PortfolioSiteError):
    """
    Raised when Supabase (database or auth) fails.

    HTTP:    500 Internal Server Error

    Security Note:
        The message returned to the client is always generic. The original
        error (PostgREST code, auth error text) goes into `context`, which is
        logged server-side only.
    """

    def __init__(
        self,
        message: str = "Unable to process the request at this time",
        code: str = "REMOTE_SERVICE_ERROR",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
        self.code = code


class RateLimitExceededError(PortfolioSiteError):
    """
    Raised when a client exceeds the analytics rate limit.

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


class ConfigurationError(PortfolioSiteError):
    """
    Raised when a required collaborator was never configured.

    When:    A route needs the Supabase client but SUPABASE_URL/KEY are missing.
    HTTP:    503 Service Unavailable
    """

    def __init__(
        self,
        message: str = "Service is not configured",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)
