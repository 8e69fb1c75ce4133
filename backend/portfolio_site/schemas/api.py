"""
Portfolio Site Backend — Pydantic Request/Response Schemas
===========================================================

What:  Pydantic models defining the API contract between the site and backend.
How:   FastAPI validates request bodies against these models, serializes
       responses through them, and generates the OpenAPI docs from them.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ══════════════════════════════════════════════════════════════════════════
# Subscription
# ══════════════════════════════════════════════════════════════════════════


class SubscribeRequest(BaseModel):
    """
    Body of POST /api/subscribe and POST /api/subscribe/check.

    Plain `str` (not EmailStr): format checking is the subscription service's
    job so that both endpoints report the same messages.
    """

    email: str = Field(description="Email address to subscribe")


class SubscriptionResult(BaseModel):
    """
    Uniform outcome of every subscription operation.

    `message` is always safe to show to the visitor; `error` is a short
    machine-friendly reason ("Already subscribed", "Invalid email format").
    """

    success: bool
    message: str
    error: Optional[str] = None


class SubscriptionStatusResponse(BaseModel):
    """Returned by POST /api/subscribe/check."""

    email: str
    subscribed: bool = Field(description="An active row exists for this address")
    confirmed: bool = Field(description="The active row has been confirmed")


class SubscriberCountResponse(BaseModel):
    count: int = Field(description="Confirmed, active subscribers (0 when unknown)")


# ══════════════════════════════════════════════════════════════════════════
# Auth
# ══════════════════════════════════════════════════════════════════════════


class AuthResult(BaseModel):
    """
    Envelope returned by every auth wrapper function.

    `user` and `session` are the provider's objects serialized to plain
    JSON-compatible dicts; `error` carries the provider message or a
    fallback like "Sign-in failed".
    """

    success: bool
    user: Optional[Dict[str, Any]] = None
    session: Optional[Dict[str, Any]] = None
    error: Optional[str] = None
    # Extra non-user/session payload (the OAuth redirect URL for Google sign-in)
    url: Optional[str] = None


class SignInRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    redirect_to: str = Field(default="/", alias="redirectTo")


class SignInResponse(BaseModel):
    url: str
    provider: str = "google"


class SessionResponse(BaseModel):
    session: Optional[Dict[str, Any]] = None
    user: Optional[Dict[str, Any]] = None


class SignOutResponse(BaseModel):
    success: bool
    message: str


# ══════════════════════════════════════════════════════════════════════════
# Analytics
# ══════════════════════════════════════════════════════════════════════════


class AnalyticsAck(BaseModel):
    """Acknowledgement for accepted analytics events and error reports."""

    success: bool = True
    event_id: Optional[str] = None
    error_id: Optional[str] = None


class ConsentEnvelope(BaseModel):
    """`{success, error?, code?}` envelope used for blocked analytics requests."""

    success: bool
    error: Optional[str] = None
    code: Optional[str] = None


# ══════════════════════════════════════════════════════════════════════════
# Errors / Health
# ══════════════════════════════════════════════════════════════════════════


class ErrorResponse(BaseModel):
    """
    Standardized error body for all API errors raised as exceptions.

    Example:
        {
            "error": "INVALID_EMAIL",
            "message": "Please provide a valid email address",
            "details": {"field": "email"},
            "request_id": "1f0c2a9b"
        }
    """

    error: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error description")
    details: Optional[dict] = Field(default=None, description="Additional error context")
    request_id: Optional[str] = Field(default=None, description="Request correlation ID")


class HealthResponse(BaseModel):
    """Process status returned by GET /api/health."""

    status: str = Field(description="healthy or unhealthy")
    timestamp: str = Field(description="UTC ISO 8601 time of the check")
    version: str
    environment: str
    uptime: float = Field(description="Seconds since the process started")
    memory: Dict[str, float] = Field(description="Process memory in MB (rss, vms)")
    runtime: Dict[str, str] = Field(description="Python version, platform, arch")


# ══════════════════════════════════════════════════════════════════════════
# Analytics payloads
# ══════════════════════════════════════════════════════════════════════════


class AnalyticsEvent(BaseModel):
    """Body of POST /api/analytics/events."""

    model_config = ConfigDict(extra="allow")

    event_type: str = Field(min_length=1, max_length=100, examples=["page_view"])
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: Optional[float] = Field(default=None, description="Epoch milliseconds")


class PerformanceReport(BaseModel):
    """Body of POST /api/analytics/performance (Core Web Vitals and friends)."""

    model_config = ConfigDict(extra="allow")

    page: Optional[str] = None
    metrics: Dict[str, float] = Field(
        default_factory=dict, examples=[{"LCP": 1830.5, "CLS": 0.02}]
    )


class ErrorReport(BaseModel):
    """Body of POST /api/analytics/errors."""

    model_config = ConfigDict(extra="allow")

    message: str = Field(min_length=1, max_length=2000)
    type: str = Field(default="javascript", max_length=50)
    severity: Literal["low", "medium", "high", "critical"] = "medium"
    stack: Optional[str] = Field(default=None, max_length=10_000)
    filename: Optional[str] = None
    page: Optional[str] = None
