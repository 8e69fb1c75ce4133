"""
Portfolio Site Backend — Subscription Service
==============================================

What:  Newsletter subscription workflow: subscribe → confirm → unsubscribe.
How:   Validates input locally, then makes exactly one or two requests through
       the SupabaseGateway. Every operation returns a SubscriptionResult
       {success, message, error?}; nothing is retried.
Who:   Called by the /api/subscribe routes via FastAPI dependency injection.

Subscriber lifecycle (owned by the remote database):
    ┌─────────┐  confirm(token)   ┌───────────┐  unsubscribe(token)  ┌──────────────┐
    │ pending │──────────────────▶│ confirmed │─────────────────────▶│ unsubscribed │
    └─────────┘                   └───────────┘                      └──────────────┘
    Tokens are single-use; the database procedures clear them once consumed.

Failure messages:
    confirm/unsubscribe collapse every remote failure (unknown token, expired
    token, outage) into one user-facing message. The underlying cause is
    logged for operators only.
"""

import logging
import re
import secrets
import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from portfolio_site.schemas.api import SubscriptionResult, SubscriptionStatusResponse
from portfolio_site.services.results import Err, ErrorKind, Ok, Result
from portfolio_site.services.supabase_gateway import SupabaseGateway

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")

INVALID_EMAIL_MESSAGE = "Please enter a valid email address."
ALREADY_SUBSCRIBED_MESSAGE = "This email is already subscribed to our updates."
SUBSCRIBED_MESSAGE = (
    "Thank you for subscribing! Please check your email to confirm your subscription."
)
GENERIC_FAILURE_MESSAGE = "Something went wrong. Please try again later."
CONFIRMED_MESSAGE = (
    "Your subscription has been confirmed! Thank you for joining our community."
)
CONFIRM_FAILED_MESSAGE = (
    "Unable to confirm subscription. The link may be invalid or expired."
)
UNSUBSCRIBED_MESSAGE = "You have been successfully unsubscribed from our email list."
UNSUBSCRIBE_FAILED_MESSAGE = "Unable to unsubscribe. Please try again later."


def is_valid_email(email: str) -> bool:
    return isinstance(email, str) and EMAIL_PATTERN.fullmatch(email) is not None


def normalize_email(email: str) -> str:
    return email.strip().lower() if isinstance(email, str) else ""


def generate_token(nbytes: int = 32) -> str:
    """URL-safe random token for confirmation/unsubscribe links."""
    return secrets.token_urlsafe(nbytes)


class SubscriptionService:
    """
    Business logic for newsletter subscriptions.

    Stateless apart from the gateway it is constructed with; a new instance
    per request is cheap.
    """

    def __init__(self, gateway: SupabaseGateway):
        self.gateway = gateway

    @staticmethod
    def _new_subscriber_row(email: str) -> Dict[str, Any]:
        return {
            "id": str(uuid.uuid4()),
            "email": email,
            "confirmed": False,
            "active": True,
            "confirmation_token": generate_token(),
            "unsubscribe_token": generate_token(),
            "created_at": datetime.now(timezone.utc).isoformat(),
            "email_sent": False,
        }

    async def subscribe(self, email: str) -> SubscriptionResult:
        """
        Register a pending subscription for `email`.

        Only a confirmed AND active row blocks the request. A pending
        (unconfirmed) row falls through to the insert, where the database's
        unique constraint on email rejects it; that surfaces as the generic
        failure below.
        """
        email = normalize_email(email)
        if not is_valid_email(email):
            return SubscriptionResult(
                success=False,
                message=INVALID_EMAIL_MESSAGE,
                error="Invalid email format",
            )

        existing = await self.gateway.find_subscriber(email)
        if not existing.ok:
            return self._remote_failure("subscribe.lookup", existing)

        row = existing.value
        if row and row.get("confirmed") and row.get("active"):
            return SubscriptionResult(
                success=False,
                message=ALREADY_SUBSCRIBED_MESSAGE,
                error="Already subscribed",
            )

        inserted = await self.gateway.insert_subscriber(self._new_subscriber_row(email))
        if not inserted.ok:
            return self._remote_failure("subscribe.insert", inserted)

        logger.info("Pending subscription created: id=%s", inserted.value.get("id"))
        return SubscriptionResult(success=True, message=SUBSCRIBED_MESSAGE)

    async def confirm(self, token: str) -> SubscriptionResult:
        result = await self.gateway.call_procedure(
            "confirm_subscription", {"subscription_token": token}
        )
        if not result.ok:
            logger.warning(
                "Confirmation failed: kind=%s context=%s", result.kind.value, result.context
            )
            return SubscriptionResult(
                success=False,
                message=CONFIRM_FAILED_MESSAGE,
                error="Confirmation failed",
            )
        return SubscriptionResult(success=True, message=CONFIRMED_MESSAGE)

    async def unsubscribe(self, token: str) -> SubscriptionResult:
        result = await self.gateway.call_procedure(
            "unsubscribe_email", {"subscription_token": token}
        )
        if not result.ok:
            logger.warning(
                "Unsubscribe failed: kind=%s context=%s", result.kind.value, result.context
            )
            return SubscriptionResult(
                success=False,
                message=UNSUBSCRIBE_FAILED_MESSAGE,
                error="Unsubscribe failed",
            )
        return SubscriptionResult(success=True, message=UNSUBSCRIBED_MESSAGE)

    async def count_active(self) -> int:
        """Confirmed, active subscribers. Display-only, so any failure reads as 0."""
        result = await self.gateway.count_active_subscribers()
        return result.value if result.ok else 0

    async def check_status(self, email: str) -> Result[SubscriptionStatusResponse]:
        """Read-only lookup used by the signup form before it submits."""
        email = normalize_email(email)
        if not is_valid_email(email):
            return Err(kind=ErrorKind.VALIDATION, message="Please provide a valid email address")

        existing = await self.gateway.find_subscriber(email)
        if not existing.ok:
            return existing

        row = existing.value or {}
        active = bool(row.get("active"))
        return Ok(
            SubscriptionStatusResponse(
                email=email,
                subscribed=active,
                confirmed=active and bool(row.get("confirmed")),
            )
        )

    @staticmethod
    def _remote_failure(operation: str, result: Err) -> SubscriptionResult:
        # CONFLICT means the email already has a pending row
        level = logging.INFO if result.kind is ErrorKind.CONFLICT else logging.ERROR
        logger.log(
            level,
            "Subscription %s failed: kind=%s message=%s context=%s",
            operation,
            result.kind.value,
            result.message,
            result.context,
        )
        return SubscriptionResult(
            success=False,
            message=GENERIC_FAILURE_MESSAGE,
            error="Subscription failed",
        )
