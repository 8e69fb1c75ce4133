"""
Portfolio Site Backend — Subscription Routes
=============================================

What:  Newsletter endpoints under /api/subscribe.
How:   JSON endpoints delegate to SubscriptionService and map its result to
       a status code. The confirm/unsubscribe endpoints are opened from
       email links, so they answer with standalone HTML pages.
Who:   The signup form (JSON) and the visitor's email client (HTML).

Endpoints:
    POST /api/subscribe              201 | 400 invalid | 409 duplicate | 500
    POST /api/subscribe/check        200 {email, subscribed, confirmed} | 400
    GET  /api/subscribe/count        200 {count}
    GET  /api/subscribe/confirm      HTML 200 | 400 bad token | 404 unknown token | 503
    GET  /api/subscribe/unsubscribe  HTML 200 | 400 bad token | 404 unknown token | 503
"""

import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import HTMLResponse, JSONResponse

from portfolio_site.dependencies import get_subscription_service
from portfolio_site.exceptions import InvalidLinkError, RemoteServiceError, ValidationError
from portfolio_site.pages import HTML_NO_CACHE, error_page, success_page
from portfolio_site.schemas.api import (
    ErrorResponse,
    SubscribeRequest,
    SubscriberCountResponse,
    SubscriptionResult,
    SubscriptionStatusResponse,
)
from portfolio_site.services.results import ErrorKind
from portfolio_site.services.subscription_service import (
    ALREADY_SUBSCRIBED_MESSAGE,
    INVALID_EMAIL_MESSAGE,
    SubscriptionService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/subscribe", tags=["Subscription"])

TOKEN_MIN_LENGTH = 10
TOKEN_MAX_LENGTH = 200
WHITESPACE = re.compile(r"\s")

HTML_SHORT_CACHE = {"Cache-Control": "private, max-age=300"}


def token_problem(token: Optional[str]) -> Optional[str]:
    """
    Describe what is wrong with a link token, or None when it looks usable.

    Shape checks only; whether the token exists is the database's call.
    """
    if token is None:
        return "Confirmation link is missing required token parameter."
    token = token.strip()
    if not token:
        return "Confirmation token cannot be empty."
    if (
        not TOKEN_MIN_LENGTH <= len(token) <= TOKEN_MAX_LENGTH
        or WHITESPACE.search(token)
        or "<" in token
    ):
        return "Confirmation token is invalid or malformed."
    return None


def link_token(token: Optional[str] = Query(default=None)) -> str:
    """
    The `token` query parameter of an email link, stripped.

    Declared ahead of the service dependency, so a bad link is answered
    without touching Supabase.
    """
    problem = token_problem(token)
    if problem:
        raise InvalidLinkError(problem, title="Missing Token" if token is None else "Invalid Token")
    return token.strip()


def _status_for(result: SubscriptionResult) -> int:
    if result.success:
        return 201
    if result.message == INVALID_EMAIL_MESSAGE:
        return 400
    if result.message == ALREADY_SUBSCRIBED_MESSAGE:
        return 409
    return 500


@router.post(
    "",
    response_model=SubscriptionResult,
    status_code=201,
    responses={
        400: {"description": "Malformed email", "model": SubscriptionResult},
        409: {"description": "Already subscribed", "model": SubscriptionResult},
        500: {"description": "Remote failure", "model": SubscriptionResult},
        503: {"description": "Supabase not configured", "model": ErrorResponse},
    },
    summary="Subscribe an email address to updates",
)
async def subscribe(
    body: SubscribeRequest,
    service: SubscriptionService = Depends(get_subscription_service),
):
    result = await service.subscribe(body.email)
    return JSONResponse(status_code=_status_for(result), content=result.model_dump())


@router.post(
    "/check",
    response_model=SubscriptionStatusResponse,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="Check whether an address is already subscribed",
)
async def check_subscription(
    body: SubscribeRequest,
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriptionStatusResponse:
    result = await service.check_status(body.email)
    if result.ok:
        return result.value
    if result.kind == ErrorKind.VALIDATION:
        raise ValidationError(result.message, code="INVALID_EMAIL", field="email")
    raise RemoteServiceError(context=result.context)


@router.get(
    "/count",
    response_model=SubscriberCountResponse,
    summary="Number of confirmed, active subscribers",
)
async def subscriber_count(
    service: SubscriptionService = Depends(get_subscription_service),
) -> SubscriberCountResponse:
    return SubscriberCountResponse(count=await service.count_active())


@router.get("/confirm", response_class=HTMLResponse, summary="Confirm a subscription")
async def confirm_subscription(
    token: str = Depends(link_token),
    service: SubscriptionService = Depends(get_subscription_service),
) -> HTMLResponse:
    result = await service.confirm(token)
    if not result.success:
        return HTMLResponse(
            error_page("Invalid or Expired Token", result.message, include_subscribe_link=True),
            status_code=404,
            headers=HTML_NO_CACHE,
        )

    return HTMLResponse(
        success_page(
            "Subscription Confirmed!",
            result.message,
            note="You can unsubscribe at any time using the link in any email we send you.",
        ),
        headers=HTML_SHORT_CACHE,
    )


@router.get("/unsubscribe", response_class=HTMLResponse, summary="Unsubscribe via email link")
async def unsubscribe(
    token: str = Depends(link_token),
    service: SubscriptionService = Depends(get_subscription_service),
) -> HTMLResponse:
    result = await service.unsubscribe(token)
    if not result.success:
        return HTMLResponse(
            error_page("Unsubscribe Failed", result.message),
            status_code=404,
            headers=HTML_NO_CACHE,
        )

    return HTMLResponse(success_page("Unsubscribed", result.message), headers=HTML_NO_CACHE)
