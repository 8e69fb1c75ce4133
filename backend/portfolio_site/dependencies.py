"""
Portfolio Site Backend — FastAPI Dependencies
==============================================

What:  Providers that hand route handlers their collaborators.
How:   Process-wide objects (Supabase client, analytics store) live on
       `app.state`, created in the lifespan. Services are cheap wrappers
       built per request around them. The auth client is the exception: it
       is built per request so it only ever sees this visitor's cookies.
Who:   Route handlers via Depends(); tests replace any of these with
       app.dependency_overrides.
"""

import secrets
from typing import Optional

from fastapi import Depends, Header, Request
from supabase import AsyncClient

from portfolio_site.config import settings
from portfolio_site.exceptions import AuthenticationError, ConfigurationError
from portfolio_site.middleware.security_headers import is_https
from portfolio_site.services.analytics_store import AnalyticsStore
from portfolio_site.services.auth_service import AuthService
from portfolio_site.services.consent import ConsentContext, build_consent_context
from portfolio_site.services.session_cookies import CookieSessionStorage, create_auth_client
from portfolio_site.services.subscription_service import SubscriptionService
from portfolio_site.services.supabase_gateway import SupabaseGateway


def get_supabase_client(request: Request) -> AsyncClient:
    client = getattr(request.app.state, "supabase", None)
    if client is None:
        raise ConfigurationError(
            "Supabase is not configured",
            context={"hint": "Set SUPABASE_URL and SUPABASE_ANON_KEY"},
        )
    return client


def get_gateway(client: AsyncClient = Depends(get_supabase_client)) -> SupabaseGateway:
    return SupabaseGateway(client)


def get_subscription_service(
    gateway: SupabaseGateway = Depends(get_gateway),
) -> SubscriptionService:
    return SubscriptionService(gateway)


async def get_auth_service(request: Request) -> AuthService:
    """
    An AuthService bound to this visitor only.

    The auth client is built per request around the visitor's cookies; routes
    call `auth.write_session_cookies(response)` to send back what changed.
    """
    if not settings.supabase_url or not settings.supabase_anon_key:
        raise ConfigurationError(
            "Supabase auth is not configured",
            context={"hint": "Set SUPABASE_URL and SUPABASE_ANON_KEY"},
        )
    storage = CookieSessionStorage(request.cookies, secure=is_https(request))
    client = await create_auth_client(settings, storage)
    return AuthService(client.auth, settings.site_url, storage=storage)


def get_consent(request: Request) -> ConsentContext:
    """The consent context attached by ConsentMiddleware (computed here if absent)."""
    consent = getattr(request.state, "consent", None)
    if consent is None:
        consent = build_consent_context(request)
    return consent


def get_analytics_store(request: Request) -> AnalyticsStore:
    store = getattr(request.app.state, "analytics_store", None)
    if store is None:
        store = AnalyticsStore(settings.analytics_store_size)
        request.app.state.analytics_store = store
    return store


def require_dashboard_token(authorization: Optional[str] = Header(default=None)) -> None:
    """Bearer check for the analytics dashboard; always fails while no token is configured."""
    expected = settings.analytics_dashboard_token
    scheme, _, supplied = (authorization or "").partition(" ")
    if (
        not expected
        or scheme.lower() != "bearer"
        or not secrets.compare_digest(supplied.strip().encode(), expected.encode())
    ):
        raise AuthenticationError("Unauthorized access")
