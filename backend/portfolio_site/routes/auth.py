"""
Portfolio Site Backend — Auth Routes
=====================================

What:  Google OAuth sign-in and session endpoints under /api/auth.
How:   Each handler makes one AuthService call. Failures are raised as
       PortfolioSiteError subclasses and rendered by the global handlers
       as {error, message, request_id}.
Who:   The site's sign-in button and header avatar.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from fastapi.responses import RedirectResponse

from portfolio_site.dependencies import get_auth_service
from portfolio_site.exceptions import (
    AuthenticationError,
    RemoteServiceError,
    ValidationError,
)
from portfolio_site.schemas.api import (
    ErrorResponse,
    SessionResponse,
    SignInRequest,
    SignInResponse,
    SignOutResponse,
)
from portfolio_site.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["Auth"])


def safe_redirect_path(target: str) -> str:
    """Only same-site paths; anything else (//evil.com, https://...) becomes '/'."""
    if not target or not target.startswith("/") or target.startswith("//"):
        return "/"
    if "\\" in target:
        return "/"
    return target


def authorization_code(code: str = Query(default="")) -> str:
    """The OAuth `code` parameter; checked before any auth client is built."""
    if not code:
        raise ValidationError(
            "Authorization code is required", code="MISSING_CODE", field="code"
        )
    return code


@router.post(
    "/signin",
    response_model=SignInResponse,
    responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
    summary="Start Google OAuth sign-in",
)
async def sign_in(
    response: Response,
    body: Optional[SignInRequest] = None,
    auth: AuthService = Depends(get_auth_service),
) -> SignInResponse:
    redirect_to = body.redirect_to if body else "/"
    result = await auth.sign_in_with_google(safe_redirect_path(redirect_to))
    if not result.success or not result.url:
        raise RemoteServiceError(result.error or "Google sign-in failed", code="AUTH_ERROR")
    # PKCE code verifier for the callback
    auth.write_session_cookies(response)
    return SignInResponse(url=result.url, provider="google")


@router.get(
    "/callback",
    status_code=303,
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
    summary="OAuth redirect target; exchanges the code for a session",
)
async def oauth_callback(
    code: str = Depends(authorization_code),
    next: str = Query(default="/"),
    auth: AuthService = Depends(get_auth_service),
) -> RedirectResponse:
    result = await auth.exchange_code_for_session(code)
    if not result.success:
        raise RemoteServiceError(result.error or "Code exchange failed", code="AUTH_FAILED")

    redirect = RedirectResponse(url=safe_redirect_path(next), status_code=303)
    auth.write_session_cookies(redirect)
    return redirect


@router.get("/session", response_model=SessionResponse, summary="Current session, if any")
async def current_session(
    response: Response, auth: AuthService = Depends(get_auth_service)
) -> SessionResponse:
    result = await auth.get_current_session()
    # A refreshed or discarded session is written back either way
    auth.write_session_cookies(response)
    if not result.success or result.session is None:
        # Signed out and "could not tell" look the same to the site
        return SessionResponse(session=None, user=None)
    return SessionResponse(session=result.session, user=result.user)


@router.post(
    "/signout",
    response_model=SignOutResponse,
    responses={500: {"model": ErrorResponse}},
    summary="Sign the current user out",
)
async def sign_out(
    response: Response, auth: AuthService = Depends(get_auth_service)
) -> SignOutResponse:
    result = await auth.sign_out()
    if not result.success:
        raise RemoteServiceError(result.error or "Sign-out failed", code="SIGNOUT_FAILED")
    auth.write_session_cookies(response)
    return SignOutResponse(success=True, message="Successfully signed out")


@router.get(
    "/user",
    responses={401: {"model": ErrorResponse}},
    summary="The signed-in user",
)
async def current_user(response: Response, auth: AuthService = Depends(get_auth_service)) -> dict:
    result = await auth.get_current_user()
    if not result.success or not result.user:
        raise AuthenticationError()
    auth.write_session_cookies(response)
    return {"user": result.user}
