"""
Portfolio Site Backend — Auth Service
======================================

What:  Thin wrapper over Supabase Auth (the supabase-py async GoTrue client).
How:   One SDK call per operation. Exceptions are caught here, turned into a
       tagged Err, then folded into the AuthResult envelope with a readable
       fallback message. No caching, no retries, no token refresh logic.
Who:   /api/auth routes.

OAuth flow (Google):
    1. POST /api/auth/signin      → sign_in_with_google() → provider URL
    2. browser → Google → Supabase → GET /api/auth/callback?code=...&next=/
    3. exchange_code_for_session(code) → the SDK writes the session into
       CookieSessionStorage (services/session_cookies.py)
    4. 303 redirect to `next`, carrying the session cookies

The PKCE code verifier written in step 1 travels the same way, so step 3
works only in the browser that started the flow.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional
from urllib.parse import urlencode

from starlette.responses import Response

from portfolio_site.schemas.api import AuthResult
from portfolio_site.services.results import Err, ErrorKind, Ok, Result
from portfolio_site.services.session_cookies import CookieSessionStorage

logger = logging.getLogger(__name__)

CALLBACK_PATH = "/api/auth/callback"

# Ask Google for a refresh token and always show the consent screen
GOOGLE_QUERY_PARAMS = {"access_type": "offline", "prompt": "consent"}


def serialize(obj: Any) -> Optional[Dict[str, Any]]:
    """SDK models (pydantic) → plain JSON-compatible dicts."""
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj
    return obj.model_dump(mode="json")


class AuthService:
    def __init__(self, auth: Any, site_url: str, storage: Optional[CookieSessionStorage] = None):
        # `auth` is the per-visitor client's AsyncGoTrueClient (client.auth)
        self.auth = auth
        self.site_url = site_url.rstrip("/")
        self.storage = storage

    def write_session_cookies(self, response: Response) -> None:
        if self.storage is not None:
            self.storage.write_cookies(response)

    def callback_url(self, redirect_to: str = "/") -> str:
        return f"{self.site_url}{CALLBACK_PATH}?{urlencode({'next': redirect_to})}"

    async def _attempt(
        self, operation: str, fallback: str, call: Callable[[], Awaitable[Any]]
    ) -> Result[Any]:
        try:
            return Ok(await call())
        except Exception as exc:
            # AuthApiError carries a provider message; anything else gets the fallback
            message = getattr(exc, "message", None) or fallback
            logger.warning("Auth %s failed: %s", operation, message)
            return Err(
                kind=ErrorKind.AUTH,
                message=message,
                context={"operation": operation, "original_error": type(exc).__name__},
            )

    @staticmethod
    def _session_result(result: Result[Any]) -> AuthResult:
        """Fold an Ok(AuthResponse) / Err into the envelope."""
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        response = result.value
        return AuthResult(
            success=True,
            user=serialize(getattr(response, "user", None)),
            session=serialize(getattr(response, "session", None)),
        )

    async def sign_in_with_google(self, redirect_to: str = "/") -> AuthResult:
        credentials = {
            "provider": "google",
            "options": {
                "redirect_to": self.callback_url(redirect_to),
                "query_params": GOOGLE_QUERY_PARAMS,
            },
        }
        result = await self._attempt(
            "sign_in_with_google",
            "Google sign-in failed",
            lambda: self.auth.sign_in_with_oauth(credentials),
        )
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        return AuthResult(success=True, url=result.value.url)

    async def sign_in_with_email(self, email: str, password: str) -> AuthResult:
        result = await self._attempt(
            "sign_in_with_email",
            "Sign-in failed",
            lambda: self.auth.sign_in_with_password({"email": email, "password": password}),
        )
        return self._session_result(result)

    async def sign_up_with_email(self, email: str, password: str) -> AuthResult:
        credentials = {
            "email": email,
            "password": password,
            "options": {"email_redirect_to": self.callback_url()},
        }
        result = await self._attempt(
            "sign_up_with_email",
            "Sign-up failed",
            lambda: self.auth.sign_up(credentials),
        )
        return self._session_result(result)

    async def sign_out(self) -> AuthResult:
        result = await self._attempt("sign_out", "Sign-out failed", self.auth.sign_out)
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        return AuthResult(success=True)

    async def get_current_session(self) -> AuthResult:
        """success=True with session=None simply means nobody is signed in."""
        result = await self._attempt(
            "get_current_session", "Failed to get session", self.auth.get_session
        )
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        session = result.value
        return AuthResult(
            success=True,
            session=serialize(session),
            user=serialize(getattr(session, "user", None)) if session else None,
        )

    async def get_current_user(self) -> AuthResult:
        result = await self._attempt(
            "get_current_user", "Failed to get user", self.auth.get_user
        )
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        response = result.value
        user = getattr(response, "user", None) if response else None
        return AuthResult(success=True, user=serialize(user))

    async def reset_password(self, email: str) -> AuthResult:
        result = await self._attempt(
            "reset_password",
            "Password reset failed",
            lambda: self.auth.reset_password_for_email(
                email, {"redirect_to": f"{self.site_url}/auth/reset-password"}
            ),
        )
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        return AuthResult(success=True)

    async def update_password(self, new_password: str) -> AuthResult:
        result = await self._attempt(
            "update_password",
            "Password update failed",
            lambda: self.auth.update_user({"password": new_password}),
        )
        if not result.ok:
            return AuthResult(success=False, error=result.message)
        return AuthResult(success=True, user=serialize(getattr(result.value, "user", None)))

    async def exchange_code_for_session(self, code: str) -> AuthResult:
        result = await self._attempt(
            "exchange_code_for_session",
            "Code exchange failed",
            lambda: self.auth.exchange_code_for_session({"auth_code": code}),
        )
        return self._session_result(result)
