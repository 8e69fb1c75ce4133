"""
Portfolio Site Backend — Auth Route Tests
==========================================

What we test:
    ✅ Sign-in returns the provider URL; redirect targets are kept on-site
    ✅ Callback: missing code 400, failed exchange 500, success 303
    ✅ Session endpoint answers nulls when signed out or on failure
    ✅ Sign-out and current user
    ✅ Sessions live in each visitor's own cookies
    ✅ A missing code is rejected even when Supabase is not configured
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from pydantic import BaseModel

from portfolio_site.config import settings
from portfolio_site.dependencies import get_auth_service
from portfolio_site.routes.auth import safe_redirect_path
from portfolio_site.schemas.api import AuthResult
from portfolio_site.services import session_cookies


@pytest.fixture
def auth_service(app):
    service = MagicMock()
    service.sign_in_with_google = AsyncMock(
        return_value=AuthResult(success=True, url="https://accounts.google.com/o/oauth2")
    )
    service.exchange_code_for_session = AsyncMock(
        return_value=AuthResult(success=True, user={"id": "u1"}, session={"access_token": "a"})
    )
    service.get_current_session = AsyncMock(return_value=AuthResult(success=True))
    service.sign_out = AsyncMock(return_value=AuthResult(success=True))
    service.get_current_user = AsyncMock(
        return_value=AuthResult(success=True, user={"id": "u1", "email": "a@example.com"})
    )
    app.dependency_overrides[get_auth_service] = lambda: service
    return service


class TestSignIn:

    @pytest.mark.asyncio
    async def test_returns_provider_url(self, test_client, auth_service):
        response = await test_client.post("/api/auth/signin", json={"redirectTo": "/work"})

        assert response.status_code == 200
        assert response.json() == {
            "url": "https://accounts.google.com/o/oauth2",
            "provider": "google",
        }
        auth_service.sign_in_with_google.assert_awaited_once_with("/work")

    @pytest.mark.asyncio
    async def test_body_is_optional(self, test_client, auth_service):
        response = await test_client.post("/api/auth/signin")

        assert response.status_code == 200
        auth_service.sign_in_with_google.assert_awaited_once_with("/")

    @pytest.mark.asyncio
    async def test_offsite_redirect_is_dropped(self, test_client, auth_service):
        await test_client.post("/api/auth/signin", json={"redirectTo": "//evil.example"})
        auth_service.sign_in_with_google.assert_awaited_once_with("/")

    @pytest.mark.asyncio
    async def test_provider_failure_500(self, test_client, auth_service):
        auth_service.sign_in_with_google.return_value = AuthResult(
            success=False, error="Google sign-in failed"
        )

        response = await test_client.post("/api/auth/signin")

        assert response.status_code == 500
        assert response.json()["error"] == "AUTH_ERROR"


class TestCallback:

    @pytest.mark.asyncio
    async def test_missing_code_400(self, test_client, auth_service):
        response = await test_client.get("/api/auth/callback")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "MISSING_CODE"
        assert body["message"] == "Authorization code is required"

    @pytest.mark.asyncio
    async def test_failed_exchange_500(self, test_client, auth_service):
        auth_service.exchange_code_for_session.return_value = AuthResult(
            success=False, error="invalid grant"
        )

        response = await test_client.get("/api/auth/callback", params={"code": "c"})

        assert response.status_code == 500
        assert response.json()["error"] == "AUTH_FAILED"

    @pytest.mark.asyncio
    async def test_success_redirects_to_next(self, test_client, auth_service):
        response = await test_client.get(
            "/api/auth/callback", params={"code": "c", "next": "/about"}
        )

        assert response.status_code == 303
        assert response.headers["location"] == "/about"
        auth_service.exchange_code_for_session.assert_awaited_once_with("c")

    @pytest.mark.asyncio
    async def test_absolute_next_redirects_home(self, test_client, auth_service):
        response = await test_client.get(
            "/api/auth/callback", params={"code": "c", "next": "https://evil.example"}
        )
        assert response.headers["location"] == "/"


class TestSession:

    @pytest.mark.asyncio
    async def test_signed_out(self, test_client, auth_service):
        response = await test_client.get("/api/auth/session")

        assert response.status_code == 200
        assert response.json() == {"session": None, "user": None}

    @pytest.mark.asyncio
    async def test_signed_in(self, test_client, auth_service):
        auth_service.get_current_session.return_value = AuthResult(
            success=True, session={"access_token": "a"}, user={"id": "u1"}
        )

        response = await test_client.get("/api/auth/session")

        assert response.json() == {"session": {"access_token": "a"}, "user": {"id": "u1"}}

    @pytest.mark.asyncio
    async def test_failure_reads_as_signed_out(self, test_client, auth_service):
        auth_service.get_current_session.return_value = AuthResult(success=False, error="x")

        response = await test_client.get("/api/auth/session")

        assert response.json() == {"session": None, "user": None}


class TestSignOutAndUser:

    @pytest.mark.asyncio
    async def test_sign_out(self, test_client, auth_service):
        response = await test_client.post("/api/auth/signout")

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Successfully signed out"}

    @pytest.mark.asyncio
    async def test_sign_out_failure_500(self, test_client, auth_service):
        auth_service.sign_out.return_value = AuthResult(success=False, error="x")

        response = await test_client.post("/api/auth/signout")

        assert response.status_code == 500
        assert response.json()["error"] == "SIGNOUT_FAILED"

    @pytest.mark.asyncio
    async def test_current_user(self, test_client, auth_service):
        response = await test_client.get("/api/auth/user")

        assert response.status_code == 200
        assert response.json()["user"]["id"] == "u1"

    @pytest.mark.asyncio
    async def test_no_user_401(self, test_client, auth_service):
        auth_service.get_current_user.return_value = AuthResult(success=True, user=None)

        response = await test_client.get("/api/auth/user")

        assert response.status_code == 401
        assert response.json()["error"] == "UNAUTHORIZED"


class TestSafeRedirectPath:

    @pytest.mark.parametrize(
        "target,expected",
        [
            ("/work", "/work"),
            ("/projects/x?tab=1", "/projects/x?tab=1"),
            ("", "/"),
            ("//evil.example", "/"),
            ("https://evil.example", "/"),
            ("/\\evil.example", "/"),
        ],
    )
    def test_paths(self, target, expected):
        assert safe_redirect_path(target) == expected


# ══════════════════════════════════════════════════════════════════════════
# Per-visitor sessions through the real AuthService and cookie storage
# ══════════════════════════════════════════════════════════════════════════

STORAGE_KEY = "sb-project-auth-token"
VERIFIER_KEY = f"{STORAGE_KEY}-code-verifier"


class FakeUser(BaseModel):
    id: str


class FakeSession(BaseModel):
    access_token: str
    user: FakeUser


class StorageBackedAuth:
    """Keeps its session in the storage it was built with, as GoTrue does."""

    def __init__(self, storage):
        self.storage = storage

    async def sign_in_with_oauth(self, credentials):
        await self.storage.set_item(VERIFIER_KEY, "verifier")
        return SimpleNamespace(url="https://accounts.google.com/o/oauth2")

    async def exchange_code_for_session(self, params):
        if await self.storage.get_item(VERIFIER_KEY) is None:
            raise RuntimeError("code verifier missing")
        user_id = params["auth_code"].split("-")[0]
        session = FakeSession(access_token=f"token-{user_id}", user=FakeUser(id=user_id))
        await self.storage.set_item(STORAGE_KEY, session.model_dump_json())
        await self.storage.remove_item(VERIFIER_KEY)
        return SimpleNamespace(user=session.user, session=session)

    async def get_session(self):
        raw = await self.storage.get_item(STORAGE_KEY)
        return FakeSession.model_validate_json(raw) if raw else None

    async def sign_out(self):
        await self.storage.remove_item(STORAGE_KEY)


@pytest.fixture
def storage_backed_auth(monkeypatch):
    async def build_client(url, key, options=None):
        return SimpleNamespace(auth=StorageBackedAuth(options.storage))

    monkeypatch.setattr(settings, "supabase_url", "https://project.supabase.co")
    monkeypatch.setattr(settings, "supabase_anon_key", "anon-key")
    monkeypatch.setattr(session_cookies, "acreate_client", build_client)


@pytest_asyncio.fixture
async def other_visitor(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def sign_in(visitor, code):
    await visitor.post("/api/auth/signin")
    return await visitor.get("/api/auth/callback", params={"code": code})


class TestVisitorSessions:

    @pytest.mark.asyncio
    async def test_session_belongs_to_the_visitor_who_signed_in(
        self, test_client, other_visitor, storage_backed_auth
    ):
        callback = await sign_in(test_client, "alice-code")

        assert callback.status_code == 303
        assert STORAGE_KEY in callback.cookies

        mine = await test_client.get("/api/auth/session")
        theirs = await other_visitor.get("/api/auth/session")

        assert mine.json()["user"] == {"id": "alice"}
        assert theirs.json() == {"session": None, "user": None}

    @pytest.mark.asyncio
    async def test_callback_needs_the_browser_that_started_sign_in(
        self, test_client, other_visitor, storage_backed_auth
    ):
        await test_client.post("/api/auth/signin")

        response = await other_visitor.get("/api/auth/callback", params={"code": "alice-code"})

        assert response.status_code == 500
        assert response.json()["error"] == "AUTH_FAILED"

    @pytest.mark.asyncio
    async def test_sign_out_only_ends_own_session(
        self, test_client, other_visitor, storage_backed_auth
    ):
        await sign_in(test_client, "alice-code")
        await sign_in(other_visitor, "bob-code")

        response = await other_visitor.post("/api/auth/signout")
        assert response.status_code == 200

        assert (await other_visitor.get("/api/auth/session")).json()["user"] is None
        assert (await test_client.get("/api/auth/session")).json()["user"] == {"id": "alice"}


class TestWithoutSupabase:

    @pytest.mark.asyncio
    async def test_missing_code_is_400_before_configuration_check(self, test_client):
        response = await test_client.get("/api/auth/callback")

        assert response.status_code == 400
        assert response.json()["error"] == "MISSING_CODE"

    @pytest.mark.asyncio
    async def test_with_code_is_503(self, test_client):
        response = await test_client.get("/api/auth/callback", params={"code": "c"})

        assert response.status_code == 503
        assert response.json()["error"] == "SERVICE_UNAVAILABLE"
