"""
Portfolio Site Backend — Subscription Route Tests
==================================================

What:  HTTP-level tests for /api/subscribe/*.
How:   The gateway dependency is replaced with an AsyncMock returning tagged
       results, so the real SubscriptionService runs behind the routes.

What we test:
    ✅ Status mapping: 201 / 400 / 409 / 500, and 503 without Supabase
    ✅ /check and /count
    ✅ Confirm and unsubscribe HTML pages for missing, malformed, unknown and
       valid tokens
    ✅ Bad links are answered before the Supabase configuration is checked
"""

from unittest.mock import AsyncMock, MagicMock

import pytest

from portfolio_site.dependencies import get_gateway, get_supabase_client
from portfolio_site.routes.subscribe import token_problem
from portfolio_site.services.results import Err, ErrorKind, Ok

VALID_TOKEN = "Zm9vYmFyYmF6cXV4LXRva2VuLTEyMw"


@pytest.fixture
def gateway(app):
    gateway = MagicMock()
    gateway.find_subscriber = AsyncMock(return_value=Ok(None))
    gateway.insert_subscriber = AsyncMock(side_effect=lambda row: Ok(row))
    gateway.call_procedure = AsyncMock(return_value=Ok(True))
    gateway.count_active_subscribers = AsyncMock(return_value=Ok(3))
    app.dependency_overrides[get_gateway] = lambda: gateway
    return gateway


class TestSubscribe:

    @pytest.mark.asyncio
    async def test_new_subscription_201(self, test_client, gateway):
        response = await test_client.post("/api/subscribe", json={"email": "new@example.com"})

        assert response.status_code == 201
        body = response.json()
        assert body["success"] is True
        assert "check your email" in body["message"]

    @pytest.mark.asyncio
    async def test_invalid_email_400(self, test_client, gateway):
        response = await test_client.post("/api/subscribe", json={"email": "nope"})

        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Please enter a valid email address.",
            "error": "Invalid email format",
        }

    @pytest.mark.asyncio
    async def test_already_subscribed_409(self, test_client, gateway):
        gateway.find_subscriber.return_value = Ok({"confirmed": True, "active": True})

        response = await test_client.post("/api/subscribe", json={"email": "a@example.com"})

        assert response.status_code == 409
        assert response.json()["error"] == "Already subscribed"

    @pytest.mark.asyncio
    async def test_remote_failure_500(self, test_client, gateway):
        gateway.find_subscriber.return_value = Err(kind=ErrorKind.REMOTE, message="down")

        response = await test_client.post("/api/subscribe", json={"email": "a@example.com"})

        assert response.status_code == 500
        assert response.json()["message"] == "Something went wrong. Please try again later."

    @pytest.mark.asyncio
    async def test_missing_body_field_422(self, test_client, gateway):
        response = await test_client.post("/api/subscribe", json={})
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_unconfigured_supabase_503(self, app, test_client):
        app.dependency_overrides.pop(get_supabase_client)

        response = await test_client.post("/api/subscribe", json={"email": "a@example.com"})

        assert response.status_code == 503
        body = response.json()
        assert body["error"] == "SERVICE_UNAVAILABLE"
        assert "request_id" in body


class TestStatusEndpoints:

    @pytest.mark.asyncio
    async def test_check_known_subscriber(self, test_client, gateway):
        gateway.find_subscriber.return_value = Ok({"confirmed": True, "active": True})

        response = await test_client.post("/api/subscribe/check", json={"email": "A@example.com"})

        assert response.status_code == 200
        assert response.json() == {
            "email": "a@example.com",
            "subscribed": True,
            "confirmed": True,
        }

    @pytest.mark.asyncio
    async def test_check_invalid_email_400(self, test_client, gateway):
        response = await test_client.post("/api/subscribe/check", json={"email": "bad"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "INVALID_EMAIL"
        assert body["details"] == {"field": "email"}

    @pytest.mark.asyncio
    async def test_check_remote_failure_500(self, test_client, gateway):
        gateway.find_subscriber.return_value = Err(kind=ErrorKind.REMOTE, message="down")

        response = await test_client.post("/api/subscribe/check", json={"email": "a@example.com"})

        assert response.status_code == 500
        assert response.json()["error"] == "REMOTE_SERVICE_ERROR"

    @pytest.mark.asyncio
    async def test_count(self, test_client, gateway):
        response = await test_client.get("/api/subscribe/count")

        assert response.status_code == 200
        assert response.json() == {"count": 3}


class TestConfirmPage:

    @pytest.mark.asyncio
    async def test_missing_token_400(self, test_client, gateway):
        response = await test_client.get("/api/subscribe/confirm")

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/html")
        assert "Missing Token" in response.text
        assert "missing required token parameter" in response.text
        gateway.call_procedure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_empty_token_400(self, test_client, gateway):
        response = await test_client.get("/api/subscribe/confirm", params={"token": "  "})

        assert response.status_code == 400
        assert "Invalid Token" in response.text
        assert "cannot be empty" in response.text

    @pytest.mark.asyncio
    async def test_malformed_token_is_escaped(self, test_client, gateway):
        response = await test_client.get(
            "/api/subscribe/confirm", params={"token": "<script>alert(1)</script>"}
        )

        assert response.status_code == 400
        assert "<script>" not in response.text
        gateway.call_procedure.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unknown_token_404(self, test_client, gateway):
        gateway.call_procedure.return_value = Err(kind=ErrorKind.NOT_FOUND, message="x")

        response = await test_client.get("/api/subscribe/confirm", params={"token": VALID_TOKEN})

        assert response.status_code == 404
        assert "Invalid or Expired Token" in response.text
        assert 'href="/#subscribe"' in response.text

    @pytest.mark.asyncio
    async def test_valid_token_200(self, test_client, gateway):
        response = await test_client.get("/api/subscribe/confirm", params={"token": VALID_TOKEN})

        assert response.status_code == 200
        assert "Subscription Confirmed!" in response.text
        assert response.headers["Cache-Control"] == "private, max-age=300"
        gateway.call_procedure.assert_awaited_once_with(
            "confirm_subscription", {"subscription_token": VALID_TOKEN}
        )


class TestUnsubscribePage:

    @pytest.mark.asyncio
    async def test_missing_token_400(self, test_client, gateway):
        response = await test_client.get("/api/subscribe/unsubscribe")
        assert response.status_code == 400

    @pytest.mark.asyncio
    async def test_unknown_token_404(self, test_client, gateway):
        gateway.call_procedure.return_value = Err(kind=ErrorKind.NOT_FOUND, message="x")

        response = await test_client.get(
            "/api/subscribe/unsubscribe", params={"token": VALID_TOKEN}
        )

        assert response.status_code == 404
        assert "Unsubscribe Failed" in response.text

    @pytest.mark.asyncio
    async def test_valid_token_200(self, test_client, gateway):
        response = await test_client.get(
            "/api/subscribe/unsubscribe", params={"token": VALID_TOKEN}
        )

        assert response.status_code == 200
        assert "successfully unsubscribed" in response.text
        gateway.call_procedure.assert_awaited_once_with(
            "unsubscribe_email", {"subscription_token": VALID_TOKEN}
        )


class TestLinkPagesWithoutSupabase:

    @pytest.fixture(autouse=True)
    def unconfigured(self, app):
        app.dependency_overrides.pop(get_supabase_client)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/subscribe/confirm", "/api/subscribe/unsubscribe"])
    async def test_missing_token_is_still_400(self, test_client, path):
        response = await test_client.get(path)

        assert response.status_code == 400
        assert response.headers["content-type"].startswith("text/html")
        assert "Missing Token" in response.text

    @pytest.mark.asyncio
    async def test_malformed_token_is_still_400(self, test_client):
        response = await test_client.get("/api/subscribe/confirm", params={"token": "short"})

        assert response.status_code == 400
        assert "Invalid Token" in response.text
        assert response.headers["Cache-Control"] == "no-cache"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("path", ["/api/subscribe/confirm", "/api/subscribe/unsubscribe"])
    async def test_valid_token_gets_503_page(self, test_client, path):
        response = await test_client.get(path, params={"token": VALID_TOKEN})

        assert response.status_code == 503
        assert response.headers["content-type"].startswith("text/html")
        assert "Service Unavailable" in response.text


class TestTokenProblem:

    @pytest.mark.parametrize(
        "token",
        ["short", "x" * 201, "has space inside token", "abc<defghijk"],
    )
    def test_malformed(self, token):
        assert token_problem(token) == "Confirmation token is invalid or malformed."

    def test_surrounding_whitespace_is_ignored(self):
        assert token_problem(f"  {VALID_TOKEN}\n") is None
