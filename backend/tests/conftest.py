"""
Portfolio Site Backend — Test Configuration (conftest.py)
==========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── make_query:     factory for fake PostgREST query builders
    ├── mock_supabase:  MagicMock standing in for the supabase AsyncClient
    ├── consent_cookie: factory for `analytics_consent` Cookie header values
    ├── app:            fresh create_app() with the Supabase client overridden
    └── test_client:    HTTPX AsyncClient bound to `app` through ASGITransport
"""

import json
import os
import time
from unittest.mock import AsyncMock, MagicMock
from urllib.parse import quote

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient


# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Set BEFORE any portfolio_site import so the settings singleton sees them
os.environ["SUPABASE_URL"] = ""
os.environ["SUPABASE_ANON_KEY"] = ""
os.environ["SUPABASE_SERVICE_ROLE_KEY"] = ""
os.environ["ENVIRONMENT"] = "test"
os.environ["LOG_LEVEL"] = "WARNING"


# ══════════════════════════════════════════════════════════════════════════
# Supabase fakes
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def make_query():
    """
    Factory for a fake PostgREST query builder.

    Every builder method returns the same object, and `execute()` is awaited
    at the end of the chain, like the real client:

        query = make_query([{"id": "1"}])
        client.table.return_value = query
        await client.table("x").select("*").eq("a", 1).limit(1).execute()
    """

    def _make(data=None, error=None):
        query = MagicMock()
        for method in ("select", "insert", "update", "eq", "limit"):
            getattr(query, method).return_value = query
        if error is not None:
            query.execute = AsyncMock(side_effect=error)
        else:
            query.execute = AsyncMock(return_value=MagicMock(data=data))
        return query

    return _make


@pytest.fixture
def mock_supabase(make_query):
    client = MagicMock()
    client.table.return_value = make_query([])
    client.rpc.return_value = make_query(True)
    return client


# ══════════════════════════════════════════════════════════════════════════
# Consent cookies
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def consent_cookie():
    """
    Factory for a Cookie header carrying a consent record.

        headers = {"Cookie": consent_cookie("analytics")}
        headers = {"Cookie": consent_cookie("full", withdrawnAt=1)}
    """

    def _make(level="analytics", **overrides):
        record = {
            "consentId": "consent_test",
            "timestamp": time.time() * 1000,
            "level": level,
            "granularConsent": {"essential": True, "analytics": level != "none"},
            "method": "banner_accept",
        }
        record.update(overrides)
        return f"theme=dark; analytics_consent={quote(json.dumps(record))}"

    return _make


# ══════════════════════════════════════════════════════════════════════════
# Application
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def app(mock_supabase):
    """A fresh app per test: own rate limiter, own analytics store."""
    from portfolio_site.dependencies import get_supabase_client
    from portfolio_site.main import create_app

    application = create_app()
    application.dependency_overrides[get_supabase_client] = lambda: mock_supabase
    return application


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient talking to `app` in-process.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/api/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
