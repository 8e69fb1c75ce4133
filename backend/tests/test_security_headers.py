"""
Portfolio Site Backend — Edge Security Middleware Tests
========================================================

What we test:
    ✅ Baseline security headers and CSP on every response, rejections included
    ✅ HSTS only over https
    ✅ CORS headers only under /api/, preflight short-circuit
    ✅ Cache-Control by route class, handler's choice kept for API routes
    ✅ Crawler and timing headers
"""

import pytest
from httpx import ASGITransport, AsyncClient

from portfolio_site.middleware.security_headers import build_csp


class TestBaselineHeaders:

    @pytest.mark.asyncio
    async def test_security_headers_present(self, test_client):
        response = await test_client.get("/api/health")

        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["X-XSS-Protection"] == "1; mode=block"
        assert response.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
        policy = response.headers["Permissions-Policy"]
        assert "camera=()" in policy
        assert "accelerometer=()" in policy

    @pytest.mark.asyncio
    async def test_csp_allows_configured_supabase_host(self, test_client):
        csp = (await test_client.get("/robots.txt")).headers["Content-Security-Policy"]

        assert "default-src 'self'" in csp
        assert "connect-src 'self' *.supabase.co" in csp
        assert "frame-ancestors 'none'" in csp
        assert "upgrade-insecure-requests" in csp

    @pytest.mark.asyncio
    async def test_headers_applied_to_rejections(self, test_client):
        response = await test_client.post("/api/analytics/events", json={"event_type": "x"})

        assert response.status_code == 403
        assert response.headers["X-Frame-Options"] == "DENY"

    @pytest.mark.asyncio
    async def test_no_hsts_over_http(self, test_client):
        response = await test_client.get("/api/health")
        assert "Strict-Transport-Security" not in response.headers

    @pytest.mark.asyncio
    async def test_hsts_over_https(self, app):
        async with AsyncClient(
            transport=ASGITransport(app=app), base_url="https://test"
        ) as client:
            response = await client.get("/api/health")

        assert response.headers["Strict-Transport-Security"] == (
            "max-age=31536000; includeSubDomains; preload"
        )

    @pytest.mark.asyncio
    async def test_server_timing(self, test_client):
        response = await test_client.get("/api/health")
        assert response.headers["Server-Timing"].startswith("total;dur=")

    def test_build_csp_uses_host(self):
        assert "connect-src 'self' abc.supabase.co" in build_csp("abc.supabase.co")


class TestCors:

    @pytest.mark.asyncio
    async def test_api_responses_carry_cors(self, test_client):
        response = await test_client.get("/api/seo/meta")

        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Allow-Methods"] == "GET, POST, OPTIONS"
        assert response.headers["Access-Control-Allow-Headers"] == "Content-Type, Authorization"

    @pytest.mark.asyncio
    async def test_non_api_responses_do_not(self, test_client):
        response = await test_client.get("/robots.txt")
        assert "Access-Control-Allow-Origin" not in response.headers

    @pytest.mark.asyncio
    async def test_api_preflight_short_circuits(self, test_client):
        response = await test_client.options(
            "/api/subscribe",
            headers={"Origin": "https://bizkit.dev", "Access-Control-Request-Method": "POST"},
        )

        assert response.status_code == 204
        assert response.headers["Access-Control-Allow-Origin"] == "*"
        assert response.headers["Access-Control-Max-Age"] == "86400"


class TestCachePolicy:

    @pytest.mark.asyncio
    async def test_static_bundles_are_immutable(self, test_client):
        response = await test_client.get("/_astro/index.abc123.js")
        assert response.headers["Cache-Control"] == "public, max-age=31536000, immutable"

    @pytest.mark.asyncio
    async def test_api_defaults_to_no_store(self, test_client):
        response = await test_client.get("/api/seo/meta")
        assert response.headers["Cache-Control"] == "private, no-cache, no-store, must-revalidate"

    @pytest.mark.asyncio
    async def test_api_handler_cache_choice_is_kept(self, test_client):
        response = await test_client.get("/api/health")
        assert response.headers["Cache-Control"] == "no-cache, no-store, must-revalidate"

    @pytest.mark.asyncio
    async def test_pages_get_shared_cache(self, test_client):
        response = await test_client.get("/sitemap.xml")
        assert response.headers["Cache-Control"] == "public, max-age=3600, s-maxage=7200"


class TestCrawlerHeaders:

    @pytest.mark.asyncio
    async def test_bots_get_robots_tag(self, test_client):
        response = await test_client.get(
            "/robots.txt", headers={"User-Agent": "Mozilla/5.0 (compatible; Googlebot/2.1)"}
        )
        assert response.headers["X-Robots-Tag"] == "index, follow"

    @pytest.mark.asyncio
    async def test_browsers_do_not(self, test_client):
        response = await test_client.get("/robots.txt", headers={"User-Agent": "Mozilla/5.0"})
        assert "X-Robots-Tag" not in response.headers
