"""
Portfolio Site Backend — Edge Security Middleware
==================================================

What:  Security headers, CSP, HSTS, CORS for /api/*, and cache policy by
       route class, applied to every response.
How:   Runs the handler, then decorates the response headers. The body is
       never touched. CORS preflights on non-analytics /api/ paths are
       answered here with 204; analytics preflights belong to the
       analytics gate.
Who:   Registered in main.create_app(), just inside request logging.

Cache policy:
    *.js, *.css  → public, max-age=31536000, immutable
    /api/*       → private, no-cache, no-store, must-revalidate
                   (unless the handler already chose a Cache-Control)
    everything   → public, max-age=3600, s-maxage=7200
"""

import logging
import re
import time

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from portfolio_site.config import Settings

logger = logging.getLogger(__name__)

PERMISSIONS_POLICY = ", ".join(
    f"{feature}=()"
    for feature in (
        "camera",
        "microphone",
        "geolocation",
        "payment",
        "usb",
        "magnetometer",
        "gyroscope",
        "accelerometer",
    )
)

STATIC_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
    "Permissions-Policy": PERMISSIONS_POLICY,
}

API_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}

HSTS_VALUE = "max-age=31536000; includeSubDomains; preload"
IMMUTABLE_CACHE = "public, max-age=31536000, immutable"
API_CACHE = "private, no-cache, no-store, must-revalidate"
PAGE_CACHE = "public, max-age=3600, s-maxage=7200"

BOT_PATTERN = re.compile(r"bot|crawler|spider|crawling", re.IGNORECASE)


def build_csp(supabase_host: str) -> str:
    return "; ".join(
        [
            "default-src 'self'",
            "script-src 'self' 'unsafe-inline' 'unsafe-eval' *.googleapis.com *.gstatic.com",
            "style-src 'self' 'unsafe-inline' *.googleapis.com *.gstatic.com",
            "font-src 'self' *.googleapis.com *.gstatic.com data:",
            "img-src 'self' data: blob: *.unsplash.com *.githubusercontent.com",
            f"connect-src 'self' {supabase_host}",
            "frame-ancestors 'none'",
            "base-uri 'self'",
            "form-action 'self'",
            "upgrade-insecure-requests",
        ]
    )


def is_https(request: Request) -> bool:
    if request.url.scheme == "https":
        return True
    return request.headers.get("x-forwarded-proto", "").split(",")[0].strip() == "https"


def is_cors_preflight(request: Request) -> bool:
    return request.method == "OPTIONS" and "access-control-request-method" in request.headers


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.csp = build_csp(settings.supabase_host)

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        start = time.perf_counter()
        path = request.url.path

        if (
            path.startswith("/api/")
            and not path.startswith("/api/analytics/")
            and is_cors_preflight(request)
        ):
            response = Response(status_code=204)
        else:
            response = await call_next(request)

        try:
            self._apply_headers(request, response, start)
        except Exception:
            logger.warning("Failed to apply security headers to %s", path, exc_info=True)

        return response

    def _apply_headers(self, request: Request, response: Response, start: float) -> None:
        path = request.url.path
        headers = response.headers

        for name, value in STATIC_HEADERS.items():
            headers[name] = value
        headers["Content-Security-Policy"] = self.csp

        if is_https(request):
            headers["Strict-Transport-Security"] = HSTS_VALUE

        if BOT_PATTERN.search(request.headers.get("user-agent", "")):
            headers["X-Robots-Tag"] = "index, follow"

        is_api = path.startswith("/api/")
        if is_api:
            for name, value in API_CORS_HEADERS.items():
                # The analytics gate may already have answered with its own method list
                if name not in headers:
                    headers[name] = value

        if path.endswith((".js", ".css")):
            headers["Cache-Control"] = IMMUTABLE_CACHE
        elif is_api:
            if "cache-control" not in headers:
                headers["Cache-Control"] = API_CACHE
        else:
            headers["Cache-Control"] = PAGE_CACHE

        duration_ms = (time.perf_counter() - start) * 1000
        headers["Server-Timing"] = f"total;dur={duration_ms:.1f}"
