"""
Portfolio Site Backend — Analytics Gate Middleware
===================================================

What:  Rate limiting and method filtering for /api/analytics/*.
How:   Runs before the consent middleware, so preflights and rejected methods
       are answered without consulting consent.
Who:   Registered in main.create_app(); every other path passes untouched.

Decision table (first match wins):
    over rate limit             → 429 RATE_LIMIT_EXCEEDED + Retry-After
    method not GET/POST/OPTIONS → 405 METHOD_NOT_ALLOWED + Allow
    OPTIONS                     → 204, CORS headers, no body
    otherwise                   → handler, then CORS and X-RateLimit-* headers
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from portfolio_site.exceptions import RateLimitExceededError
from portfolio_site.middleware.rate_limit import SlidingWindowRateLimiter, client_identifier

logger = logging.getLogger(__name__)

ANALYTICS_PREFIX = "/api/analytics/"
ALLOWED_METHODS = "POST, GET, OPTIONS"

ANALYTICS_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": ALLOWED_METHODS,
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


class AnalyticsGateMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: SlidingWindowRateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if not request.url.path.startswith(ANALYTICS_PREFIX):
            return await call_next(request)

        client = client_identifier(request)
        try:
            self.limiter.hit(client)
        except RateLimitExceededError as exc:
            return JSONResponse(
                status_code=429,
                content={
                    "success": False,
                    "error": "Rate limit exceeded",
                    "code": "RATE_LIMIT_EXCEEDED",
                },
                headers={"Retry-After": str(exc.retry_after)},
            )

        method = request.method
        if method not in ("GET", "POST", "OPTIONS"):
            logger.info("Rejected %s %s", method, request.url.path)
            return JSONResponse(
                status_code=405,
                content={
                    "success": False,
                    "error": "Method not allowed",
                    "code": "METHOD_NOT_ALLOWED",
                },
                headers={"Allow": ALLOWED_METHODS},
            )

        if method == "OPTIONS":
            return Response(status_code=204, headers=ANALYTICS_CORS_HEADERS)

        response = await call_next(request)
        response.headers["Access-Control-Allow-Origin"] = "*"
        response.headers["Access-Control-Allow-Methods"] = ALLOWED_METHODS
        response.headers["X-RateLimit-Limit"] = str(self.limiter.max_requests)
        response.headers["X-RateLimit-Remaining"] = str(self.limiter.remaining(client))
        return response
