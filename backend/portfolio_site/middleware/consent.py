"""
Portfolio Site Backend — Consent Middleware
============================================

What:  Resolves the visitor's consent level on every request, gates the
       analytics endpoints on it, and honours Do Not Track.
How:   services/consent.py does the evaluation; this module only decides
       what to do with the result.
Who:   Registered in main.create_app(), inside the analytics gate.

Gating under /api/analytics/<sub>/...:
    events, performance → requires analytics  (403, X-Consent-Required: analytics)
    errors              → requires essential  (403, X-Consent-Required: essential)
    consent             → always allowed
    anything else       → logged, passed through

Every non-static request gets `request.state.consent` (a ConsentContext).
"""

import logging
import re

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from portfolio_site.schemas.consent import ConsentLevel
from portfolio_site.services.consent import build_consent_context

logger = logging.getLogger(__name__)

ANALYTICS_PREFIX = "/api/analytics/"
CONSENT_ENDPOINT_PREFIX = "/api/analytics/consent"

STATIC_PREFIXES = ("/assets/", "/_astro/", "/static/")
STATIC_EXTENSIONS = re.compile(
    r"\.(js|css|map|png|jpg|jpeg|gif|svg|ico|webp|avif|woff|woff2|ttf)$", re.IGNORECASE
)

# sub-path → (required level, message shown when blocked)
GATED_ENDPOINTS = {
    "events": (ConsentLevel.ANALYTICS, "Analytics tracking not consented"),
    "performance": (ConsentLevel.ANALYTICS, "Analytics tracking not consented"),
    "errors": (ConsentLevel.ESSENTIAL, "Error tracking not allowed"),
}


def is_static_asset(path: str) -> bool:
    return path.startswith(STATIC_PREFIXES) or STATIC_EXTENSIONS.search(path) is not None


def analytics_endpoint(path: str) -> str:
    """'/api/analytics/performance/metrics' → 'performance'"""
    return path[len(ANALYTICS_PREFIX):].split("/", 1)[0]


class ConsentMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        path = request.url.path
        if is_static_asset(path):
            return await call_next(request)

        consent = build_consent_context(request)
        request.state.consent = consent

        logger.debug(
            "consent_check path=%s level=%s dnt=%s first_visit=%s",
            path,
            consent.level.value,
            consent.dnt,
            consent.is_first_visit,
        )

        if path.startswith(ANALYTICS_PREFIX):
            endpoint = analytics_endpoint(path)
            gate = GATED_ENDPOINTS.get(endpoint)
            if gate is not None:
                required, message = gate
                if not consent.can_track(required):
                    logger.info(
                        "analytics_blocked endpoint=%s level=%s required=%s",
                        endpoint,
                        consent.level.value,
                        required.value,
                    )
                    return JSONResponse(
                        status_code=403,
                        content={
                            "success": False,
                            "error": message,
                            "code": "CONSENT_REQUIRED",
                        },
                        headers={"X-Consent-Required": required.value},
                    )
            elif endpoint != "consent":
                logger.info("unknown_analytics_endpoint endpoint=%s", endpoint)

        response = await call_next(request)

        if consent.dnt and not path.startswith(CONSENT_ENDPOINT_PREFIX):
            response.headers["X-DNT-Compliant"] = "1"

        return response
