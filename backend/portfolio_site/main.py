"""
Portfolio Site Backend — FastAPI Application Factory
=====================================================

What:  Creates and configures the FastAPI application instance.
How:   create_app() assembles middleware, exception handlers and routers;
       the lifespan owns the process-wide Supabase client.
Who:   uvicorn (`uvicorn portfolio_site.main:app`) and the test suite.

Application Architecture:
    ┌──────────────────────────────────────────────────────────┐
    │                      FastAPI App                         │
    │                                                          │
    │  Middleware Chain (outermost first):                     │
    │  Request ID → Logging → GZip → Security Headers          │
    │            → Analytics Gate → Consent                    │
    │                                                          │
    │  Routes:                                                 │
    │  /api/health  /api/subscribe/*  /api/auth/*              │
    │  /api/analytics/*  /api/seo/meta  /robots.txt            │
    │  /sitemap.xml                                            │
    │                                                          │
    │  Exception Handlers:                                     │
    │  Validation→400  Auth→401  RateLimit→429  Remote→500     │
    │  Config→503  other→500                                   │
    └──────────────────────────────────────────────────────────┘

Lifecycle:
    Startup:
    1. Configure logging
    2. Report missing configuration (without aborting)
    3. Create the Supabase client and the analytics store on app.state

    Shutdown:
    1. Drop the client reference
"""

import logging
import sys
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from portfolio_site import __version__
from portfolio_site.config import settings
from portfolio_site.exceptions import (
    AuthenticationError,
    ConfigurationError,
    InvalidLinkError,
    PortfolioSiteError,
    RateLimitExceededError,
    RemoteServiceError,
    ValidationError,
)
from portfolio_site.middleware.analytics_gate import AnalyticsGateMiddleware
from portfolio_site.middleware.consent import ConsentMiddleware
from portfolio_site.middleware.logging import RequestLoggingMiddleware
from portfolio_site.middleware.rate_limit import SlidingWindowRateLimiter
from portfolio_site.middleware.request_id import RequestIDMiddleware, request_id_var
from portfolio_site.middleware.security_headers import SecurityHeadersMiddleware
from portfolio_site.pages import HTML_NO_CACHE, LINK_PAGE_PATHS, error_page
from portfolio_site.routes import analytics, auth, health, seo, subscribe
from portfolio_site.services.analytics_store import AnalyticsStore
from portfolio_site.services.supabase_gateway import create_supabase_client

logger = logging.getLogger(__name__)


# ══════════════════════════════════════════════════════════════════════════
# Logging Configuration
# ══════════════════════════════════════════════════════════════════════════

def setup_logging() -> None:
    """
    Configure logging for the whole process.

    Format: 2025-01-15T12:00:00 [INFO] portfolio_site.access: POST /api/subscribe 201 ...

    Called once from the lifespan, before anything else logs.
    """
    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%dT%H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,
    )

    # Per-request chatter from the HTTP stack; our access log replaces it
    for noisy in ("uvicorn.access", "httpx", "httpcore", "hpack"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


# ══════════════════════════════════════════════════════════════════════════
# Application Lifespan (Startup & Shutdown)
# ══════════════════════════════════════════════════════════════════════════

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    # ── Startup ───────────────────────────────────────────────────────────
    setup_logging()
    logger.info("=" * 60)
    logger.info("Portfolio Site Backend %s starting (%s)", __version__, settings.environment)

    try:
        settings.validate_required_for_production()
    except ValueError as e:
        # Keep serving: health, SEO and consent endpoints do not need Supabase
        logger.error("Configuration error: %s", str(e))

    try:
        app.state.supabase = await create_supabase_client(settings)
    except Exception as e:
        logger.error("Could not create Supabase client: %s", e, exc_info=True)
        app.state.supabase = None

    app.state.analytics_store = AnalyticsStore(settings.analytics_store_size)

    logger.info("Server ready at http://%s:%d", settings.backend_host, settings.backend_port)
    logger.info("=" * 60)

    yield

    # ── Shutdown ──────────────────────────────────────────────────────────
    logger.info("Portfolio Site Backend shutting down...")
    app.state.supabase = None
    logger.info("Shutdown complete.")


# ══════════════════════════════════════════════════════════════════════════
# Exception Handlers
# ══════════════════════════════════════════════════════════════════════════

def _error_body(code: str, message: str, details=None) -> dict:
    body = {"error": code, "message": message, "request_id": request_id_var.get("")}
    if details:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI) -> None:
    """
    Map the PortfolioSiteError hierarchy to HTTP responses.

    Every body has the ErrorResponse shape {error, message, details?, request_id},
    except on the email-link endpoints, which answer with HTML pages.
    Remote failures log their context server-side and never echo it.
    """

    @app.exception_handler(InvalidLinkError)
    async def handle_invalid_link(request: Request, exc: InvalidLinkError):
        logger.warning("[%s] Invalid link: %s", request_id_var.get(""), exc.message)
        return HTMLResponse(
            error_page(exc.title, exc.message), status_code=400, headers=HTML_NO_CACHE
        )

    @app.exception_handler(ValidationError)
    async def handle_validation_error(request: Request, exc: ValidationError):
        logger.warning("[%s] Validation error: %s", request_id_var.get(""), exc.message)
        return JSONResponse(
            status_code=400, content=_error_body(exc.code, exc.message, exc.context)
        )

    @app.exception_handler(AuthenticationError)
    async def handle_authentication_error(request: Request, exc: AuthenticationError):
        return JSONResponse(status_code=401, content=_error_body(exc.code, exc.message))

    @app.exception_handler(RateLimitExceededError)
    async def handle_rate_limit(request: Request, exc: RateLimitExceededError):
        return JSONResponse(
            status_code=429,
            content=_error_body("RATE_LIMIT_EXCEEDED", exc.message, exc.context),
            headers={"Retry-After": str(exc.retry_after)},
        )

    @app.exception_handler(RemoteServiceError)
    async def handle_remote_error(request: Request, exc: RemoteServiceError):
        logger.error(
            "[%s] Remote service error: %s | Context: %s",
            request_id_var.get(""),
            exc.message,
            exc.context,
        )
        return JSONResponse(status_code=500, content=_error_body(exc.code, exc.message))

    @app.exception_handler(ConfigurationError)
    async def handle_configuration_error(request: Request, exc: ConfigurationError):
        logger.error("[%s] %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        if request.url.path in LINK_PAGE_PATHS:
            return HTMLResponse(
                error_page(
                    "Service Unavailable",
                    "This feature is temporarily unavailable. Please try again later.",
                ),
                status_code=503,
                headers=HTML_NO_CACHE,
            )
        return JSONResponse(
            status_code=503,
            content=_error_body(
                "SERVICE_UNAVAILABLE", "This feature is temporarily unavailable."
            ),
        )

    @app.exception_handler(PortfolioSiteError)
    async def handle_portfolio_error(request: Request, exc: PortfolioSiteError):
        logger.error("[%s] %s | Context: %s", request_id_var.get(""), exc.message, exc.context)
        return JSONResponse(
            status_code=500,
            content=_error_body("SERVER_ERROR", "An internal error occurred. Please try again later."),
        )

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.error(
            "[%s] Unexpected error: %s", request_id_var.get(""), str(exc), exc_info=True
        )
        return JSONResponse(
            status_code=500,
            content=_error_body(
                "INTERNAL_SERVER_ERROR", "An unexpected error occurred. Please try again later."
            ),
        )


# ══════════════════════════════════════════════════════════════════════════
# Application Factory
# ══════════════════════════════════════════════════════════════════════════

def create_app() -> FastAPI:
    app = FastAPI(
        title="Portfolio Site API",
        description=(
            "Backend for the bizkit.dev portfolio: newsletter subscriptions, "
            "Google sign-in, consent-gated analytics and SEO metadata."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    limiter = SlidingWindowRateLimiter(
        max_requests=settings.analytics_rate_limit_requests,
        window_seconds=settings.analytics_rate_limit_window,
    )
    app.state.rate_limiter = limiter

    # ── Register Middleware ───────────────────────────────────────────────
    # Last added runs first: the chain below executes bottom-up.
    app.add_middleware(ConsentMiddleware)
    app.add_middleware(AnalyticsGateMiddleware, limiter=limiter)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(GZipMiddleware, minimum_size=500)
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    # ── Register Exception Handlers ───────────────────────────────────────
    register_exception_handlers(app)

    # ── Register Routes ───────────────────────────────────────────────────
    app.include_router(health.router)
    app.include_router(subscribe.router)
    app.include_router(auth.router)
    app.include_router(analytics.router)
    app.include_router(seo.router)

    return app


app = create_app()
