"""
Portfolio Site Backend — Analytics Routes
==========================================

What:  Collection endpoints for client analytics, Web Vitals, error reports,
       and the consent-management endpoint.
How:   Consent gating, rate limiting and method filtering already happened
       in middleware; handlers only validate the payload and append it to
       the in-memory AnalyticsStore.
Who:   The site's analytics client and consent banner.

Endpoints:
    POST /api/analytics/events       → 201 {success, event_id}
    POST /api/analytics/performance  → 201 {success, event_id}
    POST /api/analytics/errors       → 201 {success, error_id}
    GET  /api/analytics/consent      → current consent context
    POST /api/analytics/consent      → 201 new consent record for the browser to store
    GET  /api/analytics/dashboard    → counts and newest entries (bearer token)
"""

import logging

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from portfolio_site.dependencies import (
    get_analytics_store,
    get_consent,
    require_dashboard_token,
)
from portfolio_site.schemas.api import (
    AnalyticsAck,
    AnalyticsEvent,
    ConsentEnvelope,
    ErrorReport,
    ErrorResponse,
    PerformanceReport,
)
from portfolio_site.schemas.consent import ConsentUpdateRequest
from portfolio_site.services.analytics_store import KINDS, AnalyticsStore
from portfolio_site.services.consent import ConsentContext, build_consent_record

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])

CONSENT_BLOCKED = {403: {"description": "Consent required", "model": ConsentEnvelope}}


@router.post(
    "/events",
    response_model=AnalyticsAck,
    status_code=201,
    responses=CONSENT_BLOCKED,
    summary="Record an analytics event",
)
async def track_event(
    event: AnalyticsEvent,
    consent: ConsentContext = Depends(get_consent),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> AnalyticsAck:
    entry = store.record("events", event.model_dump(), consent.level.value)
    return AnalyticsAck(event_id=entry.id)


@router.post(
    "/performance",
    response_model=AnalyticsAck,
    status_code=201,
    responses=CONSENT_BLOCKED,
    summary="Record a performance report",
)
async def track_performance(
    report: PerformanceReport,
    consent: ConsentContext = Depends(get_consent),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> AnalyticsAck:
    entry = store.record("performance", report.model_dump(), consent.level.value)
    return AnalyticsAck(event_id=entry.id)


@router.post(
    "/errors",
    response_model=AnalyticsAck,
    status_code=201,
    responses=CONSENT_BLOCKED,
    summary="Record a client-side error report",
)
async def track_error(
    report: ErrorReport,
    consent: ConsentContext = Depends(get_consent),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> AnalyticsAck:
    entry = store.record("errors", report.model_dump(), consent.level.value)
    if report.severity in ("high", "critical"):
        logger.warning(
            "Client %s error %s on %s: %s",
            report.severity,
            entry.id,
            report.page or "unknown page",
            report.message[:200],
        )
    return AnalyticsAck(error_id=entry.id)


@router.get("/consent", summary="Consent state resolved for this request")
async def read_consent(consent: ConsentContext = Depends(get_consent)) -> JSONResponse:
    return JSONResponse(
        content={
            "success": True,
            "level": consent.level.value,
            "dnt": consent.dnt,
            "hasConsented": consent.has_consented,
            "isFirstVisit": consent.is_first_visit,
            "consent": (
                consent.data.model_dump(mode="json", by_alias=True) if consent.data else None
            ),
        }
    )


@router.post("/consent", status_code=201, summary="Create a consent record")
async def update_consent(body: ConsentUpdateRequest, request: Request) -> JSONResponse:
    record = build_consent_record(
        level=body.level,
        method=body.method,
        version=body.version,
        user_agent=request.headers.get("user-agent"),
    )
    logger.info("Consent recorded: level=%s method=%s", body.level.value, body.method.value)
    return JSONResponse(
        status_code=201,
        content={
            "success": True,
            "consent": record.model_dump(mode="json", by_alias=True, exclude_none=True),
        },
    )


@router.get(
    "/dashboard",
    responses={401: {"model": ErrorResponse}},
    dependencies=[Depends(require_dashboard_token)],
    summary="Stored analytics counts and newest entries",
)
async def dashboard(
    limit: int = Query(default=20, ge=1, le=100),
    store: AnalyticsStore = Depends(get_analytics_store),
) -> JSONResponse:
    return JSONResponse(
        content={
            "success": True,
            "counts": store.counts(),
            "recent": {
                kind: [asdict(entry) for entry in store.recent(kind, limit)] for kind in KINDS
            },
        }
    )
