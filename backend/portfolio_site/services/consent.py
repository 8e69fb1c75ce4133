"""
Portfolio Site Backend — Consent Evaluation
============================================

What:  Pure functions that turn a request's cookie and DNT header into a
       ConsentLevel, plus the read-only capability object handed to routes.
How:   parse → validate → resolve → compare. Nothing here raises to the
       caller: a cookie that cannot be read simply means "no consent".
Who:   ConsentMiddleware (gating + request.state.consent) and the
       consent-management endpoint.

Resolution rules:
    no cookie / unparseable / invalid  → none
    valid cookie + DNT (1 or yes)      → essential
    valid cookie                       → cookie's declared level
"""

import json
import logging
import time
import uuid
from dataclasses import dataclass
from typing import Mapping, Optional
from urllib.parse import unquote

from starlette.requests import HTTPConnection

from portfolio_site.schemas.consent import (
    ConsentData,
    ConsentLevel,
    ConsentMethod,
    GranularConsent,
)

logger = logging.getLogger(__name__)

CONSENT_COOKIE_NAME = "analytics_consent"
DNT_HEADER = "dnt"

# 1 year, in the cookie's millisecond units
CONSENT_MAX_AGE_MS = 365 * 24 * 60 * 60 * 1000

CONSENT_HIERARCHY = [
    ConsentLevel.NONE,
    ConsentLevel.ESSENTIAL,
    ConsentLevel.FUNCTIONAL,
    ConsentLevel.ANALYTICS,
    ConsentLevel.MARKETING,
    ConsentLevel.FULL,
]


def _now_ms() -> float:
    return time.time() * 1000


def parse_consent(cookie_header: Optional[str]) -> Optional[ConsentData]:
    """
    Extract the consent record from a raw Cookie header.

    Returns None when the cookie is absent, not URL-decodable JSON, or does
    not fit the ConsentData shape.
    """
    if not cookie_header:
        return None

    try:
        for pair in cookie_header.split(";"):
            name, _, value = pair.strip().partition("=")
            if name == CONSENT_COOKIE_NAME and value:
                return ConsentData.model_validate(json.loads(unquote(value)))
        return None
    except (ValueError, TypeError) as exc:
        # json.JSONDecodeError and pydantic's ValidationError are both ValueErrors
        logger.warning("Failed to parse consent cookie: %s", type(exc).__name__)
        return None


def is_consent_valid(consent: ConsentData, now_ms: Optional[float] = None) -> bool:
    """False when the record is incomplete, withdrawn, or older than one year."""
    if not (
        consent.consent_id
        and consent.timestamp
        and consent.level
        and consent.granular_consent
        and consent.method
    ):
        return False

    if consent.withdrawn_at is not None:
        return False

    now = _now_ms() if now_ms is None else now_ms
    return now - consent.timestamp <= CONSENT_MAX_AGE_MS


def respects_do_not_track(headers: Mapping[str, str]) -> bool:
    dnt = headers.get(DNT_HEADER)
    return dnt == "1" or dnt == "yes"


def get_consent_preferences(request: HTTPConnection) -> Optional[ConsentData]:
    """The request's consent record if it is present and valid, else None."""
    consent = parse_consent(request.headers.get("cookie"))
    if consent is None or not is_consent_valid(consent):
        return None
    return consent


def resolve_level(request: HTTPConnection) -> ConsentLevel:
    consent = get_consent_preferences(request)
    if consent is None:
        return ConsentLevel.NONE

    # DNT caps whatever the cookie declares at essential; it never raises "none"
    if respects_do_not_track(request.headers) and level_satisfies(
        consent.level, ConsentLevel.ESSENTIAL
    ):
        return ConsentLevel.ESSENTIAL

    return consent.level


def level_satisfies(current: ConsentLevel, required: ConsentLevel) -> bool:
    return CONSENT_HIERARCHY.index(current) >= CONSENT_HIERARCHY.index(required)


def can_track(request: HTTPConnection, required_level: ConsentLevel) -> bool:
    return level_satisfies(resolve_level(request), required_level)


@dataclass(frozen=True)
class ConsentContext:
    """
    Read-only consent capabilities attached to `request.state.consent`.

    Route handlers consult this instead of re-reading cookies:

        consent: ConsentContext = request.state.consent
        if consent.can_track_analytics():
            ...
    """

    level: ConsentLevel
    data: Optional[ConsentData]
    dnt: bool

    @property
    def is_first_visit(self) -> bool:
        return self.data is None

    @property
    def has_consented(self) -> bool:
        return self.data is not None

    def can_track(self, required_level: ConsentLevel) -> bool:
        return level_satisfies(self.level, required_level)

    def can_track_analytics(self) -> bool:
        return self.can_track(ConsentLevel.ANALYTICS)

    def can_track_marketing(self) -> bool:
        return self.can_track(ConsentLevel.MARKETING)

    def can_track_performance(self) -> bool:
        # Performance monitoring rides on analytics consent
        return self.can_track(ConsentLevel.ANALYTICS)


def build_consent_context(request: HTTPConnection) -> ConsentContext:
    return ConsentContext(
        level=resolve_level(request),
        data=get_consent_preferences(request),
        dnt=respects_do_not_track(request.headers),
    )


# ══════════════════════════════════════════════════════════════════════════
# Consent management
# ══════════════════════════════════════════════════════════════════════════


def granular_consent_for_level(level: ConsentLevel) -> GranularConsent:
    """
    Expand an overall level into per-purpose switches.

    none/essential → essential only
    functional     → + functional
    analytics      → + analytics, performance
    marketing      → + marketing, personalization
    full           → everything, including third parties
    """
    rank = CONSENT_HIERARCHY.index(level)
    functional = rank >= CONSENT_HIERARCHY.index(ConsentLevel.FUNCTIONAL)
    analytics = rank >= CONSENT_HIERARCHY.index(ConsentLevel.ANALYTICS)
    marketing = rank >= CONSENT_HIERARCHY.index(ConsentLevel.MARKETING)
    return GranularConsent(
        essential=True,
        functional=functional,
        analytics=analytics,
        performance=analytics,
        marketing=marketing,
        personalization=marketing,
        third_party=level == ConsentLevel.FULL,
    )


def build_consent_record(
    level: ConsentLevel,
    method: ConsentMethod = ConsentMethod.SETTINGS_UPDATE,
    version: str = "1.0",
    user_agent: Optional[str] = None,
) -> ConsentData:
    """
    Create a fresh consent record for the browser to store.

    The server does not persist or set the cookie; the consent banner writes
    the returned record into `analytics_consent` itself.
    """
    now = _now_ms()
    return ConsentData(
        consent_id=f"consent_{uuid.uuid4().hex}",
        timestamp=now,
        level=level,
        granular_consent=granular_consent_for_level(level),
        method=method.value,
        version=version,
        user_agent=(user_agent or "")[:256],
        expires_at=now + CONSENT_MAX_AGE_MS,
        last_updated=now,
    )
