"""
Portfolio Site Backend — Consent Schemas
=========================================

What:  Pydantic models for the `analytics_consent` cookie payload and the
       consent-management API.
How:   The cookie holds URL-encoded JSON written by the browser's consent
       banner. Field names on the wire are camelCase; Python attributes are
       snake_case (aliases bridge the two).

Cookie example (decoded):
    {
        "consentId": "c_7f3a...",
        "timestamp": 1760000000000,
        "level": "analytics",
        "granularConsent": {"essential": true, "analytics": true, ...},
        "method": "banner_accept"
    }
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class ConsentLevel(str, Enum):
    """
    How much tracking a visitor has authorized.

    Declaration order IS the consent order: none < essential < functional <
    analytics < marketing < full. services/consent.py relies on it.
    """

    NONE = "none"
    ESSENTIAL = "essential"
    FUNCTIONAL = "functional"
    ANALYTICS = "analytics"
    MARKETING = "marketing"
    FULL = "full"


class ConsentMethod(str, Enum):
    """How the consent was collected."""

    BANNER_ACCEPT = "banner_accept"
    BANNER_REJECT = "banner_reject"
    SETTINGS_UPDATE = "settings_update"
    AUTO_ESSENTIAL = "auto_essential"
    GDPR_REQUEST = "gdpr_request"


class GranularConsent(BaseModel):
    """Per-purpose switches derived from (or alongside) the overall level."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    essential: bool = True
    functional: bool = False
    analytics: bool = False
    performance: bool = False
    marketing: bool = False
    personalization: bool = False
    third_party: bool = Field(default=False, alias="thirdParty")


class ConsentData(BaseModel):
    """
    Parsed consent cookie.

    Every field is optional at parse time: a structurally incomplete cookie
    still parses, and `is_consent_valid()` rejects it afterwards. A cookie
    whose values have the wrong type (e.g. an unknown level) fails parsing
    and is treated as "no consent".
    """

    model_config = ConfigDict(populate_by_name=True, extra="allow", frozen=True)

    consent_id: Optional[str] = Field(default=None, alias="consentId")
    timestamp: Optional[float] = Field(default=None, description="Epoch milliseconds")
    level: Optional[ConsentLevel] = None
    granular_consent: Optional[GranularConsent] = Field(default=None, alias="granularConsent")
    method: Optional[str] = None
    version: Optional[str] = None
    user_agent: Optional[str] = Field(default=None, alias="userAgent")
    expires_at: Optional[float] = Field(default=None, alias="expiresAt")
    last_updated: Optional[float] = Field(default=None, alias="lastUpdated")
    withdrawn_at: Optional[float] = Field(default=None, alias="withdrawnAt")


class ConsentUpdateRequest(BaseModel):
    """Body of POST /api/analytics/consent."""

    model_config = ConfigDict(populate_by_name=True)

    level: ConsentLevel
    method: ConsentMethod = ConsentMethod.SETTINGS_UPDATE
    version: str = "1.0"
