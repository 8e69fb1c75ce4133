"""
Portfolio Site Backend — Analytics Store
=========================================

What:  Bounded in-memory buffer of accepted analytics events, performance
       reports and client error reports.
How:   One deque(maxlen=N) per kind; the oldest entry falls off when full.
       Payloads pass through sanitize_payload() before they are kept.
       Single process, single event loop, so no locking.
Who:   /api/analytics routes (through the get_analytics_store dependency);
       the dashboard endpoint reads it back.

Nothing here is durable. A restart empties the buffer; forwarding to a real
analytics backend is outside this service.
"""

import logging
import re
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, List

logger = logging.getLogger(__name__)

KINDS = ("events", "performance", "errors")

MAX_STRING_LENGTH = 500
REDACTED = "[REDACTED]"

# Compared after lowercasing and dropping "_" / "-", so userAgent, user_agent
# and user-agent are the same key
SENSITIVE_KEYS = frozenset(
    {
        "email",
        "password",
        "token",
        "apikey",
        "secret",
        "authorization",
        "authtoken",
        "sessionid",
        "userid",
        "ipaddress",
        "useragent",
        "referer",
    }
)

TOKEN_PATTERNS = (
    (re.compile(r"([?&])token=[^&\s]*"), r"\1token=" + REDACTED),
    (re.compile(r"([?&])(api[_-]?key)=[^&\s]*", re.IGNORECASE), r"\1\2=" + REDACTED),
    (re.compile(r"Bearer\s+[A-Za-z0-9+/=._-]{20,}", re.IGNORECASE), "Bearer " + REDACTED),
    (re.compile(r"authorization:\s*\S+", re.IGNORECASE), "authorization: " + REDACTED),
)


def is_sensitive_key(key: str) -> bool:
    return key.lower().replace("_", "").replace("-", "") in SENSITIVE_KEYS


def sanitize_payload(value: Any) -> Any:
    """
    Copy of `value` that is safe to keep in memory.

    At any depth: sensitive keys are dropped, credentials in strings (URL
    tokens, API keys, bearer tokens) are redacted, and strings are cut to
    MAX_STRING_LENGTH characters.
    """
    if isinstance(value, dict):
        return {
            key: sanitize_payload(item)
            for key, item in value.items()
            if not (isinstance(key, str) and is_sensitive_key(key))
        }
    if isinstance(value, (list, tuple)):
        return [sanitize_payload(item) for item in value]
    if isinstance(value, str):
        for pattern, replacement in TOKEN_PATTERNS:
            value = pattern.sub(replacement, value)
        return value[:MAX_STRING_LENGTH]
    return value


@dataclass
class StoredEntry:
    id: str
    kind: str
    payload: Dict[str, Any]
    consent_level: str
    received_at: float = field(default_factory=lambda: time.time() * 1000)


class AnalyticsStore:
    def __init__(self, max_entries: int = 500):
        self.max_entries = max_entries
        self._entries: Dict[str, Deque[StoredEntry]] = {
            kind: deque(maxlen=max_entries) for kind in KINDS
        }

    def record(self, kind: str, payload: Dict[str, Any], consent_level: str) -> StoredEntry:
        if kind not in self._entries:
            raise KeyError(f"Unknown analytics kind: {kind}")
        prefix = "err" if kind == "errors" else "evt"
        entry = StoredEntry(
            id=f"{prefix}_{uuid.uuid4().hex}",
            kind=kind,
            payload=sanitize_payload(payload),
            consent_level=consent_level,
        )
        self._entries[kind].append(entry)
        logger.debug("Stored %s entry %s (consent=%s)", kind, entry.id, consent_level)
        return entry

    def recent(self, kind: str, limit: int = 50) -> List[StoredEntry]:
        """Newest first."""
        entries = list(self._entries[kind])
        entries.reverse()
        return entries[:limit]

    def counts(self) -> Dict[str, int]:
        return {kind: len(entries) for kind, entries in self._entries.items()}
