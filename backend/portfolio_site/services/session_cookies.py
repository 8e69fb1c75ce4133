"""
Portfolio Site Backend — Per-Visitor Auth Session Storage
==========================================================

What:  GoTrue session storage backed by the visitor's own cookies, and the
       factory for the per-request auth client that uses it.
How:   The SDK reads and writes its session (and the PKCE code verifier)
       through `get_item` / `set_item` / `remove_item`. Reads come from the
       request's cookies; writes are buffered and copied onto the response
       by `write_cookies()`. Values are stored as `base64-<urlsafe b64>` and
       split across `<key>.0`, `<key>.1`, ... when one cookie would be too
       large for browsers.
Who:   dependencies.get_auth_service builds one per request; the /api/auth
       routes flush it onto their responses.

The process-wide client in supabase_gateway.py never persists a session, so
one visitor's sign-in can not leak into another visitor's requests.
"""

import base64
import binascii
import logging
from typing import Dict, List, Mapping, Optional

from starlette.responses import Response
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from portfolio_site.config import Settings

logger = logging.getLogger(__name__)

ENCODED_PREFIX = "base64-"

# Leaves room for the cookie name and attributes under the 4096 byte limit
MAX_CHUNK_SIZE = 3180

SESSION_COOKIE_MAX_AGE = 60 * 60 * 24 * 365  # seconds


def encode_value(value: str) -> str:
    encoded = base64.urlsafe_b64encode(value.encode("utf-8")).decode("ascii")
    return ENCODED_PREFIX + encoded.rstrip("=")


def decode_value(raw: Optional[str]) -> Optional[str]:
    """Inverse of encode_value; unprefixed values pass through, garbage reads as None."""
    if raw is None:
        return None
    if not raw.startswith(ENCODED_PREFIX):
        return raw
    body = raw[len(ENCODED_PREFIX):]
    try:
        padded = body + "=" * (-len(body) % 4)
        return base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8")
    except (binascii.Error, UnicodeError, ValueError):
        logger.warning("Discarding undecodable auth cookie")
        return None


def chunk_value(value: str) -> List[str]:
    return [value[i:i + MAX_CHUNK_SIZE] for i in range(0, len(value), MAX_CHUNK_SIZE)]


def cookie_names_for(cookies: Mapping[str, str], key: str) -> List[str]:
    """Every cookie currently holding (part of) `key`: the key itself or its chunks."""
    names = [key] if key in cookies else []
    index = 0
    while f"{key}.{index}" in cookies:
        names.append(f"{key}.{index}")
        index += 1
    return names


class CookieSessionStorage:
    """
    Async key/value storage for the GoTrue client, scoped to one request.

    The SDK only needs the three async methods; nothing here is shared
    between requests.
    """

    def __init__(self, cookies: Mapping[str, str], secure: bool = True):
        self._cookies = dict(cookies)
        self._pending: Dict[str, Optional[str]] = {}
        self.secure = secure

    async def get_item(self, key: str) -> Optional[str]:
        if key in self._pending:
            return self._pending[key]
        names = cookie_names_for(self._cookies, key)
        if not names:
            return None
        if key in self._cookies:
            return decode_value(self._cookies[key])
        return decode_value("".join(self._cookies[name] for name in names))

    async def set_item(self, key: str, value: str) -> None:
        self._pending[key] = value

    async def remove_item(self, key: str) -> None:
        self._pending[key] = None

    def write_cookies(self, response: Response) -> None:
        """Copy buffered writes onto the response as Set-Cookie headers."""
        for key, value in self._pending.items():
            stale = set(cookie_names_for(self._cookies, key))

            if value is not None:
                chunks = chunk_value(encode_value(value))
                if len(chunks) == 1:
                    named = {key: chunks[0]}
                else:
                    named = {f"{key}.{i}": chunk for i, chunk in enumerate(chunks)}
                for name, chunk in named.items():
                    response.set_cookie(
                        name,
                        chunk,
                        max_age=SESSION_COOKIE_MAX_AGE,
                        path="/",
                        secure=self.secure,
                        httponly=True,
                        samesite="lax",
                    )
                stale -= set(named)

            for name in sorted(stale):
                response.delete_cookie(
                    name, path="/", secure=self.secure, httponly=True, samesite="lax"
                )


async def create_auth_client(settings: Settings, storage: CookieSessionStorage) -> AsyncClient:
    """
    A Supabase client whose auth session lives only in `storage`.

    Always built with the anon key: the session it carries belongs to the
    visitor, never to the service role.
    """
    options = AsyncClientOptions(
        storage=storage,
        persist_session=True,
        auto_refresh_token=False,
        flow_type="pkce",
    )
    return await acreate_client(settings.supabase_url, settings.supabase_anon_key, options=options)
