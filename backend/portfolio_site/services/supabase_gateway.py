"""
Portfolio Site Backend — Supabase Gateway
==========================================

What:  The one module that talks to the Supabase database through the
       supabase-py async client and knows what its responses look like.
How:   Each method performs a single PostgREST request and returns a tagged
       `Ok` / `Err` (services/results.py). PostgREST errors are mapped to an
       ErrorKind; the raw error is logged here and carried in `Err.context`.
Who:   SubscriptionService. Built once per process in the app lifespan.

Remote objects used (see alembic/versions/001_create_subscribers.py):
    table      subscribers
    view       active_subscribers_count (total_subscribers)
    functions  confirm_subscription(subscription_token)
               unsubscribe_email(subscription_token)
"""

import logging
from typing import Any, Dict, Optional

from postgrest.exceptions import APIError
from supabase import AsyncClient, acreate_client
from supabase.lib.client_options import AsyncClientOptions

from portfolio_site.config import Settings
from portfolio_site.services.results import Err, ErrorKind, Ok, Result

logger = logging.getLogger(__name__)

SUBSCRIBERS_TABLE = "subscribers"
ACTIVE_COUNT_VIEW = "active_subscribers_count"

# PostgreSQL SQLSTATE for unique_violation
UNIQUE_VIOLATION = "23505"


async def create_supabase_client(settings: Settings) -> Optional[AsyncClient]:
    """
    Build the process-wide Supabase client, or None when credentials are missing.

    Called from the lifespan handler; the result lives on `app.state.supabase`
    until shutdown. It is shared by every request, so it never holds a user
    session: visitor sessions go through services/session_cookies.py.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logger.warning("Supabase credentials missing; remote features disabled")
        return None
    options = AsyncClientOptions(persist_session=False, auto_refresh_token=False)
    client = await acreate_client(settings.supabase_url, settings.supabase_key, options=options)
    logger.info("Supabase client ready for %s", settings.supabase_host)
    return client


class SupabaseGateway:
    """Database operations against the Supabase project, returning tagged results."""

    def __init__(self, client: AsyncClient):
        self.client = client

    def _failure(self, operation: str, exc: Exception) -> Err:
        """Translate an exception from the client into an Err and log the cause."""
        if isinstance(exc, APIError):
            if exc.code == UNIQUE_VIOLATION:
                kind = ErrorKind.CONFLICT
                logger.info("Supabase %s hit a unique constraint: %s", operation, exc.message)
            else:
                kind = ErrorKind.REMOTE
                logger.error(
                    "Supabase %s failed: code=%s message=%s", operation, exc.code, exc.message
                )
            return Err(
                kind=kind,
                message=exc.message or "Database request failed",
                context={"operation": operation, "code": exc.code},
            )

        logger.error("Supabase %s failed: %s", operation, exc, exc_info=True)
        return Err(
            kind=ErrorKind.REMOTE,
            message="Database request failed",
            context={"operation": operation, "original_error": type(exc).__name__},
        )

    async def find_subscriber(self, email: str) -> Result[Optional[Dict[str, Any]]]:
        """Ok(row) for an existing subscriber, Ok(None) when there is no row."""
        try:
            response = await (
                self.client.table(SUBSCRIBERS_TABLE)
                .select("id, email, confirmed, active")
                .eq("email", email)
                .limit(1)
                .execute()
            )
        except Exception as exc:
            return self._failure("find_subscriber", exc)

        rows = response.data or []
        return Ok(rows[0] if rows else None)

    async def insert_subscriber(self, row: Dict[str, Any]) -> Result[Dict[str, Any]]:
        try:
            response = await self.client.table(SUBSCRIBERS_TABLE).insert(row).execute()
        except Exception as exc:
            return self._failure("insert_subscriber", exc)

        rows = response.data or []
        return Ok(rows[0] if rows else row)

    async def call_procedure(self, name: str, params: Dict[str, Any]) -> Result[Any]:
        """
        Invoke a Postgres function through PostgREST's /rpc endpoint.

        The token procedures return FALSE when no row matched; that is
        reported as Err(NOT_FOUND) so callers see one failure shape.
        """
        try:
            response = await self.client.rpc(name, params).execute()
        except Exception as exc:
            return self._failure(name, exc)

        if response.data is False:
            logger.info("Procedure %s matched no rows", name)
            return Err(
                kind=ErrorKind.NOT_FOUND,
                message="No matching record",
                context={"operation": name},
            )
        return Ok(response.data)

    async def count_active_subscribers(self) -> Result[int]:
        try:
            response = await (
                self.client.table(ACTIVE_COUNT_VIEW)
                .select("total_subscribers")
                .limit(1)
                .execute()
            )
        except Exception as exc:
            return self._failure("count_active_subscribers", exc)

        rows = response.data or []
        total = rows[0].get("total_subscribers") if rows else 0
        return Ok(int(total or 0))
