"""
Portfolio Site Backend — Request ID Middleware
===============================================

What:  Assigns every request a short correlation ID and echoes it back in
       the X-Request-ID response header.
How:   Accepts a well-formed client-supplied X-Request-ID (the site's
       fetch wrapper sends one), otherwise generates 8 hex chars. Stored in a
       ContextVar for loggers and exception handlers, and on request.state
       for route handlers.
Who:   Outermost middleware; everything else can rely on the ID existing.
"""

import re
import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on one event loop each see their own ID
request_id_var: ContextVar[str] = ContextVar("request_id", default="")

# Client IDs end up in logs, so only accept a conservative shape
VALID_REQUEST_ID = re.compile(r"^[A-Za-z0-9._-]{1,64}$")


def new_request_id() -> str:
    return uuid.uuid4().hex[:8]


class RequestIDMiddleware(BaseHTTPMiddleware):
    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        supplied = request.headers.get("X-Request-ID", "")
        rid = supplied if VALID_REQUEST_ID.match(supplied) else new_request_id()

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
