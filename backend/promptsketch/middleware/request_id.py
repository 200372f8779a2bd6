"""
PromptSketch Backend - Request ID Middleware
==============================================

What:  Assigns a short ID to each incoming request and returns it in the
       X-Request-ID response header.
How:   Uses the client's X-Request-ID when present, else generates one;
       stores it in a ContextVar for loggers and error handlers.
Who:   Applied to every request via Starlette middleware.

Each log line about one proxied call (inbound request, upstream call,
error) can be correlated through this ID, and the frontend can include it
in bug reports.
"""

import uuid
from contextvars import ContextVar

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

# Coroutine-local: concurrent requests on the same loop each see their own ID.
request_id_var: ContextVar[str] = ContextVar("request_id", default="")


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware that assigns a unique ID to each request for tracing."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        # 8 hex chars is enough to correlate log lines
        rid = request.headers.get("X-Request-ID") or uuid.uuid4().hex[:8]

        request_id_var.set(rid)
        request.state.request_id = rid

        response = await call_next(request)
        response.headers["X-Request-ID"] = rid
        return response
