"""
PromptSketch Backend - Well-Known Probe Guard
===============================================

What:  Answers every `/.well-known/...` request with an empty 404.
Who:   Browsers and their DevTools, which probe paths such as
       /.well-known/appspecific/com.chrome.devtools.json on page load.
       These requests never reach routing, validation or a provider.
How:   Short-circuits in middleware before call_next.
When:  Outermost middleware (added last in main.create_app).
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

logger = logging.getLogger(__name__)

WELL_KNOWN_PREFIX = "/.well-known/"


class WellKnownProbeMiddleware(BaseHTTPMiddleware):
    """Returns 404 with an empty body for browser well-known probes."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path.startswith(WELL_KNOWN_PREFIX):
            logger.debug("Ignoring well-known probe: %s", request.url.path)
            return Response(status_code=404)
        return await call_next(request)
