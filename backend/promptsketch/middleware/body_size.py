"""
PromptSketch Backend - Request Body Size Guard
================================================

What:  Refuses any request whose declared body is larger than
       `settings.max_upload_size` (32 MiB by default) with 413.
How:   Compares the Content-Length header with the limit before call_next,
       so an oversized body is never parsed, spooled or forwarded.
Who:   Every route; JSON bodies (e.g. a huge imageDataUrl) and multipart
       uploads alike.
When:  Inside CORS, so browsers can read the 413 body.

Bodies sent without Content-Length (chunked) are not measured here; uploads
still pass the bounded read in validate_image_upload.
"""

import logging

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

logger = logging.getLogger(__name__)


class BodySizeLimitMiddleware(BaseHTTPMiddleware):
    """Returns 413 {"error": ...} when Content-Length exceeds the upload limit."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        declared = request.headers.get("content-length", "")
        max_size = request.app.state.settings.max_upload_size

        if declared.isdigit() and int(declared) > max_size:
            logger.warning(
                "Rejected %s %s: body of %s bytes exceeds %d",
                request.method,
                request.url.path,
                declared,
                max_size,
            )
            return JSONResponse(
                status_code=413,
                content={
                    "error": f"Request body exceeds maximum of {max_size / (1024 * 1024):.0f}MB."
                },
            )
        return await call_next(request)
