"""
PromptSketch Backend - Upstream HTTP Client
=============================================

What:  The single outbound HTTP seam. Every provider call goes through one
       of three methods here: post_json, post_multipart, open_stream.
How:   Wraps one httpx.AsyncClient owned by the application. Each method
       performs exactly one POST and translates httpx transport failures into
       UpstreamTransportError. Non-2xx handling is left to the caller for
       buffered calls (the normalizer needs the body) and done here for
       streams (the body must be read before the stream is handed out).
Who:   Provider services (OpenAIService, StabilityService, ImgBBService).

No retries:
    A failed call surfaces immediately as an error response. Connection
    pooling is whatever httpx.AsyncClient provides by default.

Timeout:
    `settings.upstream_timeout` (default 60s) for connect, read, write and
    pool. For streams the read timeout applies to each chunk.
"""

import logging
import time
from typing import Any, Dict, Mapping, Optional

import httpx

from promptsketch.exceptions import UpstreamTransportError
from promptsketch.services.normalizer import raise_for_upstream

logger = logging.getLogger(__name__)


class UpstreamClient:
    """
    Thin async wrapper around httpx.AsyncClient for provider calls.

    Args:
        timeout:   Seconds for each phase of a call.
        transport: Optional httpx transport. Tests pass httpx.MockTransport;
                   production leaves it None to use the network.
    """

    def __init__(
        self,
        timeout: float = 60.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout),
            transport=transport,
        )

    async def aclose(self) -> None:
        """Close pooled connections. Called from the app lifespan on shutdown."""
        await self._client.aclose()

    async def post_json(
        self,
        provider: str,
        url: str,
        payload: Mapping[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """POST a JSON body and return the fully read response."""
        request = self._client.build_request("POST", url, json=payload, headers=headers)
        return await self._send(provider, request)

    async def post_multipart(
        self,
        provider: str,
        url: str,
        data: Mapping[str, Any],
        files: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        POST a multipart/form-data body and return the fully read response.

        `files` maps a field name to httpx's (filename, content, media_type)
        tuple. httpx only switches to multipart when `files` is non-empty;
        callers with no file part pass a placeholder entry.
        """
        request = self._client.build_request(
            "POST", url, data=data, files=files, headers=headers
        )
        return await self._send(provider, request)

    async def open_stream(
        self,
        provider: str,
        url: str,
        payload: Mapping[str, Any],
        headers: Optional[Dict[str, str]] = None,
    ) -> httpx.Response:
        """
        POST a JSON body and return the response with its body still unread.

        The caller owns the returned response and must `await response.aclose()`.
        On a non-2xx status the error body is read, the response is closed and
        UpstreamRejectedError is raised, so the caller only ever receives a
        successful stream.
        """
        request = self._client.build_request("POST", url, json=payload, headers=headers)
        response = await self._send(provider, request, stream=True)
        if response.is_success:
            return response

        try:
            await response.aread()
        except httpx.HTTPError as e:
            logger.warning("%s error body could not be read: %s", provider, str(e))
        finally:
            await response.aclose()
        raise_for_upstream(provider, response, f"{provider} request failed")
        return response  # unreachable: raise_for_upstream raised

    async def _send(
        self,
        provider: str,
        request: httpx.Request,
        stream: bool = False,
    ) -> httpx.Response:
        start_time = time.perf_counter()
        try:
            response = await self._client.send(request, stream=stream)
        except httpx.HTTPError as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "%s %s failed after %.0fms: %s",
                provider,
                request.url.path,
                duration_ms,
                type(e).__name__,
            )
            raise UpstreamTransportError(
                provider,
                context={"error_type": type(e).__name__, "detail": str(e)},
            ) from e

        duration_ms = (time.perf_counter() - start_time) * 1000
        logger.info(
            "%s %s -> %d in %.0fms%s",
            provider,
            request.url.path,
            response.status_code,
            duration_ms,
            " (streaming)" if stream else "",
        )
        return response
