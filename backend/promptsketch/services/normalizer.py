"""
PromptSketch Backend - Response Normalizer
============================================

What:  Maps a provider's HTTP response onto the outward contract.
How:   Small pure functions over httpx.Response. Each failure class raises
       the matching exception from promptsketch.exceptions; the global
       handlers in main.py turn it into `{"error": ...}`.

Outcome table:
    transport failure           → UpstreamTransportError   (500, generic)
    non-2xx                     → UpstreamRejectedError    (provider status)
    2xx, body not JSON          → UpstreamTransportError   (500, malformed)
    2xx, JSON missing fields    → UpstreamShapeError       (500)
    2xx, valid                  → success payload          (200)
"""

import base64
import json
import logging
from typing import Any, Optional

import httpx

from promptsketch.exceptions import (
    UpstreamRejectedError,
    UpstreamShapeError,
    UpstreamTransportError,
)
from promptsketch.schemas.upstream import Result

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MEDIA_TYPE = "image/png"


def _json_body(response: httpx.Response) -> Optional[Any]:
    """Decoded JSON body, or None when the body is absent, unread or not JSON."""
    try:
        content = response.content
    except httpx.ResponseNotRead:
        return None
    if not content:
        return None
    try:
        return json.loads(content)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None


def upstream_error_message(response: httpx.Response, fallback: str) -> str:
    """
    Best client-facing message for a non-2xx provider response.

    Recognized bodies:
        {"error": {"message": "..."}}   OpenAI, ImgBB
        {"message": "..."}              Stability (older errors)
        {"error": "..."}                Stability, misc

    Anything else yields "<fallback> (HTTP <status>)".
    """
    body = _json_body(response)
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str) and error["message"]:
            return error["message"]
        if isinstance(body.get("message"), str) and body["message"]:
            return body["message"]
        if isinstance(error, str) and error:
            return error
        errors = body.get("errors")
        if isinstance(errors, list) and errors and all(isinstance(item, str) for item in errors):
            return "; ".join(errors)
    return f"{fallback} (HTTP {response.status_code})"


def raise_for_upstream(provider: str, response: httpx.Response, fallback: str) -> None:
    """Raise UpstreamRejectedError when `response` is not 2xx."""
    if response.is_success:
        return
    message = upstream_error_message(response, fallback)
    logger.warning(
        "%s rejected request with HTTP %d: %s",
        provider,
        response.status_code,
        message,
    )
    raise UpstreamRejectedError(
        provider=provider,
        status_code=response.status_code,
        message=message,
    )


def decode_json(provider: str, response: httpx.Response) -> Any:
    """
    JSON body of a successful provider response.

    A 2xx body that is not JSON means the provider (or something in between,
    like an HTML error page from a proxy) broke the transport contract.
    """
    body = _json_body(response)
    if body is None:
        raise UpstreamTransportError(
            provider,
            message=f"Received a malformed response from {provider}.",
            context={
                "content_type": response.headers.get("content-type", ""),
                "length": len(response.content),
            },
        )
    return body


def unwrap(provider: str, result: Result[Any, str]) -> Any:
    """Value of a decoder Result, or UpstreamShapeError carrying its reason."""
    if result.is_err:
        logger.error("%s response shape invalid: %s", provider, result.error)
        raise UpstreamShapeError(provider, reason=result.error)
    return result.value


def to_data_url(content: bytes, media_type: Optional[str]) -> str:
    """
    Embed binary content as a data URL.

    Content-Type parameters are dropped ("image/png; charset=binary" →
    "image/png"); a missing or blank type becomes image/png.
    """
    mime = (media_type or "").split(";", 1)[0].strip() or DEFAULT_IMAGE_MEDIA_TYPE
    encoded = base64.b64encode(content).decode("ascii")
    return f"data:{mime};base64,{encoded}"
