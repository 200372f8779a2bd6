"""
PromptSketch Backend - Custom Exception Hierarchy
===================================================

What:  Application-specific exceptions for every failure class a proxied
       request can end in.
How:   Each exception carries a client-safe message, an HTTP status and an
       optional context dict. Global exception handlers (registered in
       main.py) turn them into the uniform `{"error": "..."}` envelope.
Who:   Raised by the validator, the upstream client and the provider services.
When:  During request processing. Every error is terminal for the request.

Exception Hierarchy:
    PromptSketchError (base)
    ├── ValidationError          → 400 Bad Request (client can fix)
    ├── ConfigurationError       → 500 (a provider credential is missing)
    ├── UpstreamTransportError   → 500 (could not reach / read the provider)
    ├── UpstreamRejectedError    → provider's own status, verbatim
    └── UpstreamShapeError       → 500 (2xx with an unexpected payload)

Context vs message:
    `message` is returned to the client. `context` is logged server-side only
    and may hold raw exception text, provider names and setting names, but
    never a credential value.
"""

from typing import Any, Dict, Optional


class PromptSketchError(Exception):
    """
    Base exception for all PromptSketch application errors.

    Attributes:
        message:     Client-facing error description
        context:     Additional debug info (logged, NOT returned to client)
        status_code: HTTP status used by the global handler
    """

    status_code: int = 500

    def __init__(
        self,
        message: str = "An unexpected error occurred",
        context: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.context = context or {}
        super().__init__(self.message)


class ValidationError(PromptSketchError):
    """
    Raised when client input fails validation.

    When:    Missing field, empty prompt, messages not a list, file too large,
             non-image MIME type.
    HTTP:    400 Bad Request. No upstream call has been made.
    """

    status_code = 400

    def __init__(
        self,
        message: str = "Validation failed",
        field: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        if field:
            ctx["field"] = field
        super().__init__(message=message, context=ctx)
        self.field = field


class ConfigurationError(PromptSketchError):
    """
    Raised when a provider credential is not configured.

    HTTP:    500 Internal Server Error, distinct from a 400 client error.
    Context: {"setting": "<ENV_VAR_NAME>"} so the operator knows what to set.
    """

    def __init__(
        self,
        message: str = "The server is not configured for this operation. Please contact the administrator.",
        context: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, context=context)


class UpstreamTransportError(PromptSketchError):
    """
    Raised when the provider could not be reached or its body could not be read.

    When:    DNS failure, connection reset, timeout, or a 2xx body that is not
             the JSON the integration expects.
    HTTP:    500 with a generic message. The raw exception text goes to
             `context["detail"]` for the server log.
    """

    def __init__(
        self,
        provider: str,
        message: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        super().__init__(
            message=message or f"Could not get a response from {provider}. Please try again later.",
            context=ctx,
        )
        self.provider = provider


class UpstreamRejectedError(PromptSketchError):
    """
    Raised when the provider answered with a non-2xx status.

    HTTP:    The provider's status code, not remapped.
    Message: The provider's structured error message when its body is JSON,
             otherwise a synthesized message containing the numeric status.
    """

    def __init__(
        self,
        provider: str,
        status_code: int,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        ctx["upstream_status"] = status_code
        super().__init__(message=message, context=ctx)
        self.provider = provider
        self.status_code = status_code


class UpstreamShapeError(PromptSketchError):
    """
    Raised when the provider answered 2xx but the payload lacks expected fields.

    Distinguished from UpstreamTransportError: the connection worked and the
    body parsed, but the documented contract was violated (e.g. ImgBB success
    without `data.url`).
    HTTP:    500
    """

    def __init__(
        self,
        provider: str,
        reason: str = "",
        context: Optional[Dict[str, Any]] = None,
    ):
        ctx = context or {}
        ctx["provider"] = provider
        if reason:
            ctx["reason"] = reason
        super().__init__(
            message=f"{provider} returned an invalid response shape",
            context=ctx,
        )
        self.provider = provider
