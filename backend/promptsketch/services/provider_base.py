"""
PromptSketch Backend - Provider Service Base Class
====================================================

What:  Shared plumbing for the three provider integrations.
How:   Holds the injected Settings and UpstreamClient, resolves the
       provider's credential on every call, and wraps the
       call → status check → JSON decode sequence used by buffered calls.
Who:   Subclassed by OpenAIService, StabilityService and ImgBBService.

Contract for subclasses:
    - `provider` is the display name used in logs and error messages.
    - `credential_setting` names the Settings field holding the key.
    - Credentials are attached inside the subclass (header or form field)
      and never leave it.
"""

from abc import ABC, abstractmethod
from typing import Any

import httpx

from promptsketch.config import Settings
from promptsketch.services.normalizer import decode_json, raise_for_upstream
from promptsketch.services.upstream import UpstreamClient


class ProviderService(ABC):
    """Abstract base for one upstream provider integration."""

    @property
    @abstractmethod
    def provider(self) -> str:
        """Display name used in logs and client-facing error messages."""
        ...

    @property
    @abstractmethod
    def credential_setting(self) -> str:
        """Settings field holding this provider's API key, e.g. "openai_api_key"."""
        ...

    def __init__(self, settings: Settings, upstream: UpstreamClient):
        self.settings = settings
        self.upstream = upstream

    def credential(self) -> str:
        """
        The provider's API key, looked up now.

        Raises:
            ConfigurationError: key not configured. Raised before any network I/O.
        """
        return self.settings.require(self.credential_setting)

    def bearer_headers(self, **extra: str) -> dict:
        """Authorization header for bearer-token providers, plus any extras."""
        headers = {"Authorization": f"Bearer {self.credential()}"}
        headers.update(extra)
        return headers

    def check(self, response: httpx.Response, fallback: str) -> httpx.Response:
        """Raise UpstreamRejectedError for non-2xx, else return the response."""
        raise_for_upstream(self.provider, response, fallback)
        return response

    def json_of(self, response: httpx.Response, fallback: str) -> Any:
        """Status check followed by JSON decoding of the body."""
        self.check(response, fallback)
        return decode_json(self.provider, response)
