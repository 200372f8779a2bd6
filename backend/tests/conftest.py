"""
PromptSketch Backend - Test Configuration (conftest.py)
=========================================================

What:  Shared pytest fixtures for the entire test suite.
How:   Every app under test is built with create_app() from explicit Settings
       and an httpx.MockTransport, so no test reaches a real provider.
Who:   Used by all test files in the tests/ directory.

Fixture Hierarchy:
    Function-scoped (created fresh for each test):
    ├── upstream:            UpstreamRecorder, fake OpenAI/Stability/ImgBB
    ├── settings:            Settings with fake credentials for all providers
    ├── bare_settings:       Settings with no credentials at all
    ├── app / bare_app:      FastAPI apps wired to `upstream`
    ├── test_client:         HTTPX AsyncClient for the configured app
    ├── bare_client:         HTTPX AsyncClient for the unconfigured app
    └── sample_image_bytes:  Small PNG payload for upload tests
"""

import json
import os
from typing import Callable, Dict, List, Union

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

# ══════════════════════════════════════════════════════════════════════════
# Environment Setup
# ══════════════════════════════════════════════════════════════════════════

# Real keys from the developer's shell must never reach a test
for _name in ("OPENAI_API_KEY", "VITE_OPENAI_API_KEY", "STABILITY_KEY", "IMGBB_API_KEY"):
    os.environ.pop(_name, None)
os.environ["LOG_LEVEL"] = "WARNING"

from promptsketch.config import Settings  # noqa: E402
from promptsketch.main import create_app  # noqa: E402


Responder = Callable[[httpx.Request], httpx.Response]


class UpstreamRecorder:
    """
    Fake provider endpoints behind httpx.MockTransport.

    Register a canned reply per URL, then inspect `requests` to see what the
    backend sent. A URL with no reply answers 599 so an unexpected call is
    loud in the test output.
    """

    OPENAI_CHAT = "https://api.openai.com/v1/chat/completions"
    STABILITY_SD3 = "https://api.stability.ai/v2beta/stable-image/generate/sd3"
    IMGBB_UPLOAD = "https://api.imgbb.com/1/upload"

    def __init__(self):
        self.routes: Dict[str, Responder] = {}
        self.requests: List[httpx.Request] = []

    def reply(self, url: str, status_code: int = 200, **kwargs) -> None:
        """Answer `url` with a fresh httpx.Response(status_code, **kwargs) each call."""
        self.routes[url] = lambda request: httpx.Response(status_code, **kwargs)

    def fail(self, url: str, exc_type: type = httpx.ConnectError, message: str = "connection refused") -> None:
        """Raise an httpx transport error for `url`."""

        def raise_error(request: httpx.Request) -> httpx.Response:
            raise exc_type(message, request=request)

        self.routes[url] = raise_error

    def handle(self, url: str, responder: Responder) -> None:
        self.routes[url] = responder

    @property
    def calls(self) -> int:
        return len(self.requests)

    def last_json(self) -> Union[dict, list]:
        return json.loads(self.requests[-1].content)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        responder = self.routes.get(url)
        if responder is None:
            return httpx.Response(599, json={"error": {"message": f"no mock for {url}"}})
        return responder(request)


def sse_body(*fragments: str, done: bool = True) -> bytes:
    """OpenAI-style server-sent event stream carrying `fragments`."""
    events = [{"choices": [{"delta": {"role": "assistant"}, "index": 0}]}]
    events += [{"choices": [{"delta": {"content": text}, "index": 0}]} for text in fragments]
    lines = [f"data: {json.dumps(event)}\n\n" for event in events]
    if done:
        lines.append("data: [DONE]\n\n")
    return "".join(lines).encode("utf-8")


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures (created fresh for each test)
# ══════════════════════════════════════════════════════════════════════════

@pytest.fixture
def upstream():
    """Fresh fake provider endpoints with an empty request log."""
    return UpstreamRecorder()


@pytest.fixture
def settings():
    """
    Settings with fake keys for every provider.

    `_env_file=None` keeps a developer's .env out of the tests.
    """
    return Settings(
        _env_file=None,
        openai_api_key="sk-test-openai",
        stability_key="sk-test-stability",
        imgbb_api_key="test-imgbb-key",
        log_level="WARNING",
    )


@pytest.fixture
def bare_settings():
    """Settings with no provider credential configured."""
    return Settings(
        _env_file=None,
        openai_api_key=None,
        stability_key=None,
        imgbb_api_key=None,
        log_level="WARNING",
    )


@pytest.fixture
def app(settings, upstream):
    return create_app(settings=settings, transport=httpx.MockTransport(upstream))


@pytest.fixture
def bare_app(bare_settings, upstream):
    return create_app(settings=bare_settings, transport=httpx.MockTransport(upstream))


@pytest_asyncio.fixture
async def test_client(app):
    """
    Async HTTP client talking to the configured app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await app.state.upstream.aclose()


@pytest_asyncio.fixture
async def bare_client(bare_app):
    """Async HTTP client talking to an app with no credentials."""
    transport = ASGITransport(app=bare_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
    await bare_app.state.upstream.aclose()


@pytest.fixture
def sample_image_bytes():
    """
    A tiny PNG payload.

    Only the signature and an IHDR chunk; no provider is ever shown it, the
    tests only need non-empty bytes with an image MIME type.
    """
    return (
        b"\x89PNG\r\n\x1a\n"
        b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
        b"\x1f\x15\xc4\x89"
    )
