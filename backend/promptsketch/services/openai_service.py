"""
PromptSketch Backend - OpenAI Service
=======================================

What:  Chat completion (streamed and buffered) and image description through
       the OpenAI Chat Completions API.
How:   JSON POST to {openai_base_url}/chat/completions with a bearer token.
       Streamed calls set `stream: true` and decode the server-sent events
       into plain text fragments handed to a StreamRelay.
Who:   Routes in routes/openai.py and routes/chat.py.

Streamed event format (one per line, blank lines between events):
    data: {"choices":[{"delta":{"content":"Hel"}}], ...}
    data: {"choices":[{"delta":{"content":"lo"}}], ...}
    data: [DONE]
"""

import json
import logging
from typing import Any, AsyncIterator, Dict, List

import httpx

from promptsketch.exceptions import UpstreamShapeError
from promptsketch.schemas.upstream import decode_chat_chunk, decode_chat_completion
from promptsketch.services.normalizer import unwrap
from promptsketch.services.provider_base import ProviderService
from promptsketch.services.relay import StreamRelay
from promptsketch.services.validation import require_messages, require_text

logger = logging.getLogger(__name__)


# System prompt for POST /api/chat: helps the user turn an idea into a prompt.
SUGGESTION_PROMPT = (
    "You are the assistant who help the user refine their descriptions about the image "
    "they want to generate and give suggestions for proper prompt. Give at least three "
    "suggestion (or more if necessary) and put each of them between labels <suggestion> "
    "and </suggestion>. Put the suggested prompt between label <prompt> and </prompt>."
)

# System prompt for POST /api/openai/chat: feedback on an uploaded sketch.
SKETCH_PROMPT = (
    "You are an assistant helping a user with the text-to-image task. The user will upload "
    "a hand-sketched image. You are supposed to generate the following contents. Put a line "
    "break between each kind of contents:\n"
    "1, The detailed description of the uploaded image. Put it between labels <description> "
    "and </description>.\n"
    "2, Your feelings about the sketch. You should adjust it based on the following user "
    "feedback. You are encouraged to provide detailed and artistic feelings. Put it between "
    "labels <feeling> and </feeling>.\n"
    "3, Three or more suggestions about how to write the text-to-image prompt. Put each "
    "suggestion between labels <suggestion> and </suggestion>.\n"
    "4, The recommended prompt for Stable Diffusion based on the sketch and user feedback. "
    "Put it between labels <prompt> and </prompt>."
)

# System prompt for POST /api/openai/describe.
DESCRIBE_PROMPT = (
    "You are the assistant to describe the user input image. Please respond the following "
    "information:\n"
    "1, A detailed description of the uploaded image. Put it between labels <description> "
    "and </description>.\n"
    "2, Bullet points about all objects and corresponding descriptions in the image. Keep "
    "each bullet point short. Each point contains a different piece of information about "
    "the whole image from other points. Put each bullet point between labels <bullet> and "
    "</bullet>."
)

DESCRIBE_TEMPERATURE = 0.7
DESCRIBE_MAX_TOKENS = 200

_SSE_DATA_PREFIX = "data:"
_SSE_DONE = "[DONE]"


class OpenAIService(ProviderService):
    """OpenAI chat completions: streamed chat, one-shot completion, vision description."""

    provider = "OpenAI"
    credential_setting = "openai_api_key"

    @property
    def completions_url(self) -> str:
        return f"{self.settings.openai_base_url.rstrip('/')}/chat/completions"

    # ── Streamed chat ─────────────────────────────────────────────────────

    async def stream_chat(self, messages: List[Dict[str, Any]], system_prompt: str) -> StreamRelay:
        """
        Open a streamed chat completion and return a relay of its text.

        The fixed system prompt is prepended to the client's messages.
        Upstream rejection is raised here, before any byte is sent to the
        client, so it still maps to a JSON error with the provider's status.
        """
        messages = require_messages(messages)
        headers = self.bearer_headers()
        payload = {
            "model": self.settings.openai_model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "stream": True,
        }
        response = await self.upstream.open_stream(
            self.provider, self.completions_url, payload, headers=headers
        )
        return StreamRelay(
            self._fragments(response),
            on_close=response.aclose,
            buffer_size=self.settings.stream_buffer_size,
            name="openai-chat",
        )

    async def _fragments(self, response: httpx.Response) -> AsyncIterator[str]:
        """Decode OpenAI server-sent events into text fragments."""
        async for line in response.aiter_lines():
            line = line.strip()
            if not line.startswith(_SSE_DATA_PREFIX):
                continue
            data = line[len(_SSE_DATA_PREFIX):].strip()
            if data == _SSE_DONE:
                return
            try:
                event = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Skipping undecodable OpenAI stream event (%d chars)", len(data))
                continue
            if isinstance(event, dict) and "error" in event:
                raise UpstreamShapeError(self.provider, reason=f"stream error event: {event['error']}")
            fragment = decode_chat_chunk(event)
            if fragment.is_err:
                raise UpstreamShapeError(self.provider, reason=fragment.error)
            if fragment.value:
                yield fragment.value

    # ── Buffered completion ───────────────────────────────────────────────

    async def complete(self, messages: List[Dict[str, Any]]) -> str:
        """Single chat completion; returns the assistant's reply text."""
        messages = require_messages(messages)
        headers = self.bearer_headers()
        response = await self.upstream.post_json(
            self.provider,
            self.completions_url,
            {"model": self.settings.openai_model, "messages": messages},
            headers=headers,
        )
        body = self.json_of(response, "Failed to fetch completion from OpenAI")
        return unwrap(self.provider, decode_chat_completion(body))

    # ── Vision description ────────────────────────────────────────────────

    async def describe(self, image_data_url: str) -> str:
        """Describe an image given as a data URL (or public URL)."""
        image_data_url = require_text(image_data_url, "imageDataUrl")
        headers = self.bearer_headers()
        payload = {
            "model": self.settings.openai_model,
            "messages": [
                {"role": "system", "content": DESCRIBE_PROMPT},
                {
                    "role": "user",
                    "content": [
                        {"type": "image_url", "image_url": {"url": image_data_url}},
                    ],
                },
            ],
            "temperature": DESCRIBE_TEMPERATURE,
            "max_tokens": DESCRIBE_MAX_TOKENS,
            "n": 1,
        }
        response = await self.upstream.post_json(
            self.provider, self.completions_url, payload, headers=headers
        )
        body = self.json_of(response, "Failed to fetch description from OpenAI")
        return unwrap(self.provider, decode_chat_completion(body)).strip()
