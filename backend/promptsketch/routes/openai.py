"""
PromptSketch Backend - OpenAI Route Handlers
==============================================

What:  POST /api/openai/chat        streamed sketch-feedback chat
       POST /api/openai/completion  one-shot chat completion → {content}
       POST /api/openai/describe    image description         → {description}
How:   Pydantic validates the JSON body; OpenAIService performs the call;
       errors are raised and formatted by the global handlers in main.py.
Who:   Called by the frontend chat panel and the sketch upload flow.
"""

import logging

from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse

from promptsketch.dependencies import get_openai_service
from promptsketch.routes.streaming import relay_response
from promptsketch.schemas.proxy import (
    ChatRequest,
    ContentResponse,
    DescribeRequest,
    DescriptionResponse,
    ErrorResponse,
)
from promptsketch.services.openai_service import SKETCH_PROMPT, OpenAIService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/openai", tags=["OpenAI"])

ERROR_RESPONSES = {
    400: {"description": "Missing or invalid input", "model": ErrorResponse},
    500: {"description": "Configuration, transport or response-shape failure", "model": ErrorResponse},
}


@router.post(
    "/chat",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Assistant reply streamed as plain text", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
    summary="Stream feedback on a sketch",
)
async def sketch_chat(
    body: ChatRequest,
    openai: OpenAIService = Depends(get_openai_service),
) -> StreamingResponse:
    """
    Stream the assistant's reply for the sketch-feedback conversation.

    The fixed sketch prompt is prepended to the client's messages. Any
    upstream rejection is reported as JSON before the stream starts.

    A failure after the first byte (transport error or an OpenAI error
    event) is logged and the body simply ends: status and headers are
    already sent, and no trailing marker is appended, so a cut-off reply
    looks like a short one to the client.
    """
    relay = await openai.stream_chat(body.messages, SKETCH_PROMPT)
    return relay_response(relay)


@router.post(
    "/completion",
    response_model=ContentResponse,
    responses=ERROR_RESPONSES,
    summary="Single chat completion",
)
async def completion(
    body: ChatRequest,
    openai: OpenAIService = Depends(get_openai_service),
) -> ContentResponse:
    content = await openai.complete(body.messages)
    return ContentResponse(content=content)


@router.post(
    "/describe",
    response_model=DescriptionResponse,
    responses=ERROR_RESPONSES,
    summary="Describe an image",
    description=(
        "Sends the image to a vision-capable model and returns a tagged description "
        "(<description>…</description> plus <bullet>…</bullet> items)."
    ),
)
async def describe(
    body: DescribeRequest,
    openai: OpenAIService = Depends(get_openai_service),
) -> DescriptionResponse:
    description = await openai.describe(body.image_data_url)
    return DescriptionResponse(description=description)
