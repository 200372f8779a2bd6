"""
PromptSketch Backend - Prompt Suggestion Chat Route
=====================================================

What:  POST /api/chat, the streamed prompt-refinement assistant.
How:   Same relay as /api/openai/chat with the suggestion system prompt.
Who:   Called by the frontend's text-only prompt helper.
"""

from fastapi import APIRouter, Depends
from starlette.responses import StreamingResponse

from promptsketch.dependencies import get_openai_service
from promptsketch.routes.openai import ERROR_RESPONSES
from promptsketch.routes.streaming import relay_response
from promptsketch.schemas.proxy import ChatRequest
from promptsketch.services.openai_service import SUGGESTION_PROMPT, OpenAIService

router = APIRouter(prefix="/api", tags=["Chat"])


@router.post(
    "/chat",
    response_class=StreamingResponse,
    responses={
        200: {"description": "Assistant reply streamed as plain text", "content": {"text/plain": {}}},
        **ERROR_RESPONSES,
    },
    summary="Stream prompt suggestions",
)
async def suggestion_chat(
    body: ChatRequest,
    openai: OpenAIService = Depends(get_openai_service),
) -> StreamingResponse:
    """
    Stream prompt suggestions for the conversation so far.

    Errors before the stream starts are JSON with the provider's status.
    A failure mid-stream ends the text body early with no marker; the
    client cannot tell it from a complete reply.
    """
    relay = await openai.stream_chat(body.messages, SUGGESTION_PROMPT)
    return relay_response(relay)
