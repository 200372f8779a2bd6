"""
PromptSketch Backend - Request Dependencies
=============================================

What:  FastAPI dependencies that hand route handlers their collaborators.
How:   The application factory stores one Settings object and one
       UpstreamClient on `app.state`. Each dependency reads them from the
       current request and builds the provider service for that request.
Who:   Injected into route handlers via Depends().

Example usage in a route:
    @router.post("/openai/completion")
    async def completion(
        body: ChatRequest,
        openai: OpenAIService = Depends(get_openai_service),
    ):
        return ContentResponse(content=await openai.complete(body.messages))

Tests build the app with their own Settings and a mock transport, so no
dependency override is needed to keep them off the network.
"""

from fastapi import Request

from promptsketch.config import Settings
from promptsketch.services.imgbb_service import ImgBBService
from promptsketch.services.openai_service import OpenAIService
from promptsketch.services.stability_service import StabilityService
from promptsketch.services.upstream import UpstreamClient


def get_settings(request: Request) -> Settings:
    """Settings the application was created with."""
    return request.app.state.settings


def get_upstream(request: Request) -> UpstreamClient:
    """The application's shared upstream HTTP client."""
    return request.app.state.upstream


def get_openai_service(request: Request) -> OpenAIService:
    return OpenAIService(get_settings(request), get_upstream(request))


def get_stability_service(request: Request) -> StabilityService:
    return StabilityService(get_settings(request), get_upstream(request))


def get_imgbb_service(request: Request) -> ImgBBService:
    return ImgBBService(get_settings(request), get_upstream(request))
