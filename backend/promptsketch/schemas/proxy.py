"""
PromptSketch Backend - Pydantic Request/Response Schemas
==========================================================

What:  Pydantic models defining the API contract between the browser client
       and this backend.
How:   FastAPI validates JSON request bodies against the request models and
       serializes route return values through the response models. Field
       aliases keep the client's camelCase names (`imageDataUrl`).
Who:   Used by route handlers; mirrored by the frontend.

Every success model has exactly one payload field. Errors always use
ErrorResponse. No response ever carries both.
"""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ══════════════════════════════════════════════════════════════════════════
# Request Models - What the client sends as JSON
# ══════════════════════════════════════════════════════════════════════════


class ChatRequest(BaseModel):
    """
    Body of the chat routes (streaming and non-streaming).

    `messages` is forwarded to OpenAI as-is, so each item is an opaque
    mapping (`{"role": ..., "content": ...}`); only the container type is
    checked here.
    """

    messages: List[Dict[str, Any]] = Field(
        description="Conversation so far, in OpenAI chat message format",
    )


class DescribeRequest(BaseModel):
    """Body of POST /api/openai/describe."""

    model_config = ConfigDict(populate_by_name=True)

    image_data_url: str = Field(
        alias="imageDataUrl",
        description="Image to describe, as a data URL or a public https URL",
    )

    @field_validator("image_data_url")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        """Rejects empty strings, which OpenAI would refuse anyway."""
        if not v.strip():
            raise ValueError("Missing imageDataUrl")
        return v


# ══════════════════════════════════════════════════════════════════════════
# Response Models - What the API returns to clients
# ══════════════════════════════════════════════════════════════════════════


class ContentResponse(BaseModel):
    """Returned by POST /api/openai/completion."""

    content: str = Field(description="Assistant reply text")


class DescriptionResponse(BaseModel):
    """Returned by POST /api/openai/describe."""

    description: str = Field(description="Model description of the image, trimmed")


class UploadResponse(BaseModel):
    """Returned by POST /api/imgbb/upload."""

    url: str = Field(description="Public URL of the hosted image")


class ImageResponse(BaseModel):
    """Returned by POST /api/stability/generate."""

    model_config = ConfigDict(populate_by_name=True)

    image_data_url: str = Field(
        alias="imageDataUrl",
        description="Generated image as a base64 data URL",
    )


class ErrorResponse(BaseModel):
    """
    Uniform error body for every non-2xx response.

    Example:
        {"error": "Missing or invalid messages"}
    """

    error: str = Field(description="Human-readable error description")


class HealthResponse(BaseModel):
    """Returned by GET /health."""

    status: str = Field(description="healthy when every provider is configured, else degraded")
    version: str = Field(description="Application version")
    providers: Dict[str, str] = Field(
        description="Per-provider credential status: configured or missing",
    )
