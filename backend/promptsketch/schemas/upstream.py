"""
PromptSketch Backend - Typed Upstream Payload Decoders
========================================================

What:  Pydantic models for the parts of each provider's success payload we
       use, plus decoder functions that return a tagged Result instead of
       indexing into raw JSON.
How:   `model_validate` on the decoded JSON. A pydantic ValidationError is
       folded into `Result.err(reason)`; the caller turns that into an
       UpstreamShapeError. Unknown fields are ignored, so provider additions
       never break decoding.

Decoders:
    decode_chat_completion()  → Result[str, str]   choices[0].message.content
    decode_imgbb_upload()     → Result[str, str]   data.url
    decode_chat_chunk()       → Result[str, str]   choices[0].delta.content (stream)
"""

from dataclasses import dataclass
from typing import Any, Generic, List, Optional, TypeVar

from pydantic import BaseModel, ValidationError

T = TypeVar("T")
E = TypeVar("E")

_UNSET: Any = object()


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """
    Success-or-failure value.

    Exactly one of `value` / `error` is set. Reading the other raises
    ValueError so a shape failure can never be mistaken for a payload.
    """

    _value: Any = _UNSET
    _error: Any = _UNSET

    @classmethod
    def ok(cls, value: T) -> "Result[T, E]":
        return cls(_value=value)

    @classmethod
    def err(cls, error: E) -> "Result[T, E]":
        return cls(_error=error)

    @property
    def is_ok(self) -> bool:
        return self._error is _UNSET

    @property
    def is_err(self) -> bool:
        return not self.is_ok

    @property
    def value(self) -> T:
        if self.is_err:
            raise ValueError("Called value on Result.err")
        return self._value

    @property
    def error(self) -> E:
        if self.is_ok:
            raise ValueError("Called error on Result.ok")
        return self._error


# ══════════════════════════════════════════════════════════════════════════
# OpenAI chat completions
# ══════════════════════════════════════════════════════════════════════════


class ChatMessage(BaseModel):
    role: Optional[str] = None
    content: str


class ChatChoice(BaseModel):
    message: ChatMessage


class ChatCompletion(BaseModel):
    choices: List[ChatChoice]


class ChatDelta(BaseModel):
    content: Optional[str] = None


class ChatChunkChoice(BaseModel):
    delta: ChatDelta


class ChatCompletionChunk(BaseModel):
    choices: List[ChatChunkChoice] = []


# ══════════════════════════════════════════════════════════════════════════
# ImgBB upload
# ══════════════════════════════════════════════════════════════════════════


class ImgBBImage(BaseModel):
    url: str


class ImgBBUpload(BaseModel):
    data: ImgBBImage


# ══════════════════════════════════════════════════════════════════════════
# Decoders
# ══════════════════════════════════════════════════════════════════════════


def _describe(exc: ValidationError) -> str:
    """First validation error as 'loc.path: message' for the server log."""
    first = exc.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "<root>"
    return f"{location}: {first.get('msg', 'invalid')}"


def decode_chat_completion(payload: Any) -> Result[str, str]:
    """Assistant text of the first choice of a chat completion."""
    try:
        completion = ChatCompletion.model_validate(payload)
    except ValidationError as e:
        return Result.err(_describe(e))
    if not completion.choices:
        return Result.err("choices: empty")
    return Result.ok(completion.choices[0].message.content)


def decode_chat_chunk(payload: Any) -> Result[str, str]:
    """
    Text fragment carried by one streamed chat chunk.

    Chunks without a choice or without delta content (role announcements,
    the final finish_reason chunk) decode to an empty fragment.
    """
    try:
        chunk = ChatCompletionChunk.model_validate(payload)
    except ValidationError as e:
        return Result.err(_describe(e))
    if not chunk.choices:
        return Result.ok("")
    return Result.ok(chunk.choices[0].delta.content or "")


def decode_imgbb_upload(payload: Any) -> Result[str, str]:
    """Public URL of an image hosted by ImgBB."""
    try:
        upload = ImgBBUpload.model_validate(payload)
    except ValidationError as e:
        return Result.err(_describe(e))
    if not upload.data.url:
        return Result.err("data.url: empty")
    return Result.ok(upload.data.url)
