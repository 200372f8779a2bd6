"""
PromptSketch Backend - Request Validator
==========================================

What:  Checks inbound fields and files before any upstream call is made.
How:   Plain functions that return the cleaned value or raise
       ValidationError (HTTP 400). Upload checks read at most
       `max_size + 1` bytes so an oversized file is never held in full.
Who:   Route handlers and provider services, as the first step of every
       integration.

Upload checks, cheapest first:
    1. Part present              "Missing image file"
    2. MIME type prefix image/   declared by the client on the form part
    3. Declared size             UploadFile.size, when the client sent it
    4. Actual size               bytes read, bounded to max_size + 1
    5. Not empty
"""

import logging
from dataclasses import dataclass
from typing import Any, List, Optional

from fastapi import UploadFile

from promptsketch.exceptions import ValidationError

logger = logging.getLogger(__name__)

DEFAULT_DIMENSION = 1024


@dataclass(frozen=True)
class ImagePayload:
    """A validated image file, ready to be forwarded as a multipart part."""

    filename: str
    content_type: str
    content: bytes

    def as_file_part(self):
        """httpx `files` tuple for this image."""
        return (self.filename, self.content, self.content_type)


def _format_mb(size: int) -> str:
    return f"{size / (1024 * 1024):.0f}MB"


def require_text(value: Optional[str], field: str, message: Optional[str] = None) -> str:
    """Non-empty string field, stripped."""
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(message=message or f"Missing {field}", field=field)
    return value.strip()


def require_messages(value: Any) -> List[Any]:
    """The `messages` field of a chat body: present and a list (possibly empty)."""
    if value is None or not isinstance(value, list):
        raise ValidationError(message="Missing or invalid messages", field="messages")
    return value


def parse_dimension(value: Optional[str], field: str) -> int:
    """Optional image dimension from a form field, defaulting to 1024."""
    if value is None or not str(value).strip():
        return DEFAULT_DIMENSION
    try:
        number = int(str(value).strip())
    except ValueError:
        raise ValidationError(
            message=f"{field} must be a whole number of pixels",
            field=field,
            context={"value": str(value)[:32]},
        )
    if number <= 0:
        raise ValidationError(message=f"{field} must be positive", field=field)
    return number


def parse_flag(value: Optional[str]) -> bool:
    """Form checkbox semantics: only the string 'true' enables the flag."""
    return isinstance(value, str) and value.strip().lower() == "true"


def is_file_present(upload: Optional[UploadFile]) -> bool:
    """
    Whether a multipart file part was actually sent.

    Browsers submit an empty, nameless part for an untouched file input.
    """
    if upload is None or isinstance(upload, str):
        return False
    return bool(upload.filename) or bool(upload.size)


async def validate_image_upload(
    upload: Optional[UploadFile],
    max_size: int,
    field: str = "image",
    missing_message: str = "Missing image file",
) -> ImagePayload:
    """
    Validate an uploaded image and read its bytes.

    Raises:
        ValidationError: part missing, not an image, too large, or empty.
    """
    if not is_file_present(upload):
        raise ValidationError(message=missing_message, field=field)

    content_type = (upload.content_type or "").lower()
    if not content_type.startswith("image/"):
        raise ValidationError(
            message=f"File type '{content_type or 'unknown'}' is not supported. Please upload an image.",
            field=field,
            context={"content_type": content_type},
        )

    if upload.size is not None and upload.size > max_size:
        raise ValidationError(
            message=f"File size exceeds maximum of {_format_mb(max_size)}. Please upload a smaller image.",
            field=field,
            context={"max_size": max_size, "reported_size": upload.size},
        )

    content = await upload.read(max_size + 1)
    if len(content) > max_size:
        raise ValidationError(
            message=f"File size exceeds maximum of {_format_mb(max_size)}. Please upload a smaller image.",
            field=field,
            context={"max_size": max_size, "actual_size": f">{max_size}"},
        )
    if not content:
        raise ValidationError(message="Uploaded file is empty", field=field)

    logger.debug("Validated %s upload: %s, %d bytes", field, content_type, len(content))
    return ImagePayload(
        filename=upload.filename or "image",
        content_type=content_type,
        content=content,
    )
