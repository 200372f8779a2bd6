"""
PromptSketch Backend - Request Validator Unit Tests
=====================================================

What:  Tests for the field and upload checks that run before any provider call.
How:   Plain function calls; uploads are starlette UploadFile objects over
       in-memory buffers.

Test Strategy:
    ✅ Text fields: missing, blank, stripped
    ✅ messages: None / non-list rejected, empty list accepted
    ✅ Dimensions and flags from form strings
    ✅ Uploads: missing part, MIME type, declared and actual size, empty file
"""

from io import BytesIO

import pytest
from starlette.datastructures import Headers, UploadFile

from promptsketch.config import DEFAULT_MAX_UPLOAD_SIZE
from promptsketch.exceptions import ValidationError
from promptsketch.services.validation import (
    DEFAULT_DIMENSION,
    is_file_present,
    parse_dimension,
    parse_flag,
    require_messages,
    require_text,
    validate_image_upload,
)


def make_upload(content: bytes, filename="sketch.png", content_type="image/png", size=None):
    return UploadFile(
        file=BytesIO(content),
        size=len(content) if size is None else size,
        filename=filename,
        headers=Headers({"content-type": content_type}),
    )


class TestTextFields:

    def test_require_text_strips(self):
        assert require_text("  a red fox  ", "prompt") == "a red fox"

    def test_require_text_missing(self):
        """None and blank strings are both 'missing'."""
        with pytest.raises(ValidationError, match="Missing prompt"):
            require_text(None, "prompt")
        with pytest.raises(ValidationError, match="Missing prompt"):
            require_text("   ", "prompt")

    def test_require_text_custom_message(self):
        with pytest.raises(ValidationError) as exc_info:
            require_text("", "imageDataUrl", "Missing image")
        assert exc_info.value.message == "Missing image"
        assert exc_info.value.status_code == 400
        assert exc_info.value.context["field"] == "imageDataUrl"

    def test_require_messages_accepts_list(self):
        messages = [{"role": "user", "content": "hi"}]
        assert require_messages(messages) is messages

    def test_require_messages_accepts_empty_list(self):
        """An empty conversation is forwarded; the provider decides."""
        assert require_messages([]) == []

    @pytest.mark.parametrize("value", [None, "hello", {"role": "user"}, 3])
    def test_require_messages_rejects_non_list(self, value):
        with pytest.raises(ValidationError, match="Missing or invalid messages"):
            require_messages(value)


class TestFormFields:

    def test_dimension_defaults_to_1024(self):
        assert parse_dimension(None, "height") == DEFAULT_DIMENSION
        assert parse_dimension("", "height") == 1024

    def test_dimension_parses_integer(self):
        assert parse_dimension(" 768 ", "width") == 768

    def test_dimension_rejects_non_integer(self):
        with pytest.raises(ValidationError, match="width must be a whole number"):
            parse_dimension("wide", "width")

    def test_dimension_rejects_non_positive(self):
        with pytest.raises(ValidationError, match="height must be positive"):
            parse_dimension("0", "height")

    @pytest.mark.parametrize(
        "value,expected",
        [("true", True), ("TRUE", True), (" true ", True), ("false", False), ("1", False), (None, False)],
    )
    def test_parse_flag(self, value, expected):
        assert parse_flag(value) is expected


class TestImageUpload:

    def test_file_present(self):
        assert is_file_present(make_upload(b"x"))
        assert not is_file_present(None)
        assert not is_file_present("")

    def test_untouched_file_input_is_not_present(self):
        """Browsers send an empty nameless part for an untouched file input."""
        assert not is_file_present(make_upload(b"", filename=""))

    @pytest.mark.asyncio
    async def test_valid_image(self, sample_image_bytes):
        payload = await validate_image_upload(make_upload(sample_image_bytes), DEFAULT_MAX_UPLOAD_SIZE)
        assert payload.content == sample_image_bytes
        assert payload.content_type == "image/png"
        assert payload.as_file_part() == ("sketch.png", sample_image_bytes, "image/png")

    @pytest.mark.asyncio
    async def test_missing_file(self):
        with pytest.raises(ValidationError, match="Missing image file"):
            await validate_image_upload(None, DEFAULT_MAX_UPLOAD_SIZE)

    @pytest.mark.asyncio
    async def test_non_image_mime_rejected(self):
        upload = make_upload(b"%PDF-1.7", filename="doc.pdf", content_type="application/pdf")
        with pytest.raises(ValidationError, match="not supported"):
            await validate_image_upload(upload, DEFAULT_MAX_UPLOAD_SIZE)

    @pytest.mark.asyncio
    async def test_declared_size_over_32mb_rejected(self):
        """The declared size is enough to reject; the body is never read."""
        upload = make_upload(b"small", size=DEFAULT_MAX_UPLOAD_SIZE + 1)
        with pytest.raises(ValidationError, match="exceeds maximum of 32MB"):
            await validate_image_upload(upload, DEFAULT_MAX_UPLOAD_SIZE)

    @pytest.mark.asyncio
    async def test_actual_size_over_limit_rejected(self):
        """A client that under-reports its size is still caught by the bounded read."""
        upload = make_upload(b"x" * 2048, size=10)
        with pytest.raises(ValidationError, match="exceeds maximum"):
            await validate_image_upload(upload, 1024)

    @pytest.mark.asyncio
    async def test_exactly_at_limit_accepted(self):
        payload = await validate_image_upload(make_upload(b"x" * 1024), 1024)
        assert len(payload.content) == 1024

    @pytest.mark.asyncio
    async def test_empty_file_rejected(self):
        with pytest.raises(ValidationError, match="Uploaded file is empty"):
            await validate_image_upload(make_upload(b"", filename="blank.png"), DEFAULT_MAX_UPLOAD_SIZE)
