"""
PromptSketch Backend - Image Hosting Route Tests
==================================================

What:  End-to-end tests for POST /api/imgbb/upload.
How:   Multipart uploads through the full app; ImgBB is an UpstreamRecorder.

What we test:
    ✅ Success returns {"url"} with the server's key sent as a form field
    ✅ Missing file and wrong MIME type → 400, >32MB → 413, no upstream call
    ✅ Missing IMGBB_API_KEY → 500 before any network I/O
    ✅ ImgBB errors: verbatim message, status-bearing fallback, transport, shape
"""

import pytest

from conftest import UpstreamRecorder
from promptsketch.config import DEFAULT_MAX_UPLOAD_SIZE

HOSTED = {
    "data": {
        "id": "2ndCYJK",
        "url": "https://i.ibb.co/w04Prt6/sketch.png",
        "display_url": "https://i.ibb.co/98W13PY/sketch.png",
    },
    "success": True,
    "status": 200,
}


class TestImgBBUpload:

    @pytest.mark.asyncio
    async def test_upload_returns_url(self, test_client, upstream, sample_image_bytes):
        upstream.reply(UpstreamRecorder.IMGBB_UPLOAD, json=HOSTED)

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 200
        assert response.json() == {"url": "https://i.ibb.co/w04Prt6/sketch.png"}

    @pytest.mark.asyncio
    async def test_upload_forwards_key_and_file(self, test_client, upstream, sample_image_bytes):
        """The key travels as a form field next to the untouched image bytes."""
        upstream.reply(UpstreamRecorder.IMGBB_UPLOAD, json=HOSTED)

        await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert upstream.calls == 1
        sent = upstream.requests[-1]
        assert sent.headers["content-type"].startswith("multipart/form-data")
        assert b'name="key"' in sent.content
        assert b"test-imgbb-key" in sent.content
        assert b'name="image"; filename="sketch.png"' in sent.content
        assert sample_image_bytes in sent.content
        assert "authorization" not in sent.headers

    @pytest.mark.asyncio
    async def test_missing_file(self, test_client, upstream):
        response = await test_client.post("/api/imgbb/upload", data={"caption": "no file"})

        assert response.status_code == 400
        assert response.json() == {"error": "Missing image file"}
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_non_image_rejected(self, test_client, upstream):
        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("notes.txt", b"just text", "text/plain")},
        )

        assert response.status_code == 400
        assert "not supported" in response.json()["error"]
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_file_over_32mb_rejected(self, test_client, upstream):
        """One byte over 32 MiB is refused by the body size guard before the form is parsed."""
        oversized = b"\x00" * (DEFAULT_MAX_UPLOAD_SIZE + 1)

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("huge.png", oversized, "image/png")},
        )

        assert response.status_code == 413
        assert response.json() == {"error": "Request body exceeds maximum of 32MB."}
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_missing_key(self, bare_client, upstream, sample_image_bytes):
        response = await bare_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 500
        assert "not configured" in response.json()["error"]
        assert upstream.calls == 0

    @pytest.mark.asyncio
    async def test_imgbb_error_message_is_verbatim(self, test_client, upstream, sample_image_bytes):
        upstream.reply(
            UpstreamRecorder.IMGBB_UPLOAD,
            status_code=400,
            json={"status_code": 400, "error": {"message": "Invalid API v1 key.", "code": 100}},
        )

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid API v1 key."}

    @pytest.mark.asyncio
    async def test_imgbb_non_json_error_mentions_status(self, test_client, upstream, sample_image_bytes):
        upstream.reply(UpstreamRecorder.IMGBB_UPLOAD, status_code=503, text="Service Unavailable")

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 503
        assert response.json() == {"error": "Failed to upload image (HTTP 503)"}

    @pytest.mark.asyncio
    async def test_success_without_url_is_shape_error(self, test_client, upstream, sample_image_bytes):
        upstream.reply(UpstreamRecorder.IMGBB_UPLOAD, json={"data": {"id": "2ndCYJK"}, "success": True})

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "ImgBB returned an invalid response shape"}

    @pytest.mark.asyncio
    async def test_success_with_html_body(self, test_client, upstream, sample_image_bytes):
        """A 200 that is not JSON is a broken transport, not a shape problem."""
        upstream.reply(UpstreamRecorder.IMGBB_UPLOAD, text="<html>maintenance</html>")

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Received a malformed response from ImgBB."}

    @pytest.mark.asyncio
    async def test_transport_error(self, test_client, upstream, sample_image_bytes):
        upstream.fail(UpstreamRecorder.IMGBB_UPLOAD)

        response = await test_client.post(
            "/api/imgbb/upload",
            files={"image": ("sketch.png", sample_image_bytes, "image/png")},
        )

        assert response.status_code == 500
        assert response.json() == {"error": "Could not get a response from ImgBB. Please try again later."}
