"""
PromptSketch Backend - ImgBB Service
======================================

What:  Hosts an uploaded image on ImgBB and returns its public URL.
How:   Multipart POST to the ImgBB upload endpoint. Unlike the other
       providers the API key travels as the `key` form field, not a header.
Who:   routes/imgbb.py

Success payload (fields we read):
    {"data": {"url": "https://i.ibb.co/..."}, "success": true, "status": 200}
"""

import logging

from promptsketch.schemas.upstream import decode_imgbb_upload
from promptsketch.services.normalizer import unwrap
from promptsketch.services.provider_base import ProviderService
from promptsketch.services.validation import ImagePayload

logger = logging.getLogger(__name__)


class ImgBBService(ProviderService):
    """ImgBB image hosting."""

    provider = "ImgBB"
    credential_setting = "imgbb_api_key"

    async def upload(self, image: ImagePayload) -> str:
        """
        Upload an already-validated image.

        Returns:
            Public URL of the hosted image.
        """
        data = {"key": self.credential()}
        files = {"image": image.as_file_part()}

        logger.info("Uploading image to ImgBB: %s, %d bytes", image.content_type, len(image.content))
        response = await self.upstream.post_multipart(
            self.provider, self.settings.imgbb_upload_url, data=data, files=files
        )
        body = self.json_of(response, "Failed to upload image")
        return unwrap(self.provider, decode_imgbb_upload(body))
