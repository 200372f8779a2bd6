"""
PromptSketch Backend - Stability AI Service
=============================================

What:  Image generation through Stability AI's Stable Diffusion 3 endpoint.
How:   Multipart POST to {stability_base_url}/generate/sd3 with a bearer
       token and `Accept: image/*`, so a success body is the raw image.
       The bytes are returned to the client as a base64 data URL.
Who:   routes/stability.py

Modes:
    text-to-image    prompt, height, width, model, negative_prompt=""
    image-to-image   prompt, height, width, model, mode, image,
                     output_format=png, strength=0.7
                     (only when the client asked for it AND sent an image)
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from promptsketch.exceptions import UpstreamShapeError
from promptsketch.services.normalizer import to_data_url
from promptsketch.services.provider_base import ProviderService
from promptsketch.services.validation import DEFAULT_DIMENSION, ImagePayload, require_text

logger = logging.getLogger(__name__)

TEXT_TO_IMAGE = "text-to-image"
IMAGE_TO_IMAGE = "image-to-image"
IMAGE_TO_IMAGE_STRENGTH = "0.7"
IMAGE_TO_IMAGE_OUTPUT_FORMAT = "png"


@dataclass(frozen=True)
class GenerationRequest:
    """Validated inputs of one generation call."""

    prompt: str
    height: int = DEFAULT_DIMENSION
    width: int = DEFAULT_DIMENSION
    control_image: Optional[ImagePayload] = None
    use_control_image: bool = False

    @property
    def mode(self) -> str:
        if self.use_control_image and self.control_image is not None:
            return IMAGE_TO_IMAGE
        return TEXT_TO_IMAGE


class StabilityService(ProviderService):
    """Stability AI stable-image generation."""

    provider = "Stability AI"
    credential_setting = "stability_key"

    @property
    def generate_url(self) -> str:
        return f"{self.settings.stability_base_url.rstrip('/')}/generate/sd3"

    def build_form(self, request: GenerationRequest) -> Tuple[Dict[str, str], Dict[str, Any]]:
        """
        Multipart fields and files for a generation request.

        Returns:
            (data, files) ready for UpstreamClient.post_multipart.
        """
        data = {
            "prompt": request.prompt.strip(),
            "height": str(request.height),
            "width": str(request.width),
            "model": self.settings.stability_model,
        }
        if request.mode == IMAGE_TO_IMAGE:
            data["mode"] = IMAGE_TO_IMAGE
            data["output_format"] = IMAGE_TO_IMAGE_OUTPUT_FORMAT
            data["strength"] = IMAGE_TO_IMAGE_STRENGTH
            files = {"image": request.control_image.as_file_part()}
        else:
            data["negative_prompt"] = ""
            # Stability only accepts multipart; the empty part makes httpx
            # encode the body that way when no image is attached.
            files = {"none": b""}
        return data, files

    async def generate(self, request: GenerationRequest) -> str:
        """
        Generate one image and return it as a data URL.

        Raises:
            ValidationError:        blank prompt
            ConfigurationError:     STABILITY_KEY missing
            UpstreamRejectedError:  non-2xx from Stability
            UpstreamTransportError: network failure
            UpstreamShapeError:     2xx with an empty or non-image body
        """
        require_text(request.prompt, "prompt", "Missing prompt")
        headers = self.bearer_headers(Accept="image/*")
        data, files = self.build_form(request)

        logger.info(
            "Generating image: mode=%s, %dx%d, prompt=%d chars",
            request.mode,
            request.width,
            request.height,
            len(data["prompt"]),
        )
        response = await self.upstream.post_multipart(
            self.provider, self.generate_url, data=data, files=files, headers=headers
        )
        self.check(response, "Failed to generate image")

        content_type = response.headers.get("content-type", "")
        if not response.content:
            raise UpstreamShapeError(self.provider, reason="empty image body")
        if content_type and not content_type.lower().startswith("image/"):
            raise UpstreamShapeError(self.provider, reason=f"unexpected content-type {content_type}")
        return to_data_url(response.content, content_type)
