"""
PromptSketch Backend - Image Generation Route
===============================================

What:  POST /api/stability/generate, text-to-image or image-to-image.
How:   Multipart form fields are validated here, then StabilityService
       generates one image and returns it as a data URL.
Who:   Called by the frontend's "Generate" button.

Form fields:
    prompt           required, non-blank
    height, width    optional, default 1024
    controlImage     optional image file (same checks as uploads)
    useControlImage  "true" enables image-to-image when controlImage is sent
"""

import logging
from dataclasses import replace
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile

from promptsketch.config import Settings
from promptsketch.dependencies import get_settings, get_stability_service
from promptsketch.schemas.proxy import ErrorResponse, ImageResponse
from promptsketch.services.stability_service import GenerationRequest, StabilityService
from promptsketch.services.validation import (
    is_file_present,
    parse_dimension,
    parse_flag,
    require_text,
    validate_image_upload,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/stability", tags=["Stability"])


@router.post(
    "/generate",
    response_model=ImageResponse,
    response_model_by_alias=True,
    responses={
        400: {"description": "Missing prompt or invalid control image", "model": ErrorResponse},
        500: {"description": "Configuration, transport or response-shape failure", "model": ErrorResponse},
    },
    summary="Generate an image with Stable Diffusion 3",
)
async def generate_image(
    prompt: Optional[str] = Form(None),
    height: Optional[str] = Form(None),
    width: Optional[str] = Form(None),
    controlImage: Optional[UploadFile] = File(None),
    useControlImage: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
    stability: StabilityService = Depends(get_stability_service),
) -> ImageResponse:
    try:
        use_control_image = parse_flag(useControlImage)
        request = GenerationRequest(
            prompt=require_text(prompt, "prompt", "Missing prompt"),
            height=parse_dimension(height, "height"),
            width=parse_dimension(width, "width"),
            use_control_image=use_control_image,
        )
        # The control image only matters in image-to-image mode; an ignored
        # file is not read or validated.
        if use_control_image and is_file_present(controlImage):
            control = await validate_image_upload(
                controlImage, settings.max_upload_size, field="controlImage"
            )
            request = replace(request, control_image=control)

        image_data_url = await stability.generate(request)
        return ImageResponse(image_data_url=image_data_url)
    finally:
        if controlImage is not None:
            await controlImage.close()
