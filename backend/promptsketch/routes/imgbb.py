"""
PromptSketch Backend - Image Hosting Route
============================================

What:  POST /api/imgbb/upload, hosts an image and returns its public URL.
How:   Receives multipart `image`, validates it (image/* MIME type, at most
       32 MiB, not empty) and hands it to ImgBBService.
Who:   Called by the frontend before sharing or describing a sketch.

Request Flow:
    1. Client sends multipart/form-data with an `image` field
    2. validate_image_upload() rejects bad input with 400, no upstream call
    3. ImgBBService uploads with the server's key
    4. Return {"url": "..."}
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, UploadFile

from promptsketch.config import Settings
from promptsketch.dependencies import get_imgbb_service, get_settings
from promptsketch.schemas.proxy import ErrorResponse, UploadResponse
from promptsketch.services.imgbb_service import ImgBBService
from promptsketch.services.validation import validate_image_upload

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/imgbb", tags=["ImgBB"])


@router.post(
    "/upload",
    response_model=UploadResponse,
    responses={
        400: {"description": "Missing file, wrong type or too large", "model": ErrorResponse},
        500: {"description": "Configuration, transport or response-shape failure", "model": ErrorResponse},
    },
    summary="Host an image on ImgBB",
)
async def upload_image(
    image: Optional[UploadFile] = File(
        None,
        description="Image file (image/*, max 32MB)",
    ),
    settings: Settings = Depends(get_settings),
    imgbb: ImgBBService = Depends(get_imgbb_service),
) -> UploadResponse:
    try:
        payload = await validate_image_upload(image, settings.max_upload_size)
        logger.info("Received upload: %s, %d bytes", payload.content_type, len(payload.content))
        url = await imgbb.upload(payload)
        return UploadResponse(url=url)
    finally:
        if image is not None:
            await image.close()
