"""Crop router - aesthetic crop endpoints."""

import logging
from functools import partial
from typing import List, Optional

import anyio
import anyio.to_thread
from fastapi import APIRouter, Depends, File, Form, Request, UploadFile
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_client_ip, get_crop_service, read_upload
from api.services.crop_service import CropService
from backend.errors import (
    AITimeoutError,
    BadImageFormatError,
    CropProcessingError,
    CropServiceError,
    InvalidParameterError,
)
from config.constants import MSG_TIMEOUT_ZH, MSG_UNAVAILABLE_EN, MSG_UNAVAILABLE_ZH

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crop", tags=["crop"])


@router.post("/aesthetic")
async def crop_aesthetic(
    image: Optional[UploadFile] = File(default=None, description="Image to crop"),
    language: str = Form(default="zh", description="Prompt language (en/zh/es/ja)"),
    crop_service: CropService = Depends(get_crop_service),
):
    """
    Crop one image the way the vision model finds most aesthetic.

    Args:
        image: Uploaded image
        language: Language of the analysis text

    Returns:
        Analysis, crop parameters, crop metadata and the stored output

    Raises:
        CropServiceError: Mapped to its status by the app error handler
    """
    try:
        upload = await read_upload(image)
        logger.info(f"Aesthetic crop request: {(upload[0] or 'unknown')[:100]!r}")
        return await run_in_threadpool(crop_service.crop_aesthetic, upload, language)

    except CropServiceError:
        raise

    except ValueError as e:
        logger.warning(f"Aesthetic crop validation error: {e}")
        raise InvalidParameterError(str(e))

    except Exception as e:
        logger.error(f"Aesthetic crop error: {e}", exc_info=True)
        raise CropProcessingError("Crop failed. Check server logs for details.")


@router.post("/batch-aesthetic")
async def crop_batch_aesthetic(
    images: Optional[List[UploadFile]] = File(default=None, description="Up to 20 images"),
    language: str = Form(default="zh", description="Prompt language (en/zh/es/ja)"),
    crop_service: CropService = Depends(get_crop_service),
):
    """Aesthetic crop for several images; failures are reported per file."""
    if not images:
        raise BadImageFormatError("Please upload at least one image")

    try:
        uploads = [await read_upload(image) for image in images]
        return await run_in_threadpool(crop_service.crop_batch, uploads, language)

    except CropServiceError:
        raise

    except Exception as e:
        logger.error(f"Batch crop error: {e}", exc_info=True)
        raise CropProcessingError("Batch processing failed. Check server logs for details.")


@router.post("")
async def crop_public(
    request: Request,
    image: Optional[UploadFile] = File(default=None, description="Image to crop"),
    language: str = Form(default="zh", description="Prompt language (en/zh/es/ja)"),
    crop_service: CropService = Depends(get_crop_service),
):
    """
    Public crop endpoint with daily quota, rate limit and dedup cache.

    Raises:
        QuotaExceededError 429: Daily free quota used up
        RateLimitExceededError 429: Too many requests in the window
        UnauthorizedOriginError 403: Origin not allowed
        AITimeoutError 504: The crop did not finish within CROP_SERVICE_TIMEOUT
    """
    client_ip = get_client_ip(request)
    origin = request.headers.get("origin")
    timeout = crop_service.settings.crop_service_timeout

    try:
        upload = await read_upload(image)
        with anyio.fail_after(timeout):
            # The worker thread is abandoned on timeout and finishes on its own
            return await anyio.to_thread.run_sync(
                partial(crop_service.public_crop, upload, client_ip, origin, language),
                abandon_on_cancel=True,
            )

    except TimeoutError:
        logger.warning(f"Public crop for {client_ip} exceeded {timeout}s")
        raise AITimeoutError(MSG_TIMEOUT_ZH, details=f"Crop did not finish within {timeout}s")

    except CropServiceError:
        raise

    except Exception as e:
        logger.error(f"Public crop error for {client_ip}: {e}", exc_info=True)
        raise CropProcessingError(MSG_UNAVAILABLE_ZH, details=MSG_UNAVAILABLE_EN)


@router.get("")
async def crop_info(crop_service: CropService = Depends(get_crop_service)):
    """Service info and enabled features."""
    return crop_service.service_info()
