"""Analyze router - crop solutions under contract v1."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile
from fastapi.concurrency import run_in_threadpool

from api.dependencies import get_analyze_service, get_client_ip, read_upload
from api.models.responses import CropSolution
from api.services.analyze_service import AnalyzeService
from backend.errors import CropProcessingError, CropServiceError
from config.constants import ANALYZE_PROMPT_VERSION, CROP_API_CONTRACT_VERSION, DEFAULT_SCENE

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/crop/analyze", tags=["analyze"])

CONTRACT_HEADERS = {
    "X-Crop-API-Version": CROP_API_CONTRACT_VERSION,
    "X-Prompt-Version": ANALYZE_PROMPT_VERSION,
}


@router.post("", response_model=CropSolution)
async def analyze_crop(
    request: Request,
    response: Response,
    image: Optional[UploadFile] = File(default=None, description="Image to analyze"),
    scene: str = Form(default=DEFAULT_SCENE, description="Target scene"),
    ratio: Optional[str] = Form(default=None, description="Aspect ratio W:H"),
    analyze_service: AnalyzeService = Depends(get_analyze_service),
):
    """
    Suggest a crop for a scene and ratio.

    Falls back to a centered crop when the model gives no usable answer,
    so only request errors (rate limit, bad image, bad ratio) fail.
    """
    response.headers.update(CONTRACT_HEADERS)
    client_ip = get_client_ip(request)
    request_id = request.state.request_id

    try:
        filename, content_type, data = await read_upload(image)
        return await run_in_threadpool(
            analyze_service.analyze,
            filename,
            content_type,
            data,
            client_ip,
            scene,
            ratio,
            request_id,
        )

    except CropServiceError:
        raise

    except Exception as e:
        logger.error(f"[{request_id}] Analyze error: {e}", exc_info=True)
        raise CropProcessingError(
            "Internal server error",
            details="An unexpected error occurred during image analysis",
        )


@router.get("")
async def analyze_info(
    response: Response,
    analyze_service: AnalyzeService = Depends(get_analyze_service),
):
    """Contract info."""
    response.headers["X-Crop-API-Version"] = CROP_API_CONTRACT_VERSION
    return analyze_service.contract_info()
