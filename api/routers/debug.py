"""Debug router - try arbitrary prompts and models against an image."""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse

from api.dependencies import get_crop_advisor, get_image_processor, read_upload
from api.models.responses import DebugAnalysisResponse
from backend.errors import CropServiceError
from backend.imaging import ImageProcessor
from backend.vision import CropAdvisor

logger = logging.getLogger(__name__)

router = APIRouter(tags=["debug"])


def _failure(status_code: int, error: str, metadata: Optional[dict] = None) -> JSONResponse:
    body = DebugAnalysisResponse(success=False, error=error, metadata=metadata or {})
    return JSONResponse(status_code=status_code, content=body.model_dump())


@router.post("/analyze-debug", response_model=DebugAnalysisResponse)
async def analyze_debug(
    image: Optional[UploadFile] = File(default=None, description="Image to analyze"),
    model: Optional[str] = Form(default=None, description="Model name"),
    prompt: Optional[str] = Form(default=None, description="Prompt with ${originalWidth}/${originalHeight}"),
    crop_advisor: CropAdvisor = Depends(get_crop_advisor),
    image_processor: ImageProcessor = Depends(get_image_processor),
):
    """
    Run a custom prompt with a chosen model.

    Returns:
        success + data on a valid reply, success=false + error otherwise
    """
    if image is None:
        return _failure(400, "No image file provided")
    if not model or not prompt:
        return _failure(400, "Both model and prompt are required")

    logger.info(f"Debug analysis with model {model}, prompt length {len(prompt)}")

    try:
        _, content_type, data = await read_upload(image)
        width, height = image_processor.read_dimensions(data)
        image_b64, analysis_mime = image_processor.analysis_payload(data, content_type)
    except CropServiceError as e:
        return _failure(e.status_code, str(e))

    metadata = {"model": model, "original_width": width, "original_height": height}
    try:
        result = await run_in_threadpool(
            crop_advisor.analyze_debug,
            image_b64,
            prompt,
            model,
            width,
            height,
            analysis_mime,
        )
    except CropServiceError as e:
        logger.warning(f"Debug analysis failed with {model}: {e}")
        return _failure(500, str(e), metadata)

    metadata["prompt_length"] = len(prompt)
    return DebugAnalysisResponse(success=True, data=result, metadata=metadata)
