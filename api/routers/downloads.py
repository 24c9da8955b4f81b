"""Download router - stored crop outputs."""

import logging
import mimetypes

from fastapi import APIRouter, Depends
from fastapi.responses import FileResponse

from api.dependencies import get_output_storage
from api.models.responses import HistoryResponse
from backend.utils import OutputStorage

logger = logging.getLogger(__name__)

router = APIRouter(tags=["downloads"])


@router.get("/download/{filename}")
async def download_output(
    filename: str,
    output_storage: OutputStorage = Depends(get_output_storage),
):
    """
    Stream a stored output file as an attachment.

    Raises:
        OutputNotFoundError 404: File does not exist
        InvalidParameterError 400: File name tries to leave the output directory
    """
    path = output_storage.resolve(filename)
    media_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
    logger.info(f"Download {path.name} ({media_type})")
    return FileResponse(path, media_type=media_type, filename=path.name)


@router.get("/history", response_model=HistoryResponse)
async def list_history(output_storage: OutputStorage = Depends(get_output_storage)):
    """Stored outputs, newest first."""
    return HistoryResponse(history=[item.to_dict() for item in output_storage.history()])
