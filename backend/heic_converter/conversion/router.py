"""FastAPI router for the conversion endpoint."""
from typing import Optional

from fastapi import APIRouter, Depends, File, Request, UploadFile

from .orchestrator import ConversionOrchestrator
from .schemas import ConvertResponse

router = APIRouter(tags=["conversion"])

UPLOAD_FIELD = "heicFile"


def get_orchestrator(request: Request) -> ConversionOrchestrator:
    return request.app.state.services.orchestrator


@router.post("/convert", response_model=ConvertResponse)
async def convert(
    upload: Optional[UploadFile] = File(None, alias=UPLOAD_FIELD),
    orchestrator: ConversionOrchestrator = Depends(get_orchestrator),
) -> ConvertResponse:
    """Convert one HEIC/HEIF upload to JPEG.

    The file must be sent as multipart form data under ``heicFile``.

    Returns:
        ConvertResponse with the download path and exact output size.

    Raises:
        ValidationError: Missing file, not HEIC/HEIF, or over 50MB (400).
        ConversionError: The image could not be decoded (500).
    """
    return await orchestrator.handle(upload)
