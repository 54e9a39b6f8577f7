"""FastAPI router for artifact downloads."""
import logging

from fastapi import APIRouter, Depends, Request

from .store import ArtifactStore, ExpiringFileResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["artifacts"])


def get_artifact_store(request: Request) -> ArtifactStore:
    return request.app.state.services.store


def download_path(artifact_id: str) -> str:
    """Relative URL a client uses to fetch an artifact."""
    return f"/download/{artifact_id}"


@router.get("/download/{artifact_id}")
async def download(
    artifact_id: str,
    store: ArtifactStore = Depends(get_artifact_store),
) -> ExpiringFileResponse:
    """Stream a converted file, then delete it after the grace period.

    Args:
        artifact_id: Id returned in the ``downloadPath`` of ``POST /convert``.

    Returns:
        The JPEG bytes as an attachment.

    Raises:
        NotFoundError: If the artifact never existed or has expired (404).
    """
    response = store.stream_and_expire(artifact_id)
    logger.info("[download] Streaming %s", artifact_id)
    return response
