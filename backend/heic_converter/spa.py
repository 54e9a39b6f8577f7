"""Fallback router serving the built web client.

Must be registered after every API router: it matches any GET path.
Existing files under the client build directory are served as-is,
everything else gets the client's ``index.html``.
"""
import logging
from pathlib import Path

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse
from starlette.responses import Response

logger = logging.getLogger(__name__)

router = APIRouter(tags=["client"])


def _within(path: Path, root: Path) -> bool:
    try:
        path.relative_to(root)
    except ValueError:
        return False
    return True


@router.get("/{full_path:path}", include_in_schema=False)
async def client_app(full_path: str, request: Request) -> Response:
    """Serve a client asset or the client's entry document."""
    dist_dir = Path(request.app.state.services.config.client.dist_dir).resolve()

    if full_path:
        candidate = (dist_dir / full_path).resolve()
        if _within(candidate, dist_dir) and candidate.is_file():
            return FileResponse(candidate)

    index = dist_dir / "index.html"
    if index.is_file():
        return FileResponse(index, media_type="text/html")

    logger.debug("No client build at %s; %s not found", dist_dir, full_path or "/")
    return JSONResponse({"error": "Not found"}, status_code=404)
