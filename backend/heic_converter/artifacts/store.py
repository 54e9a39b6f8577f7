"""In-memory registry of converted artifacts with deferred deletion.

Artifacts are written to ``{output_dir}/{id}-{filename}`` and tracked in a
dict keyed by id. Nothing is written about them anywhere else, so a restart
forgets every artifact; files that were never downloaded stay on disk as
orphans.

Deletion happens only after a download: once the response stream ends
(completed or aborted by the client) an expiry timer is armed, and after
the grace period the file is removed and the id forgotten. The grace period
lets a browser retry or follow a redirect against the same URL.

Timers are asyncio tasks kept in ``_timers`` so they can be listed and are
drained by :meth:`ArtifactStore.shutdown`.
"""
from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path
from typing import Callable, Dict, List

from starlette.responses import FileResponse
from starlette.types import Receive, Scope, Send

from ..errors import NotFoundError
from ..fs import remove_file_quietly
from .schemas import ConvertedArtifact

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_SECONDS = 5.0


class ExpiringFileResponse(FileResponse):
    """FileResponse that calls ``on_complete`` once the stream is over.

    ``on_complete`` runs whether the body was fully sent or the client went
    away mid-stream.
    """

    def __init__(self, *args, on_complete: Callable[[], None], **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self._on_complete = on_complete

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self._on_complete()


class ArtifactStore:
    """Owns converted files between conversion and download.

    Args:
        output_dir: Directory the artifacts are written to.
        grace_period_seconds: Delay between the end of a download stream and
            deletion of the artifact.
        media_type: Content type served for downloads.
    """

    def __init__(
        self,
        output_dir: str,
        grace_period_seconds: float = DEFAULT_GRACE_PERIOD_SECONDS,
        media_type: str = "image/jpeg",
    ) -> None:
        self._output_dir = Path(output_dir)
        self._grace_period = grace_period_seconds
        self._media_type = media_type
        self._artifacts: Dict[str, ConvertedArtifact] = {}
        self._timers: Dict[str, asyncio.Task] = {}  # type: ignore[type-arg]
        self._output_dir.mkdir(parents=True, exist_ok=True)

    @property
    def output_dir(self) -> Path:
        return self._output_dir

    @property
    def grace_period(self) -> float:
        return self._grace_period

    # ------------------------------------------------------------------
    # Storage
    # ------------------------------------------------------------------

    async def put(self, data: bytes, filename: str) -> ConvertedArtifact:
        """Write *data* to disk and register it under a fresh id."""
        artifact_id = uuid.uuid4().hex
        stored_path = self._output_dir / f"{artifact_id}-{filename}"

        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, stored_path.write_bytes, data)

        artifact = ConvertedArtifact(
            id=artifact_id,
            filename=filename,
            stored_path=str(stored_path),
            size_bytes=len(data),
        )
        self._artifacts[artifact_id] = artifact
        logger.info("[artifacts] Stored %s as %s (%d bytes)", filename, artifact_id, len(data))
        return artifact

    def resolve(self, artifact_id: str) -> ConvertedArtifact:
        """Look up a live artifact.

        Raises:
            NotFoundError: If the id is unknown, expired, or its file is gone.
        """
        artifact = self._artifacts.get(artifact_id)
        if artifact is None:
            raise NotFoundError()
        if not Path(artifact.stored_path).is_file():
            logger.warning("[artifacts] File for %s vanished from disk", artifact_id)
            self._artifacts.pop(artifact_id, None)
            raise NotFoundError()
        return artifact

    def __contains__(self, artifact_id: str) -> bool:
        return artifact_id in self._artifacts

    def __len__(self) -> int:
        return len(self._artifacts)

    # ------------------------------------------------------------------
    # Download + expiry
    # ------------------------------------------------------------------

    def stream_and_expire(self, artifact_id: str) -> ExpiringFileResponse:
        """Build a download response that arms the expiry timer when done.

        Raises:
            NotFoundError: If the artifact cannot be resolved.
        """
        artifact = self.resolve(artifact_id)
        return ExpiringFileResponse(
            path=artifact.stored_path,
            filename=artifact.filename,
            media_type=self._media_type,
            on_complete=lambda: self.schedule_expiry(artifact_id),
        )

    def schedule_expiry(self, artifact_id: str) -> None:
        """Arm the grace-period timer for *artifact_id*.

        At most one timer exists per artifact; a second download during the
        grace period does not extend it.
        """
        if artifact_id in self._timers:
            return
        task = asyncio.get_running_loop().create_task(self._expire_later(artifact_id))
        self._timers[artifact_id] = task
        logger.debug("[artifacts] Expiry of %s scheduled in %ss", artifact_id, self._grace_period)

    async def _expire_later(self, artifact_id: str) -> None:
        try:
            await asyncio.sleep(self._grace_period)
            self.expire(artifact_id)
        finally:
            self._timers.pop(artifact_id, None)

    def expire(self, artifact_id: str) -> bool:
        """Forget an artifact and delete its file.

        Returns:
            True if the artifact was live, False if it was already gone.
            Deletion failures are logged, never raised.
        """
        artifact = self._artifacts.pop(artifact_id, None)
        if artifact is None:
            logger.debug("[artifacts] Expiry of %s skipped: already gone", artifact_id)
            return False
        if remove_file_quietly(artifact.stored_path):
            logger.info("[artifacts] Cleaned up file: %s", artifact.filename)
        return True

    def pending_expiries(self) -> List[str]:
        """Ids whose expiry timer is armed but has not fired yet."""
        return list(self._timers)

    async def shutdown(self) -> None:
        """Cancel pending timers and delete their artifacts right away."""
        pending = dict(self._timers)
        for task in pending.values():
            task.cancel()
        if pending:
            await asyncio.gather(*pending.values(), return_exceptions=True)
        for artifact_id in pending:
            self.expire(artifact_id)
        self._timers.clear()
        logger.info(
            "[artifacts] Store stopped; %d pending expiries flushed, %d artifacts left on disk",
            len(pending),
            len(self._artifacts),
        )
