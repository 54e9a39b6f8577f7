"""Sequences a conversion request: intake, worker, store, response.

The orchestrator owns the two policies that span components:

Analytics:
    - rejected upload (no file, wrong type, too large): failure only
    - accepted upload: attempt, then success or failure

    Uncaught errors are counted as failures by the top-level handler in
    ``main.py``, not here.

Cleanup:
    The stored upload is discarded whenever the request leaves the
    converting state, whatever the outcome. Discarding is best-effort.
"""
import logging
from typing import Optional

from fastapi import UploadFile

from ..analytics.service import AnalyticsAggregator
from ..artifacts.router import download_path
from ..errors import ConversionError, ValidationError
from ..intake.service import UploadIntake
from .schemas import ConversionState, ConvertResponse
from .worker import ConversionWorker

logger = logging.getLogger(__name__)


class ConversionOrchestrator:
    """Runs one ``POST /convert`` request through its state machine."""

    def __init__(
        self,
        intake: UploadIntake,
        worker: ConversionWorker,
        analytics: AnalyticsAggregator,
    ) -> None:
        self._intake = intake
        self._worker = worker
        self._analytics = analytics

    async def handle(self, upload: Optional[UploadFile]) -> ConvertResponse:
        """Convert *upload* and describe the stored artifact.

        Raises:
            ValidationError: The upload was rejected (400).
            ConversionError: The codec rejected the file (500).
        """
        name = upload.filename if upload is not None else None
        state = ConversionState.RECEIVED

        try:
            uploaded = await self._intake.accept(upload)
        except ValidationError as exc:
            self._analytics.record_failure()
            self._transition(name, state, ConversionState.FAILED, exc.message)
            raise
        state = self._transition(name, state, ConversionState.VALIDATED)

        logger.info("Converting file: %s", uploaded.original_name)
        self._analytics.record_attempt()
        state = self._transition(name, state, ConversionState.CONVERTING)

        try:
            artifact = await self._worker.run(uploaded)
        except ConversionError as exc:
            self._analytics.record_failure()
            self._transition(name, state, ConversionState.FAILED, exc.message)
            raise
        finally:
            self._intake.discard(uploaded)

        self._analytics.record_success(artifact.size_bytes)
        self._transition(name, state, ConversionState.CONVERTED)
        logger.info("Conversion successful: %s", artifact.filename)

        return ConvertResponse(
            filename=artifact.filename,
            download_path=download_path(artifact.id),
            file_size=artifact.size_bytes,
        )

    @staticmethod
    def _transition(
        name: Optional[str],
        current: ConversionState,
        target: ConversionState,
        reason: str = "",
    ) -> ConversionState:
        logger.debug(
            "[convert] %s: %s -> %s%s",
            name or "<no file>",
            current.value,
            target.value,
            f" ({reason})" if reason else "",
        )
        return target
