"""Per-application service container.

Built once in the lifespan handler and stored on ``app.state.services``.
Routers reach it through small ``Depends`` getters, so tests can build an
app with their own config and codec without touching module globals.
"""
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .analytics.service import AnalyticsAggregator
from .artifacts.store import ArtifactStore
from .config import AppConfig
from .conversion.codec import OUTPUT_MEDIA_TYPES, ImageCodec
from .conversion.orchestrator import ConversionOrchestrator
from .conversion.worker import ConversionWorker
from .intake.service import UploadIntake


@dataclass
class ConverterServices:
    config:       AppConfig
    analytics:    AnalyticsAggregator
    store:        ArtifactStore
    intake:       UploadIntake
    worker:       ConversionWorker
    orchestrator: ConversionOrchestrator
    started_at:   float

    @property
    def storage_roots(self) -> tuple:
        """Directories whose paths must never reach a client."""
        return (self.config.storage.upload_dir, self.config.storage.output_dir)


def build_services(
    config: AppConfig,
    codec: ImageCodec,
    started_at: float,
    clock: Optional[Callable[[], datetime]] = None,
) -> ConverterServices:
    """Wire every component from *config*."""
    output_format = config.conversion.output_format.upper()

    analytics = AnalyticsAggregator(
        clock=clock,
        archive_max_days=config.analytics.archive_max_days,
    )
    store = ArtifactStore(
        output_dir=config.storage.output_dir,
        grace_period_seconds=config.storage.grace_period_seconds,
        media_type=OUTPUT_MEDIA_TYPES.get(output_format, "application/octet-stream"),
    )
    intake = UploadIntake(
        upload_dir=config.storage.upload_dir,
        max_file_size_bytes=config.intake.max_file_size_bytes,
        allowed_extensions=config.intake.allowed_extensions,
        allowed_mime_types=config.intake.allowed_mime_types,
    )
    worker = ConversionWorker(
        codec=codec,
        store=store,
        output_format=output_format,
        quality=config.conversion.quality,
    )
    orchestrator = ConversionOrchestrator(intake=intake, worker=worker, analytics=analytics)

    return ConverterServices(
        config=config,
        analytics=analytics,
        store=store,
        intake=intake,
        worker=worker,
        orchestrator=orchestrator,
        started_at=started_at,
    )
