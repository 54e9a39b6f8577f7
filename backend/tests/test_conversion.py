"""Tests for the conversion worker and request orchestrator."""
import asyncio
import threading
from io import BytesIO
from pathlib import Path

import pytest
from fastapi import UploadFile
from starlette.datastructures import Headers

from heic_converter.analytics.service import AnalyticsAggregator
from heic_converter.artifacts.store import ArtifactStore
from heic_converter.conversion.orchestrator import ConversionOrchestrator
from heic_converter.conversion.worker import ConversionWorker, output_filename
from heic_converter.errors import ConversionError, ValidationError
from heic_converter.intake.schemas import UploadedInput
from heic_converter.intake.service import UploadIntake


def _upload(name, payload=b"ftypheic-data", content_type="image/heic"):
    return UploadFile(
        file=BytesIO(payload),
        filename=name,
        headers=Headers({"content-type": content_type}),
    )


@pytest.fixture
def store(tmp_path) -> ArtifactStore:
    return ArtifactStore(output_dir=str(tmp_path / "output"), grace_period_seconds=60)


@pytest.fixture
def intake(tmp_path) -> UploadIntake:
    return UploadIntake(
        upload_dir=str(tmp_path / "uploads"),
        max_file_size_bytes=4096,
        allowed_extensions=[".heic", ".heif"],
        allowed_mime_types=["image/heic", "image/heif"],
    )


@pytest.fixture
def worker(fake_codec, store) -> ConversionWorker:
    return ConversionWorker(codec=fake_codec, store=store, output_format="JPEG", quality=0.9)


@pytest.fixture
def analytics() -> AnalyticsAggregator:
    return AnalyticsAggregator()


@pytest.fixture
def orchestrator(intake, worker, analytics) -> ConversionOrchestrator:
    return ConversionOrchestrator(intake=intake, worker=worker, analytics=analytics)


def _stored_input(tmp_path, payload: bytes, name: str = "photo.heic") -> UploadedInput:
    path = tmp_path / f"token-{name}"
    path.write_bytes(payload)
    return UploadedInput(
        id="token",
        original_name=name,
        stored_path=str(path),
        size_bytes=len(payload),
        declared_mime_type="image/heic",
    )


class TestOutputFilename:
    @pytest.mark.parametrize("original, expected", [
        ("vacation.heic", "vacation.jpg"),
        ("IMG_0001.HEIF", "IMG_0001.jpg"),
        ("archive.tar.heic", "archive.tar.jpg"),
    ])
    def test_jpeg(self, original, expected):
        assert output_filename(original, "JPEG") == expected

    def test_png(self):
        assert output_filename("a.heic", "PNG") == "a.png"


class TestConversionWorker:
    @pytest.mark.asyncio
    async def test_success_stores_codec_output(self, worker, store, fake_codec, tmp_path):
        uploaded = _stored_input(tmp_path, b"heic-bytes")

        artifact = await worker.run(uploaded)

        assert artifact.filename == "photo.jpg"
        assert Path(artifact.stored_path).read_bytes() == fake_codec.convert(b"heic-bytes")
        assert artifact.size_bytes == Path(artifact.stored_path).stat().st_size
        assert artifact.id != uploaded.id
        assert fake_codec.calls[0][1:] == ("JPEG", 0.9)

    @pytest.mark.asyncio
    async def test_codec_failure_becomes_conversion_error(self, worker, store, tmp_path):
        uploaded = _stored_input(tmp_path, b"CORRUPT data")

        with pytest.raises(ConversionError, match="Invalid HEIC header"):
            await worker.run(uploaded)

        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_worker_does_not_delete_input(self, worker, tmp_path):
        uploaded = _stored_input(tmp_path, b"CORRUPT")
        with pytest.raises(ConversionError):
            await worker.run(uploaded)
        assert Path(uploaded.stored_path).exists()


class TestConversionOrchestrator:
    @pytest.mark.asyncio
    async def test_success(self, orchestrator, analytics, store, intake):
        response = await orchestrator.handle(_upload("vacation.heic"))

        assert response.success is True
        assert response.filename == "vacation.jpg"
        artifact_id = response.download_path.rsplit("/", 1)[-1]
        assert response.download_path == f"/download/{artifact_id}"
        assert response.file_size == store.resolve(artifact_id).size_bytes

        snap = analytics.snapshot()
        assert (snap.total_conversions, snap.successful_conversions, snap.failed_conversions) == (1, 1, 0)
        assert snap.bytes_converted == response.file_size
        assert list(intake.upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_rejection_counts_failure_only(self, orchestrator, analytics, fake_codec):
        with pytest.raises(ValidationError):
            await orchestrator.handle(_upload("notes.txt", content_type="text/plain"))

        snap = analytics.snapshot()
        assert (snap.total_conversions, snap.successful_conversions, snap.failed_conversions) == (0, 0, 1)
        assert snap.files_processed == 0
        assert fake_codec.calls == []

    @pytest.mark.asyncio
    async def test_missing_file_counts_failure(self, orchestrator, analytics):
        with pytest.raises(ValidationError, match="No file uploaded"):
            await orchestrator.handle(None)
        assert analytics.snapshot().failed_conversions == 1

    @pytest.mark.asyncio
    async def test_codec_failure_cleans_input(self, orchestrator, analytics, intake):
        with pytest.raises(ConversionError):
            await orchestrator.handle(_upload("broken.heic", b"CORRUPT bytes"))

        snap = analytics.snapshot()
        assert (snap.total_conversions, snap.successful_conversions, snap.failed_conversions) == (1, 0, 1)
        assert list(intake.upload_dir.iterdir()) == []

    @pytest.mark.asyncio
    async def test_unexpected_error_still_cleans_input(self, orchestrator, worker, intake, monkeypatch):
        async def boom(uploaded):
            raise RuntimeError("disk full")

        monkeypatch.setattr(worker, "run", boom)

        with pytest.raises(RuntimeError):
            await orchestrator.handle(_upload("a.heic"))
        assert list(intake.upload_dir.iterdir()) == []


class TestConcurrentRequests:
    @pytest.mark.asyncio
    async def test_interleaved_requests_keep_exact_counts(self, orchestrator, analytics, intake, store):
        uploads = []
        for i in range(30):
            if i % 3 == 0:
                uploads.append(_upload(f"broken{i}.heic", b"CORRUPT bytes"))
            elif i % 3 == 1:
                uploads.append(_upload(f"notes{i}.txt", content_type="text/plain"))
            else:
                uploads.append(_upload(f"photo{i}.heic", f"heic-{i}".encode()))

        results = await asyncio.gather(
            *(orchestrator.handle(upload) for upload in uploads),
            return_exceptions=True,
        )

        converted = [r for r in results if not isinstance(r, Exception)]
        assert len(converted) == 10
        assert sum(isinstance(r, ConversionError) for r in results) == 10
        assert sum(isinstance(r, ValidationError) for r in results) == 10

        snap = analytics.snapshot()
        assert snap.total_conversions == 20
        assert snap.files_processed == 20
        assert snap.successful_conversions == 10
        assert snap.failed_conversions == 20
        assert snap.total_conversions == snap.successful_conversions + (snap.failed_conversions - 10)
        assert snap.bytes_converted == sum(r.file_size for r in converted)

        assert len(store) == 10
        assert len({r.download_path for r in converted}) == 10
        assert list(intake.upload_dir.iterdir()) == []

    def test_counters_exact_across_threads(self, analytics):
        def hammer():
            for _ in range(1000):
                analytics.record_attempt()
                analytics.record_success(1)

        threads = [threading.Thread(target=hammer) for _ in range(8)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        snap = analytics.snapshot()
        assert snap.total_conversions == snap.successful_conversions == 8000
        assert snap.bytes_converted == 8000
