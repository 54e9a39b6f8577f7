"""Shared test fixtures and configuration for backend tests."""
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from heic_converter.config import AppConfig
from heic_converter.conversion.codec import ImageCodec
from heic_converter.errors import CodecError
from heic_converter.main import create_app

JPEG_SOI = b"\xff\xd8\xff\xe0"
JPEG_EOI = b"\xff\xd9"


class FakeCodec(ImageCodec):
    """Deterministic stand-in for the Pillow codec.

    Inputs starting with ``CORRUPT`` are rejected the way a real decoder
    rejects a damaged HEIC header.
    """

    def __init__(self) -> None:
        self.calls = []

    def convert(self, input_bytes: bytes, output_format: str = "JPEG", quality: float = 0.9) -> bytes:
        self.calls.append((len(input_bytes), output_format, quality))
        if input_bytes.startswith(b"CORRUPT"):
            raise CodecError("Invalid HEIC header")
        return JPEG_SOI + input_bytes[::-1][:256] + JPEG_EOI


class FakeClock:
    """Callable clock whose time tests can move forward."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def app_config(tmp_path) -> AppConfig:
    """Config with every directory under tmp_path and a short grace period."""
    config = AppConfig()
    config.storage.upload_dir = str(tmp_path / "uploads")
    config.storage.output_dir = str(tmp_path / "output")
    config.storage.grace_period_seconds = 0.2
    config.client.dist_dir = str(tmp_path / "dist")
    return config


@pytest.fixture
def fake_codec() -> FakeCodec:
    return FakeCodec()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def api_client(app_config, fake_codec, fake_clock):
    """Provide a TestClient for an app wired with the fake codec.

    Used as a context manager so the lifespan runs and background expiry
    timers keep an event loop between requests.
    """
    app = create_app(config=app_config, codec=fake_codec, clock=fake_clock)
    with TestClient(app) as client:
        yield client
