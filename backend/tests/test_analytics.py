"""Unit tests for the analytics aggregator."""
from datetime import datetime, timedelta, timezone

import pytest

from heic_converter.analytics.schemas import AnalyticsSnapshot
from heic_converter.analytics.service import AnalyticsAggregator


class _Clock:
    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now


@pytest.fixture
def clock() -> _Clock:
    return _Clock(datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc))


@pytest.fixture
def aggregator(clock) -> AnalyticsAggregator:
    return AnalyticsAggregator(clock=clock, archive_max_days=3)


class TestCounters:
    """Tests for counter updates."""

    def test_starts_at_zero(self, aggregator):
        snap = aggregator.snapshot()
        assert snap.total_conversions == 0
        assert snap.successful_conversions == 0
        assert snap.failed_conversions == 0
        assert snap.files_processed == 0
        assert snap.bytes_converted == 0
        assert snap.daily_archive == {}
        assert snap.last_reset_date == "2026-10-18"

    def test_attempt_increments_total_and_files(self, aggregator):
        aggregator.record_attempt()
        snap = aggregator.snapshot()
        assert snap.total_conversions == 1
        assert snap.files_processed == 1

    def test_success_counts_bytes(self, aggregator):
        aggregator.record_attempt()
        aggregator.record_success(2048)
        snap = aggregator.snapshot()
        assert snap.successful_conversions == 1
        assert snap.bytes_converted == 2048

    def test_rejection_counts_failure_without_attempt(self, aggregator):
        """A rejected upload is a failure but never a conversion."""
        aggregator.record_failure()
        snap = aggregator.snapshot()
        assert snap.failed_conversions == 1
        assert snap.total_conversions == 0
        assert snap.total_conversions != snap.successful_conversions + snap.failed_conversions


class TestDailyRollover:
    """Tests for the date-keyed archive."""

    def test_same_day_does_not_archive(self, aggregator):
        aggregator.snapshot()
        aggregator.snapshot()
        assert aggregator.snapshot().daily_archive == {}

    def test_date_change_archives_previous_date_once(self, aggregator, clock):
        aggregator.record_attempt()
        aggregator.record_success(10)
        before = aggregator.snapshot()

        clock.now += timedelta(days=1)
        after = aggregator.snapshot()
        again = aggregator.snapshot()

        assert list(after.daily_archive) == ["2026-10-18"]
        assert again.daily_archive == after.daily_archive
        assert after.last_reset_date == "2026-10-19"

        archived = after.daily_archive["2026-10-18"]
        assert archived.conversions == 1
        assert archived.successful == 1
        assert archived.failed == 0
        assert archived.files == 1

        # Rollover never zeroes the live counters.
        assert after.total_conversions == before.total_conversions
        assert after.successful_conversions == before.successful_conversions

    def test_archive_holds_running_totals(self, aggregator, clock):
        aggregator.record_failure()
        clock.now += timedelta(days=1)
        aggregator.snapshot()
        aggregator.record_failure()
        clock.now += timedelta(days=1)
        snap = aggregator.snapshot()

        assert snap.daily_archive["2026-10-18"].failed == 1
        assert snap.daily_archive["2026-10-19"].failed == 2

    def test_archive_is_capped(self, aggregator, clock):
        for _ in range(5):
            clock.now += timedelta(days=1)
            aggregator.snapshot()

        archive = aggregator.snapshot().daily_archive
        assert len(archive) == 3
        assert "2026-10-18" not in archive
        assert "2026-10-22" in archive


class TestSnapshotSerialisation:
    def test_camel_case_keys(self, aggregator):
        body = aggregator.snapshot().model_dump(by_alias=True, mode="json")
        for key in (
            "totalConversions",
            "successfulConversions",
            "failedConversions",
            "filesProcessed",
            "bytesConverted",
            "dailyArchive",
            "lastResetDate",
            "currentDate",
        ):
            assert key in body

    def test_snapshot_type(self, aggregator):
        assert isinstance(aggregator.snapshot(), AnalyticsSnapshot)
