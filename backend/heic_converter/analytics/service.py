"""In-process usage counters with a date-keyed archive.

One :class:`AnalyticsAggregator` is created per application in the lifespan
handler and handed to request handlers through ``app.state``.

Counter semantics:
    - ``total_conversions`` / ``files_processed`` move only when Intake
      accepted a file and conversion is about to start.
    - ``failed_conversions`` moves for every rejected request (no file, bad
      type, too large) as well as for codec and unexpected failures.

    So ``total == successful + failed`` does not hold in general: a request
    rejected before conversion counts as failed but never as a conversion.

Thread Safety:
    Every mutation and the rollover check run under a ``threading.Lock``,
    so counts stay exact even if a codec thread ever reports in.

Lifetime:
    State is memory-only. A restart loses the counters and the archive.
"""
import logging
import threading
from collections import OrderedDict
from datetime import date, datetime
from typing import Callable, Optional

from .schemas import AnalyticsSnapshot, DailySnapshot

logger = logging.getLogger(__name__)

DEFAULT_ARCHIVE_MAX_DAYS = 90


def _local_now() -> datetime:
    return datetime.now().astimezone()


class AnalyticsAggregator:
    """Lock-guarded conversion counters.

    Args:
        clock: Returns the current (timezone-aware) time. Injected in tests
            to simulate calendar dates.
        archive_max_days: Maximum number of archived dates kept.
    """

    def __init__(
        self,
        clock: Optional[Callable[[], datetime]] = None,
        archive_max_days: int = DEFAULT_ARCHIVE_MAX_DAYS,
    ) -> None:
        self._clock = clock or _local_now
        self._archive_max_days = archive_max_days
        self._lock = threading.Lock()

        self._total_conversions = 0
        self._successful_conversions = 0
        self._failed_conversions = 0
        self._files_processed = 0
        self._bytes_converted = 0
        self._daily_archive: "OrderedDict[str, DailySnapshot]" = OrderedDict()
        self._last_reset_date: date = self._clock().date()

    # ------------------------------------------------------------------
    # Recording
    # ------------------------------------------------------------------

    def record_attempt(self) -> None:
        """A file was received and accepted; conversion is starting."""
        with self._lock:
            self._total_conversions += 1
            self._files_processed += 1

    def record_success(self, bytes_out: int) -> None:
        with self._lock:
            self._successful_conversions += 1
            self._bytes_converted += max(0, bytes_out)

    def record_failure(self) -> None:
        with self._lock:
            self._failed_conversions += 1

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def snapshot(self) -> AnalyticsSnapshot:
        """Run the daily rollover check and return the live counters."""
        now = self._clock()
        with self._lock:
            self._rollover(now.date())
            return AnalyticsSnapshot(
                total_conversions=self._total_conversions,
                successful_conversions=self._successful_conversions,
                failed_conversions=self._failed_conversions,
                files_processed=self._files_processed,
                bytes_converted=self._bytes_converted,
                daily_archive=dict(self._daily_archive),
                last_reset_date=self._last_reset_date.isoformat(),
                current_date=now,
            )

    def _rollover(self, today: date) -> None:
        """Archive the running totals under the previous date.

        Must be called with the lock held. Counters are not reset.
        """
        if today == self._last_reset_date:
            return

        key = self._last_reset_date.isoformat()
        self._daily_archive[key] = DailySnapshot(
            conversions=self._total_conversions,
            successful=self._successful_conversions,
            failed=self._failed_conversions,
            files=self._files_processed,
        )
        while len(self._daily_archive) > self._archive_max_days:
            retired, _ = self._daily_archive.popitem(last=False)
            logger.debug("[analytics] Retired archive entry for %s", retired)

        logger.info("[analytics] Daily rollover: archived %s, now %s", key, today.isoformat())
        self._last_reset_date = today
