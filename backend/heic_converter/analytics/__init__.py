"""Usage analytics: process-wide counters and a daily archive."""
from .schemas import AnalyticsSnapshot, DailySnapshot
from .service import AnalyticsAggregator

__all__ = ["AnalyticsAggregator", "AnalyticsSnapshot", "DailySnapshot"]
