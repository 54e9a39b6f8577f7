"""Pydantic schemas for usage analytics.

Field names are snake_case in Python and camelCase on the wire, matching
what the web client's dashboard reads.
"""
from datetime import datetime
from typing import Dict

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class DailySnapshot(BaseModel):
    """Cumulative counters archived when the calendar date advanced.

    These are running totals at rollover time, not per-day deltas.
    """
    conversions: int = Field(..., ge=0)
    successful:  int = Field(..., ge=0)
    failed:      int = Field(..., ge=0)
    files:       int = Field(..., ge=0)


class AnalyticsSnapshot(BaseModel):
    """Response body of ``GET /analytics``."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    total_conversions:      int = Field(..., ge=0)
    successful_conversions: int = Field(..., ge=0)
    failed_conversions:     int = Field(..., ge=0)
    files_processed:        int = Field(..., ge=0)
    bytes_converted:        int = Field(..., ge=0)
    daily_archive:          Dict[str, DailySnapshot] = Field(default_factory=dict)
    last_reset_date:        str
    current_date:           datetime
