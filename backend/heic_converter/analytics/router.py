"""Usage analytics endpoint."""
from fastapi import APIRouter, Depends, Request

from .schemas import AnalyticsSnapshot
from .service import AnalyticsAggregator

router = APIRouter(tags=["analytics"])


def get_analytics(request: Request) -> AnalyticsAggregator:
    return request.app.state.services.analytics


@router.get("/analytics", response_model=AnalyticsSnapshot)
async def analytics(
    aggregator: AnalyticsAggregator = Depends(get_analytics),
) -> AnalyticsSnapshot:
    """Return cumulative counters, rolling the daily archive over if needed."""
    return aggregator.snapshot()
