"""API routes for sales analytics.

Authentication and role checks happen in front of this service; these
handlers only translate HTTP calls into AnalyticsService operations.
"""

from fastapi import APIRouter, Depends

from backoffice.features.analytics.schemas import (
    PeakHoursResponse,
    RealTimeSalesMetrics,
    SalesForecastResponse,
)
from backoffice.features.analytics.service import AnalyticsService, get_analytics_service

router = APIRouter(prefix="/analytics", tags=["analytics"])


@router.get(
    "/real-time",
    response_model=RealTimeSalesMetrics,
    summary="Today's real-time sales KPIs",
    description="""
Approved sales and expense totals for the current calendar day.

**Caching**: the snapshot is shared by all callers and recomputed at most
once per cache TTL (60 seconds by default). `timestamp` tells you when it
was computed.

**Derived fields**:
- `profit`: total_sales_amount - total_expenses_amount (may be negative)
- `sales_velocity`: sales_last_hour / 4, an approximate per-15-minute rate
""",
)
async def get_real_time(
    service: AnalyticsService = Depends(get_analytics_service),
) -> RealTimeSalesMetrics:
    """Return the cached or freshly computed real-time metrics."""
    return await service.get_real_time_sales_metrics()


@router.get(
    "/forecast",
    response_model=SalesForecastResponse,
    summary="Forecast the rest of today",
    description="""
Hourly forecast from the current hour through 23:00, based on the average
per-hour sales of the trailing 30 days.

Predictions include a random ±10% trend adjustment, so repeated calls
return different values. `historical_data` always has 24 entries.

**Confidence**:
- per hour: `high` (>5 days of data), `medium` (>2), else `low`
- overall: `high` (>100 rows over >14 days), `medium` (>50 rows over >7 days), else `low`
""",
)
async def get_forecast(
    service: AnalyticsService = Depends(get_analytics_service),
) -> SalesForecastResponse:
    """Compute a fresh same-day forecast."""
    return await service.get_sales_forecast()


@router.get(
    "/peak-hours",
    response_model=PeakHoursResponse,
    summary="Busiest hours of the day",
    description="""
Hours-of-day ranked by approved sale count over the trailing 30 days.
`peak_hours` is the top quarter (rounded up, at least one hour when there
is any data); `all_hours` is the full ranking.
""",
)
async def get_peak_hours(
    service: AnalyticsService = Depends(get_analytics_service),
) -> PeakHoursResponse:
    """Rank hours by transaction count."""
    return await service.get_peak_hours_analysis()
