"""Analytics aggregation and forecasting service.

Computes real-time sales KPIs behind a short-lived cache, hourly historical
profiles, a jittered same-day forecast and a peak-hour ranking from the
aggregates returned by a TransactionStore.
"""

import asyncio
import datetime
import math
import random
import time
from collections.abc import Callable, Iterable, Sequence
from functools import lru_cache

from backoffice.core.config import Settings, get_settings
from backoffice.core.database import get_session_maker
from backoffice.core.logging import get_logger
from backoffice.features.analytics.cache import MetricCache
from backoffice.features.analytics.schemas import (
    ConfidenceTier,
    ForecastPoint,
    HourlyStats,
    PeakHourRecord,
    PeakHoursResponse,
    RealTimeSalesMetrics,
    SalesForecastResponse,
)
from backoffice.features.analytics.store import (
    DateHourAggregate,
    HourAggregate,
    SqlTransactionStore,
    TransactionStore,
)

logger = get_logger(__name__)

REALTIME_SALES_KEY = "realtime_sales"
HOURS_IN_DAY = 24

# Per-hour forecast confidence: strictly more historical days than the bound
HOUR_CONFIDENCE_HIGH_POINTS = 5
HOUR_CONFIDENCE_MEDIUM_POINTS = 2

# Overall forecast confidence: (min rows, min span in days), both exclusive
FORECAST_CONFIDENCE_HIGH = (100, 14)
FORECAST_CONFIDENCE_MEDIUM = (50, 7)


# =============================================================================
# Pure Helpers
# =============================================================================


def build_hourly_profile(rows: Iterable[DateHourAggregate]) -> dict[int, HourlyStats]:
    """Average daily transaction count and amount for each hour-of-day.

    Each (day, hour) row is one data point for its hour. Hours without any
    rows get a zero-valued entry, so the result always has 24 keys.

    Args:
        rows: Per-(day, hour) aggregates.

    Returns:
        Mapping of hour 0-23 to its averaged stats.
    """
    counts: dict[int, list[int]] = {hour: [] for hour in range(HOURS_IN_DAY)}
    amounts: dict[int, list[float]] = {hour: [] for hour in range(HOURS_IN_DAY)}
    for row in rows:
        counts[row.hour].append(row.transaction_count)
        amounts[row.hour].append(float(row.total_amount))

    profile: dict[int, HourlyStats] = {}
    for hour in range(HOURS_IN_DAY):
        data_points = len(counts[hour])
        if data_points == 0:
            profile[hour] = HourlyStats(avg_transactions=0, avg_amount=0, data_points=0)
            continue
        profile[hour] = HourlyStats(
            avg_transactions=sum(counts[hour]) / data_points,
            avg_amount=sum(amounts[hour]) / data_points,
            data_points=data_points,
        )
    return profile


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negatives."""
    return math.floor(value + 0.5)


def hour_confidence(data_points: int) -> ConfidenceTier:
    """Confidence tier for a single forecast hour."""
    if data_points > HOUR_CONFIDENCE_HIGH_POINTS:
        return ConfidenceTier.HIGH
    if data_points > HOUR_CONFIDENCE_MEDIUM_POINTS:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def generate_hourly_forecast(
    profile: dict[int, HourlyStats],
    current_hour: int,
    rng: random.Random,
    jitter: float = 0.1,
) -> list[ForecastPoint]:
    """Project the remaining hours of today from the hourly profile.

    Each hour gets its own trend multiplier drawn uniformly from
    [1 - jitter, 1 + jitter], so repeated calls differ.

    Args:
        profile: 24-entry hourly profile.
        current_hour: First hour to forecast (inclusive).
        rng: Random source for the trend multiplier.
        jitter: Half-width of the multiplier range.

    Returns:
        One ForecastPoint per hour from current_hour through 23.
    """
    forecast: list[ForecastPoint] = []
    for hour in range(current_hour, HOURS_IN_DAY):
        stats = profile.get(hour) or HourlyStats()
        trend = rng.uniform(1 - jitter, 1 + jitter)
        forecast.append(
            ForecastPoint(
                hour=hour,
                predicted_transactions=round_half_up(stats.avg_transactions * trend),
                predicted_amount=stats.avg_amount * trend,
                confidence=hour_confidence(stats.data_points),
            )
        )
    return forecast


def calculate_forecast_confidence(rows: Sequence[DateHourAggregate]) -> ConfidenceTier:
    """Overall forecast confidence from sample size and date span.

    Args:
        rows: Every (day, hour) row in the historical window.

    Returns:
        'high' with more than 100 rows spanning more than 14 days, 'medium'
        with more than 50 rows spanning more than 7 days, else 'low'.
    """
    sample_size = len(rows)
    span_days = 0
    if rows:
        dates = [row.date for row in rows]
        span_days = (max(dates) - min(dates)).days

    high_rows, high_days = FORECAST_CONFIDENCE_HIGH
    medium_rows, medium_days = FORECAST_CONFIDENCE_MEDIUM
    if sample_size > high_rows and span_days > high_days:
        return ConfidenceTier.HIGH
    if sample_size > medium_rows and span_days > medium_days:
        return ConfidenceTier.MEDIUM
    return ConfidenceTier.LOW


def rank_peak_hours(
    rows: Iterable[HourAggregate],
    share: float = 0.25,
) -> PeakHoursResponse:
    """Rank hours by transaction count and take the top share as peaks.

    The sort is stable, so ties keep the store's row order.

    Args:
        rows: One aggregate per hour-of-day with sales.
        share: Fraction of ranked hours reported as peaks (rounded up).

    Returns:
        Peak hours and the full ranking.
    """
    ranked = sorted(rows, key=lambda row: row.transaction_count, reverse=True)
    records = [
        PeakHourRecord(
            hour=int(row.hour),
            transaction_count=int(row.transaction_count),
            avg_amount=float(row.avg_amount),
            total_amount=float(row.total_amount),
        )
        for row in ranked
    ]
    peak_count = math.ceil(len(records) * share)
    if records and peak_count == 0:
        peak_count = 1
    return PeakHoursResponse(peak_hours=records[:peak_count], all_hours=records)


# =============================================================================
# Service
# =============================================================================


class AnalyticsService:
    """Computes, caches and serves sales analytics.

    One instance per process. The real-time snapshot is shared by every
    caller; the forecast and peak-hour views are recomputed on each call.
    Store failures propagate unchanged and are never retried here.
    """

    def __init__(
        self,
        store: TransactionStore,
        settings: Settings | None = None,
        *,
        clock: Callable[[], datetime.datetime] | None = None,
        monotonic: Callable[[], float] | None = None,
        rng: random.Random | None = None,
    ) -> None:
        """Initialize analytics service.

        Args:
            store: Transaction aggregate source.
            settings: Application settings (defaults to cached settings).
            clock: Returns the current aware datetime in the analytics timezone.
            monotonic: Monotonic clock in seconds for cache ageing.
            rng: Random source for forecast jitter.
        """
        self.settings = settings or get_settings()
        self.store = store
        self._tz = self.settings.tzinfo
        self._clock = clock or (lambda: datetime.datetime.now(self._tz))
        self._rng = rng or random.Random(self.settings.analytics_forecast_seed)
        self.cache = MetricCache(
            self.settings.analytics_cache_ttl_ms,
            monotonic or time.monotonic,
        )
        self._realtime_lock = asyncio.Lock()

    def now(self) -> datetime.datetime:
        """Current time in the analytics timezone."""
        return self._clock()

    def _history_start(self, now: datetime.datetime) -> datetime.datetime:
        return now - datetime.timedelta(days=self.settings.analytics_history_days)

    async def get_real_time_sales_metrics(self) -> RealTimeSalesMetrics:
        """Today's approved sales KPIs, cached for the configured TTL.

        A fresh cache entry is returned as-is without touching the store.
        The entry is only replaced after a successful recomputation.

        Returns:
            Real-time sales metrics snapshot.

        Raises:
            StoreUnavailableError: If the store query fails.
        """
        cached = self.cache.get(REALTIME_SALES_KEY)
        if cached is not None:
            logger.debug("analytics.realtime_cache_hit")
            return cached

        async with self._realtime_lock:
            # Another caller may have refreshed while we waited
            cached = self.cache.get(REALTIME_SALES_KEY)
            if cached is not None:
                logger.debug("analytics.realtime_cache_hit")
                return cached

            now = self.now()
            aggregate = await self.store.aggregate_today(now.date(), now)

            metrics = RealTimeSalesMetrics(
                total_sales_count=aggregate.total_sales_count,
                total_expenses_count=aggregate.total_expenses_count,
                total_sales_amount=aggregate.total_sales_amount,
                total_expenses_amount=aggregate.total_expenses_amount,
                avg_sale_amount=aggregate.avg_sale_amount,
                max_sale_amount=aggregate.max_sale_amount,
                sales_last_hour=aggregate.sales_last_hour,
                sales_last_15min=aggregate.sales_last_15min,
                profit=aggregate.total_sales_amount - aggregate.total_expenses_amount,
                # Extrapolated from the hourly count, not sales_last_15min
                sales_velocity=aggregate.sales_last_hour / 4,
                timestamp=now,
            )
            self.cache.set(REALTIME_SALES_KEY, metrics)

        logger.info(
            "analytics.realtime_computed",
            total_sales_count=metrics.total_sales_count,
            total_expenses_count=metrics.total_expenses_count,
            profit=float(metrics.profit),
            sales_velocity=metrics.sales_velocity,
        )
        return metrics

    async def get_sales_forecast(self) -> SalesForecastResponse:
        """Forecast the rest of today from the trailing history window.

        Not cached. Predicted values carry random jitter, so two calls
        with the same history generally differ.

        Returns:
            Forecast points, the hourly profile and overall confidence.

        Raises:
            StoreUnavailableError: If the store query fails.
        """
        now = self.now()
        rows = list(await self.store.aggregate_by_date_hour(self._history_start(now)))

        profile = build_hourly_profile(rows)
        forecast = generate_hourly_forecast(
            profile,
            current_hour=now.hour,
            rng=self._rng,
            jitter=self.settings.analytics_forecast_jitter,
        )
        confidence = calculate_forecast_confidence(rows)

        logger.info(
            "analytics.forecast_computed",
            history_rows=len(rows),
            current_hour=now.hour,
            forecast_hours=len(forecast),
            confidence=confidence.value,
        )

        return SalesForecastResponse(
            forecast=forecast,
            historical_data=profile,
            confidence=confidence,
        )

    async def get_peak_hours_analysis(self) -> PeakHoursResponse:
        """Rank hours-of-day in the trailing window by transaction count.

        Returns:
            Peak hours (top share, at least one if any data) and all hours.

        Raises:
            StoreUnavailableError: If the store query fails.
        """
        now = self.now()
        rows = await self.store.aggregate_by_hour(self._history_start(now))
        response = rank_peak_hours(rows, share=self.settings.analytics_peak_share)

        logger.info(
            "analytics.peak_hours_computed",
            hours_with_sales=len(response.all_hours),
            peak_hours=[record.hour for record in response.peak_hours],
        )
        return response

    def clear_cache(self) -> None:
        """Drop every cached metric. The next real-time call hits the store."""
        self.cache.clear()
        logger.info("analytics.cache_cleared")


@lru_cache
def get_analytics_service() -> AnalyticsService:
    """Process-wide analytics service backed by the SQL transaction store."""
    settings = get_settings()
    store = SqlTransactionStore(get_session_maker(), settings.tzinfo)
    return AnalyticsService(store=store, settings=settings)
