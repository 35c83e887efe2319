"""Test fixtures for analytics module."""

import asyncio
import datetime
import random
from collections import Counter
from collections.abc import Sequence
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest

from backoffice.core.config import Settings
from backoffice.features.analytics.service import AnalyticsService
from backoffice.features.analytics.store import (
    DateHourAggregate,
    HourAggregate,
    TransactionAggregate,
)

UTC = ZoneInfo("UTC")


class FakeClock:
    """Wall clock and monotonic clock advanced together by tests."""

    def __init__(self, start: datetime.datetime) -> None:
        self.current = start
        self.monotonic_seconds = 1000.0

    def now(self) -> datetime.datetime:
        return self.current

    def monotonic(self) -> float:
        return self.monotonic_seconds

    def advance(self, seconds: float) -> None:
        self.current += datetime.timedelta(seconds=seconds)
        self.monotonic_seconds += seconds


class FakeTransactionStore:
    """In-memory TransactionStore that records every call."""

    def __init__(
        self,
        today: TransactionAggregate | None = None,
        date_hour_rows: Sequence[DateHourAggregate] = (),
        hour_rows: Sequence[HourAggregate] = (),
    ) -> None:
        self.today = today or TransactionAggregate()
        self.date_hour_rows = list(date_hour_rows)
        self.hour_rows = list(hour_rows)
        self.error: Exception | None = None
        self.calls: Counter[str] = Counter()
        self.arguments: list[tuple[str, tuple[object, ...]]] = []

    async def _record(self, operation: str, *args: object) -> None:
        self.calls[operation] += 1
        self.arguments.append((operation, args))
        # Yield so concurrent callers can interleave
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error

    async def aggregate_today(
        self,
        day: datetime.date,
        now: datetime.datetime,
    ) -> TransactionAggregate:
        await self._record("aggregate_today", day, now)
        return self.today

    async def aggregate_by_date_hour(
        self,
        since: datetime.datetime,
    ) -> list[DateHourAggregate]:
        await self._record("aggregate_by_date_hour", since)
        return list(self.date_hour_rows)

    async def aggregate_by_hour(
        self,
        since: datetime.datetime,
    ) -> list[HourAggregate]:
        await self._record("aggregate_by_hour", since)
        return list(self.hour_rows)


def date_hour_row(
    day: datetime.date,
    hour: int,
    count: int,
    amount: str,
) -> DateHourAggregate:
    """Build a (day, hour) aggregate row."""
    return DateHourAggregate(
        date=day,
        hour=hour,
        transaction_count=count,
        total_amount=Decimal(amount),
    )


def hour_row(hour: int, count: int, avg: str, total: str) -> HourAggregate:
    """Build an hour-of-day aggregate row."""
    return HourAggregate(
        hour=hour,
        transaction_count=count,
        avg_amount=Decimal(avg),
        total_amount=Decimal(total),
    )


@pytest.fixture
def analytics_settings() -> Settings:
    """Settings with the documented analytics defaults."""
    return Settings(
        analytics_timezone="UTC",
        analytics_cache_ttl_ms=60_000,
        analytics_history_days=30,
        analytics_peak_share=0.25,
        analytics_forecast_jitter=0.1,
        analytics_broadcast_enabled=False,
    )


@pytest.fixture
def fake_clock() -> FakeClock:
    """Clock pinned to 2024-03-15 14:30 UTC."""
    return FakeClock(datetime.datetime(2024, 3, 15, 14, 30, tzinfo=UTC))


@pytest.fixture
def fake_store() -> FakeTransactionStore:
    """Empty in-memory store."""
    return FakeTransactionStore()


@pytest.fixture
def analytics_service(
    fake_store: FakeTransactionStore,
    fake_clock: FakeClock,
    analytics_settings: Settings,
) -> AnalyticsService:
    """Analytics service wired to the fake store and clock."""
    return AnalyticsService(
        store=fake_store,
        settings=analytics_settings,
        clock=fake_clock.now,
        monotonic=fake_clock.monotonic,
        rng=random.Random(1234),
    )
