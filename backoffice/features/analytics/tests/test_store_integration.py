"""Integration tests for SqlTransactionStore against PostgreSQL.

These tests require a running PostgreSQL database reachable through
DATABASE_URL. Run with: pytest -m integration
"""

import datetime
from decimal import Decimal
from zoneinfo import ZoneInfo

import pytest
from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from backoffice.core.config import get_settings
from backoffice.core.database import Base
from backoffice.features.analytics.store import SqlTransactionStore
from backoffice.features.ledger.models import Transaction, TransactionStatus, TransactionType

pytestmark = pytest.mark.integration

UTC = ZoneInfo("UTC")
NOW = datetime.datetime(2024, 3, 15, 14, 30, tzinfo=UTC)


@pytest.fixture
async def session_maker():
    """Session maker on a freshly created transactions table.

    Rows created by a test are deleted afterwards.
    """
    settings = get_settings()
    engine = create_async_engine(settings.database_url, echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    yield maker

    async with maker() as session:
        await session.execute(delete(Transaction).where(Transaction.created_by == "pytest"))
        await session.commit()

    await engine.dispose()


async def add_transactions(
    maker: async_sessionmaker[AsyncSession],
    *rows: tuple[str, str, str, datetime.datetime],
) -> None:
    async with maker() as session:
        for type_, status, amount, when in rows:
            session.add(
                Transaction(
                    type=type_,
                    status=status,
                    amount=Decimal(amount),
                    transaction_date=when,
                    created_by="pytest",
                )
            )
        await session.commit()


SALE = TransactionType.SALE.value
EXPENSE = TransactionType.EXPENSE.value
APPROVED = TransactionStatus.APPROVED.value
PENDING = TransactionStatus.PENDING.value


class TestAggregateToday:
    async def test_counts_only_approved_rows_of_the_day(self, session_maker):
        await add_transactions(
            session_maker,
            (SALE, APPROVED, "100.00", NOW - datetime.timedelta(minutes=5)),
            (SALE, APPROVED, "50.00", NOW - datetime.timedelta(minutes=40)),
            (SALE, APPROVED, "30.00", NOW - datetime.timedelta(hours=3)),
            (SALE, PENDING, "999.00", NOW - datetime.timedelta(minutes=1)),
            (EXPENSE, APPROVED, "20.00", NOW - datetime.timedelta(hours=2)),
            (SALE, APPROVED, "70.00", NOW - datetime.timedelta(days=1)),
        )
        store = SqlTransactionStore(session_maker, UTC)

        aggregate = await store.aggregate_today(NOW.date(), NOW)

        assert aggregate.total_sales_count == 3
        assert aggregate.total_expenses_count == 1
        assert aggregate.total_sales_amount == Decimal("180.00")
        assert aggregate.total_expenses_amount == Decimal("20.00")
        assert aggregate.avg_sale_amount == Decimal("60.00")
        assert aggregate.max_sale_amount == Decimal("100.00")
        assert aggregate.sales_last_hour == 2
        assert aggregate.sales_last_15min == 1


class TestHourlyAggregates:
    async def test_buckets_follow_configured_timezone(self, session_maker):
        # 23:30 UTC is 00:30 the next day in Warsaw (CET, UTC+1)
        late = datetime.datetime(2024, 3, 10, 23, 30, tzinfo=UTC)
        await add_transactions(session_maker, (SALE, APPROVED, "10.00", late))
        store = SqlTransactionStore(session_maker, ZoneInfo("Europe/Warsaw"))

        rows = await store.aggregate_by_date_hour(late - datetime.timedelta(days=1))

        assert [(row.date, row.hour) for row in rows] == [(datetime.date(2024, 3, 11), 0)]

    async def test_by_hour_ordered_by_count(self, session_maker):
        day = datetime.datetime(2024, 3, 10, tzinfo=UTC)
        await add_transactions(
            session_maker,
            (SALE, APPROVED, "10.00", day.replace(hour=9)),
            (SALE, APPROVED, "20.00", day.replace(hour=12)),
            (SALE, APPROVED, "40.00", day.replace(hour=12, minute=30)),
            (EXPENSE, APPROVED, "5.00", day.replace(hour=18)),
        )
        store = SqlTransactionStore(session_maker, UTC)

        rows = await store.aggregate_by_hour(day)

        assert [row.hour for row in rows] == [12, 9]
        assert rows[0].avg_amount == Decimal("30.00")
        assert rows[0].total_amount == Decimal("60.00")
