"""Transaction store: aggregate queries over the approved ledger.

The analytics service only depends on the TransactionStore protocol.
SqlTransactionStore is the PostgreSQL implementation; tests substitute an
in-memory fake.
"""

import datetime
from collections.abc import Sequence
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Protocol
from zoneinfo import ZoneInfo

from sqlalchemy import Date, Select, and_, case, cast, func, literal, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from backoffice.core.exceptions import StoreUnavailableError
from backoffice.core.logging import get_logger
from backoffice.features.ledger.models import Transaction, TransactionStatus, TransactionType

logger = get_logger(__name__)

CENT = Decimal("0.01")


def to_money(value: Any) -> Decimal:
    """Coerce a driver value to a non-null Decimal with 2 fractional digits."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENT)


# =============================================================================
# Row Types
# =============================================================================


@dataclass(frozen=True)
class TransactionAggregate:
    """Today's approved ledger totals. Never persisted."""

    total_sales_count: int = 0
    total_expenses_count: int = 0
    total_sales_amount: Decimal = Decimal("0.00")
    total_expenses_amount: Decimal = Decimal("0.00")
    avg_sale_amount: Decimal = Decimal("0.00")
    max_sale_amount: Decimal = Decimal("0.00")
    sales_last_hour: int = 0
    sales_last_15min: int = 0


@dataclass(frozen=True)
class DateHourAggregate:
    """Approved sales for one (calendar day, hour-of-day) bucket."""

    date: datetime.date
    hour: int
    transaction_count: int
    total_amount: Decimal


@dataclass(frozen=True)
class HourAggregate:
    """Approved sales for one hour-of-day across the whole window."""

    hour: int
    transaction_count: int
    avg_amount: Decimal  # unrounded
    total_amount: Decimal


class TransactionStore(Protocol):
    """Query interface the analytics service reads from.

    Implementations raise StoreUnavailableError when a query fails.
    """

    async def aggregate_today(
        self,
        day: datetime.date,
        now: datetime.datetime,
    ) -> TransactionAggregate: ...

    async def aggregate_by_date_hour(
        self,
        since: datetime.datetime,
    ) -> Sequence[DateHourAggregate]: ...

    async def aggregate_by_hour(
        self,
        since: datetime.datetime,
    ) -> Sequence[HourAggregate]: ...


# =============================================================================
# SQLAlchemy Implementation
# =============================================================================


class SqlTransactionStore:
    """TransactionStore backed by the transactions table.

    Opens a fresh session per query so a long-lived service never holds a
    connection between calls. Day and hour buckets are computed in the
    configured timezone, not the database session's.
    """

    def __init__(
        self,
        session_maker: async_sessionmaker[AsyncSession],
        tz: ZoneInfo,
    ) -> None:
        self._session_maker = session_maker
        self._tz = tz

    @property
    def _approved(self) -> Any:
        return Transaction.status == TransactionStatus.APPROVED.value

    @property
    def _is_sale(self) -> Any:
        return Transaction.type == TransactionType.SALE.value

    @property
    def _is_expense(self) -> Any:
        return Transaction.type == TransactionType.EXPENSE.value

    @property
    def _local_ts(self) -> Any:
        # Inline the zone name so SELECT and GROUP BY render identical SQL
        zone = literal(self._tz.key, literal_execute=True)
        return func.timezone(zone, Transaction.transaction_date)

    async def _execute(self, operation: str, stmt: Select[Any]) -> Sequence[Any]:
        try:
            async with self._session_maker() as session:
                result = await session.execute(stmt)
                return result.all()
        except (SQLAlchemyError, OSError) as e:
            logger.warning(
                "analytics.store_query_failed",
                operation=operation,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise StoreUnavailableError(
                message=f"Transaction store query '{operation}' failed",
                details={"operation": operation, "error_type": type(e).__name__},
            ) from e

    async def aggregate_today(
        self,
        day: datetime.date,
        now: datetime.datetime,
    ) -> TransactionAggregate:
        """Aggregate approved sales and expenses for one calendar day.

        Args:
            day: Calendar day in the analytics timezone.
            now: Reference instant for the rolling 1 hour / 15 minute windows.

        Returns:
            Totals with every field coalesced to zero.
        """
        start = datetime.datetime.combine(day, datetime.time.min, tzinfo=self._tz)
        end = start + datetime.timedelta(days=1)
        last_hour = now - datetime.timedelta(hours=1)
        last_15min = now - datetime.timedelta(minutes=15)

        sale_amount = case((self._is_sale, Transaction.amount))
        expense_amount = case((self._is_expense, Transaction.amount))

        stmt = select(
            func.count(case((self._is_sale, 1))).label("total_sales_count"),
            func.count(case((self._is_expense, 1))).label("total_expenses_count"),
            func.coalesce(func.sum(sale_amount), 0).label("total_sales_amount"),
            func.coalesce(func.sum(expense_amount), 0).label("total_expenses_amount"),
            func.coalesce(func.avg(sale_amount), 0).label("avg_sale_amount"),
            func.coalesce(func.max(sale_amount), 0).label("max_sale_amount"),
            func.count(
                case((and_(self._is_sale, Transaction.transaction_date >= last_hour), 1))
            ).label("sales_last_hour"),
            func.count(
                case((and_(self._is_sale, Transaction.transaction_date >= last_15min), 1))
            ).label("sales_last_15min"),
        ).where(
            self._approved,
            Transaction.transaction_date >= start,
            Transaction.transaction_date < end,
        )

        rows = await self._execute("aggregate_today", stmt)
        row = rows[0]

        return TransactionAggregate(
            total_sales_count=int(row.total_sales_count or 0),
            total_expenses_count=int(row.total_expenses_count or 0),
            total_sales_amount=to_money(row.total_sales_amount),
            total_expenses_amount=to_money(row.total_expenses_amount),
            avg_sale_amount=to_money(row.avg_sale_amount),
            max_sale_amount=to_money(row.max_sale_amount),
            sales_last_hour=int(row.sales_last_hour or 0),
            sales_last_15min=int(row.sales_last_15min or 0),
        )

    async def aggregate_by_date_hour(
        self,
        since: datetime.datetime,
    ) -> list[DateHourAggregate]:
        """Approved sales since a cutoff, grouped by (day, hour).

        Ordered by day descending, then hour ascending.
        """
        day_col = cast(self._local_ts, Date)
        hour_col = func.extract("hour", self._local_ts)

        stmt = (
            select(
                day_col.label("date"),
                hour_col.label("hour"),
                func.count().label("transaction_count"),
                func.sum(Transaction.amount).label("total_amount"),
            )
            .where(
                self._approved,
                self._is_sale,
                Transaction.transaction_date >= since,
            )
            .group_by(day_col, hour_col)
            .order_by(day_col.desc(), hour_col)
        )

        rows = await self._execute("aggregate_by_date_hour", stmt)
        return [
            DateHourAggregate(
                date=row.date,
                hour=int(row.hour),
                transaction_count=int(row.transaction_count),
                total_amount=to_money(row.total_amount),
            )
            for row in rows
        ]

    async def aggregate_by_hour(
        self,
        since: datetime.datetime,
    ) -> list[HourAggregate]:
        """Approved sales since a cutoff, grouped by hour-of-day only.

        At most 24 rows, ordered by transaction count descending.
        """
        hour_col = func.extract("hour", self._local_ts)
        count_col = func.count()

        stmt = (
            select(
                hour_col.label("hour"),
                count_col.label("transaction_count"),
                func.avg(Transaction.amount).label("avg_amount"),
                func.sum(Transaction.amount).label("total_amount"),
            )
            .where(
                self._approved,
                self._is_sale,
                Transaction.transaction_date >= since,
            )
            .group_by(hour_col)
            .order_by(count_col.desc())
        )

        rows = await self._execute("aggregate_by_hour", stmt)
        return [
            HourAggregate(
                hour=int(row.hour),
                transaction_count=int(row.transaction_count),
                avg_amount=Decimal(str(row.avg_amount or 0)),
                total_amount=to_money(row.total_amount),
            )
            for row in rows
        ]
