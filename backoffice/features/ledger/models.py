"""Transaction ledger ORM model.

One row per sale or expense. Only rows with status 'approved' count
towards analytics aggregates.
"""

from __future__ import annotations

import datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    CheckConstraint,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.core.database import Base, TimestampMixin


class TransactionType(str, Enum):
    """Kind of ledger entry."""

    SALE = "sale"
    EXPENSE = "expense"


class TransactionStatus(str, Enum):
    """Approval lifecycle of a ledger entry.

    State transitions:
    - PENDING -> APPROVED | REJECTED
    """

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class Transaction(TimestampMixin, Base):
    """Sale or expense ledger entry.

    Attributes:
        id: Primary key.
        type: 'sale' or 'expense'.
        status: Approval state.
        amount: Non-negative amount with 2 fractional digits.
        transaction_date: When the sale/expense happened (timezone-aware).
        description: Free-text note.
        created_by: External identity-provider user ID of the author.
    """

    __tablename__ = "transactions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    type: Mapped[str] = mapped_column(String(20))
    status: Mapped[str] = mapped_column(String(20), default=TransactionStatus.PENDING.value)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    transaction_date: Mapped[datetime.datetime] = mapped_column(DateTime(timezone=True))
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    created_by: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    __table_args__ = (
        # Analytics filter on status + type over a date window
        Index("ix_transactions_status_type_date", "status", "type", "transaction_date"),
        CheckConstraint("amount >= 0", name="ck_transactions_amount_positive"),
        CheckConstraint(
            "type IN ('sale', 'expense')",
            name="ck_transactions_valid_type",
        ),
        CheckConstraint(
            "status IN ('pending', 'approved', 'rejected')",
            name="ck_transactions_valid_status",
        ),
    )
