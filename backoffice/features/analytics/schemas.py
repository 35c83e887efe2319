"""Pydantic schemas for analytics endpoints and the real-time stream.

Monetary values on the real-time snapshot are Decimals with two fractional
digits; forecast and peak-hour amounts are floats because they are averages
or jittered projections rather than ledger sums.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Enums
# =============================================================================


class ConfidenceTier(str, Enum):
    """Coarse confidence label derived from sample-size thresholds.

    Not a statistical confidence interval.
    """

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# Real-time Metrics
# =============================================================================


class RealTimeSalesMetrics(BaseModel):
    """Today's approved sales and expense KPIs.

    Served from a process-wide cache that is at most one TTL old.
    """

    model_config = ConfigDict(frozen=True)

    total_sales_count: int = Field(..., ge=0, description="Approved sales today.")
    total_expenses_count: int = Field(..., ge=0, description="Approved expenses today.")
    total_sales_amount: Decimal = Field(..., ge=0, description="Sum of approved sale amounts.")
    total_expenses_amount: Decimal = Field(
        ..., ge=0, description="Sum of approved expense amounts."
    )
    avg_sale_amount: Decimal = Field(..., ge=0, description="Mean sale amount (0 if none).")
    max_sale_amount: Decimal = Field(..., ge=0, description="Largest sale amount (0 if none).")
    sales_last_hour: int = Field(..., ge=0, description="Sales in the last rolling hour.")
    sales_last_15min: int = Field(..., ge=0, description="Sales in the last rolling 15 minutes.")
    profit: Decimal = Field(
        ...,
        description="total_sales_amount - total_expenses_amount. May be negative.",
    )
    sales_velocity: float = Field(
        ...,
        ge=0,
        description="Approximate sales per 15 minutes, extrapolated as sales_last_hour / 4. "
        "Does not necessarily match sales_last_15min.",
    )
    timestamp: datetime = Field(..., description="When this snapshot was computed.")


# =============================================================================
# Forecast
# =============================================================================


class HourlyStats(BaseModel):
    """Historical average for one hour-of-day."""

    avg_transactions: float = Field(0.0, ge=0, description="Mean sale count per day.")
    avg_amount: float = Field(0.0, ge=0, description="Mean summed amount per day.")
    data_points: int = Field(0, ge=0, description="Days contributing to the average.")


class ForecastPoint(BaseModel):
    """Projection for one remaining hour of today."""

    hour: int = Field(..., ge=0, le=23, description="Hour-of-day (0-23).")
    predicted_transactions: int = Field(..., ge=0, description="Rounded projected sale count.")
    predicted_amount: float = Field(..., ge=0, description="Projected summed sale amount.")
    confidence: ConfidenceTier = Field(
        ...,
        description="'high' if more than 5 historical days, 'medium' if more than 2, "
        "otherwise 'low'.",
    )


class SalesForecastResponse(BaseModel):
    """Same-day forecast with the hourly profile it was derived from."""

    forecast: list[ForecastPoint] = Field(
        ...,
        description="One point per hour from the current hour through 23.",
    )
    historical_data: dict[int, HourlyStats] = Field(
        ...,
        description="Hourly profile over the trailing window. Always 24 entries.",
    )
    confidence: ConfidenceTier = Field(
        ...,
        description="Overall confidence from sample size and date span.",
    )


# =============================================================================
# Peak Hours
# =============================================================================


class PeakHourRecord(BaseModel):
    """Aggregate for one hour-of-day over the trailing window."""

    hour: int = Field(..., ge=0, le=23)
    transaction_count: int = Field(..., ge=0)
    avg_amount: float = Field(..., ge=0)
    total_amount: float = Field(..., ge=0)


class PeakHoursResponse(BaseModel):
    """Hours ranked by transaction count."""

    peak_hours: list[PeakHourRecord] = Field(
        ...,
        description="Top quarter of hours by transaction count (at least one if any data).",
    )
    all_hours: list[PeakHourRecord] = Field(
        ...,
        description="Every hour with sales, sorted by transaction count descending.",
    )


# =============================================================================
# Stream Events
# =============================================================================


class StreamEventType(str, Enum):
    """Events pushed over the analytics WebSocket."""

    ANALYTICS_UPDATE = "analytics_update"
    PONG = "pong"
    ERROR = "error"


class StreamEvent(BaseModel):
    """Envelope for every WebSocket message sent to subscribers."""

    event_type: StreamEventType
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime
