"""Sales analytics: cached real-time KPIs, same-day forecast, peak hours.

Exposes HTTP endpoints for each view and a WebSocket stream that pushes the
real-time snapshot on a fixed interval.
"""

from backoffice.features.analytics.broadcast import AnalyticsBroadcaster, get_broadcaster
from backoffice.features.analytics.routes import router
from backoffice.features.analytics.schemas import (
    ConfidenceTier,
    PeakHoursResponse,
    RealTimeSalesMetrics,
    SalesForecastResponse,
)
from backoffice.features.analytics.service import AnalyticsService, get_analytics_service
from backoffice.features.analytics.store import SqlTransactionStore, TransactionStore
from backoffice.features.analytics.websocket import router as websocket_router

__all__ = [
    "AnalyticsBroadcaster",
    "AnalyticsService",
    "ConfidenceTier",
    "PeakHoursResponse",
    "RealTimeSalesMetrics",
    "SalesForecastResponse",
    "SqlTransactionStore",
    "TransactionStore",
    "get_analytics_service",
    "get_broadcaster",
    "router",
    "websocket_router",
]
