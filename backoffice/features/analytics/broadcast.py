"""Periodic push of real-time sales metrics to WebSocket subscribers."""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from functools import lru_cache
from typing import Any, Protocol

from starlette.websockets import WebSocketDisconnect

from backoffice.core.config import get_settings
from backoffice.core.exceptions import BackofficeError
from backoffice.core.logging import get_logger
from backoffice.features.analytics.schemas import StreamEvent, StreamEventType
from backoffice.features.analytics.service import AnalyticsService, get_analytics_service

logger = get_logger(__name__)


class Subscriber(Protocol):
    """Anything that can receive a JSON message (e.g. a Starlette WebSocket)."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...


def make_event(event_type: StreamEventType, data: dict[str, Any] | None = None) -> dict[str, Any]:
    """Build a JSON-ready stream event envelope."""
    event = StreamEvent(
        event_type=event_type,
        data=data or {},
        timestamp=datetime.now(UTC),
    )
    return event.model_dump(mode="json")


class AnalyticsBroadcaster:
    """Registry of stream subscribers plus the periodic broadcast loop.

    The loop is the scheduled caller of get_real_time_sales_metrics; with
    an interval shorter than the cache TTL, consecutive ticks share a
    snapshot.
    """

    def __init__(self, service: AnalyticsService, interval_seconds: float = 30.0) -> None:
        self.service = service
        self.interval_seconds = interval_seconds
        self._subscribers: set[Subscriber] = set()
        self._task: asyncio.Task[None] | None = None

    @property
    def subscriber_count(self) -> int:
        """Number of registered subscribers."""
        return len(self._subscribers)

    @property
    def is_running(self) -> bool:
        """Whether the background loop is active."""
        return self._task is not None and not self._task.done()

    def register(self, subscriber: Subscriber) -> None:
        """Add a subscriber to future broadcasts."""
        self._subscribers.add(subscriber)
        logger.info("analytics.subscriber_registered", subscribers=self.subscriber_count)

    def unregister(self, subscriber: Subscriber) -> None:
        """Remove a subscriber; unknown subscribers are ignored."""
        self._subscribers.discard(subscriber)
        logger.info("analytics.subscriber_unregistered", subscribers=self.subscriber_count)

    async def snapshot_event(self) -> dict[str, Any]:
        """Current real-time metrics wrapped as an analytics_update event.

        Raises:
            StoreUnavailableError: If the metrics cannot be computed.
        """
        metrics = await self.service.get_real_time_sales_metrics()
        return make_event(StreamEventType.ANALYTICS_UPDATE, metrics.model_dump(mode="json"))

    async def broadcast_once(self) -> int:
        """Send the current metrics to every subscriber.

        Subscribers whose send fails are dropped. A metrics failure skips
        this round without raising.

        Returns:
            Number of subscribers that received the update.
        """
        if not self._subscribers:
            return 0

        try:
            event = await self.snapshot_event()
        except BackofficeError as e:
            logger.error(
                "analytics.broadcast_failed",
                error=e.message,
                error_code=e.code,
                subscribers=self.subscriber_count,
            )
            return 0

        delivered = 0
        for subscriber in list(self._subscribers):
            try:
                await subscriber.send_json(event)
            except (WebSocketDisconnect, RuntimeError, OSError) as e:
                # Closed or broken connection
                logger.warning(
                    "analytics.subscriber_dropped",
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self._subscribers.discard(subscriber)
            else:
                delivered += 1

        logger.debug("analytics.broadcast_sent", delivered=delivered)
        return delivered

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.broadcast_once()
            except Exception as e:
                # Keep looping; the next tick retries
                logger.exception(
                    "analytics.broadcast_failed",
                    error=str(e),
                    error_type=type(e).__name__,
                    subscribers=self.subscriber_count,
                )

    def start(self) -> None:
        """Start the background broadcast loop (no-op if already running)."""
        if self.is_running:
            return
        self._task = asyncio.create_task(self._run(), name="analytics-broadcast")
        logger.info("analytics.broadcast_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Cancel the background loop and wait for it to finish.

        Never raises, so application shutdown always proceeds.
        """
        if self._task is None:
            return
        task, self._task = self._task, None
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        except Exception as e:
            logger.exception(
                "analytics.broadcast_task_failed",
                error=str(e),
                error_type=type(e).__name__,
            )
        logger.info("analytics.broadcast_stopped")


@lru_cache
def get_broadcaster() -> AnalyticsBroadcaster:
    """Process-wide broadcaster bound to the process-wide analytics service."""
    settings = get_settings()
    return AnalyticsBroadcaster(
        get_analytics_service(),
        interval_seconds=settings.analytics_broadcast_interval_seconds,
    )
