"""WebSocket endpoint streaming real-time sales metrics.

Protocol:
1. Client connects; server sends the current snapshot as an
   ``analytics_update`` event.
2. Server pushes ``analytics_update`` on every broadcast tick.
3. Client may send ``{"type": "ping"}``; server answers with ``pong``.
4. Problems are reported as ``error`` events; the connection stays open.
"""

import json

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from backoffice.core.exceptions import BackofficeError
from backoffice.core.logging import get_logger
from backoffice.features.analytics.broadcast import (
    AnalyticsBroadcaster,
    get_broadcaster,
    make_event,
)
from backoffice.features.analytics.schemas import StreamEventType

logger = get_logger(__name__)

router = APIRouter(tags=["analytics-websocket"])


@router.websocket("/analytics/stream")
async def analytics_stream(
    websocket: WebSocket,
    broadcaster: AnalyticsBroadcaster = Depends(get_broadcaster),
) -> None:
    """Subscribe a client to real-time analytics updates."""
    await websocket.accept()
    broadcaster.register(websocket)
    logger.info("analytics.websocket_connected")

    try:
        try:
            await websocket.send_json(await broadcaster.snapshot_event())
        except BackofficeError as e:
            await websocket.send_json(
                make_event(StreamEventType.ERROR, {"error": e.message, "code": e.code})
            )

        while True:
            try:
                message = await websocket.receive_json()
            except json.JSONDecodeError as e:
                await websocket.send_json(
                    make_event(StreamEventType.ERROR, {"error": f"Invalid JSON: {e}"})
                )
                continue

            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json(make_event(StreamEventType.PONG))
            else:
                await websocket.send_json(
                    make_event(StreamEventType.ERROR, {"error": "Unsupported message"})
                )
    except WebSocketDisconnect:
        logger.info("analytics.websocket_disconnected")
    finally:
        broadcaster.unregister(websocket)
