"""WebSocket endpoint streaming notifications to the dashboard."""

import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ghost_runner.dependencies import NotifierWsDep

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def notifications_endpoint(websocket: WebSocket, notifier: NotifierWsDep) -> None:
    """Forward every notification as a ``{"event", "payload"}`` frame."""

    async def forward(event: str, payload: dict[str, Any]) -> None:
        await websocket.send_json({"event": event, "payload": payload})

    # Subscribed before accepting so no event is missed once the client is connected
    subscriber_id = await notifier.subscribe(forward)
    try:
        await websocket.accept()
        # Inbound frames carry nothing; reading just detects the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Dashboard connection closed: {subscriber_id}")
    finally:
        await notifier.unsubscribe(subscriber_id)
