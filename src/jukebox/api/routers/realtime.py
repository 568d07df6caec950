"""WebSocket endpoint for live playback updates."""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from jukebox.api.dependencies import get_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter()


# Yo, clients send {"type": "subscribe"} right after connecting and then mostly just
# listen. Garbage frames are ignored rather than killing the socket.
@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket) -> None:
    broadcaster = get_broadcaster(websocket)
    await broadcaster.connect(websocket)
    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except json.JSONDecodeError:
                logger.debug("Ignoring non-JSON realtime frame")
                continue
            if isinstance(message, dict):
                await broadcaster.handle_message(websocket, message)
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
