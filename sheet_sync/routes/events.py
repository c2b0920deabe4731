"""
WebSocket feed of live sync events.
"""

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from ..dependencies import get_orchestrator, get_session_manager
from ..processor import WebSocketSink

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/ws")
async def sync_events(websocket: WebSocket):
    if not get_session_manager().is_authenticated(websocket):
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    logger.info("WebSocket client connected")

    orchestrator = get_orchestrator()
    sink = WebSocketSink(websocket)
    orchestrator.subscribe(sink)

    try:
        # Nothing is expected from the client; this just waits for the disconnect
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info("WebSocket client disconnected")
    finally:
        orchestrator.unsubscribe(sink)
