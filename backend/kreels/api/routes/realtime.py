"""
Realtime notifications over WebSocket.

Clients connect to /ws/notifications?token=<jwt> and receive
{"event": "notification", "data": {"notification": {...}, "unread_count": n}}.
Incoming messages are ignored except "ping", answered with "pong".
"""
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from kreels.api.deps import decode_user_id

router = APIRouter()
logger = logging.getLogger(__name__)


@router.websocket("/ws/notifications")
async def notifications_socket(websocket: WebSocket, token: str = Query("")):
    user_id = decode_user_id(token, websocket.app.state.settings) if token else None
    if user_id is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return
    manager = websocket.app.state.connection_manager
    await manager.connect(user_id, websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(user_id, websocket)
