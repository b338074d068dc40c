"""
WebSocket endpoint for realtime events.

Connect with /ws?token=<backend jwt>. The socket is subscribed to its user
topic, to the broadcast topic and, for admins, to the admins topic.

Client messages:
  {"action": "join", "room": "review:<serviceId>"}
  {"action": "leave", "room": "review:<serviceId>"}
  {"action": "ping"} or the bare text "ping"
"""

import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from .auth import user_from_token
from .database import SessionLocal
from .errors import AppError
from .realtime import ADMINS_TOPIC, BROADCAST_TOPIC, broadcast_manager, user_topic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])

ROOM_PREFIXES = ("review:",)


def _authenticate(token: str):
    db = SessionLocal()
    try:
        user = user_from_token(db, token)
        return user.id, user.role
    finally:
        db.close()


async def _handle_message(websocket: WebSocket, raw: str) -> None:
    if raw.strip().lower() == "ping":
        await websocket.send_json({"event": "pong", "data": None})
        return

    try:
        message = json.loads(raw)
    except json.JSONDecodeError:
        await websocket.send_json({"event": "error", "data": {"message": "Message JSON invalide"}})
        return
    if not isinstance(message, dict):
        await websocket.send_json({"event": "error", "data": {"message": "Message JSON invalide"}})
        return

    action = message.get("action")
    room = message.get("room") or ""
    if action == "ping":
        await websocket.send_json({"event": "pong", "data": None})
    elif action in ("join", "leave"):
        if not room.startswith(ROOM_PREFIXES):
            await websocket.send_json({"event": "error", "data": {"message": f"Salle inconnue: {room}"}})
            return
        if action == "join":
            await broadcast_manager.subscribe(room, websocket)
            await websocket.send_json({"event": "joined", "data": {"room": room}})
        else:
            await broadcast_manager.unsubscribe(room, websocket)
            await websocket.send_json({"event": "left", "data": {"room": room}})
    else:
        await websocket.send_json({"event": "error", "data": {"message": f"Action inconnue: {action}"}})


@router.websocket("/ws")
async def realtime_socket(websocket: WebSocket):
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        user_id, role = _authenticate(token)
    except AppError as e:
        logger.warning(f"⚠️ WebSocket rejected: {e.message}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    await broadcast_manager.subscribe(user_topic(user_id), websocket)
    await broadcast_manager.subscribe(BROADCAST_TOPIC, websocket)
    if role == "admin":
        await broadcast_manager.subscribe(ADMINS_TOPIC, websocket)
    await websocket.send_json({"event": "connected", "data": {"userId": user_id, "role": role}})

    try:
        while True:
            await _handle_message(websocket, await websocket.receive_text())
    except WebSocketDisconnect:
        logger.info(f"WebSocket closed for {user_id}")
    except Exception:
        logger.exception(f"Error on websocket connection for {user_id}")
        await websocket.close()
    finally:
        await broadcast_manager.unsubscribe_all(websocket)
