"""
Realtime endpoints: the game socket plus HTTP hooks into game rooms.
"""
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from jeopardy.core.exceptions import InvalidInput
from jeopardy.schemas import realtime as realtime_schemas
from jeopardy.services.realtime_handler import realtime_handler
from jeopardy.services.room_broadcaster import room_broadcaster

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])
ws_router = APIRouter()


@ws_router.websocket("/ws")
async def game_socket(websocket: WebSocket):
    """
    Game room socket.

    Frames are JSON objects {"event": ..., "data": ...}. Send
    {"event": "join-game", "data": <gameId>} to enter a room; avatar-updated,
    player-updated and team-updated are relayed to the other room members.
    """
    await websocket.accept()
    connection_id = room_broadcaster.register(websocket)

    try:
        # A connection dropped by the broadcaster has had its socket closed
        while room_broadcaster.is_connected(connection_id):
            raw = await websocket.receive_text()
            try:
                message = json.loads(raw)
            except json.JSONDecodeError:
                await room_broadcaster.emit(connection_id, "error", {"detail": "Invalid JSON"})
                continue
            await realtime_handler.handle(connection_id, message)
    except WebSocketDisconnect:
        pass
    finally:
        room_broadcaster.unregister(connection_id)


@router.post("/notify-avatar-update", response_model=realtime_schemas.NotifyResponse)
async def notify_avatar_update(request: realtime_schemas.NotifyAvatarUpdate):
    """Tell everyone in the game room that a player's avatar changed."""
    if request.game_id in (None, "") or request.player_id in (None, ""):
        raise InvalidInput("Missing gameId or playerId")

    logger.info(f"Avatar updated for player {request.player_id} in game {request.game_id}")
    await room_broadcaster.broadcast(request.game_id, "avatar-updated", {
        "gameId": request.game_id,
        "playerId": request.player_id,
        "avatarUrl": request.avatar_url,
    })
    return {"success": True, "message": "Avatar update notification sent"}


@router.post("/realtime/emit")
async def emit_event(request: realtime_schemas.EmitRequest):
    """Push an event into a game room from the server side."""
    delivered = await realtime_handler.publish(request.event, request.data)
    logger.info(f"Emitted {request.event} to game {request.data.get('gameId')} ({delivered} delivered)")
    return {"success": True, "delivered": delivered}


@router.get("/health", response_model=realtime_schemas.HealthResponse)
def health():
    stats = room_broadcaster.stats()
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "active_rooms": stats["active_rooms"],
        "active_connections": stats["active_connections"],
    }
