"""
Dispatch of realtime game events received over the game socket.
"""
import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from jeopardy.core.exceptions import InvalidInput
from jeopardy.schemas.realtime import (
    RealtimeMessage, AvatarUpdatedEvent, PlayerUpdatedEvent, TeamUpdatedEvent, BuzzIn
)
from jeopardy.services.buzzer import now_ms
from jeopardy.services.room_broadcaster import RoomBroadcaster, Room, room_broadcaster

logger = logging.getLogger(__name__)

# Events relayed verbatim to the other members of the room
RELAY_EVENTS = {
    "avatar-updated": AvatarUpdatedEvent,
    "player-updated": PlayerUpdatedEvent,
    "team-updated": TeamUpdatedEvent,
}

# Events the HTTP side may push into a room
SERVER_EVENTS = set(RELAY_EVENTS) | {
    "game-state-update", "activate-buzzer", "deactivate-buzzer", "reset-buzzer",
}


class RealtimeEventHandler:
    """Routes socket frames to room membership, relays and the buzzer."""

    def __init__(self, broadcaster: RoomBroadcaster):
        self.broadcaster = broadcaster
        self._handlers = {
            "join-game": self._join_game,
            "leave-game": self._leave_game,
            "game-state-update": self._game_state_update,
            "enable-buzzer": self._enable_buzzer,
            "audio-started": self._audio_started,
            "activate-buzzer": self._activate_buzzer,
            "deactivate-buzzer": self._deactivate_buzzer,
            "reset-buzzer": self._reset_buzzer,
            "buzz-in": self._buzz_in,
            "ping": self._ping,
        }

    async def handle(self, connection_id: str, message: Any) -> None:
        """Handle one frame from a client. Bad frames are answered with an error event."""
        try:
            frame = RealtimeMessage.model_validate(message)
        except ValidationError:
            await self._error(connection_id, "Malformed message, expected {event, data}")
            return

        try:
            if frame.event in RELAY_EVENTS:
                await self._relay(connection_id, frame.event, frame.data)
                return

            handler = self._handlers.get(frame.event)
            if handler is None:
                logger.warning(f"Unknown event from connection {connection_id}: {frame.event}")
                await self._error(connection_id, f"Unknown event: {frame.event}")
                return
            await handler(connection_id, frame.data)
        except (InvalidInput, ValidationError) as e:
            await self._error(connection_id, str(e), frame.event)

    async def publish(self, event: str, data: Dict) -> int:
        """Push an event originating from the HTTP side into its game room."""
        if event not in SERVER_EVENTS:
            raise InvalidInput(f"Event {event} cannot be emitted")
        game_id = data.get("gameId") if isinstance(data, dict) else None
        if game_id in (None, ""):
            raise InvalidInput("Missing gameId")

        if event in RELAY_EVENTS:
            try:
                RELAY_EVENTS[event].model_validate(data)
            except ValidationError as e:
                raise InvalidInput(f"Invalid {event} payload: {e.error_count()} errors")
            return await self.broadcaster.broadcast(game_id, event, data)
        if event == "game-state-update":
            return await self._store_and_broadcast_state(game_id, data)

        room = self.broadcaster.get_room(game_id)
        if room is None:
            return 0
        return await self._buzzer_control(room, event)

    async def _relay(self, connection_id: str, event: str, data: Any) -> None:
        payload = RELAY_EVENTS[event].model_validate(data)
        await self.broadcaster.broadcast(
            payload.game_id, event, data, exclude_connection_id=connection_id
        )
        logger.info(f"Relayed {event} in game {payload.game_id} from connection {connection_id}")

    async def _join_game(self, connection_id: str, data: Any) -> None:
        game_id = self._explicit_game_id(data)
        if game_id is None:
            raise InvalidInput("join-game requires a gameId")
        self.broadcaster.join(game_id, connection_id)

        # Catch the newcomer up with the board
        room = self.broadcaster.get_room(game_id)
        if room is None or connection_id not in room.members:
            return
        await self.broadcaster.emit(connection_id, "game-state-update", room.state)

    async def _leave_game(self, connection_id: str, data: Any) -> None:
        game_id = self._explicit_game_id(data)
        if game_id is None:
            raise InvalidInput("leave-game requires a gameId")
        self.broadcaster.leave(game_id, connection_id)

    async def _game_state_update(self, connection_id: str, data: Any) -> None:
        room = self._room_for(connection_id, data)
        if not isinstance(data, dict):
            raise InvalidInput("game-state-update requires an object")
        await self._store_and_broadcast_state(room.game_id, data)

    async def _store_and_broadcast_state(self, game_id: Any, data: Dict) -> int:
        room = self.broadcaster.get_room(game_id)
        if room is None:
            return 0
        # The board sends its whole state; keys it leaves out are cleared
        room.state = dict(data)
        return await self.broadcaster.broadcast(room.game_id, "game-state-update", room.state)

    async def _enable_buzzer(self, connection_id: str, data: Any) -> None:
        room = self._room_for(connection_id, data)
        start_time = data.get("startTime") if isinstance(data, dict) else None
        room.buzzer.enable(start_time)
        room.state.update({"isPlaying": True, "buzzStartTime": start_time, "buzzOrder": []})
        logger.info(f"Buzzer enabled for game {room.game_id} at {start_time}")
        await self.broadcaster.broadcast(room.game_id, "buzzer-enabled", {"startTime": start_time})

    async def _audio_started(self, connection_id: str, data: Any) -> None:
        room = self._room_for(connection_id, data)
        started = room.buzzer.audio_started()
        await self.broadcaster.broadcast(room.game_id, "audio-started", {"audioStartTime": started})

    async def _activate_buzzer(self, connection_id: str, data: Any) -> None:
        await self._buzzer_control(self._room_for(connection_id, data), "activate-buzzer")

    async def _deactivate_buzzer(self, connection_id: str, data: Any) -> None:
        await self._buzzer_control(self._room_for(connection_id, data), "deactivate-buzzer")

    async def _reset_buzzer(self, connection_id: str, data: Any) -> None:
        await self._buzzer_control(self._room_for(connection_id, data), "reset-buzzer")

    async def _buzzer_control(self, room: Room, event: str) -> int:
        if event == "activate-buzzer":
            room.buzzer.activate()
            outgoing = "buzz-activated"
        elif event == "deactivate-buzzer":
            room.buzzer.deactivate()
            outgoing = "buzz-deactivated"
        else:
            room.buzzer.reset()
            room.state.update({"isPlaying": False, "buzzStartTime": None, "buzzOrder": []})
            outgoing = "buzz-reset"

        logger.info(f"{event} for game {room.game_id}")
        return await self.broadcaster.broadcast(room.game_id, outgoing, {"gameId": room.game_id})

    async def _buzz_in(self, connection_id: str, data: Any) -> None:
        buzz_in = BuzzIn.model_validate(data)
        room = self.broadcaster.get_room(buzz_in.game_id)
        if room is None:
            await self.broadcaster.emit(connection_id, "buzz-failed", {
                "playerId": buzz_in.player_id, "reason": "Buzzer not active"
            })
            return

        result = room.buzzer.buzz(
            buzz_in.player_id,
            team_id=buzz_in.team_id,
            player_name=buzz_in.player_name,
            team_name=buzz_in.team_name,
            client_timestamp=buzz_in.client_timestamp,
            time_from_start=buzz_in.time_from_start,
        )
        if not result.accepted:
            await self.broadcaster.emit(connection_id, "buzz-failed", {
                "playerId": buzz_in.player_id, "reason": result.reason
            })
            return

        buzz_data = result.buzz.to_dict()
        if result.is_first:
            await self.broadcaster.emit(connection_id, "buzz-success", {
                "playerId": buzz_in.player_id, "isFirst": True, "clientTime": buzz_in.time_from_start
            })
            await self.broadcaster.broadcast(room.game_id, "buzz-success", {
                "playerId": buzz_in.player_id, "isFirst": False
            }, exclude_connection_id=connection_id)
            await self.broadcaster.broadcast(room.game_id, "first-buzz", buzz_data)
            await self.broadcaster.broadcast(room.game_id, "buzzer-disabled", {"reason": "First buzz received"})
        else:
            await self.broadcaster.emit(connection_id, "buzz-success", {
                "playerId": buzz_in.player_id, "isFirst": False
            })

        room.state["buzzOrder"] = room.buzzer.order()
        await self.broadcaster.broadcast(room.game_id, "buzz-received", buzz_data)
        await self.broadcaster.broadcast(room.game_id, "buzz-order-update", {"buzzOrder": room.buzzer.order()})

    async def _ping(self, connection_id: str, data: Any) -> None:
        extra = data if isinstance(data, dict) else {}
        await self.broadcaster.emit(connection_id, "pong", {
            **extra,
            "message": "Server received your ping!",
            "timestamp": now_ms(),
            "socketId": connection_id,
        })

    async def _error(self, connection_id: str, detail: str, event: str = None) -> None:
        await self.broadcaster.emit(connection_id, "error", {"detail": detail, "event": event})

    def _explicit_game_id(self, data: Any) -> Optional[Any]:
        if isinstance(data, dict):
            data = data.get("gameId")
        if data in (None, "") or isinstance(data, (list, dict, bool)):
            return None
        return data

    def _room_for(self, connection_id: str, data: Any) -> Room:
        """Resolve the room a control event targets: explicit gameId, else the sender's only room."""
        game_id = self._explicit_game_id(data)
        if game_id is None:
            joined = self.broadcaster.rooms_for(connection_id)
            if len(joined) != 1:
                raise InvalidInput("gameId is required when not in exactly one game")
            game_id = joined[0]

        room = self.broadcaster.get_room(game_id)
        if room is None:
            raise InvalidInput(f"No active room for game {game_id}")
        return room


realtime_handler = RealtimeEventHandler(room_broadcaster)
