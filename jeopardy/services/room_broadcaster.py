"""
Room-scoped WebSocket broadcasting for live games.

Each game has a room: the set of live connections watching it. Membership
lives in this process only and is rebuilt from scratch after a restart.

Membership changes never await, so the event loop serializes them without
a lock. Each broadcast takes the next per-room sequence number and queues
its message on every member's send lock in that order, so every member
sees that room's events in the same relative order. Sends to different
members run independently: a stalled member only delays its own messages.

Delivery is at-most-once and best-effort. A send that times out is logged
and skipped; a member that keeps timing out, or whose send fails, is
dropped and its socket closed.
"""
import asyncio
import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from fastapi import WebSocket

from jeopardy.core.config import settings
from jeopardy.services.buzzer import Buzzer

logger = logging.getLogger(__name__)


def room_key(game_id: Any) -> str:
    """Clients send game ids as numbers or strings; rooms are keyed by string."""
    return str(game_id)


def initial_game_state() -> Dict:
    return {
        "currentQuestion": None,
        "isPlaying": False,
        "buzzStartTime": None,
        "buzzOrder": [],
        "scoreboard": [],
    }


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Room:
    """Live state of one game room."""
    game_id: str
    members: Set[str] = field(default_factory=set)
    seq: int = 0
    state: Dict = field(default_factory=initial_game_state)
    buzzer: Buzzer = field(default_factory=Buzzer)
    created_at: datetime = field(default_factory=utcnow)


class RoomBroadcaster:
    """Tracks live connections and which game rooms they belong to."""

    def __init__(self, send_timeout: float = None, max_timeouts: int = None):
        self.send_timeout = send_timeout if send_timeout is not None else settings.BROADCAST_SEND_TIMEOUT
        self.max_timeouts = max_timeouts if max_timeouts is not None else settings.BROADCAST_MAX_TIMEOUTS
        self.connections: Dict[str, WebSocket] = {}  # connection_id -> websocket
        self.rooms: Dict[str, Room] = {}  # game_id -> room
        self._send_locks: Dict[str, asyncio.Lock] = {}
        self._timeouts: Dict[str, int] = {}  # consecutive timeouts per connection

    def register(self, websocket: WebSocket, connection_id: str = None) -> str:
        connection_id = connection_id or uuid.uuid4().hex
        self.connections[connection_id] = websocket
        self._send_locks[connection_id] = asyncio.Lock()
        self._timeouts[connection_id] = 0
        logger.debug(f"Connection {connection_id} registered")
        return connection_id

    def unregister(self, connection_id: str) -> List[str]:
        """Forget a connection and leave every room it was in. Safe to repeat."""
        left = self.leave_all(connection_id)
        self._send_locks.pop(connection_id, None)
        self._timeouts.pop(connection_id, None)
        if self.connections.pop(connection_id, None) is not None:
            logger.info(f"Connection {connection_id} disconnected (left rooms {left})")
        return left

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self.connections

    def join(self, game_id: Any, connection_id: str) -> bool:
        """Add a live connection to a room. Returns False if it was already there or is gone."""
        if connection_id not in self.connections:
            logger.warning(f"Connection {connection_id} is not registered, cannot join game {game_id}")
            return False

        key = room_key(game_id)
        room = self.rooms.get(key)
        if room is None:
            room = self.rooms[key] = Room(game_id=key)
            logger.info(f"Room for game {key} opened")

        if connection_id in room.members:
            return False
        room.members.add(connection_id)
        logger.info(f"Connection {connection_id} joined game {key} ({len(room.members)} members)")
        return True

    def leave(self, game_id: Any, connection_id: str) -> bool:
        """Remove a connection from a room, pruning the room once it is empty."""
        key = room_key(game_id)
        room = self.rooms.get(key)
        if room is None or connection_id not in room.members:
            return False

        room.members.discard(connection_id)
        logger.info(f"Connection {connection_id} left game {key}")
        if not room.members:
            del self.rooms[key]
            logger.info(f"Room for game {key} closed")
        return True

    def leave_all(self, connection_id: str) -> List[str]:
        joined = self.rooms_for(connection_id)
        for key in joined:
            self.leave(key, connection_id)
        return joined

    def rooms_for(self, connection_id: str) -> List[str]:
        return [key for key, room in self.rooms.items() if connection_id in room.members]

    def members(self, game_id: Any) -> Set[str]:
        room = self.rooms.get(room_key(game_id))
        return set(room.members) if room else set()

    def get_room(self, game_id: Any) -> Optional[Room]:
        return self.rooms.get(room_key(game_id))

    async def broadcast(self, game_id: Any, event: str, payload: Any,
                        exclude_connection_id: str = None) -> int:
        """
        Deliver an event to every member of a room except the excluded one.

        Returns the number of members the event reached. Broadcasting into an
        empty or unknown room is a no-op.
        """
        room = self.rooms.get(room_key(game_id))
        if room is None:
            logger.debug(f"No room for game {game_id}, skipping {event}")
            return 0

        targets = [cid for cid in room.members if cid != exclude_connection_id]
        if not targets:
            return 0

        # No await between numbering and queueing: tasks start in creation
        # order, so each member's send lock is taken in seq order.
        room.seq += 1
        seq = room.seq
        message = json.dumps({"event": event, "data": payload, "seq": seq}, default=str)
        sends = [asyncio.ensure_future(self._send(cid, message)) for cid in targets]

        results = await asyncio.gather(*sends)
        delivered = sum(1 for ok in results if ok)
        logger.debug(f"Broadcast {event} #{seq} to game {room.game_id}: {delivered}/{len(targets)} delivered")
        return delivered

    async def emit(self, connection_id: str, event: str, payload: Any) -> bool:
        """Send an event to a single connection."""
        message = json.dumps({"event": event, "data": payload}, default=str)
        return await self._send(connection_id, message)

    async def _send(self, connection_id: str, message: str) -> bool:
        lock = self._send_locks.get(connection_id)
        if lock is None:
            return False

        async with lock:
            # Dropped while this message was queued
            websocket = self.connections.get(connection_id)
            if websocket is None:
                return False

            try:
                await asyncio.wait_for(websocket.send_text(message), timeout=self.send_timeout)
            except asyncio.TimeoutError:
                self._timeouts[connection_id] += 1
                timeouts = self._timeouts[connection_id]
                logger.warning(
                    f"Send to connection {connection_id} timed out after {self.send_timeout}s "
                    f"({timeouts}/{self.max_timeouts})"
                )
                if timeouts >= self.max_timeouts:
                    await self._drop(connection_id, websocket, "too many send timeouts")
                return False
            except Exception as e:
                await self._drop(connection_id, websocket, f"send failed: {e}")
                return False

            self._timeouts[connection_id] = 0
            return True

    async def _drop(self, connection_id: str, websocket: WebSocket, reason: str) -> None:
        """Unregister a connection and close its socket so the client sees the disconnect."""
        logger.warning(f"Dropping connection {connection_id}: {reason}")
        self.unregister(connection_id)
        try:
            await asyncio.wait_for(websocket.close(code=1011), timeout=self.send_timeout)
        except Exception as e:
            logger.debug(f"Closing dropped connection {connection_id} failed: {e}")

    def stats(self) -> Dict[str, int]:
        return {
            "active_rooms": len(self.rooms),
            "active_connections": len(self.connections),
        }

    async def close_all(self, code: int = 1001) -> int:
        """Close every live socket, e.g. on server shutdown. Returns how many were closed."""
        closed = 0
        for connection_id, websocket in list(self.connections.items()):
            try:
                await asyncio.wait_for(websocket.close(code=code), timeout=self.send_timeout)
                closed += 1
            except Exception as e:
                logger.warning(f"Failed to close connection {connection_id}: {e}")
            self.unregister(connection_id)
        return closed

    def reset(self) -> None:
        self.connections.clear()
        self.rooms.clear()
        self._send_locks.clear()
        self._timeouts.clear()


# Global room broadcaster instance
room_broadcaster = RoomBroadcaster()
