import asyncio
import time
from typing import Awaitable, Callable, Dict, Optional

from constants import MAX_PER_ROOM
from logging_config import get_logger
from schemas.messages import Role

logger = get_logger(__name__)


class Room:
    """Two-slot rendezvous room.

    Slots hold core-owned Session records, never the transport object itself.
    All read-modify-write sequences on a room must run under ``room.lock``.
    """

    def __init__(self, room_id: str, clock: Callable[[], float] = time.monotonic):
        self.id = room_id
        self.secret: Optional[str] = None
        self.sender = None
        self.receiver = None
        self.lock = asyncio.Lock()
        # Set once the registry has dropped this room; a handler that was
        # waiting on the lock must then fetch a fresh room.
        self.evicted = False
        self._clock = clock
        self.last_activity = clock()

    def touch(self):
        self.last_activity = self._clock()

    def occupant(self, role: Role):
        return self.sender if role is Role.SENDER else self.receiver

    def set_occupant(self, role: Role, session):
        if role is Role.SENDER:
            self.sender = session
        else:
            self.receiver = session

    def peer_of(self, role: Role):
        return self.occupant(role.opposite)

    @property
    def occupants(self) -> list:
        return [s for s in (self.sender, self.receiver) if s is not None]

    @property
    def is_full(self) -> bool:
        return len(self.occupants) >= MAX_PER_ROOM

    @property
    def is_empty(self) -> bool:
        return self.sender is None and self.receiver is None

    def idle_for(self) -> float:
        return self._clock() - self.last_activity


class RoomRegistry:
    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self._rooms: Dict[str, Room] = {}
        self._clock = clock
        logger.info("Initializing in-memory RoomRegistry")

    def __len__(self) -> int:
        return len(self._rooms)

    def __contains__(self, room_id: str) -> bool:
        return room_id in self._rooms

    def get_or_create(self, room_id: str) -> Room:
        room = self._rooms.get(room_id)
        if room is None:
            room = Room(room_id, clock=self._clock)
            self._rooms[room_id] = room
            logger.info(f"Created room {room_id}")
        return room

    def get(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def delete(self, room_id: str):
        room = self._rooms.pop(room_id, None)
        if room is None:
            logger.debug(f"Delete requested for unknown room {room_id}")
            return
        room.evicted = True
        logger.info(f"Deleted room {room_id} (rooms remaining: {len(self._rooms)})")

    async def for_each_stale(self, threshold: float, fn: Callable[[Room], Awaitable[None]]):
        """Await ``fn(room)`` for every room idle longer than ``threshold`` seconds."""
        # Snapshot: fn usually deletes from the registry
        stale = [room for room in self._rooms.values() if room.idle_for() > threshold]
        logger.debug(f"Found {len(stale)} stale rooms out of {len(self._rooms)}")
        for room in stale:
            await fn(room)


room_registry = RoomRegistry()
