"""Per-connection signaling protocol.

Every inbound frame goes through the same pipeline: size check, rate check,
JSON parse, then dispatch on ``type``. Size, rate and parse failures close the
channel. Admission failures are answered with an ``error`` envelope and leave
the channel usable, so a client can retry on the same connection.
"""
import json
from typing import Optional

from pydantic import ValidationError

from backend import Room, RoomRegistry
from constants import (
    CLOSE_MALFORMED,
    CLOSE_RATE_LIMITED,
    CLOSE_TOO_BIG,
    MAX_JSON_DEPTH,
    MAX_MESSAGE_BYTES,
)
from logging_config import get_logger
from rate_limiter import RateLimiter
from schemas.messages import (
    RELAY_TYPES,
    ErrorMessage,
    JoinedMessage,
    JoinMessage,
    PeerLeftMessage,
    ReadyMessage,
    RelayMessage,
    Role,
)
from session import Session, SessionState

logger = get_logger(__name__)


def json_depth(value) -> int:
    """Nesting depth of a parsed JSON value; scalars are 0. Iterative."""
    depth = 0
    stack = [(value, 1)]
    while stack:
        item, level = stack.pop()
        if isinstance(item, dict):
            item = list(item.values())
        if isinstance(item, list):
            depth = max(depth, level)
            stack.extend((child, level + 1) for child in item)
    return depth


def encode_relay(relay: RelayMessage) -> str:
    # data is relayed exactly as parsed, never re-validated
    return json.dumps({"type": relay.type, "data": relay.data})


class SignalingRouter:
    def __init__(
        self,
        registry: RoomRegistry,
        rate_limiter: Optional[RateLimiter] = None,
        max_message_bytes: int = MAX_MESSAGE_BYTES,
    ):
        self.registry = registry
        self.rate_limiter = rate_limiter or RateLimiter()
        self.max_message_bytes = max_message_bytes

    async def handle_payload(self, session: Session, payload: bytes):
        if session.state is SessionState.CLOSED:
            return

        if len(payload) > self.max_message_bytes:
            logger.warning(f"Session {session.connection_id} sent {len(payload)} bytes, closing")
            await session.close(CLOSE_TOO_BIG, "too big")
            return

        if not self.rate_limiter.allow(session):
            await session.close(CLOSE_RATE_LIMITED, "rate limit exceeded")
            return

        try:
            message = json.loads(payload.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError, RecursionError):
            logger.warning(f"Malformed payload from session {session.connection_id}, closing")
            await session.close(CLOSE_MALFORMED, "malformed payload")
            return
        if not isinstance(message, dict) or json_depth(message) > MAX_JSON_DEPTH:
            logger.warning(f"Non-object or over-nested payload from session {session.connection_id}, closing")
            await session.close(CLOSE_MALFORMED, "malformed payload")
            return

        message_type = message.get("type")
        logger.debug(f"Session {session.connection_id} sent {message_type!r}")

        if message_type == "join":
            await self.handle_join(session, message)
        elif message_type in RELAY_TYPES:
            await self.handle_relay(session, message)
        elif message_type == "leave":
            await self.cleanup(session)
        else:
            await self._reject(session, "unknown type")

    async def handle_join(self, session: Session, message: dict):
        if not all(message.get(field) for field in ("roomId", "token", "role")):
            await self._reject(session, "roomId, token, role required")
            return
        if message["role"] not in [role.value for role in Role]:
            await self._reject(session, "invalid role")
            return
        try:
            join = JoinMessage.model_validate(message)
        except ValidationError as e:
            logger.debug(f"Invalid join from session {session.connection_id}: {e}")
            await self._reject(session, "invalid join")
            return

        if session.is_joined and not session.holds(join.roomId, join.role):
            await self._reject(session, "already joined")
            return

        room = await self._lock_live_room(join.roomId)
        try:
            error = self._admit(room, session, join)
            if error:
                logger.warning(f"Join to room {room.id} rejected for session {session.connection_id}: {error}")
                await self._reject(session, error)
                return

            session.bind(room.id, join.role)
            room.set_occupant(join.role, session)
            room.touch()
            logger.info(f"Session {session.connection_id} joined room {room.id} as {join.role.value}")

            await session.send(JoinedMessage(roomId=room.id, role=join.role))
            if room.is_full:
                logger.info(f"Room {room.id} is paired")
                for occupant in room.occupants:
                    await occupant.send(ReadyMessage())
        finally:
            room.lock.release()

    def _admit(self, room: Room, session: Session, join: JoinMessage) -> Optional[str]:
        """Return an error message, or None when the join may proceed.

        Adopts the token as the room secret when the room has none yet.
        """
        if room.secret is not None and room.secret != join.token:
            return "bad token"
        if room.is_full and session not in room.occupants:
            return "room full"
        holder = room.occupant(join.role)
        if holder is not None and holder is not session:
            return f"{join.role.value} exists"
        if room.secret is None:
            room.secret = join.token
        return None

    async def _lock_live_room(self, room_id: str) -> Room:
        # The janitor may evict a room while we wait for its lock
        while True:
            room = self.registry.get_or_create(room_id)
            await room.lock.acquire()
            if not room.evicted:
                return room
            room.lock.release()

    async def handle_relay(self, session: Session, message: dict):
        if not session.is_joined:
            await self._reject(session, "join first")
            return

        relay = RelayMessage.model_validate(message)
        room = self.registry.get(session.room_id)
        if room is None:
            await self._reject(session, "room missing")
            return

        async with room.lock:
            if room.evicted:
                await self._reject(session, "room missing")
                return
            peer = room.peer_of(session.role)
            if peer is None or not peer.is_open:
                await self._reject(session, "peer not connected")
                return
            try:
                payload = encode_relay(relay)
            except (RecursionError, ValueError):
                logger.warning(f"Unserialisable {relay.type} data from session {session.connection_id}, closing")
                await session.close(CLOSE_MALFORMED, "malformed payload")
                return
            room.touch()
            await peer.send(payload)
        logger.debug(f"Relayed {relay.type} in room {room.id} from {session.role.value}")

    async def cleanup(self, session: Session):
        """Release the session's room slot. Safe to call more than once."""
        room_id, role = session.room_id, session.role
        if room_id is None:
            return
        session.unbind()

        room = self.registry.get(room_id)
        if room is None:
            logger.debug(f"Room {room_id} already gone during cleanup of {session.connection_id}")
            return

        async with room.lock:
            if room.evicted:
                return
            if room.occupant(role) is not session:
                logger.debug(f"Slot {role.value} in room {room_id} no longer held by {session.connection_id}")
                return
            room.set_occupant(role, None)
            logger.info(f"Session {session.connection_id} left room {room_id}")

            peer = room.peer_of(role)
            if peer is not None:
                await peer.send(PeerLeftMessage())
            room.touch()

            if room.is_empty:
                self.registry.delete(room_id)

    async def _reject(self, session: Session, message: str):
        await session.send(ErrorMessage(message=message))
