import json
from collections import deque
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel
from starlette.websockets import WebSocketDisconnect, WebSocketState

from logging_config import get_logger
from schemas.messages import Role

logger = get_logger(__name__)


class SessionError(RuntimeError):
    pass


class SessionState(str, Enum):
    UNJOINED = "unjoined"
    JOINED = "joined"
    CLOSED = "closed"


class Session:
    """Protocol state attached to one WebSocket connection.

    The transport owns the socket; the session only routes through it.
    """

    def __init__(self, websocket, connection_id: str):
        self.websocket = websocket
        self.connection_id = connection_id
        self.state = SessionState.UNJOINED
        self.room_id: Optional[str] = None
        self.role: Optional[Role] = None
        # Timestamps of recent inbound messages, see RateLimiter
        self.rate_window: deque = deque()

    def __repr__(self):
        return f"<Session {self.connection_id} {self.state.value} room={self.room_id} role={self.role}>"

    @property
    def is_joined(self) -> bool:
        return self.state is SessionState.JOINED

    @property
    def is_open(self) -> bool:
        if self.state is SessionState.CLOSED:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def holds(self, room_id: str, role: Role) -> bool:
        return self.is_joined and self.room_id == room_id and self.role is role

    def bind(self, room_id: str, role: Role):
        if self.state is SessionState.CLOSED:
            raise SessionError(f"Cannot bind closed session {self.connection_id}")
        if self.is_joined and not self.holds(room_id, role):
            raise SessionError(
                f"Session {self.connection_id} already bound to {self.room_id}/{self.role.value}"
            )
        self.room_id = room_id
        self.role = role
        self.state = SessionState.JOINED

    def unbind(self):
        self.room_id = None
        self.role = None
        if self.state is SessionState.JOINED:
            self.state = SessionState.UNJOINED

    async def send(self, message: Union[BaseModel, dict, str]):
        if not self.is_open:
            logger.debug(f"Dropping message to non-open session {self.connection_id}")
            return
        if isinstance(message, str):
            payload = message
        elif isinstance(message, BaseModel):
            payload = message.model_dump_json()
        else:
            payload = json.dumps(message)
        try:
            await self.websocket.send_text(payload)
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            # Peer went away between the state check and the send
            logger.debug(f"Send to session {self.connection_id} failed: {e}")

    async def close(self, code: int = 1000, reason: str = ""):
        if self.state is SessionState.CLOSED:
            return
        # Routing metadata is kept so disconnect cleanup can still find the room
        self.state = SessionState.CLOSED
        if self.websocket.client_state == WebSocketState.DISCONNECTED:
            return
        logger.info(f"Closing session {self.connection_id} with code {code}: {reason}")
        try:
            await self.websocket.close(code=code, reason=reason)
        except (RuntimeError, OSError, WebSocketDisconnect) as e:
            logger.debug(f"Error closing WebSocket for session {self.connection_id}: {e}")
