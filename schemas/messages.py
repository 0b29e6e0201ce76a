from enum import Enum
from typing import Any, Literal, Optional

from pydantic import BaseModel, Field


class Role(str, Enum):
    SENDER = "sender"
    RECEIVER = "receiver"

    @property
    def opposite(self) -> "Role":
        return Role.RECEIVER if self is Role.SENDER else Role.SENDER


RELAY_TYPES = ("offer", "answer", "ice")


# Client -> server

class JoinMessage(BaseModel):
    type: Literal["join"] = "join"
    roomId: str = Field(..., min_length=1)
    token: str = Field(..., min_length=1)
    role: Role


class RelayMessage(BaseModel):
    type: Literal["offer", "answer", "ice"]
    # Opaque handshake payload, never inspected
    data: Any = None


# Server -> client

class JoinedMessage(BaseModel):
    type: Literal["joined"] = "joined"
    roomId: str
    role: Role


class ReadyMessage(BaseModel):
    type: Literal["ready"] = "ready"


class PeerLeftMessage(BaseModel):
    type: Literal["peer-left"] = "peer-left"


class ErrorMessage(BaseModel):
    type: Literal["error"] = "error"
    message: str


class HealthResponse(BaseModel):
    status: str = "ok"
    rooms: Optional[int] = None
