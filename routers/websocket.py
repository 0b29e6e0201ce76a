import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from backend import room_registry
from constants import CLOSE_INVALID_PATH
from logging_config import get_logger
from session import Session
from signaling import SignalingRouter

logger = get_logger(__name__)

signaling_ws_router = APIRouter(tags=["signaling"])

signaling_router = SignalingRouter(room_registry)


@signaling_ws_router.websocket("/ws")
async def signaling_endpoint(websocket: WebSocket):
    """Signaling channel. One JSON envelope per frame, see schemas.messages."""
    await websocket.accept()
    session = Session(websocket, connection_id=uuid.uuid4().hex)
    logger.info(f"WebSocket connection accepted: {session.connection_id} from {websocket.client}")

    try:
        while session.is_open:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))

            payload = message.get("bytes")
            if payload is None:
                payload = (message.get("text") or "").encode("utf-8")
            await signaling_router.handle_payload(session, payload)
    except WebSocketDisconnect as e:
        logger.info(f"WebSocket disconnected for session {session.connection_id} (code {e.code})")
    except Exception as e:
        logger.error(f"WebSocket error for session {session.connection_id}: {e}", exc_info=True)
    finally:
        await signaling_router.cleanup(session)
        await session.close()
        logger.debug(f"Session {session.connection_id} finished")


@signaling_ws_router.websocket("/{path:path}")
async def invalid_path_endpoint(websocket: WebSocket, path: str):
    logger.warning(f"WebSocket connection on invalid path /{path}")
    await websocket.accept()
    await websocket.close(code=CLOSE_INVALID_PATH, reason="Invalid path")
