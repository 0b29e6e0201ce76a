import json

from starlette.websockets import WebSocketState


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


class FakeWebSocket:
    """Records what the core sends; never calls back into it."""

    def __init__(self):
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.sent = []
        self.close_code = None
        self.close_reason = None

    async def send_text(self, data: str):
        self.sent.append(json.loads(data))

    async def close(self, code: int = 1000, reason: str = ""):
        self.close_code = code
        self.close_reason = reason
        self.application_state = WebSocketState.DISCONNECTED

    def disconnect(self):
        self.client_state = WebSocketState.DISCONNECTED

    def types(self):
        return [m["type"] for m in self.sent]

    def pop(self):
        sent, self.sent = self.sent, []
        return sent


def frame(**fields) -> bytes:
    return json.dumps(fields).encode("utf-8")
