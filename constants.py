import os

HOST = os.getenv("HOST", "0.0.0.0")
PORT = int(os.getenv("PORT", 8000))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", None)

STATIC_DIR = os.getenv("STATIC_DIR", "public")
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

# Protocol limits, not configurable at runtime
MAX_PER_ROOM = 2
MAX_MESSAGE_BYTES = 64 * 1024
MAX_JSON_DEPTH = 512
RATE_LIMIT_WINDOW_SECONDS = 10
RATE_LIMIT_MAX = 60
ROOM_TTL_SECONDS = 30 * 60
JANITOR_INTERVAL_SECONDS = 5 * 60

# WebSocket close codes
CLOSE_ROOM_EXPIRED = 1001
CLOSE_MALFORMED = 1003
CLOSE_INVALID_PATH = 1008
CLOSE_TOO_BIG = 1009
CLOSE_RATE_LIMITED = 1013
