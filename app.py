import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from backend import room_registry
from constants import CORS_ORIGINS, LOG_FILE, LOG_LEVEL, STATIC_DIR
from janitor import Janitor
from logging_config import get_logger, setup_logging
from routers.health import health_router
from routers.websocket import signaling_ws_router

# Setup logging
setup_logging(log_level=LOG_LEVEL, log_file=LOG_FILE)
logger = get_logger(__name__)

janitor = Janitor(room_registry)


@asynccontextmanager
async def lifespan(app: FastAPI):
    janitor.start()
    try:
        yield
    finally:
        await janitor.stop()


app = FastAPI(title="Rendezvous signaling relay", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health_router)
# Must come after the other routers: it ends with a catch-all WebSocket route
app.include_router(signaling_ws_router)

if os.path.isdir(STATIC_DIR):
    app.mount("/", StaticFiles(directory=STATIC_DIR, html=True), name="static")
    logger.info(f"Serving static files from {STATIC_DIR}")

logger.info("FastAPI application initialized")
