from fastapi import APIRouter

from backend import room_registry
from schemas.messages import HealthResponse

health_router = APIRouter(tags=["health"])


@health_router.get("/health", response_model=HealthResponse)
async def health():
    return HealthResponse(status="ok", rooms=len(room_registry))
