import asyncio
from typing import List, Optional

from backend import Room, RoomRegistry
from constants import CLOSE_ROOM_EXPIRED, JANITOR_INTERVAL_SECONDS, ROOM_TTL_SECONDS
from logging_config import get_logger

logger = get_logger(__name__)


class Janitor:
    """Periodically evicts rooms that saw no activity for longer than the TTL.

    Backstop for clients that crashed without leaving or disconnecting cleanly.
    """

    def __init__(
        self,
        registry: RoomRegistry,
        ttl_seconds: float = ROOM_TTL_SECONDS,
        interval_seconds: float = JANITOR_INTERVAL_SECONDS,
    ):
        self.registry = registry
        self.ttl_seconds = ttl_seconds
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self):
        if self.running:
            return
        self._task = asyncio.create_task(self._run())
        logger.info(f"Janitor started: ttl={self.ttl_seconds}s interval={self.interval_seconds}s")

    async def stop(self):
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Janitor stopped")

    async def _run(self):
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                await self.sweep()
            except Exception as e:
                logger.error(f"Janitor sweep failed: {e}", exc_info=True)

    async def sweep(self) -> List[str]:
        evicted: List[str] = []

        async def evict(room: Room):
            async with room.lock:
                # Activity may have happened while we waited for the lock
                if room.evicted or room.idle_for() <= self.ttl_seconds:
                    return
                occupants = room.occupants
                self.registry.delete(room.id)
                # Closing makes each connection handler run its own cleanup
                for session in occupants:
                    await session.close(CLOSE_ROOM_EXPIRED, "room expired")
            evicted.append(room.id)
            logger.info(f"Evicted stale room {room.id} ({len(occupants)} occupants closed)")

        await self.registry.for_each_stale(self.ttl_seconds, evict)
        if evicted:
            logger.info(f"Janitor sweep evicted {len(evicted)} rooms")
        return evicted
