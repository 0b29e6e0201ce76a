import time
from typing import Callable

from constants import RATE_LIMIT_MAX, RATE_LIMIT_WINDOW_SECONDS
from logging_config import get_logger

logger = get_logger(__name__)


class RateLimiter:
    """Sliding-window message counter.

    Each session carries its own window, so the state goes away with the
    connection and needs no cleanup here. Bursts up to ``max_messages`` are
    allowed inside any trailing window; nothing is smoothed.
    """

    def __init__(
        self,
        max_messages: int = RATE_LIMIT_MAX,
        window_seconds: float = RATE_LIMIT_WINDOW_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.max_messages = max_messages
        self.window_seconds = window_seconds
        self._clock = clock

    def allow(self, session) -> bool:
        now = self._clock()
        window = session.rate_window
        window_start = now - self.window_seconds
        while window and window[0] < window_start:
            window.popleft()
        window.append(now)
        if len(window) > self.max_messages:
            logger.warning(
                f"Rate limit exceeded for session {session.connection_id}: "
                f"{len(window)} messages in {self.window_seconds}s"
            )
            return False
        return True
