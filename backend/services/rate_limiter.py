"""
Per-client request throttling (fixed window).

One counter per client key: the socket peer, or the first X-Forwarded-For
hop when the app sits behind a trusted proxy. Once a client exceeds
`max_requests` inside a window, further requests raise TooManyRequests
until the window rolls over.
"""
import math
import time
from typing import Callable, Dict, Tuple

from fastapi import Request

from models.errors import TooManyRequests


class RateLimiter:

    def __init__(
        self,
        max_requests: int = 100,
        window_seconds: float = 60.0,
        clock: Callable[[], float] = time.monotonic,
        trust_forwarded_for: bool = False,
    ):
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self.trust_forwarded_for = trust_forwarded_for
        self._windows: Dict[str, Tuple[float, int]] = {}  # key → (window_start, count)

    def hit(self, key: str) -> None:
        now = self._clock()
        start, count = self._windows.get(key, (now, 0))
        if now - start >= self.window_seconds:
            start, count = now, 0
        count += 1
        self._windows[key] = (start, count)
        if count > self.max_requests:
            retry_after = math.ceil(self.window_seconds - (now - start))
            raise TooManyRequests(retry_after=max(retry_after, 1))
        if len(self._windows) > 10_000:
            self._prune(now)

    def _prune(self, now: float) -> None:
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window_seconds]
        for k in expired:
            del self._windows[k]


def client_key(request: Request, trust_forwarded_for: bool = False) -> str:
    if trust_forwarded_for:
        forwarded = request.headers.get("x-forwarded-for")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


async def rate_limit(request: Request) -> None:
    """FastAPI dependency — throttles the calling client."""
    limiter: RateLimiter = request.app.state.rate_limiter
    limiter.hit(client_key(request, limiter.trust_forwarded_for))
