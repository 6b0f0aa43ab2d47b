"""Process-global token bucket guarding the REST API."""

import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from sysinfo_server.encoding import error
from sysinfo_server.errors import RateLimitExceeded
from sysinfo_server.logs import get_logger

WINDOW_SECONDS = 60

logger = get_logger("ratelimit")


@dataclass
class TokenBucket:
    """
    Token bucket rate limiter:
    - capacity = max tokens in bucket
    - refill_rate = tokens per second
    Each request consumes 1 token.
    """

    capacity: float
    refill_rate: float
    tokens: float
    last_refill: float


class RateLimiter:
    """
    Allows `per_minute` requests per window: burst capacity per_minute,
    steady refill per_minute // 60 tokens per second (at least 1).
    """

    def __init__(self, per_minute: int, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        cap = float(max(1, int(per_minute)))
        self._bucket = TokenBucket(
            capacity=cap,
            refill_rate=float(max(1, int(per_minute) // WINDOW_SECONDS)),
            tokens=cap,
            last_refill=clock(),
        )

    @property
    def capacity(self) -> float:
        return self._bucket.capacity

    @property
    def refill_rate(self) -> float:
        return self._bucket.refill_rate

    def allow(self) -> bool:
        now = self._clock()
        with self._lock:
            b = self._bucket
            # refill
            elapsed = max(0.0, now - b.last_refill)
            b.tokens = min(b.capacity, b.tokens + elapsed * b.refill_rate)
            b.last_refill = now
            if b.tokens >= 1.0:
                b.tokens -= 1.0
                return True
            return False

    def check(self) -> None:
        """Consume a token or raise RateLimitExceeded."""
        if not self.allow():
            raise RateLimitExceeded("Too many requests")


class RateLimitMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, limiter: RateLimiter) -> None:
        super().__init__(app)
        self._limiter = limiter

    async def dispatch(self, request: Request, call_next) -> Response:
        try:
            self._limiter.check()
        except RateLimitExceeded as exc:
            logger.info("rate_limited", path=request.url.path)
            return JSONResponse(
                error(exc.status_code, str(exc)),
                status_code=exc.status_code,
            )
        return await call_next(request)
