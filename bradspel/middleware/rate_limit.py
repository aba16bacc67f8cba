"""
Bradspel Backend — Rate Limiting Middleware
============================================

What:  Per-IP sliding window rate limiter.
How:   Keeps the timestamps of each IP's requests inside the window; a
       request arriving when the window is full gets a 429 with Retry-After.
Who:   Every request except probes and API docs. POST /order-game needs no
       login, so this is the only throttle in front of it.

Algorithm: Sliding Window Log
    1. Drop the IP's timestamps older than `window` seconds
    2. If `max_requests` remain, reject; Retry-After is when the oldest expires
    3. Otherwise record now and let the request through

State is per process. Multi-worker deployments get one window per worker.
"""

import logging
import time
from collections import defaultdict
from typing import Dict, List, Optional

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from bradspel.config import settings
from bradspel.exceptions import RateLimitExceededError
from bradspel.middleware.request_id import get_request_id

logger = logging.getLogger(__name__)


class RateLimitMiddleware(BaseHTTPMiddleware):
    """
    In-memory sliding window rate limiter.

    Args:
        max_requests: Requests allowed per window (default: settings.rate_limit_requests)
        window:       Window length in seconds (default: settings.rate_limit_window)
    """

    EXCLUDED_PATHS = {"/health", "/ping", "/docs", "/openapi.json", "/redoc"}

    # Inactive IPs are swept every this many recorded requests
    CLEANUP_EVERY = 1000

    def __init__(
        self,
        app,
        max_requests: Optional[int] = None,
        window: Optional[int] = None,
        **kwargs,
    ):
        super().__init__(app, **kwargs)
        self.max_requests = max_requests or settings.rate_limit_requests
        self.window = window or settings.rate_limit_window
        self._requests: Dict[str, List[float]] = defaultdict(list)
        self._recorded = 0

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint
    ) -> Response:
        if request.url.path in self.EXCLUDED_PATHS:
            return await call_next(request)

        # Behind a proxy this is the proxy's address unless uvicorn runs
        # with --proxy-headers
        client_ip = (
            getattr(request.client, "host", "unknown")
            if request.client
            else "unknown"
        )

        now = time.time()
        window_start = now - self.window
        timestamps = [ts for ts in self._requests[client_ip] if ts > window_start]
        self._requests[client_ip] = timestamps

        if len(timestamps) >= self.max_requests:
            retry_after = int(timestamps[0] + self.window - now) + 1
            logger.warning(
                "Rate limit exceeded for IP %s: %d requests in %ds window",
                client_ip,
                len(timestamps),
                self.window,
            )
            # Errors raised here would bypass the app's exception handlers,
            # so the response is built in place
            exc = RateLimitExceededError(retry_after=retry_after)
            rid = get_request_id(request)
            return JSONResponse(
                status_code=429,
                content={
                    "error": "rate_limit_exceeded",
                    "message": exc.message,
                    "details": exc.context,
                    "request_id": rid,
                },
                headers={"Retry-After": str(retry_after), "X-Request-ID": rid},
            )

        timestamps.append(now)
        self._recorded += 1
        if self._recorded % self.CLEANUP_EVERY == 0:
            self._cleanup_inactive_ips(window_start)

        return await call_next(request)

    def _cleanup_inactive_ips(self, window_start: float) -> None:
        inactive_ips = [
            ip for ip, timestamps in self._requests.items()
            if not timestamps or timestamps[-1] < window_start
        ]
        for ip in inactive_ips:
            del self._requests[ip]

        if inactive_ips:
            logger.debug("Cleaned up %d inactive IP entries", len(inactive_ips))
