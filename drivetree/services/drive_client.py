"""Low-level Drive API plumbing.

Provides:
- Drive v3 resource construction from the bundled discovery document
- Request execution stamped with a bearer-token snapshot
- Request pacing shared by every Drive call
- HttpError decoding into (status, message)

Requests are built without attached credentials. The caller passes the token
that was current when the request was issued, so a refresh happening while a
request is in flight never changes that request.
"""

from __future__ import annotations

import asyncio
import time
from collections import deque
from typing import Any

import httplib2
from googleapiclient.discovery import Resource, build
from googleapiclient.errors import HttpError
from googleapiclient.http import HttpRequest

from drivetree.core.config import settings
from drivetree.core.logging import get_logger

logger = get_logger(__name__)


class RequestPacer:
    """Spaces out Drive requests.

    Every request waits for ``min_delay`` seconds after the previous one, and
    no more than ``requests_per_minute`` requests start in any 60 second
    window. Pacing only delays a request; it never retries one.
    """

    WINDOW_SECONDS = 60.0

    def __init__(self, min_delay: float = 0.0, requests_per_minute: int = 600):
        self.min_delay = min_delay
        self.requests_per_minute = requests_per_minute
        self._started: deque[float] = deque()
        self._lock = asyncio.Lock()

    def _delay(self, now: float) -> float:
        """Seconds to wait before a request may start at ``now``."""
        while self._started and now - self._started[0] >= self.WINDOW_SECONDS:
            self._started.popleft()

        delay = 0.0
        if len(self._started) >= self.requests_per_minute:
            delay = self.WINDOW_SECONDS - (now - self._started[0])
        if self._started and self.min_delay > 0:
            delay = max(delay, self.min_delay - (now - self._started[-1]))
        return delay

    async def acquire(self) -> None:
        """Wait until the next request may start, then record it."""
        async with self._lock:
            delay = self._delay(time.monotonic())
            if delay > 0:
                logger.debug(
                    "request_paced",
                    wait_seconds=round(delay, 2),
                    in_window=len(self._started),
                )
                await asyncio.sleep(delay)
            self._started.append(time.monotonic())


# Global pacer instance (initialized lazily with settings)
_pacer: RequestPacer | None = None


def get_request_pacer() -> RequestPacer:
    """Get or create the global request pacer."""
    global _pacer
    if _pacer is None:
        _pacer = RequestPacer(
            min_delay=settings.google_request_delay,
            requests_per_minute=settings.google_requests_per_minute,
        )
    return _pacer


# Global Drive resource (the discovery document is bundled, no network needed)
_resource: Resource | None = None


def get_drive_resource() -> Resource:
    """Get or create the Drive v3 API resource."""
    global _resource
    if _resource is None:
        _resource = build(
            "drive",
            "v3",
            http=httplib2.Http(timeout=settings.google_http_timeout),
            cache_discovery=False,
            static_discovery=True,
        )
        logger.debug("drive_resource_built")
    return _resource


async def execute_with_token(request: HttpRequest, token: str | None) -> dict[str, Any]:
    """Execute a Drive API request with the given bearer token.

    The request runs in a worker thread on its own HTTP connection, so
    concurrent listings never share a connection object.

    Args:
        request: Prepared (not yet executed) API request.
        token: Bearer token snapshot to send with this request.

    Returns:
        Parsed JSON response body.

    Raises:
        HttpError: If the API returns a non-2xx status code.
    """
    if token:
        request.headers["authorization"] = f"Bearer {token}"

    await get_request_pacer().acquire()

    http = httplib2.Http(timeout=settings.google_http_timeout)
    return await asyncio.to_thread(request.execute, http=http)


def http_error_details(error: HttpError) -> tuple[int, str]:
    """Extract the HTTP status and provider message from an HttpError."""
    status = error.resp.status
    reason = error.reason or error.resp.reason or "Unknown error"
    return status, str(reason)
