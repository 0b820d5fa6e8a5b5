"""
Request-layer guards: API key checks, rate limiting and security headers.
"""
import hmac
import threading
import time
from typing import Callable, Optional

from fastapi import HTTPException, Request

API_KEY_HEADER = 'x-api-key'

SECURITY_HEADERS = {
    'X-Content-Type-Options': 'nosniff',
    'X-Frame-Options': 'SAMEORIGIN',
    'Referrer-Policy': 'no-referrer',
    'Cross-Origin-Resource-Policy': 'same-origin',
    'Strict-Transport-Security': 'max-age=15552000; includeSubDomains',
}


def key_matches(provided: Optional[str], expected: str) -> bool:
    """True only when a key is configured and the caller sent the same one."""
    if not expected or not provided:
        return False
    return hmac.compare_digest(provided.encode('utf-8'), expected.encode('utf-8'))


def is_privileged(request: Request) -> bool:
    return key_matches(request.headers.get(API_KEY_HEADER), request.app.state.pricing.settings.api_key)


def require_api_key(request: Request):
    """Dependency: always demand a valid key."""
    if not is_privileged(request):
        raise HTTPException(status_code=401, detail="Unauthorized")


def require_api_key_if_configured(request: Request):
    """Dependency: demand a valid key only when API_KEY is set."""
    if request.app.state.pricing.settings.api_key and not is_privileged(request):
        raise HTTPException(status_code=401, detail="Unauthorized")


class RateLimiter:
    """Fixed-window request counter per client address."""

    def __init__(self, limit: int, window_seconds: int = 60, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window_seconds = window_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._counts: dict[tuple[str, int], int] = {}

    def hit(self, client: str) -> bool:
        """Count one request; False once the client is over the limit."""
        window = int(self._clock() // self.window_seconds)
        with self._lock:
            # Drop counters from earlier windows
            for key in [k for k in self._counts if k[1] != window]:
                del self._counts[key]
            count = self._counts.get((client, window), 0) + 1
            self._counts[(client, window)] = count
        return count <= self.limit


def rate_limited(request: Request):
    """Dependency: reject callers over the per-minute limit."""
    client = request.client.host if request.client else 'unknown'
    if not request.app.state.limiter.hit(client):
        raise HTTPException(status_code=429, detail="Too many requests, please try again later.")
