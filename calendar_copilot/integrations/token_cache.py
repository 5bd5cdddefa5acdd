"""Bearer-token cache with an explicit expiry policy.

Injected into API clients; each application (or test) owns its cache and
its clock.
"""
import logging
import threading
import time
from dataclasses import dataclass
from typing import Callable, Optional

logger = logging.getLogger(__name__)

TokenFetcher = Callable[[], tuple[str, float]]


@dataclass
class CachedToken:
    token: str
    expires_at: float  # clock seconds


class TokenCache:
    """Holds one token; refreshes through ``fetch`` when it is within ``skew_seconds`` of expiry."""

    def __init__(self, skew_seconds: float = 60.0, clock: Callable[[], float] = time.monotonic):
        self._skew = skew_seconds
        self._clock = clock
        self._cached: Optional[CachedToken] = None
        self._lock = threading.Lock()

    def get(self, fetch: TokenFetcher) -> str:
        """Return a valid token, calling ``fetch() -> (token, expires_in_seconds)`` if needed."""
        with self._lock:
            now = self._clock()
            if self._cached and self._cached.expires_at - self._skew > now:
                return self._cached.token
            token, expires_in = fetch()
            self._cached = CachedToken(token=token, expires_at=now + float(expires_in))
            logger.info("Refreshed API token (expires in %ss)", expires_in)
            return token

    def clear(self) -> None:
        with self._lock:
            self._cached = None
