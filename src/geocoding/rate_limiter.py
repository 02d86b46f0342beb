"""
Process-wide rate limiter for calls to the geocoding provider.
"""
import logging
import time
from threading import Lock

logger = logging.getLogger(__name__)


class RateLimiter:
    """
    Enforces a minimum interval between successive provider calls.

    One instance is shared by every caller that talks to the provider, so all
    requests in the process are serialized through the same last-call timestamp.
    """

    def __init__(self, min_interval=1.0, clock=time.monotonic, sleep=time.sleep):
        self.min_interval = max(0.0, float(min_interval))
        self._clock = clock
        self._sleep = sleep
        self._last_call = None
        self._lock = Lock()

    def throttle(self):
        with self._lock:
            if self._last_call is not None:
                elapsed = self._clock() - self._last_call
                wait_time = self.min_interval - elapsed
                if wait_time > 0:
                    logger.debug(f"Rate limit: waiting {wait_time:.3f}s before next geocoding request")
                    self._sleep(wait_time)
            self._last_call = self._clock()


class NoopRateLimiter:
    """Never waits. Used where the provider is faked."""

    min_interval = 0.0

    def throttle(self):
        return None
