"""Rate limiters: token bucket for HTTP calls, fixed interval between instruments."""
import time
import threading


class RateLimiter:
    """Token bucket rate limiter, thread-safe."""

    def __init__(self, calls_per_minute, clock=time.monotonic, sleep=time.sleep):
        self.rate = calls_per_minute / 60.0  # tokens per second
        self.max_tokens = calls_per_minute
        self.tokens = float(calls_per_minute)
        self._clock = clock
        self._sleep = sleep
        self.last_time = clock()
        self._lock = threading.Lock()

    def wait(self):
        """Block until a token is available."""
        with self._lock:
            now = self._clock()
            elapsed = now - self.last_time
            self.tokens = min(self.max_tokens, self.tokens + elapsed * self.rate)
            self.last_time = now

            if self.tokens < 1:
                sleep_time = (1 - self.tokens) / self.rate
                self._sleep(sleep_time)
                self.tokens = 0
            else:
                self.tokens -= 1


class FixedIntervalLimiter:
    """Blocks for a fixed interval on every call.

    Used between instrument analyses so the exchange sees at most one
    analysis burst per interval. ``sleep`` is injectable so tests can record
    waits instead of sleeping.
    """

    def __init__(self, interval_seconds=1.0, sleep=time.sleep):
        if interval_seconds < 0:
            raise ValueError("interval_seconds must be >= 0")
        self.interval = interval_seconds
        self._sleep = sleep
        self.waits = 0

    def wait(self):
        self.waits += 1
        if self.interval > 0:
            self._sleep(self.interval)
