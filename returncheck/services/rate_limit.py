# returncheck/services/rate_limit.py
from __future__ import annotations
import heapq
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Callable, Optional

from redis import Redis

from ..utils.logging import logger

def now_ms() -> int:
    return int(time.time() * 1000)

@dataclass(frozen=True)
class RateLimitPolicy:
    name: str
    window_ms: int
    max_requests: int

@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int      # epoch ms at which the current window ends

@dataclass
class RateLimitEntry:
    count: int
    reset_time: int

class RateLimiter(ABC):
    """
    Fixed-window counter per key.
      - no entry, or now > reset_time  -> new window, count=1, allowed
      - count >= max_requests          -> denied, remaining=0
      - otherwise                      -> count += 1, allowed
    """

    @abstractmethod
    def allow(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        ...

    def hit(self, policy: RateLimitPolicy, key: str) -> RateLimitResult:
        return self.allow(f"{policy.name}:{key}", policy.window_ms, policy.max_requests)

class InMemoryRateLimiter(RateLimiter):
    """
    Process-local limiter. Entries are evicted once their window has ended,
    using a min-heap ordered by reset_time, so memory tracks live windows only.
    """

    def __init__(self, clock: Optional[Callable[[], int]] = None):
        self._clock = clock or now_ms
        self._entries: dict[str, RateLimitEntry] = {}
        self._expiry: list[tuple[int, str]] = []
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def allow(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        now = self._clock()
        with self._lock:
            self._evict(now)
            entry = self._entries.get(key)

            if entry is None or now > entry.reset_time:
                entry = RateLimitEntry(count=1, reset_time=now + window_ms)
                self._entries[key] = entry
                heapq.heappush(self._expiry, (entry.reset_time, key))
                return RateLimitResult(True, max_requests - 1, entry.reset_time)

            if entry.count >= max_requests:
                return RateLimitResult(False, 0, entry.reset_time)

            entry.count += 1
            return RateLimitResult(True, max_requests - entry.count, entry.reset_time)

    def _evict(self, now: int) -> None:
        while self._expiry and self._expiry[0][0] < now:
            reset_time, key = heapq.heappop(self._expiry)
            entry = self._entries.get(key)
            # heap item is stale if the key has since opened a newer window
            if entry is not None and entry.reset_time == reset_time:
                del self._entries[key]

# INCR the window counter; start the window TTL on the first hit.
_FIXED_WINDOW_LUA = """
local current = redis.call('INCR', KEYS[1])
local ttl = redis.call('PTTL', KEYS[1])
if current == 1 or ttl < 0 then
    redis.call('PEXPIRE', KEYS[1], ARGV[1])
    ttl = tonumber(ARGV[1])
end
return {current, ttl}
"""

class RedisRateLimiter(RateLimiter):
    """Same fixed-window semantics, shared across processes through Redis."""

    def __init__(self, client, prefix: str = "returncheck:rl",
                 clock: Optional[Callable[[], int]] = None):
        self._redis = client
        self._prefix = prefix
        self._clock = clock or now_ms

    @classmethod
    def from_url(cls, url: str) -> "RedisRateLimiter":
        client = Redis.from_url(url, decode_responses=True,
                                socket_connect_timeout=2, socket_timeout=2)
        return cls(client)

    def allow(self, key: str, window_ms: int, max_requests: int) -> RateLimitResult:
        now = self._clock()
        count, ttl = self._redis.eval(_FIXED_WINDOW_LUA, 1, f"{self._prefix}:{key}", int(window_ms))
        count, ttl = int(count), int(ttl)
        reset_time = now + ttl
        if count > max_requests:
            return RateLimitResult(False, 0, reset_time)
        return RateLimitResult(True, max_requests - count, reset_time)

def build_rate_limiter(settings) -> RateLimiter:
    if settings.RATE_LIMIT_BACKEND == "redis":
        if not settings.REDIS_URL:
            raise RuntimeError("RATE_LIMIT_BACKEND=redis requires REDIS_URL")
        logger.info("Using Redis rate limiter")
        return RedisRateLimiter.from_url(settings.REDIS_URL)
    logger.info("Using in-memory rate limiter")
    return InMemoryRateLimiter()

def check_policy(settings) -> RateLimitPolicy:
    return RateLimitPolicy("check", settings.CHECK_RATE_LIMIT_WINDOW_MS, settings.CHECK_RATE_LIMIT_MAX)

def report_policy(settings) -> RateLimitPolicy:
    return RateLimitPolicy("report", settings.REPORT_RATE_LIMIT_WINDOW_MS, settings.REPORT_RATE_LIMIT_MAX)
