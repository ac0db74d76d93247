"""Redis-backed sliding window limiter shared across service replicas."""

from __future__ import annotations

import math
import time
from typing import Final

from redis import Redis
from redis.exceptions import ResponseError


class RedisSlidingWindowRateLimiter:
    """Distributed attempt counter stored as one sorted set per key.

    Members are ``<now_ms>:<seq>`` scored by their timestamp; anything older
    than the window is trimmed before counting.
    """

    _LUA_SCRIPT: Final[str] = """
    local key = KEYS[1]
    local seq_key = KEYS[2]
    local window_ms = tonumber(ARGV[1])
    local max_requests = tonumber(ARGV[2])
    local now_ms = tonumber(ARGV[3])

    redis.call('ZREMRANGEBYSCORE', key, '-inf', now_ms - window_ms)
    if redis.call('ZCARD', key) >= max_requests then
        return 0
    end
    local seq = redis.call('INCR', seq_key)
    redis.call('ZADD', key, now_ms, now_ms .. ':' .. seq)
    redis.call('PEXPIRE', key, window_ms)
    redis.call('PEXPIRE', seq_key, window_ms)
    return 1
    """

    def __init__(
        self,
        client: Redis,
        *,
        max_requests: int,
        window_seconds: int,
        key_prefix: str = "auth-throttle",
    ) -> None:
        """Initialise the Redis client, window configuration, and Lua script handle."""
        self._client = client
        self._max_requests = max_requests
        self._window_ms = window_seconds * 1000
        self._key_prefix = key_prefix
        self._script = client.register_script(self._LUA_SCRIPT)

    def _keys(self, key: str) -> tuple[str, str]:
        redis_key = f"{self._key_prefix}:{key}"
        return redis_key, f"{redis_key}:seq"

    def allow(self, key: str) -> bool:
        """Record an attempt and return ``True`` while ``key`` is under its limit."""
        now_ms = int(time.time() * 1000)
        redis_key, seq_key = self._keys(key)
        try:
            result = self._script(
                keys=[redis_key, seq_key],
                args=[self._window_ms, self._max_requests, now_ms],
            )
            return int(result) == 1
        except ResponseError as exc:
            message = str(exc).lower()
            if "unknown command" in message and "eval" in message:
                return self._allow_without_scripting(redis_key, seq_key, now_ms)
            raise

    def _allow_without_scripting(self, redis_key: str, seq_key: str, now_ms: int) -> bool:
        """Command-by-command variant for servers without Lua support."""
        self._client.zremrangebyscore(redis_key, "-inf", now_ms - self._window_ms)
        if self._client.zcard(redis_key) >= self._max_requests:
            return False
        seq = self._client.incr(seq_key)
        self._client.zadd(redis_key, {f"{now_ms}:{seq}": now_ms})
        self._client.pexpire(redis_key, self._window_ms)
        self._client.pexpire(seq_key, self._window_ms)
        return True

    def retry_after(self, key: str) -> int:
        """Whole seconds until ``key`` may try again; ``0`` when it already can."""
        now_ms = int(time.time() * 1000)
        redis_key, _ = self._keys(key)
        self._client.zremrangebyscore(redis_key, "-inf", now_ms - self._window_ms)
        if self._client.zcard(redis_key) < self._max_requests:
            return 0
        oldest = self._client.zrange(redis_key, 0, 0, withscores=True)
        if not oldest:
            return 0
        _, score = oldest[0]
        return max(1, math.ceil((score + self._window_ms - now_ms) / 1000))

    def reset(self, key: str) -> None:
        """Forget the attempt history of ``key``."""
        self._client.delete(*self._keys(key))
