"""
Rate-limit counter stores.

InMemoryRateLimitStore serves a single process; RedisRateLimitStore shares
counters across workers.
"""

import threading
import zlib
from collections import deque
from typing import Deque, Dict, List, Tuple
from uuid import uuid4

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from src.app.services.rate_limit_store import IRateLimitStore, RateLimitStoreUnavailable

DEFAULT_SHARD_COUNT = 64


class _Shard:
    __slots__ = ("lock", "windows", "attempts", "attempt_windows")

    def __init__(self):
        self.lock = threading.Lock()
        self.windows: Dict[str, Tuple[int, float]] = {}
        self.attempts: Dict[str, Deque[float]] = {}
        self.attempt_windows: Dict[str, float] = {}


class InMemoryRateLimitStore(IRateLimitStore):
    """
    Process-local store. Keys are spread over a fixed set of shards, each with
    its own lock, so hot keys do not serialize unrelated clients.
    """

    def __init__(self, shard_count: int = DEFAULT_SHARD_COUNT):
        if shard_count < 1:
            raise ValueError("shard_count must be positive")
        self._shards: List[_Shard] = [_Shard() for _ in range(shard_count)]

    def _shard_for(self, key: str) -> _Shard:
        return self._shards[zlib.crc32(key.encode()) % len(self._shards)]

    async def hit_fixed_window(
        self, key: str, window_seconds: float, max_requests: int, now: float
    ) -> Tuple[bool, int, float]:
        shard = self._shard_for(key)
        with shard.lock:
            entry = shard.windows.get(key)
            if entry is None or now > entry[1]:
                reset_at = now + window_seconds
                shard.windows[key] = (1, reset_at)
                return True, 1, reset_at

            count, reset_at = entry
            if count >= max_requests:
                return False, count, reset_at

            shard.windows[key] = (count + 1, reset_at)
            return True, count + 1, reset_at

    async def hit_rolling_window(
        self, key: str, window_seconds: float, max_attempts: int, now: float
    ) -> Tuple[bool, int, float]:
        shard = self._shard_for(key)
        with shard.lock:
            attempts = shard.attempts.setdefault(key, deque())
            shard.attempt_windows[key] = window_seconds
            while attempts and attempts[0] <= now - window_seconds:
                attempts.popleft()

            if len(attempts) >= max_attempts:
                return False, len(attempts), attempts[0]

            attempts.append(now)
            return True, len(attempts), attempts[0]

    async def prune(self, now: float) -> int:
        removed = 0
        for shard in self._shards:
            with shard.lock:
                stale = [key for key, (_, reset_at) in shard.windows.items() if now > reset_at]
                for key in stale:
                    del shard.windows[key]
                empty = []
                for key, attempts in shard.attempts.items():
                    window_seconds = shard.attempt_windows[key]
                    while attempts and attempts[0] <= now - window_seconds:
                        attempts.popleft()
                    if not attempts:
                        empty.append(key)
                for key in empty:
                    del shard.attempts[key]
                    del shard.attempt_windows[key]
                removed += len(stale) + len(empty)
        return removed


class RedisRateLimitStore(IRateLimitStore):
    """Redis-backed store; each hit is a single Lua script, so check-and-increment is atomic"""

    _FIXED_WINDOW_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local max_requests = tonumber(ARGV[2])
local now = tonumber(ARGV[3])

local data = redis.call('HMGET', key, 'count', 'reset_at')
local count = tonumber(data[1])
local reset_at = tonumber(data[2])

if count == nil or reset_at == nil or now > reset_at then
  reset_at = now + window
  redis.call('HSET', key, 'count', 1, 'reset_at', tostring(reset_at))
  redis.call('PEXPIRE', key, math.ceil(window * 1000) + 1000)
  return {1, 1, tostring(reset_at)}
end

if count >= max_requests then
  return {0, count, tostring(reset_at)}
end

count = redis.call('HINCRBY', key, 'count', 1)
return {1, count, tostring(reset_at)}
"""

    _ROLLING_WINDOW_SCRIPT = """
local key = KEYS[1]
local window = tonumber(ARGV[1])
local max_attempts = tonumber(ARGV[2])
local now = tonumber(ARGV[3])
local member = ARGV[4]

redis.call('ZREMRANGEBYSCORE', key, '-inf', now - window)
local attempts = redis.call('ZCARD', key)

if attempts >= max_attempts then
  local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
  return {0, attempts, oldest[2]}
end

redis.call('ZADD', key, now, member)
redis.call('PEXPIRE', key, math.ceil(window * 1000))
local oldest = redis.call('ZRANGE', key, 0, 0, 'WITHSCORES')
return {1, attempts + 1, oldest[2]}
"""

    def __init__(self, client: aioredis.Redis, key_prefix: str = "wallet-auth:ratelimit:"):
        self.client = client
        self.key_prefix = key_prefix
        self._fixed_window = client.register_script(self._FIXED_WINDOW_SCRIPT)
        self._rolling_window = client.register_script(self._ROLLING_WINDOW_SCRIPT)

    async def hit_fixed_window(
        self, key: str, window_seconds: float, max_requests: int, now: float
    ) -> Tuple[bool, int, float]:
        try:
            allowed, count, reset_at = await self._fixed_window(
                keys=[f"{self.key_prefix}fixed:{key}"],
                args=[window_seconds, max_requests, now],
            )
        except RedisError as e:
            raise RateLimitStoreUnavailable(str(e)) from e
        return bool(int(allowed)), int(count), float(reset_at)

    async def hit_rolling_window(
        self, key: str, window_seconds: float, max_attempts: int, now: float
    ) -> Tuple[bool, int, float]:
        try:
            allowed, attempts, oldest_at = await self._rolling_window(
                keys=[f"{self.key_prefix}rolling:{key}"],
                args=[window_seconds, max_attempts, now, f"{now}:{uuid4().hex}"],
            )
        except RedisError as e:
            raise RateLimitStoreUnavailable(str(e)) from e
        return bool(int(allowed)), int(attempts), float(oldest_at)

    async def prune(self, now: float) -> int:
        # Keys carry their own TTL
        return 0
