import math
import threading
from datetime import datetime
from typing import Dict

import redis.asyncio as aioredis

from src.app.services.token_denylist import ITokenDenylist


class InMemoryTokenDenylist(ITokenDenylist):
    """Process-local denylist; expired entries are dropped on access"""

    def __init__(self):
        self._lock = threading.Lock()
        self._entries: Dict[str, datetime] = {}

    async def add(self, jti: str, expires_at: datetime, now: datetime) -> None:
        if expires_at <= now:
            return
        with self._lock:
            self._entries[jti] = max(expires_at, self._entries.get(jti, expires_at))

    async def contains(self, jti: str, now: datetime) -> bool:
        with self._lock:
            expires_at = self._entries.get(jti)
            if expires_at is None:
                return False
            if expires_at <= now:
                del self._entries[jti]
                return False
            return True

    async def prune(self, now: datetime) -> int:
        with self._lock:
            stale = [jti for jti, expires_at in self._entries.items() if expires_at <= now]
            for jti in stale:
                del self._entries[jti]
        return len(stale)


class RedisTokenDenylist(ITokenDenylist):
    """Denylist entries as Redis keys that expire with the token"""

    def __init__(self, client: aioredis.Redis, key_prefix: str = "wallet-auth:denylist:"):
        self.client = client
        self.key_prefix = key_prefix

    async def add(self, jti: str, expires_at: datetime, now: datetime) -> None:
        ttl_seconds = math.ceil((expires_at - now).total_seconds())
        if ttl_seconds <= 0:
            return
        await self.client.set(f"{self.key_prefix}{jti}", "1", ex=ttl_seconds)

    async def contains(self, jti: str, now: datetime) -> bool:
        return bool(await self.client.exists(f"{self.key_prefix}{jti}"))

    async def prune(self, now: datetime) -> int:
        return 0
