from abc import ABC, abstractmethod
from datetime import datetime


class ITokenDenylist(ABC):
    """Revoked token ids (jti), each kept only until the token's own expiry"""

    @abstractmethod
    async def add(self, jti: str, expires_at: datetime, now: datetime) -> None:
        """Deny jti until expires_at. No-op if the token has already expired."""
        pass

    @abstractmethod
    async def contains(self, jti: str, now: datetime) -> bool:
        """True if jti is denied at now"""
        pass

    @abstractmethod
    async def prune(self, now: datetime) -> int:
        """Forget entries whose token has expired. Returns entries removed."""
        pass
