from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from uuid import UUID

from src.domain.entities import Session


class ISessionRepository(ABC):
    """Session repository interface - application layer"""

    @abstractmethod
    async def get_by_id(self, session_id: UUID) -> Optional[Session]:
        """Get session by ID"""
        pass

    @abstractmethod
    async def create(self, session: Session) -> Session:
        """Create a new session"""
        pass

    @abstractmethod
    async def update(self, session: Session) -> Session:
        """Update existing session"""
        pass

    @abstractmethod
    async def rotate_tokens(
        self,
        session_id: UUID,
        expected_refresh_token_id: str,
        access_token_id: str,
        refresh_token_id: str,
        access_token_expires_at: datetime,
        refresh_token_expires_at: datetime,
        last_used_at: datetime,
    ) -> bool:
        """
        Swap in new token ids only if the session is still active and still
        holds expected_refresh_token_id. Returns True if the row was updated.
        """
        pass

    @abstractmethod
    async def deactivate(self, session_id: UUID, reason: str, now: datetime) -> bool:
        """Mark an active session inactive. Returns True if it was active."""
        pass

    @abstractmethod
    async def deactivate_for_address_and_client(
        self, address: str, client_id: str, reason: str, now: datetime
    ) -> int:
        """Mark every active session of (address, client_id) inactive. Returns count."""
        pass

    @abstractmethod
    async def deactivate_expired(self, now: datetime) -> int:
        """Mark active sessions past refresh_token_expires_at inactive. Returns count."""
        pass
