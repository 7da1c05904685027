from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from src.domain.entities import Challenge


class IChallengeRepository(ABC):
    """Challenge repository interface - application layer"""

    @abstractmethod
    async def create(self, challenge: Challenge) -> Challenge:
        """Persist a new challenge (used=false)"""
        pass

    @abstractmethod
    async def get_by_id(self, challenge_id: UUID) -> Optional[Challenge]:
        """Get challenge by ID regardless of used/expired state"""
        pass

    @abstractmethod
    async def mark_used(self, challenge_id: UUID) -> bool:
        """
        Atomically flip used false -> true.

        Returns True only for the single caller whose conditional update
        matched an unused row.
        """
        pass

    @abstractmethod
    async def delete_expired(self, now: datetime) -> int:
        """Delete challenges whose expires_at is before now. Returns count."""
        pass

    @abstractmethod
    async def count_by_state(self, now: datetime) -> Dict[str, int]:
        """Counts of active, expired and used challenges"""
        pass
