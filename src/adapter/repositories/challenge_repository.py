from datetime import datetime
from typing import Dict, Optional
from uuid import UUID

from sqlalchemy import delete, func
from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.challenge_repository import IChallengeRepository
from src.domain.entities import Challenge


class ChallengeRepository(IChallengeRepository):
    """Challenge repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, challenge: Challenge) -> Challenge:
        self.session.add(challenge)
        await self.session.flush()
        await self.session.refresh(challenge)
        return challenge

    async def get_by_id(self, challenge_id: UUID) -> Optional[Challenge]:
        stmt = select(Challenge).where(Challenge.id == challenge_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def mark_used(self, challenge_id: UUID) -> bool:
        """Conditional update: only an unused row matches, so one caller wins"""
        stmt = (
            update(Challenge)
            .where(Challenge.id == challenge_id, Challenge.used == False)  # noqa: E712
            .values(used=True)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    async def delete_expired(self, now: datetime) -> int:
        stmt = delete(Challenge).where(Challenge.expires_at < now)
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def count_by_state(self, now: datetime) -> Dict[str, int]:
        used = await self._count(Challenge.used == True)  # noqa: E712
        expired = await self._count(Challenge.used == False, Challenge.expires_at < now)  # noqa: E712
        active = await self._count(Challenge.used == False, Challenge.expires_at >= now)  # noqa: E712
        return {"active": active, "expired": expired, "used": used}

    async def _count(self, *conditions) -> int:
        stmt = select(func.count()).select_from(Challenge).where(*conditions)
        result = await self.session.exec(stmt)
        return result.one()
