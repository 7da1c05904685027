from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlmodel import select, update
from sqlmodel.ext.asyncio.session import AsyncSession

from src.app.repositories.session_repository import ISessionRepository
from src.domain.entities import Session


class SessionRepository(ISessionRepository):
    """Session repository implementation using SQLModel"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, session_id: UUID) -> Optional[Session]:
        """Get session by ID"""
        stmt = select(Session).where(Session.id == session_id)
        result = await self.session.exec(stmt)
        return result.one_or_none()

    async def create(self, session_obj: Session) -> Session:
        """Create a new session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

    async def update(self, session_obj: Session) -> Session:
        """Update existing session"""
        self.session.add(session_obj)
        await self.session.flush()
        await self.session.refresh(session_obj)
        return session_obj

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
        """Swap token ids only while the session still holds the presented refresh jti"""
        stmt = (
            update(Session)
            .where(
                Session.id == session_id,
                Session.is_active == True,  # noqa: E712
                Session.refresh_token_id == expected_refresh_token_id,
            )
            .values(
                access_token_id=access_token_id,
                refresh_token_id=refresh_token_id,
                access_token_expires_at=access_token_expires_at,
                refresh_token_expires_at=refresh_token_expires_at,
                last_used_at=last_used_at,
            )
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount == 1

    async def deactivate(self, session_id: UUID, reason: str, now: datetime) -> bool:
        """Revoke a specific session by ID"""
        stmt = (
            update(Session)
            .where(Session.id == session_id, Session.is_active == True)  # noqa: E712
            .values(is_active=False, revocation_reason=reason, revoked_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount > 0

    async def deactivate_for_address_and_client(
        self, address: str, client_id: str, reason: str, now: datetime
    ) -> int:
        """Revoke all active sessions of a wallet on one client"""
        stmt = (
            update(Session)
            .where(
                Session.address == address,
                Session.client_id == client_id,
                Session.is_active == True,  # noqa: E712
            )
            .values(is_active=False, revocation_reason=reason, revoked_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount

    async def deactivate_expired(self, now: datetime) -> int:
        stmt = (
            update(Session)
            .where(Session.is_active == True, Session.refresh_token_expires_at < now)  # noqa: E712
            .values(is_active=False, revocation_reason="expired", revoked_at=now)
        )
        result = await self.session.execute(stmt)
        await self.session.flush()
        return result.rowcount
