"""
Session Service

Owns the session lifecycle: creation on verify, refresh rotation with reuse
detection, access token validation and revocation.
"""

import logging
import secrets
from dataclasses import dataclass
from typing import Optional, Tuple
from uuid import UUID

from libs.result import Error, Result, Return
from src.app.services.token_service import TokenPair, TokenPayload, TokenService
from src.app.services.unit_of_work import UnitOfWork
from src.domain.base import Clock, utcnow
from src.domain.entities import Session
from src.domain.errors import ErrorCode

logger = logging.getLogger(__name__)

REASON_LOGOUT = "logout"
REASON_SUPERSEDED = "superseded"
REASON_REFRESH_TOKEN_REUSE = "refresh_token_reuse"
REASON_EXPIRED = "expired"


@dataclass
class IssuedSession:
    session: Session
    tokens: TokenPair


def _invalid_session(message: str, **details) -> Result:
    return Return.err(Error(ErrorCode.INVALID_SESSION, message, details))


def _parse_session_id(value: str) -> Optional[UUID]:
    try:
        return UUID(value)
    except (TypeError, ValueError):
        return None


class SessionService:
    """
    Session lifecycle.

    State machine: active -> (refreshed)* -> revoked | expired, expressed as
    is_active plus revocation_reason. Inactive is terminal.

    Business Rules:
    - Exactly one active session per (address, client_id)
    - A token is honoured only while its jti is the session's current one
    - Presenting an older refresh token revokes the session (token reuse)
    - Invalidation is idempotent
    """

    def __init__(self, uow: UnitOfWork, token_service: TokenService, clock: Clock = utcnow):
        self.uow = uow
        self.token_service = token_service
        self.clock = clock

    async def create_session(self, address: str, client_id: str) -> Result[IssuedSession]:
        now = self.clock()
        session = Session(
            address=address,
            client_id=client_id,
            fingerprint=secrets.token_hex(16),
            is_active=True,
            created_at=now,
            last_used_at=now,
        )
        tokens = self.token_service.generate_token_pair(session)
        session.access_token_id = tokens.access_token_id
        session.refresh_token_id = tokens.refresh_token_id
        session.access_token_expires_at = tokens.access_token_expires_at
        session.refresh_token_expires_at = tokens.refresh_token_expires_at

        async with self.uow:
            superseded = await self.uow.sessions.deactivate_for_address_and_client(
                address, client_id, REASON_SUPERSEDED, now
            )
            await self.uow.sessions.create(session)
            await self.uow.commit()

        if superseded:
            logger.info(f"Superseded {superseded} active session(s) for {address} on {client_id}")
        logger.info(f"Session created: id={session.id} client_id={client_id}")
        return Return.ok(IssuedSession(session=session, tokens=tokens))

    async def refresh_session(
        self, refresh_token: str, client_id: Optional[str] = None
    ) -> Result[IssuedSession]:
        """
        Rotate both tokens of the session behind refresh_token.

        Returns:
            Result with the rotated session and new tokens, or INVALID_TOKEN /
            EXPIRED / INVALID_SESSION. A reuse is reported as INVALID_SESSION with
            details {"reason": "refresh_token_reuse", "session_id": ...}.
        """
        verified = self.token_service.verify_refresh_token(refresh_token)
        if verified.is_err():
            return verified
        payload = verified.value

        if client_id is not None and payload.client_id != client_id:
            return Return.err(Error(ErrorCode.INVALID_TOKEN, "Token was not issued to this client"))

        session_id = _parse_session_id(payload.session_id)
        if session_id is None:
            return _invalid_session("Session not found")

        now = self.clock()
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None:
                return _invalid_session("Session not found")
            if not session.is_active:
                return _invalid_session("Session is no longer active")
            if session.fingerprint != payload.fingerprint or session.client_id != payload.client_id:
                return _invalid_session("Token does not belong to this session")

            if session.refresh_token_id != payload.jti:
                return await self._revoke_for_reuse(session, now)

            if await self.token_service.is_token_blacklisted(payload.jti):
                return Return.err(Error(ErrorCode.INVALID_TOKEN, "Token has been revoked"))

            previous_access_token_id = session.access_token_id
            previous_access_expires_at = session.access_token_expires_at
            tokens = self.token_service.generate_token_pair(session)

            rotated = await self.uow.sessions.rotate_tokens(
                session.id,
                expected_refresh_token_id=payload.jti,
                access_token_id=tokens.access_token_id,
                refresh_token_id=tokens.refresh_token_id,
                access_token_expires_at=tokens.access_token_expires_at,
                refresh_token_expires_at=tokens.refresh_token_expires_at,
                last_used_at=now,
            )
            if not rotated:
                # Another request rotated with the same refresh token first
                return await self._revoke_for_reuse(session, now)

            await self.uow.commit()

        session.access_token_id = tokens.access_token_id
        session.refresh_token_id = tokens.refresh_token_id
        session.access_token_expires_at = tokens.access_token_expires_at
        session.refresh_token_expires_at = tokens.refresh_token_expires_at
        session.last_used_at = now

        await self.token_service.blacklist_token(previous_access_token_id, previous_access_expires_at)
        await self.token_service.blacklist_token(payload.jti, payload.expires_at)

        logger.info(f"Session refreshed: id={session.id}")
        return Return.ok(IssuedSession(session=session, tokens=tokens))

    async def validate_access_token(self, access_token: str) -> Result[Tuple[TokenPayload, Session]]:
        verified = self.token_service.verify_access_token(access_token)
        if verified.is_err():
            return verified
        payload = verified.value

        if await self.token_service.is_token_blacklisted(payload.jti):
            return Return.err(Error(ErrorCode.INVALID_TOKEN, "Token has been revoked"))

        session_id = _parse_session_id(payload.session_id)
        if session_id is None:
            return _invalid_session("Session not found")

        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None:
                return _invalid_session("Session not found")
            if not session.is_active:
                return _invalid_session("Session is no longer active")
            if session.fingerprint != payload.fingerprint or session.access_token_id != payload.jti:
                return _invalid_session("Token does not belong to this session")

            session.last_used_at = self.clock()
            await self.uow.sessions.update(session)
            await self.uow.commit()

        return Return.ok((payload, session))

    async def invalidate_session(
        self, session_id: UUID, reason: str = REASON_LOGOUT
    ) -> Result[Session]:
        """Deactivate a session and deny its current tokens. Repeat calls succeed."""
        now = self.clock()
        async with self.uow:
            session = await self.uow.sessions.get_by_id(session_id)
            if session is None:
                return Return.err(Error(ErrorCode.NOT_FOUND, "Session not found"))

            if session.is_active:
                await self.uow.sessions.deactivate(session.id, reason, now)
                await self.uow.commit()
                session.is_active = False
                session.revocation_reason = reason
                session.revoked_at = now
                logger.info(f"Session invalidated: id={session.id} reason={reason}")

        await self._deny_current_tokens(session)
        return Return.ok(session)

    async def expire_sessions(self) -> int:
        async with self.uow:
            expired = await self.uow.sessions.deactivate_expired(self.clock())
            await self.uow.commit()
        if expired:
            logger.info(f"Expired {expired} session(s)")
        return expired

    async def _revoke_for_reuse(self, session: Session, now) -> Result[IssuedSession]:
        logger.warning(f"Refresh token reuse detected, revoking session {session.id}")
        await self.uow.sessions.deactivate(session.id, REASON_REFRESH_TOKEN_REUSE, now)
        await self.uow.commit()
        session.is_active = False
        session.revocation_reason = REASON_REFRESH_TOKEN_REUSE
        session.revoked_at = now
        await self._deny_current_tokens(session)
        return _invalid_session(
            "Refresh token reuse detected; session revoked",
            reason=REASON_REFRESH_TOKEN_REUSE,
            session_id=str(session.id),
            address=session.address,
            client_id=session.client_id,
        )

    async def _deny_current_tokens(self, session: Session) -> None:
        await self.token_service.blacklist_token(session.access_token_id, session.access_token_expires_at)
        await self.token_service.blacklist_token(session.refresh_token_id, session.refresh_token_expires_at)
