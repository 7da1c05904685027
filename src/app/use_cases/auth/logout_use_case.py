"""
Logout Use Case

Ends the session behind an access token. Safe to repeat.
"""

from uuid import UUID

from libs.result import Result, Return
from src.app.services.audit_service import AuditService
from src.app.services.session_service import SessionService
from src.domain.entities import AuditAction, AuditEventType, AuditStatus
from .dtos import LogoutResponse, RequestContext


class LogoutUseCase:
    """
    Use case for POST /logout.

    Business Rules:
    - The access token must be genuine and unexpired
    - An already revoked token or inactive session is still a success
    - The session's current tokens are denylisted until they expire
    """

    def __init__(self, session_service: SessionService, audit_service: AuditService):
        self.session_service = session_service
        self.audit_service = audit_service

    async def execute(self, access_token: str, context: RequestContext) -> Result[LogoutResponse]:
        token_service = self.session_service.token_service
        verified = token_service.verify_access_token(access_token)
        if verified.is_err():
            return verified
        payload = verified.value

        if await token_service.is_token_blacklisted(payload.jti):
            return Return.ok(LogoutResponse())

        try:
            session_id = UUID(payload.session_id)
        except ValueError:
            session_id = None

        if session_id is not None:
            # NOT_FOUND means the session was already swept; logging out is still done
            await self.session_service.invalidate_session(session_id)
        await token_service.blacklist_token(payload.jti, payload.expires_at)

        await self.audit_service.log(
            context.audit_event(
                AuditEventType.SESSION,
                AuditAction.LOGOUT,
                AuditStatus.success,
                client_id=payload.client_id,
                address=payload.address,
                details={"session_id": payload.session_id},
            )
        )
        return Return.ok(LogoutResponse())
