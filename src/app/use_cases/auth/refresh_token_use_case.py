"""
Refresh Token Use Case

Handles the refresh_token grant with token rotation and reuse detection.
"""

from libs.result import Error, Result, Return
from src.app.services.audit_service import AuditService
from src.app.services.client_registry import IClientRegistry
from src.app.services.session_service import REASON_REFRESH_TOKEN_REUSE, SessionService
from src.domain.entities import AuditAction, AuditEventType, AuditStatus
from src.domain.errors import ErrorCode
from .dtos import RefreshTokenCommand, RequestContext, TokenResponse

REFRESH_TOKEN_GRANT = "refresh_token"


class RefreshTokenUseCase:
    """
    Use case for POST /token.

    Business Rules:
    - Only grant_type=refresh_token is supported
    - Confidential clients must authenticate with their client_secret
    - Both tokens rotate; the presented refresh token stops working
    - Presenting an already-rotated refresh token revokes the whole session
    """

    def __init__(
        self,
        session_service: SessionService,
        client_registry: IClientRegistry,
        audit_service: AuditService,
    ):
        self.session_service = session_service
        self.client_registry = client_registry
        self.audit_service = audit_service

    async def execute(
        self, command: RefreshTokenCommand, context: RequestContext
    ) -> Result[TokenResponse]:
        """
        Execute refresh token use case.

        Returns:
            Result with the new TokenResponse, or VALIDATION_ERROR / INVALID_CLIENT /
            INVALID_TOKEN / EXPIRED / INVALID_SESSION
        """
        if command.grant_type != REFRESH_TOKEN_GRANT:
            return await self._fail(
                Error(ErrorCode.VALIDATION_ERROR, "Unsupported grant_type"), command, context
            )

        client = await self.client_registry.resolve_client(command.client_id)
        if client is None or not self.client_registry.verify_client_secret(
            client, command.client_secret
        ):
            return await self._fail(
                Error(ErrorCode.INVALID_CLIENT, "Invalid client credentials"), command, context
            )

        result = await self.session_service.refresh_session(
            command.refresh_token, client_id=command.client_id
        )
        if result.is_err():
            return await self._fail(result.error, command, context)

        issued = result.value
        await self.audit_service.log(
            context.audit_event(
                AuditEventType.TOKEN,
                AuditAction.TOKEN_REFRESHED,
                AuditStatus.success,
                client_id=command.client_id,
                address=issued.session.address,
                details={"session_id": str(issued.session.id)},
            )
        )
        return Return.ok(TokenResponse.from_issued(issued))

    async def _fail(
        self, error: Error, command: RefreshTokenCommand, context: RequestContext
    ) -> Result[TokenResponse]:
        if error.details.get("reason") == REASON_REFRESH_TOKEN_REUSE:
            event = context.audit_event(
                AuditEventType.SECURITY_EVENT,
                AuditAction.REFRESH_TOKEN_REUSE,
                AuditStatus.failure,
                client_id=command.client_id,
                address=error.details.get("address"),
                details={"session_id": error.details.get("session_id")},
            )
        else:
            event = context.audit_event(
                AuditEventType.TOKEN,
                AuditAction.TOKEN_REFRESH_FAILED,
                AuditStatus.failure,
                client_id=command.client_id,
                details={"error": error.code, "message": error.message},
            )
        await self.audit_service.log(event)
        return Return.err(error)
