"""
Issue Challenge Use Case

Creates a sign-in challenge for a registered client.
"""

from libs.result import Result, Return
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService, RedirectParams
from src.domain.base import to_iso_z
from src.domain.entities import AuditAction, AuditEventType, AuditStatus
from .dtos import ChallengeCommand, ChallengeResponse, RequestContext


class IssueChallengeUseCase:
    """
    Use case for GET /challenge.

    Business Rules:
    - client_id must be registered (VALIDATION_ERROR otherwise)
    - Every outcome is audited as an AUTH_ATTEMPT
    - The server-generated code_verifier is returned once, to the requester
    """

    def __init__(self, challenge_service: ChallengeService, audit_service: AuditService):
        self.challenge_service = challenge_service
        self.audit_service = audit_service

    async def execute(
        self, command: ChallengeCommand, context: RequestContext
    ) -> Result[ChallengeResponse]:
        result = await self.challenge_service.create_challenge(
            command.client_id,
            address=command.address,
            redirect_params=RedirectParams(
                redirect_uri=command.redirect_uri,
                state=command.state,
                code_challenge=command.code_challenge,
            ),
        )

        if result.is_err():
            error = result.error
            await self.audit_service.log(
                context.audit_event(
                    AuditEventType.AUTH_ATTEMPT,
                    AuditAction.CHALLENGE_FAILED,
                    AuditStatus.failure,
                    client_id=command.client_id,
                    address=command.address,
                    details={"error": error.code, "message": error.message},
                )
            )
            return result

        challenge = result.value
        await self.audit_service.log(
            context.audit_event(
                AuditEventType.AUTH_ATTEMPT,
                AuditAction.CHALLENGE_ISSUED,
                AuditStatus.success,
                client_id=challenge.client_id,
                address=challenge.address,
                details={"challenge_id": str(challenge.id)},
            )
        )

        return Return.ok(
            ChallengeResponse(
                challenge_id=str(challenge.id),
                message=challenge.message,
                nonce=challenge.nonce,
                expires_at=to_iso_z(challenge.expires_at),
                state=challenge.state,
                code_verifier=challenge.code_verifier,
            )
        )
