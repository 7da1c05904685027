"""
Verify Signature Use Case

Exchanges a signed challenge for a session and its token pair.
"""

import asyncio
import logging
from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService, code_verifier_matches
from src.app.services.session_service import SessionService
from src.app.services.signature_verifier import SignatureVerifier
from src.domain.entities import AuditAction, AuditEventType, AuditStatus, Challenge
from src.domain.errors import ErrorCode
from src.domain.siwe import SiweMessage
from .dtos import RequestContext, TokenResponse, VerifyCommand

logger = logging.getLogger(__name__)


class VerifySignatureUseCase:
    """
    Use case for POST /verify.

    Business Rules:
    - The challenge must exist, be unexpired and unused (checked before any crypto)
    - state and code_verifier must match the challenge (PKCE S256)
    - address must match the challenge's address when one was bound at issuance
    - message must be byte-identical to the issued message
    - Signature verification runs off the event loop with a timeout; a timeout fails closed
    - The challenge is consumed only after the signature checks out
    - Every outcome is audited
    """

    def __init__(
        self,
        challenge_service: ChallengeService,
        session_service: SessionService,
        signature_verifier: SignatureVerifier,
        audit_service: AuditService,
        verify_timeout_seconds: float = 5.0,
    ):
        self.challenge_service = challenge_service
        self.session_service = session_service
        self.signature_verifier = signature_verifier
        self.audit_service = audit_service
        self.verify_timeout_seconds = verify_timeout_seconds

    async def execute(self, command: VerifyCommand, context: RequestContext) -> Result[TokenResponse]:
        found = await self.challenge_service.get_challenge(command.challenge_id)
        if found.is_err():
            return await self._fail(found.error, context, command)
        challenge = found.value

        mismatch = self._check_binding(challenge, command)
        if mismatch is not None:
            return await self._fail(mismatch, context, command, challenge)

        if not await self._verify_signature(command.message, command.signature, command.address):
            return await self._fail(
                Error(ErrorCode.INVALID_SIGNATURE, "Signature verification failed"),
                context,
                command,
                challenge,
            )

        consumed = await self.challenge_service.consume_challenge(challenge.id)
        if consumed.is_err():
            return await self._fail(consumed.error, context, command, challenge)

        created = await self.session_service.create_session(command.address, challenge.client_id)
        if created.is_err():
            return await self._fail(created.error, context, command, challenge)
        issued = created.value

        await self.audit_service.log(
            context.audit_event(
                AuditEventType.AUTH_ATTEMPT,
                AuditAction.VERIFY_SUCCESS,
                AuditStatus.success,
                client_id=challenge.client_id,
                address=command.address,
                details={"challenge_id": str(challenge.id), "session_id": str(issued.session.id)},
            )
        )
        return Return.ok(TokenResponse.from_issued(issued))

    @staticmethod
    def _check_binding(challenge: Challenge, command: VerifyCommand) -> Optional[Error]:
        if command.state != challenge.state:
            return Error(ErrorCode.VALIDATION_ERROR, "state does not match the challenge")
        if not code_verifier_matches(command.code_verifier, challenge.code_challenge):
            return Error(ErrorCode.VALIDATION_ERROR, "code_verifier does not match the challenge")
        if challenge.address is not None and command.address != challenge.address:
            return Error(ErrorCode.VALIDATION_ERROR, "address does not match the challenge")
        # The signed bytes must be exactly what was issued; nothing is normalized
        if command.message != challenge.message:
            return Error(ErrorCode.VALIDATION_ERROR, "message does not match the challenge")

        parsed = SiweMessage.parse(command.message)
        if parsed is None or parsed.nonce != challenge.nonce:
            return Error(ErrorCode.VALIDATION_ERROR, "message nonce does not match the challenge")
        return None

    async def _verify_signature(self, message: str, signature: str, address: str) -> bool:
        try:
            return await asyncio.wait_for(
                asyncio.to_thread(self.signature_verifier.verify, message, signature, address),
                timeout=self.verify_timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"Signature verification timed out after {self.verify_timeout_seconds}s")
            return False

    async def _fail(
        self,
        error: Error,
        context: RequestContext,
        command: VerifyCommand,
        challenge: Optional[Challenge] = None,
    ) -> Result[TokenResponse]:
        await self.audit_service.log(
            context.audit_event(
                AuditEventType.AUTH_ATTEMPT,
                AuditAction.VERIFY_FAILED,
                AuditStatus.failure,
                client_id=challenge.client_id if challenge else None,
                address=command.address,
                details={
                    "challenge_id": command.challenge_id,
                    "error": error.code,
                    "message": error.message,
                },
            )
        )
        return Return.err(error)
