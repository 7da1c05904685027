from libs.result import Result, Return
from src.app.services.session_service import SessionService
from src.domain.base import to_iso_z
from .dtos import SessionInfoResponse


class GetSessionUseCase:
    """Use case for GET /session: summary of the session behind a valid access token"""

    def __init__(self, session_service: SessionService):
        self.session_service = session_service

    async def execute(self, access_token: str) -> Result[SessionInfoResponse]:
        result = await self.session_service.validate_access_token(access_token)
        if result.is_err():
            return result

        _, session = result.value
        return Return.ok(
            SessionInfoResponse(
                session_id=str(session.id),
                address=session.address,
                client_id=session.client_id,
                is_active=session.is_active,
                created_at=to_iso_z(session.created_at),
                last_used_at=to_iso_z(session.last_used_at),
                access_token_expires_at=to_iso_z(session.access_token_expires_at),
                refresh_token_expires_at=to_iso_z(session.refresh_token_expires_at),
            )
        )
