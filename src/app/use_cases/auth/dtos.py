"""
Authentication Use Case DTOs (Data Transfer Objects)

All Command and Response classes for the challenge/verify/session flow.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel

from src.domain.base import to_iso_z
from src.domain.entities import AuditAction, AuditEvent, AuditEventType, AuditStatus
from src.app.services.session_service import IssuedSession


class RequestContext(BaseModel):
    """Caller facts attached to every audit event"""

    ip_address: str = "unknown"
    user_agent: str = "unknown"
    request_id: Optional[str] = None

    def audit_event(
        self,
        event_type: AuditEventType,
        action: AuditAction,
        status: AuditStatus,
        client_id: Optional[str] = None,
        address: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> AuditEvent:
        return AuditEvent(
            type=event_type.value,
            client_id=client_id or "unknown",
            address=address,
            action=action.value,
            status=status.value,
            details=details or {},
            ip_address=self.ip_address,
            user_agent=self.user_agent[:512],
            request_id=self.request_id,
        )


# ============================================================================
# Command DTOs
# ============================================================================


class ChallengeCommand(BaseModel):
    client_id: Optional[str] = None
    address: Optional[str] = None
    redirect_uri: Optional[str] = None
    state: Optional[str] = None
    code_challenge: Optional[str] = None


class VerifyCommand(BaseModel):
    challenge_id: str
    code_verifier: str
    state: str
    signature: str
    address: str
    message: str


class RefreshTokenCommand(BaseModel):
    grant_type: str
    refresh_token: str
    client_id: str
    client_secret: Optional[str] = None


# ============================================================================
# Response DTOs
# ============================================================================


class ChallengeResponse(BaseModel):
    challenge_id: str
    message: str
    nonce: str
    expires_at: str
    state: str
    code_verifier: Optional[str] = None


class TokenResponse(BaseModel):
    """Token envelope returned by verify and refresh"""

    success: bool = True
    access_token: str
    refresh_token: str
    token_type: str = "Bearer"
    expires_in: int
    expires_at: str
    refresh_expires_at: str
    session_id: str

    @classmethod
    def from_issued(cls, issued: IssuedSession) -> "TokenResponse":
        tokens = issued.tokens
        issued_at = issued.session.last_used_at
        return cls(
            access_token=tokens.access_token,
            refresh_token=tokens.refresh_token,
            expires_in=max(int((tokens.access_token_expires_at - issued_at).total_seconds()), 0),
            expires_at=to_iso_z(tokens.access_token_expires_at),
            refresh_expires_at=to_iso_z(tokens.refresh_token_expires_at),
            session_id=str(issued.session.id),
        )


class LogoutResponse(BaseModel):
    success: bool = True


class SessionInfoResponse(BaseModel):
    """Current session summary"""

    session_id: str
    address: str
    client_id: str
    is_active: bool
    created_at: str
    last_used_at: str
    access_token_expires_at: str
    refresh_token_expires_at: str
