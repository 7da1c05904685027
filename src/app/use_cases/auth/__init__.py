"""
Authentication Use Cases

Challenge issuance, signature verification and the session lifecycle.
"""

from .issue_challenge_use_case import IssueChallengeUseCase
from .verify_signature_use_case import VerifySignatureUseCase
from .refresh_token_use_case import RefreshTokenUseCase
from .logout_use_case import LogoutUseCase
from .get_session_use_case import GetSessionUseCase
from .dtos import (
    RequestContext,
    ChallengeCommand,
    VerifyCommand,
    RefreshTokenCommand,
    ChallengeResponse,
    TokenResponse,
    LogoutResponse,
    SessionInfoResponse,
)

__all__ = [
    # Use Cases
    "IssueChallengeUseCase",
    "VerifySignatureUseCase",
    "RefreshTokenUseCase",
    "LogoutUseCase",
    "GetSessionUseCase",
    # DTOs - Commands
    "RequestContext",
    "ChallengeCommand",
    "VerifyCommand",
    "RefreshTokenCommand",
    # DTOs - Responses
    "ChallengeResponse",
    "TokenResponse",
    "LogoutResponse",
    "SessionInfoResponse",
]
