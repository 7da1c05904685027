from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field

from src.api.error import to_http_error
from src.api.utils.rate_limit import rate_limited
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService
from src.app.services.session_service import SessionService
from src.app.use_cases.auth import (
    ChallengeCommand,
    ChallengeResponse,
    GetSessionUseCase,
    IssueChallengeUseCase,
    LogoutResponse,
    LogoutUseCase,
    RefreshTokenCommand,
    RefreshTokenUseCase,
    RequestContext,
    SessionInfoResponse,
    TokenResponse,
    VerifyCommand,
    VerifySignatureUseCase,
)
from src.container import Container
from src.depends import (
    get_audit_service,
    get_bearer_token,
    get_challenge_service,
    get_container,
    get_request_context,
    get_session_service,
)
from src.domain.entities import EndpointClass

router = APIRouter(tags=["Authentication"])


@router.get(
    "/challenge",
    status_code=status.HTTP_200_OK,
    response_model=ChallengeResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(rate_limited(EndpointClass.challenge, brute_force=True))],
)
async def issue_challenge(
    client_id: Optional[str] = Query(None, max_length=255),
    address: Optional[str] = Query(None),
    redirect_uri: Optional[str] = Query(None),
    state: Optional[str] = Query(None),
    code_challenge: Optional[str] = Query(None),
    challenge_service: ChallengeService = Depends(get_challenge_service),
    audit_service: AuditService = Depends(get_audit_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Issue a sign-in challenge.

    The returned message embeds a one-time nonce and must be signed byte for
    byte. code_verifier is returned only when the server generated the PKCE
    pair; clients that sent their own code_challenge keep their verifier.

    Raises:
        - 400 Bad Request: Unknown client, unregistered redirect_uri, bad state or code_challenge
        - 429 Too Many Requests: Rate limit or brute-force threshold reached
    """
    command = ChallengeCommand(
        client_id=client_id,
        address=address,
        redirect_uri=redirect_uri,
        state=state,
        code_challenge=code_challenge,
    )
    use_case = IssueChallengeUseCase(challenge_service, audit_service)
    result = await use_case.execute(command, context)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


class VerifyRequest(BaseModel):
    """POST /verify payload"""

    challenge_id: str = Field(..., min_length=1, max_length=64)
    code_verifier: str = Field(..., min_length=1, max_length=128)
    state: str = Field(..., min_length=1, max_length=255)
    signature: str = Field(..., min_length=1, max_length=260)
    address: str = Field(..., min_length=1, max_length=128)
    message: str = Field(..., min_length=1, max_length=8192)


@router.post(
    "/verify",
    status_code=status.HTTP_200_OK,
    response_model=TokenResponse,
    dependencies=[Depends(rate_limited(EndpointClass.verify, brute_force=True))],
)
async def verify(
    request: VerifyRequest,
    container: Container = Depends(get_container),
    challenge_service: ChallengeService = Depends(get_challenge_service),
    session_service: SessionService = Depends(get_session_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Exchange a signed challenge for a session and token pair.

    Raises:
        - 400 Bad Request: state, code_verifier, address or message do not match the challenge
        - 401 Unauthorized: Expired or already-used challenge, invalid signature
        - 404 Not Found: Unknown challenge
        - 429 Too Many Requests: Rate limit or brute-force threshold reached
    """
    command = VerifyCommand(**request.model_dump())
    use_case = VerifySignatureUseCase(
        challenge_service,
        session_service,
        container.signature_verifier,
        container.audit_service,
        verify_timeout_seconds=container.config.VERIFY_TIMEOUT_SECONDS,
    )
    result = await use_case.execute(command, context)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


class TokenRequest(BaseModel):
    """POST /token payload (refresh_token grant only)"""

    grant_type: str = Field(..., max_length=32)
    refresh_token: str = Field(..., min_length=1, max_length=4096)
    client_id: str = Field(..., min_length=1, max_length=255)
    client_secret: Optional[str] = Field(None, max_length=255)


@router.post(
    "/token",
    status_code=status.HTTP_200_OK,
    response_model=TokenResponse,
    dependencies=[Depends(rate_limited(EndpointClass.token, brute_force=True))],
)
async def refresh_token(
    request: TokenRequest,
    container: Container = Depends(get_container),
    session_service: SessionService = Depends(get_session_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    Rotate a refresh token.

    Presenting a refresh token that was already rotated away revokes the
    whole session.

    Raises:
        - 400 Bad Request: Unsupported grant_type
        - 401 Unauthorized: Bad client credentials, invalid/expired token, revoked session
        - 429 Too Many Requests: Rate limit or brute-force threshold reached
    """
    command = RefreshTokenCommand(**request.model_dump())
    use_case = RefreshTokenUseCase(
        session_service, container.client_registry, container.audit_service
    )
    result = await use_case.execute(command, context)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


@router.post(
    "/logout",
    status_code=status.HTTP_200_OK,
    response_model=LogoutResponse,
    dependencies=[Depends(rate_limited(EndpointClass.logout))],
)
async def logout(
    access_token: str = Depends(get_bearer_token),
    session_service: SessionService = Depends(get_session_service),
    audit_service: AuditService = Depends(get_audit_service),
    context: RequestContext = Depends(get_request_context),
):
    """
    End the session behind the bearer access token.

    Logging out with a token that is already revoked succeeds.

    Raises:
        - 401 Unauthorized: Missing, invalid or expired access token
    """
    use_case = LogoutUseCase(session_service, audit_service)
    result = await use_case.execute(access_token, context)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


@router.get(
    "/session",
    status_code=status.HTTP_200_OK,
    response_model=SessionInfoResponse,
    dependencies=[Depends(rate_limited(EndpointClass.api))],
)
async def get_session(
    access_token: str = Depends(get_bearer_token),
    session_service: SessionService = Depends(get_session_service),
):
    """Session summary for the bearer access token"""
    use_case = GetSessionUseCase(session_service)
    result = await use_case.execute(access_token)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value
