from typing import Optional

from fastapi import Depends, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from libs.result import Error
from src.adapter.services.unit_of_work import SqlAlchemyUnitOfWork
from src.api.error import ClientError
from src.api.middleware import get_request_id
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService
from src.app.services.session_service import SessionService
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.auth import RequestContext
from src.container import Container
from src.domain.errors import ErrorCode

security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_unit_of_work(request: Request):
    async with request.app.state.container.session_factory() as session:
        yield SqlAlchemyUnitOfWork(session)


def get_challenge_service(
    container: Container = Depends(get_container),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> ChallengeService:
    return container.challenge_service(uow)


def get_session_service(
    container: Container = Depends(get_container),
    uow: UnitOfWork = Depends(get_unit_of_work),
) -> SessionService:
    return container.session_service(uow)


def get_audit_service(container: Container = Depends(get_container)) -> AuditService:
    return container.audit_service


def client_ip(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_request_context(request: Request) -> RequestContext:
    return RequestContext(
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent", "unknown"),
        request_id=get_request_id(request),
    )


async def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """
    Extract the access token from the Authorization header.

    Raises:
        ClientError: 401 if the header is missing or not a bearer token
    """
    if credentials is None or not credentials.credentials:
        raise ClientError(
            Error(ErrorCode.INVALID_TOKEN, "Bearer access token required"),
            status_code=status.HTTP_401_UNAUTHORIZED,
        )
    return credentials.credentials
