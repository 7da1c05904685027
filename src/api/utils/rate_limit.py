"""
Rate-limit dependencies

Route-level guards that count a request against its endpoint class (and, for
the authentication endpoints, the per-IP brute-force budget) before the
handler runs.
"""

import logging

from fastapi import Depends, status

from libs.result import Error
from src.api.error import ClientError
from src.app.use_cases.auth import RequestContext
from src.container import Container
from src.depends import get_container, get_request_context
from src.domain.entities import AuditAction, AuditEventType, AuditStatus, EndpointClass
from src.domain.errors import ErrorCode

logger = logging.getLogger(__name__)


async def _reject(
    container: Container,
    context: RequestContext,
    action: AuditAction,
    endpoint: EndpointClass,
    retry_after: int,
    message: str,
):
    await container.audit_service.log(
        context.audit_event(
            AuditEventType.SECURITY_EVENT,
            action,
            AuditStatus.failure,
            details={"endpoint": endpoint.value, "retry_after": retry_after},
        )
    )
    raise ClientError(
        Error(ErrorCode.RATE_LIMITED, message, {"retry_after": retry_after}),
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
    )


def rate_limited(endpoint: EndpointClass, brute_force: bool = False):
    """
    Build a dependency that enforces the limit for `endpoint`.

    Raises:
        ClientError: 429 with details["retry_after"] once a budget is spent
    """

    async def dependency(
        container: Container = Depends(get_container),
        context: RequestContext = Depends(get_request_context),
    ) -> None:
        if brute_force:
            attempt = await container.brute_force_guard.record(context.ip_address)
            if attempt.limited:
                await _reject(
                    container,
                    context,
                    AuditAction.BRUTE_FORCE_DETECTED,
                    endpoint,
                    attempt.retry_after_seconds,
                    "Too many authentication attempts",
                )

        decision = await container.rate_limiter.record(endpoint, context.ip_address)
        if decision.limited:
            await _reject(
                container,
                context,
                AuditAction.RATE_LIMIT_EXCEEDED,
                endpoint,
                decision.retry_after_seconds,
                "Too many requests",
            )

    return dependency
