"""
Audit API Routes

Operator access to the audit trail.
"""

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from src.api.error import to_http_error
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.audit_service import AuditLogFilters, AuditService
from src.app.use_cases.audit import (
    AuditLogsResponse,
    AuditStatsResponse,
    GetAuditLogsUseCase,
    GetAuditStatsUseCase,
)
from src.depends import get_audit_service

router = APIRouter(prefix="/audit", tags=["Audit"])


@router.get(
    "/logs",
    status_code=status.HTTP_200_OK,
    response_model=AuditLogsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_audit_logs(
    type: Optional[str] = Query(None, description="Event type, e.g. SECURITY_EVENT"),
    client_id: Optional[str] = Query(None),
    address: Optional[str] = Query(None),
    action: Optional[str] = Query(None, description="Event action, e.g. VERIFY_FAILED"),
    event_status: Optional[str] = Query(None, alias="status"),
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    limit: int = Query(100, description="Maximum number of events to return (1-1000)"),
    offset: int = Query(0, description="Number of events to skip"),
    audit_service: AuditService = Depends(get_audit_service),
):
    """
    List audit events, newest first.

    Requires: X-Admin-API-Key header

    Raises:
        - 400 Bad Request: limit/offset out of range or start_date after end_date
        - 401 Unauthorized: Missing or invalid admin API key
    """
    filters = AuditLogFilters(
        type=type,
        client_id=client_id,
        address=address,
        action=action,
        status=event_status,
        start_date=start_date,
        end_date=end_date,
    )
    use_case = GetAuditLogsUseCase(audit_service)
    result = await use_case.execute(filters, limit=limit, offset=offset)

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


@router.get(
    "/stats",
    status_code=status.HTTP_200_OK,
    response_model=AuditStatsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_audit_stats(audit_service: AuditService = Depends(get_audit_service)):
    """Event counts by type, status and action. Requires: X-Admin-API-Key header"""
    use_case = GetAuditStatsUseCase(audit_service)
    result = await use_case.execute()

    if result.is_err():
        raise to_http_error(result.error)

    return result.value
