"""
Get Audit Logs Use Case

Lists audit events for operators, newest first.
"""

from typing import Optional

from libs.result import Error, Result, Return
from src.app.services.audit_service import AuditLogFilters, AuditService, MAX_QUERY_LIMIT
from src.domain.base import to_iso_z
from src.domain.errors import ErrorCode
from .dtos import AuditEventResponse, AuditLogsResponse


class GetAuditLogsUseCase:
    """
    Use case for retrieving audit events.

    Business Rules:
    - Filters are exact matches on type, client_id, address, action, status
    - Optional created_at range; start_date must not be after end_date
    - limit is 1..1000, offset >= 0
    """

    def __init__(self, audit_service: AuditService):
        self.audit_service = audit_service

    async def execute(
        self, filters: Optional[AuditLogFilters] = None, limit: int = 100, offset: int = 0
    ) -> Result[AuditLogsResponse]:
        filters = filters or AuditLogFilters()
        if not 1 <= limit <= MAX_QUERY_LIMIT:
            return Return.err(
                Error(ErrorCode.VALIDATION_ERROR, f"limit must be between 1 and {MAX_QUERY_LIMIT}")
            )
        if offset < 0:
            return Return.err(Error(ErrorCode.VALIDATION_ERROR, "offset must not be negative"))
        if filters.start_date and filters.end_date and filters.start_date > filters.end_date:
            return Return.err(
                Error(ErrorCode.VALIDATION_ERROR, "start_date must not be after end_date")
            )

        events = await self.audit_service.get_audit_logs(filters, limit=limit, offset=offset)

        return Return.ok(
            AuditLogsResponse(
                events=[
                    AuditEventResponse(
                        id=str(event.id),
                        type=event.type,
                        client_id=event.client_id,
                        address=event.address,
                        action=event.action,
                        status=event.status,
                        details=event.details or {},
                        ip_address=event.ip_address,
                        user_agent=event.user_agent,
                        request_id=event.request_id,
                        timestamp=to_iso_z(event.created_at),
                    )
                    for event in events
                ],
                limit=limit,
                offset=offset,
            )
        )
