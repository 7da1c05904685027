from libs.result import Result, Return
from src.app.services.audit_service import AuditService
from .dtos import AuditStatsResponse


class GetAuditStatsUseCase:
    """Use case for audit event counts by type, status and action"""

    def __init__(self, audit_service: AuditService):
        self.audit_service = audit_service

    async def execute(self) -> Result[AuditStatsResponse]:
        stats = await self.audit_service.get_audit_stats()
        return Return.ok(AuditStatsResponse(**stats.model_dump()))
