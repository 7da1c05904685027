"""
Run Maintenance Use Case

Reclaims storage held by expired protocol state.
"""

import logging
import time

from pydantic import BaseModel

from libs.result import Result, Return
from src.app.services.audit_service import AuditService
from src.app.services.challenge_service import ChallengeService
from src.app.services.rate_limit_store import IRateLimitStore
from src.app.services.session_service import SessionService
from src.app.services.token_denylist import ITokenDenylist

logger = logging.getLogger(__name__)


class MaintenanceReport(BaseModel):
    expired_challenges: int
    expired_sessions: int
    audit_logs_deleted: int


class RunMaintenanceUseCase:
    """
    Use case for the periodic sweep and POST /admin/maintenance/cleanup.

    Business Rules:
    - Expired challenges are deleted
    - Active sessions past their refresh expiry are marked expired
    - Audit events older than the retention period are deleted
    - In-process rate-limit windows and denylist entries that can no longer matter are dropped
    """

    def __init__(
        self,
        challenge_service: ChallengeService,
        session_service: SessionService,
        audit_service: AuditService,
        rate_limit_store: IRateLimitStore,
        token_denylist: ITokenDenylist,
        audit_retention_days: int = 90,
    ):
        self.challenge_service = challenge_service
        self.session_service = session_service
        self.audit_service = audit_service
        self.rate_limit_store = rate_limit_store
        self.token_denylist = token_denylist
        self.audit_retention_days = audit_retention_days

    async def execute(self) -> Result[MaintenanceReport]:
        report = MaintenanceReport(
            expired_challenges=await self.challenge_service.cleanup_expired_challenges(),
            expired_sessions=await self.session_service.expire_sessions(),
            audit_logs_deleted=await self.audit_service.cleanup_old_audit_logs(
                self.audit_retention_days
            ),
        )
        await self.rate_limit_store.prune(time.time())
        await self.token_denylist.prune(self.session_service.clock())

        logger.info(f"Maintenance sweep finished: {report.model_dump()}")
        return Return.ok(report)
