"""
Audit Use Cases

All audit-related business logic.
"""

from .get_audit_logs_use_case import GetAuditLogsUseCase
from .get_audit_stats_use_case import GetAuditStatsUseCase
from .dtos import AuditEventResponse, AuditLogsResponse, AuditStatsResponse

__all__ = [
    "GetAuditLogsUseCase",
    "GetAuditStatsUseCase",
    "AuditEventResponse",
    "AuditLogsResponse",
    "AuditStatsResponse",
]
