"""
Use Cases

Organized into domain folders:
- auth/: Challenge, verify, refresh, logout and session lookup
- audit/: Audit log queries
- maintenance/: Expiry and retention sweeps
"""

from .auth import (
    IssueChallengeUseCase,
    VerifySignatureUseCase,
    RefreshTokenUseCase,
    LogoutUseCase,
    GetSessionUseCase,
)
from .audit import (
    GetAuditLogsUseCase,
    GetAuditStatsUseCase,
)
from .maintenance import (
    GetChallengeStatsUseCase,
    RunMaintenanceUseCase,
)

__all__ = [
    # Auth
    "IssueChallengeUseCase",
    "VerifySignatureUseCase",
    "RefreshTokenUseCase",
    "LogoutUseCase",
    "GetSessionUseCase",
    # Audit
    "GetAuditLogsUseCase",
    "GetAuditStatsUseCase",
    # Maintenance
    "GetChallengeStatsUseCase",
    "RunMaintenanceUseCase",
]
