"""
Maintenance Use Cases
"""

from .get_challenge_stats_use_case import ChallengeStatsResponse, GetChallengeStatsUseCase
from .run_maintenance_use_case import MaintenanceReport, RunMaintenanceUseCase

__all__ = [
    "RunMaintenanceUseCase",
    "MaintenanceReport",
    "GetChallengeStatsUseCase",
    "ChallengeStatsResponse",
]
