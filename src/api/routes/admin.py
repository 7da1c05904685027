"""
Admin API Routes

System administration endpoints for operators.
All endpoints require admin API key authentication.
"""

from fastapi import APIRouter, Depends, status

from src.api.error import to_http_error
from src.api.utils.admin_auth import verify_admin_api_key
from src.app.services.challenge_service import ChallengeService
from src.app.services.unit_of_work import UnitOfWork
from src.app.use_cases.maintenance import (
    ChallengeStatsResponse,
    GetChallengeStatsUseCase,
    MaintenanceReport,
)
from src.container import Container
from src.depends import get_challenge_service, get_container, get_unit_of_work

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.post(
    "/maintenance/cleanup",
    status_code=status.HTTP_200_OK,
    response_model=MaintenanceReport,
    dependencies=[Depends(verify_admin_api_key)],
)
async def run_cleanup(
    container: Container = Depends(get_container),
    uow: UnitOfWork = Depends(get_unit_of_work),
):
    """
    Run the maintenance sweep now instead of waiting for the scheduler.

    Requires: X-Admin-API-Key header

    Raises:
        - 401 Unauthorized: Missing or invalid admin API key
    """
    use_case = container.maintenance_use_case(uow)
    result = await use_case.execute()

    if result.is_err():
        raise to_http_error(result.error)

    return result.value


@router.get(
    "/challenges/stats",
    status_code=status.HTTP_200_OK,
    response_model=ChallengeStatsResponse,
    dependencies=[Depends(verify_admin_api_key)],
)
async def get_challenge_stats(
    challenge_service: ChallengeService = Depends(get_challenge_service),
):
    """Challenge counts by state. Requires: X-Admin-API-Key header"""
    use_case = GetChallengeStatsUseCase(challenge_service)
    result = await use_case.execute()

    if result.is_err():
        raise to_http_error(result.error)

    return result.value
