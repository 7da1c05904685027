from pydantic import BaseModel

from libs.result import Result, Return
from src.app.services.challenge_service import ChallengeService


class ChallengeStatsResponse(BaseModel):
    active: int
    expired: int
    used: int


class GetChallengeStatsUseCase:
    """Use case for challenge counts by state (active, expired, used)"""

    def __init__(self, challenge_service: ChallengeService):
        self.challenge_service = challenge_service

    async def execute(self) -> Result[ChallengeStatsResponse]:
        counts = await self.challenge_service.get_challenge_stats()
        return Return.ok(ChallengeStatsResponse(**counts))
