from fastapi import APIRouter, Query

from ..schemas.leaderboard_schema import LeaderboardResponse
from ..controllers.leaderboard_controller import get_leaderboard, LEADERBOARD_SIZE

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])

@router.get("", response_model=LeaderboardResponse, summary="Top referrers, most referrals first")
async def leaderboard(limit: int = Query(LEADERBOARD_SIZE, ge=1, le=LEADERBOARD_SIZE)):
    return await get_leaderboard(limit)
