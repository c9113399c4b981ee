from fastapi import APIRouter, Depends

from portalapi.core.auth_middleware import get_current_active_user
from portalapi.deps import get_leaderboard_service
from portalapi.schemas.points import LeaderboardResponse
from portalapi.schemas.user import User as UserSchema
from portalapi.services.leaderboard_service import LeaderboardService

router = APIRouter(prefix="/leaderboard", tags=["leaderboard"])


@router.get("", response_model=LeaderboardResponse)
def get_leaderboard(
    current_user: UserSchema = Depends(get_current_active_user),
    leaderboard_service: LeaderboardService = Depends(get_leaderboard_service),
) -> LeaderboardResponse:
    return leaderboard_service.get_leaderboard(actor=current_user)
