from fastapi import APIRouter, Depends

from portalapi.core.auth_middleware import get_current_active_user
from portalapi.schemas.user import User as UserSchema

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=UserSchema)
def read_me(current_user: UserSchema = Depends(get_current_active_user)) -> UserSchema:
    """Authenticated user, including the cached active-period balances"""
    return current_user
