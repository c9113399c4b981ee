from fastapi import APIRouter, Depends, Query

from portalapi.core.auth_middleware import get_current_active_user, require_roles
from portalapi.deps import get_experience_service
from portalapi.models.user import UserRole
from portalapi.schemas.points import (
    ExperienceChangeRequest,
    ExperienceChangeResponse,
    ExperienceTransactionListResponse,
)
from portalapi.schemas.user import User as UserSchema
from portalapi.services.experience_service import ExperienceService

router = APIRouter(prefix="/experience", tags=["experience"])


@router.post("", response_model=ExperienceChangeResponse)
def change_experience(
    request: ExperienceChangeRequest,
    current_user: UserSchema = Depends(
        require_roles(UserRole.ADMIN, UserRole.TUTOR, UserRole.ASISTAN)
    ),
    experience_service: ExperienceService = Depends(get_experience_service),
) -> ExperienceChangeResponse:
    return experience_service.change_experience(
        student_id=request.student_id, amount=request.amount, actor=current_user
    )


@router.get("/transactions", response_model=ExperienceTransactionListResponse)
def list_transactions(
    limit: int = Query(25, ge=1, le=500),
    current_user: UserSchema = Depends(get_current_active_user),
    experience_service: ExperienceService = Depends(get_experience_service),
) -> ExperienceTransactionListResponse:
    return experience_service.list_transactions(actor=current_user, limit=limit)
