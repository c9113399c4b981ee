from fastapi import APIRouter, Depends

from portalapi.core.auth_middleware import require_admin
from portalapi.deps import get_rollback_service
from portalapi.schemas.rollback import (
    RollbackHistoryResponse,
    RollbackRequest,
    RollbackResponse,
)
from portalapi.schemas.user import User as UserSchema
from portalapi.services.rollback_service import RollbackService

router = APIRouter(prefix="/admin/transactions", tags=["rollback"])


@router.post("/rollback", response_model=RollbackResponse)
def rollback_transaction(
    request: RollbackRequest,
    current_user: UserSchema = Depends(require_admin),
    rollback_service: RollbackService = Depends(get_rollback_service),
) -> RollbackResponse:
    """Reverse a points or experience entry; 409 if it was already reversed"""
    return rollback_service.rollback(request, admin=current_user)


@router.get("/rollback", response_model=RollbackHistoryResponse)
def list_rollbacks(
    current_user: UserSchema = Depends(require_admin),
    rollback_service: RollbackService = Depends(get_rollback_service),
) -> RollbackHistoryResponse:
    return rollback_service.list_rollbacks(admin=current_user)
