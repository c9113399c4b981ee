"""
Points ledger API.

- POST /points                         : award (points > 0) or deduct (points < 0)
- GET  /points/transactions            : ledger entries visible to the caller
- GET  /points/balance/{student_id}    : ledger-derived balance in the active period
- GET  /points/integrity/{student_id}  : cached vs. derived balance (admin)
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from portalapi.core.auth_middleware import (
    get_current_active_user,
    require_admin,
    require_roles,
)
from portalapi.deps import get_balance_projection, get_point_service
from portalapi.models.user import UserRole
from portalapi.schemas.points import (
    BalanceResponse,
    PointsChangeRequest,
    PointsChangeResponse,
    PointsIntegrityCheckResponse,
    PointsTransactionListResponse,
)
from portalapi.schemas.user import User as UserSchema
from portalapi.services.balance_projection import BalanceProjection
from portalapi.services.point_service import PointService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/points", tags=["points"])


@router.post("", response_model=PointsChangeResponse)
def change_points(
    request: PointsChangeRequest,
    current_user: UserSchema = Depends(
        require_roles(UserRole.ADMIN, UserRole.TUTOR, UserRole.ASISTAN)
    ),
    point_service: PointService = Depends(get_point_service),
) -> PointsChangeResponse:
    """
    Award or deduct points for a student in the active period.

    HTTP Status:
        200: ledger entry written, balance re-derived
        400: zero points or deduction larger than the balance
        403: student not assigned to the calling tutor/assistant
        404: student not found
        409: no active period
    """
    return point_service.change_points(
        student_id=request.student_id,
        points=request.points,
        reason=request.reason,
        actor=current_user,
    )


@router.get("/transactions", response_model=PointsTransactionListResponse)
def list_transactions(
    student_id: Optional[int] = Query(None, gt=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: UserSchema = Depends(get_current_active_user),
    point_service: PointService = Depends(get_point_service),
) -> PointsTransactionListResponse:
    return point_service.list_transactions(
        actor=current_user, student_id=student_id, limit=limit
    )


@router.get("/balance/{student_id}", response_model=BalanceResponse)
def get_balance(
    student_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    point_service: PointService = Depends(get_point_service),
) -> BalanceResponse:
    return point_service.get_balance(student_id, actor=current_user)


@router.get("/integrity/{student_id}", response_model=PointsIntegrityCheckResponse)
def verify_integrity(
    student_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    projection: BalanceProjection = Depends(get_balance_projection),
) -> PointsIntegrityCheckResponse:
    result = projection.verify_user_integrity(student_id)
    if result.status != "OK":
        logger.warning(f"Integrity check for user {student_id}: {result.status}")
    return result
