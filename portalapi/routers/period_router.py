"""
Period registry API.

- GET  /periods/active                 : active period (any authenticated user)
- GET  /admin/periods                  : list with ledger-row counts
- POST /admin/periods                  : create (INACTIVE)
- GET/PUT/DELETE /admin/periods/{id}
- POST /admin/periods/{id}/activate    : guarded single-active transition
- POST /admin/periods/{id}/archive
"""

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from portalapi.core.auth_middleware import get_current_active_user, require_admin
from portalapi.deps import get_period_service
from portalapi.models.period import PeriodStatus
from portalapi.schemas.period import (
    Period,
    PeriodActivationResponse,
    PeriodCreateRequest,
    PeriodListResponse,
    PeriodUpdateRequest,
    PeriodWithCounts,
)
from portalapi.schemas.user import User as UserSchema
from portalapi.services.period_service import PeriodService

router = APIRouter(tags=["periods"])


@router.get("/periods/active", response_model=Period)
def get_active_period(
    current_user: UserSchema = Depends(get_current_active_user),
    period_service: PeriodService = Depends(get_period_service),
) -> Period:
    """409 when no period is active"""
    return period_service.require_active_period()


@router.get("/admin/periods", response_model=PeriodListResponse)
def list_periods(
    status_filter: Optional[PeriodStatus] = Query(None, alias="status"),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> PeriodListResponse:
    return PeriodListResponse(periods=period_service.list_periods(status_filter))


@router.post("/admin/periods", response_model=Period, status_code=status.HTTP_201_CREATED)
def create_period(
    request: PeriodCreateRequest,
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> Period:
    return period_service.create_period(request)


@router.get("/admin/periods/{period_id}", response_model=PeriodWithCounts)
def get_period(
    period_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> PeriodWithCounts:
    return period_service.get_period(period_id)


@router.put("/admin/periods/{period_id}", response_model=Period)
def update_period(
    request: PeriodUpdateRequest,
    period_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> Period:
    return period_service.update_period(period_id, request)


@router.delete("/admin/periods/{period_id}")
def delete_period(
    period_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> dict:
    period_service.delete_period(period_id)
    return {"success": True}


@router.post("/admin/periods/{period_id}/activate", response_model=PeriodActivationResponse)
def activate_period(
    period_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> PeriodActivationResponse:
    return period_service.activate_period(period_id)


@router.post("/admin/periods/{period_id}/archive", response_model=Period)
def archive_period(
    period_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(require_admin),
    period_service: PeriodService = Depends(get_period_service),
) -> Period:
    return period_service.archive_period(period_id)
