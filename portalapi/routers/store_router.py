from typing import Optional

from fastapi import APIRouter, Depends, Path, Query, status

from portalapi.core.auth_middleware import get_current_active_user, require_admin
from portalapi.deps import get_store_service
from portalapi.models.store import RequestStatus
from portalapi.schemas.store import (
    ItemRequestCreate,
    ItemRequestListResponse,
    ItemRequestResponse,
    ItemRequestUpdate,
    StoreItem,
    StoreItemCreateRequest,
    StoreItemListResponse,
)
from portalapi.schemas.user import User as UserSchema
from portalapi.services.store_service import StoreService

router = APIRouter(prefix="/store", tags=["store"])


@router.get("/items", response_model=StoreItemListResponse)
def list_items(
    include_inactive: bool = Query(False),
    current_user: UserSchema = Depends(get_current_active_user),
    store_service: StoreService = Depends(get_store_service),
) -> StoreItemListResponse:
    active_only = not (include_inactive and current_user.is_admin)
    return store_service.list_items(active_only=active_only)


@router.post("/items", response_model=StoreItem, status_code=status.HTTP_201_CREATED)
def create_item(
    request: StoreItemCreateRequest,
    current_user: UserSchema = Depends(require_admin),
    store_service: StoreService = Depends(get_store_service),
) -> StoreItem:
    return store_service.create_item(request, actor=current_user)


@router.post(
    "/requests", response_model=ItemRequestResponse, status_code=status.HTTP_201_CREATED
)
def create_request(
    request: ItemRequestCreate,
    current_user: UserSchema = Depends(get_current_active_user),
    store_service: StoreService = Depends(get_store_service),
) -> ItemRequestResponse:
    return store_service.create_request(request, actor=current_user)


@router.get("/requests", response_model=ItemRequestListResponse)
def list_requests(
    status_filter: Optional[RequestStatus] = Query(None, alias="status"),
    current_user: UserSchema = Depends(get_current_active_user),
    store_service: StoreService = Depends(get_store_service),
) -> ItemRequestListResponse:
    return store_service.list_requests(actor=current_user, status=status_filter)


@router.put("/requests/{request_id}", response_model=ItemRequestResponse)
def process_request(
    update: ItemRequestUpdate,
    request_id: int = Path(..., gt=0),
    current_user: UserSchema = Depends(get_current_active_user),
    store_service: StoreService = Depends(get_store_service),
) -> ItemRequestResponse:
    return store_service.process_request(request_id, update, actor=current_user)
