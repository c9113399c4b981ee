from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from portalapi.models.store import RequestStatus
from portalapi.schemas.user import UserSummary


class StoreItem(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    points_required: int
    is_active: bool = True

    class Config:
        from_attributes = True


class StoreItemCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = None
    points_required: int = Field(..., gt=0)


class StoreItemListResponse(BaseModel):
    items: List[StoreItem]


class ItemRequest(BaseModel):
    id: int
    student_id: int
    tutor_id: int
    item_id: int
    status: RequestStatus
    points_spent: int
    note: str = ""
    period_id: int
    points_transaction_id: Optional[int] = None
    created_at: Optional[datetime] = None
    student: Optional[UserSummary] = None
    item: Optional[StoreItem] = None

    class Config:
        from_attributes = True


class ItemRequestCreate(BaseModel):
    item_id: int = Field(..., gt=0)
    note: Optional[str] = Field(None, max_length=500)


class ItemRequestUpdate(BaseModel):
    status: RequestStatus
    note: Optional[str] = Field(None, max_length=500)


class ItemRequestResponse(BaseModel):
    message: str
    request: ItemRequest


class ItemRequestListResponse(BaseModel):
    requests: List[ItemRequest]
