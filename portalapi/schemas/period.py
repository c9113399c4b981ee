from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator

from portalapi.models.period import PeriodStatus


class PeriodCounts(BaseModel):
    """Rows owned by a period; any non-zero count blocks deletion"""

    points_transactions: int = 0
    experience_transactions: int = 0
    rollbacks: int = 0
    item_requests: int = 0

    @property
    def has_data(self) -> bool:
        return any(
            (
                self.points_transactions,
                self.experience_transactions,
                self.rollbacks,
                self.item_requests,
            )
        )


class Period(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None
    status: PeriodStatus
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PeriodWithCounts(Period):
    counts: PeriodCounts = Field(default_factory=PeriodCounts)


class PeriodListResponse(BaseModel):
    periods: List[PeriodWithCounts]


class PeriodCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    start_date: datetime
    end_date: Optional[datetime] = None

    @model_validator(mode="after")
    def _strip_name(self):
        self.name = self.name.strip()
        return self


class PeriodUpdateRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    status: Optional[PeriodStatus] = None


class PeriodActivationResponse(BaseModel):
    period: Period
    previous_period_id: Optional[int] = None
    synced_users: int
    message: str
