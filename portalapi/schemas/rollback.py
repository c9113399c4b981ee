from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from portalapi.models.rollback import RollbackTransactionType
from portalapi.schemas.user import UserBalance, UserSummary


class TransactionRollback(BaseModel):
    id: int
    transaction_id: int
    transaction_type: RollbackTransactionType
    student_id: int
    admin_id: int
    reason: str
    period_id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class RollbackRequest(BaseModel):
    transaction_id: int = Field(..., gt=0)
    transaction_type: RollbackTransactionType
    reason: str = Field(..., min_length=1, max_length=500)


class RollbackResponse(BaseModel):
    success: bool = True
    student: UserBalance
    rollback: TransactionRollback


class RollbackHistoryEntry(TransactionRollback):
    student: Optional[UserSummary] = None
    admin: Optional[UserSummary] = None


class RollbackHistoryResponse(BaseModel):
    rollbacks: List[RollbackHistoryEntry]
