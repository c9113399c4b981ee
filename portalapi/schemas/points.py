from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from portalapi.models.points import TransactionType
from portalapi.schemas.user import UserSummary

# int4 range of the ledger columns
MAX_LEDGER_DELTA = 2**31 - 1


class PointsTransaction(BaseModel):
    """Points ledger entry"""

    id: int
    student_id: int
    tutor_id: int
    points: int = Field(..., description="Unsigned magnitude")
    type: TransactionType
    reason: str
    period_id: int
    rolled_back: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ExperienceTransaction(BaseModel):
    """Experience ledger entry"""

    id: int
    student_id: int
    tutor_id: int
    amount: int = Field(..., description="Signed amount")
    period_id: int
    rolled_back: bool = False
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class PointsChangeRequest(BaseModel):
    student_id: int = Field(..., gt=0)
    points: int = Field(
        ...,
        ge=-MAX_LEDGER_DELTA,
        le=MAX_LEDGER_DELTA,
        description="Positive awards, negative deducts",
    )
    reason: Optional[str] = Field(None, max_length=255)


class PointsChangeResponse(BaseModel):
    message: str
    transaction: PointsTransaction
    new_balance: int


class ExperienceChangeRequest(BaseModel):
    student_id: int = Field(..., gt=0)
    amount: int = Field(..., ge=-MAX_LEDGER_DELTA, le=MAX_LEDGER_DELTA)


class ExperienceChangeResponse(BaseModel):
    transaction: ExperienceTransaction
    new_experience: int


class PointsTransactionWithStudent(PointsTransaction):
    student: Optional[UserSummary] = None


class ExperienceTransactionWithStudent(ExperienceTransaction):
    student: Optional[UserSummary] = None


class PointsTransactionListResponse(BaseModel):
    transactions: List[PointsTransactionWithStudent]


class ExperienceTransactionListResponse(BaseModel):
    transactions: List[ExperienceTransactionWithStudent]


class BalanceResponse(BaseModel):
    student_id: int
    period_id: Optional[int] = None
    points: int
    experience: int


class PointsIntegrityCheckResponse(BaseModel):
    """Cached balance vs. ledger-derived balance"""

    status: str = Field(..., description="OK or MISMATCH")
    user_id: int
    period_id: Optional[int] = None
    cached_points: int
    ledger_points: int
    cached_experience: int
    ledger_experience: int
    verified_at: datetime


class LeaderboardEntry(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    experience: int
    rank: int
    tutor: Optional[UserSummary] = None


class LeaderboardRank(BaseModel):
    rank: int
    experience: int


class LeaderboardResponse(BaseModel):
    period_id: Optional[int] = None
    leaderboard: List[LeaderboardEntry]
    user_rank: Optional[LeaderboardRank] = None
    total: int

