from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from portalapi.models.user import UserRole


class User(BaseModel):
    id: int
    username: str
    first_name: str
    last_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    role: UserRole = UserRole.STUDENT
    tutor_id: Optional[int] = None
    is_active: bool = True
    points: int = 0
    experience: int = 0
    external_enrollment_id: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)


class UserSummary(BaseModel):
    """Compact user reference embedded in ledger and store responses"""

    id: int
    username: str
    first_name: str
    last_name: str

    class Config:
        from_attributes = True


class UserBalance(BaseModel):
    id: int
    username: str
    points: int
    experience: int

    class Config:
        from_attributes = True
