from enum import Enum
from typing import Optional, Union

from sqlalchemy import BigInteger, Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portalapi.models.base import BaseModel, BigIntPK


class UserRole(str, Enum):
    """Portal roles"""

    ADMIN = "ADMIN"
    TUTOR = "TUTOR"
    ASISTAN = "ASISTAN"
    BOARD_MEMBER = "BOARD_MEMBER"
    STUDENT = "STUDENT"
    ATHLETE = "ATHLETE"

    @classmethod
    def is_admin(cls, role: Union[str, "UserRole"]) -> bool:
        return cls(role) == cls.ADMIN


class User(BaseModel):
    __tablename__ = "users"
    __table_args__ = (Index("idx_users_tutor_id", "tutor_id"),)

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    username: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    role: Mapped[str] = mapped_column(
        String(20), default=UserRole.STUDENT.value, nullable=False
    )
    tutor_id: Mapped[Optional[int]] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=True
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    # Cached projection of the active period's ledger, written only by BalanceProjection
    points: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    experience: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    # Set once the enrollment partner accepted the student
    external_enrollment_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    tutor = relationship("User", remote_side=[id], foreign_keys=[tutor_id])

    def __repr__(self):
        return f"<User(id={self.id}, username={self.username}, role={self.role})>"

    @property
    def is_admin(self) -> bool:
        return UserRole.is_admin(self.role)
