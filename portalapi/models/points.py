"""
Points and experience ledgers.

Rows are append-only: after insert the only permitted change is flipping
rolled_back to True. Balances are derived by summing non-rolled-back rows of
a period.
"""

import enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from portalapi.models.base import BaseModel, BigIntPK


class TransactionType(str, enum.Enum):
    AWARD = "AWARD"
    REDEEM = "REDEEM"


class PointsTransaction(BaseModel):
    __tablename__ = "points_transactions"
    __table_args__ = (
        CheckConstraint("points > 0", name="ck_points_tx_positive"),
        Index("idx_points_tx_student_period", "student_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    # Awarding tutor or admin
    tutor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    points: Mapped[int] = mapped_column(Integer, nullable=False)
    type: Mapped[str] = mapped_column(String(10), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    period_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("periods.id"), nullable=False
    )
    rolled_back: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    student = relationship("User", foreign_keys=[student_id], lazy="joined")

    @property
    def signed_points(self) -> int:
        return self.points if self.type == TransactionType.AWARD.value else -self.points


class ExperienceTransaction(BaseModel):
    __tablename__ = "experience_transactions"
    __table_args__ = (
        CheckConstraint("amount <> 0", name="ck_experience_tx_nonzero"),
        Index("idx_experience_tx_student_period", "student_id", "period_id"),
    )

    id: Mapped[int] = mapped_column(BigIntPK, primary_key=True, autoincrement=True)
    student_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    tutor_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("users.id"), nullable=False
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    period_id: Mapped[int] = mapped_column(
        BigInteger, ForeignKey("periods.id"), nullable=False
    )
    rolled_back: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    student = relationship("User", foreign_keys=[student_id], lazy="joined")
